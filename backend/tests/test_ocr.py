"""Tests for the OCR worker lifecycle."""

from unittest.mock import MagicMock, patch

import pytest

from backend.parsers.ocr import OcrWorker, ocr_worker


class TestOcrWorker:
    """Page recognition and resource release."""

    def test_recognize_pages_keeps_order(self):
        """Should return text in the same order as the images."""
        mock_ocr = MagicMock(side_effect=lambda image, lang: f"text of {image}")

        with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
            worker = OcrWorker(language="eng", max_workers=4)
            try:
                texts = worker.recognize_pages([f"page-{i}" for i in range(10)])
            finally:
                worker.terminate()

        assert texts == [f"text of page-{i}" for i in range(10)]

    def test_passes_language(self):
        """Should hand the configured language to tesseract."""
        mock_ocr = MagicMock(return_value="hola")

        with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
            worker = OcrWorker(language="spa")
            assert worker.recognize("page") == "hola"
            worker.terminate()

        mock_ocr.assert_called_once_with("page", lang="spa")

    def test_terminated_worker_refuses_work(self):
        """Should not accept pages after terminate()."""
        worker = OcrWorker()
        worker.terminate()
        worker.terminate()  # Idempotent

        with pytest.raises(RuntimeError, match="terminated"):
            worker.recognize_pages(["page"])


class TestOcrWorkerContext:
    """Scoped acquisition with guaranteed release."""

    def test_terminates_after_block(self):
        """Should terminate the worker when the block completes."""
        with ocr_worker() as worker:
            assert worker._terminated is False

        assert worker._terminated is True

    def test_terminates_when_a_page_fails(self):
        """Should still terminate the worker when OCR raises mid-batch."""
        mock_ocr = MagicMock(side_effect=["first page", RuntimeError("page 2 failed")])

        with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
            with pytest.raises(RuntimeError, match="page 2 failed"):
                with ocr_worker(max_workers=1) as worker:
                    worker.recognize_pages(["p1", "p2"])

        assert worker._terminated is True

    def test_uses_settings_defaults(self):
        """Should default to the configured OCR language."""
        with ocr_worker() as worker:
            assert worker.language == "eng"
