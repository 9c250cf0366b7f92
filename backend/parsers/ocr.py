"""Tesseract OCR worker used for scanned statements."""

import logging
from collections.abc import Generator, Iterable
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import pytesseract
from PIL import Image

from backend.config import settings

logger = logging.getLogger(__name__)


class OcrWorker:
    """
    Runs tesseract over page images on a small thread pool.

    The pool is the worker's only resource; call ``terminate()`` (or use
    ``ocr_worker()``) once the batch is done.
    """

    def __init__(self, language: str = "eng", max_workers: int = 1):
        self.language = language
        self._pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="ocr")
        self._terminated = False

    def recognize(self, image: Image.Image) -> str:
        """Return the text tesseract finds in a single image."""
        return pytesseract.image_to_string(image, lang=self.language)

    def recognize_pages(self, images: Iterable[Image.Image]) -> list[str]:
        """OCR images concurrently, returning text in input order."""
        if self._terminated:
            raise RuntimeError("OCR worker has been terminated")
        return list(self._pool.map(self.recognize, images))

    def terminate(self) -> None:
        """Release the worker's threads."""
        if not self._terminated:
            self._pool.shutdown(wait=True, cancel_futures=True)
            self._terminated = True


@contextmanager
def ocr_worker(
    language: str | None = None, max_workers: int | None = None
) -> Generator[OcrWorker, None, None]:
    """Yield an OcrWorker that is terminated however the block exits."""
    worker = OcrWorker(
        language=language or settings.ocr_language,
        max_workers=max_workers or settings.ocr_max_workers,
    )
    try:
        yield worker
    finally:
        worker.terminate()
        logger.debug("OCR worker terminated")
