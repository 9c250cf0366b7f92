"""Tests for statement text extraction (CSV, PDF text layer, OCR fallback)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import pytesseract

from backend.errors import CsvParseError, ImageBasedPdfUnreadable, PdfReadError, UnsupportedFormat
from backend.parsers.document_text import extract_text, is_meaningful, parse_csv

LONG_TEXT_LAYER = "01/05/2024 STARBUCKS STORE 1234 -5.50\n01/06/2024 PAYROLL DEPOSIT ACME CORP +2500.00"
OCR_PAGE_1 = "Statement period January 2024\n01/05 WALMART SUPERCENTER -42.10"
OCR_PAGE_2 = "01/09 SHELL OIL 5551234 -38.00\n01/12 AMAZON REFUND +19.99"


class FakePage:
    """Stands in for a pdfplumber page."""

    def __init__(self, text: str | None = "", image: object | None = None, render_error: Exception | None = None):
        self._text = text
        self._image = image
        self._render_error = render_error
        self.rendered_at = None

    def extract_text(self):
        return self._text

    def to_image(self, resolution=None):
        if self._render_error is not None:
            raise self._render_error
        self.rendered_at = resolution
        return SimpleNamespace(original=self._image)


def fake_pdf(pages: list[FakePage]) -> MagicMock:
    """A context-manager mock shaped like pdfplumber.open()'s result."""
    pdf = MagicMock()
    pdf.pages = pages
    pdf.__enter__.return_value = pdf
    return pdf


def ocr_returning(texts_by_image: dict):
    """image_to_string stand-in keyed by the fake image object."""
    return MagicMock(side_effect=lambda image, lang: texts_by_image[image])


class TestExtractTextRouting:
    """MIME type dispatch."""

    def test_rejects_unsupported_type(self):
        """Should raise UnsupportedFormat for anything but PDF/CSV."""
        with pytest.raises(UnsupportedFormat):
            extract_text(b"\x89PNG....", "image/png")

    def test_rejects_missing_type(self):
        """Should raise UnsupportedFormat when no MIME type was sent."""
        with pytest.raises(UnsupportedFormat):
            extract_text(b"a,b\n1,2", "")

    @pytest.mark.parametrize("mime_type", ["text/csv", "application/csv", "text/csv; charset=utf-8", "TEXT/CSV"])
    def test_accepts_csv_variants(self, mime_type):
        """Should route every CSV MIME variant to the CSV parser."""
        assert extract_text(b"a,b\n1,2", mime_type) == "a, b\n1, 2"

    def test_routes_pdf(self):
        """Should route application/pdf to the PDF parser."""
        pdf = fake_pdf([FakePage(LONG_TEXT_LAYER)])
        with patch("backend.parsers.document_text.pdfplumber.open", return_value=pdf):
            assert extract_text(b"%PDF-1.7", "application/pdf") == LONG_TEXT_LAYER


class TestParseCsv:
    """CSV decoding and re-serialization."""

    def test_one_line_per_row(self):
        """Should emit one comma-joined line per row, header included."""
        contents = b"Date,Description,Amount\n2024-01-05,STARBUCKS,-5.50\n2024-01-06,UBER TRIP,-12.00\n"

        text = parse_csv(contents)

        assert text.split("\n") == [
            "Date, Description, Amount",
            "2024-01-05, STARBUCKS, -5.50",
            "2024-01-06, UBER TRIP, -12.00",
        ]

    def test_line_count_matches_non_empty_rows(self):
        """Should skip blank lines and keep every other row."""
        contents = b"Account 1234\n\n2024-01-05,STARBUCKS,-5.50\n\n\n2024-01-06,UBER,-12.00,extra\n"

        text = parse_csv(contents)

        assert len(text.split("\n")) == 3

    def test_multiline_quoted_cell_stays_on_one_line(self):
        """Should flatten a quoted cell containing a newline."""
        contents = b'2024-01-05,"AMAZON\nMARKETPLACE",-19.99\n2024-01-06,UBER,-12.00\n'

        text = parse_csv(contents)

        assert text.split("\n") == ["2024-01-05, AMAZON MARKETPLACE, -19.99", "2024-01-06, UBER, -12.00"]

    def test_strips_utf8_bom(self):
        """Should not leak a byte-order mark into the first cell."""
        assert parse_csv("\ufeffDate,Amount\n2024-01-05,1".encode("utf-8")) == "Date, Amount\n2024-01-05, 1"

    def test_invalid_utf8_raises(self):
        """Should raise CsvParseError for bytes that are not UTF-8."""
        with pytest.raises(CsvParseError, match="UTF-8"):
            parse_csv(b"Date,Description\n2024-01-05,\xff\xfe\xfa")

    def test_malformed_quoting_raises(self):
        """Should raise CsvParseError for broken quoting."""
        with pytest.raises(CsvParseError):
            parse_csv(b'2024-01-05,"STARBUCKS"X,-5.50\n')

    def test_no_rows_raises(self):
        """Should raise CsvParseError when there is nothing but blank lines."""
        with pytest.raises(CsvParseError, match="no rows"):
            parse_csv(b"\n\n")

    def test_never_uses_ocr(self):
        """Should never touch the OCR worker for CSV input."""
        with patch("backend.parsers.document_text.ocr_worker") as mock_worker:
            extract_text(b"2024-01-05,STARBUCKS,-5.50", "text/csv")

        mock_worker.assert_not_called()


class TestParsePdf:
    """PDF text layer with OCR fallback."""

    def test_text_layer_skips_ocr(self):
        """Should return the text layer and never OCR when it is long enough."""
        pdf = fake_pdf([FakePage(LONG_TEXT_LAYER[:60]), FakePage(LONG_TEXT_LAYER[60:])])
        mock_ocr = MagicMock()

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=pdf):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                text = extract_text(b"%PDF-1.7", "application/pdf")

        assert text == LONG_TEXT_LAYER[:60] + "\n\n" + LONG_TEXT_LAYER[60:]
        mock_ocr.assert_not_called()

    def test_falls_back_to_ocr_in_page_order(self):
        """Should OCR every page and join the text with blank lines, in page order."""
        pages = [FakePage("", image="img-1"), FakePage(None, image="img-2")]
        mock_ocr = ocr_returning({"img-1": OCR_PAGE_1, "img-2": OCR_PAGE_2})

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                text = extract_text(b"%PDF-1.7", "application/pdf")

        assert text == OCR_PAGE_1 + "\n\n" + OCR_PAGE_2
        assert mock_ocr.call_count == 2
        assert all(call.kwargs["lang"] == "eng" for call in mock_ocr.call_args_list)
        assert pages[0].rendered_at == 200

    def test_short_text_layer_triggers_ocr(self):
        """Should treat a text layer under the threshold as missing."""
        pages = [FakePage("Page 1 of 1", image="img-1")]
        mock_ocr = ocr_returning({"img-1": OCR_PAGE_1})

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                text = extract_text(b"%PDF-1.7", "application/pdf")

        assert text == OCR_PAGE_1

    def test_skips_page_that_fails_to_render(self):
        """Should skip a page whose rendering raises and OCR the rest."""
        pages = [FakePage("", render_error=RuntimeError("bad page object")), FakePage("", image="img-2")]
        mock_ocr = ocr_returning({"img-2": OCR_PAGE_2})

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                text = extract_text(b"%PDF-1.7", "application/pdf")

        assert text == OCR_PAGE_2
        mock_ocr.assert_called_once()

    def test_skips_failed_page_in_the_middle(self):
        """Should keep page order around a page that fails to render."""
        pages = [
            FakePage("", image="img-1"),
            FakePage("", render_error=ValueError("unsupported colorspace")),
            FakePage("", image="img-3"),
        ]
        mock_ocr = ocr_returning({"img-1": OCR_PAGE_1, "img-3": OCR_PAGE_2})

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                text = extract_text(b"%PDF-1.7", "application/pdf")

        assert text == OCR_PAGE_1 + "\n\n" + OCR_PAGE_2

    def test_text_layer_failure_raises(self):
        """Should still raise PdfReadError when the text layer cannot be read."""
        page = FakePage("")
        page.extract_text = MagicMock(side_effect=RuntimeError("corrupt content stream"))

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf([page])):
            with pytest.raises(PdfReadError):
                extract_text(b"%PDF-1.7", "application/pdf")

    def test_no_renderable_pages_raises(self):
        """Should raise ImageBasedPdfUnreadable when every page fails to render."""
        pages = [FakePage("", render_error=RuntimeError("render failed"))]

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with pytest.raises(ImageBasedPdfUnreadable, match="image-based"):
                extract_text(b"%PDF-1.7", "application/pdf")

    def test_insufficient_ocr_text_raises_with_remediation(self):
        """Should raise ImageBasedPdfUnreadable carrying the remediation steps."""
        pages = [FakePage("", image="img-1")]
        mock_ocr = ocr_returning({"img-1": "  ~~ 12 ~~  "})

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", mock_ocr):
                with pytest.raises(ImageBasedPdfUnreadable) as exc_info:
                    extract_text(b"%PDF-1.7", "application/pdf")

        message = exc_info.value.message
        assert "OCR failed" in message
        assert "1) Export as text-based PDF" in message
        assert "2) Use CSV export" in message
        assert "3) Copy-paste transactions" in message

    def test_unreadable_pdf_raises(self):
        """Should raise PdfReadError when pdfplumber cannot open the file."""
        with patch("backend.parsers.document_text.pdfplumber.open", side_effect=ValueError("not a PDF")):
            with pytest.raises(PdfReadError, match="Please try a CSV"):
                extract_text(b"garbage", "application/pdf")

    def test_tesseract_failure_raises(self):
        """Should raise PdfReadError when tesseract itself fails."""
        pages = [FakePage("", image="img-1")]
        failing_ocr = MagicMock(side_effect=pytesseract.TesseractError(1, "tesseract crashed"))

        with patch("backend.parsers.document_text.pdfplumber.open", return_value=fake_pdf(pages)):
            with patch("backend.parsers.ocr.pytesseract.image_to_string", failing_ocr):
                with pytest.raises(PdfReadError):
                    extract_text(b"%PDF-1.7", "application/pdf")


class TestIsMeaningful:
    """Threshold check on extracted text."""

    def test_threshold_uses_trimmed_length(self):
        """Should ignore surrounding whitespace when measuring."""
        assert not is_meaningful("   " + "x" * 49 + "   \n\n")
        assert is_meaningful("x" * 50)

    def test_empty(self):
        """Should treat None and empty text as not meaningful."""
        assert not is_meaningful(None)
        assert not is_meaningful("")
