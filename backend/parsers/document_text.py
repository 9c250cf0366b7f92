"""Turn an uploaded PDF or CSV statement into plain text for extraction."""

import csv
import logging
from io import BytesIO, StringIO

import pdfplumber
import pytesseract
from PIL import Image

from backend.config import settings
from backend.errors import CsvParseError, ImageBasedPdfUnreadable, PdfReadError, UnsupportedFormat
from backend.parsers.ocr import ocr_worker

logger = logging.getLogger(__name__)

PDF_MIME_TYPES = frozenset({"application/pdf"})
CSV_MIME_TYPES = frozenset({"text/csv", "application/csv"})


def extract_text(contents: bytes, mime_type: str) -> str:
    """
    Extract flat text from a statement file.

    Args:
        contents: Raw file bytes
        mime_type: Declared MIME type of the upload

    Returns:
        Text ready to send to the extraction model

    Raises:
        UnsupportedFormat: If the MIME type is not a PDF or CSV type
        CsvParseError: If a CSV cannot be decoded or parsed
        PdfReadError: If a PDF cannot be opened or read
        ImageBasedPdfUnreadable: If neither the text layer nor OCR yields enough text
    """
    base_type = (mime_type or "").split(";")[0].strip().lower()

    if base_type in PDF_MIME_TYPES:
        return parse_pdf(contents)
    if base_type in CSV_MIME_TYPES:
        return parse_csv(contents)

    logger.error(f"Unsupported file type: {mime_type}")
    raise UnsupportedFormat("Unsupported file type. Only PDF and CSV files are allowed.")


def is_meaningful(text: str | None) -> bool:
    """Whether extracted text is long enough to hold transactions."""
    return bool(text) and len(text.strip()) >= settings.min_text_length


# ==================== CSV ====================


def parse_csv(contents: bytes) -> str:
    """
    Decode a CSV and re-serialize each non-empty row as one comma-joined line.

    No header row is assumed; every row is passed through.
    """
    logger.info(f"Parsing CSV ({len(contents)} bytes)")

    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvParseError("Failed to parse CSV file: file is not valid UTF-8 text") from e

    lines = []
    try:
        for row in csv.reader(StringIO(text, newline=""), strict=True):
            if not row:
                continue
            lines.append(", ".join(_single_line(cell) for cell in row))
    except csv.Error as e:
        raise CsvParseError(f"Failed to parse CSV file: {e}") from e

    if not lines:
        raise CsvParseError("Failed to parse CSV file: no rows found")

    logger.info(f"Parsed {len(lines)} CSV rows")
    return "\n".join(lines)


def _single_line(cell: str) -> str:
    """Collapse a quoted multi-line cell so each row stays on one line."""
    if "\n" in cell or "\r" in cell:
        return " ".join(cell.split())
    return cell


# ==================== PDF ====================


def parse_pdf(contents: bytes) -> str:
    """
    Extract text from a PDF, falling back to OCR for scanned documents.

    The text layer is tried first; pages are only rendered and OCR'd when it
    yields fewer than ``settings.min_text_length`` characters.
    """
    logger.info(f"Parsing PDF ({len(contents)} bytes)")

    try:
        with pdfplumber.open(BytesIO(contents)) as pdf:
            text = _extract_text_layer(pdf)
            if is_meaningful(text):
                logger.info(f"Extracted {len(text)} characters from PDF text layer")
                return text

            logger.warning(
                f"Insufficient text layer ({len((text or '').strip())} chars), trying OCR on {len(pdf.pages)} pages"
            )
            images = _render_pages(pdf)
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        raise PdfReadError("Failed to parse PDF file. Please try a CSV file instead.") from e

    if not images:
        raise ImageBasedPdfUnreadable("This PDF appears to be image-based or scanned.")

    ocr_text = _ocr_images(images)
    if not is_meaningful(ocr_text):
        raise ImageBasedPdfUnreadable("OCR failed to extract sufficient text from this PDF.")

    logger.info(f"OCR extracted {len(ocr_text)} characters from {len(images)} pages")
    return ocr_text


def _extract_text_layer(pdf: "pdfplumber.PDF") -> str:
    """Concatenate the embedded text of every page."""
    return "\n\n".join(page.extract_text() or "" for page in pdf.pages)


def _render_pages(pdf: "pdfplumber.PDF") -> list[Image.Image]:
    """Render each page to an image, skipping pages that fail to render."""
    images = []
    for page_num, page in enumerate(pdf.pages, start=1):
        try:
            image = page.to_image(resolution=settings.ocr_resolution).original
        except Exception as e:
            logger.warning(f"Could not render page {page_num}, skipping: {e}")
            continue
        if image is None:
            logger.warning(f"Page {page_num} rendered no image, skipping")
            continue
        images.append(image)
    return images


def _ocr_images(images: list[Image.Image]) -> str:
    """OCR page images in page order, separating pages with a blank line."""
    try:
        with ocr_worker() as worker:
            page_texts = worker.recognize_pages(images)
    except (pytesseract.TesseractError, OSError) as e:
        logger.error(f"OCR failed: {e}")
        raise PdfReadError("Failed to parse PDF file. Please try a CSV file instead.") from e

    for page_num, page_text in enumerate(page_texts, start=1):
        logger.debug(f"OCR page {page_num}: {len(page_text)} characters")

    return "\n\n".join(page_texts)
