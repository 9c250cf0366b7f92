"""Errors raised by the finance tracker services.

Each stage raises its own subclass. The API layer maps ``status_code`` to
the HTTP response; the message is meant to be shown to the user as-is.
"""


class ApiError(Exception):
    """Base class for errors reported to API clients."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ApiError):
    """Raised when a resource does not exist or belongs to another owner."""

    status_code = 404


class ConflictError(ApiError):
    """Raised when a create or update would break a uniqueness rule."""

    status_code = 409


class InvalidRequestError(ApiError):
    """Raised when a merged update leaves a resource inconsistent."""

    status_code = 422


class StatementImportError(ApiError):
    """Base class for import pipeline failures."""


class UnsupportedFormat(StatementImportError):
    """Raised when the uploaded file is neither a PDF nor a CSV."""

    status_code = 415


class CsvParseError(StatementImportError):
    """Raised when a CSV statement cannot be decoded or parsed."""

    status_code = 422


class PdfReadError(StatementImportError):
    """Raised when a PDF cannot be opened or rendered at all."""

    status_code = 422


class ImageBasedPdfUnreadable(StatementImportError):
    """Raised when neither the text layer nor OCR yields usable text."""

    status_code = 422

    REMEDIATION = (
        "Please try: 1) Export as text-based PDF from your bank, "
        "2) Use CSV export instead, or "
        "3) Copy-paste transactions into a CSV file"
    )

    def __init__(self, reason: str):
        super().__init__(f"{reason} {self.REMEDIATION}")
        self.reason = reason


class AiExtractionError(StatementImportError):
    """Raised when the language model call fails or returns unusable output."""

    status_code = 502


class CommitError(StatementImportError):
    """Raised when confirmed transactions cannot be saved as a batch."""

    status_code = 400
