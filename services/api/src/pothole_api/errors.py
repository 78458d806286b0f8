"""Report pipeline errors and their HTTP mapping."""


class ReportError(Exception):
    """Base class for report failures.

    Attributes:
        message: Client-facing error message.
        status_code: HTTP status code returned to the client.
    """

    status_code = 500
    default_message = "Failed to process report"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ReportProcessingError(ReportError):
    """Raised for malformed or incomplete captures."""

    status_code = 400


class ReportStoreError(ReportError):
    """Raised when the report store cannot be reached or rejects a write."""

    status_code = 502
    default_message = "Failed to store report"


class ReportNotFoundError(ReportError):
    """Raised when a report id is unknown or expired."""

    status_code = 404
    default_message = "Report not found"
