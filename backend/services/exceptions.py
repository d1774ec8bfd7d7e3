"""
Extraction Errors
=================
Every fatal condition of the pipeline, each with a message that can be
shown to the user as-is. None of them are retried by the pipeline.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for all extraction failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ExtractionError):
    """A back-end is used without its required settings."""


class UnsupportedFileType(ExtractionError):
    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(
            f"Unsupported file type: {content_type or 'unknown'}. "
            "Please upload a PDF, JPG, or PNG file."
        )


class FileTooLarge(ExtractionError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File too large ({size / (1024 * 1024):.1f}MB). "
            f"Maximum: {limit / (1024 * 1024):.0f}MB"
        )


class EmptyDocument(ExtractionError):
    def __init__(self):
        super().__init__("No content found in file")


class AnalysisServiceError(ExtractionError):
    """A back-end answered with a non-success status (or could not be reached)."""

    def __init__(self, status_code: Optional[int], body: str = "", service: str = "analysis service"):
        self.status_code = status_code
        self.body = body
        self.service = service
        status = status_code if status_code is not None else "no response"
        super().__init__(f"{service} error: {status} - {body}")


class MissingOperationHandle(ExtractionError):
    def __init__(self):
        super().__init__("No operation location returned from the layout analysis service")


class AnalysisFailed(ExtractionError):
    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "Unknown error"
        super().__init__(f"Document analysis failed: {self.reason}")


class AnalysisTimeout(ExtractionError):
    def __init__(self, attempts: int, interval: float):
        self.attempts = attempts
        self.interval = interval
        super().__init__(
            f"Analysis timed out after {attempts} status checks "
            f"(~{int(attempts * interval)}s)"
        )


class ExtractionCancelled(ExtractionError):
    def __init__(self):
        super().__init__("Extraction was cancelled")
