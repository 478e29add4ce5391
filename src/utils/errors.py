"""Error taxonomy for the clipper API.

Every error carries the HTTP status it maps to, so the API layer can render
any of them as ``{"error": "<message>"}`` without knowing where it came from.
"""


class ClipperError(Exception):
    """Base class for all expected request failures."""

    status_code = 500


class ValidationError(ClipperError):
    """Missing or malformed request parameters."""

    status_code = 400


class NotFoundError(ClipperError):
    """A referenced local file does not exist or is not readable."""

    status_code = 404


class ConfigurationError(ClipperError):
    """A required setting (API key, storage credentials) is missing."""


class SignedUrlError(ClipperError):
    """The storage provider refused or failed to issue a signed URL."""


class StorageError(ClipperError):
    """Upload or URL lookup against the storage provider failed."""


class DownloadFailedError(ClipperError):
    """A remote video could not be materialized locally."""


class ExtractionStartFailedError(ClipperError):
    """The media subprocess could not be started."""


class ExtractionFailedError(ClipperError):
    """The media subprocess exited with a nonzero code."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class AnalysisError(ClipperError):
    """The AI service failed or returned an unusable response."""
