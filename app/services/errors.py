"""Exception hierarchy shared by the voice clone pipeline and its services."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for failures surfaced by the voice clone pipeline."""


class ConfigurationError(PipelineError):
    """Raised when a credential, bucket or endpoint is not configured."""


class CaptureUnavailable(PipelineError):
    """Raised when no usable microphone input can be opened."""


class InvalidPipelineInput(PipelineError):
    """Raised when the inbound recording or brand id fails validation."""


class BrandNotFound(PipelineError):
    """Raised when the requested brand row does not exist."""


class UpstreamServiceError(PipelineError):
    """Raised when the voice transformation API rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedResponseShape(PipelineError):
    """Raised when the voice transformation API answers without usable audio."""

    def __init__(self, message: str, *, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class StorageUnavailable(PipelineError):
    """Raised when object storage is not configured or not reachable."""


class UploadFailed(PipelineError):
    """Raised when writing the object failed after storage was reachable."""


class RecordNotFound(PipelineError):
    """No brand row matches the merchant id being updated."""


class RecordUpdateUnverified(PipelineError):
    """The stored record URL did not match the intended value after updating."""


__all__ = [
    "PipelineError",
    "ConfigurationError",
    "CaptureUnavailable",
    "InvalidPipelineInput",
    "BrandNotFound",
    "UpstreamServiceError",
    "UnexpectedResponseShape",
    "StorageUnavailable",
    "UploadFailed",
    "RecordNotFound",
    "RecordUpdateUnverified",
]
