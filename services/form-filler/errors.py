"""Request failure taxonomy.

Every failure that aborts a request derives from PipelineError and carries the
HTTP status it is surfaced with. Per-file extraction failures and per-key fill
failures are absorbed where they happen and never reach this hierarchy's
handler.
"""


class PipelineError(Exception):
    """Base class for failures that abort the request."""

    status_code = 500

    @property
    def public_message(self) -> str:
        return str(self)


class BadRequest(PipelineError):
    """The caller sent input that cannot be processed."""

    status_code = 400


class ServiceFailure(PipelineError):
    """An external capability (extraction service, OCR) could not be reached."""

    status_code = 502


class DataFailure(PipelineError):
    """The extraction service answered, but the answer is unusable."""

    status_code = 502

    @property
    def public_message(self) -> str:
        return f"Invalid AI output: {self}"


class InternalFailure(PipelineError):
    """Asset, fill-state or rendering fault. Details stay in the logs."""

    status_code = 500

    @property
    def public_message(self) -> str:
        return "Internal server error"


class NoInput(BadRequest):
    """Neither files nor free text were supplied."""


class UnsupportedFormat(BadRequest):
    """Upload extension has no extraction strategy."""


class FileTooLarge(BadRequest):
    """Upload exceeds the configured size bound."""


class EmptyInput(BadRequest):
    """Files and free text together produced no usable text."""


class ServiceError(ServiceFailure):
    """Transport or HTTP-level failure reaching the extraction service."""


class OCRError(ServiceFailure):
    """The OCR engine failed on a payload."""


class EmptyOutput(DataFailure):
    """No text-bearing content item in the service response."""


class InvalidJSON(DataFailure):
    """The answer text is not a well-formed JSON object."""


class AssetLoadError(InternalFailure):
    """Schema or template asset could not be loaded."""


class FormStateError(InternalFailure):
    """Fill attempted on a form that has already been flattened."""


class RenderError(InternalFailure):
    """Flattening or serializing the filled form failed."""
