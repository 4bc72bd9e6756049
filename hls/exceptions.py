class PipelineError(Exception):
    """Base class for failures raised by the HLS pipeline stages."""


class EncodeError(PipelineError):
    """The encoder failed for a rendition; the whole job is aborted."""

    def __init__(self, message: str, *, rendition: str | None = None, stderr: str = ""):
        super().__init__(message)
        self.rendition = rendition
        self.stderr = stderr


class PublishError(PipelineError):
    """A rendition's files or playlist could not be uploaded."""


class ReconcileError(PipelineError):
    """No catalog record matched the source object within the retry budget."""


class NotifyError(PipelineError):
    """The catalog rejected or never received the completion callback."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
