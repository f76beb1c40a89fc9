"""Exceptions raised by the transcoding pipeline."""


class TranscodingError(Exception):
    """Base class for transcoding failures."""

    pass


class EngineError(TranscodingError):
    """Raised when the transcoding engine cannot be started or used."""

    pass


class EngineExecutionError(EngineError):
    """Raised when an engine command exits unsuccessfully."""

    def __init__(self, returncode: int | None, stderr_tail: str = ""):
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        detail = f": {stderr_tail}" if stderr_tail else ""
        super().__init__(f"Engine command failed with exit code {returncode}{detail}")


class EngineFileError(EngineError):
    """Raised when a file in the engine's working storage is missing or unreadable."""

    pass


class FontProvisioningError(TranscodingError):
    """Raised when a font cannot be supplied to the engine."""

    pass


class AudioExtractionError(TranscodingError):
    """Raised when every audio extraction stage failed."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class SubtitleBurnError(TranscodingError):
    """Raised when burning subtitles into a video failed."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
