"""Exceptions raised when running ffmpeg and ffprobe."""


class FFmpegError(RuntimeError):
    """Base class for every failure of an ffmpeg/ffprobe invocation."""


class FFmpegNotFoundError(FFmpegError):
    pass


class FFmpegSpawnError(FFmpegError):
    """The binary was found but the process could not be started."""


class FFmpegRuntimeError(FFmpegError):
    """The process ran and exited with a non-zero status."""

    def __init__(self, message: str, returncode: int | None = None, tail: list[str] | None = None):
        super().__init__(message)
        self.returncode = returncode
        self.tail = tail or []


class FFmpegPipeError(FFmpegError):
    """Copying caller-supplied stream data into or out of ffmpeg failed."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class FFmpegCancelledError(FFmpegError):
    pass


class ProbeDecodeError(FFmpegError):
    """ffprobe ran, but its output was not the JSON we asked for."""


class NoVideoStreamError(ValueError):
    """Raised when the input file has no usable video stream."""
    pass
