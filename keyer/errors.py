class KeyerError(Exception):
    """Base class for errors raised by the keying core."""


class ConfigurationError(KeyerError, ValueError):
    """Invalid settings or background, detected before any frame is processed."""


class DetectionFailure(KeyerError):
    """Key color sampling found no usable data. Always recovered by the detector."""


class FrameProcessingError(KeyerError):
    """A single frame could not be processed; the job stops at ``frame_index``."""

    def __init__(self, frame_index: int, cause: BaseException | str):
        self.frame_index = frame_index
        self.cause = cause
        super().__init__(f"frame {frame_index}: {cause}")


class CancellationRequested(KeyerError):
    """The caller cancelled the job between two frames."""

    def __init__(self, frames_done: int):
        self.frames_done = frames_done
        super().__init__(f"cancelled after {frames_done} frames")
