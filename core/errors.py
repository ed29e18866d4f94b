"""
Error taxonomy for the frame classification pipeline.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class InvalidArgument(PipelineError, ValueError):
    """A pure routine was called with arguments that violate its contract."""


class DeviceUnavailable(PipelineError):
    """Every camera acquisition fallback failed."""


class TransientFrameError(PipelineError):
    """A single frame could not be read, preprocessed or classified."""


class FatalPipelineError(PipelineError):
    """The capture loop cannot continue."""
