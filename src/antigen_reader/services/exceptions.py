"""Errors raised by the normalisation and evaluation pipeline."""


class AntigenReaderError(Exception):
    """Base class for all antigen reader errors."""


class PipelineError(AntigenReaderError):
    """A single request failed somewhere between upload and verdict."""


class DecodeError(PipelineError):
    """The buffer is not an image any supported codec can read."""


class ResizeError(PipelineError):
    """The decoded image has no area to resize from."""


class InferenceError(PipelineError):
    """The classifier failed or produced an unusable distribution."""


class ModelUnavailable(AntigenReaderError):
    """The classifier could not be loaded at startup."""
