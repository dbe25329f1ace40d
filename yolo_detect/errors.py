"""
Exception types raised by the detection pipeline.
"""


class YoloDetectError(Exception):
    """Base class for all pipeline errors."""


class PreprocessError(YoloDetectError):
    """Image could not be read, or has no pixels."""


class ShapeError(YoloDetectError, ValueError):
    """Output tensor length does not match the configured feature layout."""


class LoadError(YoloDetectError):
    """Model could not be resolved or loaded by the inference engine."""


class ModelNotLoadedError(YoloDetectError):
    """An engine or pipeline was used before `load()`."""


class InferenceError(YoloDetectError):
    """Opaque failure raised by the inference runtime."""
