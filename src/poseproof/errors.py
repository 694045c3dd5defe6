from __future__ import annotations


class ImageDecodeError(RuntimeError):
    """Raised when an image source cannot be decoded into pixels."""


class SurfaceError(RuntimeError):
    """Raised when a drawing surface cannot be created for the requested size."""


class EncoderError(RuntimeError):
    pass


class EncoderTimeoutError(EncoderError):
    pass
