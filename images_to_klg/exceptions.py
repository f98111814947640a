"""
Exception Module
변환 과정에서 발생하는 에러 정의

Pre-run problems derive from ArgumentError and never leave anything on disk.
Per-frame problems derive from FrameError and abort the conversion.
"""


class KlgConversionError(Exception):
    """Base class for all conversion errors"""


class ArgumentError(KlgConversionError):
    """Invalid or missing option, or inputs rejected before any frame is written"""


class InputMismatchError(ArgumentError):
    """Colour/depth listings are empty or have different lengths"""


class OutputExistsError(ArgumentError):
    """Output path already exists"""


class CountMismatchError(ArgumentError):
    """Timestamp file entry count differs from the frame count"""


class TimestampParseError(ArgumentError):
    """Timestamp entry cannot be parsed as seconds"""


class FrameError(KlgConversionError):
    """A single frame could not be converted"""

    def __init__(self, message: str, index: int = None):
        super().__init__(message)
        self.index = index


class DecodeError(FrameError):
    """Image file could not be read or decoded to a non-empty image"""


class DimensionMismatchError(FrameError):
    """Colour and depth images have different pixel counts"""


class LayoutError(FrameError):
    """Pixel data is not contiguous or exceeds the record size limit"""


class ContainerFormatError(KlgConversionError):
    """klg file is truncated or malformed"""
