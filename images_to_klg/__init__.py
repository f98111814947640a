"""
Images to klg
colour/depth 이미지 디렉토리를 klg binary container로 변환하는 패키지
"""

__version__ = '1.0.0'

from .exceptions import (
    KlgConversionError,
    ArgumentError,
    InputMismatchError,
    OutputExistsError,
    CountMismatchError,
    TimestampParseError,
    FrameError,
    DecodeError,
    DimensionMismatchError,
    LayoutError,
    ContainerFormatError,
)
from .image_loader import ImagePair, load_image_pair, list_image_files
from .depth_normalizer import normalize_depth, effective_depth_scale
from .timestamp_sequencer import TimestampSequencer, read_timestamp_file, parse_timestamp_entry
from .klg_writer import Frame, KlgWriter, encode_frame
from .klg_reader import KlgReader, FrameRecord
from .progress import ProgressReporter, NullProgress, TqdmProgress, CallbackProgress
from .pipeline import ImagesToKlgPipeline

__all__ = [
    'KlgConversionError',
    'ArgumentError',
    'InputMismatchError',
    'OutputExistsError',
    'CountMismatchError',
    'TimestampParseError',
    'FrameError',
    'DecodeError',
    'DimensionMismatchError',
    'LayoutError',
    'ContainerFormatError',
    'ImagePair',
    'load_image_pair',
    'list_image_files',
    'normalize_depth',
    'effective_depth_scale',
    'TimestampSequencer',
    'read_timestamp_file',
    'parse_timestamp_entry',
    'Frame',
    'KlgWriter',
    'encode_frame',
    'KlgReader',
    'FrameRecord',
    'ProgressReporter',
    'NullProgress',
    'TqdmProgress',
    'CallbackProgress',
    'ImagesToKlgPipeline',
]
