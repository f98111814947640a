"""
klg Writer Module
frame을 klg binary container로 저장하는 모듈

Container layout (all integers little-endian):

    int32   frame_count
    repeated frame_count times:
        int64   timestamp (microseconds)
        int32   depth_size (bytes)
        int32   color_size (bytes)
        uint8[depth_size]   depth, row-major uint16
        uint8[color_size]   colour, row-major uint8 BGR interleaved

The file is written to a temporary sibling and hard-linked to the
destination only after every declared frame has been written.
"""

import os
import struct
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

from .exceptions import LayoutError, OutputExistsError, KlgConversionError

logger = logging.getLogger(__name__)

# Binary layout (고정 little-endian)
FILE_HEADER = struct.Struct('<i')
FRAME_HEADER = struct.Struct('<qii')
INT32_MAX = 2 ** 31 - 1


@dataclass
class Frame:
    """One timestamped depth/colour observation"""
    timestamp: int  # microseconds
    depth: np.ndarray  # H x W, uint16
    color: np.ndarray  # H x W x 3, uint8, BGR

    @property
    def width(self) -> int:
        return self.depth.shape[1]

    @property
    def height(self) -> int:
        return self.depth.shape[0]

    def depth_bytes(self) -> bytes:
        return self.depth.astype('<u2', copy=False).tobytes(order='C')

    def color_bytes(self) -> bytes:
        return self.color.tobytes(order='C')


def pack_frame_header(timestamp: int, depth_size: int, color_size: int) -> bytes:
    """Per-frame record header (16 bytes)"""
    if depth_size > INT32_MAX or color_size > INT32_MAX:
        raise LayoutError(f"Frame payload too large: depth={depth_size}, color={color_size}")
    return FRAME_HEADER.pack(timestamp, depth_size, color_size)


def encode_frame(frame: Frame) -> bytes:
    """
    Frame → record bytes

    Raises:
        LayoutError: Wrong dtype/shape, or colour and depth pixel counts differ
    """
    if frame.depth.dtype != np.uint16 or frame.depth.ndim != 2:
        raise LayoutError(f"Depth must be a 2-D uint16 array, got {frame.depth.dtype} {frame.depth.shape}")
    if frame.color.dtype != np.uint8 or frame.color.ndim != 3 or frame.color.shape[2] != 3:
        raise LayoutError(f"Color must be a H x W x 3 uint8 array, got {frame.color.dtype} {frame.color.shape}")
    if frame.color.shape[0] * frame.color.shape[1] != frame.depth.size:
        raise LayoutError("Depth and color pixel counts differ")

    depth = frame.depth_bytes()
    color = frame.color_bytes()
    return pack_frame_header(frame.timestamp, len(depth), len(color)) + depth + color


class KlgWriter:
    """
    klg container writer

    Usage:
        with KlgWriter(path, frame_count) as writer:
            for frame in frames:
                writer.write_frame(frame)
            writer.commit()

    Leaving the block without commit() (or through an exception) removes
    the temporary file; the destination is never created.
    """

    def __init__(self, output_path: str, frame_count: int):
        """
        Args:
            output_path: Destination klg path (must not exist)
            frame_count: Number of frames that will be written
        """
        self.output_path = Path(output_path)
        self.frame_count = frame_count
        self.frames_written = 0
        self.bytes_written = 0
        self.temp_path: Optional[Path] = None
        self.committed = False
        self._stream = None
        self.logger = logging.getLogger(self.__class__.__name__)

        if frame_count < 0 or frame_count > INT32_MAX:
            raise LayoutError(f"Invalid frame count: {frame_count}")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.committed:
            self.abort()

    def open(self) -> None:
        """Create the temporary file and write the frame count header"""
        if self.output_path.exists():
            raise OutputExistsError(f"Out file already exists: {self.output_path}")

        # 같은 디렉토리에 임시 파일 생성 (link must stay on one filesystem)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.output_path.name}.",
            suffix='.tmp',
            dir=str(self.output_path.parent)
        )
        self.temp_path = Path(temp_name)
        self._stream = os.fdopen(fd, 'wb')
        self._write(FILE_HEADER.pack(self.frame_count))
        self.logger.debug(f"Writing to temporary file {self.temp_path}")

    def write_frame(self, frame: Frame) -> int:
        """
        Append one frame record

        Returns:
            Byte offset of the record in the container
        """
        if self._stream is None:
            raise KlgConversionError("Writer is not open")
        if self.frames_written >= self.frame_count:
            raise KlgConversionError(f"More frames than declared ({self.frame_count})")

        offset = self.bytes_written
        self._write(encode_frame(frame))
        self.frames_written += 1
        return offset

    def flush(self) -> None:
        """Flush buffered records so the temporary file can be read back"""
        if self._stream is not None:
            self._stream.flush()

    def commit(self) -> Path:
        """
        Flush and hard-link the temporary file to the destination, then
        remove the temporary name

        Raises:
            KlgConversionError: Fewer frames written than declared
            OutputExistsError: Destination appeared while writing
        """
        if self.frames_written != self.frame_count:
            raise KlgConversionError(
                f"Frame count mismatch: declared {self.frame_count}, written {self.frames_written}"
            )

        self._stream.flush()
        os.fsync(self._stream.fileno())
        self._stream.close()
        self._stream = None

        # link는 대상이 이미 있으면 실패 (never overwrites an existing destination)
        try:
            os.link(self.temp_path, self.output_path)
        except FileExistsError:
            raise OutputExistsError(f"Out file already exists: {self.output_path}") from None
        self.temp_path.unlink()
        self.temp_path = None
        self.committed = True
        self.logger.info(f"Wrote {self.frames_written} frames ({self.bytes_written} bytes) to {self.output_path}")
        return self.output_path

    def abort(self) -> None:
        """Close and remove the temporary file"""
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        if self.temp_path is not None:
            self.temp_path.unlink(missing_ok=True)
            self.logger.warning(f"Conversion aborted, removed temporary file {self.temp_path}")
            self.temp_path = None

    def _write(self, data: bytes) -> None:
        self._stream.write(data)
        self.bytes_written += len(data)
