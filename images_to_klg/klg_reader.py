"""
klg Reader Module

Reads klg containers written by KlgWriter (little-endian layout).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .exceptions import ContainerFormatError
from .klg_writer import FILE_HEADER, FRAME_HEADER

logger = logging.getLogger(__name__)


@dataclass
class FrameRecord:
    """Location and header fields of one stored frame"""
    index: int
    offset: int  # byte offset of the record header
    timestamp: int  # microseconds
    depth_size: int
    color_size: int

    @property
    def depth_offset(self) -> int:
        return self.offset + FRAME_HEADER.size

    @property
    def color_offset(self) -> int:
        return self.depth_offset + self.depth_size

    @property
    def end_offset(self) -> int:
        return self.color_offset + self.color_size

    @property
    def pixel_count(self) -> int:
        return self.depth_size // 2


class KlgReader:
    """klg container reader (context manager)"""

    def __init__(self, path: str):
        self.path = Path(path)
        self.frame_count: Optional[int] = None
        self.file_size = 0
        self._stream = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> None:
        if not self.path.exists():
            raise FileNotFoundError(f"klg file not found: {self.path}")

        self._stream = open(self.path, 'rb')
        self.file_size = self.path.stat().st_size
        header = self._stream.read(FILE_HEADER.size)
        if len(header) != FILE_HEADER.size:
            self.close()
            raise ContainerFormatError(f"Missing frame count header: {self.path}")

        (self.frame_count,) = FILE_HEADER.unpack(header)
        if self.frame_count < 0:
            self.close()
            raise ContainerFormatError(f"Negative frame count: {self.frame_count}")

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def iter_records(self) -> Iterator[FrameRecord]:
        """
        Walk the record headers without reading payloads

        Raises:
            ContainerFormatError: A record header or payload is cut short
        """
        offset = FILE_HEADER.size
        for index in range(self.frame_count):
            self._stream.seek(offset)
            header = self._stream.read(FRAME_HEADER.size)
            if len(header) != FRAME_HEADER.size:
                raise ContainerFormatError(f"Truncated header of frame {index} at offset {offset}")

            timestamp, depth_size, color_size = FRAME_HEADER.unpack(header)
            if depth_size < 0 or color_size < 0:
                raise ContainerFormatError(f"Negative payload size in frame {index}")

            record = FrameRecord(index, offset, timestamp, depth_size, color_size)
            if record.end_offset > self.file_size:
                raise ContainerFormatError(
                    f"Truncated payload of frame {index}: needs {record.end_offset} bytes, file has {self.file_size}"
                )
            yield record
            offset = record.end_offset

    def scan(self) -> List[FrameRecord]:
        """
        Check that the file holds exactly frame_count complete records

        Returns:
            All frame records
        """
        records = list(self.iter_records())
        end = records[-1].end_offset if records else FILE_HEADER.size
        if end != self.file_size:
            raise ContainerFormatError(f"{self.file_size - end} trailing bytes after frame {len(records)}")
        return records

    def read_payloads(self, record: FrameRecord) -> Tuple[bytes, bytes]:
        """Raw (depth, color) payload bytes of a record"""
        self._stream.seek(record.depth_offset)
        depth = self._stream.read(record.depth_size)
        color = self._stream.read(record.color_size)
        return depth, color

    def read_frame(self, record: FrameRecord, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Decode a record to (depth H x W uint16, color H x W x 3 uint8 BGR)

        The container does not store image dimensions, the caller supplies them.
        """
        if width * height * 2 != record.depth_size or width * height * 3 != record.color_size:
            raise ContainerFormatError(
                f"Frame {record.index} payload sizes do not match {width}x{height}"
            )

        depth, color = self.read_payloads(record)
        depth_image = np.frombuffer(depth, dtype='<u2').reshape(height, width).astype(np.uint16)
        color_image = np.frombuffer(color, dtype=np.uint8).reshape(height, width, 3)
        return depth_image, color_image
