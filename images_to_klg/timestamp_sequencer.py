"""
Timestamp Sequencer Module
프레임별 microsecond timestamp 생성 모듈

Two modes, fixed when the sequencer is created:
  - external: one entry per frame from a timestamp file ("<seconds> <rest>")
  - synthesized: constant interval derived from the frame rate
"""

import math
import logging
from pathlib import Path
from typing import List, Optional

from .exceptions import ArgumentError, CountMismatchError, TimestampParseError

logger = logging.getLogger(__name__)

# 시간 변환 상수 (Time conversion constants)
S_TO_US = 1_000_000

# int64 timestamp 범위
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


def read_timestamp_file(path: str) -> List[str]:
    """
    Timestamp 파일 읽기
    Read timestamp entries, skipping blank lines and '#' comment lines

    Args:
        path: Text file, one entry per frame (e.g. TUM rgb.txt)

    Returns:
        Entry lines without trailing newline
    """
    path = Path(path)
    if not path.is_file():
        raise ArgumentError(f"Timestamp file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        lines = [line.strip() for line in f]

    return [line for line in lines if line and not line.startswith('#')]


def parse_timestamp_entry(entry: str, timestamp_scale: float = 1.0) -> int:
    """
    Parse one entry to microseconds

    The text before the first space is read as seconds; the result is
    truncated toward zero.

    Args:
        entry: "<seconds> <rest-of-line>" or just "<seconds>"
        timestamp_scale: Multiplier applied to the seconds value

    Returns:
        Timestamp in microseconds

    Raises:
        TimestampParseError: Not a number, not finite, or outside int64
    """
    head = entry.split(' ', 1)[0]
    try:
        seconds = float(head)
    except ValueError:
        raise TimestampParseError(f"Invalid timestamp entry: '{entry}'") from None

    microseconds = seconds * timestamp_scale * S_TO_US
    if not math.isfinite(microseconds):
        raise TimestampParseError(f"Timestamp is not finite: '{entry}'")

    timestamp = int(microseconds)
    if not INT64_MIN <= timestamp <= INT64_MAX:
        raise TimestampParseError(f"Timestamp out of int64 microsecond range: '{entry}'")
    return timestamp


class TimestampSequencer:
    """
    Frame index → timestamp (microseconds)

    external 모드는 파일의 각 줄을 독립적으로 변환 (each line stands alone),
    synthesized 모드는 0부터 일정 간격으로 증가.
    """

    DEFAULT_FPS = 24.0

    def __init__(
        self,
        frame_count: int,
        entries: Optional[List[str]] = None,
        fps: float = DEFAULT_FPS,
        timestamp_scale: float = 1.0
    ):
        """
        Args:
            frame_count: Number of frames in the sequence
            entries: Timestamp file entries (None selects synthesized mode)
            fps: Frame rate for synthesized mode
            timestamp_scale: Multiplier for external entries

        Raises:
            CountMismatchError: len(entries) != frame_count
            TimestampParseError: An entry is not a number
            ArgumentError: fps <= 0 in synthesized mode
        """
        self.frame_count = frame_count
        self.fps = fps
        self.timestamp_scale = timestamp_scale
        self.logger = logging.getLogger(self.__class__.__name__)

        if entries is not None:
            if len(entries) != frame_count:
                raise CountMismatchError(
                    f"Number of input timestamps ({len(entries)}) != number of images ({frame_count})"
                )
            # 모든 줄을 먼저 파싱하여 쓰기 전에 오류 검출
            self._timestamps = [parse_timestamp_entry(e, timestamp_scale) for e in entries]
            self._warn_if_not_monotonic()
            self.step = None
        else:
            if not math.isfinite(fps) or fps <= 0:
                raise ArgumentError(f"Frame rate must be positive and finite: {fps}")
            self._timestamps = None
            self.step = int(S_TO_US / fps)
            if self.step * max(frame_count - 1, 0) > INT64_MAX:
                raise ArgumentError(f"Frame rate too low, timestamps exceed int64: {fps}")

    @classmethod
    def from_file(cls, path: str, frame_count: int, timestamp_scale: float = 1.0) -> 'TimestampSequencer':
        """Build an external-mode sequencer from a timestamp file"""
        return cls(frame_count, entries=read_timestamp_file(path), timestamp_scale=timestamp_scale)

    @property
    def mode(self) -> str:
        return 'synthesized' if self._timestamps is None else 'external'

    def timestamp(self, index: int) -> int:
        """Timestamp of frame `index` in microseconds"""
        if not 0 <= index < self.frame_count:
            raise IndexError(f"Frame index out of range: {index} (frames: {self.frame_count})")

        if self._timestamps is not None:
            return self._timestamps[index]
        return index * self.step

    def _warn_if_not_monotonic(self) -> None:
        for index in range(1, len(self._timestamps)):
            if self._timestamps[index] < self._timestamps[index - 1]:
                self.logger.warning(
                    f"Timestamps are not monotonic at frame {index}: "
                    f"{self._timestamps[index - 1]} -> {self._timestamps[index]}"
                )
                return
