"""
Progress Reporter Module

Reporters are passed into the pipeline, so the conversion core has no
console side effects of its own.
"""

from typing import Callable, Optional

from tqdm import tqdm


class ProgressReporter:
    """Interface: start(total) → update(index) per frame → close()"""

    def start(self, total: int) -> None:
        pass

    def update(self, index: int) -> None:
        pass

    def close(self) -> None:
        pass


class NullProgress(ProgressReporter):
    """Reports nothing"""


class TqdmProgress(ProgressReporter):
    """tqdm progress bar"""

    def __init__(self, desc: str = "  Writing frames"):
        self.desc = desc
        self._bar: Optional[tqdm] = None

    def start(self, total: int) -> None:
        self._bar = tqdm(total=total, desc=self.desc, unit='frame')

    def update(self, index: int) -> None:
        if self._bar is not None:
            self._bar.update(1)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class CallbackProgress(ProgressReporter):
    """
    Calls fn(fraction) before each frame, fraction = index / (total + 1)
    """

    def __init__(self, fn: Callable[[float], None]):
        self.fn = fn
        self.step = 0.0

    def start(self, total: int) -> None:
        self.step = 1.0 / (total + 1)

    def update(self, index: int) -> None:
        self.fn(index * self.step)
