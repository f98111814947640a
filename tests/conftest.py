from pathlib import Path

import cv2
import numpy as np
import pytest

WIDTH = 64
HEIGHT = 48


def make_color(index: int, width: int = WIDTH, height: int = HEIGHT) -> np.ndarray:
    """Deterministic BGR test image"""
    rng = np.random.default_rng(index)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def make_depth(index: int, width: int = WIDTH, height: int = HEIGHT) -> np.ndarray:
    """Deterministic uint16 depth image (millimetres)"""
    rng = np.random.default_rng(1000 + index)
    return rng.integers(0, 5000, size=(height, width), dtype=np.uint16)


def write_dataset(root: Path, n_color: int, n_depth: int = None, width: int = WIDTH, height: int = HEIGHT):
    """Write rgb/ and depth/ PNG directories, returns (rgb_dir, depth_dir)"""
    n_depth = n_color if n_depth is None else n_depth
    rgb_dir = root / "rgb"
    depth_dir = root / "depth"
    rgb_dir.mkdir(parents=True, exist_ok=True)
    depth_dir.mkdir(parents=True, exist_ok=True)

    for i in range(n_color):
        assert cv2.imwrite(str(rgb_dir / f"{i:06d}.png"), make_color(i, width, height))
    for i in range(n_depth):
        assert cv2.imwrite(str(depth_dir / f"{i:06d}.png"), make_depth(i, width, height))

    return rgb_dir, depth_dir


@pytest.fixture
def dataset(tmp_path):
    """Two 64x48 frames"""
    return write_dataset(tmp_path, 2)
