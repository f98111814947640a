"""
Image Pair Loader Module
colour/depth 이미지 쌍을 읽고 검증하는 모듈
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Iterable

# OpenEXR depth 이미지 지원 (must be set before cv2 is imported)
os.environ.setdefault('OPENCV_IO_ENABLE_OPENEXR', '1')

import cv2
import numpy as np

from .exceptions import ArgumentError, DecodeError, DimensionMismatchError, LayoutError

logger = logging.getLogger(__name__)


@dataclass
class ImagePair:
    """Decoded colour/depth pair"""
    color: np.ndarray  # H x W x 3, uint8, BGR
    depth: np.ndarray  # H x W (or H x W x C), decoder dtype
    color_path: Path
    depth_path: Path

    @property
    def width(self) -> int:
        return self.color.shape[1]

    @property
    def height(self) -> int:
        return self.color.shape[0]


def list_image_files(directory: str, extensions: Iterable[str]) -> List[str]:
    """
    디렉토리에서 이미지 파일 이름을 정렬된 순서로 반환
    List image file names in lexicographic order

    Args:
        directory: Directory to scan (not recursive)
        extensions: Accepted extensions, e.g. ['.png', '.jpg']

    Returns:
        Sorted file names (not full paths)
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ArgumentError(f"Input directory not found: {directory}")

    accepted = {ext.lower() for ext in extensions}
    names = [
        entry.name for entry in directory.iterdir()
        if entry.is_file()
        and not entry.name.startswith('.')
        and entry.suffix.lower() in accepted
    ]
    return sorted(names)


def _read_image(path: Path, flags: int, kind: str) -> np.ndarray:
    image = cv2.imread(str(path), flags)
    if image is None or image.size == 0:
        raise DecodeError(f"Could not read {kind}-image file: {path}")
    return image


def _pixel_count(image: np.ndarray) -> int:
    return image.shape[0] * image.shape[1]


def load_image_pair(color_path: Path, depth_path: Path) -> ImagePair:
    """
    colour/depth 이미지 쌍 로드 및 검증
    Load and validate one colour/depth pair

    Checks run in this order: colour decoded, depth decoded, equal pixel
    counts, contiguous buffers.

    Args:
        color_path: Colour image path (.jpg/.png)
        depth_path: Depth image path (.png/.exr/.tif, any depth-capable type)

    Returns:
        ImagePair with BGR colour and the depth image as decoded

    Raises:
        DecodeError: File missing, unreadable or empty
        DimensionMismatchError: Pixel counts differ
        LayoutError: Non-contiguous pixel data
    """
    color_path = Path(color_path)
    depth_path = Path(depth_path)

    # IMREAD_COLOR: 항상 8-bit 3채널 BGR
    color = _read_image(color_path, cv2.IMREAD_COLOR, 'rgb')
    depth = _read_image(depth_path, cv2.IMREAD_UNCHANGED, 'depth')

    if _pixel_count(color) != _pixel_count(depth):
        raise DimensionMismatchError(
            f"Image sizes are not matching: {color_path.name} {color.shape[1]}x{color.shape[0]}, "
            f"{depth_path.name} {depth.shape[1]}x{depth.shape[0]}"
        )

    if not color.flags['C_CONTIGUOUS'] or not depth.flags['C_CONTIGUOUS']:
        raise LayoutError(f"Data has to be continuous: {color_path.name}, {depth_path.name}")

    return ImagePair(color=color, depth=depth, color_path=color_path, depth_path=depth_path)
