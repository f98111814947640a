"""
Depth Normalizer Module

Converts decoded depth images to the canonical klg depth unit:
16-bit unsigned millimetres, one sample per pixel.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

METERS_TO_MILLIMETERS = 1000.0
DEPTH_MIN = 0
DEPTH_MAX = np.iinfo(np.uint16).max  # 65535


def effective_depth_scale(depth_scale: float) -> float:
    """
    Multiplier applied to raw depth samples

    Args:
        depth_scale: Factor that scales raw depth values to metres
                     (e.g. 0.001 for millimetre PNGs, 1.0 for metre EXRs)

    Returns:
        1000 * depth_scale (stored unit is millimetres)
    """
    return METERS_TO_MILLIMETERS * depth_scale


def normalize_depth(depth: np.ndarray, scale: float) -> np.ndarray:
    """
    Depth 이미지를 uint16 millimeter로 변환
    Rescale a depth image to uint16 samples

    Conversion rules, applied to every sample when scale != 1.0 or the
    input is not uint16:
      - value * scale is rounded half to even
      - results outside [0, 65535] saturate to the nearest bound
      - NaN becomes 0

    Saturation is silent; the number of clipped samples is logged at DEBUG.

    Args:
        depth: Decoded depth image (H x W, or H x W x C where channel 0 is used)
        scale: Effective scale, see effective_depth_scale()

    Returns:
        C-contiguous H x W uint16 array
    """
    if depth.ndim == 3:
        # 다채널 depth는 첫 번째 채널만 사용
        depth = depth[:, :, 0]

    if scale == 1.0 and depth.dtype == np.uint16:
        return np.ascontiguousarray(depth)

    scaled = np.rint(depth.astype(np.float64) * scale)

    nan_mask = np.isnan(scaled)
    if nan_mask.any():
        scaled[nan_mask] = DEPTH_MIN

    if logger.isEnabledFor(logging.DEBUG):
        clipped = int(np.count_nonzero((scaled < DEPTH_MIN) | (scaled > DEPTH_MAX)))
        if clipped:
            logger.debug(f"Saturated {clipped} depth samples to [{DEPTH_MIN}, {DEPTH_MAX}]")

    np.clip(scaled, DEPTH_MIN, DEPTH_MAX, out=scaled)
    return np.ascontiguousarray(scaled.astype(np.uint16))
