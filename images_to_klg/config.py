"""
Configuration Module (설정 모듈)

Default conversion settings and YAML config file loading
"""

import math
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .exceptions import ArgumentError

logger = logging.getLogger(__name__)


# 기본 설정 (Default configuration)
DEFAULT_CONFIG: Dict[str, Any] = {
    # 타임스탬프 (Timestamps)
    'timestamps': None,  # timestamp file path, None = synthesized from fps
    'timestamp_scale': 1.0,  # multiplier applied to seconds read from the timestamp file
    'fps': 24.0,

    # Depth 변환 (Depth conversion)
    'depth_scale': 1.0,  # factor that scales raw depth values to metres

    # 입력 확장자 (Input extensions)
    'rgb_extensions': ['.jpg', '.jpeg', '.png'],
    'depth_extensions': ['.png', '.exr', '.tif', '.tiff'],

    # 성능 (Performance)
    'workers': 1,  # decoding threads, frames are always written in index order

    # 검증 (Verification)
    'verify_output': False,  # re-scan the temporary container before commit

    # 추가 출력 (Optional outputs)
    'frame_index_csv': None,
    'summary_json': None,
}

# 숫자 설정 타입 (YAML values are coerced like the argparse flags)
NUMERIC_KEYS: Dict[str, type] = {
    'timestamp_scale': float,
    'fps': float,
    'depth_scale': float,
    'workers': int,
}

# 설정 파일 기준 상대 경로 (paths resolved against the config file directory)
PATH_KEYS = ('timestamps', 'frame_index_csv', 'summary_json')


def merge_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge user settings over DEFAULT_CONFIG

    Args:
        config: Partial configuration dictionary (None entries are ignored)

    Returns:
        Complete configuration dictionary

    Raises:
        ArgumentError: Unknown configuration key or value of the wrong type
    """
    config = {key: value for key, value in (config or {}).items() if value is not None}

    unknown = sorted(set(config) - set(DEFAULT_CONFIG))
    if unknown:
        raise ArgumentError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key, value_type in NUMERIC_KEYS.items():
        if key in config:
            config[key] = _coerce(key, config[key], value_type)

    return {**DEFAULT_CONFIG, **config}


def _coerce(key: str, value: Any, value_type: type) -> Any:
    """Convert a YAML value to the type argparse would produce"""
    # bool은 int의 하위 타입이므로 제외
    if isinstance(value, bool):
        raise ArgumentError(f"Invalid value for '{key}': {value!r}")
    if value_type is int and isinstance(value, float) and not value.is_integer():
        raise ArgumentError(f"Invalid value for '{key}': {value!r} (expected {value_type.__name__})")
    try:
        value = value_type(value)
    except (TypeError, ValueError):
        raise ArgumentError(f"Invalid value for '{key}': {value!r} (expected {value_type.__name__})") from None
    if value_type is float and not math.isfinite(value):
        raise ArgumentError(f"Invalid value for '{key}': {value!r} (must be finite)")
    return value


def load_config(path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file

    Args:
        path: YAML file path

    Returns:
        Configuration dictionary (not merged with defaults); relative
        paths in PATH_KEYS are resolved against the config file directory
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ArgumentError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ArgumentError(f"Config file must contain a mapping: {config_path}")

    # 상대 경로는 설정 파일 위치 기준
    for key in PATH_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value and not Path(value).is_absolute():
            data[key] = str(config_path.parent / value)

    logger.debug(f"Loaded config from {config_path}: {data}")
    return data
