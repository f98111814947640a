"""
Metadata Writing Module (메타데이터 저장 모듈)

Optional sidecar outputs: per-frame index CSV and conversion summary JSON
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any

import numpy as np
import pandas as pd


class MetadataWriter:
    """Collects per-frame records and writes the sidecar files"""

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Merged conversion configuration ('frame_index_csv', 'summary_json')
        """
        self.config = config
        self.records: List[Dict[str, Any]] = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def add_frame(
        self,
        index: int,
        rgb_file: str,
        depth_file: str,
        timestamp: int,
        width: int,
        height: int,
        offset: int
    ) -> None:
        """Record one written frame (only when a frame index CSV is configured)"""
        if not self.config['frame_index_csv']:
            return

        self.records.append({
            'frame_index': index,
            'rgb_file': rgb_file,
            'depth_file': depth_file,
            'timestamp_us': timestamp,
            'width': width,
            'height': height,
            'depth_size': width * height * 2,
            'color_size': width * height * 3,
            'offset': offset,
        })

    def save_frame_index(self) -> None:
        """Save frame index CSV"""
        path = self.config['frame_index_csv']
        if not path:
            return

        if not self.records:
            self.logger.warning("No frame records to save")
            return

        pd.DataFrame(self.records).to_csv(path, index=False)
        self.logger.info(f"  Saved frame index: {path}")

    def save_summary(self, summary: Dict[str, Any]) -> None:
        """Save conversion summary JSON"""
        path = self.config['summary_json']
        if not path:
            return

        summary = {**summary, 'conversion_time': datetime.now().isoformat()}

        with open(Path(path), 'w', encoding='utf-8') as f:
            json.dump(_convert_numpy_types(summary), f, indent=2, ensure_ascii=False)
        self.logger.info(f"  Saved conversion summary: {path}")


def _convert_numpy_types(obj: Any) -> Any:
    """Recursively convert NumPy/Path values to JSON-serializable types"""
    if isinstance(obj, dict):
        return {key: _convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_numpy_types(item) for item in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, Path):
        return str(obj)
    else:
        return obj


def load_frame_index(path: str) -> pd.DataFrame:
    """
    Load a frame index CSV

    Args:
        path: CSV written by MetadataWriter.save_frame_index

    Returns:
        Frame index DataFrame
    """
    return pd.read_csv(path)
