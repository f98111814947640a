"""
Input Validator Module
변환 시작 전에 입력 디렉토리, 출력 경로, timestamp 파일을 검증하는 모듈
"""

import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from .exceptions import (
    ArgumentError,
    InputMismatchError,
    OutputExistsError,
    CountMismatchError,
)
from .image_loader import list_image_files
from .timestamp_sequencer import read_timestamp_file


@dataclass
class ValidationResult:
    """검증 결과를 담는 데이터 클래스"""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict)
    # 첫 번째 에러의 예외 타입 (exception type raised by raise_for_errors)
    error_type: Optional[type] = None

    def add_error(self, message: str, error_type: type = ArgumentError) -> None:
        """에러 추가 (검증 실패)"""
        self.errors.append(message)
        self.is_valid = False
        if self.error_type is None:
            self.error_type = error_type

    def add_warning(self, message: str) -> None:
        """경고 추가 (검증은 통과하지만 주의 필요)"""
        self.warnings.append(message)

    def add_info(self, key: str, value: Any) -> None:
        """정보 추가"""
        self.info[key] = value

    def has_warnings(self) -> bool:
        """경고가 있는지 확인"""
        return len(self.warnings) > 0

    def raise_for_errors(self) -> None:
        """Raise the first error's exception type with all messages"""
        if not self.is_valid:
            raise self.error_type('; '.join(self.errors))


class InputValidator:
    """Pre-run checks for one conversion"""

    # 파일 이름 불일치 경고 최대 개수
    MAX_PAIRING_WARNINGS = 5

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Merged conversion configuration (see config.DEFAULT_CONFIG)
        """
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self, rgb_dir: str, depth_dir: str, output_path: str) -> ValidationResult:
        """
        입력 통합 검증
        Validate inputs and output

        Returns:
            ValidationResult; info holds 'rgb_files', 'depth_files', 'frame_count'
            and, when a timestamp file is configured, 'timestamp_entries'
        """
        result = ValidationResult()

        # 1. 입력 디렉토리
        rgb_files = self._list(rgb_dir, self.config['rgb_extensions'], 'RGB', result)
        depth_files = self._list(depth_dir, self.config['depth_extensions'], 'Depth', result)
        if not result.is_valid:
            return result

        result.add_info('rgb_files', rgb_files)
        result.add_info('depth_files', depth_files)
        result.add_info('frame_count', len(rgb_files))

        if len(rgb_files) == 0 or len(rgb_files) != len(depth_files):
            result.add_error(
                f"Input empty or not matching: {len(rgb_files)} RGB images, {len(depth_files)} depth images",
                InputMismatchError
            )
            return result

        self._check_pairing(rgb_files, depth_files, result)

        # 2. 출력 경로
        output_path = Path(output_path)
        if output_path.exists():
            result.add_error(f"Out file already exists: {output_path}", OutputExistsError)
            return result
        if not output_path.parent.is_dir():
            result.add_error(f"Output directory not found: {output_path.parent}")

        # 3. 타임스탬프
        if self.config['timestamps']:
            self._check_timestamps(self.config['timestamps'], len(rgb_files), result)
        elif self.config['fps'] <= 0:
            result.add_error(f"Frame rate must be positive: {self.config['fps']}")

        if self.config['workers'] < 1:
            result.add_error(f"Worker count must be at least 1: {self.config['workers']}")

        return result

    def _list(self, directory: str, extensions: List[str], kind: str, result: ValidationResult) -> List[str]:
        try:
            return list_image_files(directory, extensions)
        except ArgumentError as e:
            result.add_error(f"{kind}: {e}")
            return []

    def _check_pairing(self, rgb_files: List[str], depth_files: List[str], result: ValidationResult) -> None:
        """Index pairing is trusted; differing file stems only produce warnings"""
        mismatched = [
            (rgb, depth) for rgb, depth in zip(rgb_files, depth_files)
            if Path(rgb).stem != Path(depth).stem
        ]
        for rgb, depth in mismatched[:self.MAX_PAIRING_WARNINGS]:
            result.add_warning(f"File names differ: {rgb} <-> {depth}")
        if len(mismatched) > self.MAX_PAIRING_WARNINGS:
            result.add_warning(f"... {len(mismatched) - self.MAX_PAIRING_WARNINGS} more pairs with differing names")

    def _check_timestamps(self, path: str, frame_count: int, result: ValidationResult) -> None:
        try:
            entries = read_timestamp_file(path)
        except ArgumentError as e:
            result.add_error(str(e))
            return

        result.add_info('timestamp_entries', entries)
        if len(entries) != frame_count:
            result.add_error(
                f"Number of input timestamps ({len(entries)}) != number of images ({frame_count})",
                CountMismatchError
            )

    def log_validation_result(self, result: ValidationResult) -> None:
        """검증 결과를 로그로 출력"""
        if 'frame_count' in result.info:
            self.logger.info(f"  Frames: {result.info['frame_count']}")

        for error in result.errors:
            self.logger.error(f"  - {error}")

        for warning in result.warnings:
            self.logger.warning(f"  - {warning}")

        if result.is_valid:
            self.logger.info("  VALID (with warnings)" if result.has_warnings() else "  VALID")
        else:
            self.logger.error("  INVALID")
