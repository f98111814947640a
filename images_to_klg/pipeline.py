"""
Conversion Pipeline
colour/depth 이미지 디렉토리 → klg container 변환 pipeline

처리 단계 (Processing Steps):
1. Input validation (input_validator.py)
2. Timestamp sequencer setup (timestamp_sequencer.py)
3. Per frame: load pair → normalize depth → timestamp → write record
4. Optional verification of the temporary container (klg_reader.py)
5. Commit (atomic rename) and optional sidecar outputs (metadata_writer.py)
"""

import time
import logging
from collections import deque
from contextlib import closing
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Any, Optional, Iterator, Tuple

from .config import merge_config
from .depth_normalizer import effective_depth_scale, normalize_depth
from .exceptions import FrameError, ContainerFormatError
from .image_loader import ImagePair, load_image_pair
from .input_validator import InputValidator
from .klg_reader import KlgReader
from .klg_writer import Frame, KlgWriter
from .metadata_writer import MetadataWriter
from .progress import ProgressReporter, NullProgress
from .timestamp_sequencer import TimestampSequencer


class ImagesToKlgPipeline:
    """
    이미지 → klg 변환 Pipeline
    Images to klg conversion pipeline

    Frames are written strictly in index order. With workers > 1 the
    loading and depth normalization run on a thread pool, at most
    2 * workers frames ahead of the writer.
    """

    # 디스플레이 상수 (Display Constants)
    HEADER_WIDTH = 60

    def __init__(
        self,
        rgb_dir: str,
        depth_dir: str,
        output_path: str,
        config: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressReporter] = None
    ) -> None:
        """
        Pipeline 초기화
        Initialize pipeline

        Args:
            rgb_dir: Directory containing colour images
            depth_dir: Directory containing depth images
            output_path: Output klg path (must not exist)
            config: Settings overriding config.DEFAULT_CONFIG
            progress: Progress reporter (default: NullProgress)
        """
        self.rgb_dir = Path(rgb_dir)
        self.depth_dir = Path(depth_dir)
        self.output_path = Path(output_path)
        self.config = merge_config(config)
        self.progress = progress or NullProgress()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.depth_scale = effective_depth_scale(self.config['depth_scale'])
        self.validator = InputValidator(self.config)
        self.metadata_writer = MetadataWriter(self.config)

    def _print_pipeline_header(self) -> None:
        self.logger.info("=" * self.HEADER_WIDTH)
        self.logger.info("Images to klg converter")
        self.logger.info("=" * self.HEADER_WIDTH)
        self.logger.info(f"RGB dir: {self.rgb_dir}")
        self.logger.info(f"Depth dir: {self.depth_dir}")
        self.logger.info(f"Output path: {self.output_path}")
        self.logger.info(f"Depth scale: {self.depth_scale} (x{self.config['depth_scale']} m)")
        self.logger.info(f"Workers: {self.config['workers']}")
        self.logger.info("=" * self.HEADER_WIDTH)

    def _print_pipeline_summary(self, summary: Dict[str, Any]) -> None:
        self.logger.info("=" * self.HEADER_WIDTH)
        self.logger.info("Conversion completed!")
        self.logger.info(f"  Frames: {summary['frame_count']}")
        self.logger.info(f"  Resolution: {summary['width']}x{summary['height']}")
        self.logger.info(f"  Timestamps: {summary['timestamp_mode']}")
        self.logger.info(f"  Bytes written: {summary['bytes_written']}")
        self.logger.info(f"  Elapsed: {summary['elapsed_seconds']:.2f}s")
        self.logger.info("=" * self.HEADER_WIDTH)

    def run(self) -> Dict[str, Any]:
        """
        전체 pipeline 실행
        Execute the conversion

        Returns:
            Summary dictionary

        Raises:
            ArgumentError: Inputs rejected before writing (nothing is created)
            FrameError: A frame failed; the temporary file is removed
        """
        start_time = time.perf_counter()
        self._print_pipeline_header()

        # 1. 입력 검증 (Validate inputs)
        self.logger.info("[1/4] Validating inputs...")
        validation = self.validator.validate(str(self.rgb_dir), str(self.depth_dir), str(self.output_path))
        self.validator.log_validation_result(validation)
        validation.raise_for_errors()

        rgb_files = validation.info['rgb_files']
        depth_files = validation.info['depth_files']
        frame_count = validation.info['frame_count']

        # 2. 타임스탬프 (Timestamps)
        self.logger.info("[2/4] Preparing timestamps...")
        sequencer = TimestampSequencer(
            frame_count,
            entries=validation.info.get('timestamp_entries'),
            fps=self.config['fps'],
            timestamp_scale=self.config['timestamp_scale']
        )
        self.logger.info(f"  Mode: {sequencer.mode}")

        # 3. 프레임 쓰기 (Write frames)
        self.logger.info(f"[3/4] Writing {frame_count} frames...")
        width = height = 0
        with KlgWriter(self.output_path, frame_count) as writer:
            self.progress.start(frame_count)
            try:
                with closing(self._iter_prepared(rgb_files, depth_files)) as prepared:
                    for index, (pair, depth) in prepared:
                        self.progress.update(index)
                        frame = Frame(timestamp=sequencer.timestamp(index), depth=depth, color=pair.color)
                        offset = writer.write_frame(frame)
                        self.metadata_writer.add_frame(
                            index, rgb_files[index], depth_files[index],
                            frame.timestamp, frame.width, frame.height, offset
                        )
                        width, height = frame.width, frame.height
            finally:
                self.progress.close()

            # 4. 검증 및 커밋 (Verify and commit)
            self.logger.info("[4/4] Committing output...")
            if self.config['verify_output']:
                writer.flush()
                self._verify(writer.temp_path, frame_count)
            writer.commit()
            bytes_written = writer.bytes_written

        summary = {
            'rgb_dir': self.rgb_dir,
            'depth_dir': self.depth_dir,
            'output_path': self.output_path,
            'frame_count': frame_count,
            'width': width,
            'height': height,
            'timestamp_mode': sequencer.mode,
            'fps': self.config['fps'],
            'depth_scale': self.depth_scale,
            'bytes_written': bytes_written,
            'warnings': validation.warnings,
            'elapsed_seconds': time.perf_counter() - start_time,
        }

        self.metadata_writer.save_frame_index()
        self.metadata_writer.save_summary(summary)
        self._print_pipeline_summary(summary)
        return summary

    def _prepare(self, index: int, rgb_file: str, depth_file: str) -> Tuple[ImagePair, Any]:
        """Load one pair and normalize its depth"""
        try:
            pair = load_image_pair(self.rgb_dir / rgb_file, self.depth_dir / depth_file)
        except FrameError as e:
            if e.index is None:
                e.index = index
            raise
        return pair, normalize_depth(pair.depth, self.depth_scale)

    def _iter_prepared(self, rgb_files, depth_files) -> Iterator[Tuple[int, Tuple[ImagePair, Any]]]:
        """Prepared frames in index order"""
        workers = self.config['workers']
        if workers <= 1:
            for index, (rgb_file, depth_file) in enumerate(zip(rgb_files, depth_files)):
                yield index, self._prepare(index, rgb_file, depth_file)
            return

        # 순서 보장: future를 제출 순서대로 소비 (futures are consumed in submission order)
        window = 2 * workers
        pending = deque()
        jobs = enumerate(zip(rgb_files, depth_files))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            try:
                for index, (rgb_file, depth_file) in jobs:
                    pending.append((index, executor.submit(self._prepare, index, rgb_file, depth_file)))
                    if len(pending) >= window:
                        index, future = pending.popleft()
                        yield index, future.result()
                while pending:
                    index, future = pending.popleft()
                    yield index, future.result()
            finally:
                for _, future in pending:
                    future.cancel()

    def _verify(self, path: Path, frame_count: int) -> None:
        """Re-scan the temporary container before it replaces the destination"""
        with KlgReader(path) as reader:
            records = reader.scan()
        if len(records) != frame_count or reader.frame_count != frame_count:
            raise ContainerFormatError(f"Verification failed: header {reader.frame_count}, records {len(records)}")
        self.logger.info(f"  Verified {len(records)} frame records")
