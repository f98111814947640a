"""
Main Execution Script (메인 실행 스크립트)
colour/depth 이미지 디렉토리를 klg 파일로 변환

Exit codes:
    0  success
    1  missing/invalid arguments, empty or mismatched inputs, timestamp count mismatch
    2  output file already exists
    3  frame conversion failed
"""

import argparse
import sys
import logging
from typing import Dict, Any, List, Optional

from .config import load_config
from .exceptions import ArgumentError, OutputExistsError, KlgConversionError
from .pipeline import ImagesToKlgPipeline
from .progress import TqdmProgress, NullProgress

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ARGUMENTS = 1
EXIT_OUTPUT_EXISTS = 2
EXIT_CONVERSION = 3

MANDATORY_OPTIONS = ('rgbdir', 'depthdir', 'out')


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on errors, which is reserved for an existing output"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_ARGUMENTS, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog='images-to-klg',
        description='Convert directories of colour and depth images to a klg file'
    )

    parser.add_argument('--rgbdir', type=str, help='Mandatory: directory containing rgb images')
    parser.add_argument('--depthdir', type=str, help='Mandatory: directory containing depth images')
    parser.add_argument('--out', type=str, help='Mandatory: output klg path')
    parser.add_argument(
        '--timestamps', type=str,
        help='File that provides a timestamp for each frame (one per line, "<seconds> ...")'
    )
    parser.add_argument('--tss', dest='timestamp_scale', type=float, help='Timestamp scaling factor (default: 1.0)')
    parser.add_argument(
        '-s', '--depth-scale', dest='depth_scale', type=float,
        help='Factor which scales depth values to [m] (default: 1.0)'
    )
    parser.add_argument('--fps', type=float, help='Frames per second (default: 24.0)')
    parser.add_argument('--workers', type=int, help='Decoding threads (default: 1)')
    parser.add_argument('--config', type=str, help='YAML file with conversion settings')
    parser.add_argument('--frame-index', dest='frame_index_csv', type=str, help='Write a per-frame index CSV')
    parser.add_argument('--summary', dest='summary_json', type=str, help='Write a conversion summary JSON')
    parser.add_argument(
        '--verify', dest='verify_output', action='store_true', default=None,
        help='Re-read the container before committing it'
    )
    parser.add_argument('--no-progress', action='store_true', help='Disable the progress bar')
    parser.add_argument(
        '--log-level', default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    return parser


def _build_config(args: argparse.Namespace) -> Dict[str, Any]:
    """YAML file values, overridden by command line flags"""
    config = load_config(args.config) if args.config else {}
    for key in ('timestamps', 'timestamp_scale', 'depth_scale', 'fps', 'workers',
                'frame_index_csv', 'summary_json', 'verify_output'):
        value = getattr(args, key)
        if value is not None:
            config[key] = value
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    missing = [f"--{name}" for name in MANDATORY_OPTIONS if not getattr(args, name)]
    if missing:
        logger.error(f"Error, invalid arguments. Missing: {', '.join(missing)}")
        parser.print_help(sys.stderr)
        return EXIT_ARGUMENTS

    try:
        pipeline = ImagesToKlgPipeline(
            rgb_dir=args.rgbdir,
            depth_dir=args.depthdir,
            output_path=args.out,
            config=_build_config(args),
            progress=NullProgress() if args.no_progress else TqdmProgress()
        )
        pipeline.run()
    except OutputExistsError as e:
        logger.error(str(e))
        return EXIT_OUTPUT_EXISTS
    except ArgumentError as e:
        logger.error(str(e))
        return EXIT_ARGUMENTS
    except KlgConversionError as e:
        index = getattr(e, 'index', None)
        if index is not None:
            logger.error(f"Conversion failed at frame {index}: {e}")
        else:
            logger.error(f"Conversion failed: {e}")
        return EXIT_CONVERSION

    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
