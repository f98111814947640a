import json

import numpy as np
import pytest

from images_to_klg.exceptions import ArgumentError, DecodeError, InputMismatchError, OutputExistsError
from images_to_klg.klg_reader import KlgReader
from images_to_klg.metadata_writer import load_frame_index
from images_to_klg.pipeline import ImagesToKlgPipeline
from images_to_klg.progress import CallbackProgress

from conftest import WIDTH, HEIGHT, make_color, make_depth, write_dataset

FRAME_SIZE = 8 + 4 + 4 + WIDTH * HEIGHT * 2 + WIDTH * HEIGHT * 3


def _read_all(path, width=WIDTH, height=HEIGHT):
    with KlgReader(path) as reader:
        records = reader.scan()
        frames = [reader.read_frame(r, width, height) for r in records]
        return reader.frame_count, records, frames


def test_two_frame_example(dataset, tmp_path):
    rgb_dir, depth_dir = dataset
    out = tmp_path / "out.klg"

    summary = ImagesToKlgPipeline(rgb_dir, depth_dir, out, {'depth_scale': 0.001, 'fps': 24.0}).run()

    assert out.stat().st_size == 4 + 2 * FRAME_SIZE
    assert summary['frame_count'] == 2
    assert summary['bytes_written'] == out.stat().st_size
    assert (summary['width'], summary['height']) == (WIDTH, HEIGHT)

    frame_count, records, frames = _read_all(out)
    assert frame_count == 2 == len(records)
    assert [r.timestamp for r in records] == [0, 41666]
    for i, (depth, color) in enumerate(frames):
        np.testing.assert_array_equal(depth, make_depth(i))
        np.testing.assert_array_equal(color, make_color(i))


def test_default_scale_multiplies_by_thousand(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path, 1)
    out = tmp_path / "out.klg"
    ImagesToKlgPipeline(rgb_dir, depth_dir, out).run()

    _, _, frames = _read_all(out)
    expected = np.clip(make_depth(0).astype(np.int64) * 1000, 0, 65535)
    np.testing.assert_array_equal(frames[0][0], expected)


def test_external_timestamps(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path, 3)
    timestamps = tmp_path / "rgb.txt"
    timestamps.write_text("# timestamp filename\n1.5 rgb/a.png\n1.75 rgb/b.png\n2.0 rgb/c.png\n")
    out = tmp_path / "out.klg"

    summary = ImagesToKlgPipeline(
        rgb_dir, depth_dir, out,
        {'timestamps': str(timestamps), 'depth_scale': 0.001}
    ).run()

    assert summary['timestamp_mode'] == 'external'
    _, records, _ = _read_all(out)
    assert [r.timestamp for r in records] == [1_500_000, 1_750_000, 2_000_000]


def test_mismatched_inputs_write_nothing(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path, 5, 4)
    out = tmp_path / "out.klg"
    with pytest.raises(InputMismatchError):
        ImagesToKlgPipeline(rgb_dir, depth_dir, out).run()
    assert not out.exists()


def test_existing_output_unmodified(dataset, tmp_path):
    rgb_dir, depth_dir = dataset
    out = tmp_path / "out.klg"
    out.write_bytes(b"original contents")
    with pytest.raises(OutputExistsError):
        ImagesToKlgPipeline(rgb_dir, depth_dir, out).run()
    assert out.read_bytes() == b"original contents"


def test_bad_frame_aborts_without_output(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path, 3)
    (depth_dir / "000001.png").write_bytes(b"broken")
    out = tmp_path / "out.klg"

    with pytest.raises(DecodeError) as excinfo:
        ImagesToKlgPipeline(rgb_dir, depth_dir, out, {'depth_scale': 0.001}).run()

    assert excinfo.value.index == 1
    assert not out.exists()
    assert not list(tmp_path.glob(".out.klg.*"))


def test_unknown_config_key(dataset, tmp_path):
    rgb_dir, depth_dir = dataset
    with pytest.raises(ArgumentError):
        ImagesToKlgPipeline(rgb_dir, depth_dir, tmp_path / "out.klg", {'colour': 'rgb'})


def test_parallel_decoding_keeps_order(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path / "data", 7)
    sequential = tmp_path / "sequential.klg"
    parallel = tmp_path / "parallel.klg"

    ImagesToKlgPipeline(rgb_dir, depth_dir, sequential, {'depth_scale': 0.001}).run()
    ImagesToKlgPipeline(rgb_dir, depth_dir, parallel, {'depth_scale': 0.001, 'workers': 3}).run()

    assert parallel.read_bytes() == sequential.read_bytes()


def test_parallel_decoding_propagates_errors(tmp_path):
    rgb_dir, depth_dir = write_dataset(tmp_path, 6)
    (rgb_dir / "000004.png").write_bytes(b"broken")
    out = tmp_path / "out.klg"

    with pytest.raises(DecodeError):
        ImagesToKlgPipeline(rgb_dir, depth_dir, out, {'workers': 2}).run()
    assert not out.exists()


def test_progress_callback(dataset, tmp_path):
    rgb_dir, depth_dir = dataset
    fractions = []
    ImagesToKlgPipeline(
        rgb_dir, depth_dir, tmp_path / "out.klg",
        progress=CallbackProgress(fractions.append)
    ).run()
    assert fractions == pytest.approx([0.0, 1.0 / 3])


def test_verify_and_sidecars(dataset, tmp_path):
    rgb_dir, depth_dir = dataset
    out = tmp_path / "out.klg"
    index_csv = tmp_path / "frames.csv"
    summary_json = tmp_path / "summary.json"

    ImagesToKlgPipeline(rgb_dir, depth_dir, out, {
        'verify_output': True,
        'frame_index_csv': str(index_csv),
        'summary_json': str(summary_json),
    }).run()

    frame_index = load_frame_index(str(index_csv))
    assert frame_index['timestamp_us'].tolist() == [0, 41666]
    assert frame_index['offset'].tolist() == [4, 4 + FRAME_SIZE]
    assert frame_index['rgb_file'].tolist() == ["000000.png", "000001.png"]

    summary = json.loads(summary_json.read_text())
    assert summary['frame_count'] == 2
    assert summary['output_path'] == str(out)
    assert summary['timestamp_mode'] == 'synthesized'
