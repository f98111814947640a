import pytest

from images_to_klg.config import DEFAULT_CONFIG, load_config, merge_config
from images_to_klg.exceptions import ArgumentError


def test_merge_uses_defaults_and_ignores_none():
    config = merge_config({'fps': None, 'workers': 3})
    assert config['fps'] == DEFAULT_CONFIG['fps']
    assert config['workers'] == 3


def test_merge_coerces_numeric_values():
    config = merge_config({'fps': "30", 'workers': "4", 'depth_scale': 1, 'timestamp_scale': "0.001"})
    assert config['fps'] == 30.0 and isinstance(config['fps'], float)
    assert config['workers'] == 4 and isinstance(config['workers'], int)
    assert config['depth_scale'] == 1.0 and isinstance(config['depth_scale'], float)
    assert config['timestamp_scale'] == 0.001


@pytest.mark.parametrize("key, value", [
    ('fps', "fast"),
    ('fps', float('nan')),
    ('depth_scale', float('inf')),
    ('workers', 2.5),
    ('workers', True),
    ('timestamp_scale', [1.0]),
])
def test_merge_rejects_wrong_types(key, value):
    with pytest.raises(ArgumentError):
        merge_config({key: value})


def test_merge_rejects_unknown_keys():
    with pytest.raises(ArgumentError, match="colour"):
        merge_config({'colour': 'rgb'})


def test_load_config_resolves_relative_paths(tmp_path):
    config_dir = tmp_path / "dataset"
    config_dir.mkdir()
    path = config_dir / "config.yaml"
    path.write_text(
        "timestamps: rgb.txt\n"
        "frame_index_csv: out/frames.csv\n"
        "summary_json: {}\n"
        "fps: 30\n".format(tmp_path / "summary.json")
    )

    config = load_config(str(path))
    assert config['timestamps'] == str(config_dir / "rgb.txt")
    assert config['frame_index_csv'] == str(config_dir / "out" / "frames.csv")
    assert config['summary_json'] == str(tmp_path / "summary.json")
    assert config['fps'] == 30


def test_load_config_errors(tmp_path):
    with pytest.raises(ArgumentError):
        load_config(str(tmp_path / "missing.yaml"))

    path = tmp_path / "list.yaml"
    path.write_text("- fps\n")
    with pytest.raises(ArgumentError):
        load_config(str(path))
