"""
Tests for configuration loading and validation.
"""

import pytest
import yaml

from hand_sign_detection.exceptions import ConfigError
from hand_sign_detection.utils.config import ConfigManager


@pytest.fixture
def manager():
    return ConfigManager()


def test_packaged_defaults(manager):
    config = manager.build_detection_config()

    assert config["input"]["coordinate_space"] == "normalized"
    assert set(config["input"]) == {"coordinate_space", "frame_width", "frame_height"}
    assert config["rules"]["priority"] == ["thermometer", "circle", "heart", "v_sign"]
    assert config["rules"]["acceptance"]["thermometer"] == 0.80
    assert config["templates"]["distance_scale"] == 50.0
    assert config["templates"]["acceptance_threshold"] == 0.72
    assert config["voting"] == {"window_size": 5, "min_votes": 3, "cooldown_ms": 1500, "retain_on_cooldown": False}
    assert config["session"]["timeout_ms"] is None
    assert config["session"]["auto_reset_empty_frames"] == 15


def test_dict_overrides_are_merged(manager):
    config = manager.build_detection_config({"voting": {"window_size": 3, "min_votes": 2}})

    assert config["voting"]["window_size"] == 3
    assert config["voting"]["min_votes"] == 2
    assert config["voting"]["cooldown_ms"] == 1500


def test_yaml_overrides(manager, tmp_path):
    path = tmp_path / "override.yaml"
    path.write_text(yaml.safe_dump({"session": {"timeout_ms": 15000}, "rules": {"acceptance": {"circle": 0.5}}}))

    config = manager.build_detection_config(path)

    assert config["session"]["timeout_ms"] == 15000
    assert config["rules"]["acceptance"]["circle"] == 0.5
    assert config["rules"]["acceptance"]["heart"] == 0.70


@pytest.mark.parametrize("overrides", [
    {"voting": {"window_size": 3, "min_votes": 4}},
    {"voting": {"min_votes": 0}},
    {"voting": {"cooldown_ms": -1}},
    {"input": {"coordinate_space": "inches"}},
    {"rules": {"priority": ["thermometer", "wave"]}},
    {"rules": {"acceptance": {"v_sign": 1.5}}},
    {"templates": {"distance_scale": 0}},
    {"classification": {"order": ["gut_feeling"]}},
    {"session": {"timeout_ms": 0}},
    {"session": {"auto_reset_empty_frames": -1}},
])
def test_invalid_values_are_rejected(manager, overrides):
    with pytest.raises(ConfigError):
        manager.build_detection_config(overrides)


def test_auto_reset_can_be_disabled(manager):
    config = manager.build_detection_config({"session": {"auto_reset_empty_frames": None}})

    assert config["session"]["auto_reset_empty_frames"] is None


def test_load_save_round_trip(tmp_path):
    manager = ConfigManager(config_dir=tmp_path)
    manager.save_config({"voting": {"window_size": 7}}, "custom")

    assert manager.load_config("custom")["voting"]["window_size"] == 7
    assert manager.get_config("custom")["voting"]["window_size"] == 7


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(config_dir=tmp_path).load_config("absent")


def test_get_config_before_load(manager):
    with pytest.raises(KeyError):
        manager.get_config("detection")


def test_validate_config_checks_nested_keys(manager):
    schema = {"voting": {"window_size": None, "min_votes": None}}

    assert manager.validate_config({"voting": {"window_size": 5, "min_votes": 3}}, schema)
    assert not manager.validate_config({"voting": {"window_size": 5}}, schema)
