"""
Configuration management utilities.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from omegaconf import OmegaConf

from ..exceptions import ConfigError


PACKAGE_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

KNOWN_RULE_LABELS = ("thermometer", "circle", "heart", "v_sign")
KNOWN_SOURCES = ("rules", "templates")


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_dir: Union[str, Path] = PACKAGE_CONFIG_DIR):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir)
        self._configs = {}

    def load_config(self, config_name: str) -> Dict[str, Any]:
        """
        Load a configuration file.

        Args:
            config_name: Name of the configuration file (without .yaml extension)

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            yaml.YAMLError: If configuration file is invalid
        """
        config_path = self.config_dir / f"{config_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config = self._read_yaml(config_path)
        self._configs[config_name] = config

        return config

    def get_config(self, config_name: str) -> Dict[str, Any]:
        """
        Get a previously loaded configuration.

        Raises:
            KeyError: If configuration hasn't been loaded
        """
        if config_name not in self._configs:
            raise KeyError(f"Configuration '{config_name}' not loaded. Call load_config() first.")

        return self._configs[config_name]

    def save_config(self, config: Dict[str, Any], config_name: str) -> None:
        """
        Save a configuration to file.

        Args:
            config: Configuration dictionary
            config_name: Name for the configuration file
        """
        config_path = self.config_dir / f"{config_name}.yaml"
        if OmegaConf.is_config(config):
            config = OmegaConf.to_container(config, resolve=True)

        with open(config_path, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2)

    def validate_config(self, config: Dict[str, Any], schema: Dict[str, Any]) -> bool:
        """
        Check that every key of ``schema`` is present in ``config``.

        Nested dictionaries are checked recursively.

        Returns:
            True if valid, False otherwise
        """
        for key, value in schema.items():
            if key not in config:
                return False

            if isinstance(value, dict) and isinstance(config[key], dict):
                if not self.validate_config(config[key], value):
                    return False

        return True

    def get_default_config(self, config_type: str = "detection") -> Dict[str, Any]:
        """
        Get the packaged default configuration for a specific type.

        Args:
            config_type: Type of configuration (currently only "detection")

        Returns:
            Default configuration as a plain dictionary
        """
        config_path = PACKAGE_CONFIG_DIR / f"{config_type}.yaml"
        if not config_path.exists():
            return {}

        return OmegaConf.to_container(self._read_yaml(config_path), resolve=True)

    def build_detection_config(
        self,
        overrides: Optional[Union[Dict[str, Any], str, Path]] = None
    ) -> Dict[str, Any]:
        """
        Build a validated detection configuration.

        Args:
            overrides: Partial configuration (dict) or path to a YAML file whose
                values take precedence over the packaged defaults

        Returns:
            Merged configuration as a plain dictionary

        Raises:
            ConfigError: If the merged configuration is invalid
        """
        defaults = self.get_default_config("detection")
        merged = OmegaConf.create(defaults)

        if overrides is not None:
            if isinstance(overrides, (str, Path)):
                override_conf = self._read_yaml(Path(overrides))
            else:
                override_conf = OmegaConf.create(overrides)
            merged = OmegaConf.merge(merged, override_conf)

        config = OmegaConf.to_container(merged, resolve=True)

        if not self.validate_config(config, defaults):
            raise ConfigError("Detection configuration is missing required sections")

        validate_detection_config(config)
        return config

    @staticmethod
    def _read_yaml(config_path: Path):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {config_path}: {e}")

        # Use OmegaConf for merging and interpolation
        return OmegaConf.create(config)


def validate_detection_config(config: Dict[str, Any]) -> None:
    """
    Validate the invariants of a detection configuration.

    Raises:
        ConfigError: On the first violated invariant
    """
    input_cfg = config['input']
    if input_cfg['coordinate_space'] not in ("normalized", "pixel"):
        raise ConfigError(
            f"input.coordinate_space must be 'normalized' or 'pixel', "
            f"got {input_cfg['coordinate_space']!r}"
        )
    if input_cfg['frame_width'] <= 0 or input_cfg['frame_height'] <= 0:
        raise ConfigError("input.frame_width and input.frame_height must be positive")

    rules = config['rules']
    unknown = set(rules['priority']) - set(KNOWN_RULE_LABELS)
    if unknown:
        raise ConfigError(f"Unknown rule gestures in rules.priority: {sorted(unknown)}")
    for label, threshold in rules['acceptance'].items():
        if not 0.0 <= threshold <= 1.0:
            raise ConfigError(f"rules.acceptance.{label} must be within [0, 1]")

    templates = config['templates']
    if templates['distance_scale'] <= 0:
        raise ConfigError("templates.distance_scale must be positive")
    if not 0.0 <= templates['acceptance_threshold'] <= 1.0:
        raise ConfigError("templates.acceptance_threshold must be within [0, 1]")

    order = config['classification']['order']
    if not order or set(order) - set(KNOWN_SOURCES):
        raise ConfigError(f"classification.order must only name {list(KNOWN_SOURCES)}")

    voting = config['voting']
    if voting['window_size'] < 1:
        raise ConfigError("voting.window_size must be at least 1")
    if not 1 <= voting['min_votes'] <= voting['window_size']:
        raise ConfigError(
            f"voting.min_votes must be between 1 and window_size "
            f"({voting['window_size']}), got {voting['min_votes']}"
        )
    if voting['cooldown_ms'] < 0:
        raise ConfigError("voting.cooldown_ms must not be negative")

    session = config['session']
    if session['timeout_ms'] is not None and session['timeout_ms'] <= 0:
        raise ConfigError("session.timeout_ms must be positive or null")
    reset = session['auto_reset_empty_frames']
    if reset is not None and reset < 0:
        raise ConfigError("session.auto_reset_empty_frames must be non-negative or null")
