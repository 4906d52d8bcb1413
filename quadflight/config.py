"""
Configuration management for the quadflight simulator.

Settings live in dataclasses with documented defaults. A YAML file may
override any subset of them; environment variables override the file.

Example YAML::

    log_level: DEBUG
    flight:
      control_mode: per_motor
      max_thrust: 1.2
    controls:
      control_rate: 0.2
    physics:
      max_sub_steps: 5
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .physics.settings import ControlMode, FlightDynamicsSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class ControlSettings:
    """Control channel engine parameters."""
    control_rate: float = 0.4            # Keyboard step per tick
    centering_rate: float = 0.005        # Return-to-centre step per tick
    initial_throttle: float = 0.5
    initial_motor_thrust: float = 0.6125  # Hover trim
    register_default_scripts: bool = True


@dataclass
class PhysicsSettings:
    """Reference physics world parameters (Y is up)."""
    gravity: Tuple[float, float, float] = (0.0, -9.81, 0.0)
    fixed_time_step: float = 1 / 60
    max_sub_steps: int = 10
    ground_height: Optional[float] = 0.0
    linear_damping: float = 0.7
    angular_damping: float = 0.7
    drone_half_extents: Tuple[float, float, float] = (0.5, 0.1, 0.5)
    initial_position: Tuple[float, float, float] = (0.0, 1.0, 0.0)

    def __post_init__(self):
        self.gravity = _vector3("gravity", self.gravity)
        self.drone_half_extents = _vector3("drone_half_extents", self.drone_half_extents)
        self.initial_position = _vector3("initial_position", self.initial_position)


@dataclass
class SimulationConfig:
    """Complete simulator configuration."""
    flight: FlightDynamicsSettings = field(default_factory=FlightDynamicsSettings)
    controls: ControlSettings = field(default_factory=ControlSettings)
    physics: PhysicsSettings = field(default_factory=PhysicsSettings)
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        physics = asdict(self.physics)
        for key in ("gravity", "drone_half_extents", "initial_position"):
            physics[key] = list(physics[key])
        return {
            "flight": self.flight.to_dict(),
            "controls": asdict(self.controls),
            "physics": physics,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        """Build a configuration from a (partial) dictionary over the defaults."""
        merged = cls().to_dict()
        _deep_update(merged, data or {})
        for section in ("flight", "controls", "physics"):
            if not isinstance(merged[section], dict):
                raise ValueError(f"Config section '{section}' must be a mapping, "
                                 f"got {type(merged[section]).__name__}")
        try:
            return cls(
                flight=FlightDynamicsSettings.from_dict(merged["flight"]),
                controls=ControlSettings(**_known(ControlSettings, merged["controls"])),
                physics=PhysicsSettings(**_known(PhysicsSettings, merged["physics"])),
                log_level=str(merged.get("log_level", "INFO")),
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration value: {e}") from e

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "SimulationConfig":
        """
        Apply environment variable overrides in place.

        Environment variables:
        - QUADFLIGHT_LOG_LEVEL: Logging level name
        - QUADFLIGHT_CONTROL_MODE: ``unified`` or ``per_motor``
        """
        environ = os.environ if environ is None else environ
        if environ.get("QUADFLIGHT_LOG_LEVEL"):
            self.log_level = environ["QUADFLIGHT_LOG_LEVEL"]
        if environ.get("QUADFLIGHT_CONTROL_MODE"):
            self.flight = self.flight.with_mode(ControlMode(environ["QUADFLIGHT_CONTROL_MODE"].lower()))
        return self


def _vector3(name: str, value) -> Tuple[float, float, float]:
    """Coerce a three-component sequence to a float tuple."""
    if isinstance(value, (str, bytes)) or not hasattr(value, "__len__") or len(value) != 3:
        raise ValueError(f"{name} must have three components: {value!r}")
    return tuple(float(v) for v in value)


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}


def _deep_update(base: Dict[str, Any], update: Dict[str, Any]) -> None:
    """Recursively update nested dictionaries."""
    for key, value in update.items():
        if isinstance(value, dict) and key in base and isinstance(base[key], dict):
            _deep_update(base[key], value)
        else:
            base[key] = value


def load_config(path: Optional[Union[str, Path]] = None) -> SimulationConfig:
    """
    Load configuration from a YAML file.

    A missing path or file gives the defaults; an unreadable or malformed
    file is logged and also gives the defaults.
    """
    if path is None:
        return SimulationConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info(f"Config file {config_path} not found, using defaults")
        return SimulationConfig()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        return SimulationConfig()

    if data is None:
        return SimulationConfig()
    if not isinstance(data, dict):
        logger.warning(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")
        return SimulationConfig()

    return SimulationConfig.from_dict(data)


def save_config(config: SimulationConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    save_path = Path(path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    with open(save_path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, indent=2)


def setup_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """Configure root logging with a console handler and an optional file handler."""
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    handlers = [logging.StreamHandler()]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, handlers=handlers, force=True)
