"""
Tests for configuration loading, environment overrides and the command line
entry point.
"""

import logging

import pytest
import yaml

from quadflight.config import (
    ControlSettings,
    PhysicsSettings,
    SimulationConfig,
    load_config,
    save_config,
    setup_logging,
)
from quadflight.interface import app
from quadflight.physics.settings import ControlMode
from quadflight.simulation import FlightSimulation


class TestDefaults:
    """Default configuration values."""

    def test_defaults(self):
        config = SimulationConfig()
        assert config.flight.mass == 0.25
        assert config.flight.control_mode is ControlMode.UNIFIED
        assert config.controls == ControlSettings()
        assert config.physics.gravity == (0.0, -9.81, 0.0)
        assert config.physics.max_sub_steps == 10
        assert config.log_level == "INFO"

    def test_no_path_gives_defaults(self):
        assert load_config(None) == SimulationConfig()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == SimulationConfig()


class TestYamlLoading:
    """Partial YAML files override the defaults."""

    def test_partial_override(self, tmp_path):
        path = tmp_path / "flight.yaml"
        path.write_text(yaml.safe_dump({
            "log_level": "DEBUG",
            "flight": {"control_mode": "per_motor", "max_thrust": 1.2},
            "controls": {"control_rate": 0.2},
            "physics": {"max_sub_steps": 5, "gravity": [0, -3.7, 0]},
        }))

        config = load_config(path)
        assert config.log_level == "DEBUG"
        assert config.flight.control_mode is ControlMode.PER_MOTOR
        assert config.flight.max_thrust == 1.2
        assert config.flight.mass == 0.25
        assert config.controls.control_rate == 0.2
        assert config.controls.centering_rate == 0.005
        assert config.physics.max_sub_steps == 5
        assert config.physics.gravity == (0.0, -3.7, 0.0)

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("controls:\n  joystick_deadzone: 0.1\n")
        assert load_config(path).controls == ControlSettings()

    def test_malformed_yaml(self, tmp_path, caplog):
        path = tmp_path / "broken.yaml"
        path.write_text("flight: [unclosed\n")
        with caplog.at_level(logging.WARNING):
            config = load_config(path)
        assert config == SimulationConfig()
        assert "Failed to load config" in caplog.text

    def test_non_mapping(self, tmp_path, caplog):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with caplog.at_level(logging.WARNING):
            assert load_config(path) == SimulationConfig()
        assert "must contain a mapping" in caplog.text

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "heavy.yaml"
        path.write_text("flight:\n  mass: -1\n")
        with pytest.raises(ValueError):
            load_config(path)

    @pytest.mark.parametrize("text", [
        "flight: null\n",
        "controls: 3\n",
        "physics: {gravity: 5}\n",
        "physics: {initial_position: [0, 1]}\n",
    ])
    def test_malformed_section_raises_value_error(self, tmp_path, text):
        """Wrong section or vector shapes surface as ValueError."""
        path = tmp_path / "shape.yaml"
        path.write_text(text)
        with pytest.raises(ValueError):
            load_config(path)

    def test_saved_file_loads_back(self, tmp_path):
        config = SimulationConfig(controls=ControlSettings(control_rate=0.1),
                                  physics=PhysicsSettings(ground_height=None))
        path = tmp_path / "nested" / "saved.yaml"
        save_config(config, path)
        assert load_config(path) == config


class TestEnvironment:
    """Environment variable overrides."""

    def test_env_overrides(self):
        config = SimulationConfig().apply_env({
            "QUADFLIGHT_LOG_LEVEL": "WARNING",
            "QUADFLIGHT_CONTROL_MODE": "PER_MOTOR",
        })
        assert config.log_level == "WARNING"
        assert config.flight.control_mode is ControlMode.PER_MOTOR

    def test_empty_env_is_noop(self):
        assert SimulationConfig().apply_env({}) == SimulationConfig()

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")


class TestCommandLine:
    """Headless runs through the entry point."""

    def test_headless_run(self, capsys):
        sim = FlightSimulation.with_reference_world()
        assert app.run_headless(sim, 1.0, script="hover") == 60
        out = capsys.readouterr().out
        assert "Running headless" in out
        assert "pos=" in out

    def test_main_headless(self, capsys):
        app.main(["--headless", "0.5", "--mode", "per_motor", "--log-level", "WARNING"])
        out = capsys.readouterr().out
        assert "mode=per_motor" in out

    def test_bad_log_level_exits(self):
        with pytest.raises(SystemExit):
            app.main(["--headless", "0.1", "--log-level", "LOUD"])

    def test_malformed_config_exits(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("physics: {gravity: 5}\n")
        with pytest.raises(SystemExit) as exc_info:
            app.main(["--config", str(path), "--headless", "0.1"])
        assert exc_info.value.code == 1
        assert "gravity" in capsys.readouterr().out
