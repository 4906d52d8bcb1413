"""
Control channel engine.

Translates raw input into normalized control channels once per tick:

- Gamepad (when connected): axes written straight into the channels
- Keyboard: fixed-rate nudges per held key, motor thrusts decaying whenever
  their key is up, and unused axes drifting back to centre
- Scripts: timed mutations running concurrently on top of either source
"""

import logging
from typing import Callable, Dict, Optional, Sequence

from ..utils.maths import move_towards
from . import inputs as keys
from .channels import ControlChannels, ControlInputs, ControlState, MotorThrustSet
from .inputs import Gamepad, InputSource, KeyboardState, select_input_source
from .scripts import DEFAULT_BINDINGS, ActiveScriptInstance, ScriptTimeline, default_scripts

logger = logging.getLogger(__name__)


class ControlChannelEngine:
    """
    Owns the channel and motor-thrust state of one drone.

    Call ``update`` once per tick, then read ``get_control_inputs``.
    """

    def __init__(self,
                 keyboard: Optional[KeyboardState] = None,
                 gamepad: Optional[Gamepad] = None,
                 clock: Optional[Callable[[], float]] = None,
                 control_rate: float = 0.4,
                 centering_rate: float = 0.005,
                 initial_throttle: float = 0.5,
                 initial_motor_thrust: float = 0.6125,
                 register_default_scripts: bool = True):
        """
        Args:
            keyboard: Key edge-state source (a private one is created if omitted)
            gamepad: Optional gamepad; used whenever it reports connected
            clock: Millisecond clock for script timing
            control_rate: Keyboard step per tick for channels and motors
            centering_rate: Step per tick towards centre for unused axes
            initial_throttle: Throttle at start-up
            initial_motor_thrust: Every motor's thrust at start-up (hover trim)
            register_default_scripts: Register and bind the built-in scripts
        """
        self.keyboard = keyboard if keyboard is not None else KeyboardState()
        self.gamepad = gamepad
        self.control_rate = control_rate
        self.centering_rate = centering_rate

        self.state = ControlState(
            channels=ControlChannels(throttle=initial_throttle),
            motors=MotorThrustSet(*([initial_motor_thrust] * 4)),
        )
        self.state.enforce_bounds()
        self.timeline = ScriptTimeline(clock)
        self.input_source = InputSource.KEYBOARD

        if register_default_scripts:
            self.register_default_scripts()

    @property
    def channels(self) -> ControlChannels:
        return self.state.channels

    @property
    def motor_thrusts(self) -> MotorThrustSet:
        return self.state.motors

    # =========================================================================
    # Key events
    # =========================================================================

    def on_key_down(self, code: str) -> Optional[ActiveScriptInstance]:
        """A bound key starts its script and is not recorded as held."""
        script_id = self.timeline.script_for_key(code)
        if script_id is not None:
            return self.timeline.start(script_id)
        self.keyboard.key_down(code)
        return None

    def on_key_up(self, code: str) -> None:
        if self.timeline.script_for_key(code) is None:
            self.keyboard.key_up(code)

    # =========================================================================
    # Per tick
    # =========================================================================

    def update(self, dt: float = 0.0) -> ControlInputs:
        """
        Refresh channels from the active input source, then run scripts.

        Args:
            dt: Seconds since the last tick. Keyboard steps are per tick and
                scripts use the wall clock, so this is informational only.
        """
        if self.gamepad is not None:
            self.gamepad.poll()
        self.input_source = select_input_source(self.gamepad)

        if self.input_source is InputSource.GAMEPAD:
            self._update_from_gamepad(self.gamepad.get_axes())
        else:
            self._update_from_keyboard()

        self.timeline.update(self.state)
        self.state.enforce_bounds()
        return self.get_control_inputs()

    def _update_from_gamepad(self, axes: Sequence[float]) -> None:
        # set() clamps and maps NaN to centre (zero throttle)
        channels = self.state.channels
        channels.set("roll", axes[0])
        channels.set("pitch", axes[1])
        channels.set("yaw", axes[2])
        channels.set("throttle", (axes[3] + 1.0) / 2.0)

    def _update_from_keyboard(self) -> None:
        kb = self.keyboard
        channels = self.state.channels
        rate = self.control_rate

        if kb.is_pressed(keys.KEY_YAW_LEFT):
            channels.adjust("yaw", -rate)
        if kb.is_pressed(keys.KEY_YAW_RIGHT):
            channels.adjust("yaw", rate)
        if kb.is_pressed(keys.KEY_PITCH_UP):
            channels.adjust("pitch", rate)
        if kb.is_pressed(keys.KEY_PITCH_DOWN):
            channels.adjust("pitch", -rate)
        if kb.is_pressed(keys.KEY_ROLL_DOWN):
            channels.adjust("roll", -rate)
        if kb.is_pressed(keys.KEY_ROLL_UP):
            channels.adjust("roll", rate)
        if kb.is_pressed(keys.KEY_THROTTLE_UP):
            channels.adjust("throttle", rate)
        if kb.is_pressed(keys.KEY_THROTTLE_DOWN):
            channels.adjust("throttle", -rate)

        # A released motor key actively bleeds thrust off that motor
        for index, code in enumerate(keys.MOTOR_KEYS, start=1):
            delta = rate if kb.is_pressed(code) else -rate
            self.state.motors.adjust(f"motor{index}", delta)

        self._center_unused_controls()

    def _center_unused_controls(self) -> None:
        kb = self.keyboard
        channels = self.state.channels
        step = self.centering_rate

        if not kb.any_pressed((keys.KEY_YAW_LEFT, keys.KEY_YAW_RIGHT)):
            channels.yaw = move_towards(channels.yaw, 0.0, step)
        if not kb.any_pressed((keys.KEY_PITCH_UP, keys.KEY_PITCH_DOWN)):
            channels.pitch = move_towards(channels.pitch, 0.0, step)
        if not kb.any_pressed((keys.KEY_ROLL_UP, keys.KEY_ROLL_DOWN)):
            channels.roll = move_towards(channels.roll, 0.0, step)
        # Throttle settles at zero, not at its start-up value
        if not kb.any_pressed((keys.KEY_THROTTLE_UP, keys.KEY_THROTTLE_DOWN)):
            channels.throttle = move_towards(channels.throttle, 0.0, step)

    def get_control_inputs(self) -> ControlInputs:
        """Immutable snapshot of the current channels and motor thrusts."""
        return self.state.snapshot()

    # =========================================================================
    # Scripts
    # =========================================================================

    def register_script(self, script_id: str, actions) -> bool:
        return self.timeline.register(script_id, actions)

    def bind_key_to_script(self, key_code: str, script_id: str) -> bool:
        return self.timeline.bind(key_code, script_id)

    def execute_script(self, script_id: str) -> Optional[ActiveScriptInstance]:
        return self.timeline.start(script_id)

    def clear_active_scripts(self) -> int:
        return self.timeline.clear_active()

    @property
    def active_scripts(self):
        return tuple(self.timeline.active)

    def register_default_scripts(self, bindings: Optional[Dict[str, str]] = None) -> None:
        """Register the built-in scripts and bind them to their keys."""
        for script_id, actions in default_scripts().items():
            self.register_script(script_id, actions)
        for key_code, script_id in (bindings or DEFAULT_BINDINGS).items():
            self.bind_key_to_script(key_code, script_id)
