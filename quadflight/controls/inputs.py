"""
Input sources for the control engine.

Keys are identified by logical codes (``"KeyW"``, ``"ArrowUp"``, ``"Digit1"``)
so the engine is independent of any windowing toolkit; front-ends translate
their native key symbols into these codes.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Tuple

# Logical key codes used by the default keyboard layout
KEY_YAW_LEFT = "KeyA"
KEY_YAW_RIGHT = "KeyD"
KEY_PITCH_UP = "ArrowRight"
KEY_PITCH_DOWN = "ArrowLeft"
KEY_ROLL_UP = "ArrowUp"
KEY_ROLL_DOWN = "ArrowDown"
KEY_THROTTLE_UP = "KeyW"
KEY_THROTTLE_DOWN = "KeyX"
MOTOR_KEYS = ("Digit1", "Digit2", "Digit3", "Digit4")

logger = logging.getLogger(__name__)


class InputSource(Enum):
    """Which device drives the channels this tick."""
    GAMEPAD = "gamepad"
    KEYBOARD = "keyboard"


class KeyboardState:
    """Edge-driven pressed/released state keyed by logical key code."""

    def __init__(self):
        self._pressed: Dict[str, bool] = {}

    def key_down(self, code: str) -> None:
        self._pressed[code] = True

    def key_up(self, code: str) -> None:
        self._pressed[code] = False

    def is_pressed(self, code: str) -> bool:
        return self._pressed.get(code, False)

    def any_pressed(self, codes: Iterable[str]) -> bool:
        return any(self.is_pressed(code) for code in codes)

    def clear(self) -> None:
        self._pressed.clear()


class Gamepad:
    """
    Gamepad abstraction: a connection flag and four normalized axes
    ordered (roll, pitch, yaw, raw throttle), each in [-1, 1].
    """

    connected: bool = False

    def poll(self) -> None:
        """Refresh device state; called once per tick before axes are read."""

    def get_axes(self) -> Sequence[float]:
        return (0.0, 0.0, 0.0, -1.0)


class VirtualGamepad(Gamepad):
    """Gamepad whose axes are set programmatically (scripts, tests, replays)."""

    def __init__(self, axes: Sequence[float] = (0.0, 0.0, 0.0, -1.0), connected: bool = True):
        self.connected = connected
        self.axes: Tuple[float, ...] = tuple(axes)

    def set_axes(self, roll: float, pitch: float, yaw: float, throttle_raw: float) -> None:
        self.axes = (roll, pitch, yaw, throttle_raw)

    def get_axes(self) -> Sequence[float]:
        return self.axes


def select_input_source(gamepad: Optional[Gamepad]) -> InputSource:
    """Gamepad when one is connected, keyboard otherwise."""
    if gamepad is not None and gamepad.connected:
        return InputSource.GAMEPAD
    return InputSource.KEYBOARD


class ControllerGamepad(Gamepad):
    """
    Gamepad backed by a controller device that can come and go.

    The device needs ``open()``, ``close()`` and stick attributes ``leftx``,
    ``lefty``, ``rightx`` and ``righty``. Mode-2 layout: right stick is roll
    (x) and pitch (y), left stick x is yaw and left stick y is the raw
    throttle axis. ``on_connect``/``on_disconnect`` track hot-plugging;
    ``poll`` picks up a device from ``available_controllers`` while none is
    attached.
    """

    def __init__(self):
        self.controller = None
        self.connected = False

    def available_controllers(self) -> Sequence:
        return ()

    def open_device(self, controller) -> bool:
        controller.open()
        return True

    def on_connect(self, controller) -> None:
        if self.controller is not None:
            return
        if self.open_device(controller):
            self.controller = controller
            self.connected = True
            logger.info(f"Gamepad connected: {getattr(controller, 'name', controller)}")

    def on_disconnect(self, controller) -> None:
        if controller is not self.controller:
            return
        self.controller = None
        self.connected = False
        logger.info("Gamepad disconnected; keyboard control resumed")

    def poll(self) -> None:
        if self.controller is None:
            for controller in self.available_controllers():
                self.on_connect(controller)
                if self.controller is not None:
                    break
        self.connected = self.controller is not None

    def get_axes(self) -> Sequence[float]:
        c = self.controller
        if c is None:
            return super().get_axes()
        return (float(c.rightx), float(c.righty), float(c.leftx), float(c.lefty))

    def close(self) -> None:
        if self.controller is not None:
            self.controller.close()
        self.controller = None
        self.connected = False
