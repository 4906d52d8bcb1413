"""pyglet adapters feeding the control channel engine."""

import logging
from typing import Dict, Optional, Sequence

import pyglet
from pyglet.input.base import DeviceException
from pyglet.window import key

from ..controls.engine import ControlChannelEngine
from ..controls.inputs import ControllerGamepad

logger = logging.getLogger(__name__)

# pyglet key symbol -> logical key code
KEY_CODES: Dict[int, str] = {
    key.W: "KeyW",
    key.A: "KeyA",
    key.S: "KeyS",
    key.D: "KeyD",
    key.X: "KeyX",
    key.Y: "KeyY",
    key.UP: "ArrowUp",
    key.DOWN: "ArrowDown",
    key.LEFT: "ArrowLeft",
    key.RIGHT: "ArrowRight",
    key._1: "Digit1",
    key._2: "Digit2",
    key._3: "Digit3",
    key._4: "Digit4",
}


def key_code(symbol: int) -> Optional[str]:
    return KEY_CODES.get(symbol)


class PygletKeyboard:
    """Forwards window key presses and releases to the engine as logical codes."""

    def __init__(self, engine: ControlChannelEngine):
        self.engine = engine

    def attach(self, window) -> None:
        """Install key handlers on a pyglet window."""

        @window.event
        def on_key_press(symbol, modifiers):
            self.on_key_press(symbol, modifiers)

        @window.event
        def on_key_release(symbol, modifiers):
            self.on_key_release(symbol, modifiers)

        @window.event
        def on_deactivate():
            # Key releases are not delivered while unfocused
            self.engine.keyboard.clear()

    def on_key_press(self, symbol: int, modifiers: int) -> None:
        code = key_code(symbol)
        if code is None:
            return
        instance = self.engine.on_key_down(code)
        if instance is not None:
            logger.debug(f"Key {code} started script \"{instance.script_id}\"")

    def on_key_release(self, symbol: int, modifiers: int) -> None:
        code = key_code(symbol)
        if code is not None:
            self.engine.on_key_up(code)


class PygletGamepad(ControllerGamepad):
    """
    Game controller reported by pyglet, tracked across hot-plug events.

    Connection changes arrive through the ``ControllerManager`` events while
    the pyglet event loop runs; ``poll`` also re-queries the manager whenever
    no controller is attached.
    """

    def __init__(self, manager=None):
        super().__init__()
        self.manager = manager if manager is not None else pyglet.input.ControllerManager()
        self.manager.push_handlers(on_connect=self.on_connect, on_disconnect=self.on_disconnect)
        self.poll()

    def available_controllers(self) -> Sequence:
        return self.manager.get_controllers()

    def open_device(self, controller) -> bool:
        try:
            controller.open()
        except DeviceException as e:
            logger.warning(f"Could not open gamepad: {e}")
            return False
        return True
