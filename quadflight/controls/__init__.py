"""
Control modules.

Keyboard/gamepad input handling, the control channel engine and the script
timeline that drives timed control macros.
"""

from .channels import ControlChannels, ControlInputs, ControlState, MotorThrustSet
from .inputs import ControllerGamepad, Gamepad, InputSource, KeyboardState, VirtualGamepad, select_input_source
from .scripts import (
    ActiveScriptInstance,
    AdjustChannel,
    AdjustMotor,
    ScriptAction,
    ScriptTimeline,
    SetChannel,
    SetMotor,
    default_scripts,
)
from .engine import ControlChannelEngine

__all__ = [
    "ControlChannels",
    "ControlInputs",
    "ControlState",
    "MotorThrustSet",
    "ControllerGamepad",
    "Gamepad",
    "InputSource",
    "KeyboardState",
    "VirtualGamepad",
    "select_input_source",
    "ActiveScriptInstance",
    "AdjustChannel",
    "AdjustMotor",
    "ScriptAction",
    "ScriptTimeline",
    "SetChannel",
    "SetMotor",
    "default_scripts",
    "ControlChannelEngine",
]
