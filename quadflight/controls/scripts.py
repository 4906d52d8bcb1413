"""
Script timeline engine.

A script is a named sequence of ``(offset_ms, mutation)`` actions. Pressing a
bound key starts a new, independent instance of the script; every update each
running instance fires, in registration order, the actions whose offset has
elapsed since it started. The cursor only moves forward, so an action never
fires twice, and an action with a small offset registered after one with a
larger offset waits for its predecessor.

Mutations are tagged commands (``SetChannel``, ``AdjustChannel``, ``SetMotor``,
``AdjustMotor``) interpreted against a ``ControlState``. Any other callable
taking the state is accepted as well.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..utils.maths import is_number
from .channels import MOTOR_NAMES, ControlState

logger = logging.getLogger(__name__)

Mutation = Callable[[ControlState], None]


def default_clock() -> float:
    """Monotonic wall clock in milliseconds."""
    return time.perf_counter() * 1000.0


# =============================================================================
# Mutation commands
# =============================================================================

@dataclass(frozen=True)
class SetChannel:
    """Set a channel to an absolute value."""
    channel: str
    value: float

    def __call__(self, state: ControlState) -> None:
        state.channels.set(self.channel, self.value)


@dataclass(frozen=True)
class AdjustChannel:
    """Add a delta to a channel."""
    channel: str
    delta: float

    def __call__(self, state: ControlState) -> None:
        state.channels.adjust(self.channel, self.delta)


def motor_name(motor: Union[int, str]) -> Optional[str]:
    """``1``/``"motor1"``/``"Digit1"`` -> ``"motor1"``; None when no such motor exists."""
    if isinstance(motor, int) and not isinstance(motor, bool):
        name = f"motor{motor}"
    elif isinstance(motor, str) and motor.startswith("Digit"):
        name = f"motor{motor[len('Digit'):]}"
    else:
        name = motor
    return name if name in MOTOR_NAMES else None


@dataclass(frozen=True)
class SetMotor:
    """Set one motor's thrust."""
    motor: Union[int, str]
    value: float

    def __call__(self, state: ControlState) -> None:
        name = motor_name(self.motor)
        if name is None:
            logger.error(f"SetMotor references undefined motor {self.motor!r}; ignoring")
            return
        state.motors.set(name, self.value)


@dataclass(frozen=True)
class AdjustMotor:
    """Add a delta to one motor's thrust."""
    motor: Union[int, str]
    delta: float

    def __call__(self, state: ControlState) -> None:
        name = motor_name(self.motor)
        if name is None:
            logger.error(f"AdjustMotor references undefined motor {self.motor!r}; ignoring")
            return
        state.motors.adjust(name, self.delta)


# =============================================================================
# Timeline
# =============================================================================

class ScriptAction(NamedTuple):
    offset_ms: float
    mutation: Mutation


@dataclass(eq=False)
class ActiveScriptInstance:
    """One running copy of a script; instances compare by identity."""
    script_id: str
    start_time: float
    actions: List[ScriptAction]
    cursor: int = 0

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.actions)

    def advance(self, now: float, state: ControlState) -> int:
        """Fire every due action past the cursor; returns how many fired."""
        elapsed = now - self.start_time
        fired = 0
        while not self.is_complete and self.actions[self.cursor].offset_ms <= elapsed:
            action = self.actions[self.cursor]
            try:
                action.mutation(state)
                logger.debug(f"Executed action {self.cursor + 1} of script \"{self.script_id}\" "
                             f"at {elapsed:.1f}ms")
            except Exception:
                logger.error(f"Error executing action {self.cursor + 1} of script \"{self.script_id}\"",
                             exc_info=True)
            self.cursor += 1
            fired += 1
        return fired


def _coerce_action(entry) -> Optional[ScriptAction]:
    """Accept ``ScriptAction``, ``(offset, mutation)`` pairs or ``{"time", "action"}`` mappings."""
    if isinstance(entry, Mapping):
        offset, mutation = entry.get("time"), entry.get("action")
    elif isinstance(entry, (tuple, list)) and len(entry) == 2:
        offset, mutation = entry
    else:
        return None
    if not is_number(offset) or not callable(mutation):
        return None
    return ScriptAction(float(offset), mutation)


class ScriptTimeline:
    """Registry of scripts, key bindings and the set of running instances."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            clock: Callable returning the current time in milliseconds
        """
        self.clock = clock if clock is not None else default_clock
        self.scripts: Dict[str, Tuple[ScriptAction, ...]] = {}
        self.bindings: Dict[str, str] = {}
        self.active: List[ActiveScriptInstance] = []

    def register(self, script_id: str, actions: Sequence) -> bool:
        """
        Register (or replace) a script.

        Rejected, with the table left untouched, when ``actions`` is not a
        list/tuple or any entry lacks a numeric offset or a callable mutation.
        """
        if not isinstance(actions, (list, tuple)):
            logger.error(f"Script actions must be a list or tuple. Received type: {type(actions).__name__}")
            return False

        parsed = []
        for index, entry in enumerate(actions):
            action = _coerce_action(entry)
            if action is None:
                logger.error(f"Script \"{script_id}\" action {index + 1} must have a numeric offset "
                             f"and a callable mutation; got {entry!r}")
                return False
            parsed.append(action)

        self.scripts[script_id] = tuple(parsed)
        logger.info(f"Registered script: \"{script_id}\" ({len(parsed)} actions)")
        return True

    def bind(self, key_code: str, script_id: str) -> bool:
        """Bind a key to a registered script; unknown scripts are rejected."""
        if script_id not in self.scripts:
            logger.error(f"Cannot bind key \"{key_code}\" to unknown script \"{script_id}\". "
                         f"Register the script first.")
            return False
        self.bindings[key_code] = script_id
        logger.info(f"Bound key \"{key_code}\" to script \"{script_id}\"")
        return True

    def script_for_key(self, key_code: str) -> Optional[str]:
        return self.bindings.get(key_code)

    def start(self, script_id: str) -> Optional[ActiveScriptInstance]:
        """Start a new instance of a script, independent of any already running."""
        template = self.scripts.get(script_id)
        if template is None:
            logger.warning(f"Script with ID \"{script_id}\" not found")
            return None
        instance = ActiveScriptInstance(
            script_id=script_id,
            start_time=self.clock(),
            actions=list(template),
        )
        self.active.append(instance)
        logger.info(f"Started script: \"{script_id}\"")
        return instance

    def update(self, state: ControlState) -> int:
        """Advance every running instance in start order; returns actions fired."""
        now = self.clock()
        fired = 0
        for instance in list(self.active):
            # An action may have cleared the active set
            if instance not in self.active:
                continue
            fired += instance.advance(now, state)
        self.active = [instance for instance in self.active if not instance.is_complete]
        return fired

    def clear_active(self) -> int:
        """Stop all running instances; returns how many were dropped."""
        dropped = len(self.active)
        self.active.clear()
        if dropped:
            logger.info(f"Cleared {dropped} active script instance(s)")
        return dropped


def default_scripts() -> Dict[str, List[ScriptAction]]:
    """Built-in scripts: hover trim and a timed yaw spin."""
    return {
        "hover": [
            ScriptAction(0, SetChannel("throttle", 0.5)),
            ScriptAction(1000, SetChannel("roll", 0.0)),
            ScriptAction(1000, SetChannel("pitch", 0.0)),
            ScriptAction(1000, SetChannel("yaw", 0.0)),
        ],
        "yawSpin": [
            ScriptAction(0, SetChannel("yaw", 0.2)),
            ScriptAction(5000, SetChannel("yaw", 0.0)),
        ],
    }


DEFAULT_BINDINGS = {
    "KeyS": "hover",
    "KeyY": "yawSpin",
}
