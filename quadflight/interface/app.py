#!/usr/bin/env python3
"""
Quadflight simulator entry point.

Interactive mode opens a pyglet window with a text HUD and flies the drone
from the keyboard (or a gamepad when one is connected). Headless mode runs the
reference physics world for a fixed time and prints telemetry.

Usage:
    quadflight                          # interactive window
    quadflight --headless 5 --script hover
    quadflight --config flight.yaml --mode per_motor
"""

import argparse
import logging
import sys

from ..config import SimulationConfig, load_config, setup_logging
from ..physics.settings import ControlMode
from ..simulation import FlightSimulation

logger = logging.getLogger(__name__)

HELP_TEXT = """
CONTROLS:
  W / X          - Throttle up / down
  A / D          - Yaw left / right
  Up / Down      - Roll
  Right / Left   - Pitch
  1-4            - Motor thrust (per-motor mode)
  S              - Hover script
  Y              - Yaw spin script
  ESC            - Exit
"""


def build_config(args) -> SimulationConfig:
    config = load_config(args.config).apply_env()
    if args.mode:
        config.flight = config.flight.with_mode(ControlMode(args.mode))
    if args.log_level:
        config.log_level = args.log_level
    return config


def format_telemetry(sim: FlightSimulation) -> str:
    state = sim.body_state()
    inputs = sim.controls.get_control_inputs()
    x, y, z = state.position
    vx, vy, vz = state.linear_velocity
    return (f"t={sim.sim_time:6.2f}s  pos=({x:6.2f}, {y:6.2f}, {z:6.2f})  "
            f"vel=({vx:5.2f}, {vy:5.2f}, {vz:5.2f})  "
            f"thr={inputs.throttle:.2f} roll={inputs.roll:+.2f} "
            f"pitch={inputs.pitch:+.2f} yaw={inputs.yaw:+.2f}")


def run_headless(sim: FlightSimulation, duration: float, script: str = None, dt: float = 1 / 60) -> int:
    """Fly without a window, printing telemetry once per simulated second."""
    if script and sim.controls.execute_script(script) is None:
        logger.warning(f"Script \"{script}\" is not registered; flying without it")

    ticks_per_report = max(1, int(round(1.0 / dt)))
    ticks = int(round(duration / dt))
    print(f"Running headless for {duration:.1f}s ({ticks} ticks, "
          f"mode={sim.mapper.control_mode.value})")
    for i in range(ticks):
        sim.tick(dt)
        if (i + 1) % ticks_per_report == 0:
            print(format_telemetry(sim))

    print(f"Done: {sim.tick_count} ticks, final {format_telemetry(sim)}")
    return ticks


def run_interactive(sim: FlightSimulation, script: str = None, dt: float = 1 / 60) -> None:
    """Open a pyglet window and drive the simulation from its clock."""
    import pyglet
    from .pyglet_input import PygletGamepad, PygletKeyboard

    gamepad = PygletGamepad()
    sim.controls.gamepad = gamepad

    window = pyglet.window.Window(900, 240, caption="Quadflight")
    keyboard = PygletKeyboard(sim.controls)
    keyboard.attach(window)

    hud = pyglet.text.Label("", x=10, y=window.height - 20, width=window.width - 20,
                            multiline=True, font_size=11)

    def update_simulation(elapsed):
        sim.tick(elapsed)
        scripts = ", ".join(instance.script_id for instance in sim.controls.active_scripts) or "-"
        motors = " ".join(f"{v:.2f}" for v in sim.controls.get_control_inputs().motor_thrusts.values())
        hud.text = (f"{format_telemetry(sim)}\n"
                    f"source={sim.controls.input_source.value}  motors=[{motors}]  scripts={scripts}")

    @window.event
    def on_draw():
        window.clear()
        hud.draw()

    @window.event
    def on_close():
        pyglet.app.exit()

    print(HELP_TEXT)
    if script:
        sim.controls.execute_script(script)
    pyglet.clock.schedule_interval(update_simulation, dt)
    try:
        pyglet.app.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    finally:
        pyglet.clock.unschedule(update_simulation)
        gamepad.close()


def main(argv=None):
    """Main entry point for the quadflight simulator."""
    parser = argparse.ArgumentParser(description='Quadflight quadrotor simulator')

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--mode',
        choices=[mode.value for mode in ControlMode],
        default=None,
        help='Flight control mode (overrides config)'
    )

    parser.add_argument(
        '--headless',
        type=float,
        default=None,
        metavar='SECONDS',
        help='Run without a window for the given simulated time'
    )

    parser.add_argument(
        '--script',
        type=str,
        default=None,
        help="Script to start at launch"
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        help='Logging level (DEBUG, INFO, WARNING, ...)'
    )

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        setup_logging(config.log_level)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    sim = FlightSimulation.with_reference_world(config)

    if args.headless is not None:
        run_headless(sim, args.headless, script=args.script)
    else:
        run_interactive(sim, script=args.script)


if __name__ == "__main__":
    main()
