"""
Quadflight - Simulated Quadrotor Flight-Control Stack

Turns keyboard, gamepad and scripted control intent into continuous control
channels, maps them onto forces and torques, and applies those to a rigid
body advanced by a pluggable physics provider.
"""

__version__ = "0.1.0"
