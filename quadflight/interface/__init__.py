"""
Interactive front-end.

pyglet keyboard/gamepad adapters and the ``quadflight`` command line entry
point. Importing this package does not open a window.
"""
