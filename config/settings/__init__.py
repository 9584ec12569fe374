"""Settings package for the booking core.

This package exposes multiple environment‑specific settings modules. The
`base.py` contains common configuration shared across environments. The
`dev.py` and `test.py` modules extend base settings with environment
specific overrides.
"""
