"""Cadence: SM-2 review scheduling core."""

from cadence.consts import VERSION

__version__ = VERSION
