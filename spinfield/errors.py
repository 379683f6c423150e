"""Errors raised by the spin field engine.

Configuration errors surface synchronously from the call that caused them.
The update kernel itself has no error path.
"""

from __future__ import annotations

__all__ = [
    "IsingError",
    "InvalidTemperature",
    "InvalidGridSize",
    "SubstrateInitError",
    "SimulationNotReady",
]


class IsingError(Exception):
    """Base class for every error raised by `spinfield`."""


class InvalidTemperature(IsingError, ValueError):
    """Temperature is not a positive finite real."""


class InvalidGridSize(IsingError, ValueError):
    """Grid size is non-positive or exceeds the substrate's element limit."""


class SubstrateInitError(IsingError, RuntimeError):
    """The compute substrate could not be brought up (not retried)."""


class SimulationNotReady(IsingError, RuntimeError):
    """The simulation has no usable lattice; call `reset()` first."""
