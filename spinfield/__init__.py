"""Spin Field.

2D Ising model dynamics with checkerboard-parallel updates:
- `spinfield.kernels`: weight tables, per-cell rng, the update kernel and the
  compute substrates that run it
- `spinfield.lattice`: field state, sweep control, the `IsingSimulation`
  facade and display/control collaborators

Keep this module light so importing `spinfield.kernels.*` does not pull in
matplotlib.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "IsingSimulation",
    "SimulationConfig",
    "WeightTable",
    "UpdateRule",
    "compute_weights",
    "make_substrate",
    "DEFAULT_TEMPERATURE",
    "CRITICAL_TEMPERATURE",
    "IsingError",
    "InvalidTemperature",
    "InvalidGridSize",
    "SubstrateInitError",
    "SimulationNotReady",
]

_ERRORS = {"IsingError", "InvalidTemperature", "InvalidGridSize", "SubstrateInitError", "SimulationNotReady"}
_WEIGHTS = {"WeightTable", "UpdateRule", "compute_weights", "DEFAULT_TEMPERATURE", "CRITICAL_TEMPERATURE"}


def __getattr__(name: str):
    if name == "IsingSimulation":
        from .lattice.simulation import IsingSimulation as _IsingSimulation

        return _IsingSimulation
    if name == "SimulationConfig":
        from .lattice.config import SimulationConfig as _SimulationConfig

        return _SimulationConfig
    if name == "make_substrate":
        from .kernels.substrate import make_substrate as _make_substrate

        return _make_substrate
    if name in _WEIGHTS:
        from .kernels import weights as _weights

        return getattr(_weights, name)
    if name in _ERRORS:
        from . import errors as _errors

        return getattr(_errors, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
