from dataclasses import dataclass
from typing import Optional

from spinfield.kernels.weights import DEFAULT_TEMPERATURE, UpdateRule


@dataclass
class SimulationConfig:
    """Configuration for the simulation."""

    # Lattice
    grid_size: int = 64
    # Reduced temperature k_B T / J; the default sits at the critical point.
    temperature: float = DEFAULT_TEMPERATURE
    rule: UpdateRule = UpdateRule.HEAT_BATH

    # Reproducibility: seeds both the initial spins and the per-cell rng seeds.
    # None draws fresh entropy from the OS.
    seed: Optional[int] = None

    # Substrate
    backend: str = "auto"          # auto | torch | threads | sequential | triton
    device: Optional[str] = None   # None picks cuda > mps > cpu
    workers: int = 4               # thread pool size for the "threads" backend
