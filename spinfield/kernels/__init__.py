"""Update kernels and compute substrates for the lattice engine.

- `weights`:      Boltzmann acceptance tables
- `rng`:          per-cell multiplicative LCG streams
- `checkerboard`: the per-cell update kernel
- `substrate`:    executes a kernel over the whole lattice
- `runtime`:      backend detection and buffer limits
"""

from __future__ import annotations

__all__: list[str] = []
