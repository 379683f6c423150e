"""Lattice state: spins, per-cell rng states and toroidal addressing.

The field keeps two buffers. A dispatch reads the front buffer and writes the
back buffer; `swap()` then makes the written buffer current. Within one
dispatch no cell can observe another cell's write.

Coordinates are (x, y) with x the column and y the row; the checkerboard
color of a cell is (x + y) mod 2.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import torch

from spinfield.kernels.rng import seed_states

__all__ = ["FieldState", "checkerboard_colors", "toroidal_neighbors"]


def toroidal_neighbors(x: int, y: int, size: int) -> tuple[tuple[int, int], ...]:
    """(x, y) coordinates of the up, down, left and right neighbors."""
    return (
        (x, (y + 1) % size),
        (x, (y - 1) % size),
        ((x - 1) % size, y),
        ((x + 1) % size, y),
    )


def checkerboard_colors(size: int, device: torch.device | str = "cpu") -> torch.Tensor:
    """(size, size) int64 tensor of (x + y) mod 2."""
    idx = torch.arange(size, device=device, dtype=torch.int64)
    return (idx[:, None] + idx[None, :]) % 2


@dataclass
class FieldState:
    """N×N grid of (spin, rng state) cells with periodic boundaries."""

    size: int
    spins: torch.Tensor            # uint8 (N, N), 1 = up, 0 = down
    rng: torch.Tensor              # int64 (N, N), uint32 values
    colors: torch.Tensor = field(init=False)
    _back_spins: torch.Tensor = field(init=False, repr=False)
    _back_rng: torch.Tensor = field(init=False, repr=False)
    _rows_up: torch.Tensor = field(init=False, repr=False)
    _rows_down: torch.Tensor = field(init=False, repr=False)
    _cols_left: torch.Tensor = field(init=False, repr=False)
    _cols_right: torch.Tensor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        n = int(self.size)
        if tuple(self.spins.shape) != (n, n) or tuple(self.rng.shape) != (n, n):
            raise ValueError(
                f"spins and rng must have shape {(n, n)}, got "
                f"{tuple(self.spins.shape)} and {tuple(self.rng.shape)}"
            )
        device = self.spins.device
        self.spins = self.spins.to(torch.uint8).contiguous()
        self.rng = self.rng.to(device=device, dtype=torch.int64).contiguous()
        self.colors = checkerboard_colors(n, device=device)
        self._back_spins = torch.empty_like(self.spins)
        self._back_rng = torch.empty_like(self.rng)

        # [CHOICE] explicit modulo index arithmetic for the torus
        # [FORMULA] row(y ± 1) = (y ± 1) mod N, col(x ± 1) = (x ± 1) mod N
        idx = torch.arange(n, device=device, dtype=torch.int64)
        self._rows_up = (idx + 1) % n
        self._rows_down = (idx - 1) % n
        self._cols_left = (idx - 1) % n
        self._cols_right = (idx + 1) % n

    @classmethod
    def random(
        cls,
        size: int,
        generator: torch.Generator,
        device: torch.device | str = "cpu",
    ) -> "FieldState":
        """Uniformly random spins and independent odd rng seeds."""
        n = int(size)
        spins = torch.randint(0, 2, (n, n), generator=generator, dtype=torch.uint8)
        rng = seed_states((n, n), generator)
        return cls(size=n, spins=spins.to(device), rng=rng.to(device))

    @property
    def device(self) -> torch.device:
        return self.spins.device

    @property
    def back_spins(self) -> torch.Tensor:
        return self._back_spins

    @property
    def back_rng(self) -> torch.Tensor:
        return self._back_rng

    def swap(self) -> None:
        """Make the back buffer current."""
        self.spins, self._back_spins = self._back_spins, self.spins
        self.rng, self._back_rng = self._back_rng, self.rng

    def neighbor_sum(self, row_start: int = 0, row_stop: Optional[int] = None) -> torch.Tensor:
        """Number of up neighbors (0..4) for rows [row_start, row_stop) of the front buffer."""
        stop = self.size if row_stop is None else int(row_stop)
        rows = slice(int(row_start), stop)
        s = self.spins
        band = s[rows]
        total = s.index_select(0, self._rows_up[rows]).to(torch.int64)
        total = total + s.index_select(0, self._rows_down[rows]).to(torch.int64)
        total = total + band.index_select(1, self._cols_left).to(torch.int64)
        total = total + band.index_select(1, self._cols_right).to(torch.int64)
        return total

    def cell_neighbor_sum(self, x: int, y: int) -> int:
        s = self.spins
        return int(sum(int(s[ny, nx].item()) for nx, ny in toroidal_neighbors(x, y, self.size)))

    def snapshot(self) -> np.ndarray:
        """Read-only copy of the spin channel (uint8, N×N)."""
        out = self.spins.detach().to("cpu").numpy().copy()
        out.flags.writeable = False
        return out

    def clone(self) -> "FieldState":
        return FieldState(size=self.size, spins=self.spins.clone(), rng=self.rng.clone())
