"""Scalar observables of a spin configuration.

Spins are 0/1 (down/up); observables use the physical ±1 values. All
functions accept torch tensors or numpy arrays of shape (N, N).
"""

from __future__ import annotations

from typing import Union

import numpy as np
import torch

__all__ = [
    "as_signed",
    "magnetization",
    "energy_per_site",
    "bond_alignment",
    "up_fraction",
    "majority_fraction",
]

SpinArray = Union[torch.Tensor, np.ndarray]


def as_signed(spins: SpinArray) -> torch.Tensor:
    """0/1 spins as float64 ±1 values."""
    if isinstance(spins, np.ndarray):
        # Snapshots are read-only; torch wants a writable buffer.
        s = torch.from_numpy(np.array(spins, copy=True))
    else:
        s = spins
    return s.to(torch.float64) * 2.0 - 1.0


def magnetization(spins: SpinArray) -> float:
    """Mean spin in [-1, 1]."""
    return float(as_signed(spins).mean().item())


def energy_per_site(spins: SpinArray) -> float:
    """H / N² with H = -Σ s_i s_j over nearest-neighbor bonds (J = 1)."""
    s = as_signed(spins)
    e = -(s * torch.roll(s, 1, dims=0)).sum() - (s * torch.roll(s, 1, dims=1)).sum()
    return float(e.item()) / float(s.numel())


def bond_alignment(spins: SpinArray) -> float:
    """Fraction of nearest-neighbor bonds joining equal spins."""
    # [FORMULA] e = 2 (1 - 2a) for aligned fraction a over the 2 N² bonds
    return 0.5 * (1.0 - 0.5 * energy_per_site(spins))


def up_fraction(spins: SpinArray) -> float:
    return 0.5 * (1.0 + magnetization(spins))


def majority_fraction(spins: SpinArray) -> float:
    """Share of sites holding the more common spin value."""
    up = up_fraction(spins)
    return max(up, 1.0 - up)
