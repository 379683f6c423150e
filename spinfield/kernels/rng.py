"""Per-cell pseudorandom streams.

Every cell owns a 32-bit state advanced by a multiplicative linear
congruential generator (MLCG):

    state' = MULTIPLIER * state  (mod 2**32)

The multiplier comes from L'Ecuyer, "Tables of linear congruential generators
of different sizes and good lattice structure" (Math. Comp. 68, 1999),
table 5, m = 2**32. Since MULTIPLIER = 5 (mod 8) the period over odd states is
2**30; seeds are forced odd so no cell lands on the short even orbits (0 is a
fixed point).

Additive generators (state' = a * state + c) are not offered: their draws
line up with the checkerboard schedule and drive the lattice to all-up.

States are stored in int64 tensors holding uint32 values. The product of a
32-bit state and the 30-bit multiplier fits in 62 bits, so the masked int64
multiply is exact.
"""

from __future__ import annotations

import torch

__all__ = [
    "MULTIPLIER",
    "MODULUS",
    "MASK",
    "PERIOD",
    "advance",
    "advance_state",
    "seed_states",
]

MULTIPLIER: int = 747796405
MODULUS: int = 2**32
MASK: int = MODULUS - 1
PERIOD: int = 2**30


def advance_state(state: int) -> int:
    """Advance a single state (plain Python int)."""
    return (MULTIPLIER * int(state)) & MASK


def advance(states: torch.Tensor) -> torch.Tensor:
    """Advance a tensor of states by one step (new tensor, int64)."""
    return torch.bitwise_and(states * MULTIPLIER, MASK)


def seed_states(
    shape: tuple[int, ...],
    generator: torch.Generator,
    device: torch.device | str = "cpu",
) -> torch.Tensor:
    """Draw independent odd 32-bit seeds.

    Seeds are drawn on the generator's (CPU) device and then moved, so a given
    generator seed yields the same lattice on every backend.
    """
    seeds = torch.randint(0, MODULUS, shape, generator=generator, dtype=torch.int64)
    seeds = torch.bitwise_or(seeds, 1)
    return seeds.to(device)
