"""Checkerboard update kernel.

One invocation updates one cell for one dispatch:

1. Advance the cell's rng state, whatever its color. Every stream keeps
   moving between the cell's own updates.
2. Cells whose color differs from the dispatch's target color keep their spin.
3. Active cells draw from the freshly advanced state and apply the rule:
   - heat-bath: spin := down if draw < threshold[neighbor_sum] else up
   - Metropolis: toggle if draw < flip_threshold[i], with i = neighbor_sum for
     an up spin and 4 - neighbor_sum for a down spin.

Neighbor spins are always read from the pre-dispatch buffer. Since both
colors form non-adjacent sublattices, every neighbor an active cell reads
is inactive in this dispatch, so the update is order-independent and needs
no synchronization beyond the barrier between dispatches.

The kernel is provided twice with identical results: `cell` works on plain
Python ints, `__call__` works elementwise on tensors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import torch

from spinfield.kernels.rng import advance, advance_state
from spinfield.kernels.weights import UpdateRule

__all__ = ["DispatchParams", "CheckerboardKernel", "checkerboard_kernel"]


@dataclass(frozen=True)
class DispatchParams:
    """Uniform parameters for one dispatch."""

    target_color: int
    thresholds: torch.Tensor       # int64 (5,) on the field's device
    rule: UpdateRule = UpdateRule.HEAT_BATH
    resolution: int = 0            # grid side; 0 takes it from the field

    @property
    def toggles(self) -> bool:
        return UpdateRule(self.rule) is UpdateRule.METROPOLIS


class CheckerboardKernel:
    """Pure per-cell Ising update."""

    name = "checkerboard"

    def cell(
        self,
        spin: int,
        state: int,
        neighbor_sum: int,
        color: int,
        target_color: int,
        thresholds: Sequence[int],
        rule: UpdateRule = UpdateRule.HEAT_BATH,
    ) -> tuple[int, int]:
        """Update one cell; returns (spin, state)."""
        state = advance_state(state)
        if color != target_color:
            return spin, state
        if UpdateRule(rule) is UpdateRule.METROPOLIS:
            index = neighbor_sum if spin == 1 else 4 - neighbor_sum
            if state < int(thresholds[index]):
                return 1 - spin, state
            return spin, state
        return (0 if state < int(thresholds[neighbor_sum]) else 1), state

    def __call__(
        self,
        spins: torch.Tensor,
        states: torch.Tensor,
        neighbor_sum: torch.Tensor,
        colors: torch.Tensor,
        params: DispatchParams,
    ) -> tuple[torch.Tensor, torch.Tensor]:
        """Update a block of cells; returns new (spins, states) tensors."""
        states = advance(states)
        active = colors == int(params.target_color)
        if params.toggles:
            index = torch.where(spins == 1, neighbor_sum, 4 - neighbor_sum)
            accept = states < params.thresholds[index]
            candidate = torch.where(accept, 1 - spins, spins)
        else:
            accept = states < params.thresholds[neighbor_sum]
            candidate = (~accept).to(spins.dtype)
        return torch.where(active, candidate, spins), states


checkerboard_kernel = CheckerboardKernel()
