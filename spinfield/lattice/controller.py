"""Sweep orchestration.

One sweep is two dispatches over the full lattice: target color 0, then
target color 1. Both always run, in that order.
"""

from __future__ import annotations

import numbers

from spinfield.kernels.checkerboard import CheckerboardKernel, DispatchParams, checkerboard_kernel
from spinfield.kernels.substrate import ComputeSubstrate
from spinfield.kernels.weights import UpdateRule, WeightTable
from spinfield.lattice.field import FieldState

__all__ = ["COLOR_ORDER", "StepController"]

COLOR_ORDER: tuple[int, int] = (0, 1)


class StepController:
    """Runs sweeps of a kernel over a field on a substrate."""

    def __init__(
        self,
        substrate: ComputeSubstrate,
        field: FieldState,
        kernel: CheckerboardKernel = checkerboard_kernel,
    ) -> None:
        self.substrate = substrate
        self.field = field
        self.kernel = kernel
        self.sweeps = 0

    def params(self, target_color: int, weights: WeightTable, rule: UpdateRule) -> DispatchParams:
        return DispatchParams(
            target_color=int(target_color),
            thresholds=weights.as_tensor(rule, device=self.field.device),
            rule=UpdateRule(rule),
            resolution=self.field.size,
        )

    def step(self, n: int, weights: WeightTable, rule: UpdateRule = UpdateRule.HEAT_BATH) -> int:
        """Perform `n` sweeps; returns the total sweep count."""
        if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
            raise ValueError(f"step count must be a positive integer, got {n!r}")

        passes = [self.params(color, weights, rule) for color in COLOR_ORDER]
        for _ in range(int(n)):
            for params in passes:
                self.substrate.dispatch(self.kernel, self.field, params)
            self.sweeps += 1
        return self.sweeps
