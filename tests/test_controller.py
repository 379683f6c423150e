"""Sweep orchestration: dispatch order, sweep accounting and rng advance."""

from __future__ import annotations

import pytest
import torch

from spinfield.kernels.checkerboard import DispatchParams
from spinfield.kernels.substrate import TorchSubstrate
from spinfield.kernels.weights import UpdateRule, WeightTable
from spinfield.lattice.controller import COLOR_ORDER, StepController


class RecordingSubstrate(TorchSubstrate):
    """Torch substrate that remembers every dispatch it ran."""

    def __init__(self) -> None:
        super().__init__("cpu")
        self.calls: list[DispatchParams] = []

    def dispatch(self, kernel, field, params):
        self.calls.append(params)
        super().dispatch(kernel, field, params)


def _controller(size: int = 16, seed: int = 0) -> tuple[StepController, RecordingSubstrate]:
    sub = RecordingSubstrate()
    field = sub.allocate(size, torch.Generator().manual_seed(seed))
    return StepController(sub, field), sub


def test_two_dispatches_per_sweep_in_fixed_order():
    ctrl, sub = _controller()
    ctrl.step(3, WeightTable.for_temperature(2.0))
    assert [p.target_color for p in sub.calls] == list(COLOR_ORDER) * 3
    assert COLOR_ORDER == (0, 1)
    assert ctrl.sweeps == 3


def test_dispatch_params_carry_table_rule_and_resolution():
    ctrl, sub = _controller(size=12)
    table = WeightTable.for_temperature(1.5)
    ctrl.step(1, table, UpdateRule.METROPOLIS)
    for p in sub.calls:
        assert p.rule is UpdateRule.METROPOLIS
        assert p.resolution == 12
        assert p.thresholds.tolist() == list(table.thresholds(UpdateRule.METROPOLIS))


def test_every_rng_state_changes_each_sweep():
    ctrl, _ = _controller(size=32, seed=1)
    table = WeightTable.for_temperature(2.27)
    for _ in range(5):
        before = ctrl.field.rng.clone()
        ctrl.step(1, table)
        assert bool((ctrl.field.rng != before).all())


def test_sweep_count_accumulates():
    ctrl, _ = _controller()
    table = WeightTable.for_temperature(2.0)
    assert ctrl.step(2, table) == 2
    assert ctrl.step(5, table) == 7
    assert ctrl.sweeps == 7


@pytest.mark.parametrize("bad", [0, -1, 1.0, "1", None, True])
def test_step_rejects_non_positive_counts(bad):
    ctrl, sub = _controller()
    with pytest.raises(ValueError):
        ctrl.step(bad, WeightTable.for_temperature(2.0))
    assert sub.calls == []
    assert ctrl.sweeps == 0
