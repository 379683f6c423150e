"""The per-cell update kernel, in scalar and tensor form."""

from __future__ import annotations

import pytest
import torch

from spinfield.kernels.checkerboard import CheckerboardKernel, DispatchParams, checkerboard_kernel
from spinfield.kernels.rng import MASK, advance, advance_state
from spinfield.kernels.weights import RNG_RANGE, UpdateRule, WeightTable
from spinfield.lattice.field import FieldState


ALWAYS = torch.full((5,), RNG_RANGE, dtype=torch.int64)
NEVER = torch.zeros(5, dtype=torch.int64)


def _field(size: int = 8, seed: int = 0) -> FieldState:
    return FieldState.random(size, torch.Generator().manual_seed(seed))


def _run(f: FieldState, params: DispatchParams) -> tuple[torch.Tensor, torch.Tensor]:
    return checkerboard_kernel(f.spins, f.rng, f.neighbor_sum(), f.colors, params)


@pytest.mark.parametrize("color", [0, 1])
@pytest.mark.parametrize("rule", list(UpdateRule))
def test_rng_advances_for_every_cell(color, rule):
    f = _field()
    params = DispatchParams(target_color=color, thresholds=WeightTable.for_temperature(2.0).as_tensor(rule), rule=rule)
    _, states = _run(f, params)
    assert torch.equal(states, advance(f.rng))
    assert bool((states != f.rng).all())


@pytest.mark.parametrize("color", [0, 1])
@pytest.mark.parametrize("rule", list(UpdateRule))
def test_inactive_color_keeps_spin(color, rule):
    f = _field(seed=3)
    params = DispatchParams(target_color=color, thresholds=ALWAYS, rule=rule)
    spins, _ = _run(f, params)
    inactive = f.colors != color
    assert torch.equal(spins[inactive], f.spins[inactive])


def test_heat_bath_sets_down_when_draw_below_threshold():
    f = _field(seed=4)
    spins, _ = _run(f, DispatchParams(target_color=0, thresholds=ALWAYS))
    assert bool((spins[f.colors == 0] == 0).all())


def test_heat_bath_sets_up_when_draw_above_threshold():
    f = _field(seed=4)
    spins, _ = _run(f, DispatchParams(target_color=1, thresholds=NEVER))
    assert bool((spins[f.colors == 1] == 1).all())


def test_heat_bath_ignores_previous_spin():
    f = _field(seed=5)
    flipped = FieldState(size=f.size, spins=1 - f.spins, rng=f.rng.clone())
    params = DispatchParams(target_color=0, thresholds=WeightTable.for_temperature(2.27).as_tensor())
    a, _ = checkerboard_kernel(f.spins, f.rng, torch.full_like(f.rng, 2), f.colors, params)
    b, _ = checkerboard_kernel(flipped.spins, flipped.rng, torch.full_like(f.rng, 2), flipped.colors, params)
    active = f.colors == 0
    assert torch.equal(a[active], b[active])


def test_heat_bath_uses_neighbor_bucket():
    f = _field(seed=6)
    # Only bucket 4 (all neighbors up) always accepts the down move.
    thresholds = torch.tensor([0, 0, 0, 0, RNG_RANGE], dtype=torch.int64)
    neighbor_sum = torch.zeros_like(f.rng)
    neighbor_sum[f.colors == 0] = 4
    spins, _ = checkerboard_kernel(f.spins, f.rng, neighbor_sum, f.colors, DispatchParams(0, thresholds))
    assert bool((spins[f.colors == 0] == 0).all())
    spins, _ = checkerboard_kernel(f.spins, f.rng, torch.zeros_like(f.rng), f.colors, DispatchParams(0, thresholds))
    assert bool((spins[f.colors == 0] == 1).all())


def test_metropolis_toggles_on_acceptance():
    f = _field(seed=7)
    params = DispatchParams(target_color=1, thresholds=ALWAYS, rule=UpdateRule.METROPOLIS)
    spins, _ = _run(f, params)
    active = f.colors == 1
    assert torch.equal(spins[active], 1 - f.spins[active])


def test_metropolis_keeps_spin_on_rejection():
    f = _field(seed=7)
    params = DispatchParams(target_color=1, thresholds=NEVER, rule=UpdateRule.METROPOLIS)
    spins, _ = _run(f, params)
    assert torch.equal(spins, f.spins)


def test_metropolis_mirrors_bucket_for_down_spins():
    kernel = CheckerboardKernel()
    thresholds = [RNG_RANGE, 0, 0, 0, 0]
    # A down spin with four up neighbors reads bucket 4 - 4 = 0.
    assert kernel.cell(0, 1, 4, 0, 0, thresholds, UpdateRule.METROPOLIS)[0] == 1
    # An up spin with four up neighbors reads bucket 4.
    assert kernel.cell(1, 1, 4, 0, 0, thresholds, UpdateRule.METROPOLIS)[0] == 1
    assert kernel.cell(1, 1, 0, 0, 0, thresholds, UpdateRule.METROPOLIS)[0] == 0


def test_cell_form_matches_tensor_form():
    f = _field(size=10, seed=8)
    kernel = CheckerboardKernel()
    neighbor_sum = f.neighbor_sum()
    for rule in UpdateRule:
        table = WeightTable.for_temperature(1.3)
        thresholds = table.as_tensor(rule)
        for color in (0, 1):
            params = DispatchParams(target_color=color, thresholds=thresholds, rule=rule)
            spins, states = kernel(f.spins, f.rng, neighbor_sum, f.colors, params)
            for y in range(f.size):
                for x in range(f.size):
                    s, st = kernel.cell(
                        int(f.spins[y, x]),
                        int(f.rng[y, x]),
                        int(neighbor_sum[y, x]),
                        int(f.colors[y, x]),
                        color,
                        thresholds.tolist(),
                        rule,
                    )
                    assert s == int(spins[y, x])
                    assert st == int(states[y, x])


def test_cell_form_inactive_only_advances():
    kernel = CheckerboardKernel()
    spin, state = kernel.cell(1, 12345, 0, 1, 0, [RNG_RANGE] * 5)
    assert spin == 1
    assert state == advance_state(12345)
    assert 0 <= state <= MASK


def test_kernel_does_not_mutate_inputs():
    f = _field(seed=9)
    spins0, rng0 = f.spins.clone(), f.rng.clone()
    _run(f, DispatchParams(target_color=0, thresholds=ALWAYS))
    assert torch.equal(f.spins, spins0)
    assert torch.equal(f.rng, rng0)
