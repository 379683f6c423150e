"""Per-cell MLCG streams.

Besides the period, the draws must not line up with the checkerboard
schedule: a cell advances on both dispatches of a sweep but only uses the
draw on its own color's dispatch.
"""

from __future__ import annotations

import pytest
import torch

from spinfield.kernels.rng import MASK, MODULUS, MULTIPLIER, PERIOD, advance, advance_state, seed_states
from spinfield.lattice.field import checkerboard_colors


def test_advance_is_multiplication_mod_2_32():
    assert advance_state(1) == MULTIPLIER
    assert advance_state(MASK) == (MULTIPLIER * MASK) % MODULUS
    states = torch.tensor([1, 3, MASK, 2**31 + 1], dtype=torch.int64)
    expected = [(MULTIPLIER * int(s)) % MODULUS for s in states.tolist()]
    assert advance(states).tolist() == expected


def test_advance_stays_in_32_bits():
    states = torch.tensor([MASK, MASK - 2, 2**32 - 5], dtype=torch.int64)
    for _ in range(50):
        states = advance(states)
        assert int(states.min()) >= 0
        assert int(states.max()) <= MASK


def test_full_period_over_odd_states():
    # MULTIPLIER = 5 mod 8, so its order in (Z / 2**32)^* is exactly 2**30.
    assert MULTIPLIER % 8 == 5
    assert pow(MULTIPLIER, PERIOD, MODULUS) == 1
    assert pow(MULTIPLIER, PERIOD // 2, MODULUS) != 1


def test_odd_states_stay_odd():
    states = torch.tensor([1, 7, 12345, MASK], dtype=torch.int64)
    for _ in range(10):
        states = advance(states)
        assert bool((states % 2 == 1).all())


def test_seed_states_are_odd_and_distinct():
    gen = torch.Generator().manual_seed(7)
    seeds = seed_states((64, 64), gen)
    assert seeds.dtype == torch.int64
    assert bool((seeds % 2 == 1).all())
    assert int(seeds.min()) >= 1
    assert int(seeds.max()) <= MASK
    assert torch.unique(seeds).numel() > 4000


def test_seed_states_reproducible():
    a = seed_states((8, 8), torch.Generator().manual_seed(3))
    b = seed_states((8, 8), torch.Generator().manual_seed(3))
    assert torch.equal(a, b)


def _used_draws(size: int, sweeps: int, seed: int) -> tuple[torch.Tensor, torch.Tensor]:
    """Top bit of the draw each cell uses on its own dispatch, per sweep."""
    states = seed_states((size, size), torch.Generator().manual_seed(seed))
    colors = checkerboard_colors(size)
    bits = []
    for _ in range(sweeps):
        after_color0 = advance(states)
        after_color1 = advance(after_color0)
        used = torch.where(colors == 0, after_color0, after_color1)
        bits.append((used >> 31).to(torch.float64))
        states = after_color1
    return torch.stack(bits), colors


def _corr(a: torch.Tensor, b: torch.Tensor) -> float:
    a = a.flatten() - a.mean()
    b = b.flatten() - b.mean()
    return float((a * b).sum() / torch.sqrt((a * a).sum() * (b * b).sum()))


def test_draws_are_balanced():
    bits, _ = _used_draws(128, 40, seed=11)
    assert float(bits.mean()) == pytest.approx(0.5, abs=0.01)


def test_draws_uncorrelated_with_checkerboard_color():
    bits, colors = _used_draws(128, 40, seed=12)
    per_color = [float(bits[:, colors == c].mean()) for c in (0, 1)]
    assert per_color[0] == pytest.approx(0.5, abs=0.01)
    assert per_color[1] == pytest.approx(0.5, abs=0.01)
    assert abs(_corr(bits, colors.expand_as(bits).to(torch.float64))) < 0.02


def test_draws_uncorrelated_across_sweeps():
    bits, _ = _used_draws(128, 40, seed=13)
    assert abs(_corr(bits[:-1], bits[1:])) < 0.02


def test_draws_uncorrelated_between_neighbors():
    bits, _ = _used_draws(128, 40, seed=14)
    right = torch.roll(bits, -1, dims=2)
    down = torch.roll(bits, -1, dims=1)
    assert abs(_corr(bits, right)) < 0.02
    assert abs(_corr(bits, down)) < 0.02


def test_draws_are_not_constant_per_cell():
    bits, _ = _used_draws(64, 40, seed=15)
    per_cell = bits.mean(dim=0)
    # A stuck stream would pin a cell's draw to 0 or 1 on every sweep.
    stuck = ((per_cell == 0.0) | (per_cell == 1.0)).to(torch.float64).mean()
    assert float(stuck) < 0.01
