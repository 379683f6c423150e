"""Boltzmann acceptance weights for the checkerboard update.

A cell only ever sees five neighborhoods: 0..4 of its four neighbors are up.
Indexing by the up-count i, the neighbor spin sum is h = 2i - 4. The table
is precomputed once per temperature so the per-cell kernel does a lookup and
an integer comparison only.

Two tables are built together:
- heat-bath:  P(spin := down | h) = 1 / (1 + exp(2h / T))
- Metropolis: P(flip | spin up, h) = min(1, exp(-2h / T)); a down spin
  reads the mirrored entry 4 - i.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum

import torch

from spinfield.errors import InvalidTemperature

__all__ = [
    "NUM_BUCKETS",
    "RNG_RANGE",
    "DEFAULT_TEMPERATURE",
    "CRITICAL_TEMPERATURE",
    "UpdateRule",
    "WeightTable",
    "compute_weights",
    "compute_flip_weights",
    "validate_temperature",
]

NUM_BUCKETS: int = 5
RNG_RANGE: int = 2**32

# Critical temperature for the 2D square Ising model (J = k_B = 1).
CRITICAL_TEMPERATURE: float = 2.0 / math.log(1.0 + math.sqrt(2.0))
DEFAULT_TEMPERATURE: float = 2.27


class UpdateRule(str, Enum):
    """How an active cell uses its draw."""

    # Set the spin from the draw (the exhibit's rule).
    HEAT_BATH = "heat_bath"
    # Toggle the current spin on acceptance.
    METROPOLIS = "metropolis"


def validate_temperature(temperature: object) -> float:
    """Return `temperature` as a float, or raise InvalidTemperature."""
    if isinstance(temperature, bool) or not isinstance(temperature, numbers.Real):
        raise InvalidTemperature(f"temperature must be a real number, got {temperature!r}")
    t = float(temperature)
    if not math.isfinite(t):
        raise InvalidTemperature(f"temperature must be finite, got {t!r}")
    if t <= 0.0:
        raise InvalidTemperature(f"temperature must be > 0, got {t!r}")
    return t


def _logistic_down(x: float) -> float:
    # 1 / (1 + exp(x)) without overflowing for large |x|.
    if x >= 0.0:
        e = math.exp(-x)
        return e / (1.0 + e)
    return 1.0 / (1.0 + math.exp(x))


def compute_weights(temperature: float) -> tuple[float, ...]:
    """Heat-bath probability of setting a cell down, per neighbor up-count."""
    t = validate_temperature(temperature)
    weights = []
    for i in range(NUM_BUCKETS):
        nb_sum = 2 * i - 4  # 0,1,2,3,4 -> -4,-2,0,2,4
        weights.append(_logistic_down(2.0 * nb_sum / t))
    return tuple(weights)


def compute_flip_weights(temperature: float) -> tuple[float, ...]:
    """Metropolis flip probability for an up spin, per neighbor up-count."""
    t = validate_temperature(temperature)
    weights = []
    for i in range(NUM_BUCKETS):
        nb_sum = 2 * i - 4
        # [FORMULA] dE = 2 * s * h with s = +1
        delta_e = 2.0 * nb_sum
        weights.append(1.0 if delta_e <= 0.0 else math.exp(-delta_e / t))
    return tuple(weights)


def _to_thresholds(weights: tuple[float, ...]) -> tuple[int, ...]:
    # P(draw < threshold) == threshold / 2**32 for a uniform 32-bit draw.
    return tuple(min(RNG_RANGE, max(0, int(round(w * RNG_RANGE)))) for w in weights)


@dataclass(frozen=True)
class WeightTable:
    """Acceptance probabilities for one temperature.

    Immutable; build a new table whenever the temperature changes.
    """

    temperature: float
    probabilities: tuple[float, ...]
    flip_probabilities: tuple[float, ...]

    @classmethod
    def for_temperature(cls, temperature: float) -> "WeightTable":
        t = validate_temperature(temperature)
        return cls(
            temperature=t,
            probabilities=compute_weights(t),
            flip_probabilities=compute_flip_weights(t),
        )

    def __len__(self) -> int:
        return NUM_BUCKETS

    def __getitem__(self, index: int) -> float:
        return self.probabilities[index]

    def weights(self, rule: UpdateRule = UpdateRule.HEAT_BATH) -> tuple[float, ...]:
        if UpdateRule(rule) is UpdateRule.METROPOLIS:
            return self.flip_probabilities
        return self.probabilities

    def thresholds(self, rule: UpdateRule = UpdateRule.HEAT_BATH) -> tuple[int, ...]:
        """Weights rescaled to the generator's native 32-bit range."""
        return _to_thresholds(self.weights(rule))

    def as_tensor(self, rule: UpdateRule = UpdateRule.HEAT_BATH, device: torch.device | str = "cpu") -> torch.Tensor:
        """Integer thresholds as an int64 tensor of shape (5,)."""
        return torch.tensor(self.thresholds(rule), dtype=torch.int64, device=device)
