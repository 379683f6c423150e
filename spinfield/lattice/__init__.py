"""Lattice state, sweep control and the simulation facade."""

from __future__ import annotations

__all__: list[str] = []
