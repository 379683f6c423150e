"""IsingSimulation is the public surface of the lattice engine.

It owns the configuration (temperature + weight table), the compute
substrate, the field and the step controller, and hands read-only spin
snapshots to an optional display surface.

Contracts:
- `set_temperature` rebuilds the weight table immediately; it is serialized
  against `step` and `reset` by an instance lock.
- `reset`/`resize` discard the lattice and allocate a freshly randomized one.
  The temperature persists across resets.
- A substrate that fails to come up leaves the simulation unusable until a
  later `reset` succeeds.
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np
import torch

from spinfield.console import console
from spinfield.errors import InvalidGridSize, InvalidTemperature, SimulationNotReady, SubstrateInitError
from spinfield.kernels.substrate import ComputeSubstrate, make_substrate
from spinfield.kernels.weights import UpdateRule, WeightTable, validate_temperature
from spinfield.lattice import observables
from spinfield.lattice.config import SimulationConfig
from spinfield.lattice.controller import StepController
from spinfield.lattice.field import FieldState
from spinfield.lattice.surface import SpinSurface

__all__ = ["IsingSimulation"]


class IsingSimulation:
    """2D Ising model on an N×N torus, updated in checkerboard passes."""

    def __init__(
        self,
        size: Optional[int] = None,
        *,
        config: Optional[SimulationConfig] = None,
        substrate: Optional[ComputeSubstrate] = None,
        surface: Optional[SpinSurface] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.rule = UpdateRule(self.config.rule)
        self.surface = surface
        self.substrate: Optional[ComputeSubstrate] = None
        self._controller: Optional[StepController] = None
        self._grid_size = self.config.grid_size if size is None else size
        self._lock = threading.RLock()
        self._generator = torch.Generator()
        if self.config.seed is None:
            self._generator.seed()
        else:
            self._generator.manual_seed(int(self.config.seed))

        t = validate_temperature(self.config.temperature)
        self._temperature = t
        self._weights = WeightTable.for_temperature(t)

        self.reset(self._grid_size, substrate=substrate)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(
        self,
        size: Optional[int] = None,
        *,
        substrate: Optional[ComputeSubstrate] = None,
        surface: Optional[SpinSurface] = None,
    ) -> None:
        """Allocate a freshly randomized lattice of `size`×`size` cells.

        Keeps the current temperature. Without an explicit `substrate`, the
        current one is reused, or one is built from `config.backend`.
        """
        with self._lock:
            if size is None:
                size = self._grid_size
            if surface is not None:
                self.surface = surface

            if substrate is None:
                substrate = self.substrate
            if substrate is None:
                try:
                    substrate = make_substrate(
                        self.config.backend,
                        self.config.device,
                        workers=self.config.workers,
                    )
                except SubstrateInitError as err:
                    self._controller = None
                    self.substrate = None
                    # A later reset() without a size retries the one asked for here.
                    self._grid_size = size
                    console.error("Substrate initialization failed", detail=str(err))
                    raise

            try:
                n = substrate.validate_size(size)
            except InvalidGridSize as err:
                console.error("Invalid grid size", detail=str(err))
                raise

            try:
                field = substrate.allocate(n, self._generator)
            except (RuntimeError, MemoryError) as err:
                self._controller = None
                self._release(substrate)
                self.substrate = None
                console.error("Substrate initialization failed", detail=str(err))
                raise SubstrateInitError(f"Could not allocate a {n}x{n} lattice on {substrate!r}: {err}") from err

            if substrate is not self.substrate:
                self._release(self.substrate)
            self.substrate = substrate
            self._grid_size = n
            self._controller = StepController(substrate, field)
            console.header(
                "Ising lattice",
                Grid=f"{n}x{n}",
                Backend=substrate.name,
                Device=str(substrate.device),
                Temperature=f"{self._temperature:.4g}",
                Rule=self.rule.value,
            )
            self._render()

    def resize(self, size: int) -> None:
        """Discard the lattice and start over at a new size."""
        self.reset(size)

    def close(self) -> None:
        """Release the substrate's workers; the simulation needs a reset() afterwards."""
        with self._lock:
            self._controller = None
            self._release(self.substrate)
            self.substrate = None

    @staticmethod
    def _release(substrate: Optional[ComputeSubstrate]) -> None:
        if substrate is not None:
            substrate.close()

    # ------------------------------------------------------------------
    # Temperature
    # ------------------------------------------------------------------

    def set_temperature(self, temperature: float) -> None:
        try:
            t = validate_temperature(temperature)
        except InvalidTemperature as err:
            console.error("Invalid temperature", detail=str(err))
            raise
        with self._lock:
            self._weights = WeightTable.for_temperature(t)
            self._temperature = t
        console.info(f"Temperature set to {t:.4g}")

    def get_temperature(self) -> float:
        return self._temperature

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def weights(self) -> WeightTable:
        return self._weights

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    def step(self, n: int = 1) -> None:
        """Advance the lattice by `n` sweeps."""
        with self._lock:
            controller = self._require_controller()
            try:
                controller.step(n, self._weights, self.rule)
            except Exception as err:
                console.error(f"Error in step: {err}")
                raise
            self._render()

    def _require_controller(self) -> StepController:
        if self._controller is None:
            message = "No lattice allocated; call reset() with a working substrate"
            console.error("Simulation not ready", detail=message)
            raise SimulationNotReady(message)
        return self._controller

    def _render(self) -> None:
        if self.surface is not None and self._controller is not None:
            self.surface.render(self._controller.field.snapshot())

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self._controller is not None

    @property
    def field(self) -> FieldState:
        """The live field. Its buffers are rewritten by every sweep; hold no
        references to them across a concurrent `step`, use `spins` instead.
        """
        return self._require_controller().field

    @property
    def size(self) -> int:
        with self._lock:
            return self._require_controller().field.size

    @property
    def sweeps(self) -> int:
        with self._lock:
            return self._require_controller().sweeps

    @property
    def spins(self) -> np.ndarray:
        """Read-only snapshot of the spin channel (uint8, 1 = up), taken between sweeps."""
        with self._lock:
            return self._require_controller().field.snapshot()

    def magnetization(self) -> float:
        with self._lock:
            return observables.magnetization(self._require_controller().field.spins)

    def energy(self) -> float:
        """Energy per site."""
        with self._lock:
            return observables.energy_per_site(self._require_controller().field.spins)
