"""Display and control collaborators.

The engine only hands out read-only spin snapshots; anything that draws them
implements `SpinSurface`. `MatplotlibSurface` is the bundled renderer.

`ControlPanel` holds the user-adjustable parameters of the interactive
exhibit (temperature slider, sweeps per frame, grid size menu) and applies
them to a simulation; a panel opened on an off-menu simulation snaps to the
nearest menu size. `tick()` reproduces the exhibit's frame loop: once more
than 1/60 s has accumulated, run `steps_per_frame` sweeps.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import matplotlib.pyplot as plt
import numpy as np

from spinfield.console import console

if TYPE_CHECKING:
    from spinfield.lattice.simulation import IsingSimulation

__all__ = [
    "GRID_SIZES",
    "TEMPERATURE_RANGE",
    "STEPS_PER_FRAME_RANGE",
    "FRAME_INTERVAL",
    "SpinSurface",
    "MatplotlibSurface",
    "ControlParams",
    "ControlPanel",
]

# Sizes above 8192 need backing buffers past 2**32 elements.
GRID_SIZES: tuple[int, ...] = (4, 16, 64, 256, 1024, 4096, 8192)
TEMPERATURE_RANGE: tuple[float, float] = (0.0, 5.0)
STEPS_PER_FRAME_RANGE: tuple[int, int] = (1, 10)
FRAME_INTERVAL: float = 1.0 / 60.0


@runtime_checkable
class SpinSurface(Protocol):
    def render(self, spins: np.ndarray) -> None:
        """Draw an (N, N) array of 0/1 spins."""
        ...


class MatplotlibSurface:
    """Gray-scale image of the spin channel (up = white)."""

    def __init__(self, *, title: str = "Ising spins", figsize: tuple[float, float] = (5.0, 5.0)) -> None:
        self._fig, self._ax = plt.subplots(figsize=figsize)
        self._ax.set_title(title)
        self._ax.set_axis_off()
        self._image = None
        self.frames = 0

    @property
    def figure(self):
        return self._fig

    def render(self, spins: np.ndarray) -> None:
        data = np.asarray(spins, dtype=np.float32)
        if self._image is None or self._image.get_array().shape != data.shape:
            self._ax.clear()
            self._ax.set_axis_off()
            self._image = self._ax.imshow(data, cmap="gray", vmin=0.0, vmax=1.0, interpolation="nearest", origin="lower")
        else:
            self._image.set_data(data)
        self._fig.canvas.draw_idle()
        self.frames += 1

    def save(self, path: Path | str, *, dpi: int = 150) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self._fig.savefig(out, dpi=dpi)
        return out

    def close(self) -> None:
        plt.close(self._fig)


@dataclass
class ControlParams:
    """Values shown by the control panel."""

    temperature: float = 2.5
    steps_per_frame: int = 1
    grid_size: int = 64


class ControlPanel:
    """Bounded user controls wired to a simulation."""

    def __init__(self, simulation: "IsingSimulation", params: Optional[ControlParams] = None) -> None:
        self.simulation = simulation
        self.params = params or self._params_for(simulation)
        self._elapsed = 0.0
        self._check_params(self.params)
        simulation.set_temperature(self.params.temperature)
        if simulation.size != self.params.grid_size:
            simulation.resize(self.params.grid_size)

    @staticmethod
    def _params_for(simulation: "IsingSimulation") -> ControlParams:
        """Panel values closest to the simulation's current state."""
        size = simulation.size
        grid_size = min(GRID_SIZES, key=lambda s: (abs(s - size), s))
        if grid_size != size:
            console.warn(f"Grid size {size} is not on the menu", detail=f"using {grid_size}")
        lo, hi = TEMPERATURE_RANGE
        temperature = min(max(simulation.temperature, lo), hi)
        if temperature != simulation.temperature:
            console.warn(f"Temperature {simulation.temperature:g} is outside the slider", detail=f"using {temperature:g}")
        return ControlParams(temperature=temperature, grid_size=grid_size)

    @staticmethod
    def _check_params(params: ControlParams) -> None:
        lo, hi = TEMPERATURE_RANGE
        if not lo <= params.temperature <= hi:
            raise ValueError(f"temperature must be within [{lo}, {hi}], got {params.temperature}")
        lo_s, hi_s = STEPS_PER_FRAME_RANGE
        if not lo_s <= int(params.steps_per_frame) <= hi_s:
            raise ValueError(f"steps_per_frame must be within [{lo_s}, {hi_s}], got {params.steps_per_frame}")
        if int(params.grid_size) not in GRID_SIZES:
            raise ValueError(f"grid_size must be one of {GRID_SIZES}, got {params.grid_size}")

    def set_temperature(self, temperature: float) -> None:
        lo, hi = TEMPERATURE_RANGE
        if not lo <= float(temperature) <= hi:
            raise ValueError(f"temperature must be within [{lo}, {hi}], got {temperature}")
        # The facade still rejects the slider's lower end (T = 0).
        self.simulation.set_temperature(temperature)
        self.params.temperature = float(temperature)

    def set_steps_per_frame(self, steps: int) -> None:
        lo, hi = STEPS_PER_FRAME_RANGE
        if not lo <= int(steps) <= hi:
            raise ValueError(f"steps_per_frame must be within [{lo}, {hi}], got {steps}")
        self.params.steps_per_frame = int(steps)

    def set_grid_size(self, size: int) -> None:
        """Restart the simulation from scratch at a new size."""
        if int(size) not in GRID_SIZES:
            raise ValueError(f"grid_size must be one of {GRID_SIZES}, got {size}")
        self.simulation.resize(int(size))
        self.params.grid_size = int(size)

    def tick(self, delta: float) -> bool:
        """Account `delta` seconds of wall time; returns True when sweeps ran."""
        self._elapsed += float(delta)
        if self._elapsed <= FRAME_INTERVAL:
            return False
        self._elapsed = 0.0
        self.simulation.step(self.params.steps_per_frame)
        return True
