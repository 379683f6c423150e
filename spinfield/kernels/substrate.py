"""Compute substrates: execute a per-cell kernel over the whole lattice.

Every substrate honors the same contract for one dispatch:
- read neighbor spins and cell state from the field's front buffer only,
- write results to the back buffer only,
- swap buffers once every cell is done (the barrier).

Available backends:
- `torch`:      whole-grid tensor ops on any torch device
- `threads`:    row bands on a thread pool, joined before the swap
- `sequential`: the scalar kernel per cell in shuffled order (reference)
- `triton`:     fused CUDA kernel, see `spinfield.kernels.triton`
"""

from __future__ import annotations

import numbers
import random
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import torch

from spinfield.errors import InvalidGridSize, SubstrateInitError
from spinfield.kernels.checkerboard import CheckerboardKernel, DispatchParams
from spinfield.kernels.runtime import CHANNELS_PER_CELL, MAX_ELEMENTS, get_device, triton_supported
from spinfield.lattice.field import FieldState

__all__ = [
    "BACKENDS",
    "ComputeSubstrate",
    "TorchSubstrate",
    "ThreadedSubstrate",
    "SequentialSubstrate",
    "make_substrate",
]

BACKENDS: tuple[str, ...] = ("auto", "torch", "threads", "sequential", "triton")


class ComputeSubstrate(ABC):
    """Executes a kernel once per cell per dispatch."""

    name: str = "abstract"

    def __init__(self, device: torch.device | str = "cpu", *, max_elements: int = MAX_ELEMENTS) -> None:
        try:
            self.device = torch.device(device)
        except (RuntimeError, TypeError) as err:
            raise SubstrateInitError(f"Invalid device {device!r}: {err}") from err
        self.max_elements = int(max_elements)

    def validate_size(self, size: object) -> int:
        """Return `size` as an int, or raise InvalidGridSize."""
        if isinstance(size, bool) or not isinstance(size, numbers.Integral):
            raise InvalidGridSize(f"grid size must be an integer, got {size!r}")
        size = int(size)
        if size <= 0:
            raise InvalidGridSize(f"grid size must be > 0, got {size}")
        elements = size * size * CHANNELS_PER_CELL
        if elements > self.max_elements:
            raise InvalidGridSize(
                f"grid size {size} needs {elements} elements, "
                f"substrate '{self.name}' supports at most {self.max_elements}"
            )
        return size

    def allocate(self, size: int, generator: torch.Generator) -> FieldState:
        """Allocate a freshly randomized field on this substrate's device."""
        n = self.validate_size(size)
        return FieldState.random(n, generator, device=self.device)

    def resolution(self, field: FieldState, params: DispatchParams) -> int:
        """Grid resolution a dispatch runs at; must match the field when given."""
        n = int(params.resolution) or field.size
        if n != field.size:
            raise ValueError(f"dispatch resolution {n} does not match the {field.size}x{field.size} field")
        return n

    def close(self) -> None:
        """Release worker resources; the base substrate holds none."""

    @abstractmethod
    def dispatch(self, kernel: CheckerboardKernel, field: FieldState, params: DispatchParams) -> None:
        """Run `kernel` over every cell of `field`, then swap its buffers."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(device={str(self.device)!r})"


class TorchSubstrate(ComputeSubstrate):
    """Whole-grid tensor dispatch."""

    name = "torch"

    def dispatch(self, kernel: CheckerboardKernel, field: FieldState, params: DispatchParams) -> None:
        self.resolution(field, params)
        neighbor_sum = field.neighbor_sum()
        spins, states = kernel(field.spins, field.rng, neighbor_sum, field.colors, params)
        field.back_spins.copy_(spins)
        field.back_rng.copy_(states)
        field.swap()


class ThreadedSubstrate(ComputeSubstrate):
    """Disjoint row bands executed on a worker pool."""

    name = "threads"

    def __init__(self, device: torch.device | str = "cpu", *, workers: int = 4, max_elements: int = MAX_ELEMENTS) -> None:
        super().__init__(device, max_elements=max_elements)
        if int(workers) < 1:
            raise SubstrateInitError(f"workers must be >= 1, got {workers}")
        self.workers = int(workers)
        self._pool: Optional[ThreadPoolExecutor] = None

    def _executor(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="spinfield")
        return self._pool

    def _bands(self, size: int) -> list[tuple[int, int]]:
        count = min(self.workers, size)
        edges = [(size * i) // count for i in range(count + 1)]
        return [(edges[i], edges[i + 1]) for i in range(count) if edges[i] < edges[i + 1]]

    def dispatch(self, kernel: CheckerboardKernel, field: FieldState, params: DispatchParams) -> None:
        n = self.resolution(field, params)

        def run_band(band: tuple[int, int]) -> None:
            start, stop = band
            neighbor_sum = field.neighbor_sum(start, stop)
            spins, states = kernel(
                field.spins[start:stop],
                field.rng[start:stop],
                neighbor_sum,
                field.colors[start:stop],
                params,
            )
            field.back_spins[start:stop].copy_(spins)
            field.back_rng[start:stop].copy_(states)

        # Consuming the iterator joins every band and re-raises worker errors.
        list(self._executor().map(run_band, self._bands(n)))
        field.swap()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __del__(self) -> None:
        pool = getattr(self, "_pool", None)
        if pool is not None:
            pool.shutdown(wait=False)


class SequentialSubstrate(ComputeSubstrate):
    """Calls the scalar kernel once per cell, in a shuffled order.

    Slow; meant for small lattices and for checking that results do not
    depend on the order in which cells run.
    """

    name = "sequential"

    def __init__(self, device: torch.device | str = "cpu", *, order_seed: int = 0, max_elements: int = MAX_ELEMENTS) -> None:
        super().__init__(device, max_elements=max_elements)
        self._order = random.Random(order_seed)

    def dispatch(self, kernel: CheckerboardKernel, field: FieldState, params: DispatchParams) -> None:
        n = self.resolution(field, params)
        spins = field.spins.to("cpu").tolist()
        states = field.rng.to("cpu").tolist()
        thresholds = [int(t) for t in params.thresholds.to("cpu").tolist()]
        out_spins = [row[:] for row in spins]
        out_states = [row[:] for row in states]

        cells = [(x, y) for y in range(n) for x in range(n)]
        self._order.shuffle(cells)
        for x, y in cells:
            neighbor_sum = (
                spins[(y + 1) % n][x]
                + spins[(y - 1) % n][x]
                + spins[y][(x - 1) % n]
                + spins[y][(x + 1) % n]
            )
            out_spins[y][x], out_states[y][x] = kernel.cell(
                spins[y][x],
                states[y][x],
                neighbor_sum,
                (x + y) % 2,
                int(params.target_color),
                thresholds,
                params.rule,
            )

        field.back_spins.copy_(torch.tensor(out_spins, dtype=torch.uint8))
        field.back_rng.copy_(torch.tensor(out_states, dtype=torch.int64))
        field.swap()


def make_substrate(
    backend: str = "auto",
    device: Optional[str] = None,
    *,
    workers: int = 4,
) -> ComputeSubstrate:
    """Build a substrate by backend name.

    "auto" prefers the Triton kernel on CUDA and falls back to whole-grid
    torch dispatch on the detected device.
    """
    backend = str(backend).lower()
    if backend not in BACKENDS:
        raise SubstrateInitError(f"Unknown backend {backend!r}; expected one of {BACKENDS}")

    if backend == "auto":
        if (device is None or str(device).startswith("cuda")) and triton_supported():
            backend = "triton"
        else:
            backend = "torch"

    if backend == "triton":
        # Imported lazily: the triton package is only present on CUDA hosts.
        from spinfield.kernels.triton.substrate import TritonSubstrate

        return TritonSubstrate(device or "cuda")

    device = device or get_device()
    if str(device).startswith("cuda") and not torch.cuda.is_available():
        raise SubstrateInitError(f"Device {device!r} requested but CUDA is not available")
    if backend == "threads":
        return ThreadedSubstrate(device, workers=workers)
    if backend == "sequential":
        return SequentialSubstrate(device)
    return TorchSubstrate(device)
