"""CUDA/Triton compute substrate.

Runs the fused checkerboard kernel instead of the tensor form. Kernels are
looked up by name; only kernels with a compiled Triton counterpart can be
dispatched here.
"""

from __future__ import annotations

import torch

from spinfield.errors import SubstrateInitError
from spinfield.kernels.checkerboard import CheckerboardKernel, DispatchParams
from spinfield.kernels.runtime import MAX_ELEMENTS, triton_supported
from spinfield.kernels.substrate import ComputeSubstrate
from spinfield.lattice.field import FieldState

__all__ = ["TritonSubstrate"]


class TritonSubstrate(ComputeSubstrate):
    """Fused CUDA kernel dispatch."""

    name = "triton"

    def __init__(self, device: torch.device | str = "cuda", *, block: int = 1024, max_elements: int = MAX_ELEMENTS) -> None:
        super().__init__(device, max_elements=max_elements)
        if self.device.type != "cuda":
            raise SubstrateInitError(f"TritonSubstrate requires a CUDA device, got '{self.device}'")
        if not torch.cuda.is_available():
            raise SubstrateInitError("CUDA not available")
        if not triton_supported():
            raise SubstrateInitError("Triton is not installed")

        from spinfield.kernels.triton import checkerboard_kernels

        self._launchers = {
            CheckerboardKernel.name: checkerboard_kernels.launch_checkerboard_update,
        }
        self.block = int(block)

    def dispatch(self, kernel: CheckerboardKernel, field: FieldState, params: DispatchParams) -> None:
        launch = self._launchers.get(getattr(kernel, "name", None))
        if launch is None:
            raise NotImplementedError(f"No Triton implementation for kernel {kernel!r}")
        launch(
            field.spins,
            field.rng,
            field.back_spins,
            field.back_rng,
            params.thresholds.to(device=field.device, dtype=torch.int64).contiguous(),
            size=self.resolution(field, params),
            target_color=int(params.target_color),
            toggle=params.toggles,
            block=self.block,
        )
        field.swap()
