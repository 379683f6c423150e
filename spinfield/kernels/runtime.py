"""Backend availability detection (Triton + CUDA/MPS)

The lattice engine runs anywhere PyTorch runs. On CUDA hosts with Triton
installed the checkerboard update is launched as a fused Triton kernel; every
other device executes the same update as whole-grid tensor operations.
"""

from __future__ import annotations

import importlib.util
import platform
from typing import TYPE_CHECKING

import torch

__all__ = [
    "MAX_ELEMENTS",
    "CHANNELS_PER_CELL",
    "triton_supported",
    "metal_supported",
    "get_device",
]

# [CHOICE] backing buffer element limit
# [FORMULA] N * N * CHANNELS_PER_CELL <= 2**32 - 1
# [NOTES] The grid is laid out like an RGBA texture: spin, rng state, two unused
#         channels. Sizes past 8192 per side exceed what the exhibit ever allocated.
MAX_ELEMENTS: int = 2**32 - 1
CHANNELS_PER_CELL: int = 4


def has_module(name: str) -> bool:
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError, AttributeError):
        return False


def triton_supported() -> bool:
    """Whether Triton kernels can be launched (CUDA device + triton package)."""
    if not torch.cuda.is_available():
        return False
    return bool(has_module("triton") and has_module("triton.language"))


def metal_supported() -> bool:
    """Whether the current runtime can execute on Apple Silicon (MPS)."""
    if TYPE_CHECKING:
        return False

    if platform.system() != "Darwin":
        return False

    try:
        return bool(torch.backends.mps.is_available())
    except (AttributeError, RuntimeError):
        return False


def get_device() -> str:
    """Get the device to run the lattice on."""
    if torch.cuda.is_available():
        return "cuda"
    if metal_supported():
        return "mps"

    return "cpu"
