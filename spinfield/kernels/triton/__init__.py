"""CUDA/Triton backend for the checkerboard update.

Import `spinfield.kernels.triton.substrate` only on hosts with CUDA and the
triton package installed.
"""

from __future__ import annotations

__all__: list[str] = []
