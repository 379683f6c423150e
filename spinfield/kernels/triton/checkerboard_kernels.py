"""Triton kernel for the checkerboard Ising update (CUDA).

Mirrors `spinfield.kernels.checkerboard.CheckerboardKernel` cell for cell:
- one program handles BLOCK consecutive cells of the row-major grid,
- neighbor spins are loaded from the input buffer, results go to the output
  buffer, so a launch never reads its own writes.

All tensors are expected to be CUDA and contiguous:
- spins:      uint8 [N*N]
- rng:        int64 [N*N] holding uint32 values
- thresholds: int64 [5]
"""

from __future__ import annotations

import triton
import triton.language as tl

from spinfield.kernels.rng import MASK, MULTIPLIER


@triton.jit
def checkerboard_update_kernel(
    spin_in_ptr,      # uint8 [N*N]
    rng_in_ptr,       # int64 [N*N]
    spin_out_ptr,     # uint8 [N*N]
    rng_out_ptr,      # int64 [N*N]
    thresholds_ptr,   # int64 [5]
    N,
    target_color,
    MULT: tl.constexpr,
    RNG_MASK: tl.constexpr,
    TOGGLE: tl.constexpr,
    BLOCK: tl.constexpr,
):
    pid = tl.program_id(0)
    idx = pid * BLOCK + tl.arange(0, BLOCK)
    mask = idx < N * N

    y = idx // N
    x = idx % N

    spin = tl.load(spin_in_ptr + idx, mask=mask, other=0).to(tl.int64)
    state = tl.load(rng_in_ptr + idx, mask=mask, other=1)
    state = (state * MULT) & RNG_MASK

    up = ((y + 1) % N) * N + x
    down = ((y + N - 1) % N) * N + x
    left = y * N + (x + N - 1) % N
    right = y * N + (x + 1) % N
    nb = tl.load(spin_in_ptr + up, mask=mask, other=0).to(tl.int64)
    nb += tl.load(spin_in_ptr + down, mask=mask, other=0).to(tl.int64)
    nb += tl.load(spin_in_ptr + left, mask=mask, other=0).to(tl.int64)
    nb += tl.load(spin_in_ptr + right, mask=mask, other=0).to(tl.int64)

    if TOGGLE:
        bucket = tl.where(spin == 1, nb, 4 - nb)
    else:
        bucket = nb
    threshold = tl.load(thresholds_ptr + bucket, mask=mask, other=0)
    accept = state < threshold

    if TOGGLE:
        candidate = tl.where(accept, 1 - spin, spin)
    else:
        candidate = tl.where(accept, 0, 1).to(tl.int64)

    active = ((x + y) & 1) == target_color
    new_spin = tl.where(active, candidate, spin)

    tl.store(spin_out_ptr + idx, new_spin.to(tl.uint8), mask=mask)
    tl.store(rng_out_ptr + idx, state, mask=mask)


def launch_checkerboard_update(
    spin_in,
    rng_in,
    spin_out,
    rng_out,
    thresholds,
    *,
    size: int,
    target_color: int,
    toggle: bool,
    block: int = 1024,
) -> None:
    n_cells = int(size) * int(size)
    grid = (triton.cdiv(n_cells, block),)
    checkerboard_update_kernel[grid](
        spin_in,
        rng_in,
        spin_out,
        rng_out,
        thresholds,
        int(size),
        int(target_color),
        MULT=MULTIPLIER,
        RNG_MASK=MASK,
        TOGGLE=bool(toggle),
        BLOCK=block,
    )
