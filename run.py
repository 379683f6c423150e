#!/usr/bin/env python3
"""Ising Lattice Entrypoint

Headless version of the interactive exhibit:
- drives the control panel with a fixed 60 Hz frame clock
- renders the spin channel through matplotlib
- reports magnetization and energy per site at the end

Usage:
    python run.py                               # 64x64 at T = 2.5
    python run.py --size 256 --temperature 1.8  # ordered phase
    python run.py --backend threads --workers 8
    python run.py --frames 600 --output artifacts/spins.png
"""

from __future__ import annotations

import argparse
from pathlib import Path

from spinfield.console import console
from spinfield.kernels.substrate import BACKENDS
from spinfield.kernels.weights import UpdateRule
from spinfield.lattice.config import SimulationConfig
from spinfield.lattice.simulation import IsingSimulation
from spinfield.lattice.surface import (
    FRAME_INTERVAL,
    GRID_SIZES,
    ControlPanel,
    ControlParams,
    MatplotlibSurface,
)


def main():
    parser = argparse.ArgumentParser(
        description="2D Ising model, checkerboard Monte Carlo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--size", type=int, default=64, choices=GRID_SIZES, help="Grid size per side")
    parser.add_argument("--temperature", type=float, default=2.5, help="Reduced temperature (0, 5]")
    parser.add_argument("--steps-per-frame", type=int, default=1, help="Sweeps per rendered frame (1-10)")
    parser.add_argument("--frames", type=int, default=300, help="Number of frames to run")
    parser.add_argument("--rule", type=str, default=UpdateRule.HEAT_BATH.value, choices=[r.value for r in UpdateRule])
    parser.add_argument("--backend", type=str, default="auto", choices=BACKENDS, help="Compute substrate")
    parser.add_argument("--device", type=str, default=None, help="Device (cuda, mps, cpu)")
    parser.add_argument("--workers", type=int, default=4, help="Worker threads for --backend threads")
    parser.add_argument("--seed", type=int, default=None, help="Seed for spins and per-cell rng seeds")
    parser.add_argument("--output", type=str, default="artifacts/spins.png", help="Where to save the final frame")
    parser.add_argument("--quiet", action="store_true", help="Suppress console output")

    args = parser.parse_args()
    console.quiet = args.quiet

    config = SimulationConfig(
        grid_size=args.size,
        temperature=args.temperature,
        rule=UpdateRule(args.rule),
        seed=args.seed,
        backend=args.backend,
        device=args.device,
        workers=args.workers,
    )

    surface = MatplotlibSurface(title=f"Ising {args.size}x{args.size}, T = {args.temperature:g}")
    simulation = IsingSimulation(config=config, surface=surface)
    panel = ControlPanel(
        simulation,
        ControlParams(
            temperature=args.temperature,
            steps_per_frame=args.steps_per_frame,
            grid_size=args.size,
        ),
    )

    # Slightly longer than one frame interval, so every tick runs a frame.
    delta = FRAME_INTERVAL * 1.01
    with console.spinner(f"Running {args.frames} frames"):
        for _ in range(args.frames):
            panel.tick(delta)

    path = surface.save(Path(args.output))
    surface.close()
    sweeps, m, e = simulation.sweeps, simulation.magnetization(), simulation.energy()
    simulation.close()
    console.success(
        "Completed",
        detail=(
            f"{sweeps} sweeps, m = {m:+.4f}, "
            f"E/N = {e:.4f}, frame saved to {path}"
        ),
    )


if __name__ == "__main__":
    main()
