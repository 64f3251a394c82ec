"""
Metal Boids Simulation
======================

Headless flocking run: thousands of boids stepped by a Metal compute
shader (or the Numba CPU kernel when Metal is unavailable).

Usage:
    python main.py                       # defaults from config/boids.py
    python main.py --boids 2000 --frames 600 --device cpu
    python main.py --cycle-every 300     # rotate attractor/repellor modes
"""

import argparse
import sys

from config import boids as config
from boids import BoidError
from core import Application


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Headless boids flocking simulation")
    parser.add_argument("--boids", type=int, default=config.BOIDS["count"],
                        help="Number of boids (default: %(default)s)")
    parser.add_argument("--frames", type=int, default=None,
                        help="Stop after this many frames (default: run until Ctrl+C)")
    parser.add_argument("--device", choices=["metal", "cpu"], default=config.BOIDS["device"],
                        help="Compute device (default: auto-detect)")
    parser.add_argument("--seed", type=int, default=config.BOIDS["seed"],
                        help="Random seed for reproducible runs")
    parser.add_argument("--cycle-every", type=int, default=None,
                        help="Advance the force mode every N frames")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    try:
        app = Application(num_boids=args.boids, seed=args.seed, device_name=args.device)
    except BoidError as e:
        print(f"[Boids] Startup failed: {e}")
        return 1

    app.run(frames=args.frames, cycle_every=args.cycle_every)
    return 0


if __name__ == "__main__":
    sys.exit(main())
