"""
Headless command-line runner.

Usage:
    python -m surfgrow [--seed S] [--level-curve L] [--steps N] [--log-file PATH]

Example:
    python -m surfgrow --seed 123 --level-curve 0.2 --steps 1000 --log-every 100
"""

import argparse
import logging
import sys

import numpy as np

from surfgrow.core.errors import DegenerateSeedError
from surfgrow.core.growth import GrowthConfig, SurfaceGrowth
from surfgrow.fields import SimplexNoiseField
from surfgrow.logging_config import setup_logging


logger = logging.getLogger("surfgrow.cli")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Grow particles on a simplex-noise isosurface')
    parser.add_argument('--seed', type=int, default=123,
                        help='Noise seed (default: 123)')
    parser.add_argument('--level-curve', type=float, default=0.3,
                        help='Iso-value of the remapped noise (default: 0.3)')
    parser.add_argument('--frequency', type=float, default=1.0,
                        help='Noise frequency (default: 1.0)')
    parser.add_argument('--steps', type=int, default=1000,
                        help='Number of steps to run (default: 1000)')
    parser.add_argument('--target-edge-length', type=float, default=0.05,
                        help='Desired particle spacing (default: 0.05)')
    parser.add_argument('--rng-seed', type=int, default=0,
                        help='Seed for insertion directions (default: 0)')
    parser.add_argument('--log-every', type=int, default=100,
                        help='Log statistics every K steps (default: 100)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--log-file', default=None,
                        help='Also write the log to this file')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    field = SimplexNoiseField(args.seed, args.level_curve, args.frequency)
    config = GrowthConfig(target_edge_length=args.target_edge_length)
    growth = SurfaceGrowth(field, config, rng=np.random.default_rng(args.rng_seed))

    try:
        growth.seed()
    except DegenerateSeedError as exc:
        logger.error("%s", exc)
        return 1

    stats = None
    for stats in growth.run(args.steps):
        if args.log_every > 0 and stats.step % args.log_every == 0:
            logger.info("step %d: particles=%d median=%.4f neighbors=%.2f strength=%.3e",
                        stats.step, stats.particle_count, stats.median_separation,
                        stats.average_neighbors, stats.force_strength)

    if stats is not None:
        logger.info("Finished %d steps with %d particles", stats.step, stats.particle_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
