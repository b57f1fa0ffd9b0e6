"""Command-line entry point: run headless or serve the API."""
from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from .config import SimConfig
from .logging_config import setup_logging
from .presets import get_preset
from .simulation import Simulation

logger = logging.getLogger("particle_life.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="particle_life", description="Particle Life Simulation")
    parser.add_argument("--config", type=str, help="Path to configuration file to load")
    parser.add_argument("--preset", type=str, help="Start from a named force table preset")
    parser.add_argument("--steps", type=int, default=600, help="Steps to run in headless mode")
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Seconds per headless step")
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str, default=None)
    parser.add_argument("--serve", action="store_true", help="Run the HTTP/WebSocket service")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def load_config(path: Optional[str]) -> SimConfig:
    if path:
        if os.path.exists(path):
            return SimConfig.load(path)
        logger.warning("Configuration file %s not found, using default", path)
    return SimConfig()


def run_headless(simulation: Simulation, steps: int, dt: float, log_every: int = 100) -> None:
    for i in range(1, steps + 1):
        simulation.step(dt)
        if i % log_every == 0:
            logger.info("Step %d/%d, avg speed %.3f", i, steps, simulation.average_speed())
    logger.info("Finished %d steps, t=%.2f", steps, simulation.t)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    if args.serve:
        import uvicorn

        uvicorn.run("particle_life.api:app", host=args.host, port=args.port)
        return 0

    config = load_config(args.config)
    matrix = None
    if args.preset:
        preset = get_preset(args.preset)
        config = config.replace(colors_count=preset.colors_count)
        matrix = preset.table

    simulation = Simulation(config, matrix=matrix)
    try:
        run_headless(simulation, args.steps, args.dt)
    finally:
        simulation.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
