"""Particle life simulation with a two-zone force law and double-buffered state."""
from __future__ import annotations

import colorsys
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .config import SimConfig
from .force_model import falloff_array
from .force_table import ForceTable, MatrixLike
from .store import Generation, ParticleStore

logger = logging.getLogger(__name__)

# Rows per work item; bounds the (rows, N, 2) temporaries of the all-pairs pass.
CHUNK_ROWS = 256


# ============================================================================
# Step kernel
# ============================================================================

def compute_forces(
    positions: np.ndarray,
    color_ids: np.ndarray,
    table: ForceTable,
    config: SimConfig,
    start: int,
    stop: int,
) -> np.ndarray:
    """
    Net force on particles ``start:stop`` from every particle.

    Direction is from i toward j, so a positive magnitude pulls i toward j.
    Distances are plain Euclidean; pairs below ``min_distance`` (the self
    pair included) contribute nothing.
    """
    delta = positions[np.newaxis, :, :] - positions[start:stop, np.newaxis, :]
    dist = np.sqrt(np.einsum("ijk,ijk->ij", delta, delta))

    falloff = falloff_array(
        dist, config.point_size, config.near_factor, config.far_factor, config.min_distance
    )
    base = table.values[color_ids[start:stop, np.newaxis], color_ids[np.newaxis, :]]
    magnitude = base * falloff

    # Zero-magnitude pairs are skipped so near-zero distances never divide.
    active = magnitude != 0.0
    scale = np.zeros_like(dist)
    np.divide(magnitude, dist, out=scale, where=active)
    return np.einsum("ij,ijk->ik", scale, delta)


def wrap(positions: np.ndarray, width: float, height: float) -> np.ndarray:
    """Toroidal wrap in place; results land in [0, width) x [0, height)."""
    bounds = np.array([width, height])
    np.mod(positions, bounds, out=positions)
    # Tiny negative inputs can round up to exactly the bound.
    positions[positions >= bounds] = 0.0
    return positions


def _integrate_range(
    current: Generation,
    color_ids: np.ndarray,
    table: ForceTable,
    config: SimConfig,
    delta_time: float,
    out: Generation,
    start: int,
    stop: int,
) -> None:
    force = compute_forces(current.positions, color_ids, table, config, start, stop)

    velocities = out.velocities[start:stop]
    np.multiply(force, delta_time * config.force_scale, out=velocities)
    velocities += current.velocities[start:stop]
    velocities *= config.damping

    positions = out.positions[start:stop]
    np.multiply(velocities, delta_time, out=positions)
    positions += current.positions[start:stop]
    wrap(positions, config.width, config.height)


def chunk_ranges(n: int, chunk_rows: int = CHUNK_ROWS) -> List[Tuple[int, int]]:
    """Contiguous ``(start, stop)`` index ranges covering ``range(n)``."""
    return [(start, min(start + chunk_rows, n)) for start in range(0, n, chunk_rows)]


def step(
    current: Generation,
    color_ids: np.ndarray,
    table: ForceTable,
    config: SimConfig,
    delta_time: float,
    out: Optional[Generation] = None,
    executor: Optional[Executor] = None,
    chunk_rows: int = CHUNK_ROWS,
) -> Generation:
    """
    Compute the next generation from ``current`` into ``out``.

    Reads only ``current`` and writes only ``out``; the two must not share
    memory. Every particle's update is independent, so index ranges may be
    dispatched to ``executor``; all ranges complete before this returns.

    Args:
        current: Generation to read
        color_ids: Color id per particle
        table: Force table snapshot for the whole step
        config: World bounds, point size and integration constants
        delta_time: Seconds since the previous step
        out: Generation to write (allocated when omitted)
        executor: Optional pool to run index ranges in parallel

    Returns:
        The written generation
    """
    n = len(current)
    if out is None:
        out = Generation.empty(n)
    if len(out) != n or color_ids.shape[0] != n:
        raise ValueError(
            f"Size mismatch: current={n}, out={len(out)}, color_ids={color_ids.shape[0]}"
        )
    if n == 0:
        return out
    if out.shares_memory(current):
        raise ValueError("Output generation must not alias the current generation")

    ranges = chunk_ranges(n, chunk_rows)
    args = (current, color_ids, table, config, delta_time, out)
    if executor is None or len(ranges) == 1:
        for start, stop in ranges:
            _integrate_range(*args, start, stop)
    else:
        futures = [executor.submit(_integrate_range, *args, start, stop) for start, stop in ranges]
        for future in futures:
            future.result()
    return out


def generate_colors(n: int) -> List[Tuple[int, int, int, int]]:
    """Distinct RGBA colors (0-255) for each color id, hues evenly spaced."""
    colors = []
    for i in range(n):
        hue = i / n
        rgb = colorsys.hsv_to_rgb(hue, 0.8, 0.9)
        colors.append(tuple(int(c * 255) for c in rgb) + (255,))
    return colors


# ============================================================================
# Simulation
# ============================================================================

class Simulation:
    """
    Particle life simulation over a toroidal world.

    Owns the double-buffered particle store and the current force table.
    The table may be replaced between steps; a step always works on the one
    table it picked up when it began.
    """

    def __init__(
        self,
        config: SimConfig,
        matrix: Optional[MatrixLike] = None,
        color_ids: Optional[np.ndarray] = None,
    ):
        self.config = config
        self.rng = np.random.default_rng(config.seed)

        # Force table F[a][b] = affinity of color a toward color b
        if matrix is not None:
            table = ForceTable(matrix)
        else:
            table = ForceTable.default(config.colors_count)
        table.check_colors(config.colors_count)
        self._table = table
        self._table_lock = threading.Lock()

        self.store = ParticleStore.random(
            config.n_particles,
            config.colors_count,
            config.width,
            config.height,
            rng=self.rng,
            color_ids=color_ids,
        )

        self._executor: Optional[ThreadPoolExecutor] = None
        if config.workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=config.workers, thread_name_prefix="particle-life"
            )

        # Time
        self.t = 0.0
        self.step_count = 0

        logger.info(
            "Simulation initialized: %d particles, %d colors, world %gx%g, %d worker(s)",
            config.n_particles, config.colors_count, config.width, config.height, config.workers,
        )

    @property
    def table(self) -> ForceTable:
        with self._table_lock:
            return self._table

    @property
    def matrix(self) -> np.ndarray:
        return self.table.values

    @property
    def color_ids(self) -> np.ndarray:
        return self.store.color_ids

    @property
    def n_particles(self) -> int:
        return len(self.store)

    def current(self) -> Generation:
        """Read-only view of the most recently completed generation."""
        return self.store.current()

    def step(self, delta_time: float) -> Generation:
        """Advance simulation by ``delta_time`` seconds."""
        if delta_time < 0:
            raise ValueError(f"delta_time must be >= 0, got {delta_time}")
        if self.n_particles == 0:
            return self.current()

        table = self.table

        def writer(current: Generation, target: Generation) -> None:
            step(
                current,
                self.store.color_ids,
                table,
                self.config,
                delta_time,
                out=target,
                executor=self._executor,
            )

        generation = self.store.advance(writer)
        self.step_count += 1
        self.t += delta_time
        return generation

    def set_matrix(self, matrix: MatrixLike) -> None:
        """Replace the force table wholesale; takes effect from the next step."""
        table = ForceTable(matrix)
        table.check_colors(self.config.colors_count)
        with self._table_lock:
            self._table = table
        logger.info("Force table replaced (%dx%d)", table.colors_count, table.colors_count)

    set_table = set_matrix

    def randomize_matrix(self, low: float = -1.0, high: float = 1.0) -> ForceTable:
        """Replace the force table with uniform random values in [low, high)."""
        table = ForceTable.random(self.config.colors_count, low, high, rng=self.rng)
        self.set_matrix(table)
        return table

    randomize_table = randomize_matrix

    def reset(self) -> None:
        """Scatter particles again with zero velocity; colors and count are kept."""
        self.rng = np.random.default_rng(self.config.seed)
        positions = self.rng.uniform(
            [0, 0],
            [self.config.width, self.config.height],
            (self.n_particles, 2),
        )
        self.store.reset_positions(positions)
        self.t = 0.0
        self.step_count = 0
        logger.info("Simulation reset")

    def average_speed(self) -> float:
        velocities = self.current().velocities
        if len(velocities) == 0:
            return 0.0
        return float(np.linalg.norm(velocities, axis=1).mean())

    def get_state(self) -> Dict[str, Any]:
        """Get current state for API/visualization."""
        generation = self.current()
        return {
            "width": self.config.width,
            "height": self.config.height,
            "point_size": self.config.point_size,
            "t": self.t,
            "step": self.step_count,
            "colors_count": self.config.colors_count,
            "palette": [list(color) for color in generate_colors(self.config.colors_count)],
            "particles": [
                {
                    "id": i,
                    "color": int(self.store.color_ids[i]),
                    "x": float(generation.positions[i, 0]),
                    "y": float(generation.positions[i, 1]),
                    "vx": float(generation.velocities[i, 0]),
                    "vy": float(generation.velocities[i, 1]),
                }
                for i in range(self.n_particles)
            ],
        }

    def close(self) -> None:
        """Shut down the worker pool, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
