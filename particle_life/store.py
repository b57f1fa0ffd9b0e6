"""Double-buffered particle state."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Generation:
    """One complete snapshot of all particles' state."""
    positions: np.ndarray   # Shape (N, 2)
    velocities: np.ndarray  # Shape (N, 2)

    @classmethod
    def empty(cls, n: int) -> "Generation":
        return cls(np.zeros((n, 2)), np.zeros((n, 2)))

    def __len__(self) -> int:
        return self.positions.shape[0]

    def readonly(self) -> "Generation":
        """Views of the same buffers that refuse writes."""
        positions = self.positions.view()
        velocities = self.velocities.view()
        positions.flags.writeable = False
        velocities.flags.writeable = False
        return Generation(positions, velocities)

    def copy(self) -> "Generation":
        return Generation(self.positions.copy(), self.velocities.copy())

    def shares_memory(self, other: "Generation") -> bool:
        return (
            np.shares_memory(self.positions, other.positions)
            or np.shares_memory(self.velocities, other.velocities)
            or np.shares_memory(self.positions, other.velocities)
            or np.shares_memory(self.velocities, other.positions)
        )


Writer = Callable[[Generation, Generation], None]


def validate_color_ids(color_ids: np.ndarray, colors_count: int) -> np.ndarray:
    """Return a read-only int copy of ``color_ids``; every id must lie in [0, colors_count)."""
    ids = np.array(color_ids, dtype=np.int64)
    if ids.ndim != 1:
        raise ValueError(f"Color ids must be one-dimensional, got shape {ids.shape}")
    if ids.size and (ids.min() < 0 or ids.max() >= colors_count):
        bad = ids[(ids < 0) | (ids >= colors_count)]
        raise ValueError(
            f"Color ids out of range [0, {colors_count}): {sorted(set(bad.tolist()))}"
        )
    ids.flags.writeable = False
    return ids


class ParticleStore:
    """
    Two fixed-size generation buffers used ping-pong style.

    Exactly one buffer is exposed as ``current()``; ``advance`` hands the
    other one to a writer and then flips the parity, so the buffer just
    written becomes current and the previous current becomes the next write
    target. Buffers are allocated once and never reallocated.
    """

    def __init__(
        self,
        positions: np.ndarray,
        color_ids: np.ndarray,
        colors_count: int,
        velocities: Optional[np.ndarray] = None,
    ):
        positions = np.array(positions, dtype=float).reshape(-1, 2)
        n = positions.shape[0]
        if velocities is None:
            velocities = np.zeros((n, 2))
        else:
            velocities = np.array(velocities, dtype=float).reshape(-1, 2)
            if velocities.shape != positions.shape:
                raise ValueError(
                    f"Velocities shape {velocities.shape} doesn't match positions shape {positions.shape}"
                )

        self.color_ids = validate_color_ids(color_ids, colors_count)
        if self.color_ids.shape[0] != n:
            raise ValueError(f"Got {self.color_ids.shape[0]} color ids for {n} particles")
        self.colors_count = colors_count

        self._buffers = (Generation(positions, velocities), Generation.empty(n))
        self._parity = 0

    @classmethod
    def random(
        cls,
        n: int,
        colors_count: int,
        width: float,
        height: float,
        rng: Optional[np.random.Generator] = None,
        color_ids: Optional[np.ndarray] = None,
    ) -> "ParticleStore":
        """Uniform random positions in the world, zero velocity, random colors unless given."""
        rng = rng if rng is not None else np.random.default_rng()
        positions = rng.uniform([0, 0], [width, height], (n, 2))
        if color_ids is None:
            color_ids = rng.integers(0, colors_count, n)
        store = cls(positions, color_ids, colors_count)
        logger.debug("ParticleStore created: %d particles, %d colors", n, colors_count)
        return store

    def __len__(self) -> int:
        return len(self._buffers[0])

    @property
    def parity(self) -> int:
        """Index (0 or 1) of the buffer currently exposed as current."""
        return self._parity

    def current(self) -> Generation:
        return self._buffers[self._parity].readonly()

    def advance(self, writer: Writer) -> Generation:
        """
        Let ``writer(current, next)`` fill the next buffer, then flip parity.

        The parity is left untouched if the writer raises.
        """
        current = self._buffers[self._parity]
        target = self._buffers[1 - self._parity]
        writer(current.readonly(), target)
        self._parity = 1 - self._parity
        return self.current()

    def reset_positions(self, positions: np.ndarray) -> None:
        """Overwrite the current buffer in place and zero its velocities."""
        current = self._buffers[self._parity]
        current.positions[...] = positions
        current.velocities[...] = 0.0
