"""Configuration for the particle life simulation."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class SimConfig:
    """Configuration for particle life simulation."""

    # World (toroidal)
    width: float = 1280.0
    height: float = 720.0

    # Particles
    point_size: float = 3.0  # Visual radius and force falloff length scale
    colors_count: int = 4
    n_particles: int = 1000

    # Dynamics (empirically tuned, changing them changes behavior)
    force_scale: float = 100.0
    damping: float = 0.99
    near_factor: float = 10.0
    far_factor: float = 20.0
    min_distance: float = 1.0

    # Scheduling
    frame_interval: float = 1.0 / 60.0
    max_delta_time: Optional[float] = None
    workers: int = 1
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"World size must be positive, got {self.width}x{self.height}")
        if self.point_size <= 0:
            raise ValueError(f"point_size must be positive, got {self.point_size}")
        if self.colors_count < 1:
            raise ValueError(f"colors_count must be >= 1, got {self.colors_count}")
        if self.n_particles < 0:
            raise ValueError(f"n_particles must be >= 0, got {self.n_particles}")
        if not 0.0 < self.damping <= 1.0:
            raise ValueError(f"damping must be in (0, 1], got {self.damping}")
        if not 0.0 < self.near_factor < self.far_factor:
            raise ValueError(
                f"Zone factors must satisfy 0 < near < far, "
                f"got near={self.near_factor} far={self.far_factor}"
            )
        if self.min_distance <= 0:
            raise ValueError(f"min_distance must be positive, got {self.min_distance}")
        if self.frame_interval < 0:
            raise ValueError(f"frame_interval must be >= 0, got {self.frame_interval}")
        if self.max_delta_time is not None and self.max_delta_time <= 0:
            raise ValueError(f"max_delta_time must be positive, got {self.max_delta_time}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    @property
    def near(self) -> float:
        """Distance where short-range repulsion ends."""
        return self.point_size * self.near_factor

    @property
    def far(self) -> float:
        """Distance beyond which no force is felt."""
        return self.point_size * self.far_factor

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for JSON serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimConfig":
        """Create config from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    def replace(self, **changes: Any) -> "SimConfig":
        """Return a copy with the given fields changed."""
        data = self.to_dict()
        data.update(changes)
        return SimConfig.from_dict(data)

    def save(self, filepath: str) -> None:
        """Save configuration to JSON file"""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info("Configuration saved to %s", filepath)

    @classmethod
    def load(cls, filepath: str) -> "SimConfig":
        """Load configuration from JSON file"""
        logger.info("Loading configuration from %s", filepath)
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


DEFAULT_CONFIG = SimConfig()
