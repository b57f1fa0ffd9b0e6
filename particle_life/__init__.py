"""Particle life: colored particles under a per-color-pair force table."""
from .config import DEFAULT_CONFIG, SimConfig
from .force_model import force_magnitude, radial_falloff
from .force_table import ForceTable
from .scheduler import FrameScheduler
from .simulation import Simulation, step
from .store import Generation, ParticleStore

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "ForceTable",
    "FrameScheduler",
    "Generation",
    "ParticleStore",
    "SimConfig",
    "Simulation",
    "force_magnitude",
    "radial_falloff",
    "step",
]
