"""Preset scenarios with different color counts and force tables."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .force_table import ForceTable


@dataclass
class Preset:
    """A preset scenario with colors count and force table."""
    name: str
    description: str
    table: ForceTable

    @property
    def colors_count(self) -> int:
        return self.table.colors_count


# ============================================================================
# Preset Definitions
# ============================================================================

# Rows are the color feeling the force, columns the color it feels it toward.
# Positive entries attract in the mid-range shell, negative entries repel there.

DEFAULT = Preset(
    name="default",
    description="4-color default table: +1.0 toward self and predecessor, -2.0 toward successor",
    table=ForceTable.default(4),
)

# 2-colors: Guards and Workers (Containment)
GUARDS_WORKERS = Preset(
    name="guards_workers",
    description="2-color table: color 0 negative toward both colors, color 1 positive toward color 0 and negative toward itself",
    table=ForceTable([
        [-0.9, -0.6],   # Guards: negative toward Guards and Workers
        [+0.3, -0.2],   # Workers: positive toward Guards, negative toward Workers
    ]),
)

# 3-colors: Cyclic interactions (Rock-Paper-Scissors)
CYCLIC = Preset(
    name="cyclic",
    description="3-color cyclic table: +0.2 toward self, +0.4 toward predecessor, -0.9 toward successor",
    table=ForceTable([
        [+0.2, -0.9, +0.4],
        [+0.4, +0.2, -0.9],
        [-0.9, +0.4, +0.2],
    ]),
)

# 3-colors: Flocking behavior
FLOCKING = Preset(
    name="flocking",
    description="3-color symmetric table: +0.6 toward self, +0.3 toward every other color",
    table=ForceTable([
        [+0.6, +0.3, +0.3],
        [+0.3, +0.6, +0.3],
        [+0.3, +0.3, +0.6],
    ]),
)

# 4-colors: Complex ecosystem
ECOSYSTEM = Preset(
    name="ecosystem",
    description="4-color asymmetric table mixing positive and negative entries",
    table=ForceTable([
        [-0.2, +0.8, -0.4, +0.3],
        [-0.6, -0.3, +0.7, -0.2],
        [+0.4, -0.5, -0.1, +0.6],
        [-0.3, +0.5, -0.7, -0.2],
    ]),
)

# 5-colors: Chaos
CHAOS = Preset(
    name="chaos",
    description="5-color asymmetric table: negative diagonal, large mixed-sign off-diagonal entries",
    table=ForceTable([
        [-0.5, +0.9, -0.7, +0.4, -0.6],
        [-0.8, -0.4, +0.6, -0.5, +0.7],
        [+0.7, -0.6, -0.3, +0.8, -0.4],
        [-0.4, +0.5, -0.9, -0.2, +0.6],
        [+0.6, -0.7, +0.4, -0.8, -0.3],
    ]),
)


# ============================================================================
# Preset Registry
# ============================================================================

PRESETS: Dict[str, Preset] = {
    preset.name: preset
    for preset in (DEFAULT, GUARDS_WORKERS, CYCLIC, FLOCKING, ECOSYSTEM, CHAOS)
}


def list_presets() -> List[Preset]:
    """Return list of all available presets."""
    return list(PRESETS.values())


def get_preset(name: str) -> Preset:
    """Get preset by name."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]
