"""Per-color-pair affinity table driving attraction and repulsion."""
from __future__ import annotations

from typing import List, Optional, Sequence, Union

import numpy as np

MatrixLike = Union["ForceTable", np.ndarray, Sequence[Sequence[float]]]


class ForceTable:
    """
    Square matrix of signed force coefficients indexed by (color_a, color_b).

    ``table[a, b]`` is the affinity particles of color ``a`` feel toward
    color ``b``; it need not equal ``table[b, a]``. The underlying array is
    copied on construction and marked read-only, so a table is a consistent
    snapshot. Replacing a table means building a new one.
    """

    def __init__(self, matrix: MatrixLike):
        if isinstance(matrix, ForceTable):
            values = matrix.values
        else:
            values = np.array(matrix, dtype=float)

        if values.ndim != 2 or values.shape[0] != values.shape[1] or values.shape[0] == 0:
            raise ValueError(f"Force table must be a non-empty square matrix, got shape {values.shape}")
        if not np.all(np.isfinite(values)):
            raise ValueError("Force table contains non-finite values")

        values = values.copy()
        values.flags.writeable = False
        self._values = values

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def colors_count(self) -> int:
        return self._values.shape[0]

    def __getitem__(self, key):
        return self._values[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ForceTable):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __repr__(self) -> str:
        return f"ForceTable(colors_count={self.colors_count})"

    def tolist(self) -> List[List[float]]:
        return self._values.tolist()

    def check_colors(self, colors_count: int) -> None:
        """Raise if the table does not match ``colors_count``."""
        if self.colors_count != colors_count:
            raise ValueError(
                f"Matrix shape {self._values.shape} doesn't match "
                f"colors count {colors_count}"
            )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, colors_count: int) -> "ForceTable":
        return cls(np.zeros((colors_count, colors_count)))

    @classmethod
    def default(cls, colors_count: int) -> "ForceTable":
        """
        Build the default chase pattern.

        Every color repels itself and its predecessor with +1.0 and feels
        -2.0 toward its successor. Entries are written in that order, so with
        one or two colors the successor value wins where indices coincide.
        """
        if colors_count < 1:
            raise ValueError(f"colors_count must be >= 1, got {colors_count}")
        matrix = np.zeros((colors_count, colors_count))
        for k in range(colors_count):
            matrix[k, k] = 1.0
            matrix[k, (k - 1) % colors_count] = 1.0
            matrix[k, (k + 1) % colors_count] = -2.0
        return cls(matrix)

    @classmethod
    def random(
        cls,
        colors_count: int,
        low: float = -1.0,
        high: float = 1.0,
        rng: Optional[np.random.Generator] = None,
    ) -> "ForceTable":
        """Uniform random coefficients in [low, high)."""
        if low > high:
            raise ValueError(f"low ({low}) must not exceed high ({high})")
        rng = rng if rng is not None else np.random.default_rng()
        return cls(rng.uniform(low, high, (colors_count, colors_count)))
