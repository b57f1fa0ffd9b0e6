import numpy as np
import pytest

from particle_life.force_table import ForceTable


def test_default_pattern_four_colors():
    table = ForceTable.default(4)
    expected = np.array([
        [1.0, -2.0, 0.0, 1.0],
        [1.0, 1.0, -2.0, 0.0],
        [0.0, 1.0, 1.0, -2.0],
        [-2.0, 0.0, 1.0, 1.0],
    ])
    np.testing.assert_array_equal(table.values, expected)


def test_default_pattern_small_color_counts():
    # Successor written last wins where indices coincide.
    assert ForceTable.default(1).tolist() == [[-2.0]]
    assert ForceTable.default(2).tolist() == [[1.0, -2.0], [-2.0, 1.0]]


def test_table_is_a_readonly_copy():
    source = np.zeros((2, 2))
    table = ForceTable(source)
    source[0, 0] = 5.0
    assert table[0, 0] == 0.0
    with pytest.raises(ValueError):
        table.values[0, 0] = 1.0


@pytest.mark.parametrize("matrix", [
    [[0.0, 1.0, 2.0]],
    [[0.0, 1.0], [2.0]],
    [],
    [1.0, 2.0],
])
def test_rejects_non_square(matrix):
    with pytest.raises(ValueError):
        ForceTable(matrix)


def test_rejects_non_finite():
    with pytest.raises(ValueError):
        ForceTable([[0.0, float("nan")], [0.0, 0.0]])


def test_check_colors():
    table = ForceTable.zeros(3)
    table.check_colors(3)
    with pytest.raises(ValueError):
        table.check_colors(4)


def test_random_table_in_bounds_and_seeded():
    a = ForceTable.random(5, -2.0, 1.0, rng=np.random.default_rng(7))
    b = ForceTable.random(5, -2.0, 1.0, rng=np.random.default_rng(7))
    assert a == b
    assert a.values.shape == (5, 5)
    assert a.values.min() >= -2.0
    assert a.values.max() < 1.0


def test_random_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        ForceTable.random(2, 1.0, -1.0)


def test_wrapping_a_table_keeps_values():
    table = ForceTable.default(3)
    assert ForceTable(table) == table
