"""Tests for the uniform spatial grid."""

import pytest
from py_citygen.core.spatial_grid import UniformGrid


class TestUniformGrid:
    """Test segment bucketing and queries."""

    def test_invalid_cell_size(self):
        """Test that non-positive cell sizes are rejected."""
        with pytest.raises(ValueError):
            UniformGrid(0)
        with pytest.raises(ValueError):
            UniformGrid(-1.0)

    def test_insert_and_query(self):
        """Test that a segment is found near itself and not far away."""
        grid = UniformGrid(1.0)
        grid.insert(1, (0.2, 0.2), (0.8, 0.4))

        assert grid.query((0.5, 0.5), (0.6, 0.6)) == {1}
        assert grid.query((5.0, 5.0), (6.0, 6.0)) == set()
        assert 1 in grid
        assert len(grid) == 1

    def test_long_segment_spans_cells(self):
        """Test that a segment is indexed in every cell its box touches."""
        grid = UniformGrid(1.0)
        grid.insert(7, (0.5, 0.5), (3.5, 0.5))

        assert grid.query((2.2, 0.2), (2.3, 0.3)) == {7}

    def test_negative_coordinates(self):
        """Test cells left of and below the origin."""
        grid = UniformGrid(2.0)
        grid.insert(3, (-3.0, -3.0), (-2.5, -2.5))

        assert grid.query((-3.5, -3.5), (-3.2, -3.2)) == {3}
        assert grid.query((0.5, 0.5), (1.0, 1.0)) == set()

    def test_update_moves_segment(self):
        """Test that re-inserting an id drops its old cells."""
        grid = UniformGrid(1.0)
        grid.insert(1, (0.0, 0.0), (0.5, 0.5))
        grid.update(1, (5.0, 5.0), (5.5, 5.5))

        assert grid.query((0.1, 0.1), (0.4, 0.4)) == set()
        assert grid.query((5.1, 5.1), (5.2, 5.2)) == {1}
        assert len(grid) == 1

    def test_remove_and_clear(self):
        """Test removal of single ids and clearing."""
        grid = UniformGrid(1.0)
        grid.insert(1, (0.0, 0.0), (0.5, 0.5))
        grid.insert(2, (0.1, 0.1), (0.6, 0.6))
        grid.remove(1)
        grid.remove(99)

        assert grid.query((0.0, 0.0), (1.0, 1.0)) == {2}

        grid.clear()
        assert len(grid) == 0
        assert grid.query((0.0, 0.0), (1.0, 1.0)) == set()
