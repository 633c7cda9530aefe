"""Tests for planar face extraction."""

import pytest
from py_citygen.core.region_extractor import RegionExtractor, extract_regions

SQUARE_VERTICES = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
SQUARE_EDGES = [(0, 1), (1, 2), (2, 3), (3, 0)]


def grid_graph(n):
    """(n+1) x (n+1) lattice of unit cells."""
    vertices = [(float(x), float(y)) for y in range(n + 1) for x in range(n + 1)]
    edges = []
    for y in range(n + 1):
        for x in range(n + 1):
            i = y * (n + 1) + x
            if x < n:
                edges.append((i, i + 1))
            if y < n:
                edges.append((i, i + n + 1))
    return vertices, edges


class TestRegionExtractor:
    """Test face extraction by wedge traversal."""

    def test_triangle(self):
        """Test that a triangle has exactly one bounded face."""
        regions = extract_regions([(0, 0), (1, 0), (0, 1)], [(0, 1), (1, 2), (2, 0)])

        assert len(regions) == 1
        assert regions[0].area == pytest.approx(0.5)
        assert sorted(regions[0].path) == [0, 1, 2]

    def test_square_with_diagonal(self):
        """Test that a diagonal splits a square into two clockwise faces."""
        regions = extract_regions(SQUARE_VERTICES, SQUARE_EDGES + [(0, 2)])

        assert len(regions) == 2
        for region in regions:
            assert region.area == pytest.approx(0.5)
            assert region.signed_area < 0
            assert len(region.path) == 3

    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    def test_face_count_matches_euler(self, n):
        """Test that a connected graph has E - V + 1 bounded faces."""
        vertices, edges = grid_graph(n)
        regions = extract_regions(vertices, edges)

        assert len(regions) == len(edges) - len(vertices) + 1
        assert all(r.area == pytest.approx(1.0) for r in regions)

    def test_every_wedge_used_once(self):
        """Test that grouping consumes every wedge."""
        vertices, edges = grid_graph(3)
        extractor = RegionExtractor(vertices, edges)
        extractor.solve()

        assert len(extractor.wedges) == 2 * len(edges)
        assert all(w.used for w in extractor.wedges)
        assert sum(len(r) for r in extractor.regions) == len(extractor.wedges)
        assert extractor.errors == []

    def test_duplicate_edges_and_self_loops_ignored(self):
        """Test that repeated edges and loops do not change the faces."""
        regions = extract_regions(
            SQUARE_VERTICES, SQUARE_EDGES + [(0, 2), (2, 0), (1, 0), (3, 3)]
        )

        assert len(regions) == 2

    @pytest.mark.parametrize(
        "vertices,edges",
        [
            ([], []),
            ([(0, 0)], []),
            ([(0, 0), (1, 0)], [(0, 1)]),
            ([(0, 0), (1, 0), (2, 1)], [(0, 1), (1, 2)]),
        ],
    )
    def test_no_bounded_faces(self, vertices, edges):
        """Test graphs without cycles."""
        assert extract_regions(vertices, edges) == []

    def test_unknown_vertex_rejected(self):
        """Test that edges must reference existing vertices."""
        with pytest.raises(ValueError):
            RegionExtractor([(0, 0), (1, 0)], [(0, 5)])

    def test_broken_topology_recorded(self):
        """Test that a missing wedge is reported and its face dropped."""
        extractor = RegionExtractor(SQUARE_VERTICES, SQUARE_EDGES + [(0, 2)])
        extractor.run_phase_one()
        extractor.wedges.pop(0)
        regions = extractor.run_phase_two()

        assert extractor.errors
        assert "Broken topology" in extractor.errors[0]
        assert len(regions) < 3

    def test_region_points_follow_path(self):
        """Test that region points are the coordinates of its path."""
        regions = extract_regions(SQUARE_VERTICES, SQUARE_EDGES + [(1, 3)])

        for region in regions:
            assert region.points == [SQUARE_VERTICES[i] for i in region.path]
