"""Tests for the city generation pipeline."""

import pytest
from pydantic import ValidationError
from shapely.geometry import Polygon

from py_citygen.core.city import CityGenerator, CityLayout, CityOptions


def small_options(**overrides):
    """A small city that finishes quickly."""
    values = dict(seeds=1, lines_per_seed=4, seed_spread=1.0, radius=5.0)
    values.update(overrides)
    return CityOptions(**values)


@pytest.fixture(scope="module")
def small_city():
    """Run a small city once for the whole module."""
    generator = CityGenerator(small_options(), seed="test_city")
    return generator, generator.run(max_steps=20000)


class TestCityOptions:
    """Test pipeline option validation."""

    def test_defaults(self):
        """Test default options."""
        options = CityOptions()

        assert options.seeds == 3
        assert options.lines_per_seed == 5
        assert options.streets.min_distance == pytest.approx(1.68)
        assert options.subdivide

    @pytest.mark.parametrize(
        "values",
        [
            {"seed_spread": 10.0},
            {"lot_lines": (3, 2)},
            {"lot_lines": (0, 2)},
            {"lot_split_angle": (1.6, 1.5)},
            {"seeds": 0},
            {"lot_probability": 2.0},
        ],
    )
    def test_invalid_options(self, values):
        """Test rejected option combinations."""
        with pytest.raises(ValidationError):
            CityOptions(**values)


class TestCityGenerator:
    """Test street growth, block extraction and lot subdivision."""

    def test_run_completes(self, small_city):
        """Test that every stage finishes."""
        generator, layout = small_city

        assert isinstance(layout, CityLayout)
        assert layout.complete
        assert generator.is_complete
        assert generator.graph.completed
        assert generator.block_graphs == []

    def test_blocks_and_lots(self, small_city):
        """Test that every block has a lot slot and lots are smaller than blocks."""
        _, layout = small_city

        assert len(layout.blocks) >= 1
        assert len(layout.lots) == len(layout.blocks)
        assert layout.built_lots
        for block, lot in zip(layout.blocks, layout.lots):
            if lot is not None:
                assert Polygon(lot).area < block.area

    def test_parcels(self, small_city):
        """Test that lots are subdivided into parcels."""
        _, layout = small_city

        assert len(layout.parcels) > 0
        assert all(Polygon(p).area > 0 for p in layout.parcels)

    def test_street_graph_in_layout(self, small_city):
        """Test that the layout carries the street graph."""
        generator, layout = small_city

        assert layout.vertices == generator.graph.get_vertices()
        assert layout.edges == generator.graph.get_edges()
        assert layout.seed == "test_city"

    def test_reproducible(self, small_city):
        """Test that the same seed builds the same city."""
        _, layout = small_city
        again = CityGenerator(small_options(), seed="test_city").run(max_steps=20000)

        assert again.vertices == layout.vertices
        assert again.parcels == layout.parcels

    def test_different_seed(self, small_city):
        """Test that another seed builds another city."""
        _, layout = small_city
        other = CityGenerator(small_options(), seed="another_city").run(max_steps=20000)

        assert other.vertices != layout.vertices

    def test_without_subdivision(self):
        """Test that disabling subdivision skips parcels."""
        generator = CityGenerator(small_options(subdivide=False), seed="test_city")
        layout = generator.run(max_steps=20000)

        assert layout.complete
        assert layout.parcels == []
        assert generator.block_graphs == []

    def test_large_minimum_lot_size(self):
        """Test that lots thinner than the minimum are dropped."""
        generator = CityGenerator(small_options(min_lot_size=1000.0), seed="test_city")
        layout = generator.run(max_steps=20000)

        assert all(lot is None for lot in layout.lots)
        assert layout.parcels == []

    def test_step_and_reset(self):
        """Test manual stepping and reseeding."""
        generator = CityGenerator(small_options(), seed="steps")
        generator.step(3)

        assert generator.steps == 3
        assert generator.graph.steps == 3
        assert not generator.is_complete

        generator.reset("other")
        assert generator.seed == "other"
        assert generator.steps == 0
        assert generator.blocks == []

    def test_step_limit_gives_partial_layout(self):
        """Test that hitting the step limit returns an incomplete layout."""
        layout = CityGenerator(small_options(), seed="partial").run(max_steps=2)

        assert not layout.complete
        assert layout.blocks == []
