"""Tests for matplotlib rendering."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from py_citygen.core.city import CityGenerator, CityOptions
from py_citygen.visualize import RAINBOW, plot_layout, save_layout_png


@pytest.fixture(scope="module")
def layout():
    """A small generated city."""
    options = CityOptions(seeds=1, lines_per_seed=3, seed_spread=1.0, radius=4.0)
    return CityGenerator(options, seed="plot").run(max_steps=20000)


class TestVisualize:
    """Test city plots."""

    def test_plot_layout(self, layout):
        """Test that lots and parcels become patches and streets one collection."""
        fig, ax = plt.subplots()
        result = plot_layout(layout, ax=ax)

        assert result is ax
        assert len(ax.patches) == len(layout.parcels) + len(layout.built_lots)
        assert len(ax.collections) == 1
        assert "plot" in ax.get_title()
        plt.close(fig)

    def test_parcel_colors_cycle(self, layout):
        """Test that parcels take their colors from the palette."""
        fig, ax = plt.subplots()
        plot_layout(layout, ax=ax, show_lots=False, show_streets=False)

        assert len(ax.patches) == len(layout.parcels)
        assert len(ax.collections) == 0
        plt.close(fig)
        assert len(RAINBOW) == 10

    def test_save_png(self, layout, tmp_path):
        """Test writing a PNG file."""
        path = save_layout_png(layout, tmp_path / "city.png", dpi=50)

        assert path.exists()
        assert path.stat().st_size > 0
