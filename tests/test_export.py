"""Tests for shapely and GeoJSON export."""

import json

import pytest
from shapely.geometry import MultiLineString, Polygon

from py_citygen.core.city import CityGenerator, CityLayout, CityOptions
from py_citygen.core.growth_graph import Segment, Vertex
from py_citygen.core.region_extractor import Region
from py_citygen.export import layout_to_geojson, layout_to_shapely


@pytest.fixture
def square_layout():
    """A hand-built layout: one square block, one lot, one parcel."""
    corners = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    return CityLayout(
        seed="square",
        vertices=[Vertex(i, x, y) for i, (x, y) in enumerate(corners)],
        edges=[Segment(i, i, (i + 1) % 4) for i in range(4)],
        blocks=[Region(path=[0, 3, 2, 1], points=[corners[i] for i in (0, 3, 2, 1)], signed_area=-100.0)],
        lots=[[(1.0, 1.0), (9.0, 1.0), (9.0, 9.0), (1.0, 9.0)], None],
        parcels=[[(1.0, 1.0), (5.0, 1.0), (5.0, 5.0), (1.0, 5.0)]],
        complete=True,
    )


class TestShapelyExport:
    """Test conversion to shapely geometries."""

    def test_geometries(self, square_layout):
        """Test geometry types and areas."""
        shapes = layout_to_shapely(square_layout)

        assert isinstance(shapes["streets"], MultiLineString)
        assert len(shapes["streets"].geoms) == 4
        assert shapes["streets"].length == pytest.approx(40.0)
        assert shapes["blocks"][0].area == pytest.approx(100.0)
        assert shapes["parcels"][0].area == pytest.approx(16.0)

    def test_missing_lots_skipped(self, square_layout):
        """Test that unbuildable lots are left out."""
        shapes = layout_to_shapely(square_layout)

        assert len(shapes["lots"]) == 1
        assert isinstance(shapes["lots"][0], Polygon)
        assert shapes["lots"][0].area == pytest.approx(64.0)


class TestGeoJSONExport:
    """Test conversion to a GeoJSON FeatureCollection."""

    def test_feature_collection(self, square_layout):
        """Test feature kinds and properties."""
        collection = layout_to_geojson(square_layout)

        assert collection["type"] == "FeatureCollection"
        assert collection["properties"] == {"seed": "square", "complete": True}
        kinds = [f["properties"]["kind"] for f in collection["features"]]
        assert kinds == ["streets", "block", "lot", "parcel"]
        assert collection["features"][0]["geometry"]["type"] == "MultiLineString"
        assert collection["features"][3]["properties"]["area"] == pytest.approx(16.0)

    def test_serializable(self, square_layout):
        """Test that the collection serializes to JSON."""
        text = json.dumps(layout_to_geojson(square_layout))

        assert json.loads(text)["features"][1]["geometry"]["type"] == "Polygon"

    def test_generated_city(self):
        """Test export of a generated city."""
        options = CityOptions(seeds=1, lines_per_seed=3, seed_spread=1.0, radius=4.0, subdivide=False)
        layout = CityGenerator(options, seed="export").run(max_steps=20000)
        collection = layout_to_geojson(layout)

        assert len(collection["features"]) == 1 + len(layout.blocks) + len(layout.built_lots)
