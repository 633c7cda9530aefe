"""
Export of a generated city to shapely geometries and GeoJSON.

Streets become a MultiLineString; blocks, lots and parcels become Polygons.
The GeoJSON FeatureCollection tags each feature with a ``kind`` property.
"""

from typing import Any, Dict, List

import structlog
from shapely.geometry import MultiLineString, Polygon, mapping

from .core.city import CityLayout

logger = structlog.get_logger()


def layout_to_shapely(layout: CityLayout) -> Dict[str, Any]:
    """
    Convert a layout into shapely geometries.

    Returns:
        Dict with ``streets`` (MultiLineString) and ``blocks``, ``lots``,
        ``parcels`` (lists of Polygon). Lots that could not be built are
        left out.
    """
    coords = {v.id: (v.x, v.y) for v in layout.vertices}
    streets = MultiLineString(
        [[coords[e.from_node], coords[e.to_node]] for e in layout.edges if e.from_node != e.to_node]
    )

    return {
        "streets": streets,
        "blocks": [Polygon(block.points) for block in layout.blocks],
        "lots": [Polygon(lot) for lot in layout.built_lots],
        "parcels": [Polygon(parcel) for parcel in layout.parcels],
    }


def layout_to_geojson(layout: CityLayout) -> Dict[str, Any]:
    """Convert a layout into a GeoJSON FeatureCollection dict."""
    geometries = layout_to_shapely(layout)
    features: List[Dict[str, Any]] = [
        {
            "type": "Feature",
            "geometry": mapping(geometries["streets"]),
            "properties": {"kind": "streets", "edges": len(layout.edges)},
        }
    ]

    for kind in ("blocks", "lots", "parcels"):
        for index, polygon in enumerate(geometries[kind]):
            features.append(
                {
                    "type": "Feature",
                    "geometry": mapping(polygon),
                    "properties": {"kind": kind[:-1], "index": index, "area": round(polygon.area, 6)},
                }
            )

    logger.info(
        "Layout exported",
        blocks=len(geometries["blocks"]),
        lots=len(geometries["lots"]),
        parcels=len(geometries["parcels"]),
    )
    return {
        "type": "FeatureCollection",
        "properties": {"seed": layout.seed, "complete": layout.complete},
        "features": features,
    }
