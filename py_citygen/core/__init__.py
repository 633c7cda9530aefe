"""
Core city generation functionality.
"""

from .alea_prng import AleaPRNG
from .growth_graph import (
    GraphConfigurationError, GrowthGraph, GrowthOptions, GrowthResult,
    LineState, SplitDirection, Segment, Vertex,
)
from .region_extractor import Region, RegionExtractor, extract_regions
from .polygon_inset import offset_polygon, resolve_self_intersections, shrink_polygon
from .city import CityGenerator, CityLayout, CityOptions

__all__ = ['AleaPRNG', 'GraphConfigurationError', 'GrowthGraph', 'GrowthOptions',
           'GrowthResult', 'LineState', 'SplitDirection', 'Segment', 'Vertex',
           'Region', 'RegionExtractor', 'extract_regions',
           'offset_polygon', 'resolve_self_intersections', 'shrink_polygon',
           'CityGenerator', 'CityLayout', 'CityOptions']
