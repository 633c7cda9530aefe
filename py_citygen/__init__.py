"""Procedural city-block generator: growth graph, face extraction and lot insets."""

__version__ = "0.1.0"

from .core import CityGenerator, CityLayout, CityOptions, GrowthGraph, GrowthOptions

__all__ = ["CityGenerator", "CityLayout", "CityOptions", "GrowthGraph", "GrowthOptions", "__version__"]
