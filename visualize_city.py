#!/usr/bin/env python3
"""Generate a city and save it as a PNG (and optionally GeoJSON)."""

import argparse
import json
from pathlib import Path

from py_citygen import CityGenerator, CityOptions
from py_citygen.config import settings
from py_citygen.export import layout_to_geojson
from py_citygen.utils.log import configure_logging
from py_citygen.visualize import save_layout_png


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Grow a procedural city and render it")
    parser.add_argument("--seed", default=settings.default_seed, help="City seed")
    parser.add_argument("--seeds", type=int, default=3, help="Number of street seed points")
    parser.add_argument("--lines-per-seed", type=int, default=5, help="Streets started per seed")
    parser.add_argument("--no-subdivide", action="store_true", help="Skip parcel subdivision")
    parser.add_argument("--max-steps", type=int, default=settings.max_steps, help="Tick limit")
    parser.add_argument("--output", default="city.png", help="PNG output path")
    parser.add_argument("--geojson", default=None, help="Optional GeoJSON output path")
    parser.add_argument("--log-level", default=None, help="Override CITYGEN_LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(level=args.log_level)

    options = CityOptions(
        seeds=args.seeds,
        lines_per_seed=args.lines_per_seed,
        subdivide=not args.no_subdivide,
    )
    generator = CityGenerator(options, seed=args.seed)
    layout = generator.run(max_steps=args.max_steps)

    png = save_layout_png(layout, args.output)
    print(f"City '{layout.seed}' after {generator.steps} steps (complete: {layout.complete})")
    print(f"  Streets: {len(layout.edges)} edges, {len(layout.vertices)} nodes")
    print(f"  Blocks:  {len(layout.blocks)} ({len(layout.built_lots)} buildable lots)")
    print(f"  Parcels: {len(layout.parcels)}")
    print(f"Saved image to {png}")

    if args.geojson:
        path = Path(args.geojson)
        path.write_text(json.dumps(layout_to_geojson(layout)))
        print(f"Saved GeoJSON to {path}")


if __name__ == "__main__":
    main()
