#!/usr/bin/env python3
"""
Build the k-DOP bounding volume of an S2 cell and query it.

Prints the volume's planes and corners, the distance from any number of
points, and the classification against any number of planes.

Usage:
    python scripts/inspect_s2_cell.py --token 89c25 --max-height 500
    python scripts/inspect_s2_cell.py --token 89c25 --point 1334000 -4654000 4138000
    python scripts/inspect_s2_cell.py --token 89c25 --plane 0 0 1 -4100000 --json out.json
"""
import sys
import json
import argparse
import logging
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from bounding_volume import KDopConfig, S2CellBoundingVolume
from ellipsoid import WGS84, Ellipsoid
from geometry_primitives import BoundingVolumeError, Plane

ELLIPSOIDS = {
    "wgs84": WGS84,
    "sphere": Ellipsoid.sphere(6371000.0),
}


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Build and query the k-DOP bounding volume of an S2 cell.",
    )
    parser.add_argument(
        "--token", required=True,
        help="S2 cell token (hex cell id with trailing zeros stripped)",
    )
    parser.add_argument(
        "--min-height", type=float, default=0.0,
        help="Minimum height in metres (default: 0)",
    )
    parser.add_argument(
        "--max-height", type=float, default=0.0,
        help="Maximum height in metres (default: 0)",
    )
    parser.add_argument(
        "--ellipsoid", default="wgs84", choices=sorted(ELLIPSOIDS),
        help="Reference ellipsoid (default: wgs84)",
    )
    parser.add_argument(
        "--point", nargs=3, type=float, action="append", default=[],
        metavar=("X", "Y", "Z"),
        help="Earth-centred point to measure the distance from (repeatable)",
    )
    parser.add_argument(
        "--plane", nargs=4, type=float, action="append", default=[],
        metavar=("NX", "NY", "NZ", "D"),
        help="Plane n.p + d = 0 to classify the volume against (repeatable)",
    )
    parser.add_argument(
        "--no-coarse", action="store_true",
        help="Skip fitting the oriented box and bounding sphere",
    )
    parser.add_argument(
        "--json", default=None,
        help="Write a JSON summary of the volume and query results to this path",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = KDopConfig(compute_bounding_volumes=not args.no_coarse)
    try:
        volume = S2CellBoundingVolume.from_token(
            args.token,
            minimum_height=args.min_height,
            maximum_height=args.max_height,
            ellipsoid=ELLIPSOIDS[args.ellipsoid],
            config=config,
        )
    except BoundingVolumeError as exc:
        parser.error(str(exc))

    print(f"Cell: {volume.cell!r}")
    print(f"Heights: [{volume.minimum_height:.3f}, {volume.maximum_height:.3f}] m")
    print(f"Center: {np.array2string(volume.center, precision=3)}")
    names = ["top", "bottom", "side 0", "side 1", "side 2", "side 3"]
    for name, plane in zip(names, volume.planes):
        print(f"  {name:<7} normal={np.array2string(plane.normal, precision=6)} d={plane.distance:.3f}")
    for i, vertex in enumerate(volume.vertices):
        print(f"  v{i} {np.array2string(vertex, precision=3)}")
    if volume.bounding_sphere is not None:
        print(f"Bounding sphere radius: {volume.bounding_sphere.radius:.3f} m")

    summary = volume.to_dict()
    summary["distances"] = []
    summary["classifications"] = []

    for coords in args.point:
        point = np.array(coords)
        nearest = volume.closest_point(point)
        distance = volume.distance_to(point)
        print(f"Distance from {coords}: {distance:.6f} m (nearest {np.array2string(nearest, precision=3)})")
        summary["distances"].append({
            "point": coords,
            "distance": distance,
            "closest_point": nearest.tolist(),
        })

    for nx, ny, nz, d in args.plane:
        normal = np.array([nx, ny, nz])
        length = float(np.linalg.norm(normal))
        if length == 0.0:
            parser.error("--plane normal must be non-zero")
        plane = Plane(normal=normal / length, distance=d / length)
        result = volume.classify_against_plane(plane)
        print(f"Plane {[nx, ny, nz, d]}: {result.value}")
        summary["classifications"].append({
            "plane": [nx, ny, nz, d],
            "result": result.value,
        })

    if args.json:
        json_path = Path(args.json)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        with open(json_path, "w") as f:
            json.dump(summary, f, indent=2)
        print(f"Summary written to {json_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
