"""
Tile bounding volume for an S2 cell extruded between two heights.

The volume is a 6-plane k-DOP (top, bottom, four sides) built once from
the cell's corners and the ellipsoid, plus a coarse oriented box and
sphere for cheap pre-culling. After construction everything is
read-only, so the queries can be called from any number of threads.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from coarse_bounds import BoundingSphere, OrientedBoundingBox, fit_oriented_box, fit_sphere
from ellipsoid import WGS84, Ellipsoid
from geometry_primitives import (
    DegenerateGeometryError,
    Intersect,
    InvalidArgumentError,
    Plane,
    as_point,
)
from kdop_builder import (
    FACE_COUNT,
    KDopGeometry,
    build_kdop_geometry,
    compute_bounding_planes,
    face_vertex_indices,
)
from kdop_queries import (
    DEFAULT_PLANE_TOLERANCE,
    classify_against_plane,
    closest_point,
    distance_to,
)
from s2_cell import S2Cell, SurfaceCell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KDopConfig:
    """Tolerances and options for building and querying the k-DOP."""
    plane_tolerance: float = DEFAULT_PLANE_TOLERANCE  # "strictly outside" threshold for selection
    determinant_tolerance: float = 1e-12  # near-parallel planes below this
    length_tolerance: float = 1e-12  # shortest vector that may be normalised
    compute_bounding_volumes: bool = True  # fit the coarse box and sphere
    reject_inverted_heights: bool = False  # fail on minimum_height > maximum_height


class S2CellBoundingVolume:
    """k-DOP enclosing a surface cell between minimum and maximum height.

    Parameters
    ----------
    cell : SurfaceCell
        Cell whose center and corners lie on the ellipsoid surface.
    minimum_height, maximum_height : float
        Height range to enclose, in metres. An inverted range is accepted
        unless the config rejects it, but any inversion deeper than the
        cell's curvature collapses the side faces and raises
        DegenerateGeometryError naming the heights.
    ellipsoid : Ellipsoid
        Reference ellipsoid, WGS84 by default.
    config : KDopConfig, optional
        Tolerances and options.
    """

    def __init__(
        self,
        cell: SurfaceCell,
        minimum_height: float = 0.0,
        maximum_height: float = 0.0,
        ellipsoid: Ellipsoid = WGS84,
        config: Optional[KDopConfig] = None,
    ):
        if config is None:
            config = KDopConfig()
        if not isinstance(cell, SurfaceCell):
            raise InvalidArgumentError(f"cell must be a SurfaceCell, got {type(cell).__name__}")

        minimum_height = float(minimum_height)
        maximum_height = float(maximum_height)
        if config.reject_inverted_heights and minimum_height > maximum_height:
            raise InvalidArgumentError(
                f"minimum_height {minimum_height} exceeds maximum_height {maximum_height}"
            )

        self._cell = cell
        self._minimum_height = minimum_height
        self._maximum_height = maximum_height
        self._ellipsoid = ellipsoid
        self._config = config

        planes = compute_bounding_planes(
            cell, minimum_height, maximum_height, ellipsoid, config.length_tolerance,
        )
        try:
            self._kdop: KDopGeometry = build_kdop_geometry(
                planes, config.determinant_tolerance, config.length_tolerance,
            )
        except DegenerateGeometryError as exc:
            if minimum_height > maximum_height:
                # Bottom plane cannot rise above the flipped top plane
                raise DegenerateGeometryError(
                    f"Inverted height range [{minimum_height}, {maximum_height}] "
                    f"collapses the volume: {exc}"
                ) from exc
            raise

        surface_center = cell.center()
        center = ellipsoid.at_height(surface_center, (maximum_height + minimum_height) / 2.0)
        center.flags.writeable = False
        self._center = center

        self._oriented_bounding_box: Optional[OrientedBoundingBox] = None
        self._bounding_sphere: Optional[BoundingSphere] = None
        if config.compute_bounding_volumes:
            self._oriented_bounding_box = fit_oriented_box(self._representative_points())
            self._bounding_sphere = fit_sphere(self._oriented_bounding_box)

        logger.info(
            "Built k-DOP for %r over heights [%.3f, %.3f] m",
            cell, minimum_height, maximum_height,
        )

    @classmethod
    def from_token(
        cls,
        token: str,
        minimum_height: float = 0.0,
        maximum_height: float = 0.0,
        ellipsoid: Ellipsoid = WGS84,
        config: Optional[KDopConfig] = None,
    ) -> "S2CellBoundingVolume":
        """Build the volume for the S2 cell with the given token."""
        return cls(
            S2Cell.from_token(token, ellipsoid),
            minimum_height=minimum_height,
            maximum_height=maximum_height,
            ellipsoid=ellipsoid,
            config=config,
        )

    def _representative_points(self) -> np.ndarray:
        """Cell center and the four corners, each at both heights."""
        points = []
        for surface_point in [self._cell.center()] + [self._cell.vertex(i) for i in range(4)]:
            points.append(self._ellipsoid.at_height(surface_point, self._maximum_height))
            points.append(self._ellipsoid.at_height(surface_point, self._minimum_height))
        return np.array(points)

    # ─── Properties ──────────────────────────────────────────────────────────

    @property
    def cell(self) -> SurfaceCell:
        return self._cell

    @property
    def minimum_height(self) -> float:
        return self._minimum_height

    @property
    def maximum_height(self) -> float:
        return self._maximum_height

    @property
    def ellipsoid(self) -> Ellipsoid:
        return self._ellipsoid

    @property
    def config(self) -> KDopConfig:
        return self._config

    @property
    def geometry(self) -> KDopGeometry:
        return self._kdop

    @property
    def planes(self):
        """The 6 bounding planes: top, bottom, then sides 0..3."""
        return self._kdop.planes

    @property
    def vertices(self) -> np.ndarray:
        """(8, 3) read-only corners; 0..3 top, 4..7 bottom."""
        return self._kdop.vertices

    @property
    def edge_normals(self) -> np.ndarray:
        """(6, 4, 3) read-only in-plane edge normals per face."""
        return self._kdop.edge_normals

    @property
    def center(self) -> np.ndarray:
        """Cell center lifted to the middle of the height range."""
        return self._center

    @property
    def bounding_volume(self) -> "S2CellBoundingVolume":
        return self

    @property
    def bounding_sphere(self) -> Optional[BoundingSphere]:
        return self._bounding_sphere

    @property
    def oriented_bounding_box(self) -> Optional[OrientedBoundingBox]:
        return self._oriented_bounding_box

    # ─── Queries ─────────────────────────────────────────────────────────────

    def closest_point(self, point) -> np.ndarray:
        """Nearest point of the volume to point (point itself if inside)."""
        point = as_point(point)
        return np.array(closest_point(self._kdop, point, self._config.plane_tolerance))

    def distance_to(self, point) -> float:
        """Shortest distance from point to the volume, 0 inside."""
        point = as_point(point)
        return distance_to(self._kdop, point, self._config.plane_tolerance)

    def classify_against_plane(self, plane: Plane) -> Intersect:
        """Side of plane the volume lies on (vertex vote over 8 corners)."""
        if plane is None:
            raise InvalidArgumentError("plane is required")
        return classify_against_plane(self._kdop.vertices, plane)

    def face_outlines(self) -> List[np.ndarray]:
        """Ordered corners of each face, in plane order."""
        return [
            self._kdop.vertices[list(face_vertex_indices(face))].copy()
            for face in range(FACE_COUNT)
        ]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable summary of the volume."""
        data: Dict[str, Any] = {
            "cell": repr(self._cell),
            "minimum_height": self._minimum_height,
            "maximum_height": self._maximum_height,
            "ellipsoid": {
                "equatorial_radius": self._ellipsoid.equatorial_radius,
                "polar_radius": self._ellipsoid.polar_radius,
            },
            "center": self._center.tolist(),
            "planes": [
                {"normal": p.normal.tolist(), "distance": p.distance}
                for p in self._kdop.planes
            ],
            "vertices": self._kdop.vertices.tolist(),
        }
        if isinstance(self._cell, S2Cell):
            data["token"] = self._cell.token
            data["level"] = self._cell.level
        if self._bounding_sphere is not None:
            data["bounding_sphere"] = {
                "center": self._bounding_sphere.center.tolist(),
                "radius": self._bounding_sphere.radius,
            }
        return data

    def __repr__(self) -> str:
        return (
            f"S2CellBoundingVolume({self._cell!r}, "
            f"minimum_height={self._minimum_height}, maximum_height={self._maximum_height})"
        )
