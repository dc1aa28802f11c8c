"""
Coarse bounding volumes for cheap pre-culling.

Fits an oriented bounding box to a small point set with trimesh and
derives the circumscribed sphere of that box. Neither is used by the
k-DOP queries themselves.
"""
import logging
from dataclasses import dataclass

import numpy as np
import trimesh

from geometry_primitives import InvalidArgumentError, Intersect, Plane

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class OrientedBoundingBox:
    """Box given by its center and three half-axis vectors (columns)."""
    center: np.ndarray     # (3,)
    half_axes: np.ndarray  # (3, 3), column j is half-axis j

    @property
    def half_extents(self) -> np.ndarray:
        return np.linalg.norm(self.half_axes, axis=0)

    def corners(self) -> np.ndarray:
        """The 8 box corners, shape (8, 3)."""
        signs = np.array([
            [sx, sy, sz]
            for sx in (-1.0, 1.0)
            for sy in (-1.0, 1.0)
            for sz in (-1.0, 1.0)
        ])
        return self.center + signs @ self.half_axes.T

    def contains(self, point, tolerance: float = 1e-6) -> bool:
        local = np.linalg.lstsq(self.half_axes, np.asarray(point) - self.center, rcond=None)[0]
        return bool(np.all(np.abs(local) <= 1.0 + tolerance))


@dataclass(frozen=True, eq=False)
class BoundingSphere:
    """Sphere given by center and radius."""
    center: np.ndarray  # (3,)
    radius: float

    def distance_to(self, point) -> float:
        """Distance from point to the sphere, 0 inside."""
        return max(0.0, float(np.linalg.norm(np.asarray(point) - self.center)) - self.radius)

    def classify_against_plane(self, plane: Plane) -> Intersect:
        distance = float(np.dot(plane.normal, self.center)) + plane.distance
        if distance < -self.radius:
            return Intersect.OUTSIDE
        if distance < self.radius:
            return Intersect.INTERSECTING
        return Intersect.INSIDE


def fit_oriented_box(points) -> OrientedBoundingBox:
    """Minimum-volume oriented box around points via trimesh.

    Points are re-centred on their mean before fitting so Earth-scale
    coordinates do not cost the hull its precision.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 3 or len(points) == 0:
        raise InvalidArgumentError(f"Expected (n, 3) points, got shape {points.shape}")

    origin = points.mean(axis=0)
    to_origin, extents = trimesh.bounds.oriented_bounds(points - origin)
    transform = np.linalg.inv(to_origin)

    center = transform[:3, 3] + origin
    half_axes = transform[:3, :3] * (np.asarray(extents) / 2.0)
    return OrientedBoundingBox(center=center, half_axes=half_axes)


def fit_sphere(box: OrientedBoundingBox) -> BoundingSphere:
    """Sphere through the box corners, centred on the box."""
    radius = float(np.linalg.norm(box.half_axes.sum(axis=1)))
    sphere = BoundingSphere(center=box.center.copy(), radius=radius)
    logger.debug("Fitted bounding sphere radius %.3f m", radius)
    return sphere
