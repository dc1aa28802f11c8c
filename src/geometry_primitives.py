"""
Core geometry types for k-DOP bounding volumes.

Built on numpy for 3D vector algebra. Provides Plane (Hessian normal form,
outward side positive), the Intersect classification result, the error
hierarchy shared by the builders and queries, and the small set of
nearest-point routines the distance query is assembled from.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np


class BoundingVolumeError(Exception):
    """Base exception for bounding volume construction and queries."""
    pass


class InvalidArgumentError(BoundingVolumeError, ValueError):
    """An input was missing, malformed or out of range."""
    pass


class DegenerateGeometryError(BoundingVolumeError, ArithmeticError):
    """Geometry collapsed (zero-length normal, near-parallel planes)."""
    pass


class Intersect(Enum):
    """Which side of a plane a volume lies on."""
    INSIDE = "inside"
    OUTSIDE = "outside"
    INTERSECTING = "intersecting"


def as_point(value, name: str = "point") -> np.ndarray:
    """Coerce a 3-sequence to a float64 (3,) array."""
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise InvalidArgumentError(f"{name} must be a 3-vector, got shape {arr.shape}")
    return arr


def normalize(vector: np.ndarray, tolerance: float = 1e-12) -> np.ndarray:
    """Return vector / |vector|, refusing vectors shorter than tolerance."""
    length = float(np.linalg.norm(vector))
    if length < tolerance:
        raise DegenerateGeometryError(
            f"Cannot normalize vector of length {length:.3e}"
        )
    return vector / length


@dataclass(frozen=True, eq=False)
class Plane:
    """A plane n . p + d = 0 with unit normal n.

    Points with positive signed distance are on the side the normal
    points to (the "outward" side for k-DOP bounding planes).
    """
    normal: np.ndarray   # (3,) unit normal
    distance: float      # offset d

    @classmethod
    def from_point_normal(cls, point: np.ndarray, normal: np.ndarray) -> "Plane":
        normal = np.asarray(normal, dtype=np.float64)
        return cls(normal=normal, distance=-float(np.dot(normal, point)))

    def signed_distance(self, point: np.ndarray) -> float:
        return float(np.dot(self.normal, point)) + self.distance

    def project_point(self, point: np.ndarray) -> np.ndarray:
        """Orthogonal projection of point onto the plane."""
        return point - self.signed_distance(point) * self.normal

    def negated(self) -> "Plane":
        return Plane(normal=-self.normal, distance=-self.distance)


def intersect_three_planes(
    p0: Plane,
    p1: Plane,
    p2: Plane,
    tolerance: float = 1e-12,
) -> np.ndarray:
    """Solve n_k . x = -d_k for k in 0..2 by Cramer's rule.

    x = sum_k (n_{k+1} x n_{k+2}) (x_k . n_k) / D with x_k = -d_k n_k and
    D = det([n0; n1; n2]).

    Raises:
        DegenerateGeometryError: if |D| < tolerance (near-parallel planes).
    """
    n0, n1, n2 = p0.normal, p1.normal, p2.normal
    determinant = float(np.dot(n0, np.cross(n1, n2)))
    if abs(determinant) < tolerance:
        raise DegenerateGeometryError(
            f"Planes are near-parallel (determinant {determinant:.3e})"
        )

    x0 = -p0.distance * n0
    x1 = -p1.distance * n1
    x2 = -p2.distance * n2

    total = (
        np.cross(n1, n2) * np.dot(x0, n0)
        + np.cross(n2, n0) * np.dot(x1, n1)
        + np.cross(n0, n1) * np.dot(x2, n2)
    )
    return total / determinant


# ─── Nearest points ──────────────────────────────────────────────────────────

def closest_point_on_segment(
    point: np.ndarray,
    l0: np.ndarray,
    l1: np.ndarray,
) -> np.ndarray:
    """Point on segment [l0, l1] closest to point (clamped projection)."""
    d = l1 - l0
    t = float(np.dot(d, point - l0))
    if t <= 0.0:
        return l0
    d_mag = float(np.dot(d, d))
    if t >= d_mag:
        return l1
    t /= d_mag
    return (1.0 - t) * l0 + t * l1


def closest_point_on_polygon(
    point: np.ndarray,
    vertices: Sequence[np.ndarray],
    edge_normals: Sequence[np.ndarray],
    direction: int,
) -> np.ndarray:
    """Closest point on a convex planar polygon to a point in its plane.

    Edge i runs from vertices[i] to vertices[i + 1]. An edge is tested only
    when direction * dot(edge_normals[i], point - vertices[i]) <= 0, i.e.
    the point is on or beyond that edge. If no edge qualifies the point is
    inside the polygon and is returned unchanged.

    Args:
        point: Test point, already projected onto the polygon's plane.
        vertices: Ordered polygon corners.
        edge_normals: In-plane unit normal per edge.
        direction: Winding sign of the face (-1 or +1).
    """
    n = len(vertices)
    closest = None
    min_distance = np.inf

    for i in range(n):
        edge_distance = float(np.dot(edge_normals[i], point - vertices[i]))
        if direction * edge_distance > 0:
            continue

        on_edge = closest_point_on_segment(point, vertices[i], vertices[(i + 1) % n])
        distance = float(np.linalg.norm(point - on_edge))
        if distance < min_distance:
            min_distance = distance
            closest = on_edge

    if closest is None:
        return point
    return closest
