"""
Read-only queries against a built k-DOP.

DistanceQuery: nearest point on the volume to an external point, chosen by
how many bounding planes the point is strictly outside of.

    0 planes  -> the point is inside; it is its own nearest point.
    1 plane   -> project onto that face, then search the face polygon.
    2 planes  -> clamp onto the edge the two faces share.
    3 planes  -> the corner the three faces share.
    >3 planes -> only reachable below a curved cell; search the bottom face.

Plane selection checks the top, else the bottom, then every side in
order, so the working face of the single-plane case is the last side
found outside (or the cap if no side was).

PlaneClassifier: vertex vote of the 8 corners against an arbitrary plane.

All functions here only read the geometry and allocate nothing shared.
"""
from typing import List, Optional, Tuple

import numpy as np

from geometry_primitives import (
    Intersect,
    Plane,
    closest_point_on_polygon,
    closest_point_on_segment,
)
from kdop_builder import BOTTOM, SIDE_OFFSET, TOP, FaceData, KDopGeometry, shared_corner

DEFAULT_PLANE_TOLERANCE = 1e-14


# ─── Plane selection ─────────────────────────────────────────────────────────

def select_planes(
    kdop: KDopGeometry,
    point: np.ndarray,
    tolerance: float = DEFAULT_PLANE_TOLERANCE,
) -> Tuple[List[int], Optional[int]]:
    """Indices of planes the point is strictly outside of, plus working face.

    Returns:
        (selected plane indices in ascending order, index of the face used
        by the single-plane case or None when nothing is selected)
    """
    distances = kdop.signed_distances(point)
    selected: List[int] = []
    working_face = None

    if distances[TOP] > tolerance:
        selected.append(TOP)
        working_face = TOP
    elif distances[BOTTOM] > tolerance:
        selected.append(BOTTOM)
        working_face = BOTTOM

    for side in range(4):
        index = SIDE_OFFSET + side
        if distances[index] > tolerance:
            selected.append(index)
            working_face = index

    return selected, working_face


# ─── Nearest point ───────────────────────────────────────────────────────────

def closest_point_on_face(face: FaceData, point: np.ndarray) -> np.ndarray:
    """Project onto the face plane, then find the nearest polygon point."""
    projected = face.plane.project_point(point)
    return closest_point_on_polygon(
        projected, face.vertices, face.edge_normals, face.winding,
    )


def _closest_point_on_faces(
    kdop: KDopGeometry,
    point: np.ndarray,
    faces: List[int],
) -> np.ndarray:
    best = None
    best_distance = np.inf
    for index in faces:
        candidate = closest_point_on_face(kdop.face(index), point)
        distance = float(np.linalg.norm(point - candidate))
        if distance < best_distance:
            best_distance = distance
            best = candidate
    return best


def _shared_edge(
    kdop: KDopGeometry,
    first: int,
    second: int,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Edge shared by two selected planes, None if they do not meet."""
    vertices = kdop.vertices
    if first == TOP:
        side = second - SIDE_OFFSET
        return vertices[side], vertices[(side + 1) % 4]
    if first == BOTTOM:
        side = second - SIDE_OFFSET
        return vertices[4 + side], vertices[4 + (side + 1) % 4]

    corner = shared_corner(first - SIDE_OFFSET, second - SIDE_OFFSET)
    if corner is None:
        return None
    return vertices[corner], vertices[4 + corner]


def _shared_vertex(
    kdop: KDopGeometry,
    cap: int,
    first_side: int,
    second_side: int,
) -> Optional[np.ndarray]:
    """Corner shared by a cap plane and two side planes."""
    if cap not in (TOP, BOTTOM):
        return None
    corner = shared_corner(first_side - SIDE_OFFSET, second_side - SIDE_OFFSET)
    if corner is None:
        return None
    if cap == TOP:
        return kdop.vertices[corner]
    return kdop.vertices[4 + corner]


def closest_point(
    kdop: KDopGeometry,
    point: np.ndarray,
    tolerance: float = DEFAULT_PLANE_TOLERANCE,
) -> np.ndarray:
    """Nearest point on the k-DOP to point (the point itself if inside).

    Plane combinations without a shared edge or corner (opposite sides,
    three sides without a cap) take the nearest of the selected faces'
    polygon points, which is exact since the nearest boundary point
    always lies on a face the point is outside of.
    """
    selected, working_face = select_planes(kdop, point, tolerance)
    count = len(selected)

    if count == 0:
        return point.copy()

    if count == 1:
        return closest_point_on_face(kdop.face(working_face), point)

    if count == 2:
        edge = _shared_edge(kdop, selected[0], selected[1])
        if edge is not None:
            return closest_point_on_segment(point, edge[0], edge[1])
        return _closest_point_on_faces(kdop, point, selected)

    if count == 3:
        vertex = _shared_vertex(kdop, selected[0], selected[1], selected[2])
        if vertex is not None:
            return vertex
        return _closest_point_on_faces(kdop, point, selected)

    return closest_point_on_face(kdop.face(BOTTOM), point)


def distance_to(
    kdop: KDopGeometry,
    point: np.ndarray,
    tolerance: float = DEFAULT_PLANE_TOLERANCE,
) -> float:
    """Euclidean distance from point to the k-DOP, 0 inside."""
    nearest = closest_point(kdop, point, tolerance)
    return float(np.linalg.norm(point - nearest))


# ─── Plane classification ────────────────────────────────────────────────────

def classify_against_plane(vertices: np.ndarray, plane: Plane) -> Intersect:
    """Which side of plane the convex hull of vertices lies on.

    A vertex exactly on the plane counts for the side the normal points to.

    Returns:
        INSIDE if every vertex is on the normal side, OUTSIDE if every
        vertex is behind it, INTERSECTING otherwise.
    """
    normal = np.asarray(plane.normal, dtype=np.float64)
    distances = vertices @ normal + float(plane.distance)
    negatives = int(np.count_nonzero(distances < 0))

    if negatives == 0:
        return Intersect.INSIDE
    if negatives == len(vertices):
        return Intersect.OUTSIDE
    return Intersect.INTERSECTING
