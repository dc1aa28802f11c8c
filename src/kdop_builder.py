"""
Construction of the 6-plane k-DOP around an extruded surface cell.

Three stages, run once per volume:
1. Bounding planes: top (tangent at the cell center, lifted to the
   maximum height), bottom (top plane flipped and pushed down to the
   lowest corner) and four vertical sides through the cell edges.
2. Vertices: each corner of the k-DOP is the intersection of the top or
   bottom plane with the two side planes meeting at that corner.
3. Edge normals: for every face, the in-plane outward (or inward, for
   the bottom face) normal of each of its four edges.

Index conventions: plane 0 is the top, plane 1 the bottom, planes 2..5
the sides in cell-corner order. Side i runs from corner i to corner
i + 1. Vertex k (top) and 4 + k (bottom) sit over corner k, where sides
(k + 3) % 4 and k meet.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ellipsoid import Ellipsoid
from geometry_primitives import Plane, intersect_three_planes, normalize
from s2_cell import SurfaceCell

logger = logging.getLogger(__name__)

TOP = 0
BOTTOM = 1
SIDE_OFFSET = 2
FACE_COUNT = 6

# Sign applied to edge-plane distances so that "inside the face" is <= 0
FACE_WINDING = (-1, 1, -1, -1, -1, -1)


def side_plane_index(side: int) -> int:
    return SIDE_OFFSET + side % 4


def face_vertex_indices(face: int) -> Tuple[int, int, int, int]:
    """Indices into the 8 k-DOP vertices of a face's ordered corners."""
    if face == TOP:
        return (0, 1, 2, 3)
    if face == BOTTOM:
        return (4, 5, 6, 7)
    i = face - SIDE_OFFSET
    return (i % 4, 4 + i, 4 + (i + 1) % 4, (i + 1) % 4)


def shared_corner(side_a: int, side_b: int) -> Optional[int]:
    """Corner index where two side faces meet, None if not adjacent."""
    if (side_a + 1) % 4 == side_b:
        return side_b
    if (side_b + 1) % 4 == side_a:
        return side_a
    return None


@dataclass(frozen=True, eq=False)
class FaceData:
    """Everything the nearest-point search needs about one face."""
    plane: Plane
    vertices: np.ndarray      # (4, 3)
    edge_normals: np.ndarray  # (4, 3)
    winding: int


@dataclass(frozen=True, eq=False)
class KDopGeometry:
    """Planes, vertices and edge normals of a built k-DOP.

    Stacked plane arrays and per-face data are derived once here so the
    queries only read.
    """
    planes: Tuple[Plane, ...]  # 6
    vertices: np.ndarray       # (8, 3)
    edge_normals: np.ndarray   # (6, 4, 3)
    plane_normals: np.ndarray = field(init=False, repr=False)
    plane_distances: np.ndarray = field(init=False, repr=False)
    faces: Tuple[FaceData, ...] = field(init=False, repr=False)

    def __post_init__(self):
        normals = np.array([p.normal for p in self.planes], dtype=np.float64)
        distances = np.array([p.distance for p in self.planes], dtype=np.float64)
        normals.flags.writeable = False
        distances.flags.writeable = False
        faces = tuple(
            FaceData(
                plane=self.planes[index],
                vertices=self.vertices[list(face_vertex_indices(index))],
                edge_normals=self.edge_normals[index],
                winding=FACE_WINDING[index],
            )
            for index in range(FACE_COUNT)
        )
        object.__setattr__(self, "plane_normals", normals)
        object.__setattr__(self, "plane_distances", distances)
        object.__setattr__(self, "faces", faces)

    def signed_distances(self, point: np.ndarray) -> np.ndarray:
        """Signed distance of point to all six planes."""
        return self.plane_normals @ point + self.plane_distances

    def face(self, index: int) -> FaceData:
        return self.faces[index]


# ─── Planes ──────────────────────────────────────────────────────────────────

def compute_bounding_planes(
    cell: SurfaceCell,
    minimum_height: float,
    maximum_height: float,
    ellipsoid: Ellipsoid,
    length_tolerance: float = 1e-12,
) -> List[Plane]:
    """Derive the top, bottom and four side planes of the k-DOP.

    Args:
        cell: Cell whose center and corners lie on the ellipsoid surface.
        minimum_height: Lowest height the volume must enclose.
        maximum_height: Highest height the volume must enclose.
        ellipsoid: Reference shape for heights and surface normals.
        length_tolerance: Shortest side-normal length accepted before
            normalisation.

    Returns:
        Six planes with outward-pointing unit normals.
    """
    center = cell.center()
    corners = [cell.vertex(i) for i in range(4)]

    center_normal = ellipsoid.geodetic_surface_normal(center)
    top_point = ellipsoid.at_height(center, maximum_height)
    top = Plane.from_point_normal(top_point, center_normal)

    # Push the flipped top plane down to the lowest corner at minimum height
    max_distance = 0.0
    for corner in corners:
        distance = top.signed_distance(ellipsoid.at_height(corner, minimum_height))
        if distance < max_distance:
            max_distance = distance
    bottom = Plane(normal=-top.normal, distance=-top.distance + max_distance)
    logger.debug("Bottom plane offset %.6f m below the top plane", -max_distance)

    planes = [top, bottom]
    for i in range(4):
        vertex = corners[i]
        adjacent = corners[(i + 1) % 4]
        geodetic_normal = ellipsoid.geodetic_surface_normal(vertex)
        side_normal = normalize(np.cross(adjacent - vertex, geodetic_normal), length_tolerance)
        planes.append(Plane.from_point_normal(vertex, side_normal))

    return planes


# ─── Vertices ────────────────────────────────────────────────────────────────

def compute_vertices(
    planes: Sequence[Plane],
    determinant_tolerance: float = 1e-12,
) -> np.ndarray:
    """Intersect cap and side planes into the 8 k-DOP corners.

    Returns:
        (8, 3) array; rows 0..3 on the top plane, 4..7 on the bottom.
    """
    vertices = np.empty((8, 3))
    for i in range(4):
        previous_side = planes[side_plane_index(i + 3)]
        side = planes[side_plane_index(i)]
        vertices[i] = intersect_three_planes(
            planes[TOP], previous_side, side, determinant_tolerance,
        )
        vertices[4 + i] = intersect_three_planes(
            planes[BOTTOM], previous_side, side, determinant_tolerance,
        )
    return vertices


# ─── Edge normals ────────────────────────────────────────────────────────────

def compute_edge_normals(
    plane: Plane,
    vertices: Sequence[np.ndarray],
    length_tolerance: float = 1e-12,
) -> np.ndarray:
    """In-plane normal of each edge (v_i, v_{i+1}) of a face polygon."""
    normals = np.empty((4, 3))
    for i in range(4):
        edge = vertices[i] - vertices[(i + 1) % 4]
        normals[i] = normalize(np.cross(plane.normal, edge), length_tolerance)
    return normals


def compute_face_edge_normals(
    planes: Sequence[Plane],
    vertices: np.ndarray,
    length_tolerance: float = 1e-12,
) -> np.ndarray:
    """Edge normals for all six faces, shape (6, 4, 3)."""
    return np.array([
        compute_edge_normals(
            planes[face],
            vertices[list(face_vertex_indices(face))],
            length_tolerance,
        )
        for face in range(FACE_COUNT)
    ])


def build_kdop_geometry(
    planes: Sequence[Plane],
    determinant_tolerance: float = 1e-12,
    length_tolerance: float = 1e-12,
) -> KDopGeometry:
    """Run the vertex and edge-normal stages over a set of 6 planes.

    Arrays in the result are marked read-only.
    """
    vertices = compute_vertices(planes, determinant_tolerance)
    edge_normals = compute_face_edge_normals(planes, vertices, length_tolerance)
    vertices.flags.writeable = False
    edge_normals.flags.writeable = False
    return KDopGeometry(
        planes=tuple(planes),
        vertices=vertices,
        edge_normals=edge_normals,
    )
