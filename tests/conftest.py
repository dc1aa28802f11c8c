"""
Shared test fixtures for k-DOP bounding volume tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest
import s2sphere

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bounding_volume import S2CellBoundingVolume
from ellipsoid import Ellipsoid
from geometry_primitives import Plane
from kdop_builder import build_kdop_geometry

SQRT_HALF = np.sqrt(0.5)


def token_near(lat: float, lng: float, level: int) -> str:
    """Token of the S2 cell at `level` containing (lat, lng) degrees."""
    cell_id = s2sphere.CellId.from_lat_lng(s2sphere.LatLng.from_degrees(lat, lng))
    return cell_id.parent(level).to_token()


@pytest.fixture
def s2_token():
    """A level-14 cell (~600 m across) near Boulder, Colorado."""
    return token_near(40.0, -105.0, 14)


@pytest.fixture
def wgs84_volume(s2_token):
    """k-DOP over the level-14 cell between 0 and 1000 m on WGS84."""
    return S2CellBoundingVolume.from_token(s2_token, minimum_height=0.0, maximum_height=1000.0)


@pytest.fixture
def sphere_ellipsoid():
    return Ellipsoid.sphere(6371000.0)


@pytest.fixture
def sphere_volume(s2_token, sphere_ellipsoid):
    """Same cell on a spherical earth; side planes pass through the origin."""
    return S2CellBoundingVolume.from_token(
        s2_token,
        minimum_height=0.0,
        maximum_height=1000.0,
        ellipsoid=sphere_ellipsoid,
    )


@pytest.fixture
def unit_box_planes():
    """Planes of the box [0, 1]^3 in k-DOP order (top, bottom, sides 0..3).

    Corners run counter-clockwise seen from +z: (0,0), (1,0), (1,1), (0,1).
    """
    return [
        Plane(np.array([0.0, 0.0, 1.0]), -1.0),   # top, z = 1
        Plane(np.array([0.0, 0.0, -1.0]), 0.0),   # bottom, z = 0
        Plane(np.array([0.0, -1.0, 0.0]), 0.0),   # side 0, y = 0
        Plane(np.array([1.0, 0.0, 0.0]), -1.0),   # side 1, x = 1
        Plane(np.array([0.0, 1.0, 0.0]), -1.0),   # side 2, y = 1
        Plane(np.array([-1.0, 0.0, 0.0]), 0.0),   # side 3, x = 0
    ]


@pytest.fixture
def unit_box_kdop(unit_box_planes):
    return build_kdop_geometry(unit_box_planes)


@pytest.fixture
def frustum_kdop():
    """Inverted frustum: [-2, 2]^2 at z = 1 narrowing to [-1, 1]^2 at z = 0.

    The side planes meet at an apex (0, 0, -1) below the bottom face.
    """
    planes = [
        Plane(np.array([0.0, 0.0, 1.0]), -1.0),
        Plane(np.array([0.0, 0.0, -1.0]), 0.0),
        Plane(np.array([0.0, -SQRT_HALF, -SQRT_HALF]), -SQRT_HALF),
        Plane(np.array([SQRT_HALF, 0.0, -SQRT_HALF]), -SQRT_HALF),
        Plane(np.array([0.0, SQRT_HALF, -SQRT_HALF]), -SQRT_HALF),
        Plane(np.array([-SQRT_HALF, 0.0, -SQRT_HALF]), -SQRT_HALF),
    ]
    return build_kdop_geometry(planes)


def box_distance(point) -> float:
    """Exact distance from point to the box [0, 1]^3."""
    point = np.asarray(point, dtype=float)
    return float(np.linalg.norm(point - np.clip(point, 0.0, 1.0)))
