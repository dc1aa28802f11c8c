"""
Quadrilateral surface cells.

A cell is a patch of the ellipsoid surface with a center point and four
corners in counter-clockwise order (seen from outside the ellipsoid).
S2Cell decodes an S2 token with s2sphere; QuadCell wraps corners that are
already known.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
import s2sphere

from ellipsoid import WGS84, Cartographic, Ellipsoid
from geometry_primitives import InvalidArgumentError, as_point

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH = 16  # 64-bit cell id as hex digits
TOKEN_PATTERN = re.compile(r"[0-9a-fA-F]{1,%d}" % MAX_TOKEN_LENGTH)


class SurfaceCell(ABC):
    """A four-cornered patch on the reference ellipsoid."""

    @abstractmethod
    def center(self) -> np.ndarray:
        """Cell center on the ellipsoid surface."""

    @abstractmethod
    def vertex(self, index: int) -> np.ndarray:
        """Corner `index` (0..3) on the ellipsoid surface."""

    def vertices(self) -> np.ndarray:
        return np.array([self.vertex(i) for i in range(4)])

    @staticmethod
    def _check_index(index: int) -> int:
        if not 0 <= index <= 3:
            raise InvalidArgumentError(f"Cell vertex index must be in 0..3, got {index}")
        return index


class QuadCell(SurfaceCell):
    """Cell with explicitly given center and corners."""

    def __init__(self, center, corners: Sequence):
        self._center = as_point(center, "center")
        if len(corners) != 4:
            raise InvalidArgumentError(f"A cell needs 4 corners, got {len(corners)}")
        self._corners = [as_point(c, f"corners[{i}]") for i, c in enumerate(corners)]

    @classmethod
    def from_degrees(
        cls,
        center: Cartographic,
        corners: Sequence[Cartographic],
        ellipsoid: Ellipsoid = WGS84,
    ) -> "QuadCell":
        """Build a cell from geographic center and corners (heights ignored)."""
        def on_surface(c: Cartographic) -> np.ndarray:
            return ellipsoid.to_cartesian(Cartographic(c.longitude, c.latitude, 0.0))

        return cls(on_surface(center), [on_surface(c) for c in corners])

    def center(self) -> np.ndarray:
        return self._center.copy()

    def vertex(self, index: int) -> np.ndarray:
        return self._corners[self._check_index(index)].copy()


class S2Cell(SurfaceCell):
    """An S2 cell placed on an ellipsoid.

    Unit-sphere S2 points are mapped to the ellipsoid by reusing their
    spherical longitude/latitude as geodetic coordinates at height 0.
    """

    def __init__(self, cell_id: s2sphere.CellId, ellipsoid: Ellipsoid = WGS84):
        if not cell_id.is_valid():
            raise InvalidArgumentError(f"Invalid S2 cell id: {cell_id.id():#x}")
        self.cell_id = cell_id
        self.ellipsoid = ellipsoid
        cell = s2sphere.Cell(cell_id)
        self._center = self._to_ellipsoid(cell.get_center())
        self._corners = [self._to_ellipsoid(cell.get_vertex(i)) for i in range(4)]

    @classmethod
    def from_token(cls, token: str, ellipsoid: Ellipsoid = WGS84) -> "S2Cell":
        """Decode an S2 token such as "89c25" into a cell.

        Raises:
            InvalidArgumentError: token missing, not a string, empty, not
                hexadecimal, too long, or not a valid cell.
        """
        if not isinstance(token, str):
            raise InvalidArgumentError(f"S2 token must be a string, got {type(token).__name__}")
        if not TOKEN_PATTERN.fullmatch(token):
            raise InvalidArgumentError(f"Malformed S2 token: {token!r}")
        return cls(s2sphere.CellId.from_token(token), ellipsoid)

    @property
    def token(self) -> str:
        return self.cell_id.to_token()

    @property
    def level(self) -> int:
        return self.cell_id.level()

    def _to_ellipsoid(self, point: s2sphere.Point) -> np.ndarray:
        lat_lng = s2sphere.LatLng.from_point(point)
        return self.ellipsoid.to_cartesian(Cartographic(
            longitude=lat_lng.lng().degrees,
            latitude=lat_lng.lat().degrees,
        ))

    def center(self) -> np.ndarray:
        return self._center.copy()

    def vertex(self, index: int) -> np.ndarray:
        return self._corners[self._check_index(index)].copy()

    def __repr__(self) -> str:
        return f"S2Cell(token={self.token!r}, level={self.level})"
