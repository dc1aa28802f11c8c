"""
Reference ellipsoid geodesy.

Converts between geographic coordinates (longitude/latitude in degrees,
height in metres) and Earth-centred Cartesian coordinates, and computes
geodetic surface normals. The conversions run through a PROJ `cart`
pipeline built for the ellipsoid's own radii, so spheres and custom
ellipsoids behave the same way as WGS84.
"""
import logging
import threading
from dataclasses import dataclass, replace

import numpy as np
from pyproj import Transformer
from pyproj.enums import TransformDirection

from geometry_primitives import InvalidArgumentError, as_point, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cartographic:
    """Geographic position on (or above) an ellipsoid."""
    longitude: float  # degrees
    latitude: float   # degrees
    height: float = 0.0  # metres above the ellipsoid surface


class Ellipsoid:
    """Biaxial (oblate or spherical) reference ellipsoid.

    Parameters
    ----------
    equatorial_radius : float
        Semi-major axis a, in metres.
    polar_radius : float
        Semi-minor axis b, in metres.
    """

    def __init__(self, equatorial_radius: float, polar_radius: float):
        if equatorial_radius <= 0 or polar_radius <= 0:
            raise InvalidArgumentError(
                f"Ellipsoid radii must be positive, got "
                f"({equatorial_radius}, {polar_radius})"
            )
        self.equatorial_radius = float(equatorial_radius)
        self.polar_radius = float(polar_radius)
        self.radii = np.array(
            [self.equatorial_radius, self.equatorial_radius, self.polar_radius]
        )
        self.radii.flags.writeable = False
        self._one_over_radii_squared = 1.0 / (self.radii * self.radii)
        self._pipeline = (
            "+proj=pipeline "
            "+step +proj=unitconvert +xy_in=deg +xy_out=rad "
            f"+step +proj=cart +a={self.equatorial_radius!r} +b={self.polar_radius!r}"
        )
        # pyproj transformers must not be shared between threads
        self._local = threading.local()

    @classmethod
    def sphere(cls, radius: float) -> "Ellipsoid":
        return cls(radius, radius)

    def __repr__(self) -> str:
        return f"Ellipsoid({self.equatorial_radius!r}, {self.polar_radius!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Ellipsoid):
            return NotImplemented
        return (
            self.equatorial_radius == other.equatorial_radius
            and self.polar_radius == other.polar_radius
        )

    def __hash__(self) -> int:
        return hash((self.equatorial_radius, self.polar_radius))

    def _transformer(self) -> Transformer:
        transformer = getattr(self._local, "transformer", None)
        if transformer is None:
            logger.debug("Creating PROJ transformer for %r", self)
            transformer = Transformer.from_pipeline(self._pipeline)
            self._local.transformer = transformer
        return transformer

    def to_cartesian(self, cartographic: Cartographic) -> np.ndarray:
        """Geographic position -> Earth-centred Cartesian point."""
        x, y, z = self._transformer().transform(
            cartographic.longitude, cartographic.latitude, cartographic.height,
        )
        return np.array([x, y, z], dtype=np.float64)

    def to_cartographic(self, point) -> Cartographic:
        """Earth-centred Cartesian point -> geographic position."""
        point = as_point(point)
        lon, lat, height = self._transformer().transform(
            point[0], point[1], point[2], direction=TransformDirection.INVERSE,
        )
        return Cartographic(longitude=float(lon), latitude=float(lat), height=float(height))

    def geodetic_surface_normal(self, point) -> np.ndarray:
        """Outward unit normal of the ellipsoid surface through point."""
        point = as_point(point)
        return normalize(point * self._one_over_radii_squared)

    def at_height(self, point, height: float) -> np.ndarray:
        """Move point along its geodetic normal to the given height."""
        cartographic = replace(self.to_cartographic(point), height=float(height))
        return self.to_cartesian(cartographic)


WGS84 = Ellipsoid(6378137.0, 6356752.3142451793)
