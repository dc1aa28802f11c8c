"""Tests for s2_cell module."""
import numpy as np
import pytest

from ellipsoid import WGS84, Cartographic
from geometry_primitives import InvalidArgumentError
from s2_cell import QuadCell, S2Cell


class TestS2CellFromToken:
    """Test token decoding and validation."""

    def test_face_cell(self):
        cell = S2Cell.from_token("1")
        assert cell.level == 0
        assert cell.token == "1"

    def test_level_and_roundtrip(self, s2_token):
        cell = S2Cell.from_token(s2_token)
        assert cell.level == 14
        assert cell.token == s2_token

    @pytest.mark.parametrize("token", [
        "", "X", "zz", "0", "1" * 17,
        "0x1", " 89c25", "89c25 ", "89_c25", "+89c25",
    ])
    def test_malformed_tokens(self, token):
        with pytest.raises(InvalidArgumentError):
            S2Cell.from_token(token)

    def test_missing_token(self):
        with pytest.raises(InvalidArgumentError):
            S2Cell.from_token(None)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            S2Cell.from_token("not-a-token")


class TestS2CellGeometry:
    """Test center and corners placed on the ellipsoid."""

    def test_points_lie_on_surface(self, s2_token):
        cell = S2Cell.from_token(s2_token)
        for point in [cell.center()] + [cell.vertex(i) for i in range(4)]:
            assert WGS84.to_cartographic(point).height == pytest.approx(0.0, abs=1e-4)

    def test_center_near_seed_location(self, s2_token):
        center = WGS84.to_cartographic(S2Cell.from_token(s2_token).center())
        assert center.latitude == pytest.approx(40.0, abs=0.01)
        assert center.longitude == pytest.approx(-105.0, abs=0.01)

    def test_corners_counter_clockwise_from_outside(self, s2_token):
        cell = S2Cell.from_token(s2_token)
        corners = cell.vertices()
        up = WGS84.geodetic_surface_normal(cell.center())
        for i in range(4):
            a = corners[i] - cell.center()
            b = corners[(i + 1) % 4] - cell.center()
            assert np.dot(np.cross(a, b), up) > 0

    def test_vertex_index_range(self, s2_token):
        cell = S2Cell.from_token(s2_token)
        with pytest.raises(InvalidArgumentError):
            cell.vertex(4)

    def test_returned_points_are_copies(self, s2_token):
        cell = S2Cell.from_token(s2_token)
        corner = cell.vertex(0)
        corner[:] = 0.0
        assert np.linalg.norm(cell.vertex(0)) > 6.0e6


class TestQuadCell:
    """Test explicitly specified cells."""

    def test_from_degrees(self):
        cell = QuadCell.from_degrees(
            Cartographic(0.0, 0.0),
            [
                Cartographic(-0.001, -0.001),
                Cartographic(0.001, -0.001),
                Cartographic(0.001, 0.001),
                Cartographic(-0.001, 0.001),
            ],
        )
        np.testing.assert_allclose(cell.center(), [WGS84.equatorial_radius, 0.0, 0.0], atol=1e-6)
        assert cell.vertices().shape == (4, 3)

    def test_requires_four_corners(self):
        with pytest.raises(InvalidArgumentError):
            QuadCell([0.0, 0.0, 1.0], [[1.0, 0.0, 0.0]] * 3)
