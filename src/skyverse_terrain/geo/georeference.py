"""Georeference: WGS84 <-> local East-North-Up frame anchored at an origin."""
from __future__ import annotations

import logging
import math
from typing import Tuple

from pyproj import Transformer

from skyverse_terrain.contracts.engine_contract import Georeference

log = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

# WGS84 3D geographic (lon, lat, h) and geocentric ECEF
_GEODETIC_CRS = "EPSG:4979"
_ECEF_CRS = "EPSG:4978"


class LocalTangentGeoreference(Georeference):
    """
    Places a local Cartesian frame tangent to the ellipsoid at
    (origin_lat, origin_lng, origin_height).

    Local axes are East, North, Up, multiplied by ``unit_scale`` (100 for a
    centimetre world). ``left_handed`` flips the north axis so +y points south,
    as engines with a left-handed Z-up frame expect.
    """

    def __init__(
        self,
        origin_lat: float,
        origin_lng: float,
        origin_height: float = 0.0,
        unit_scale: float = 1.0,
        left_handed: bool = False,
    ):
        if not (-90.0 <= origin_lat <= 90.0):
            raise ValueError(f"Invalid origin latitude: {origin_lat} (must be -90 to 90)")
        if not (-180.0 <= origin_lng <= 180.0):
            raise ValueError(f"Invalid origin longitude: {origin_lng} (must be -180 to 180)")
        if unit_scale <= 0:
            raise ValueError(f"unit_scale must be positive, got {unit_scale}")

        self.origin_lat = origin_lat
        self.origin_lng = origin_lng
        self.origin_height = origin_height
        self.unit_scale = unit_scale
        self.left_handed = left_handed

        self._to_ecef = Transformer.from_crs(_GEODETIC_CRS, _ECEF_CRS, always_xy=True)
        self._from_ecef = Transformer.from_crs(_ECEF_CRS, _GEODETIC_CRS, always_xy=True)

        self._origin_ecef = self._to_ecef.transform(origin_lng, origin_lat, origin_height)

        phi = math.radians(origin_lat)
        lam = math.radians(origin_lng)
        self._sin_phi, self._cos_phi = math.sin(phi), math.cos(phi)
        self._sin_lam, self._cos_lam = math.sin(lam), math.cos(lam)

        log.debug(
            "Georeference origin (%.6f, %.6f, %.1f) scale=%.1f",
            origin_lat, origin_lng, origin_height, unit_scale,
        )

    # ------------------------------------------------------------------

    def geo_to_local(self, lat: float, lng: float, alt: float) -> Vec3:
        x, y, z = self._to_ecef.transform(lng, lat, alt)
        dx = x - self._origin_ecef[0]
        dy = y - self._origin_ecef[1]
        dz = z - self._origin_ecef[2]

        sp, cp, sl, cl = self._sin_phi, self._cos_phi, self._sin_lam, self._cos_lam
        east = -sl * dx + cl * dy
        north = -sp * cl * dx - sp * sl * dy + cp * dz
        up = cp * cl * dx + cp * sl * dy + sp * dz

        if self.left_handed:
            north = -north
        s = self.unit_scale
        return (east * s, north * s, up * s)

    def local_to_geo(self, x: float, y: float, z: float) -> Vec3:
        s = self.unit_scale
        east, north, up = x / s, y / s, z / s
        if self.left_handed:
            north = -north

        sp, cp, sl, cl = self._sin_phi, self._cos_phi, self._sin_lam, self._cos_lam
        dx = -sl * east - sp * cl * north + cp * cl * up
        dy = cl * east - sp * sl * north + cp * sl * up
        dz = cp * north + sp * up

        lng, lat, alt = self._from_ecef.transform(
            dx + self._origin_ecef[0],
            dy + self._origin_ecef[1],
            dz + self._origin_ecef[2],
        )
        return (lat, lng, alt)
