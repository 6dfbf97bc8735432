"""
Conversions between map regions and geographic bounding boxes.

A region is what a map widget reports: a centre coordinate plus an angular
delta on each axis. A bounding box is what the clustering index consumes:
west/south/east/north in degrees.

Region values usually come straight from live gesture state, so nothing in
this module raises on malformed deltas; they are clamped into a usable range
instead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from ..tools.errors import EmptyInputError


# (longitude, latitude) in degrees, GeoJSON axis order
Coordinate = Tuple[float, float]

# Deltas produced by region_from_points are (max - min) * EXPANSION_FACTOR
EXPANSION_FACTOR = 2.0

# Smallest delta a region may carry before bbox derivation
MIN_DELTA = 1e-9

# Fallback delta for non-finite longitude spans (whole world)
WORLD_LONGITUDE_DELTA = 180.0
WORLD_LATITUDE_DELTA = 90.0


@dataclass(frozen=True)
class Region:
    """Map viewport as centre + angular deltas, all in degrees."""

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float

    @property
    def center(self) -> Coordinate:
        return (self.longitude, self.latitude)

    def to_dict(self) -> dict:
        """Camel-cased mapping as exchanged with map widgets."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "latitudeDelta": self.latitude_delta,
            "longitudeDelta": self.longitude_delta,
        }


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned geographic rectangle (degrees)."""

    west: float
    south: float
    east: float
    north: float

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def as_wsen(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def contains(self, coordinate: Coordinate) -> bool:
        lng, lat = coordinate
        return self.west <= lng <= self.east and self.south <= lat <= self.north


def _finite_or(value: float, default: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


def normalize_region(region: Region) -> Region:
    """
    Return a region whose deltas are finite, non-zero and non-negative.

    A negative longitude delta means the viewport wrapped the antimeridian;
    it is normalised by adding 360 degrees. Non-finite deltas fall back to a
    whole-world span and zero deltas are lifted to ``MIN_DELTA``.
    """
    latitude = _finite_or(region.latitude, 0.0)
    longitude = _finite_or(region.longitude, 0.0)
    lat_delta = abs(_finite_or(region.latitude_delta, WORLD_LATITUDE_DELTA))
    lng_delta = _finite_or(region.longitude_delta, WORLD_LONGITUDE_DELTA)

    if lng_delta < 0:
        lng_delta += 360.0
        # Deltas below -360 are not a wrap, just garbage
        lng_delta = abs(lng_delta)

    return Region(
        latitude=latitude,
        longitude=longitude,
        latitude_delta=max(lat_delta, MIN_DELTA),
        longitude_delta=max(lng_delta, MIN_DELTA),
    )


def region_to_bounding_box(region: Region) -> BoundingBox:
    """
    Compute the bounding box covered by ``region``.

    ``west = lon - dlon``, ``east = lon + dlon`` and likewise for latitude,
    after the region has been normalised so that ``west < east`` and
    ``south < north`` always hold.
    """
    region = normalize_region(region)
    return BoundingBox(
        west=region.longitude - region.longitude_delta,
        south=region.latitude - region.latitude_delta,
        east=region.longitude + region.longitude_delta,
        north=region.latitude + region.latitude_delta,
    )


def bounding_box_to_region(bbox: BoundingBox) -> Region:
    """
    Calculate the region framing ``bbox``.

    The centre is the spherical midpoint of the south-west and north-east
    corners rather than a flat average, which stays correct close to the
    poles and for boxes that straddle the antimeridian. Deltas are the full
    box spans in degrees.

    Args:
        bbox: Box to frame

    Returns:
        Region centred on the box midpoint
    """
    min_lon = math.radians(bbox.west)
    max_lon = math.radians(bbox.east)
    min_lat = math.radians(bbox.south)
    max_lat = math.radians(bbox.north)

    d_lon = max_lon - min_lon
    d_lat = max_lat - min_lat

    x = math.cos(max_lat) * math.cos(d_lon)
    y = math.cos(max_lat) * math.sin(d_lon)

    lat_rad = math.atan2(
        math.sin(min_lat) + math.sin(max_lat),
        math.sqrt((math.cos(min_lat) + x) ** 2 + y ** 2),
    )
    lon_rad = min_lon + math.atan2(y, math.cos(min_lat) + x)

    return Region(
        latitude=math.degrees(lat_rad),
        longitude=math.degrees(lon_rad),
        latitude_delta=math.degrees(d_lat),
        longitude_delta=math.degrees(d_lon),
    )


def bounding_box_from_points(points: Iterable[Coordinate]) -> BoundingBox:
    """Tightest box around ``points``; raises :class:`EmptyInputError` when empty."""
    coords = np.asarray(list(points), dtype=float)
    if coords.size == 0:
        raise EmptyInputError(
            "Cannot compute a bounding box from zero points. "
            "Only call this for non-empty selections."
        )
    coords = coords.reshape(-1, 2)
    west, south = coords.min(axis=0)
    east, north = coords.max(axis=0)
    return BoundingBox(west=float(west), south=float(south), east=float(east), north=float(north))


def region_from_points(points: Iterable[Coordinate]) -> Region:
    """
    Compute a region enclosing ``points`` with comfortable padding.

    The centre is the midpoint of the min/max on each axis and each delta is
    ``(max - min) * EXPANSION_FACTOR``. A single point yields a region
    centred on it with zero deltas.

    Args:
        points: ``(lng, lat)`` pairs

    Returns:
        Enclosing region

    Raises:
        EmptyInputError: If ``points`` is empty
    """
    try:
        bbox = bounding_box_from_points(points)
    except EmptyInputError:
        raise EmptyInputError(
            "region_from_points() needs at least one point; "
            "do not call it speculatively on empty selections."
        ) from None

    return Region(
        latitude=(bbox.south + bbox.north) / 2.0,
        longitude=(bbox.west + bbox.east) / 2.0,
        latitude_delta=bbox.height * EXPANSION_FACTOR,
        longitude_delta=bbox.width * EXPANSION_FACTOR,
    )


__all__ = [
    "BoundingBox",
    "Coordinate",
    "EXPANSION_FACTOR",
    "MIN_DELTA",
    "Region",
    "bounding_box_from_points",
    "bounding_box_to_region",
    "normalize_region",
    "region_from_points",
    "region_to_bounding_box",
]
