"""
Web-Mercator viewport math.

Provides:
1. Zoom resolution for a bounding box shown in a pixel viewport
2. The inverse (bounding box visible around a centre at a given zoom)
3. Fitting a region to a set of coordinates with pixel edge padding

All pixel math uses the standard 256px slippy-map tile pyramid unless a
different ``tile_size`` is given.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from .regions import (
    BoundingBox,
    Coordinate,
    Region,
    bounding_box_from_points,
    region_to_bounding_box,
)


# -----------------------------
# Constants
# -----------------------------

TILE_SIZE = 256
DEFAULT_MIN_ZOOM = 0
DEFAULT_MAX_ZOOM = 20

# Web-Mercator is undefined at the poles
MERCATOR_LAT_BOUND = 85.0511287798

# Regions with a longitude delta at or above this are "world scale": the
# tile-fitting computation is unreliable there, so min_zoom is used directly
WORLD_SCALE_DELTA = 40.0

# Span used when fitting a single coordinate (or coincident ones)
MIN_FIT_SPAN = 1e-4


@dataclass(frozen=True)
class EdgePadding:
    """Pixel margins kept free around framed content."""

    top: float = 50.0
    right: float = 50.0
    bottom: float = 50.0
    left: float = 50.0

    @classmethod
    def from_value(cls, value: Union["EdgePadding", Mapping[str, Any], float, int, None]) -> "EdgePadding":
        """Build padding from a scalar, a ``{top, right, bottom, left}`` mapping or ``None``."""
        if value is None:
            return cls(0.0, 0.0, 0.0, 0.0)
        if isinstance(value, EdgePadding):
            return value
        if isinstance(value, Mapping):
            return cls(
                top=float(value.get("top", 0.0)),
                right=float(value.get("right", 0.0)),
                bottom=float(value.get("bottom", 0.0)),
                left=float(value.get("left", 0.0)),
            )
        pad = float(value)
        return cls(pad, pad, pad, pad)

    def to_dict(self) -> dict:
        return {"top": self.top, "right": self.right, "bottom": self.bottom, "left": self.left}


# -----------------------------
# Mercator projection
# -----------------------------

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def lng_to_x(lng: float) -> float:
    """Longitude to unit Mercator x in [0, 1]."""
    return lng / 360.0 + 0.5


def lat_to_y(lat: float) -> float:
    """Latitude to unit Mercator y in [0, 1] (0 at the north edge)."""
    sin = math.sin(math.radians(_clamp(lat, -MERCATOR_LAT_BOUND, MERCATOR_LAT_BOUND)))
    y = 0.5 - 0.25 * math.log((1 + sin) / (1 - sin)) / math.pi
    return _clamp(y, 0.0, 1.0)


def x_to_lng(x: float) -> float:
    return (x - 0.5) * 360.0


def y_to_lat(y: float) -> float:
    y2 = (180.0 - y * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


def world_size(zoom: float, tile_size: int = TILE_SIZE) -> float:
    return tile_size * (2 ** zoom)


def _pixel(coordinate: Coordinate, zoom: float, tile_size: int) -> Tuple[float, float]:
    size = world_size(zoom, tile_size)
    lng, lat = coordinate
    return lng_to_x(lng) * size, lat_to_y(lat) * size


def _coordinate(px: float, py: float, zoom: float, tile_size: int) -> Coordinate:
    size = world_size(zoom, tile_size)
    return x_to_lng(px / size), y_to_lat(py / size)


# -----------------------------
# Zoom Resolver
# -----------------------------

def fit_zoom(
    bbox: BoundingBox,
    pixel_width: float,
    pixel_height: float,
    *,
    tile_size: int = TILE_SIZE,
) -> float:
    """
    Fractional zoom at which ``bbox`` exactly fills the given viewport.

    For each axis the zoom is the level where the projected span equals the
    pixel dimension; the smaller of the two wins so the whole box fits.
    Returns ``inf`` for a box with no extent on either axis.
    """
    span_x = lng_to_x(bbox.east) - lng_to_x(bbox.west)
    span_y = lat_to_y(bbox.south) - lat_to_y(bbox.north)

    candidates = []
    if span_x > 0:
        candidates.append(math.log2(pixel_width / (tile_size * span_x)))
    if span_y > 0:
        candidates.append(math.log2(pixel_height / (tile_size * span_y)))
    if not candidates:
        return math.inf
    return min(candidates)


def resolve_zoom(
    bbox: BoundingBox,
    pixel_width: float,
    pixel_height: float,
    min_zoom: int = DEFAULT_MIN_ZOOM,
    max_zoom: int = DEFAULT_MAX_ZOOM,
    *,
    tile_size: int = TILE_SIZE,
    world_scale_delta: float = WORLD_SCALE_DELTA,
) -> int:
    """
    Map a bounding box shown at a pixel size to an integer zoom level.

    Args:
        bbox: Visible box, as produced by ``region_to_bounding_box``
        pixel_width: Viewport width in pixels
        pixel_height: Viewport height in pixels
        min_zoom: Lowest zoom the index is built for
        max_zoom: Highest zoom the index is built for
        tile_size: Tile edge length in pixels
        world_scale_delta: Longitude delta at/above which ``min_zoom`` is
            returned without fitting

    Returns:
        Zoom level clamped to ``[min_zoom, max_zoom]``
    """
    # The originating region's longitude delta is half the box width
    if bbox.width / 2.0 >= world_scale_delta:
        return min_zoom

    if pixel_width <= 0 or pixel_height <= 0:
        return min_zoom

    zoom = fit_zoom(bbox, pixel_width, pixel_height, tile_size=tile_size)
    if math.isinf(zoom):
        return max_zoom
    return int(_clamp(math.floor(zoom), min_zoom, max_zoom))


def resolve_region_zoom(
    region: Region,
    pixel_width: float,
    pixel_height: float,
    min_zoom: int = DEFAULT_MIN_ZOOM,
    max_zoom: int = DEFAULT_MAX_ZOOM,
    **kwargs: Any,
) -> Tuple[BoundingBox, int]:
    """Convenience wrapper returning the ``(bbox, zoom)`` pair for a region."""
    bbox = region_to_bounding_box(region)
    return bbox, resolve_zoom(bbox, pixel_width, pixel_height, min_zoom, max_zoom, **kwargs)


def is_zoom_level_changed(
    previous: Region,
    current: Region,
    pixel_width: float,
    pixel_height: float,
    min_zoom: int = DEFAULT_MIN_ZOOM,
    max_zoom: int = DEFAULT_MAX_ZOOM,
    **kwargs: Any,
) -> bool:
    """Whether moving from ``previous`` to ``current`` crosses an integer zoom level."""
    _, zoom_prev = resolve_region_zoom(previous, pixel_width, pixel_height, min_zoom, max_zoom, **kwargs)
    _, zoom_now = resolve_region_zoom(current, pixel_width, pixel_height, min_zoom, max_zoom, **kwargs)
    return zoom_prev != zoom_now


def bounds_for_zoom(
    center: Coordinate,
    zoom: float,
    pixel_width: float,
    pixel_height: float,
    *,
    tile_size: int = TILE_SIZE,
) -> BoundingBox:
    """Bounding box visible in a viewport centred on ``center`` at ``zoom``."""
    cx, cy = _pixel(center, zoom, tile_size)
    west, north = _coordinate(cx - pixel_width / 2.0, cy - pixel_height / 2.0, zoom, tile_size)
    east, south = _coordinate(cx + pixel_width / 2.0, cy + pixel_height / 2.0, zoom, tile_size)
    return BoundingBox(west=west, south=south, east=east, north=north)


# -----------------------------
# Fitting
# -----------------------------

def fit_region_to_coordinates(
    coordinates: Iterable[Coordinate],
    pixel_width: float,
    pixel_height: float,
    padding: Union[EdgePadding, Mapping[str, Any], float, None] = None,
) -> Region:
    """
    Smallest region framing ``coordinates`` with ``padding`` pixels kept free.

    The content box is stretched linearly so that it occupies only the
    unpadded part of the viewport on each axis. Coincident coordinates are
    given a ``MIN_FIT_SPAN`` extent so the region never collapses. ``padding``
    accepts anything :meth:`EdgePadding.from_value` does; ``None`` means none.

    Raises:
        EmptyInputError: If ``coordinates`` is empty
    """
    padding = EdgePadding.from_value(padding)
    box = bounding_box_from_points(coordinates)

    span_x = max(box.width, MIN_FIT_SPAN)
    span_y = max(box.height, MIN_FIT_SPAN)
    mid_x = (box.west + box.east) / 2.0
    mid_y = (box.south + box.north) / 2.0

    inner_w = max(pixel_width - padding.left - padding.right, 1.0)
    inner_h = max(pixel_height - padding.top - padding.bottom, 1.0)

    deg_per_px_x = span_x / inner_w
    deg_per_px_y = span_y / inner_h

    west = mid_x - span_x / 2.0 - padding.left * deg_per_px_x
    east = mid_x + span_x / 2.0 + padding.right * deg_per_px_x
    south = mid_y - span_y / 2.0 - padding.bottom * deg_per_px_y
    north = mid_y + span_y / 2.0 + padding.top * deg_per_px_y

    return Region(
        latitude=(south + north) / 2.0,
        longitude=(west + east) / 2.0,
        latitude_delta=(north - south) / 2.0,
        longitude_delta=(east - west) / 2.0,
    )


__all__ = [
    "DEFAULT_MAX_ZOOM",
    "DEFAULT_MIN_ZOOM",
    "EdgePadding",
    "MERCATOR_LAT_BOUND",
    "TILE_SIZE",
    "WORLD_SCALE_DELTA",
    "bounds_for_zoom",
    "fit_region_to_coordinates",
    "fit_zoom",
    "is_zoom_level_changed",
    "lat_to_y",
    "lng_to_x",
    "resolve_region_zoom",
    "resolve_zoom",
    "world_size",
    "x_to_lng",
    "y_to_lat",
]
