"""
src/geo: Region/bounding-box conversions and Web-Mercator viewport math.
"""

from .regions import (
    BoundingBox,
    Coordinate,
    Region,
    bounding_box_from_points,
    bounding_box_to_region,
    normalize_region,
    region_from_points,
    region_to_bounding_box,
)
from .viewport import (
    EdgePadding,
    bounds_for_zoom,
    fit_region_to_coordinates,
    is_zoom_level_changed,
    resolve_region_zoom,
    resolve_zoom,
)

__all__ = [
    "BoundingBox",
    "Coordinate",
    "Region",
    "EdgePadding",
    "bounding_box_from_points",
    "bounding_box_to_region",
    "bounds_for_zoom",
    "fit_region_to_coordinates",
    "is_zoom_level_changed",
    "normalize_region",
    "region_from_points",
    "region_to_bounding_box",
    "resolve_region_zoom",
    "resolve_zoom",
]
