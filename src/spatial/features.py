"""
Point/cluster features and coordinate accessors.

A dataset item can be anything: a dict, a pydantic model, a dataframe row.
The accessor configured for the map extracts its ``(lng, lat)`` coordinate.
Two accessor shapes are accepted and resolved once into a plain callable:

- a field path, e.g. ``"location"`` or ``"geometry.coordinates"``
- a function ``item -> (lng, lat)``
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from numbers import Real
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..geo.regions import Coordinate
from ..tools.errors import ConfigurationError


DEFAULT_ACCESSOR = "location"

_LNG_KEYS = ("longitude", "lng", "lon")
_LAT_KEYS = ("latitude", "lat")


@dataclass(frozen=True)
class Feature:
    """
    A point or cluster as returned by a spatial clustering index.

    ``point_count == 0`` marks a leaf carrying the source ``item``;
    ``point_count > 0`` marks a cluster carrying a ``cluster_id``.
    """

    coordinate: Coordinate
    point_count: int = 0
    item: Any = None
    cluster_id: Optional[int] = None

    @property
    def is_cluster(self) -> bool:
        return self.point_count > 0

    @property
    def lng(self) -> float:
        return self.coordinate[0]

    @property
    def lat(self) -> float:
        return self.coordinate[1]

    def with_cluster_id(self, cluster_id: Optional[int]) -> "Feature":
        return replace(self, cluster_id=cluster_id)

    def to_geojson(self) -> Dict[str, Any]:
        """RFC 7946 Feature representation."""
        properties: Dict[str, Any] = {"point_count": self.point_count}
        if self.is_cluster:
            properties["cluster"] = True
            properties["cluster_id"] = self.cluster_id
        else:
            properties["item"] = self.item
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [self.lng, self.lat]},
            "properties": properties,
        }


def features_to_geojson(features: Iterable[Feature]) -> Dict[str, Any]:
    """Wrap ``features`` in a GeoJSON FeatureCollection."""
    return {"type": "FeatureCollection", "features": [f.to_geojson() for f in features]}


def features_to_frame(features: Sequence[Feature]) -> pd.DataFrame:
    """Tabular view of a snapshot: one row per feature."""
    return pd.DataFrame(
        {
            "lng": [f.lng for f in features],
            "lat": [f.lat for f in features],
            "point_count": [f.point_count for f in features],
            "cluster_id": pd.array([f.cluster_id for f in features], dtype="Int64"),
        },
        columns=["lng", "lat", "point_count", "cluster_id"],
    )


# -----------------------------
# Accessors
# -----------------------------

CoordinateAccessor = Callable[[Any], Coordinate]
Accessor = Union[str, CoordinateAccessor]


def _lookup(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj[key]
    if isinstance(obj, pd.Series):
        return obj[key]
    if isinstance(obj, (list, tuple)) and key.isdigit():
        return obj[int(key)]
    return getattr(obj, key)


def _first_key(obj: Any, keys: Sequence[str]) -> Any:
    for key in keys:
        try:
            return _lookup(obj, key)
        except (KeyError, AttributeError, IndexError, TypeError):
            continue
    raise KeyError(keys[0])


def _as_degrees(value: Any, axis: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigurationError(f"Non-numeric {axis} value: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ConfigurationError(f"Non-finite {axis} value: {value!r}")
    return value


def _coordinate_from_value(value: Any) -> Coordinate:
    """Interpret a resolved field as a coordinate."""
    if isinstance(value, (list, tuple)):
        if len(value) < 2:
            raise ConfigurationError(f"Coordinate pair needs two values, got {value!r}")
        return _as_degrees(value[0], "longitude"), _as_degrees(value[1], "latitude")
    try:
        lng = _first_key(value, _LNG_KEYS)
        lat = _first_key(value, _LAT_KEYS)
    except KeyError as exc:
        raise ConfigurationError(
            f"Cannot find longitude/latitude in {value!r} (missing {exc.args[0]!r})"
        ) from None
    return _as_degrees(lng, "longitude"), _as_degrees(lat, "latitude")


class FieldPath:
    """Accessor reading a (dotted) field path from each item."""

    def __init__(self, path: str):
        if not path:
            raise ConfigurationError("Accessor field path must be a non-empty string")
        self.path = path
        self._parts = path.split(".")

    def __call__(self, item: Any) -> Coordinate:
        value = item
        for part in self._parts:
            try:
                value = _lookup(value, part)
            except (KeyError, AttributeError, IndexError, TypeError):
                raise ConfigurationError(
                    f"Accessor '{self.path}' cannot resolve field '{part}' on item {item!r}"
                ) from None
        return _coordinate_from_value(value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldPath) and other.path == self.path

    def __hash__(self) -> int:
        return hash(("FieldPath", self.path))

    def __repr__(self) -> str:
        return f"FieldPath({self.path!r})"


def resolve_accessor(accessor: Optional[Accessor] = None) -> CoordinateAccessor:
    """
    Turn an accessor setting into a callable returning validated coordinates.

    Args:
        accessor: Field path string, callable, or ``None`` for ``"location"``

    Returns:
        Callable ``item -> (lng, lat)`` raising :class:`ConfigurationError`
        when an item cannot be resolved
    """
    if accessor is None:
        return FieldPath(DEFAULT_ACCESSOR)
    if isinstance(accessor, FieldPath):
        return accessor
    if isinstance(accessor, str):
        return FieldPath(accessor)
    if not callable(accessor):
        raise ConfigurationError(
            f"Accessor must be a field path or a callable, got {type(accessor).__name__}"
        )

    def _checked(item: Any) -> Coordinate:
        try:
            value = accessor(item)
        except (KeyError, AttributeError, IndexError, TypeError) as exc:
            raise ConfigurationError(f"Accessor failed for item {item!r}: {exc}") from exc
        return _coordinate_from_value(value)

    return _checked


# -----------------------------
# Dataset conversion
# -----------------------------

def coerce_dataset(dataset: Any) -> List[Any]:
    """Return dataset items as a list; dataframe rows become dicts."""
    if dataset is None:
        return []
    if isinstance(dataset, pd.DataFrame):
        return dataset.to_dict(orient="records")
    return list(dataset)


def item_to_feature(item: Any, accessor: CoordinateAccessor) -> Feature:
    """
    Build a leaf feature for ``item``.

    A list item stands for several records sharing one address: its first
    element supplies the coordinate and the whole list is kept as payload.
    """
    point = item[0] if isinstance(item, list) and item else item
    return Feature(coordinate=accessor(point), point_count=0, item=item)


def items_to_features(items: Iterable[Any], accessor: CoordinateAccessor) -> List[Feature]:
    features = []
    for position, item in enumerate(items):
        try:
            features.append(item_to_feature(item, accessor))
        except ConfigurationError as exc:
            raise ConfigurationError(f"Dataset item {position}: {exc}") from exc
    return features


__all__ = [
    "Accessor",
    "CoordinateAccessor",
    "DEFAULT_ACCESSOR",
    "Feature",
    "FieldPath",
    "coerce_dataset",
    "features_to_frame",
    "features_to_geojson",
    "item_to_feature",
    "items_to_features",
    "resolve_accessor",
]
