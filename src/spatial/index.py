"""
Contract between the clustering controller and a spatial clustering index.

The controller never looks inside an index; it only needs the four
operations below. :class:`~src.spatial.supercluster.SuperClusterIndex` is
the bundled implementation, tests substitute their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from ..geo.regions import BoundingBox
from ..tools.errors import ConfigurationError
from .features import Accessor, Feature


# Zoom is packed into the low 5 bits of cluster ids
MAX_SUPPORTED_ZOOM = 30


@dataclass(frozen=True)
class IndexConfig:
    """Parameters that determine index bucketing; any change forces a rebuild."""

    extent: int = 512
    """Tile extent the radius is measured against."""

    radius: float = 40.0
    """Cluster radius in pixels (relative to ``extent``)."""

    min_zoom: int = 0
    """Lowest zoom level clusters are generated for."""

    max_zoom: int = 20
    """Highest zoom level clusters are generated for."""

    accessor: Optional[Accessor] = None
    """Field path or callable extracting ``(lng, lat)``; ``None`` means ``"location"``."""

    def validate(self) -> "IndexConfig":
        """Raise :class:`ConfigurationError` for invalid numeric ranges."""
        if self.min_zoom < 0:
            raise ConfigurationError(f"min_zoom must be >= 0, got {self.min_zoom}")
        if self.max_zoom > MAX_SUPPORTED_ZOOM:
            raise ConfigurationError(
                f"max_zoom must be <= {MAX_SUPPORTED_ZOOM}, got {self.max_zoom}"
            )
        if self.min_zoom > self.max_zoom:
            raise ConfigurationError(
                f"min_zoom ({self.min_zoom}) must not exceed max_zoom ({self.max_zoom})"
            )
        if self.extent <= 0:
            raise ConfigurationError(f"extent must be positive, got {self.extent}")
        if self.radius <= 0:
            raise ConfigurationError(f"radius must be positive, got {self.radius}")
        if self.accessor is not None and not (isinstance(self.accessor, str) or callable(self.accessor)):
            raise ConfigurationError(
                f"accessor must be a field path or a callable, got {type(self.accessor).__name__}"
            )
        return self


class SpatialClusteringIndex(Protocol):
    """Operations the controller relies on."""

    def load(self, features: Sequence[Feature]) -> "SpatialClusteringIndex":
        ...

    def get_clusters(self, bbox: BoundingBox, zoom: int) -> List[Feature]:
        ...

    def get_leaves(self, cluster_id: int, limit: int = 10, offset: int = 0) -> List[Feature]:
        ...

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        ...


IndexFactory = Callable[[IndexConfig], SpatialClusteringIndex]


__all__ = [
    "IndexConfig",
    "IndexFactory",
    "MAX_SUPPORTED_ZOOM",
    "SpatialClusteringIndex",
]
