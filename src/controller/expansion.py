"""
Cluster press handling.

Two mutually exclusive strategies decide where the map goes next:

- ``FIT_TO_CHILDREN``: frame the cluster's member coordinates (up to
  ``max_children`` of them) with edge padding.
- ``ZOOM_TO_REGION``: centre on the cluster and show the area visible at its
  expansion zoom.

When the caller opts out of the built-in press behaviour no framing is
computed at all and only the cluster id is surfaced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from ..geo.regions import Coordinate, Region
from ..geo.viewport import (
    TILE_SIZE,
    EdgePadding,
    bounds_for_zoom,
    fit_region_to_coordinates,
)
from ..spatial.features import Accessor, resolve_accessor
from ..spatial.index import SpatialClusteringIndex


logger = logging.getLogger(__name__)

DEFAULT_MAX_CHILDREN = 100


class ExpansionStrategy(Enum):
    """How the follow-up viewport of a pressed cluster is computed."""
    FIT_TO_CHILDREN = "fit_to_children"
    ZOOM_TO_REGION = "zoom_to_region"


@dataclass(frozen=True)
class ExpansionResult:
    """
    Outcome of pressing a cluster.

    Attributes:
        cluster_id: Pressed cluster
        members: Source items of the retrieved leaves (``None`` when the
            built-in behaviour is disabled or the zoom strategy is used)
        target_region: Region the presentation layer should animate to
        expansion_zoom: Zoom used by ``ZOOM_TO_REGION`` (after correction)
    """
    cluster_id: int
    members: Optional[List[Any]] = None
    target_region: Optional[Region] = None
    expansion_zoom: Optional[int] = None


def corrected_expansion_zoom(expansion_zoom: int) -> int:
    """Zoom 1 lands on a tile-math artifact at the lowest levels; use 2 instead."""
    if expansion_zoom == 1:
        return expansion_zoom + 1
    return expansion_zoom


class ExpansionHandler:
    """
    Computes members and target region for a pressed cluster.

    Args:
        accessor: Coordinate accessor for member items
        max_children: Maximum number of leaves retrieved per press
        edge_padding: Pixel margins kept around fitted members (``None`` for none)
        preserve_press_behavior: Whether framing is computed at all
        strategy: Framing strategy
        pixel_width: Viewport width used for fitting and zoom bounds
        pixel_height: Viewport height used for fitting and zoom bounds
        tile_size: Tile edge length in pixels
    """

    def __init__(
        self,
        accessor: Optional[Accessor] = None,
        *,
        max_children: int = DEFAULT_MAX_CHILDREN,
        edge_padding: Optional[EdgePadding] = EdgePadding(),
        preserve_press_behavior: bool = True,
        strategy: ExpansionStrategy = ExpansionStrategy.FIT_TO_CHILDREN,
        pixel_width: float = 375.0,
        pixel_height: float = 812.0,
        tile_size: int = TILE_SIZE,
    ):
        self.accessor = resolve_accessor(accessor)
        self.max_children = max_children
        self.edge_padding = EdgePadding.from_value(edge_padding)
        self.preserve_press_behavior = preserve_press_behavior
        self.strategy = strategy
        self.pixel_width = pixel_width
        self.pixel_height = pixel_height
        self.tile_size = tile_size

    def _member_coordinate(self, item: Any) -> Coordinate:
        point = item[0] if isinstance(item, list) and item else item
        return self.accessor(point)

    def on_cluster_selected(
        self,
        index: SpatialClusteringIndex,
        cluster_id: int,
        coordinate: Optional[Coordinate] = None,
    ) -> ExpansionResult:
        """
        Resolve a cluster press.

        Args:
            index: Index the cluster id belongs to
            cluster_id: Pressed cluster
            coordinate: Cluster centroid, required by ``ZOOM_TO_REGION``

        Returns:
            ExpansionResult with members/target region per strategy

        Raises:
            KeyError: If the index does not know ``cluster_id``
            EmptyInputError: If the cluster yields no leaves to frame
        """
        if not self.preserve_press_behavior:
            return ExpansionResult(cluster_id=cluster_id, members=None)

        if self.strategy is ExpansionStrategy.ZOOM_TO_REGION:
            return self._zoom_to_region(index, cluster_id, coordinate)

        leaves = index.get_leaves(cluster_id, limit=self.max_children)
        members = [leaf.item for leaf in leaves]
        coordinates = [self._member_coordinate(item) for item in members]

        target = fit_region_to_coordinates(
            coordinates, self.pixel_width, self.pixel_height, self.edge_padding
        )
        logger.debug(
            "Cluster %s pressed: framing %d member(s) -> %s", cluster_id, len(members), target
        )
        return ExpansionResult(cluster_id=cluster_id, members=members, target_region=target)

    def _zoom_to_region(
        self,
        index: SpatialClusteringIndex,
        cluster_id: int,
        coordinate: Optional[Coordinate],
    ) -> ExpansionResult:
        if coordinate is None:
            raise ValueError("ZOOM_TO_REGION expansion needs the cluster coordinate")

        expansion_zoom = corrected_expansion_zoom(index.get_cluster_expansion_zoom(cluster_id))
        bbox = bounds_for_zoom(
            coordinate, expansion_zoom, self.pixel_width, self.pixel_height, tile_size=self.tile_size
        )

        # Half the visible span as deltas, halved again to land inside the split
        latitude_delta = (bbox.north - bbox.south) / 2.0
        longitude_delta = (bbox.east - bbox.west) / 2.0
        target = Region(
            latitude=coordinate[1],
            longitude=coordinate[0],
            latitude_delta=latitude_delta / 2.0,
            longitude_delta=longitude_delta / 2.0,
        )
        return ExpansionResult(
            cluster_id=cluster_id, target_region=target, expansion_zoom=expansion_zoom
        )


__all__ = [
    "DEFAULT_MAX_CHILDREN",
    "ExpansionHandler",
    "ExpansionResult",
    "ExpansionStrategy",
    "corrected_expansion_zoom",
]
