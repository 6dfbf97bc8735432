"""
Viewport-driven clustering controller.

Ties the pieces together on every event coming from the map:

    dataset change  -> rebuild index (if identity/config changed) -> requery
    region change   -> (bbox, zoom) -> query -> stabilise ids -> publish
    cluster press   -> expansion handler -> optional follow-up region change

The controller is meant to be driven from a single update thread. Region
changes that arrive while a rebuild is running are queued and replayed
against the new index once it is published.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..geo.regions import Region, normalize_region
from ..geo.viewport import is_zoom_level_changed, resolve_region_zoom
from ..spatial.features import Feature, features_to_frame, features_to_geojson
from ..spatial.index import IndexFactory
from ..spatial.lifecycle import DEFAULT_QUERY_CACHE_SIZE, IndexGeneration, IndexLifecycleManager
from ..spatial.stabilizer import stabilize_cluster_ids
from .expansion import ExpansionHandler, ExpansionResult
from .settings import ClusterSettings


logger = logging.getLogger(__name__)

# Used until the host reports a region: the whole world
WORLD_REGION = Region(latitude=0.0, longitude=0.0, latitude_delta=85.0, longitude_delta=180.0)


@dataclass(frozen=True)
class LayoutChange:
    """
    Signal emitted whenever a snapshot is published.

    The controller never animates anything itself; ``animate`` tells the
    presentation layer whether a layout transition is wanted.
    """
    changed: bool
    old_count: int
    new_count: int
    animate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed": self.changed,
            "old_count": self.old_count,
            "new_count": self.new_count,
            "animate": self.animate,
        }


RegionCallback = Callable[[Region], None]
PressCallback = Callable[[int, Optional[List[Any]]], None]


class ClusterController:
    """
    Owns the current region, index generation and cluster snapshot.

    Usage:
        controller = ClusterController(ClusterSettings(max_zoom=16), region)
        controller.on_dataset_change(items)
        controller.on_region_change(new_region)
        for feature in controller.snapshot:
            ...
    """

    def __init__(
        self,
        settings: Optional[ClusterSettings] = None,
        region: Optional[Region] = None,
        *,
        index_factory: Optional[IndexFactory] = None,
        cache_size: int = DEFAULT_QUERY_CACHE_SIZE,
        on_region_change_complete: Optional[RegionCallback] = None,
        on_cluster_press: Optional[PressCallback] = None,
    ):
        self.settings = (settings or ClusterSettings()).validate()
        self._region = region or WORLD_REGION
        self._lifecycle = IndexLifecycleManager(index_factory, cache_size=cache_size)
        self._expansion = ExpansionHandler(
            self.settings.accessor,
            max_children=self.settings.cluster_press_max_children,
            edge_padding=self.settings.edge_padding,
            preserve_press_behavior=self.settings.preserve_cluster_press_behavior,
            strategy=self.settings.expansion_strategy,
            pixel_width=self.settings.width,
            pixel_height=self.settings.height,
            tile_size=self.settings.tile_size,
        )
        self._on_region_change_complete = on_region_change_complete
        self._on_cluster_press = on_cluster_press

        self._snapshot: Tuple[Feature, ...] = ()
        # Index-assigned features, position-aligned with _snapshot
        self._raw_snapshot: Tuple[Feature, ...] = ()
        self._rebuilding = False
        self._pending_regions: List[Region] = []

    # -------------------------------------------------------------
    # State
    # -------------------------------------------------------------

    @property
    def region(self) -> Region:
        return self._region

    @property
    def snapshot(self) -> Tuple[Feature, ...]:
        return self._snapshot

    @property
    def generation(self) -> Optional[IndexGeneration]:
        return self._lifecycle.current

    @property
    def lifecycle(self) -> IndexLifecycleManager:
        return self._lifecycle

    def clusters(self) -> List[Feature]:
        return [f for f in self._snapshot if f.is_cluster]

    def leaves(self) -> List[Feature]:
        return [f for f in self._snapshot if not f.is_cluster]

    def snapshot_frame(self) -> pd.DataFrame:
        return features_to_frame(self._snapshot)

    def to_geojson(self) -> Dict[str, Any]:
        return features_to_geojson(self._snapshot)

    # -------------------------------------------------------------
    # Events
    # -------------------------------------------------------------

    def on_dataset_change(self, dataset: Any) -> LayoutChange:
        """
        Handle a new dataset reference.

        The index is rebuilt only if ``dataset`` is a different object than
        the one the current generation was built from (or settings changed);
        either way the current region is re-queried.

        Raises:
            ConfigurationError: If an item's coordinate cannot be resolved
        """
        config = self.settings.index_config()

        if self._lifecycle.needs_rebuild(dataset, config):
            self._rebuilding = True
            try:
                self._lifecycle.rebuild(dataset, config)
            finally:
                self._rebuilding = False

        change = self._refresh(self._region)
        return self._replay_pending() or change

    def on_region_change(self, region: Region) -> LayoutChange:
        """
        Handle a completed pan/zoom.

        Regions at least ``wide_region_delta`` wide keep the previous
        snapshot (and the previous region) without querying.
        """
        if self._on_region_change_complete is not None:
            self._on_region_change_complete(region)
        return self._apply_region(region)

    def _apply_region(self, region: Region) -> LayoutChange:
        if self._rebuilding:
            self._pending_regions.append(region)
            return self._unchanged()

        if normalize_region(region).longitude_delta >= self.settings.wide_region_delta:
            logger.debug(
                "Region too wide to cluster (longitude delta %.1f >= %.1f); keeping snapshot",
                region.longitude_delta, self.settings.wide_region_delta,
            )
            return self._unchanged()

        self._region = region
        if self._lifecycle.current is None:
            # Applied when the first dataset arrives
            return self._unchanged()
        return self._refresh(region)

    def on_cluster_press(self, cluster_id: int, *, follow: bool = False) -> ExpansionResult:
        """
        Expand a cluster of the current snapshot.

        Args:
            cluster_id: Id as published in :attr:`snapshot`
            follow: Feed the resulting target region straight back into
                :meth:`on_region_change` (hosts that animate first pass False
                and report the region once the animation settles)

        Raises:
            KeyError: If no cluster with ``cluster_id`` is in the snapshot
        """
        position = self._position_of(cluster_id)
        generation = self._lifecycle.current
        raw = self._raw_snapshot[position]

        result = self._expansion.on_cluster_selected(
            generation.index, raw.cluster_id, self._snapshot[position].coordinate
        )
        # Report the id the caller knows, not the index-internal one
        result = ExpansionResult(
            cluster_id=cluster_id,
            members=result.members,
            target_region=result.target_region,
            expansion_zoom=result.expansion_zoom,
        )

        if self._on_cluster_press is not None:
            self._on_cluster_press(cluster_id, result.members)

        if follow and result.target_region is not None:
            self.on_region_change(result.target_region)
        return result

    def is_zoom_level_changed(self, previous: Region, region: Region) -> bool:
        s = self.settings
        return is_zoom_level_changed(
            previous, region, s.width, s.height, s.min_zoom, s.max_zoom,
            tile_size=s.tile_size, world_scale_delta=s.world_scale_delta,
        )

    # -------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------

    def _position_of(self, cluster_id: int) -> int:
        for position, feature in enumerate(self._snapshot):
            if feature.is_cluster and feature.cluster_id == cluster_id:
                return position
        raise KeyError(f"Cluster {cluster_id} is not part of the current snapshot")

    def _unchanged(self) -> LayoutChange:
        count = len(self._snapshot)
        return LayoutChange(changed=False, old_count=count, new_count=count)

    def _refresh(self, region: Region) -> LayoutChange:
        s = self.settings
        bbox, zoom = resolve_region_zoom(
            region, s.width, s.height, s.min_zoom, s.max_zoom,
            tile_size=s.tile_size, world_scale_delta=s.world_scale_delta,
        )
        raw = self._lifecycle.query(bbox, zoom)
        stable = stabilize_cluster_ids(self._snapshot, raw, deduplicate=s.deduplicate_matches)
        return self._publish(raw, stable)

    def _publish(self, raw: Sequence[Feature], stable: Sequence[Feature]) -> LayoutChange:
        old_count = len(self._snapshot)
        self._raw_snapshot = tuple(raw)
        self._snapshot = tuple(stable)
        new_count = len(self._snapshot)
        changed = old_count != new_count
        return LayoutChange(
            changed=changed,
            old_count=old_count,
            new_count=new_count,
            animate=changed and self.settings.animate_clusters,
        )

    def _replay_pending(self) -> Optional[LayoutChange]:
        change = None
        while self._pending_regions:
            region = self._pending_regions.pop(0)
            change = self._apply_region(region)
        return change


__all__ = ["ClusterController", "LayoutChange", "WORLD_REGION"]
