"""
Hierarchical greedy point clustering for map display.

Points are projected into unit Web-Mercator space. Starting one level above
``max_zoom`` (where every point stands alone) and working down to
``min_zoom``, each unvisited point absorbs all unvisited neighbours within
``radius / (extent * 2**zoom)`` into a weighted-centroid cluster. Each zoom
level is stored so bbox queries are a simple range filter on one level.

Neighbour search uses a scikit-learn ``KDTree`` per level.

Cluster ids pack the origin position and zoom: ``(position << 5) + zoom + 1``.
They are deterministic for a given dataset and config but carry no meaning
across datasets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from sklearn.neighbors import KDTree

from ..geo.regions import BoundingBox
from ..geo.viewport import MERCATOR_LAT_BOUND
from .features import Feature
from .index import IndexConfig


logger = logging.getLogger(__name__)

_ZOOM_BITS = 5
_ZOOM_MASK = (1 << _ZOOM_BITS) - 1


# -----------------------------
# Vectorised projection
# -----------------------------

def _lng_x(lng: np.ndarray) -> np.ndarray:
    return lng / 360.0 + 0.5


def _lat_y(lat: np.ndarray) -> np.ndarray:
    sin = np.sin(np.radians(np.clip(lat, -MERCATOR_LAT_BOUND, MERCATOR_LAT_BOUND)))
    y = 0.5 - 0.25 * np.log((1 + sin) / (1 - sin)) / np.pi
    return np.clip(y, 0.0, 1.0)


def _x_lng(x: np.ndarray) -> np.ndarray:
    return (x - 0.5) * 360.0


def _y_lat(y: np.ndarray) -> np.ndarray:
    y2 = (180.0 - y * 360.0) * np.pi / 180.0
    return 360.0 * np.arctan(np.exp(y2)) / np.pi - 90.0


@dataclass
class _Level:
    """All points/clusters visible at one zoom level."""

    x: np.ndarray
    y: np.ndarray
    count: np.ndarray
    """Number of source points represented (1 for leaves)."""

    ref: np.ndarray
    """Leaf position in the source feature list, or cluster id."""

    is_cluster: np.ndarray
    parent: np.ndarray
    """Cluster id this entry was merged into at the next lower zoom (-1 if none)."""

    tree: Optional[KDTree] = None

    def __len__(self) -> int:
        return len(self.x)


class SuperClusterIndex:
    """
    Default :class:`~src.spatial.index.SpatialClusteringIndex` implementation.

    Usage:
        index = SuperClusterIndex(IndexConfig(radius=40, max_zoom=16)).load(features)
        index.get_clusters(bbox, zoom=10)
    """

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = (config or IndexConfig()).validate()
        self._points: List[Feature] = []
        self._levels: Dict[int, _Level] = {}

    def __len__(self) -> int:
        return len(self._points)

    # -------------------------------------------------------------
    # Build
    # -------------------------------------------------------------

    def load(self, features: Sequence[Feature]) -> "SuperClusterIndex":
        """Bulk-load leaf features and build every zoom level."""
        cfg = self.config
        self._points = list(features)
        self._levels = {}

        n = len(self._points)
        lng = np.fromiter((f.lng for f in self._points), dtype=float, count=n)
        lat = np.fromiter((f.lat for f in self._points), dtype=float, count=n)

        level = _Level(
            x=_lng_x(lng),
            y=_lat_y(lat),
            count=np.ones(n, dtype=np.int64),
            ref=np.arange(n, dtype=np.int64),
            is_cluster=np.zeros(n, dtype=bool),
            parent=np.full(n, -1, dtype=np.int64),
        )
        self._levels[cfg.max_zoom + 1] = level

        for zoom in range(cfg.max_zoom, cfg.min_zoom - 1, -1):
            level = self._cluster(level, zoom)
            self._levels[zoom] = level

        logger.debug(
            "Built %d zoom levels for %d points (min_zoom=%d clusters=%d)",
            len(self._levels), n, cfg.min_zoom, int(self._levels[cfg.min_zoom].is_cluster.sum()),
        )
        return self

    def _cluster(self, level: _Level, zoom: int) -> _Level:
        """Merge ``level`` (zoom + 1) into the entries visible at ``zoom``."""
        n = len(level)
        if n == 0:
            return _Level(
                x=level.x, y=level.y, count=level.count, ref=level.ref,
                is_cluster=level.is_cluster, parent=np.full(0, -1, dtype=np.int64),
            )

        coords = np.column_stack([level.x, level.y])
        level.tree = KDTree(coords)
        radius = self.config.radius / (self.config.extent * (2 ** zoom))
        neighbours = level.tree.query_radius(coords, r=radius)

        visited = np.zeros(n, dtype=bool)
        xs: List[float] = []
        ys: List[float] = []
        counts: List[int] = []
        refs: List[int] = []
        flags: List[bool] = []

        for i in range(n):
            if visited[i]:
                continue
            visited[i] = True

            candidates = neighbours[i]
            members = candidates[~visited[candidates]]

            if len(members) == 0:
                xs.append(level.x[i])
                ys.append(level.y[i])
                counts.append(int(level.count[i]))
                refs.append(int(level.ref[i]))
                flags.append(bool(level.is_cluster[i]))
                continue

            visited[members] = True
            group = np.concatenate(([i], members))
            weights = level.count[group]
            total = int(weights.sum())

            cluster_id = (i << _ZOOM_BITS) + (zoom + 1)
            level.parent[group] = cluster_id

            xs.append(float((level.x[group] * weights).sum() / total))
            ys.append(float((level.y[group] * weights).sum() / total))
            counts.append(total)
            refs.append(cluster_id)
            flags.append(True)

        return _Level(
            x=np.asarray(xs, dtype=float),
            y=np.asarray(ys, dtype=float),
            count=np.asarray(counts, dtype=np.int64),
            ref=np.asarray(refs, dtype=np.int64),
            is_cluster=np.asarray(flags, dtype=bool),
            parent=np.full(len(xs), -1, dtype=np.int64),
        )

    # -------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------

    def _clamp_zoom(self, zoom: float) -> int:
        return int(max(self.config.min_zoom, min(int(zoom), self.config.max_zoom + 1)))

    def _feature(self, level: _Level, position: int) -> Feature:
        if not level.is_cluster[position]:
            return self._points[int(level.ref[position])]
        return Feature(
            coordinate=(float(_x_lng(level.x[position])), float(_y_lat(level.y[position]))),
            point_count=int(level.count[position]),
            cluster_id=int(level.ref[position]),
        )

    def _range(self, level: _Level, west: float, south: float, east: float, north: float) -> np.ndarray:
        min_x, max_x = _lng_x(np.float64(west)), _lng_x(np.float64(east))
        min_y, max_y = _lat_y(np.float64(north)), _lat_y(np.float64(south))
        mask = (level.x >= min_x) & (level.x <= max_x) & (level.y >= min_y) & (level.y <= max_y)
        return np.flatnonzero(mask)

    def get_clusters(self, bbox: BoundingBox, zoom: int) -> List[Feature]:
        """
        Clusters and leaves visible inside ``bbox`` at ``zoom``.

        Boxes crossing the antimeridian (``west > east`` after wrapping) are
        split into two queries.
        """
        level = self._levels.get(self._clamp_zoom(zoom))
        if level is None or len(level) == 0:
            return []

        west = ((bbox.west + 180.0) % 360.0 + 360.0) % 360.0 - 180.0
        east = 180.0 if bbox.east == 180.0 else ((bbox.east + 180.0) % 360.0 + 360.0) % 360.0 - 180.0
        south = max(-90.0, min(90.0, bbox.south))
        north = max(-90.0, min(90.0, bbox.north))

        if bbox.east - bbox.west >= 360.0:
            west, east = -180.0, 180.0
        elif west > east:
            eastern = self._range(level, west, south, 180.0, north)
            western = self._range(level, -180.0, south, east, north)
            positions = np.concatenate([eastern, western])
            return [self._feature(level, int(p)) for p in positions]

        positions = self._range(level, west, south, east, north)
        return [self._feature(level, int(p)) for p in positions]

    def _decode(self, cluster_id: int) -> int:
        """Return the zoom a cluster id was created at, validating the id."""
        origin_zoom = (cluster_id & _ZOOM_MASK) - 1
        child_level = self._levels.get(origin_zoom + 1)
        if origin_zoom < self.config.min_zoom or child_level is None:
            raise KeyError(f"No cluster with the specified id: {cluster_id}")
        if not np.any(child_level.parent == cluster_id):
            raise KeyError(f"No cluster with the specified id: {cluster_id}")
        return origin_zoom

    def get_children(self, cluster_id: int) -> List[Feature]:
        """Direct children (clusters or leaves) one zoom level above the cluster."""
        origin_zoom = self._decode(cluster_id)
        child_level = self._levels[origin_zoom + 1]
        positions = np.flatnonzero(child_level.parent == cluster_id)
        return [self._feature(child_level, int(p)) for p in positions]

    def get_leaves(self, cluster_id: int, limit: int = 10, offset: int = 0) -> List[Feature]:
        """Up to ``limit`` source leaves of a cluster, skipping the first ``offset``."""
        leaves: List[Feature] = []
        if limit <= 0:
            self._decode(cluster_id)
            return leaves
        self._append_leaves(leaves, cluster_id, limit, offset, 0)
        return leaves

    def _append_leaves(
        self, result: List[Feature], cluster_id: int, limit: int, offset: int, skipped: int
    ) -> int:
        for child in self.get_children(cluster_id):
            if child.is_cluster:
                if skipped + child.point_count <= offset:
                    skipped += child.point_count
                else:
                    skipped = self._append_leaves(result, child.cluster_id, limit, offset, skipped)
            elif skipped < offset:
                skipped += 1
            else:
                result.append(child)
            if len(result) >= limit:
                break
        return skipped

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """First zoom at which the cluster splits into more than one child."""
        expansion_zoom = self._decode(cluster_id)
        while expansion_zoom <= self.config.max_zoom:
            children = self.get_children(cluster_id)
            expansion_zoom += 1
            if len(children) != 1 or not children[0].is_cluster:
                break
            cluster_id = children[0].cluster_id
        return expansion_zoom


__all__ = ["SuperClusterIndex"]
