"""
Ownership of the clustering index across dataset generations.

One index exists per dataset generation. It is rebuilt when the dataset
object itself changes (identity, not equality) or when any
:class:`~src.spatial.index.IndexConfig` field changes; pure viewport changes
reuse it. A rebuilt index is published by swapping a single reference under
a lock, so readers only ever see a fully built generation.

Query results are cached per ``(generation, bbox, zoom)`` with an LRU cache
that is dropped on every rebuild.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from cachetools import LRUCache

from ..geo.regions import BoundingBox
from ..tools.errors import ConfigurationError
from .features import Feature, coerce_dataset, items_to_features, resolve_accessor
from .index import IndexConfig, IndexFactory, SpatialClusteringIndex
from .supercluster import SuperClusterIndex


logger = logging.getLogger(__name__)

DEFAULT_QUERY_CACHE_SIZE = 256


@dataclass(frozen=True)
class IndexGeneration:
    """A published, immutable index together with what it was built from."""

    generation: int
    index: SpatialClusteringIndex
    dataset: Any
    config: IndexConfig
    size: int


class IndexLifecycleManager:
    """
    Single owner of the current index handle.

    Usage:
        manager = IndexLifecycleManager()
        manager.ensure(items, IndexConfig(max_zoom=16))
        snapshot = manager.query(bbox, zoom)
    """

    def __init__(
        self,
        index_factory: Optional[IndexFactory] = None,
        *,
        cache_size: int = DEFAULT_QUERY_CACHE_SIZE,
    ):
        self._index_factory: IndexFactory = index_factory or SuperClusterIndex
        self._current: Optional[IndexGeneration] = None
        self._generation = 0
        self._write_lock = threading.Lock()
        self._cache: Optional[LRUCache] = LRUCache(maxsize=cache_size) if cache_size > 0 else None

    @property
    def current(self) -> Optional[IndexGeneration]:
        return self._current

    def needs_rebuild(self, dataset: Any, config: IndexConfig) -> bool:
        current = self._current
        return current is None or current.dataset is not dataset or current.config != config

    def ensure(self, dataset: Any, config: IndexConfig) -> IndexGeneration:
        """Return the current generation, rebuilding first if needed."""
        if self.needs_rebuild(dataset, config):
            return self.rebuild(dataset, config)
        return self._current

    def rebuild(self, dataset: Any, config: IndexConfig) -> IndexGeneration:
        """
        Build a new index from ``dataset`` and publish it.

        Args:
            dataset: Iterable of items or a pandas DataFrame
            config: Index parameters

        Returns:
            The newly published generation

        Raises:
            ConfigurationError: Invalid config, or an item whose coordinate
                the accessor cannot resolve
        """
        config.validate()
        accessor = resolve_accessor(config.accessor)
        features = items_to_features(coerce_dataset(dataset), accessor)

        with self._write_lock:
            index = self._index_factory(config)
            index.load(features)
            self._generation += 1
            generation = IndexGeneration(
                generation=self._generation,
                index=index,
                dataset=dataset,
                config=config,
                size=len(features),
            )
            self._current = generation
            if self._cache is not None:
                self._cache.clear()

        logger.info(
            "Rebuilt clustering index generation %d: %d items (zoom %d-%d, radius=%s, extent=%s)",
            generation.generation, generation.size, config.min_zoom, config.max_zoom,
            config.radius, config.extent,
        )
        return generation

    def _require(self) -> IndexGeneration:
        current = self._current
        if current is None:
            raise ConfigurationError("No clustering index has been built yet; load a dataset first.")
        return current

    def _cache_key(self, generation: int, bbox: BoundingBox, zoom: int) -> Tuple:
        # Exact edges: boxes a few 1e-8 degrees apart can cover different points
        return (generation, bbox.as_wsen(), int(zoom))

    def query(self, bbox: BoundingBox, zoom: int) -> List[Feature]:
        """Read-only bbox + zoom query against the current generation."""
        current = self._require()
        key = self._cache_key(current.generation, bbox, zoom)
        cached = self._cache.get(key) if self._cache is not None else None
        if cached is None:
            cached = tuple(current.index.get_clusters(bbox, zoom))
            if self._cache is not None:
                self._cache[key] = cached
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Query gen=%d zoom=%d bbox=%s -> %d features",
                    current.generation, zoom, key[1], len(cached),
                )
        return list(cached)

    def get_leaves(self, cluster_id: int, limit: int) -> List[Feature]:
        return self._require().index.get_leaves(cluster_id, limit=limit)

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        return self._require().index.get_cluster_expansion_zoom(cluster_id)

    def cache_info(self) -> dict:
        if self._cache is None:
            return {"size": 0, "maxsize": 0}
        return {"size": len(self._cache), "maxsize": self._cache.maxsize}


__all__ = [
    "IndexGeneration",
    "IndexLifecycleManager",
]
