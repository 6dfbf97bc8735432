"""
src/spatial: Clustering index contract, default index, lifecycle and id stabilisation.

The index itself is treated as a black box behind
:class:`~src.spatial.index.SpatialClusteringIndex`; this package owns how it
is built, replaced, queried and how its results are made stable.
"""

from .features import (
    Feature,
    FieldPath,
    coerce_dataset,
    features_to_frame,
    features_to_geojson,
    item_to_feature,
    items_to_features,
    resolve_accessor,
)
from .index import IndexConfig, SpatialClusteringIndex
from .lifecycle import IndexGeneration, IndexLifecycleManager
from .stabilizer import clusters_match, stabilize_cluster_ids
from .supercluster import SuperClusterIndex

__all__ = [
    "Feature",
    "FieldPath",
    "IndexConfig",
    "IndexGeneration",
    "IndexLifecycleManager",
    "SpatialClusteringIndex",
    "SuperClusterIndex",
    "clusters_match",
    "coerce_dataset",
    "features_to_frame",
    "features_to_geojson",
    "item_to_feature",
    "items_to_features",
    "resolve_accessor",
    "stabilize_cluster_ids",
]
