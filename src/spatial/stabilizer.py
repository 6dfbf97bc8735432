"""
Cluster identity stabilisation across re-clustering passes.

An index may hand out different ids for geometrically identical clusters
every time it is rebuilt or re-queried. Consumers that key animations or
selections on cluster ids need continuity, so each new cluster that matches
a previous one (same point count, same centroid within ``epsilon``) takes
over the previous id.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, List, Optional, Sequence

from .features import Feature


logger = logging.getLogger(__name__)

EPSILON = sys.float_info.epsilon


def clusters_match(previous: Feature, current: Feature, epsilon: float = EPSILON) -> bool:
    """Same point count and coordinates equal within ``epsilon`` on both axes."""
    return (
        previous.point_count == current.point_count
        and abs(previous.lng - current.lng) < epsilon
        and abs(previous.lat - current.lat) < epsilon
    )


def stabilize_cluster_ids(
    previous: Optional[Sequence[Feature]],
    current: Sequence[Feature],
    *,
    deduplicate: bool = True,
    epsilon: float = EPSILON,
) -> List[Feature]:
    """
    Carry cluster ids over from ``previous`` into ``current``.

    Leaves are returned untouched. For every cluster in ``current`` the first
    matching cluster of ``previous`` wins and its id replaces the new one.
    An unmatched cluster whose own id was just inherited by another cluster
    is given a fresh id above every id in play, so inherited ids never
    collide with raw ones. Neither input is mutated; relabelled clusters are
    replaced by copies.

    Args:
        previous: Prior snapshot (``None``/empty on first query)
        current: Freshly queried snapshot
        deduplicate: When True a previous cluster can be claimed only once,
            so cluster ids in the result are unique. When False two
            coincident new clusters may both inherit the same previous id.
        epsilon: Coordinate tolerance in degrees

    Returns:
        New snapshot list in the same order as ``current``
    """
    prev_clusters = [f for f in (previous or ()) if f.is_cluster]
    if not prev_clusters:
        return list(current)

    # Pass 1: match every new cluster against the previous snapshot
    claimed = [False] * len(prev_clusters)
    inherited: Dict[int, int] = {}
    for position, feature in enumerate(current):
        if not feature.is_cluster:
            continue
        for candidate_position, candidate in enumerate(prev_clusters):
            if deduplicate and claimed[candidate_position]:
                continue
            if clusters_match(candidate, feature, epsilon):
                claimed[candidate_position] = True
                inherited[position] = candidate.cluster_id
                break

    # Pass 2: relabel, moving unmatched clusters off inherited ids
    taken = set(inherited.values())
    next_id = max(
        [f.cluster_id for f in current if f.is_cluster and f.cluster_id is not None]
        + list(taken)
        + [-1]
    ) + 1

    result: List[Feature] = []
    reassigned = 0
    renumbered = 0
    for position, feature in enumerate(current):
        if not feature.is_cluster:
            result.append(feature)
        elif position in inherited:
            stable_id = inherited[position]
            if stable_id != feature.cluster_id:
                reassigned += 1
                feature = feature.with_cluster_id(stable_id)
            result.append(feature)
        elif feature.cluster_id in taken:
            renumbered += 1
            result.append(feature.with_cluster_id(next_id))
            taken.add(next_id)
            next_id += 1
        else:
            result.append(feature)

    if reassigned or renumbered:
        logger.debug(
            "Stabilised %d cluster id(s) against previous snapshot, renumbered %d",
            reassigned, renumbered,
        )
    return result


__all__ = ["EPSILON", "clusters_match", "stabilize_cluster_ids"]
