"""
src/controller: Orchestration of index, viewport math and cluster press handling.
"""

from .controller import WORLD_REGION, ClusterController, LayoutChange
from .expansion import (
    ExpansionHandler,
    ExpansionResult,
    ExpansionStrategy,
    corrected_expansion_zoom,
)
from .settings import ClusterSettings

__all__ = [
    "ClusterController",
    "ClusterSettings",
    "ExpansionHandler",
    "ExpansionResult",
    "ExpansionStrategy",
    "LayoutChange",
    "WORLD_REGION",
    "corrected_expansion_zoom",
]
