"""
Pytest configuration and shared fixtures for clustered-map tests.

This file provides:
- Sample point datasets (dict items with a ``location`` field)
- A spatial index double that renumbers clusters on every query
- Common regions and settings
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
import pandas as pd

from src.controller import ClusterSettings
from src.geo import BoundingBox, Region
from src.spatial import Feature


# ==============================================================================
# Sample Items
# ==============================================================================

def make_item(item_id: str, lat: float, lng: float) -> Dict[str, Any]:
    return {"id": item_id, "location": {"latitude": lat, "longitude": lng}}


@pytest.fixture
def sample_items() -> List[Dict[str, Any]]:
    """Three shops around Covent Garden, a few metres apart, plus two outliers."""
    return [
        make_item("shop_1", 51.5117, -0.1240),
        make_item("shop_2", 51.5118, -0.1237),
        make_item("shop_3", 51.5116, -0.1243),
        make_item("museum", 51.5194, -0.1270),
        make_item("bridge", 51.5055, -0.0754),
    ]


@pytest.fixture
def close_items() -> List[Dict[str, Any]]:
    """Three items that end up in a single cluster at zoom 10."""
    return [
        make_item("a", 51.5117, -0.1240),
        make_item("b", 51.5118, -0.1237),
        make_item("c", 51.5116, -0.1243),
    ]


@pytest.fixture
def sample_items_df(sample_items) -> pd.DataFrame:
    """Sample items flattened into a DataFrame."""
    return pd.DataFrame(
        {
            "id": [i["id"] for i in sample_items],
            "lat": [i["location"]["latitude"] for i in sample_items],
            "lng": [i["location"]["longitude"] for i in sample_items],
        }
    )


# ==============================================================================
# Regions
# ==============================================================================

@pytest.fixture
def london_region() -> Region:
    """Central London at roughly zoom 12 on a phone screen."""
    return Region(latitude=51.5117, longitude=-0.1240, latitude_delta=0.05, longitude_delta=0.05)


@pytest.fixture
def city_region() -> Region:
    """Wider view around London where the shops collapse into one cluster."""
    return Region(latitude=51.5117, longitude=-0.1240, latitude_delta=0.4, longitude_delta=0.4)


@pytest.fixture
def settings() -> ClusterSettings:
    return ClusterSettings()


# ==============================================================================
# Spatial Index Double
# ==============================================================================

class StubIndex:
    """
    Index double that returns canned clusters.

    Every ``get_clusters`` call hands out fresh raw ids
    (``1000 * call_number + position``) so id stabilisation is observable.
    ``get_leaves`` returns the loaded leaves in load order.
    """

    def __init__(
        self,
        config=None,
        clusters: Optional[Sequence[Tuple[Tuple[float, float], int]]] = None,
        expansion_zoom: int = 5,
    ):
        self.config = config
        self.clusters = list(clusters or [])
        self.expansion_zoom = expansion_zoom
        self.loaded: List[Feature] = []
        self.load_count = 0
        self.query_count = 0
        self.leaves_requests: List[Tuple[int, int]] = []
        self.expansion_requests: List[int] = []

    def load(self, features):
        self.loaded = list(features)
        self.load_count += 1
        return self

    def get_clusters(self, bbox: BoundingBox, zoom: int) -> List[Feature]:
        self.query_count += 1
        return [
            Feature(coordinate=coord, point_count=count, cluster_id=1000 * self.query_count + n)
            for n, (coord, count) in enumerate(self.clusters)
        ]

    def get_leaves(self, cluster_id: int, limit: int = 10, offset: int = 0) -> List[Feature]:
        self.leaves_requests.append((cluster_id, limit))
        return self.loaded[offset:offset + limit]

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        self.expansion_requests.append(cluster_id)
        return self.expansion_zoom


@pytest.fixture
def stub_index() -> StubIndex:
    """A single cluster of 3 points centred on Covent Garden."""
    return StubIndex(clusters=[((-0.1240, 51.5117), 3)])


@pytest.fixture
def stub_factory(stub_index):
    """Index factory always handing back the same :class:`StubIndex`."""
    def factory(config):
        stub_index.config = config
        return stub_index
    return factory
