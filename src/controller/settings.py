"""
Controller settings and their validation.

Settings come either from keyword arguments or from a YAML profile loaded
by :class:`~src.tools.config_loader.ConfigLoader`. Everything is validated
before an index is built.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from ..geo.viewport import TILE_SIZE, WORLD_SCALE_DELTA, EdgePadding
from ..spatial.features import Accessor
from ..spatial.index import IndexConfig
from ..tools.errors import ConfigurationError
from .expansion import DEFAULT_MAX_CHILDREN, ExpansionStrategy


# Regions at least this wide (longitude delta) keep the previous snapshot
WIDE_REGION_DELTA = 80.0

# Default cluster radius is the viewport width divided by this
RADIUS_WIDTH_DIVISOR = 22


def _parse_strategy(value: str) -> ExpansionStrategy:
    try:
        return ExpansionStrategy(value)
    except ValueError:
        options = ", ".join(s.value for s in ExpansionStrategy)
        raise ConfigurationError(f"Unknown press strategy '{value}'. Options: {options}") from None


@dataclass
class ClusterSettings:
    """Everything the controller, index and expansion handler are configured with."""

    min_zoom: int = 0
    max_zoom: int = 20
    extent: int = 512

    radius: Optional[float] = None
    """Cluster radius in pixels; ``None`` means ``floor(width / 22)``."""

    accessor: Optional[Accessor] = "location"
    cluster_press_max_children: int = DEFAULT_MAX_CHILDREN
    edge_padding: EdgePadding = field(default_factory=EdgePadding)
    preserve_cluster_press_behavior: bool = True
    expansion_strategy: ExpansionStrategy = ExpansionStrategy.FIT_TO_CHILDREN

    width: float = 375.0
    """Viewport width in pixels."""

    height: float = 812.0
    """Viewport height in pixels."""

    tile_size: int = TILE_SIZE
    animate_clusters: bool = True
    wide_region_delta: float = WIDE_REGION_DELTA
    world_scale_delta: float = WORLD_SCALE_DELTA

    deduplicate_matches: bool = True
    """Whether a previous cluster id can be inherited by at most one new cluster."""

    @property
    def resolved_radius(self) -> float:
        if self.radius is not None:
            return float(self.radius)
        return float(max(1, math.floor(self.width / RADIUS_WIDTH_DIVISOR)))

    def index_config(self) -> IndexConfig:
        return IndexConfig(
            extent=self.extent,
            radius=self.resolved_radius,
            min_zoom=self.min_zoom,
            max_zoom=self.max_zoom,
            accessor=self.accessor,
        )

    def validate(self) -> "ClusterSettings":
        """
        Check numeric ranges.

        Raises:
            ConfigurationError: On the first invalid value found
        """
        self.index_config().validate()
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Viewport size must be positive, got {self.width}x{self.height}"
            )
        if self.tile_size <= 0:
            raise ConfigurationError(f"tile_size must be positive, got {self.tile_size}")
        if self.cluster_press_max_children < 1:
            raise ConfigurationError(
                f"cluster_press_max_children must be >= 1, got {self.cluster_press_max_children}"
            )
        if self.world_scale_delta <= 0 or self.wide_region_delta <= 0:
            raise ConfigurationError("world_scale_delta and wide_region_delta must be positive")
        padding = self.edge_padding
        if min(padding.top, padding.right, padding.bottom, padding.left) < 0:
            raise ConfigurationError(f"edge_padding values must be >= 0, got {padding.to_dict()}")
        if padding.left + padding.right >= self.width or padding.top + padding.bottom >= self.height:
            raise ConfigurationError(
                f"edge_padding {padding.to_dict()} leaves no room in a "
                f"{self.width}x{self.height} viewport"
            )
        return self

    @classmethod
    def from_profile(cls, profile: Mapping[str, Any], **overrides: Any) -> "ClusterSettings":
        """
        Build settings from a profile mapping (as loaded from YAML).

        Unknown keys are ignored; ``overrides`` win over profile values.

        Profile format:
            ```yaml
            clustering:
              min_zoom: 0
              max_zoom: 20
              radius: 40
            viewport:
              width: 375
              height: 812
            press:
              max_children: 100
              edge_padding: {top: 50, right: 50, bottom: 50, left: 50}
              preserve_behavior: true
              strategy: fit_to_children
            ```
        """
        clustering = dict(profile.get("clustering", {}) or {})
        viewport = dict(profile.get("viewport", {}) or {})
        press = dict(profile.get("press", {}) or {})

        values: Dict[str, Any] = {}
        for key in (
            "min_zoom", "max_zoom", "extent", "radius", "accessor",
            "animate_clusters", "wide_region_delta", "world_scale_delta", "deduplicate_matches",
        ):
            if key in clustering:
                values[key] = clustering[key]
        for key in ("width", "height", "tile_size"):
            if key in viewport:
                values[key] = viewport[key]
        if "max_children" in press:
            values["cluster_press_max_children"] = press["max_children"]
        if "edge_padding" in press:
            values["edge_padding"] = EdgePadding.from_value(press["edge_padding"])
        if "preserve_behavior" in press:
            values["preserve_cluster_press_behavior"] = bool(press["preserve_behavior"])
        if "strategy" in press:
            values["expansion_strategy"] = _parse_strategy(press["strategy"])

        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigurationError(f"Unknown setting '{key}'")
            if value is not None:
                values[key] = value
        if "edge_padding" in values:
            values["edge_padding"] = EdgePadding.from_value(values["edge_padding"])
        if isinstance(values.get("expansion_strategy"), str):
            values["expansion_strategy"] = _parse_strategy(values["expansion_strategy"])

        return cls(**values).validate()


__all__ = ["ClusterSettings", "RADIUS_WIDTH_DIVISOR", "WIDE_REGION_DELTA"]
