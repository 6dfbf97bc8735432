"""Pydantic models for the cluster server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.controller import ExpansionResult, LayoutChange
from src.geo import Region


class RegionModel(BaseModel):
    """Map region as reported by map widgets (camelCase on the wire)."""

    latitude: float = Field(..., description="Centre latitude in decimal degrees")
    longitude: float = Field(..., description="Centre longitude in decimal degrees")
    latitude_delta: float = Field(..., alias="latitudeDelta")
    longitude_delta: float = Field(..., alias="longitudeDelta")

    model_config = {"populate_by_name": True}

    def to_region(self) -> Region:
        return Region(
            latitude=self.latitude,
            longitude=self.longitude,
            latitude_delta=self.latitude_delta,
            longitude_delta=self.longitude_delta,
        )

    @classmethod
    def from_region(cls, region: Region) -> "RegionModel":
        return cls(
            latitude=region.latitude,
            longitude=region.longitude,
            latitude_delta=region.latitude_delta,
            longitude_delta=region.longitude_delta,
        )


class EdgePaddingModel(BaseModel):
    top: float = Field(50.0, ge=0)
    right: float = Field(50.0, ge=0)
    bottom: float = Field(50.0, ge=0)
    left: float = Field(50.0, ge=0)


class SettingsOverrides(BaseModel):
    """Optional per-session overrides on top of the selected profile."""

    min_zoom: Optional[int] = Field(default=None, alias="minZoom")
    max_zoom: Optional[int] = Field(default=None, alias="maxZoom")
    extent: Optional[int] = None
    radius: Optional[float] = None
    accessor: Optional[str] = Field(default=None, description="Field path to the coordinate")
    cluster_press_max_children: Optional[int] = Field(default=None, alias="clusterPressMaxChildren")
    edge_padding: Optional[EdgePaddingModel] = Field(default=None, alias="edgePadding")
    preserve_cluster_press_behavior: Optional[bool] = Field(
        default=None, alias="preserveClusterPressBehavior"
    )
    expansion_strategy: Optional[str] = Field(default=None, alias="expansionStrategy")
    width: Optional[float] = None
    height: Optional[float] = None
    animate_clusters: Optional[bool] = Field(default=None, alias="animateClusters")

    model_config = {"populate_by_name": True}

    def as_overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CreateSessionRequest(BaseModel):
    items: List[Any] = Field(default_factory=list, description="Dataset items")
    region: RegionModel
    profile: Optional[str] = Field(default=None, description="Named profile under configs/")
    settings: SettingsOverrides = Field(default_factory=SettingsOverrides)


class ReplaceDatasetRequest(BaseModel):
    items: List[Any] = Field(default_factory=list)


class LayoutChangeModel(BaseModel):
    changed: bool
    old_count: int = Field(..., alias="oldCount")
    new_count: int = Field(..., alias="newCount")
    animate: bool = False

    model_config = {"populate_by_name": True}

    @classmethod
    def from_change(cls, change: LayoutChange) -> "LayoutChangeModel":
        return cls(
            changed=change.changed,
            old_count=change.old_count,
            new_count=change.new_count,
            animate=change.animate,
        )


class SnapshotResponse(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    generation: int
    zoom_changed: Optional[bool] = Field(default=None, alias="zoomChanged")
    region: RegionModel
    layout: LayoutChangeModel
    clusters: Dict[str, Any] = Field(..., description="GeoJSON FeatureCollection")

    model_config = {"populate_by_name": True}


class PressResponse(BaseModel):
    cluster_id: int = Field(..., alias="clusterId")
    members: Optional[List[Any]] = None
    target_region: Optional[RegionModel] = Field(default=None, alias="targetRegion")
    expansion_zoom: Optional[int] = Field(default=None, alias="expansionZoom")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: ExpansionResult) -> "PressResponse":
        target = RegionModel.from_region(result.target_region) if result.target_region else None
        return cls(
            cluster_id=result.cluster_id,
            members=result.members,
            target_region=target,
            expansion_zoom=result.expansion_zoom,
        )
