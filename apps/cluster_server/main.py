"""FastAPI server exposing viewport-driven clustering sessions to map clients."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .schemas.models import (
    CreateSessionRequest,
    LayoutChangeModel,
    PressResponse,
    RegionModel,
    ReplaceDatasetRequest,
    SnapshotResponse,
)
from .tools.sessions import sessions
from src.controller import ClusterController, ClusterSettings, LayoutChange
from src.tools import ConfigLoader, ConfigurationError, EmptyInputError

app = FastAPI(title="Clustered Map Server", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    return {"status": "ok", "sessions": sessions.stats()}


def _load_profile(name: Optional[str]) -> Dict[str, Any]:
    try:
        if name:
            return ConfigLoader.load_profile(name)
        return ConfigLoader.load_default_or_env_profile()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _controller(session_id: str) -> ClusterController:
    try:
        return sessions.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'") from None


def _snapshot_payload(
    session_id: str,
    controller: ClusterController,
    change: LayoutChange,
    zoom_changed: Optional[bool] = None,
) -> Dict[str, Any]:
    generation = controller.generation
    response = SnapshotResponse(
        session_id=session_id,
        generation=generation.generation if generation else 0,
        zoom_changed=zoom_changed,
        region=RegionModel.from_region(controller.region),
        layout=LayoutChangeModel.from_change(change),
        clusters=controller.to_geojson(),
    )
    return response.model_dump(by_alias=True)


@app.post("/sessions")
async def create_session(request: CreateSessionRequest) -> Dict[str, Any]:
    profile = _load_profile(request.profile)
    try:
        settings = ClusterSettings.from_profile(profile, **request.settings.as_overrides())
        controller = ClusterController(settings, request.region.to_region())
        change = controller.on_dataset_change(request.items)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    session_id = sessions.create(controller)
    return _snapshot_payload(session_id, controller, change)


@app.get("/sessions/{session_id}/clusters")
async def get_clusters(session_id: str) -> Dict[str, Any]:
    controller = _controller(session_id)
    count = len(controller.snapshot)
    unchanged = LayoutChange(changed=False, old_count=count, new_count=count)
    return _snapshot_payload(session_id, controller, unchanged)


@app.post("/sessions/{session_id}/region")
async def change_region(session_id: str, region: RegionModel) -> Dict[str, Any]:
    controller = _controller(session_id)
    previous = controller.region
    new_region = region.to_region()
    zoom_changed = controller.is_zoom_level_changed(previous, new_region)
    change = controller.on_region_change(new_region)
    return _snapshot_payload(session_id, controller, change, zoom_changed=zoom_changed)


@app.put("/sessions/{session_id}/dataset")
async def replace_dataset(session_id: str, request: ReplaceDatasetRequest) -> Dict[str, Any]:
    controller = _controller(session_id)
    try:
        change = controller.on_dataset_change(request.items)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _snapshot_payload(session_id, controller, change)


@app.post("/sessions/{session_id}/clusters/{cluster_id}/press")
async def press_cluster(session_id: str, cluster_id: int) -> Dict[str, Any]:
    controller = _controller(session_id)
    try:
        result = controller.on_cluster_press(cluster_id)
    except KeyError:
        raise HTTPException(
            status_code=404, detail=f"Cluster {cluster_id} is not in the current snapshot"
        ) from None
    except EmptyInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return PressResponse.from_result(result).model_dump(by_alias=True)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str) -> Dict[str, str]:
    _controller(session_id)
    sessions.delete(session_id)
    return {"status": "deleted"}
