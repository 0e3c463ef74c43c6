from typing import Any

from fastapi import APIRouter

from archboard.api.deps import CurrentUser, StorageDep, get_owned_workspace
from archboard.models import CanvasDuplicate, CanvasPublic, CanvasSync, SyncResult

router = APIRouter()


@router.get("/{id}/canvas", response_model=CanvasPublic)
def read_canvas(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    get_owned_workspace(storage, id, current_user)
    nodes, edges = storage.canvas.get_canvas(id)
    return {"nodes": nodes, "edges": edges}


@router.post("/{id}/canvas/sync", response_model=SyncResult)
def sync_canvas(
    *,
    id: int,
    storage: StorageDep,
    current_user: CurrentUser,
    canvas_in: CanvasSync,
) -> Any:
    """
    Replace the whole canvas with the graph in the request body.

    The body must hold the complete current graph; anything left out is
    removed. Sending the same body twice is harmless.
    """
    get_owned_workspace(storage, id, current_user)
    storage.canvas.sync_canvas(id, canvas_in.nodes, canvas_in.edges)
    return SyncResult()


@router.post("/{id}/duplicate-canvas", response_model=SyncResult)
def duplicate_canvas(
    *,
    id: int,
    storage: StorageDep,
    current_user: CurrentUser,
    duplicate_in: CanvasDuplicate,
) -> Any:
    """
    Copy this workspace's canvas into another workspace owned by the caller.
    """
    get_owned_workspace(storage, id, current_user)
    get_owned_workspace(storage, duplicate_in.to_workspace_id, current_user)
    storage.canvas.duplicate_canvas(id, duplicate_in.to_workspace_id)
    return SyncResult()
