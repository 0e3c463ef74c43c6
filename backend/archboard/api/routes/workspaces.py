from typing import Any

from fastapi import APIRouter

from archboard.api.deps import CurrentUser, StorageDep, get_owned_collection, get_owned_workspace
from archboard.models import (
    Message,
    WorkspaceCreate,
    WorkspaceDuplicate,
    WorkspacePublic,
    WorkspaceUpdate,
)

router = APIRouter()


@router.get("/", response_model=list[WorkspacePublic])
def read_workspaces(
    storage: StorageDep,
    current_user: CurrentUser,
    collection_id: int | None = None,
) -> Any:
    """
    List the caller's workspaces filed in ``collection_id``, or the root-level ones when omitted.
    """
    return storage.workspaces.get_workspaces(current_user, collection_id)


@router.post("/", response_model=WorkspacePublic, status_code=201)
def create_workspace(
    *,
    storage: StorageDep,
    current_user: CurrentUser,
    workspace_in: WorkspaceCreate,
) -> Any:
    if workspace_in.collection_id is not None:
        get_owned_collection(storage, workspace_in.collection_id, current_user)
    return storage.workspaces.create_workspace(workspace_in, user_id=current_user)


@router.get("/{id}", response_model=WorkspacePublic)
def read_workspace(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    return get_owned_workspace(storage, id, current_user)


@router.put("/{id}", response_model=WorkspacePublic)
def update_workspace(
    *,
    id: int,
    storage: StorageDep,
    current_user: CurrentUser,
    workspace_in: WorkspaceUpdate,
) -> Any:
    """
    Rename, re-icon or re-file a workspace. Only the fields sent are changed.
    """
    get_owned_workspace(storage, id, current_user)
    if workspace_in.collection_id is not None:
        get_owned_collection(storage, workspace_in.collection_id, current_user)
    return storage.workspaces.update_workspace(id, workspace_in)


@router.delete("/{id}", response_model=Message)
def delete_workspace(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    """
    Delete a workspace together with all of its nodes and edges.
    """
    get_owned_workspace(storage, id, current_user)
    storage.delete_workspace(id)
    return Message(message="Workspace deleted successfully")


@router.post("/{id}/duplicate", response_model=WorkspacePublic, status_code=201)
def duplicate_workspace(
    *,
    id: int,
    storage: StorageDep,
    current_user: CurrentUser,
    duplicate_in: WorkspaceDuplicate | None = None,
) -> Any:
    """
    Copy a workspace and its canvas. The copy is titled "<title> (Copy)" unless a title is given.
    """
    get_owned_workspace(storage, id, current_user)
    title = duplicate_in.title if duplicate_in else None
    return storage.duplicate_workspace(id, title)
