from typing import Annotated

from fastapi import Depends, HTTPException, Request

from archboard.core.config import settings
from archboard.models import Collection, Workspace
from archboard.stores import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


StorageDep = Annotated[Storage, Depends(get_storage)]


def get_current_user_id(request: Request) -> str:
    """Authentication gate.

    Login and sessions are handled upstream; by the time a request gets
    here the authenticated principal is carried in a trusted header.
    """
    user_id = request.headers.get(settings.AUTH_USER_HEADER)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id


CurrentUser = Annotated[str, Depends(get_current_user_id)]


def get_owned_workspace(storage: Storage, workspace_id: int, user_id: str) -> Workspace:
    workspace = storage.workspaces.get_workspace(workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    if workspace.user_id != user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return workspace


def get_owned_collection(storage: Storage, collection_id: int, user_id: str) -> Collection:
    collection = storage.collections.get_collection(collection_id)
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    if collection.user_id != user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return collection
