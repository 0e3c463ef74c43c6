from typing import Any

from fastapi import APIRouter

from archboard.api.deps import CurrentUser, StorageDep, get_owned_collection
from archboard.models import CollectionCreate, CollectionPublic, CollectionUpdate, Message

router = APIRouter()


@router.get("/", response_model=list[CollectionPublic])
def read_collections(
    storage: StorageDep,
    current_user: CurrentUser,
    parent_id: int | None = None,
) -> Any:
    """
    One level of the caller's collection tree: children of ``parent_id``, or the root level.
    """
    return storage.collections.get_collections(current_user, parent_id)


@router.post("/", response_model=CollectionPublic, status_code=201)
def create_collection(
    *,
    storage: StorageDep,
    current_user: CurrentUser,
    collection_in: CollectionCreate,
) -> Any:
    if collection_in.parent_id is not None:
        get_owned_collection(storage, collection_in.parent_id, current_user)
    return storage.collections.create_collection(collection_in, user_id=current_user)


@router.get("/{id}", response_model=CollectionPublic)
def read_collection(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    return get_owned_collection(storage, id, current_user)


@router.put("/{id}", response_model=CollectionPublic)
def update_collection(
    *,
    id: int,
    storage: StorageDep,
    current_user: CurrentUser,
    collection_in: CollectionUpdate,
) -> Any:
    get_owned_collection(storage, id, current_user)
    if collection_in.parent_id is not None:
        get_owned_collection(storage, collection_in.parent_id, current_user)
    return storage.collections.update_collection(id, collection_in)


@router.delete("/{id}", response_model=Message)
def delete_collection(id: int, storage: StorageDep, current_user: CurrentUser) -> Any:
    """
    Delete a collection and its sub-collections. Workspaces inside are kept and move to the root level.
    """
    get_owned_collection(storage, id, current_user)
    storage.collections.delete_collection(id)
    return Message(message="Collection deleted successfully")
