import pytest

from archboard.exceptions import InvalidInputError, NotFoundError
from archboard.models import CollectionCreate, CollectionUpdate, WorkspaceCreate


def create(storage, title, parent=None, user_id="alice"):
    return storage.collections.create_collection(
        CollectionCreate(title=title, parent_id=parent.id if parent else None),
        user_id=user_id,
    )


def test_listing_is_one_level_per_owner(storage):
    infra = create(storage, "Infra")
    apps = create(storage, "Apps")
    k8s = create(storage, "K8s", parent=infra)
    create(storage, "Clusters", parent=k8s)
    create(storage, "Bobs", user_id="bob")

    assert {c.id for c in storage.collections.get_collections("alice")} == {infra.id, apps.id}
    assert [c.id for c in storage.collections.get_collections("alice", infra.id)] == [k8s.id]
    assert storage.collections.get_collections("alice", apps.id) == []
    assert [c.title for c in storage.collections.get_collections("bob")] == ["Bobs"]


def test_create_records_owner_and_description(storage):
    collection = storage.collections.create_collection(
        CollectionCreate(title="Infra", description="Shared platform"), user_id="alice"
    )

    fetched = storage.collections.get_collection(collection.id)
    assert fetched.title == "Infra"
    assert fetched.description == "Shared platform"
    assert fetched.user_id == "alice"
    assert fetched.parent_id is None


def test_get_unknown_collection(storage):
    assert storage.collections.get_collection(404) is None


def test_create_under_unknown_parent(storage):
    with pytest.raises(NotFoundError):
        storage.collections.create_collection(CollectionCreate(title="Orphan", parent_id=999), user_id="alice")


def test_rename(storage):
    infra = create(storage, "Infra")

    renamed = storage.collections.update_collection(infra.id, CollectionUpdate(title="Platform"))

    assert renamed.title == "Platform"
    assert storage.collections.get_collection(infra.id).title == "Platform"


def test_reparent_and_move_to_root(storage):
    infra = create(storage, "Infra")
    apps = create(storage, "Apps")

    moved = storage.collections.update_collection(apps.id, CollectionUpdate(parent_id=infra.id))
    assert moved.parent_id == infra.id
    assert [c.id for c in storage.collections.get_collections("alice", infra.id)] == [apps.id]

    storage.collections.update_collection(apps.id, CollectionUpdate.model_validate({"parent_id": None}))
    assert {c.id for c in storage.collections.get_collections("alice")} == {infra.id, apps.id}


def test_reparent_under_itself_is_rejected(storage):
    infra = create(storage, "Infra")

    with pytest.raises(InvalidInputError):
        storage.collections.update_collection(infra.id, CollectionUpdate(parent_id=infra.id))


def test_reparent_under_descendant_is_rejected(storage):
    infra = create(storage, "Infra")
    k8s = create(storage, "K8s", parent=infra)
    clusters = create(storage, "Clusters", parent=k8s)

    with pytest.raises(InvalidInputError):
        storage.collections.update_collection(infra.id, CollectionUpdate(parent_id=clusters.id))

    assert storage.collections.get_collection(infra.id).parent_id is None


def test_reparent_under_unknown_collection(storage):
    infra = create(storage, "Infra")

    with pytest.raises(NotFoundError):
        storage.collections.update_collection(infra.id, CollectionUpdate(parent_id=999))


def test_update_unknown_collection(storage):
    with pytest.raises(NotFoundError):
        storage.collections.update_collection(999, CollectionUpdate(title="Nope"))


def test_delete_cascades_to_descendants_but_keeps_workspaces(storage):
    infra = create(storage, "Infra")
    k8s = create(storage, "K8s", parent=infra)
    clusters = create(storage, "Clusters", parent=k8s)
    apps = create(storage, "Apps")
    deep = storage.workspaces.create_workspace(
        WorkspaceCreate(title="Cluster map", collection_id=clusters.id), user_id="alice"
    )
    kept = storage.workspaces.create_workspace(
        WorkspaceCreate(title="Frontend", collection_id=apps.id), user_id="alice"
    )

    storage.collections.delete_collection(infra.id)

    for removed in (infra, k8s, clusters):
        assert storage.collections.get_collection(removed.id) is None
    assert storage.collections.get_collection(apps.id) is not None

    orphaned = storage.workspaces.get_workspace(deep.id)
    assert orphaned is not None
    assert orphaned.collection_id is None
    assert [w.id for w in storage.workspaces.get_workspaces("alice")] == [deep.id]
    assert storage.workspaces.get_workspace(kept.id).collection_id == apps.id


def test_delete_unknown_collection(storage):
    with pytest.raises(NotFoundError):
        storage.collections.delete_collection(999)


def test_collections_are_listed_oldest_first(storage):
    first = create(storage, "First")
    second = create(storage, "Second")
    third = create(storage, "Third")

    assert [c.id for c in storage.collections.get_collections("alice")] == [first.id, second.id, third.id]
