"""In-memory storage backend.

Meant for local development and tests only. State lives in the process, so
several workers or instances each see their own copy and nothing survives a
restart. Every operation holds one re-entrant lock, which makes canvas sync
and duplication atomic within the process.
"""

import itertools
import logging
import threading
from collections.abc import Sequence
from typing import TypeVar

from sqlmodel import SQLModel

from archboard.exceptions import NotFoundError, StorageError
from archboard.models import (
    Collection,
    CollectionCreate,
    CollectionUpdate,
    Edge,
    EdgeIn,
    Node,
    NodeIn,
    Workspace,
    WorkspaceCreate,
    WorkspaceUpdate,
)
from archboard.stores.base import (
    CanvasStore,
    CollectionStore,
    Storage,
    WorkspaceStore,
    check_reparent,
    copy_title,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SQLModel)


def _clone(record: T) -> T:
    # Callers must never hold a reference into the shared state
    return type(record).model_validate(record.model_dump())


class MemoryState:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.collections: dict[int, Collection] = {}
        self.workspaces: dict[int, Workspace] = {}
        self.nodes: dict[tuple[int, str], Node] = {}
        self.edges: dict[tuple[int, str], Edge] = {}
        self._collection_ids = itertools.count(1)
        self._workspace_ids = itertools.count(1)

    def next_collection_id(self) -> int:
        return next(self._collection_ids)

    def next_workspace_id(self) -> int:
        return next(self._workspace_ids)


class MemoryStore:
    def __init__(self, state: MemoryState) -> None:
        self.state = state


class MemoryCollectionStore(MemoryStore, CollectionStore):
    def get_collections(self, user_id: str, parent_id: int | None = None) -> list[Collection]:
        with self.state.lock:
            matches = [
                collection
                for collection in self.state.collections.values()
                if collection.user_id == user_id and collection.parent_id == parent_id
            ]
            matches.sort(key=lambda c: (c.created_at, c.id))
            return [_clone(collection) for collection in matches]

    def get_collection(self, collection_id: int) -> Collection | None:
        with self.state.lock:
            collection = self.state.collections.get(collection_id)
            return _clone(collection) if collection else None

    def create_collection(self, collection_in: CollectionCreate, *, user_id: str) -> Collection:
        with self.state.lock:
            if collection_in.parent_id is not None and collection_in.parent_id not in self.state.collections:
                raise NotFoundError("Parent collection not found")
            collection = Collection.model_validate(
                collection_in,
                update={"id": self.state.next_collection_id(), "user_id": user_id},
            )
            self.state.collections[collection.id] = collection
            return _clone(collection)

    def update_collection(self, collection_id: int, collection_in: CollectionUpdate) -> Collection:
        update_data = collection_in.model_dump(exclude_unset=True)
        with self.state.lock:
            collection = self.state.collections.get(collection_id)
            if collection is None:
                raise NotFoundError("Collection not found")
            if "parent_id" in update_data:
                check_reparent(collection_id, update_data["parent_id"], self.state.collections.get)
            collection.sqlmodel_update(update_data)
            return _clone(collection)

    def _subtree_ids(self, collection_id: int) -> set[int]:
        subtree = {collection_id}
        frontier = [collection_id]
        while frontier:
            parent_id = frontier.pop()
            for child in self.state.collections.values():
                if child.parent_id == parent_id and child.id not in subtree:
                    subtree.add(child.id)
                    frontier.append(child.id)
        return subtree

    def delete_collection(self, collection_id: int) -> None:
        with self.state.lock:
            if collection_id not in self.state.collections:
                raise NotFoundError("Collection not found")
            # Same outcome as the SQL schema: descendants cascade, filings are cleared
            removed = self._subtree_ids(collection_id)
            for removed_id in removed:
                del self.state.collections[removed_id]
            for workspace in self.state.workspaces.values():
                if workspace.collection_id in removed:
                    workspace.collection_id = None
        logger.info("Deleted collection %s (%d in subtree)", collection_id, len(removed))


class MemoryWorkspaceStore(MemoryStore, WorkspaceStore):
    def _require_collection(self, collection_id: int | None) -> None:
        if collection_id is not None and collection_id not in self.state.collections:
            raise NotFoundError("Collection not found")

    def _insert(self, workspace: Workspace) -> Workspace:
        workspace.id = self.state.next_workspace_id()
        self.state.workspaces[workspace.id] = workspace
        return _clone(workspace)

    def get_workspaces(self, user_id: str, collection_id: int | None = None) -> list[Workspace]:
        with self.state.lock:
            matches = [
                workspace
                for workspace in self.state.workspaces.values()
                if workspace.user_id == user_id and workspace.collection_id == collection_id
            ]
            matches.sort(key=lambda w: (w.created_at, w.id), reverse=True)
            return [_clone(workspace) for workspace in matches]

    def get_workspace(self, workspace_id: int) -> Workspace | None:
        with self.state.lock:
            workspace = self.state.workspaces.get(workspace_id)
            return _clone(workspace) if workspace else None

    def create_workspace(self, workspace_in: WorkspaceCreate, *, user_id: str) -> Workspace:
        with self.state.lock:
            self._require_collection(workspace_in.collection_id)
            return self._insert(Workspace.model_validate(workspace_in, update={"user_id": user_id}))

    def update_workspace(self, workspace_id: int, workspace_in: WorkspaceUpdate) -> Workspace:
        update_data = workspace_in.model_dump(exclude_unset=True)
        with self.state.lock:
            workspace = self.state.workspaces.get(workspace_id)
            if workspace is None:
                raise NotFoundError("Workspace not found")
            if "collection_id" in update_data:
                self._require_collection(update_data["collection_id"])
            workspace.sqlmodel_update(update_data)
            return _clone(workspace)

    def delete_workspace(self, workspace_id: int) -> None:
        with self.state.lock:
            if self.state.workspaces.pop(workspace_id, None) is None:
                raise NotFoundError("Workspace not found")

    def duplicate_workspace(self, workspace_id: int, title: str | None = None) -> Workspace:
        with self.state.lock:
            source = self.state.workspaces.get(workspace_id)
            if source is None:
                raise NotFoundError("Workspace not found")
            return self._insert(
                Workspace(
                    title=title or copy_title(source.title),
                    type=source.type,
                    icon=source.icon,
                    user_id=source.user_id,
                    collection_id=source.collection_id,
                )
            )


class MemoryCanvasStore(MemoryStore, CanvasStore):
    def _require_workspace(self, workspace_id: int) -> None:
        if workspace_id not in self.state.workspaces:
            raise NotFoundError("Workspace not found")

    @staticmethod
    def _check_unique(kind: str, keys: list[tuple[int, str]], taken: dict) -> None:
        seen: set[tuple[int, str]] = set()
        for key in keys:
            if key in seen or key in taken:
                raise StorageError(f"Duplicate {kind} id '{key[1]}' in workspace {key[0]}")
            seen.add(key)

    def _drop_graph(self, workspace_id: int) -> tuple[list[Node], list[Edge]]:
        dropped_edges = [
            self.state.edges.pop(key) for key in [key for key in self.state.edges if key[0] == workspace_id]
        ]
        dropped_nodes = [
            self.state.nodes.pop(key) for key in [key for key in self.state.nodes if key[0] == workspace_id]
        ]
        return dropped_nodes, dropped_edges

    def _insert_graph(self, nodes: list[Node], edges: list[Edge]) -> None:
        for node in nodes:
            self.state.nodes[(node.workspace_id, node.id)] = node
        for edge in edges:
            self.state.edges[(edge.workspace_id, edge.id)] = edge

    def get_nodes(self, workspace_id: int) -> list[Node]:
        with self.state.lock:
            return [_clone(node) for key, node in self.state.nodes.items() if key[0] == workspace_id]

    def get_edges(self, workspace_id: int) -> list[Edge]:
        with self.state.lock:
            return [_clone(edge) for key, edge in self.state.edges.items() if key[0] == workspace_id]

    def get_canvas(self, workspace_id: int) -> tuple[list[Node], list[Edge]]:
        with self.state.lock:
            return self.get_nodes(workspace_id), self.get_edges(workspace_id)

    def sync_canvas(
        self, workspace_id: int, nodes: Sequence[NodeIn], edges: Sequence[EdgeIn]
    ) -> None:
        new_nodes = [Node(**node.model_dump(), workspace_id=workspace_id) for node in nodes]
        new_edges = [Edge(**edge.model_dump(), workspace_id=workspace_id) for edge in edges]
        with self.state.lock:
            self._require_workspace(workspace_id)
            # Validate before touching anything so a rejected sync leaves the old graph
            self._check_unique("node", [(workspace_id, node.id) for node in new_nodes], {})
            self._check_unique("edge", [(workspace_id, edge.id) for edge in new_edges], {})
            old_nodes, old_edges = self._drop_graph(workspace_id)
            try:
                self._insert_graph(new_nodes, new_edges)
            except Exception:
                # Roll back to the previous graph
                self._drop_graph(workspace_id)
                self.state.nodes.update({(node.workspace_id, node.id): node for node in old_nodes})
                self.state.edges.update({(edge.workspace_id, edge.id): edge for edge in old_edges})
                raise
        logger.info(
            "Synced canvas for workspace %s: %d nodes, %d edges", workspace_id, len(new_nodes), len(new_edges)
        )

    def clear_canvas(self, workspace_id: int) -> None:
        with self.state.lock:
            self._drop_graph(workspace_id)

    def duplicate_canvas(self, from_workspace_id: int, to_workspace_id: int) -> None:
        with self.state.lock:
            self._require_workspace(to_workspace_id)
            nodes = [
                Node(**node.model_dump(exclude={"workspace_id"}), workspace_id=to_workspace_id)
                for key, node in self.state.nodes.items()
                if key[0] == from_workspace_id
            ]
            edges = [
                Edge(**edge.model_dump(exclude={"workspace_id"}), workspace_id=to_workspace_id)
                for key, edge in self.state.edges.items()
                if key[0] == from_workspace_id
            ]
            self._check_unique("node", [(to_workspace_id, node.id) for node in nodes], self.state.nodes)
            self._check_unique("edge", [(to_workspace_id, edge.id) for edge in edges], self.state.edges)
            self._insert_graph(nodes, edges)
        logger.info(
            "Duplicated canvas %s -> %s: %d nodes, %d edges",
            from_workspace_id,
            to_workspace_id,
            len(nodes),
            len(edges),
        )


class MemoryStorage(Storage):
    backend = "memory"

    def __init__(self, state: MemoryState | None = None) -> None:
        self.state = state or MemoryState()
        self.collections = MemoryCollectionStore(self.state)
        self.workspaces = MemoryWorkspaceStore(self.state)
        self.canvas = MemoryCanvasStore(self.state)

    def delete_workspace(self, workspace_id: int) -> None:
        with self.state.lock:
            if workspace_id not in self.state.workspaces:
                raise NotFoundError("Workspace not found")
            self.canvas.clear_canvas(workspace_id)
            self.workspaces.delete_workspace(workspace_id)
        logger.info("Deleted workspace %s and its canvas", workspace_id)

    def duplicate_workspace(self, workspace_id: int, title: str | None = None) -> Workspace:
        with self.state.lock:
            duplicated = self.workspaces.duplicate_workspace(workspace_id, title)
            self.canvas.duplicate_canvas(workspace_id, duplicated.id)
        logger.info("Duplicated workspace %s as %s", workspace_id, duplicated.id)
        return duplicated
