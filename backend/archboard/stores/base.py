from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from archboard.exceptions import InvalidInputError, NotFoundError
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


def copy_title(title: str) -> str:
    return f"{title} (Copy)"


def check_reparent(
    collection_id: int,
    parent_id: int | None,
    lookup: Callable[[int], Collection | None],
) -> None:
    """Reject moving a collection under a missing parent or into its own subtree.

    Walks the ancestor chain of the proposed parent up to the root; the
    move is refused if ``collection_id`` shows up on the way.
    """
    if parent_id is None:
        return
    seen: set[int] = set()
    current: int | None = parent_id
    while current is not None:
        if current == collection_id:
            raise InvalidInputError("A collection cannot be moved into itself or one of its descendants")
        if current in seen:
            # Pre-existing cycle in stored data; stop walking
            break
        seen.add(current)
        ancestor = lookup(current)
        if ancestor is None:
            if current == parent_id:
                raise NotFoundError("Parent collection not found")
            break
        current = ancestor.parent_id


class CollectionStore(ABC):
    """Folder tree used to file workspaces.

    Deleting a collection removes its descendant collections; workspaces
    filed anywhere in the removed subtree fall back to the root listing.
    """

    @abstractmethod
    def get_collections(self, user_id: str, parent_id: int | None = None) -> list[Collection]:
        """Immediate children of ``parent_id`` (root level when None) owned by ``user_id``.

        Collections come back oldest first, in the order they were created,
        unlike workspace listings which are newest first.
        """

    @abstractmethod
    def get_collection(self, collection_id: int) -> Collection | None:
        pass

    @abstractmethod
    def create_collection(self, collection_in: CollectionCreate, *, user_id: str) -> Collection:
        pass

    @abstractmethod
    def update_collection(self, collection_id: int, collection_in: CollectionUpdate) -> Collection:
        pass

    @abstractmethod
    def delete_collection(self, collection_id: int) -> None:
        pass


class WorkspaceStore(ABC):
    """Workspace metadata. The graph itself lives in a ``CanvasStore``."""

    @abstractmethod
    def get_workspaces(self, user_id: str, collection_id: int | None = None) -> list[Workspace]:
        """Workspaces of ``user_id`` filed under ``collection_id``, newest first.

        ``collection_id=None`` lists only the root-level workspaces, not all
        of them.
        """

    @abstractmethod
    def get_workspace(self, workspace_id: int) -> Workspace | None:
        pass

    @abstractmethod
    def create_workspace(self, workspace_in: WorkspaceCreate, *, user_id: str) -> Workspace:
        pass

    @abstractmethod
    def update_workspace(self, workspace_id: int, workspace_in: WorkspaceUpdate) -> Workspace:
        pass

    @abstractmethod
    def delete_workspace(self, workspace_id: int) -> None:
        """Remove the workspace row only; its graph must be cleared by the caller."""

    @abstractmethod
    def duplicate_workspace(self, workspace_id: int, title: str | None = None) -> Workspace:
        """Copy the metadata of a workspace. The graph is not copied."""


class CanvasStore(ABC):
    """Node/edge graph of each workspace, replaced as a whole on every save."""

    @abstractmethod
    def get_nodes(self, workspace_id: int) -> list[Node]:
        pass

    @abstractmethod
    def get_edges(self, workspace_id: int) -> list[Edge]:
        pass

    @abstractmethod
    def get_canvas(self, workspace_id: int) -> tuple[list[Node], list[Edge]]:
        pass

    @abstractmethod
    def sync_canvas(
        self, workspace_id: int, nodes: Sequence[NodeIn], edges: Sequence[EdgeIn]
    ) -> None:
        """Atomically replace the stored graph with ``nodes`` and ``edges``.

        Empty sequences clear the canvas. Edge endpoints are not checked
        against the node set.
        """

    @abstractmethod
    def clear_canvas(self, workspace_id: int) -> None:
        """Delete every node and edge of a workspace, whether or not the workspace still exists."""

    @abstractmethod
    def duplicate_canvas(self, from_workspace_id: int, to_workspace_id: int) -> None:
        """Atomically copy every node and edge into another workspace, keeping their ids."""


class Storage(ABC):
    """The three stores plus the operations that must span them atomically."""

    backend: str
    collections: CollectionStore
    workspaces: WorkspaceStore
    canvas: CanvasStore

    @abstractmethod
    def delete_workspace(self, workspace_id: int) -> None:
        """Delete a workspace and its whole graph in one step."""

    @abstractmethod
    def duplicate_workspace(self, workspace_id: int, title: str | None = None) -> Workspace:
        """Copy a workspace's metadata and graph in one step."""

    def ping(self) -> bool:
        return True
