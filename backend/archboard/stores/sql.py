import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy import delete, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

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


class SqlStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(
        self, session: Session | None = None, *, isolation_level: str | None = None
    ) -> Iterator[Session]:
        """Yield a session with an open transaction.

        When ``session`` is given the work joins it and its owner commits;
        otherwise a new transaction is committed on success and rolled back
        on any error. ``isolation_level`` only applies to a new transaction.
        """
        if session is not None:
            yield session
            return
        try:
            with Session(self.engine, expire_on_commit=False) as session, session.begin():
                if isolation_level is not None:
                    session.connection(execution_options={"isolation_level": isolation_level})
                yield session
        except SQLAlchemyError as exc:
            logger.error("Storage operation failed: %s", exc)
            raise StorageError("Storage operation failed") from exc


class SqlCollectionStore(SqlStore, CollectionStore):
    def get_collections(
        self, user_id: str, parent_id: int | None = None, *, session: Session | None = None
    ) -> list[Collection]:
        statement = select(Collection).where(Collection.user_id == user_id)
        if parent_id is None:
            statement = statement.where(col(Collection.parent_id).is_(None))
        else:
            statement = statement.where(Collection.parent_id == parent_id)
        statement = statement.order_by(col(Collection.created_at), col(Collection.id))
        with self.transaction(session) as session:
            return list(session.exec(statement).all())

    def get_collection(self, collection_id: int, *, session: Session | None = None) -> Collection | None:
        with self.transaction(session) as session:
            return session.get(Collection, collection_id)

    def create_collection(
        self, collection_in: CollectionCreate, *, user_id: str, session: Session | None = None
    ) -> Collection:
        with self.transaction(session) as session:
            if collection_in.parent_id is not None and session.get(Collection, collection_in.parent_id) is None:
                raise NotFoundError("Parent collection not found")
            db_collection = Collection.model_validate(collection_in, update={"user_id": user_id})
            session.add(db_collection)
            session.flush()
            return db_collection

    def update_collection(
        self, collection_id: int, collection_in: CollectionUpdate, *, session: Session | None = None
    ) -> Collection:
        update_data = collection_in.model_dump(exclude_unset=True)
        with self.transaction(session) as session:
            db_collection = session.get(Collection, collection_id)
            if db_collection is None:
                raise NotFoundError("Collection not found")
            if "parent_id" in update_data:
                check_reparent(
                    collection_id,
                    update_data["parent_id"],
                    lambda ancestor_id: session.get(Collection, ancestor_id),
                )
            db_collection.sqlmodel_update(update_data)
            session.add(db_collection)
            session.flush()
            return db_collection

    def delete_collection(self, collection_id: int, *, session: Session | None = None) -> None:
        # Child collections and workspace filings are handled by the
        # foreign keys' ON DELETE actions.
        with self.transaction(session) as session:
            db_collection = session.get(Collection, collection_id)
            if db_collection is None:
                raise NotFoundError("Collection not found")
            session.delete(db_collection)
        logger.info("Deleted collection %s", collection_id)


class SqlWorkspaceStore(SqlStore, WorkspaceStore):
    @staticmethod
    def _require_collection(session: Session, collection_id: int | None) -> None:
        if collection_id is not None and session.get(Collection, collection_id) is None:
            raise NotFoundError("Collection not found")

    def get_workspaces(
        self, user_id: str, collection_id: int | None = None, *, session: Session | None = None
    ) -> list[Workspace]:
        statement = select(Workspace).where(Workspace.user_id == user_id)
        if collection_id is None:
            statement = statement.where(col(Workspace.collection_id).is_(None))
        else:
            statement = statement.where(Workspace.collection_id == collection_id)
        statement = statement.order_by(col(Workspace.created_at).desc(), col(Workspace.id).desc())
        with self.transaction(session) as session:
            return list(session.exec(statement).all())

    def get_workspace(self, workspace_id: int, *, session: Session | None = None) -> Workspace | None:
        with self.transaction(session) as session:
            return session.get(Workspace, workspace_id)

    def create_workspace(
        self, workspace_in: WorkspaceCreate, *, user_id: str, session: Session | None = None
    ) -> Workspace:
        with self.transaction(session) as session:
            self._require_collection(session, workspace_in.collection_id)
            db_workspace = Workspace.model_validate(workspace_in, update={"user_id": user_id})
            session.add(db_workspace)
            session.flush()
            return db_workspace

    def update_workspace(
        self, workspace_id: int, workspace_in: WorkspaceUpdate, *, session: Session | None = None
    ) -> Workspace:
        update_data = workspace_in.model_dump(exclude_unset=True)
        with self.transaction(session) as session:
            db_workspace = session.get(Workspace, workspace_id)
            if db_workspace is None:
                raise NotFoundError("Workspace not found")
            if "collection_id" in update_data:
                self._require_collection(session, update_data["collection_id"])
            db_workspace.sqlmodel_update(update_data)
            session.add(db_workspace)
            session.flush()
            return db_workspace

    def delete_workspace(self, workspace_id: int, *, session: Session | None = None) -> None:
        with self.transaction(session) as session:
            db_workspace = session.get(Workspace, workspace_id)
            if db_workspace is None:
                raise NotFoundError("Workspace not found")
            session.delete(db_workspace)

    def duplicate_workspace(
        self, workspace_id: int, title: str | None = None, *, session: Session | None = None
    ) -> Workspace:
        with self.transaction(session) as session:
            source = session.get(Workspace, workspace_id)
            if source is None:
                raise NotFoundError("Workspace not found")
            duplicated = Workspace(
                title=title or copy_title(source.title),
                type=source.type,
                icon=source.icon,
                user_id=source.user_id,
                collection_id=source.collection_id,
            )
            session.add(duplicated)
            session.flush()
            return duplicated


class SqlCanvasStore(SqlStore, CanvasStore):
    @staticmethod
    def _require_workspace(session: Session, workspace_id: int) -> None:
        if session.get(Workspace, workspace_id) is None:
            raise NotFoundError("Workspace not found")

    @staticmethod
    def _drop_graph(session: Session, workspace_id: int) -> None:
        session.exec(delete(Edge).where(col(Edge.workspace_id) == workspace_id))  # type: ignore[call-overload]
        session.exec(delete(Node).where(col(Node.workspace_id) == workspace_id))  # type: ignore[call-overload]

    @staticmethod
    def _insert_graph(session: Session, nodes: list[Node], edges: list[Edge]) -> None:
        session.add_all(nodes)
        # Nodes go in before the edges that point at them
        session.flush()
        session.add_all(edges)
        session.flush()

    def get_nodes(self, workspace_id: int, *, session: Session | None = None) -> list[Node]:
        with self.transaction(session) as session:
            return list(session.exec(select(Node).where(Node.workspace_id == workspace_id)).all())

    def get_edges(self, workspace_id: int, *, session: Session | None = None) -> list[Edge]:
        with self.transaction(session) as session:
            return list(session.exec(select(Edge).where(Edge.workspace_id == workspace_id)).all())

    def get_canvas(
        self, workspace_id: int, *, session: Session | None = None
    ) -> tuple[list[Node], list[Edge]]:
        # Nodes and edges come from one snapshot; SQLite gets it from the explicit BEGIN in core.db
        isolation_level = None if self.engine.dialect.name == "sqlite" else "REPEATABLE READ"
        with self.transaction(session, isolation_level=isolation_level) as session:
            return (
                self.get_nodes(workspace_id, session=session),
                self.get_edges(workspace_id, session=session),
            )

    def sync_canvas(
        self,
        workspace_id: int,
        nodes: Sequence[NodeIn],
        edges: Sequence[EdgeIn],
        *,
        session: Session | None = None,
    ) -> None:
        with self.transaction(session) as session:
            self._require_workspace(session, workspace_id)
            self._drop_graph(session, workspace_id)
            self._insert_graph(
                session,
                [Node(**node.model_dump(), workspace_id=workspace_id) for node in nodes],
                [Edge(**edge.model_dump(), workspace_id=workspace_id) for edge in edges],
            )
        logger.info(
            "Synced canvas for workspace %s: %d nodes, %d edges", workspace_id, len(nodes), len(edges)
        )

    def clear_canvas(self, workspace_id: int, *, session: Session | None = None) -> None:
        with self.transaction(session) as session:
            self._drop_graph(session, workspace_id)

    def duplicate_canvas(
        self, from_workspace_id: int, to_workspace_id: int, *, session: Session | None = None
    ) -> None:
        with self.transaction(session) as session:
            self._require_workspace(session, to_workspace_id)
            nodes, edges = self.get_canvas(from_workspace_id, session=session)
            self._insert_graph(
                session,
                [
                    Node(**node.model_dump(exclude={"workspace_id"}), workspace_id=to_workspace_id)
                    for node in nodes
                ],
                [
                    Edge(**edge.model_dump(exclude={"workspace_id"}), workspace_id=to_workspace_id)
                    for edge in edges
                ],
            )
        logger.info(
            "Duplicated canvas %s -> %s: %d nodes, %d edges",
            from_workspace_id,
            to_workspace_id,
            len(nodes),
            len(edges),
        )


class SqlStorage(Storage):
    """All stores on one database, so cross-store operations share a transaction."""

    backend = "sql"

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.collections = SqlCollectionStore(engine)
        self.workspaces = SqlWorkspaceStore(engine)
        self.canvas = SqlCanvasStore(engine)

    def delete_workspace(self, workspace_id: int) -> None:
        with self.canvas.transaction() as session:
            self.canvas.clear_canvas(workspace_id, session=session)
            self.workspaces.delete_workspace(workspace_id, session=session)
        logger.info("Deleted workspace %s and its canvas", workspace_id)

    def duplicate_workspace(self, workspace_id: int, title: str | None = None) -> Workspace:
        with self.canvas.transaction() as session:
            duplicated = self.workspaces.duplicate_workspace(workspace_id, title, session=session)
            self.canvas.duplicate_canvas(workspace_id, duplicated.id, session=session)
        logger.info("Duplicated workspace %s as %s", workspace_id, duplicated.id)
        return duplicated

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("Database ping failed: %s", exc)
            return False
        return True
