import logging

from sqlalchemy import event
from sqlalchemy.engine import Connection, Engine
from sqlmodel import SQLModel, create_engine

# Registers the tables on SQLModel.metadata
from archboard import models  # noqa: F401

logger = logging.getLogger(__name__)

_IN_MEMORY_SQLITE_URLS = {"sqlite://", "sqlite:///:memory:"}


def _on_sqlite_connect(dbapi_conn, connection_record) -> None:
    # Referential actions (cascade, set null) are off in SQLite by default
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Let SQLAlchemy emit BEGIN itself; pysqlite would skip it for SELECTs
    dbapi_conn.isolation_level = None


def _on_sqlite_begin(conn: Connection) -> None:
    conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Build an engine for ``database_url``.

    On SQLite every transaction starts with an explicit ``BEGIN``, so the
    reads inside it see one snapshot, and foreign keys are switched on for
    every connection. In-memory SQLite is refused: pooled connections
    would either each get an empty database or all share one connection
    and see each other's uncommitted writes.
    """
    if database_url in _IN_MEMORY_SQLITE_URLS:
        raise ValueError(
            "In-memory SQLite is not supported; use a file database or leave DATABASE_URL unset"
        )

    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
    return engine


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created/verified on %s", engine.url.render_as_string(hide_password=True))
