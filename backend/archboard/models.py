import re
from datetime import datetime, timezone
from typing import Any

from pydantic import field_validator, model_validator
from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


WORKSPACE_TITLE_MAX_LENGTH = 16
_WORKSPACE_TITLE_PATTERN = re.compile(r"[A-Za-z0-9 _-]+")

# Template categories offered by the create dialog
WORKSPACE_TYPES = (
    "system",
    "architecture",
    "app",
    "presentation",
    "realtime",
    "template:ecommerce",
    "template:ai-platform",
    "template:enterprise-k8s",
    "template:fintech-saas",
)
DEFAULT_WORKSPACE_TYPE = "system"
DEFAULT_WORKSPACE_ICON = "box"


def validate_workspace_title(title: str) -> str:
    """Check a user-supplied workspace title.

    Titles are 1-16 characters of ASCII letters, digits, spaces, hyphens
    and underscores. Anything else (emoji included) is rejected rather
    than cleaned up.
    """
    if not title or not title.strip():
        raise ValueError("Title is required")
    if len(title) > WORKSPACE_TITLE_MAX_LENGTH:
        raise ValueError(f"Title must be {WORKSPACE_TITLE_MAX_LENGTH} characters or fewer")
    if not _WORKSPACE_TITLE_PATTERN.fullmatch(title):
        raise ValueError("Title may only contain letters, numbers, spaces, hyphens and underscores")
    return title


def validate_workspace_type(workspace_type: str) -> str:
    if workspace_type not in WORKSPACE_TYPES:
        raise ValueError(f"Unknown workspace type '{workspace_type}'")
    return workspace_type


# Collections

class CollectionBase(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None)
    parent_id: int | None = Field(
        default=None, foreign_key="collections.id", ondelete="CASCADE", index=True
    )


class CollectionCreate(CollectionBase):
    pass


# Properties to receive on update, all are optional
class CollectionUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    parent_id: int | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Title cannot be null")
        return value


class Collection(CollectionBase, table=True):
    __tablename__ = "collections"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, max_length=255)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class CollectionPublic(CollectionBase):
    id: int
    user_id: str
    created_at: datetime | None = None


# Workspaces

class WorkspaceBase(SQLModel):
    # Column stays wide: generated "(Copy)" titles may exceed the input limit
    title: str = Field(max_length=255)
    type: str = Field(default=DEFAULT_WORKSPACE_TYPE, max_length=64)
    icon: str = Field(default=DEFAULT_WORKSPACE_ICON, min_length=1, max_length=64)
    collection_id: int | None = Field(
        default=None, foreign_key="collections.id", ondelete="SET NULL", index=True
    )


class WorkspaceCreate(WorkspaceBase):
    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return validate_workspace_title(value)

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str) -> str:
        return validate_workspace_type(value)


class WorkspaceUpdate(SQLModel):
    title: str | None = None
    type: str | None = None
    icon: str | None = Field(default=None, min_length=1, max_length=64)
    # An explicit null moves the workspace back to the root listing
    collection_id: int | None = None

    # Validators only see values the client sent, so None here is an explicit null
    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Title cannot be null")
        return validate_workspace_title(value)

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Type cannot be null")
        return validate_workspace_type(value)

    @field_validator("icon")
    @classmethod
    def check_icon(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Icon cannot be null")
        return value


class WorkspaceDuplicate(SQLModel):
    title: str | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str | None:
        return value if value is None else validate_workspace_title(value)


class Workspace(WorkspaceBase, table=True):
    __tablename__ = "workspaces"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, max_length=255)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class WorkspacePublic(WorkspaceBase):
    id: int
    user_id: str
    created_at: datetime | None = None


# Canvas graph. Node and edge ids are chosen by the client and are only
# unique within one workspace, hence the composite primary keys.

class Position(SQLModel):
    x: float
    y: float


class NodeBase(SQLModel):
    type: str = Field(default="default", max_length=64)
    data: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    parent_id: str | None = Field(default=None, max_length=255)
    extent: str | None = Field(default=None, max_length=64)


class NodeIn(NodeBase):
    id: str = Field(min_length=1, max_length=255)
    position: Position


class Node(NodeBase, table=True):
    __tablename__ = "nodes"

    workspace_id: int = Field(
        foreign_key="workspaces.id", primary_key=True, ondelete="CASCADE"
    )
    id: str = Field(primary_key=True, max_length=255)
    position: dict[str, float] = Field(default_factory=dict, sa_type=JSON)


class NodePublic(NodeBase):
    id: str
    workspace_id: int
    position: Position


class EdgeBase(SQLModel):
    source: str = Field(max_length=255)
    target: str = Field(max_length=255)
    source_handle: str | None = Field(default=None, max_length=255)
    target_handle: str | None = Field(default=None, max_length=255)
    type: str = Field(default="default", max_length=64)
    data: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    animated: bool = False


class EdgeIn(EdgeBase):
    id: str = Field(min_length=1, max_length=255)


class Edge(EdgeBase, table=True):
    __tablename__ = "edges"

    workspace_id: int = Field(
        foreign_key="workspaces.id", primary_key=True, ondelete="CASCADE"
    )
    id: str = Field(primary_key=True, max_length=255)


class EdgePublic(EdgeBase):
    id: str
    workspace_id: int


def _first_duplicate(ids: list[str]) -> str | None:
    seen: set[str] = set()
    for item_id in ids:
        if item_id in seen:
            return item_id
        seen.add(item_id)
    return None


class CanvasSync(SQLModel):
    """Complete graph sent by the client on every save."""

    nodes: list[NodeIn] = Field(default_factory=list)
    edges: list[EdgeIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "CanvasSync":
        duplicate = _first_duplicate([node.id for node in self.nodes])
        if duplicate is not None:
            raise ValueError(f"Duplicate node id '{duplicate}'")
        duplicate = _first_duplicate([edge.id for edge in self.edges])
        if duplicate is not None:
            raise ValueError(f"Duplicate edge id '{duplicate}'")
        return self


class CanvasPublic(SQLModel):
    nodes: list[NodePublic]
    edges: list[EdgePublic]


class CanvasDuplicate(SQLModel):
    to_workspace_id: int


class SyncResult(SQLModel):
    success: bool = True


# Generic message
class Message(SQLModel):
    message: str
