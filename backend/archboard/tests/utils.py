from typing import Any

from archboard.core.config import settings
from archboard.models import Edge, EdgeIn, Node, NodeIn, Position


def user_headers(user_id: str) -> dict[str, str]:
    return {settings.AUTH_USER_HEADER: user_id}


def make_node(node_id: str, x: float = 0, y: float = 0, **fields: Any) -> NodeIn:
    return NodeIn(id=node_id, position=Position(x=x, y=y), **fields)


def make_edge(edge_id: str, source: str, target: str, **fields: Any) -> EdgeIn:
    return EdgeIn(id=edge_id, source=source, target=target, **fields)


def node_snapshot(nodes: list[Node] | list[NodeIn]) -> list[dict[str, Any]]:
    """Order-independent view of a node set, without the owning workspace."""
    dumped = [
        NodeIn.model_validate(node.model_dump(exclude={"workspace_id"})).model_dump()
        for node in nodes
    ]
    return sorted(dumped, key=lambda node: node["id"])


def edge_snapshot(edges: list[Edge] | list[EdgeIn]) -> list[dict[str, Any]]:
    dumped = [
        EdgeIn.model_validate(edge.model_dump(exclude={"workspace_id"})).model_dump()
        for edge in edges
    ]
    return sorted(dumped, key=lambda edge: edge["id"])
