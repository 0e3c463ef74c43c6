from fastapi.testclient import TestClient

from archboard.core.config import settings
from archboard.tests.utils import user_headers

WORKSPACES = f"{settings.API_V1_STR}/workspaces"
COLLECTIONS = f"{settings.API_V1_STR}/collections"


def create_workspace(client: TestClient, title: str, user_id: str = "alice", **fields) -> dict:
    response = client.post(f"{WORKSPACES}/", headers=user_headers(user_id), json={"title": title, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_workspace(client: TestClient) -> None:
    response = client.post(
        f"{WORKSPACES}/",
        headers=user_headers("alice"),
        json={"title": "Shop", "type": "architecture"},
    )
    assert response.status_code == 201
    content = response.json()
    assert content["title"] == "Shop"
    assert content["type"] == "architecture"
    assert content["icon"] == "box"
    assert content["user_id"] == "alice"
    assert content["collection_id"] is None
    assert "id" in content
    assert "created_at" in content


def test_requests_without_identity_are_rejected(client: TestClient) -> None:
    assert client.get(f"{WORKSPACES}/").status_code == 401
    response = client.post(f"{WORKSPACES}/", json={"title": "Shop"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_invalid_title_is_rejected(client: TestClient) -> None:
    response = client.post(f"{WORKSPACES}/", headers=user_headers("alice"), json={"title": "💥Crash"})
    assert response.status_code == 400
    assert "title" in response.json()["detail"]

    too_long = client.post(f"{WORKSPACES}/", headers=user_headers("alice"), json={"title": "x" * 17})
    assert too_long.status_code == 400


def test_unknown_type_is_rejected(client: TestClient) -> None:
    response = client.post(
        f"{WORKSPACES}/", headers=user_headers("alice"), json={"title": "Shop", "type": "spreadsheet"}
    )
    assert response.status_code == 400
    assert "Unknown workspace type" in response.json()["detail"]


def test_read_workspace_checks_ownership(client: TestClient) -> None:
    workspace = create_workspace(client, "Shop")

    assert client.get(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("alice")).status_code == 200

    foreign = client.get(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("bob"))
    assert foreign.status_code == 401
    assert foreign.json()["detail"] == "Unauthorized"

    missing = client.get(f"{WORKSPACES}/999", headers=user_headers("alice"))
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Workspace not found"


def test_listing_is_per_owner_and_per_collection(client: TestClient) -> None:
    folder = client.post(f"{COLLECTIONS}/", headers=user_headers("alice"), json={"title": "Infra"}).json()
    root = create_workspace(client, "Root")
    filed = create_workspace(client, "Filed", collection_id=folder["id"])
    create_workspace(client, "Bobs", user_id="bob")

    root_listing = client.get(f"{WORKSPACES}/", headers=user_headers("alice")).json()
    assert [w["id"] for w in root_listing] == [root["id"]]

    filed_listing = client.get(
        f"{WORKSPACES}/", headers=user_headers("alice"), params={"collection_id": folder["id"]}
    ).json()
    assert [w["id"] for w in filed_listing] == [filed["id"]]


def test_cannot_file_into_foreign_collection(client: TestClient) -> None:
    folder = client.post(f"{COLLECTIONS}/", headers=user_headers("bob"), json={"title": "Bobs"}).json()

    response = client.post(
        f"{WORKSPACES}/", headers=user_headers("alice"), json={"title": "Shop", "collection_id": folder["id"]}
    )
    assert response.status_code == 401

    workspace = create_workspace(client, "Shop")
    moved = client.put(
        f"{WORKSPACES}/{workspace['id']}", headers=user_headers("alice"), json={"collection_id": folder["id"]}
    )
    assert moved.status_code == 401


def test_update_workspace(client: TestClient) -> None:
    workspace = create_workspace(client, "Shop", icon="server")

    response = client.put(
        f"{WORKSPACES}/{workspace['id']}", headers=user_headers("alice"), json={"title": "Shop v2"}
    )
    assert response.status_code == 200
    content = response.json()
    assert content["title"] == "Shop v2"
    assert content["icon"] == "server"

    foreign = client.put(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("bob"), json={"title": "Mine"})
    assert foreign.status_code == 401


def test_delete_workspace_removes_its_canvas(client: TestClient) -> None:
    workspace = create_workspace(client, "Shop")
    graph = {
        "nodes": [
            {"id": "n1", "position": {"x": 0, "y": 0}},
            {"id": "n2", "position": {"x": 100, "y": 50}},
            {"id": "n3", "position": {"x": 200, "y": 50}},
        ],
        "edges": [
            {"id": "e1", "source": "n1", "target": "n2"},
            {"id": "e2", "source": "n2", "target": "n3"},
        ],
    }
    client.post(f"{WORKSPACES}/{workspace['id']}/canvas/sync", headers=user_headers("alice"), json=graph)

    assert client.delete(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("bob")).status_code == 401

    response = client.delete(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("alice"))
    assert response.status_code == 200
    assert response.json()["message"] == "Workspace deleted successfully"
    assert client.get(f"{WORKSPACES}/{workspace['id']}", headers=user_headers("alice")).status_code == 404
    assert client.get(f"{WORKSPACES}/{workspace['id']}/canvas", headers=user_headers("alice")).status_code == 404


def test_duplicate_workspace_copies_canvas(client: TestClient) -> None:
    workspace = create_workspace(client, "Shop", type="realtime")
    graph = {
        "nodes": [
            {"id": "n1", "type": "service", "position": {"x": 0, "y": 0}, "data": {"label": "API"}},
            {"id": "n2", "position": {"x": 100, "y": 50}},
        ],
        "edges": [{"id": "e1", "source": "n1", "target": "n2", "animated": True}],
    }
    client.post(f"{WORKSPACES}/{workspace['id']}/canvas/sync", headers=user_headers("alice"), json=graph)

    response = client.post(f"{WORKSPACES}/{workspace['id']}/duplicate", headers=user_headers("alice"))
    assert response.status_code == 201
    copy = response.json()
    assert copy["id"] != workspace["id"]
    assert copy["title"] == "Shop (Copy)"
    assert copy["type"] == "realtime"

    canvas = client.get(f"{WORKSPACES}/{copy['id']}/canvas", headers=user_headers("alice")).json()
    assert sorted(node["id"] for node in canvas["nodes"]) == ["n1", "n2"]
    assert {node["workspace_id"] for node in canvas["nodes"]} == {copy["id"]}
    assert canvas["edges"][0]["animated"] is True


def test_duplicate_workspace_with_title(client: TestClient) -> None:
    workspace = create_workspace(client, "Shop")

    response = client.post(
        f"{WORKSPACES}/{workspace['id']}/duplicate", headers=user_headers("alice"), json={"title": "Shop v2"}
    )
    assert response.status_code == 201
    assert response.json()["title"] == "Shop v2"

    assert (
        client.post(f"{WORKSPACES}/{workspace['id']}/duplicate", headers=user_headers("bob")).status_code
        == 401
    )
