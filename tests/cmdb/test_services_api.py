"""Integration tests for the service endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


@pytest.fixture
async def host(client: AsyncClient) -> dict:
    ws = (await client.post("/api/workspaces/create", json={"name": "Homelab"})).json()
    item = (await client.post("/api/items/create", json={"workspace_id": ws["id"], "name": "app-server"})).json()
    return {"ws": ws, "item": item}


@pytest.fixture
async def service(client: AsyncClient, host: dict) -> dict:
    resp = await client.post("/api/services/create", json={"item_id": host["item"]["id"], "name": "shop"})
    assert resp.status_code == 201
    return resp.json()


async def test_service_crud(client: AsyncClient, host: dict, service: dict, sink):
    ws_id = host["ws"]["id"]
    assert service["workspace_id"] == ws_id
    assert service["icon_type"] == "preset"

    listed = (await client.get("/api/services/list", params={"item_id": host["item"]["id"]})).json()
    assert [s["name"] for s in listed] == ["shop"]

    resp = await client.post(f"/api/services/{service['id']}/update", json={"status": "degraded"})
    assert resp.json()["status"] == "degraded"

    resp = await client.post(
        f"/api/services/{service['id']}/icon", json={"icon_type": "upload", "icon_path": "icons/shop.png"}
    )
    assert resp.json()["icon_path"] == "icons/shop.png"

    assert (await client.post(f"/api/services/{service['id']}/delete")).status_code == 204
    assert (await client.get(f"/api/services/{service['id']}/get")).status_code == 404

    # item create, then service create, update, icon and delete
    assert [workspace_id for workspace_id, _ in sink.calls] == [ws_id] * 5


async def test_create_service_for_unknown_item(client: AsyncClient):
    resp = await client.post("/api/services/create", json={"item_id": 999_999, "name": "ghost"})
    assert resp.status_code == 404


async def test_service_item_ordering(client: AsyncClient, service: dict):
    group = (await client.post("/api/service-groups/create", json={"service_id": service["id"], "name": "web"})).json()
    created = []
    for name in ("a", "b", "c"):
        body = {"service_id": service["id"], "name": name, "group_id": group["id"]}
        created.append((await client.post("/api/service-items/create", json=body)).json())
    assert [item["order_in_group"] for item in created] == [0, 1, 2]

    resp = await client.post(f"/api/service-items/{created[2]['id']}/reorder", json={"new_order": 0})
    assert resp.json()["order_in_group"] == 0

    listed = (await client.get("/api/service-items/list", params={"service_id": service["id"]})).json()
    assert [(item["name"], item["order_in_group"]) for item in listed] == [("c", 0), ("a", 1), ("b", 2)]

    resp = await client.post(f"/api/service-items/{created[0]['id']}/group", json={"group_id": None})
    assert (resp.json()["group_id"], resp.json()["order_in_group"]) == (None, None)


async def test_reorder_ungrouped_service_item_is_400(client: AsyncClient, service: dict):
    item = (await client.post("/api/service-items/create", json={"service_id": service["id"], "name": "a"})).json()
    resp = await client.post(f"/api/service-items/{item['id']}/reorder", json={"new_order": 0})
    assert resp.status_code == 400


async def test_service_items_of_unknown_service(client: AsyncClient):
    resp = await client.post("/api/service-items/create", json={"service_id": 999_999, "name": "a"})
    assert resp.status_code == 404
    assert (await client.get("/api/service-items/list", params={"service_id": 999_999})).status_code == 404


async def test_service_connections_and_edge_handles(client: AsyncClient, service: dict):
    a = (await client.post("/api/service-items/create", json={"service_id": service["id"], "name": "a"})).json()
    b = (await client.post("/api/service-items/create", json={"service_id": service["id"], "name": "b"})).json()
    edge = {"source_id": a["id"], "target_id": b["id"]}

    resp = await client.post("/api/service-connections/create", json={**edge, "service_id": service["id"]})
    assert resp.status_code == 201
    assert resp.json()["shape"] == "item-item"

    edge_id = f"e{a['id']}-{b['id']}"
    pair = {"sourceHandle": "right", "targetHandle": "left"}
    resp = await client.post(
        "/api/service-edge-handles/upsert", json={**pair, "edgeId": edge_id, "serviceId": service["id"]}
    )
    assert resp.status_code == 200
    assert resp.json()["service_id"] == service["id"]

    handles = (await client.get("/api/service-edge-handles/list", params={"service_id": service["id"]})).json()
    assert handles == {edge_id: pair}
    resp = await client.get("/api/service-edge-handles/get", params={"edgeId": edge_id})
    assert resp.json()["source_handle"] == "right"

    assert (await client.post("/api/service-connections/delete", json=edge)).json() == {"deleted": 1}
    assert (await client.post("/api/service-connections/delete", json=edge)).json() == {"deleted": 0}
    assert (await client.get("/api/service-edge-handles/get", params={"edgeId": edge_id})).status_code == 404


async def test_service_edge_handles_reject_bad_ids(client: AsyncClient, service: dict):
    pair = {"sourceHandle": "right", "targetHandle": "left"}
    body = {"serviceId": service["id"], "edgeHandles": {"not-an-edge": pair}}
    assert (await client.post("/api/service-edge-handles/bulk", json=body)).status_code == 422
    assert (await client.get("/api/service-edge-handles/get", params={"edgeId": "e1-2\n"})).status_code == 422


async def test_deleting_host_item_removes_services(client: AsyncClient, host: dict, service: dict):
    assert (await client.post(f"/api/items/{host['item']['id']}/delete")).status_code == 204
    assert (await client.get(f"/api/services/{service['id']}/get")).status_code == 404
