from __future__ import annotations

import copy
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fastapi.testclient import TestClient

from vizboard.app import create_app
from vizboard.core.errors import ServerError
from vizboard.infrastructure import InMemoryNotificationSink

SPEC = {
    "title": "Sales",
    "data": [
        {"region": "North", "sales": 10},
        {"region": "South", "sales": 5},
        {"region": "North", "sales": 7},
    ],
    "filters": [{"field": "region", "type": "dropdown"}],
    "cards": [{"id": "total", "title": "Total Sales", "valueField": "sales", "aggregation": "sum"}],
    "charts": [{"id": "by-region", "type": "bar", "xAxis": "region", "yAxis": "sales"}],
    "table": {"id": "rows", "columns": [{"field": "region"}, {"field": "sales", "sortable": True}]},
}


class FakeQueryService:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def submit_query(self, text: str):
        self.calls.append(text)
        return copy.deepcopy(SPEC)


class FakeStore:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes, dict]] = []

    async def list(self, **params):
        return {"items": [{"id": "1", "name": "Orders"}], "total": 1}

    async def upload(self, filename, content, metadata, on_progress=None, *, content_type=None):
        self.uploads.append((filename, content, dict(metadata)))
        if on_progress is not None:
            on_progress(100)
        return {"id": "ds-9"}

    async def delete(self, dataset_id):
        if dataset_id == "missing":
            raise ServerError("Dataset not found", status_code=404)

    async def bulk_delete(self, dataset_ids):
        return None

    async def get_schema(self, dataset_id):
        raise ServerError("Dataset not found", status_code=404)

    async def get_preview(self, dataset_id, page=1, page_size=50):
        return {"name": "Orders", "columns": ["order_id"], "data": [{"order_id": "A-1"}]}

    async def get_mapping(self):
        return {"fields": ["sales"]}

    async def generate_mapping(self):
        return {"status": "completed"}

    async def wait_for_mapping(self, **kwargs):
        return None


def _client() -> tuple[TestClient, FakeQueryService, FakeStore]:
    queries, store = FakeQueryService(), FakeStore()
    app = create_app(
        query_service=queries,
        dataset_store=store,
        notifier=InMemoryNotificationSink(),
        timeout=5,
    )
    return TestClient(app), queries, store


def _session(client: TestClient) -> str:
    response = client.post("/api/dashboards")
    assert response.status_code == 200
    return response.json()["session_id"]


def test_query_flow_end_to_end():
    client, queries, _ = _client()
    session_id = _session(client)

    response = client.post(f"/api/dashboards/{session_id}/query", json={"query": "sales by region"})

    assert response.status_code == 200
    body = response.json()
    assert queries.calls == ["sales by region"]
    assert body["status"] == "ready"
    assert body["filter_summary"] == "Showing 3 of 3 records"
    assert body["cards"][0]["value"] == 22.0
    assert len(body["charts"][0]["data"]) == 3
    assert body["tables"][0]["summary"] == "Showing 1 to 3 of 3 results"

    filtered = client.put(f"/api/dashboards/{session_id}/filters/region", json={"value": "North"}).json()
    assert filtered["filtered_count"] == 2
    assert filtered["cards"][0]["value"] == 17.0

    table = client.get(f"/api/dashboards/{session_id}/tables/rows", params={"sort": "sales"}).json()
    assert [row["sales"] for row in table["rows"]] == [7, 10]

    cleared = client.delete(f"/api/dashboards/{session_id}/filters").json()
    assert cleared["filtered_count"] == 3

    notes = client.get(f"/api/dashboards/{session_id}/notifications").json()["items"]
    assert notes[-1]["title"] == "Dashboard Generated"


def test_empty_query_is_rejected_without_calling_the_service():
    client, queries, _ = _client()
    session_id = _session(client)

    response = client.post(f"/api/dashboards/{session_id}/query", json={"query": "  "})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Query Required")
    assert queries.calls == []
    assert client.get(f"/api/dashboards/{session_id}").json()["status"] == "idle"


def test_error_statuses():
    client, _, _ = _client()
    session_id = _session(client)

    assert client.get("/api/dashboards/dash-99999").status_code == 404
    assert client.post(f"/api/dashboards/{session_id}/regenerate").status_code == 409
    assert client.put(f"/api/dashboards/{session_id}/filters/region", json={"value": "x"}).status_code == 409
    assert client.post(f"/api/dashboards/{session_id}/specification", json={"json": "{broken"}).status_code == 400

    client.post(f"/api/dashboards/{session_id}/specification", json={"specification": SPEC})
    assert client.put(f"/api/dashboards/{session_id}/filters/colour", json={"value": "red"}).status_code == 400
    assert client.get(f"/api/dashboards/{session_id}/tables/missing").status_code == 404

    assert client.delete(f"/api/dashboards/{session_id}").status_code == 200
    assert client.delete(f"/api/dashboards/{session_id}").status_code == 404


def test_manual_specification_accepts_bare_documents():
    client, queries, _ = _client()
    session_id = _session(client)

    body = client.post(f"/api/dashboards/{session_id}/specification", json=SPEC).json()

    assert body["status"] == "ready"
    assert body["title"] == "Sales"
    assert queries.calls == []


def test_dataset_preview_dashboard():
    client, _, _ = _client()
    session_id = _session(client)

    body = client.post(f"/api/dashboards/{session_id}/datasets/1").json()

    assert body["title"] == "Orders"
    assert body["tables"][0]["table_id"] == "preview"


def test_upload_and_dataset_routes():
    client, _, store = _client()

    response = client.post(
        "/api/datasets/upload",
        files=[("files", ("q1.csv", b"region,sales\nNorth,10\n", "text/csv"))],
        data={"name": "Sales", "tags": "finance, q1"},
    )

    assert response.status_code == 200
    task = response.json()["items"][0]
    assert task["status"] == "complete"
    assert task["dataset_id"] == "ds-9"
    assert store.uploads[0][2] == {"name": "Sales", "description": None, "tags": ["finance", "q1"]}
    assert client.get("/api/datasets/uploads").json()["items"][0]["filename"] == "q1.csv"
    assert client.delete("/api/datasets/uploads").json() == {"cleared": 1}
    assert client.get("/api/datasets/uploads").json()["items"] == []

    notes = client.get("/api/notifications").json()["items"]
    assert notes[-1]["title"] == "Upload successful"
    assert client.delete("/api/notifications").json() == {"cleared": True}
    assert client.get("/api/notifications").json()["items"] == []

    assert client.get("/api/datasets").json()["total"] == 1
    assert client.get("/api/datasets/1/schema").status_code == 404
    assert client.delete("/api/datasets/missing").status_code == 404
    assert client.post("/api/datasets/bulk-delete", json={"ids": []}).status_code == 400
    assert client.post("/api/datasets/bulk-delete", json={"ids": [1, 2]}).json() == {"deleted": ["1", "2"]}
    assert client.post("/api/datasets/mappings/generate").json() == {
        "status": "completed",
        "mapping": {"fields": ["sales"]},
    }


def test_root_landing_page():
    client, _, _ = _client()
    assert client.get("/").json()["docs"] == "/docs"
