from unittest.mock import patch

import pytest

from xray.errors import StorageError
from xray.main import create_app
from xray.recorder import Explanation, TraceRecorder
from xray.store import FileTraceLogStore, InMemoryTraceLogStore
from xray.transport import HttpTraceSubmitter


class BrokenStore(InMemoryTraceLogStore):
    def append(self, trace):
        raise StorageError("disk unavailable")

    def truncate(self):
        raise StorageError("disk unavailable")


@pytest.fixture
def memory_store():
    return InMemoryTraceLogStore()


@pytest.fixture
def client(app_config, memory_store):
    app = create_app(config=app_config, store=memory_store)
    app.config["TESTING"] = True
    return app.test_client()


def test_post_appends_trace(client, memory_store, trace):
    response = client.post("/api/ingest", json=trace.to_dict())

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "id": trace.trace_id}
    assert memory_store.read() == [trace]


def test_get_returns_newest_first(client, make_trace):
    traces = [make_trace(t) for t in (1000, 2000, 3000)]
    for t in traces:
        client.post("/api/ingest", json=t.to_dict())

    body = client.get("/api/ingest").get_json()
    assert [t["traceId"] for t in body] == [t.trace_id for t in reversed(traces)]
    assert body[0] == traces[-1].to_dict()


def test_get_limit(client, make_trace):
    for t in range(5):
        client.post("/api/ingest", json=make_trace(t).to_dict())

    assert len(client.get("/api/ingest?limit=2").get_json()) == 2


def test_get_defaults_to_fifty(client, make_trace):
    for t in range(55):
        client.post("/api/ingest", json=make_trace(t).to_dict())

    assert len(client.get("/api/ingest").get_json()) == 50


def test_get_empty(client):
    response = client.get("/api/ingest")
    assert response.status_code == 200
    assert response.get_json() == []


def test_get_unreadable_store_returns_empty(app_config, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    app = create_app(config=app_config, store=FileTraceLogStore(blocker / "traces.jsonl"))

    assert app.test_client().get("/api/ingest").get_json() == []


def test_post_malformed_trace(client, memory_store):
    response = client.post("/api/ingest", json={"traceId": "abc"})

    assert response.status_code == 400
    assert response.get_json()["success"] is False
    assert memory_store.read() == []


def test_post_non_json_body(client):
    response = client.post("/api/ingest", data="hello", content_type="text/plain")
    assert response.status_code == 400


def test_post_write_failure(app_config, trace):
    client = create_app(config=app_config, store=BrokenStore()).test_client()
    response = client.post("/api/ingest", json=trace.to_dict())

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "error": "Failed to save trace"}


def test_delete_truncates(client, trace):
    client.post("/api/ingest", json=trace.to_dict())

    response = client.delete("/api/ingest")
    assert response.get_json() == {"success": True}
    assert client.get("/api/ingest").get_json() == []
    assert client.delete("/api/ingest").get_json() == {"success": True}


def test_delete_failure(app_config):
    client = create_app(config=app_config, store=BrokenStore()).test_client()
    response = client.delete("/api/ingest")
    assert response.status_code == 500
    assert response.get_json()["success"] is False


def test_health(client):
    body = client.get("/api/health").get_json()
    assert body == {"status": "healthy", "environment": "development"}


def test_default_store_comes_from_config(app_config, trace):
    app = create_app(config=app_config)
    client = app.test_client()
    client.post("/api/ingest", json=trace.to_dict())

    assert app_config.log_path.exists()
    assert FileTraceLogStore(app_config.log_path).read() == [trace]


def test_http_submitter_against_app(client, memory_store):
    def forward(url, data, headers, timeout):
        return client.post("/api/ingest", data=data, headers=headers)

    recorder = TraceRecorder(submitter=HttpTraceSubmitter("http://testserver/api/ingest"))
    recorder.capture_step("one", {"q": "bottle"}, lambda: ["p1"], lambda r: Explanation(reasoning="found 1"))

    with patch("xray.transport.requests.post", side_effect=forward):
        trace = recorder.finalize()

    assert memory_store.read() == [trace]


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_post_non_finite_number(client, memory_store, trace, literal):
    body = trace.to_json().replace('"timestamp":%d' % trace.timestamp, '"timestamp":%s' % literal, 1)
    assert literal in body

    response = client.post("/api/ingest", data=body, content_type="application/json")

    assert response.status_code == 400
    assert response.get_json()["success"] is False
    assert memory_store.read() == []
