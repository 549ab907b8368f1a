"""
调度器 API 测试
"""

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from core.errors import TaskCancelledError
from main import create_app


@pytest.fixture
def client() -> Iterator[TestClient]:
    settings = Settings(
        resource_classes={"svc": {"max_requests": 2, "window_ms": 60_000}},
        tick_interval_seconds=0.01,
        shutdown_grace_seconds=1.0,
        log_file="",
    )
    with TestClient(create_app(settings)) as client:
        yield client


def wait_for_queue_length(client: TestClient, name: str, expected: int) -> None:
    for _ in range(200):
        queues = client.get("/api/scheduler/queues").json()
        if queues[name]["queue_length"] == expected:
            return
        time.sleep(0.01)
    pytest.fail(f"队列 {name} 长度未达到 {expected}")


def test_list_resource_classes(client: TestClient) -> None:
    response = client.get("/api/scheduler/resource-classes")

    assert response.status_code == 200
    assert response.json() == [{"name": "svc", "max_requests": 2, "window_ms": 60_000}]


def test_stats_reflect_scheduled_work(client: TestClient) -> None:
    scheduler = client.app.state.scheduler
    assert scheduler.schedule_threadsafe("svc", lambda: 1).result(timeout=5) == 1

    stats = client.get("/api/scheduler/stats").json()
    assert stats["svc"]["submitted"] == 1
    assert stats["svc"]["succeeded"] == 1
    assert stats["svc"]["success_rate"] == 1.0
    assert stats["svc"]["pending"] == 0
    assert stats["svc"]["executing"] == 0

    queues = client.get("/api/scheduler/queues").json()
    assert queues["svc"]["current_count"] == 1
    assert queues["svc"]["max_count"] == 2
    assert queues["svc"]["window_ms"] == 60_000


def test_status_endpoint(client: TestClient) -> None:
    data = client.get("/api/scheduler/status").json()

    assert data["running"] is True
    assert "svc" in data["queues"]
    assert "timestamp" in data


def test_configure_resource_class(client: TestClient) -> None:
    response = client.put(
        "/api/scheduler/resource-classes/glassnode",
        json={"max_requests": 100, "window_ms": 3_600_000},
    )

    assert response.status_code == 200
    assert response.json() == {"name": "glassnode", "max_requests": 100, "window_ms": 3_600_000}
    assert "glassnode" in client.get("/api/scheduler/queues").json()


def test_configure_rejects_invalid_quota(client: TestClient) -> None:
    response = client.put(
        "/api/scheduler/resource-classes/svc",
        json={"max_requests": 1, "window_ms": 0},
    )

    assert response.status_code == 422


def test_clear_queues_rejects_waiting_work(client: TestClient) -> None:
    client.put("/api/scheduler/resource-classes/svc", json={"max_requests": 0, "window_ms": 60_000})
    scheduler = client.app.state.scheduler
    future = scheduler.schedule_threadsafe("svc", lambda: None, timeout_ms=10_000)
    wait_for_queue_length(client, "svc", 1)

    response = client.post("/api/scheduler/queues/clear")

    assert response.status_code == 200
    assert response.json() == {"cleared": 1}
    assert isinstance(future.exception(timeout=5), TaskCancelledError)
    assert client.get("/api/scheduler/stats").json()["svc"]["cancelled"] == 1
