"""
优先级队列测试
"""

import asyncio

import pytest

from core.priority_queue import QueuedTask, TaskPriorityQueue


def make_task(task_id: str, priority: int, enqueued_at: float = 0.0) -> QueuedTask:
    loop = asyncio.new_event_loop()
    try:
        future = loop.create_future()
    finally:
        loop.close()
    return QueuedTask(
        id=task_id,
        resource_class="svc",
        priority=priority,
        enqueued_at=enqueued_at,
        deadline=enqueued_at + 30,
        work=lambda: None,
        future=future,
        timeout_ms=30_000,
    )


@pytest.fixture
def queue() -> TaskPriorityQueue:
    return TaskPriorityQueue("svc")


def drain_ids(queue: TaskPriorityQueue) -> list[str]:
    ids = []
    while (task := queue.dequeue_highest()) is not None:
        ids.append(task.id)
    return ids


def test_orders_by_priority_then_arrival(queue: TaskPriorityQueue) -> None:
    queue.enqueue(make_task("a", 3))
    queue.enqueue(make_task("b", 1))
    queue.enqueue(make_task("c", 3))
    queue.enqueue(make_task("d", 5))
    queue.enqueue(make_task("e", 1))

    assert drain_ids(queue) == ["b", "e", "a", "c", "d"]


def test_equal_priority_is_fifo(queue: TaskPriorityQueue) -> None:
    for i in range(20):
        queue.enqueue(make_task(f"t{i}", 2))

    assert drain_ids(queue) == [f"t{i}" for i in range(20)]


def test_dequeue_empty_returns_none(queue: TaskPriorityQueue) -> None:
    assert queue.dequeue_highest() is None
    assert queue.size() == 0


def test_remove_by_id_is_idempotent(queue: TaskPriorityQueue) -> None:
    queue.enqueue(make_task("a", 2))
    queue.enqueue(make_task("b", 1))
    queue.enqueue(make_task("c", 3))

    assert queue.remove_by_id("b")
    assert not queue.remove_by_id("b")
    assert "b" not in queue
    assert len(queue) == 2
    assert drain_ids(queue) == ["a", "c"]


def test_remove_after_dequeue_is_noop(queue: TaskPriorityQueue) -> None:
    queue.enqueue(make_task("a", 1))
    task = queue.dequeue_highest()

    assert task is not None
    assert not queue.remove_by_id(task.id)


def test_clear_returns_tasks_in_dequeue_order(queue: TaskPriorityQueue) -> None:
    queue.enqueue(make_task("a", 4))
    queue.enqueue(make_task("b", 2))
    queue.enqueue(make_task("c", 4))

    assert [task.id for task in queue.clear()] == ["b", "a", "c"]
    assert len(queue) == 0


def test_oldest_enqueued_at(queue: TaskPriorityQueue) -> None:
    assert queue.oldest_enqueued_at() is None
    queue.enqueue(make_task("late", 1, enqueued_at=5.0))
    queue.enqueue(make_task("early", 5, enqueued_at=2.0))

    assert queue.oldest_enqueued_at() == 2.0
