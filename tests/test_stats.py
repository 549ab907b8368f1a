"""
调度统计测试
"""

from core.stats import StatsCollector


def test_empty_snapshot() -> None:
    assert StatsCollector().snapshot() == {}


def test_success_rate_and_pending() -> None:
    stats = StatsCollector()
    for _ in range(4):
        stats.record_submitted("svc")
    stats.record_succeeded("svc")
    stats.record_failed("svc")

    snapshot = stats.snapshot({"svc": 1})["svc"]
    assert snapshot.submitted == 4
    assert snapshot.pending == 2
    assert snapshot.success_rate == 0.25
    assert snapshot.queue_length == 1


def test_timeouts_and_cancellations_count_as_failed() -> None:
    stats = StatsCollector()
    for _ in range(3):
        stats.record_submitted("svc")
    stats.record_timed_out("svc")
    stats.record_cancelled("svc")

    snapshot = stats.snapshot()["svc"]
    assert snapshot.failed == 2
    assert snapshot.timed_out == 1
    assert snapshot.cancelled == 1
    assert snapshot.submitted == snapshot.succeeded + snapshot.failed + snapshot.pending


def test_success_rate_zero_without_submissions() -> None:
    stats = StatsCollector()
    stats.record_succeeded("odd")

    snapshot = stats.snapshot()["odd"]
    assert snapshot.success_rate == 0.0


def test_pending_matches_queued_plus_executing() -> None:
    stats = StatsCollector()
    for _ in range(5):
        stats.record_submitted("svc")
    stats.record_succeeded("svc")

    snapshot = stats.snapshot({"svc": 3}, {"svc": 1})["svc"]
    assert snapshot.executing == 1
    assert snapshot.pending == snapshot.queue_length + snapshot.executing
