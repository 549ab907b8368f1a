"""调度统计."""

import threading
from dataclasses import dataclass
from typing import NamedTuple


@dataclass
class _Counters:
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0  # 同时计入 failed
    cancelled: int = 0  # 同时计入 failed


class StatsSnapshot(NamedTuple):
    """单个资源类别的统计快照."""

    resource_class: str
    submitted: int
    succeeded: int
    failed: int
    timed_out: int
    cancelled: int
    pending: int  # submitted - succeeded - failed, 即 queue_length + executing
    success_rate: float  # 0-1
    queue_length: int
    executing: int  # 已准入尚未结束


class StatsCollector:
    """按资源类别统计提交,成功与失败次数.

    超时和取消的任务同样计入 failed, 保证任意时刻
    submitted == succeeded + failed + pending.
    """

    def __init__(self) -> None:
        self._counters: dict[str, _Counters] = {}
        self._lock = threading.Lock()

    def _get(self, resource_class: str) -> _Counters:
        counters = self._counters.get(resource_class)
        if counters is None:
            counters = self._counters[resource_class] = _Counters()
        return counters

    def record_submitted(self, resource_class: str) -> None:
        with self._lock:
            self._get(resource_class).submitted += 1

    def record_succeeded(self, resource_class: str) -> None:
        with self._lock:
            self._get(resource_class).succeeded += 1

    def record_failed(self, resource_class: str) -> None:
        with self._lock:
            self._get(resource_class).failed += 1

    def record_timed_out(self, resource_class: str) -> None:
        with self._lock:
            counters = self._get(resource_class)
            counters.timed_out += 1
            counters.failed += 1

    def record_cancelled(self, resource_class: str) -> None:
        with self._lock:
            counters = self._get(resource_class)
            counters.cancelled += 1
            counters.failed += 1

    def snapshot(
        self,
        queue_lengths: dict[str, int] | None = None,
        executing: dict[str, int] | None = None,
    ) -> dict[str, StatsSnapshot]:
        """获取统计快照.

        Args:
            queue_lengths: 各资源类别当前队列长度
            executing: 各资源类别已准入尚未结束的任务数

        Returns:
            资源类别 -> 统计快照
        """
        queue_lengths = queue_lengths or {}
        executing = executing or {}
        with self._lock:
            items = [(name, _Counters(**vars(c))) for name, c in self._counters.items()]

        result: dict[str, StatsSnapshot] = {}
        for name, c in items:
            result[name] = StatsSnapshot(
                resource_class=name,
                submitted=c.submitted,
                succeeded=c.succeeded,
                failed=c.failed,
                timed_out=c.timed_out,
                cancelled=c.cancelled,
                pending=c.submitted - c.succeeded - c.failed,
                success_rate=c.succeeded / c.submitted if c.submitted else 0.0,
                queue_length=queue_lengths.get(name, 0),
                executing=executing.get(name, 0),
            )
        return result
