"""按资源类别排队的优先级队列."""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(eq=False)
class QueuedTask:
    """等待准入的任务."""

    id: str
    resource_class: str
    priority: int  # 1-5, 1最紧急
    enqueued_at: float  # 时钟秒
    deadline: float  # 事件循环时间, 到期触发排队超时
    work: Callable[[], Any]
    future: asyncio.Future[Any]
    timeout_ms: int
    sequence: int = 0  # 入队顺序,由队列分配
    timeout_handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def disarm_timeout(self) -> None:
        """取消超时定时器."""
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()
            self.timeout_handle = None


class TaskPriorityQueue:
    """单个资源类别的任务队列.

    按 (priority, sequence) 排序的二叉堆: 优先级数字越小越先出队,
    同优先级按入队顺序. 不加锁, 由调度器的资源类别锁保护.
    """

    def __init__(self, resource_class: str) -> None:
        self.resource_class = resource_class
        self._heap: list[tuple[int, int, QueuedTask]] = []
        self._entries: dict[str, tuple[int, int, QueuedTask]] = {}
        self._sequence = itertools.count()

    def enqueue(self, task: QueuedTask) -> None:
        """任务入队."""
        task.sequence = next(self._sequence)
        entry = (task.priority, task.sequence, task)
        heapq.heappush(self._heap, entry)
        self._entries[task.id] = entry

    def dequeue_highest(self) -> QueuedTask | None:
        """取出优先级最高的任务,队列为空时返回None."""
        if not self._heap:
            return None
        _, _, task = heapq.heappop(self._heap)
        del self._entries[task.id]
        return task

    def remove_by_id(self, task_id: str) -> bool:
        """移除指定任务.

        Args:
            task_id: 任务ID

        Returns:
            是否移除了任务; 任务已出队或已移除时返回False
        """
        entry = self._entries.pop(task_id, None)
        if entry is None:
            return False
        self._heap.remove(entry)
        heapq.heapify(self._heap)
        return True

    def clear(self) -> list[QueuedTask]:
        """清空队列.

        Returns:
            被移除的任务,按出队顺序
        """
        tasks = [task for _, _, task in sorted(self._heap)]
        self._heap.clear()
        self._entries.clear()
        if tasks:
            logger.debug("清空队列 %s: %d 个任务", self.resource_class, len(tasks))
        return tasks

    def oldest_enqueued_at(self) -> float | None:
        """最早入队任务的入队时间."""
        if not self._heap:
            return None
        return min(task.enqueued_at for _, _, task in self._heap)

    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries
