"""任务执行器."""

import asyncio
import inspect
from collections import Counter
from collections.abc import Callable
from typing import Any

from core.priority_queue import QueuedTask
from core.stats import StatsCollector
from utils.logger import get_logger

logger = get_logger(__name__)


class TaskExecutor:
    """执行已准入的任务并记录结果.

    work 可以是同步函数,也可以返回 awaitable. 同步函数直接在事件循环中调用,
    阻塞型调用需要调用方自行包装(例如 asyncio.to_thread).
    """

    def __init__(self, stats: StatsCollector) -> None:
        self.stats = stats
        # 各资源类别正在执行的任务数(快速通道与排队任务)
        self._active: Counter[str] = Counter()

    def reserve(self, resource_class: str) -> None:
        """排队任务准入时占用执行名额, 由 run_queued 释放."""
        self._active[resource_class] += 1

    def active_counts(self) -> dict[str, int]:
        """各资源类别已准入且未结束的任务数."""
        return {name: count for name, count in self._active.items() if count}

    async def execute(
        self,
        resource_class: str,
        work: Callable[[], Any],
        priority: int,
        task_id: str | None = None,
        reserved: bool = False,
    ) -> Any:
        """执行任务.

        Args:
            resource_class: 资源类别
            work: 任务函数
            priority: 优先级
            task_id: 排队任务ID,快速通道为None
            reserved: 执行名额是否已在准入时占用

        Returns:
            work 的返回值

        Raises:
            work 抛出的原始异常
        """
        logger.debug(
            "执行 %s 任务: priority=%d, task_id=%s",
            resource_class,
            priority,
            task_id or "-",
            extra={"resource_class": resource_class, "task_id": task_id},
        )
        if not reserved:
            self._active[resource_class] += 1
        try:
            result = work()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            self.stats.record_cancelled(resource_class)
            raise
        except Exception as e:
            self.stats.record_failed(resource_class)
            logger.warning(
                "%s 任务执行失败: %s: %s",
                resource_class,
                type(e).__name__,
                e,
                extra={"resource_class": resource_class, "task_id": task_id},
            )
            raise
        finally:
            self._active[resource_class] -= 1

        self.stats.record_succeeded(resource_class)
        return result

    async def run_queued(self, task: QueuedTask) -> None:
        """执行排队任务并结算其 future, 只结算一次."""
        try:
            result = await self.execute(task.resource_class, task.work, task.priority, task.id, reserved=True)
        except asyncio.CancelledError:
            if not task.future.done():
                task.future.cancel()
            raise
        except Exception as e:
            if not task.future.done():
                task.future.set_exception(e)
            return

        if not task.future.done():
            task.future.set_result(result)
