"""配额调度模块."""

import asyncio
import concurrent.futures
import threading
import time
import uuid
from collections.abc import Callable
from typing import Any, NamedTuple

from config.settings import Settings, get_settings
from core.errors import AdmissionTimeoutError, ConfigurationError, TaskCancelledError
from core.executor import TaskExecutor
from core.priority_queue import QueuedTask, TaskPriorityQueue
from core.registry import ResourceClassConfig, ResourceClassRegistry
from core.stats import StatsCollector, StatsSnapshot
from core.window_counter import WindowCounter
from utils.logger import get_logger

logger = get_logger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 5


class QueueStatus(NamedTuple):
    """单个资源类别的队列状态."""

    queue_length: int
    current_count: int  # 当前窗口已准入次数
    max_count: int
    reset_in_ms: float
    window_ms: int
    oldest_task_age_ms: float  # 队列中等待最久的任务已等待时间


class QuotaScheduler:
    """配额调度器.

    核心调度逻辑:
    1. 提交时若窗口配额充足且队列为空,直接执行(快速通道)
    2. 否则按 (优先级, 入队顺序) 排队,并设置排队超时
    3. 后台循环周期性检查各队列,配额空出时按顺序准入; 未显式 start 时首次提交自动启动
    4. 超时与准入竞争同一任务时,先从队列移除者生效,任务只结算一次

    准入判断和队列操作在资源类别锁内完成, 任务执行在锁外.
    调度器绑定启动时的事件循环, 其他事件循环上的调用转交到该循环执行.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """初始化调度器.

        Args:
            settings: 系统配置,默认使用全局配置
            clock: 时钟函数(秒),用于窗口计算与等待时长统计
        """
        self.settings = settings or get_settings()
        self._clock = clock

        # 初始化组件
        self.registry = ResourceClassRegistry()
        self.window_counter = WindowCounter(self.registry, clock=clock)
        self.stats = StatsCollector()
        self.executor = TaskExecutor(self.stats)

        # 每个资源类别一把锁,保护窗口状态和队列
        self._queues: dict[str, TaskPriorityQueue] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

        # 已准入、执行中的排队任务
        self._inflight: set[asyncio.Task[None]] = set()

        # 运行状态
        self._running = False
        self._closed = False
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        logger.info("初始化配额调度器")

    async def __aenter__(self) -> "QuotaScheduler":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    def configure(self, resource_class: str, max_requests: int, window_ms: int) -> ResourceClassConfig:
        """配置资源类别配额.

        重复配置会替换配额并丢弃当前窗口状态, 已排队任务保留.

        Args:
            resource_class: 资源类别名称
            max_requests: 窗口内最大请求数
            window_ms: 窗口长度(毫秒)

        Returns:
            新的配额配置
        """
        with self._registry_lock:
            lock = self._locks.setdefault(resource_class, threading.Lock())

        with lock:
            config = self.registry.set(resource_class, max_requests, window_ms)
            self.window_counter.reset(resource_class)
            with self._registry_lock:
                self._queues.setdefault(resource_class, TaskPriorityQueue(resource_class))
        return config

    def _resource(self, resource_class: str) -> tuple[threading.Lock, TaskPriorityQueue]:
        with self._registry_lock:
            queue = self._queues.get(resource_class)
            lock = self._locks.get(resource_class)
        if queue is None or lock is None:
            raise ConfigurationError(resource_class)
        return lock, queue

    async def schedule(
        self,
        resource_class: str,
        work: Callable[[], Any],
        priority: int | None = None,
        timeout_ms: int | None = None,
    ) -> Any:
        """提交任务.

        Args:
            resource_class: 资源类别
            work: 任务函数,同步函数或返回 awaitable
            priority: 优先级(1-5, 1最紧急),默认取配置
            timeout_ms: 排队超时(毫秒),默认取配置

        Returns:
            work 的返回值

        Raises:
            ConfigurationError: 资源类别未配置
            AdmissionTimeoutError: 排队超时
            TaskCancelledError: 队列被清空或调度器已关闭
            TypeError: 优先级不是整数
            ValueError: 优先级或超时参数非法
            work 抛出的原始异常
        """
        if priority is None:
            priority = self.settings.default_priority
        if timeout_ms is None:
            timeout_ms = self.settings.default_timeout_ms
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise TypeError(f"priority 必须是整数: {priority!r}")
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValueError(f"priority 必须在 {MIN_PRIORITY}-{MAX_PRIORITY} 之间: {priority}")
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms 不能为负数: {timeout_ms}")

        lock, queue = self._resource(resource_class)
        if self._closed:
            raise TaskCancelledError(None, resource_class, "调度器已关闭")

        loop = asyncio.get_running_loop()
        if self._loop is None or (loop is self._loop and not self._running):
            # 处理循环未运行时在当前事件循环上启动
            await self.start()
        elif loop is not self._loop:
            # 定时器与 future 只能在调度器所在的事件循环上操作
            return await asyncio.wrap_future(
                asyncio.run_coroutine_threadsafe(
                    self.schedule(resource_class, work, priority, timeout_ms),
                    self._loop,
                )
            )

        self.stats.record_submitted(resource_class)

        task: QueuedTask | None = None
        queue_length = 0
        with lock:
            queue_was_empty = len(queue) == 0
            if not (queue_was_empty and self.window_counter.try_admit(resource_class)):
                now = self._clock()
                task = QueuedTask(
                    id=uuid.uuid4().hex,
                    resource_class=resource_class,
                    priority=priority,
                    enqueued_at=now,
                    deadline=loop.time() + timeout_ms / 1000,
                    work=work,
                    future=loop.create_future(),
                    timeout_ms=timeout_ms,
                )
                queue.enqueue(task)
                task.timeout_handle = loop.call_at(task.deadline, self._expire, task)
                queue_length = len(queue)

        if task is None:
            logger.debug("快速通道准入: %s, priority=%d", resource_class, priority)
            return await self.executor.execute(resource_class, work, priority)

        logger.info(
            "任务排队: %s, priority=%d, timeout=%dms, 队列长度=%d",
            resource_class,
            priority,
            timeout_ms,
            queue_length,
            extra={"resource_class": resource_class, "task_id": task.id},
        )

        # 队列非空时配额可能已在两次处理之间空出,立即按队列顺序准入
        if not queue_was_empty:
            self._dispatch_all(self._admit_queued(resource_class))

        try:
            return await task.future
        except asyncio.CancelledError:
            self._withdraw(task)
            raise

    def schedule_threadsafe(
        self,
        resource_class: str,
        work: Callable[[], Any],
        priority: int | None = None,
        timeout_ms: int | None = None,
    ) -> concurrent.futures.Future[Any]:
        """从其他线程提交任务.

        Returns:
            concurrent.futures.Future
        """
        if self._loop is None:
            raise RuntimeError("调度器未启动")
        return asyncio.run_coroutine_threadsafe(
            self.schedule(resource_class, work, priority, timeout_ms),
            self._loop,
        )

    def _admit_queued(self, resource_class: str) -> list[QueuedTask]:
        """在配额允许范围内按顺序取出排队任务."""
        lock, queue = self._resource(resource_class)
        admitted: list[QueuedTask] = []
        with lock:
            while len(queue) > 0 and self.window_counter.can_admit(resource_class):
                head = queue.dequeue_highest()
                if head is None:
                    break
                head.disarm_timeout()
                if head.future.done():
                    # 调用方已放弃等待, 不占用配额
                    self.stats.record_cancelled(resource_class)
                    continue
                self.window_counter.record(resource_class)
                admitted.append(head)
        return admitted

    def _dispatch_all(self, tasks: list[QueuedTask]) -> None:
        for task in tasks:
            wait_ms = (self._clock() - task.enqueued_at) * 1000
            logger.debug(
                "排队任务准入: %s, priority=%d, 等待 %.0fms",
                task.resource_class,
                task.priority,
                wait_ms,
                extra={"resource_class": task.resource_class, "task_id": task.id},
            )
            self.executor.reserve(task.resource_class)
            execution = asyncio.create_task(self.executor.run_queued(task), name=f"quota-task-{task.id}")
            self._inflight.add(execution)
            execution.add_done_callback(self._inflight.discard)

    def _expire(self, task: QueuedTask) -> None:
        """排队超时回调."""
        lock, queue = self._resource(task.resource_class)
        with lock:
            removed = queue.remove_by_id(task.id)
        if not removed:
            return

        task.timeout_handle = None
        self.stats.record_timed_out(task.resource_class)
        if not task.future.done():
            task.future.set_exception(AdmissionTimeoutError(task.id, task.resource_class, task.timeout_ms))
        logger.warning(
            "任务排队超时: %s, priority=%d, timeout=%dms",
            task.resource_class,
            task.priority,
            task.timeout_ms,
            extra={"resource_class": task.resource_class, "task_id": task.id},
        )

    def _withdraw(self, task: QueuedTask) -> None:
        """调用方取消等待时撤回仍在排队的任务."""
        lock, queue = self._resource(task.resource_class)
        with lock:
            removed = queue.remove_by_id(task.id)
        if removed:
            task.disarm_timeout()
            self.stats.record_cancelled(task.resource_class)
            logger.info(
                "调用方取消排队任务: %s",
                task.resource_class,
                extra={"resource_class": task.resource_class, "task_id": task.id},
            )

    async def tick(self) -> int:
        """处理一次所有队列.

        Returns:
            本次准入的任务数
        """
        with self._registry_lock:
            resource_classes = list(self._queues)

        total = 0
        for resource_class in resource_classes:
            admitted = self._admit_queued(resource_class)
            if admitted:
                self._dispatch_all(admitted)
                total += len(admitted)
        return total

    async def start(self) -> None:
        """启动调度器."""
        if self._running:
            logger.warning("调度器已在运行")
            return
        if self._closed:
            raise RuntimeError("调度器已关闭,不能重新启动")

        self._running = True
        self._loop = asyncio.get_running_loop()

        # 启动队列处理循环
        self._task = asyncio.create_task(self._tick_loop(), name="quota-scheduler-tick")
        logger.info("调度器已启动, 处理间隔 %.2fs", self.settings.tick_interval_seconds)

    async def stop(self) -> None:
        """停止队列处理循环."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("调度器已停止")

    async def _tick_loop(self) -> None:
        """队列处理循环."""
        logger.info("开始队列处理循环")
        interval = self.settings.tick_interval_seconds

        while self._running:
            try:
                await self.tick()
                await asyncio.sleep(interval)

            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("队列处理循环出错")
                await asyncio.sleep(interval)

        logger.info("队列处理循环结束")

    def clear_queues(self, reason: str = "队列已被清空") -> int:
        """拒绝所有排队任务, 不停止处理循环.

        Args:
            reason: 取消原因

        Returns:
            被拒绝的任务数
        """
        with self._registry_lock:
            resource_classes = list(self._queues)

        cleared = 0
        for resource_class in resource_classes:
            lock, queue = self._resource(resource_class)
            with lock:
                tasks = queue.clear()
                for task in tasks:
                    task.disarm_timeout()

            for task in tasks:
                self.stats.record_cancelled(resource_class)
                if not task.future.done():
                    task.future.set_exception(TaskCancelledError(task.id, resource_class, reason))
            cleared += len(tasks)

        logger.info("已清空所有队列: %d 个任务被拒绝 (%s)", cleared, reason)
        return cleared

    async def drain(self) -> int:
        """停止处理循环并拒绝所有排队任务.

        已准入、执行中的任务不受影响. 之后的 schedule 调用抛出 TaskCancelledError.

        Returns:
            被拒绝的任务数
        """
        await self.stop()
        self._closed = True
        return self.clear_queues("调度器已关闭")

    async def shutdown(self, timeout: float | None = None) -> None:
        """关闭调度器并等待执行中的任务结束.

        Args:
            timeout: 等待执行中任务的最长时间(秒),默认取配置
        """
        await self.drain()

        if timeout is None:
            timeout = self.settings.shutdown_grace_seconds
        pending = set(self._inflight)
        if pending:
            logger.info("等待 %d 个执行中的任务结束", len(pending))
            _, still_running = await asyncio.wait(pending, timeout=timeout)
            if still_running:
                logger.warning("%d 个任务在关闭等待期内未结束", len(still_running))

        logger.info("调度器已关闭")

    def get_stats(self) -> dict[str, StatsSnapshot]:
        """获取各资源类别的统计快照."""
        return self.stats.snapshot(self._queue_lengths(), self.executor.active_counts())

    def _queue_lengths(self) -> dict[str, int]:
        with self._registry_lock:
            queues = list(self._queues.items())
        return {name: len(queue) for name, queue in queues}

    def get_queue_status(self) -> dict[str, QueueStatus]:
        """获取各资源类别的队列状态."""
        status: dict[str, QueueStatus] = {}
        for config in self.registry.all():
            lock, queue = self._resource(config.name)
            with lock:
                queue_length = len(queue)
                oldest = queue.oldest_enqueued_at()
                current_count, reset_in_ms = self.window_counter.peek(config.name)

            oldest_age_ms = (self._clock() - oldest) * 1000 if oldest is not None else 0.0
            status[config.name] = QueueStatus(
                queue_length=queue_length,
                current_count=current_count,
                max_count=config.max_requests,
                reset_in_ms=reset_in_ms,
                window_ms=config.window_ms,
                oldest_task_age_ms=max(0.0, oldest_age_ms),
            )
        return status


def create_scheduler(
    settings: Settings | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> QuotaScheduler:
    """创建调度器并配置所有资源类别.

    处理循环在 start 或首次 schedule 时启动.

    Args:
        settings: 系统配置,默认使用全局配置
        clock: 时钟函数(秒)

    Returns:
        已配置的调度器
    """
    settings = settings or get_settings()
    scheduler = QuotaScheduler(settings, clock=clock)
    for name, limit in settings.resource_classes.items():
        scheduler.configure(name, limit.max_requests, limit.window_ms)
    return scheduler
