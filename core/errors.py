"""调度器异常定义.

任务本身(work)抛出的异常不在此列: 调度器原样透传给调用方,不做任何包装.
"""


class SchedulerError(Exception):
    """调度器异常基类."""


class ConfigurationError(SchedulerError):
    """资源类别未配置,或配额参数非法."""

    def __init__(self, resource_class: str, message: str | None = None) -> None:
        self.resource_class = resource_class
        super().__init__(message or f"资源类别未配置: {resource_class}")


class AdmissionTimeoutError(SchedulerError):
    """排队任务在超时前未获得准入."""

    def __init__(self, task_id: str, resource_class: str, timeout_ms: int) -> None:
        self.task_id = task_id
        self.resource_class = resource_class
        self.timeout_ms = timeout_ms
        super().__init__(f"任务 {task_id} ({resource_class}) 排队超时: {timeout_ms}ms")


class TaskCancelledError(SchedulerError):
    """排队任务因队列清空或调度器关闭而被拒绝."""

    def __init__(
        self,
        task_id: str | None,
        resource_class: str,
        reason: str = "队列已被清空",
    ) -> None:
        self.task_id = task_id
        self.resource_class = resource_class
        self.reason = reason
        label = task_id or "<未入队>"
        super().__init__(f"任务 {label} ({resource_class}) 已取消: {reason}")
