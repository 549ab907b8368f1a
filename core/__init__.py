"""核心模块."""

from core.errors import AdmissionTimeoutError, ConfigurationError, SchedulerError, TaskCancelledError
from core.executor import TaskExecutor
from core.priority_queue import QueuedTask, TaskPriorityQueue
from core.registry import ResourceClassConfig, ResourceClassRegistry
from core.scheduler import QueueStatus, QuotaScheduler, create_scheduler
from core.stats import StatsCollector, StatsSnapshot
from core.window_counter import WindowCounter, WindowState

__all__ = [
    "AdmissionTimeoutError",
    "ConfigurationError",
    "QueueStatus",
    "QueuedTask",
    "QuotaScheduler",
    "ResourceClassConfig",
    "ResourceClassRegistry",
    "SchedulerError",
    "StatsCollector",
    "StatsSnapshot",
    "TaskCancelledError",
    "TaskExecutor",
    "TaskPriorityQueue",
    "WindowCounter",
    "WindowState",
    "create_scheduler",
]
