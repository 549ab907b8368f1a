"""API数据模型."""

from datetime import datetime

from pydantic import BaseModel, Field


class ResourceStatsResponse(BaseModel):
    """资源类别统计响应."""

    submitted: int = Field(description="提交次数")
    succeeded: int = Field(description="成功次数")
    failed: int = Field(description="失败次数(含超时与取消)")
    timed_out: int = Field(description="排队超时次数")
    cancelled: int = Field(description="取消次数")
    pending: int = Field(description="排队或执行中的任务数")
    success_rate: float = Field(ge=0, le=1, description="成功率(0-1)")
    queue_length: int = Field(description="当前队列长度")
    executing: int = Field(description="已准入尚未结束的任务数")


class QueueStatusResponse(BaseModel):
    """队列状态响应."""

    queue_length: int
    current_count: int = Field(description="当前窗口已准入次数")
    max_count: int = Field(description="窗口内最大请求数")
    reset_in_ms: float = Field(description="距离窗口重置(毫秒)")
    window_ms: int = Field(description="窗口长度(毫秒)")
    oldest_task_age_ms: float = Field(description="等待最久的任务已等待时间(毫秒)")


class SchedulerStatusResponse(BaseModel):
    """调度器状态响应."""

    running: bool
    stats: dict[str, ResourceStatsResponse]
    queues: dict[str, QueueStatusResponse]
    timestamp: datetime


class ResourceClassResponse(BaseModel):
    """资源类别配额响应."""

    name: str
    max_requests: int
    window_ms: int


class ResourceClassUpdate(BaseModel):
    """资源类别配额更新请求."""

    max_requests: int = Field(ge=0, description="窗口内最大请求数")
    window_ms: int = Field(gt=0, description="窗口长度(毫秒)")


class ClearQueuesResponse(BaseModel):
    """清空队列响应."""

    cleared: int
