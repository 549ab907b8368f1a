"""
调度器状态相关 API
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import (
    ClearQueuesResponse,
    QueueStatusResponse,
    ResourceClassResponse,
    ResourceClassUpdate,
    ResourceStatsResponse,
    SchedulerStatusResponse,
)
from core.errors import ConfigurationError
from core.scheduler import QuotaScheduler
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/scheduler", tags=["调度器"])


def get_scheduler(request: Request) -> QuotaScheduler:
    """从应用状态获取调度器实例"""
    return request.app.state.scheduler


def _stats(scheduler: QuotaScheduler) -> dict[str, ResourceStatsResponse]:
    return {
        name: ResourceStatsResponse(
            submitted=snapshot.submitted,
            succeeded=snapshot.succeeded,
            failed=snapshot.failed,
            timed_out=snapshot.timed_out,
            cancelled=snapshot.cancelled,
            pending=snapshot.pending,
            success_rate=snapshot.success_rate,
            queue_length=snapshot.queue_length,
            executing=snapshot.executing,
        )
        for name, snapshot in scheduler.get_stats().items()
    }


def _queues(scheduler: QuotaScheduler) -> dict[str, QueueStatusResponse]:
    return {name: QueueStatusResponse(**status._asdict()) for name, status in scheduler.get_queue_status().items()}


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    """获取调度器统计与队列状态"""
    return SchedulerStatusResponse(
        running=scheduler.running,
        stats=_stats(scheduler),
        queues=_queues(scheduler),
        timestamp=datetime.now(),
    )


@router.get("/stats", response_model=dict[str, ResourceStatsResponse])
async def get_stats(
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> dict[str, ResourceStatsResponse]:
    """获取各资源类别的统计"""
    return _stats(scheduler)


@router.get("/queues", response_model=dict[str, QueueStatusResponse])
async def get_queue_status(
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> dict[str, QueueStatusResponse]:
    """获取各资源类别的队列状态"""
    return _queues(scheduler)


@router.get("/resource-classes", response_model=list[ResourceClassResponse])
async def list_resource_classes(
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> list[ResourceClassResponse]:
    """获取已配置的资源类别"""
    return [ResourceClassResponse(**config._asdict()) for config in scheduler.registry.all()]


@router.put("/resource-classes/{name}", response_model=ResourceClassResponse)
async def configure_resource_class(
    name: str,
    update: ResourceClassUpdate,
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> ResourceClassResponse:
    """配置或更新资源类别配额"""
    try:
        config = scheduler.configure(name, update.max_requests, update.window_ms)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return ResourceClassResponse(**config._asdict())


@router.post("/queues/clear", response_model=ClearQueuesResponse)
async def clear_queues(
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> ClearQueuesResponse:
    """拒绝所有排队任务"""
    cleared = scheduler.clear_queues()
    logger.info("通过 API 清空队列: %d 个任务", cleared)
    return ClearQueuesResponse(cleared=cleared)
