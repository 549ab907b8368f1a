"""
FastAPI 主应用 - 配额调度器

功能:
1. 按配置创建配额调度器并启动队列处理循环
2. 暴露调度统计与队列状态 API
3. 关闭时拒绝排队任务并等待执行中的任务结束

使用方法:
    python main.py
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api import scheduler_api
from config.settings import Settings, get_settings
from core.scheduler import create_scheduler
from utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """创建 FastAPI 应用.

    Args:
        settings: 系统配置,默认使用全局配置

    Returns:
        FastAPI 应用
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """应用生命周期管理"""
        logger.info("应用启动中...")

        scheduler = create_scheduler(settings)
        await scheduler.start()
        app.state.scheduler = scheduler
        logger.info("已配置资源类别: %s", ", ".join(scheduler.registry.names()) or "无")

        yield

        logger.info("应用关闭中...")
        await scheduler.shutdown()
        logger.info("应用已关闭")

    app = FastAPI(
        title="配额调度器",
        description="按资源类别限流的优先级任务调度服务",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(scheduler_api.router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port)
