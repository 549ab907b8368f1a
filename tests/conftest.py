"""
测试公共夹具
"""

from collections.abc import AsyncIterator

import pytest

from config.settings import Settings
from core.scheduler import QuotaScheduler
from tests.helpers import FakeClock


@pytest.fixture
def settings() -> Settings:
    return Settings(
        resource_classes={},
        tick_interval_seconds=0.01,
        shutdown_grace_seconds=1.0,
        log_file="",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def scheduler(settings: Settings, clock: FakeClock) -> AsyncIterator[QuotaScheduler]:
    scheduler = QuotaScheduler(settings, clock=clock)
    yield scheduler
    # 首次 schedule 会启动处理循环, 测试结束时统一关闭
    await scheduler.shutdown(timeout=0.1)
