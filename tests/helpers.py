"""
测试辅助工具
"""

import asyncio


class FakeClock:
    """可手动推进的时钟(秒)"""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def settle(rounds: int = 5) -> None:
    """让出事件循环若干轮, 使已创建的协程推进到下一个挂起点"""
    for _ in range(rounds):
        await asyncio.sleep(0)
