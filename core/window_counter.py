"""固定窗口请求计数器."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from core.registry import ResourceClassConfig, ResourceClassRegistry
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class WindowState:
    """单个资源类别的当前窗口."""

    window_key: int  # floor(now_ms / window_ms)
    count: int
    reset_at_ms: float


class WindowCounter:
    """按资源类别统计固定窗口内的准入次数.

    窗口以 floor(now / window_ms) 为键,跨入新窗口时整体替换状态,
    不与旧窗口合并. 相邻两个窗口各自允许完整配额,
    因此窗口边界处可能出现最多约 2 倍 max_requests 的突发.

    本类不加锁, 调用方需保证同一资源类别的 can_admit 与 record
    在同一把锁内完成.
    """

    def __init__(
        self,
        registry: ResourceClassRegistry,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """初始化计数器.

        Args:
            registry: 资源类别注册表
            clock: 时钟函数,返回秒
        """
        self.registry = registry
        self._clock = clock
        self._states: dict[str, WindowState] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _current_state(self, resource_class: str) -> tuple[ResourceClassConfig, WindowState]:
        config = self.registry.get(resource_class)
        window_key = int(self._now_ms() // config.window_ms)

        state = self._states.get(resource_class)
        if state is None or state.window_key != window_key:
            if state is not None:
                logger.debug(
                    "窗口轮换: %s, key %d -> %d, 上一窗口准入 %d 次",
                    resource_class,
                    state.window_key,
                    window_key,
                    state.count,
                )
            state = WindowState(
                window_key=window_key,
                count=0,
                reset_at_ms=float((window_key + 1) * config.window_ms),
            )
            self._states[resource_class] = state
        return config, state

    def can_admit(self, resource_class: str) -> bool:
        """当前窗口是否还能再准入一次."""
        config, state = self._current_state(resource_class)
        return state.count < config.max_requests

    def record(self, resource_class: str) -> None:
        """记录一次准入."""
        _, state = self._current_state(resource_class)
        state.count += 1

    def try_admit(self, resource_class: str) -> bool:
        """检查并记录一次准入.

        Returns:
            是否准入
        """
        config, state = self._current_state(resource_class)
        if state.count >= config.max_requests:
            return False
        state.count += 1
        return True

    def reset(self, resource_class: str) -> None:
        """丢弃窗口状态, 下次检查时重新创建."""
        self._states.pop(resource_class, None)

    def peek(self, resource_class: str) -> tuple[int, float]:
        """只读查看当前窗口.

        不创建也不轮换窗口状态.

        Returns:
            (当前窗口准入次数, 距离窗口重置的毫秒数)
        """
        config = self.registry.get(resource_class)
        now_ms = self._now_ms()
        window_key = int(now_ms // config.window_ms)
        reset_in_ms = max(0.0, (window_key + 1) * config.window_ms - now_ms)

        state = self._states.get(resource_class)
        if state is None or state.window_key != window_key:
            return 0, reset_in_ms
        return state.count, reset_in_ms
