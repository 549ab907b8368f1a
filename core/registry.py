"""资源类别配额注册表."""

from typing import NamedTuple

from core.errors import ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)


class ResourceClassConfig(NamedTuple):
    """资源类别配额."""

    name: str
    max_requests: int  # 每个窗口允许的准入次数
    window_ms: int  # 固定窗口长度(毫秒)


class ResourceClassRegistry:
    """资源类别名称到配额的映射表."""

    def __init__(self) -> None:
        self._configs: dict[str, ResourceClassConfig] = {}

    def set(self, name: str, max_requests: int, window_ms: int) -> ResourceClassConfig:
        """设置(或替换)资源类别配额.

        Args:
            name: 资源类别名称
            max_requests: 窗口内最大请求数
            window_ms: 窗口长度(毫秒)

        Returns:
            新的配额配置

        Raises:
            ConfigurationError: 参数非法
        """
        if not name:
            raise ConfigurationError(name, "资源类别名称不能为空")
        if max_requests < 0:
            raise ConfigurationError(name, f"max_requests 不能为负数: {max_requests}")
        if window_ms <= 0:
            raise ConfigurationError(name, f"window_ms 必须大于0: {window_ms}")

        config = ResourceClassConfig(name=name, max_requests=max_requests, window_ms=window_ms)
        previous = self._configs.get(name)
        self._configs[name] = config

        if previous is None:
            logger.info("注册资源类别: %s, max_requests=%d, window_ms=%d", name, max_requests, window_ms)
        else:
            logger.info(
                "更新资源类别: %s, max_requests: %d -> %d, window_ms: %d -> %d",
                name,
                previous.max_requests,
                max_requests,
                previous.window_ms,
                window_ms,
            )
        return config

    def get(self, name: str) -> ResourceClassConfig:
        """获取资源类别配额,未配置时抛出 ConfigurationError."""
        try:
            return self._configs[name]
        except KeyError:
            raise ConfigurationError(name) from None

    def names(self) -> list[str]:
        return list(self._configs)

    def all(self) -> list[ResourceClassConfig]:
        return list(self._configs.values())

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __len__(self) -> int:
        return len(self._configs)
