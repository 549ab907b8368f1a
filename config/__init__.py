"""配置管理模块."""

from config.settings import ResourceClassLimit, Settings, get_settings

__all__ = ["ResourceClassLimit", "Settings", "get_settings"]
