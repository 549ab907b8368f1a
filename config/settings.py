"""系统配置管理."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResourceClassLimit(BaseModel):
    """资源类别配额."""

    max_requests: int = Field(ge=0, description="窗口内最大请求数")
    window_ms: int = Field(gt=0, description="窗口长度(毫秒)")


def _default_resource_classes() -> dict[str, ResourceClassLimit]:
    return {
        "coingecko": ResourceClassLimit(max_requests=2, window_ms=60_000),
        "glassnode": ResourceClassLimit(max_requests=100, window_ms=3_600_000),
        "alternative": ResourceClassLimit(max_requests=60, window_ms=3_600_000),
        "ai": ResourceClassLimit(max_requests=100, window_ms=3_600_000),
        "internal": ResourceClassLimit(max_requests=1000, window_ms=60_000),
    }


class Settings(BaseSettings):
    """系统配置类."""

    model_config = SettingsConfigDict(
        env_prefix="QUOTA_SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # 服务器配置
    server_host: str = Field(default="0.0.0.0", description="服务监听地址")  # noqa: S104
    server_port: int = Field(default=8080, description="服务监听端口")

    # 调度器配置
    tick_interval_seconds: float = Field(default=1.0, gt=0, description="队列处理间隔(秒)")
    default_priority: int = Field(default=3, ge=1, le=5, description="默认任务优先级(1最高)")
    default_timeout_ms: int = Field(default=30_000, ge=0, description="默认排队超时(毫秒)")
    shutdown_grace_seconds: float = Field(
        default=5.0,
        ge=0,
        description="关闭时等待执行中任务的时间(秒)",
    )

    # 资源类别配额
    resource_classes: dict[str, ResourceClassLimit] = Field(
        default_factory=_default_resource_classes,
        description="资源类别配额表",
    )

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    log_file: str = Field(default="logs/quota_scheduler.log", description="日志文件路径,为空则不写文件")
    log_max_bytes: int = Field(default=10485760, description="日志文件最大大小(字节)")
    log_backup_count: int = Field(default=5, description="日志备份数量")

    def get_log_path(self) -> Path | None:
        """获取日志文件的绝对路径."""
        if not self.log_file:
            return None
        log_path = Path(self.log_file)
        if not log_path.is_absolute():
            project_root = Path(__file__).parent.parent
            log_path = project_root / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return log_path


@lru_cache
def get_settings() -> Settings:
    """获取配置单例."""
    return Settings()
