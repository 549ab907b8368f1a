"""日志管理模块."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from pythonjsonlogger import jsonlogger

from config.settings import Settings, get_settings

# 调度器日志通过 extra 附带的上下文字段
CONTEXT_FIELDS = ("resource_class", "task_id")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """自定义JSON日志格式化器."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """添加自定义字段到日志记录."""
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
            else:
                log_record.pop(field, None)


class ContextConsoleFormatter(logging.Formatter):
    """控制台格式化器, 在消息后追加调度上下文."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        if context:
            message = f"{message} [{' '.join(context)}]"
        return message


def setup_logging(settings: Settings | None = None) -> None:
    """配置日志系统.

    Args:
        settings: 系统配置,默认使用全局配置
    """
    if settings is None:
        settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers.clear()

    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.log_level)
    console_handler.setFormatter(
        ContextConsoleFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ),
    )
    root_logger.addHandler(console_handler)

    # 文件处理器 - JSON格式, 未配置日志文件时跳过
    log_path = settings.get_log_path()
    if log_path is not None:
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(settings.log_level)
        file_handler.setFormatter(
            CustomJsonFormatter("%(level)s %(logger)s %(message)s", timestamp=True),
        )
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """获取指定名称的日志记录器.

    Args:
        name: 日志记录器名称,通常使用 __name__

    Returns:
        日志记录器实例
    """
    return logging.getLogger(name)
