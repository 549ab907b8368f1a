"""
API 路由模块
"""

from . import scheduler_api

__all__ = ["scheduler_api"]
