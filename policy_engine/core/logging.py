"""
结构化日志

标准 logging 负责输出，structlog 负责结构化：
- development: 控制台彩色输出
- LOG_FORMAT=json: 单行 JSON，便于采集到 ELK/Loki
"""

import logging
import sys
from typing import Any

import structlog

from policy_engine.core.config import settings


def _add_service_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """附加服务级上下文"""
    event_dict["service"] = "policy-engine"
    event_dict["environment"] = settings.ENV
    return event_dict


def setup_logging() -> None:
    """初始化日志配置（应用启动时调用一次）"""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # 数据库驱动日志过于嘈杂
    for noisy_logger in ["sqlalchemy.engine", "asyncpg"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_service_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志记录器"""
    return structlog.get_logger(name or __name__)
