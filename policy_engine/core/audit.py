"""
操作审计服务

每次成功的策略创建/更新/删除恰好记录一条审计事件
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from policy_engine.database.base import utcnow
from policy_engine.database.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)


class AuditAction(str, Enum):
    """审计操作类型"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ResourceType:
    """资源类型常量"""
    POLICY = "Policy"


class AuditSink(ABC):
    """审计事件接收端"""

    @abstractmethod
    async def record(
        self,
        actor_id: str,
        action: AuditAction,
        resource_type: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError


async def log_audit(
    db: AsyncSession,
    actor_id: str,
    action: AuditAction,
    resource_type: str,
    resource_id: str,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    记录审计日志

    Args:
        db: 数据库会话
        actor_id: 操作者标识
        action: 操作类型
        resource_type: 资源类型（如 Policy）
        resource_id: 资源 ID
        details: 操作详情（JSON）

    Returns:
        创建的审计日志记录
    """
    audit_log = AuditLog(
        id=str(uuid4()),
        actor_id=actor_id,
        action=action.value,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
        created_at=utcnow(),
    )

    db.add(audit_log)
    await db.commit()

    logger.info(
        "audit_log_created",
        audit_id=audit_log.id,
        actor=actor_id,
        action=action.value,
        resource_type=resource_type,
        resource_id=resource_id,
    )

    return audit_log


class DatabaseAuditSink(AuditSink):
    """写入 audit_logs 表"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor_id: str,
        action: AuditAction,
        resource_type: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        await log_audit(
            self.db,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )
