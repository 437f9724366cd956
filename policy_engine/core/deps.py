"""
通用依赖

提供数据库会话、策略服务与操作者标识的依赖注入
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from policy_engine.core.audit import DatabaseAuditSink
from policy_engine.core.config import settings
from policy_engine.core.policy_repository import SqlAlchemyPolicyRepository
from policy_engine.core.policy_service import NameReservation, PolicyService
from policy_engine.database.engine import get_db


async def get_policy_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PolicyService:
    """依赖注入：获取 PolicyService"""
    return PolicyService(
        repository=SqlAlchemyPolicyRepository(db),
        audit=DatabaseAuditSink(db),
        name_reservation=NameReservation(settings.POLICY_NAME_RESERVATION),
    )


async def get_actor_id(
    x_actor_id: Annotated[Optional[str], Header(alias="X-Actor-ID")] = None,
) -> str:
    """
    从请求头获取操作者标识

    鉴权由外层网关负责，这里只透传
    """
    return x_actor_id or settings.DEFAULT_ACTOR_ID


# 类型别名
PolicySvc = Annotated[PolicyService, Depends(get_policy_service)]
ActorId = Annotated[str, Depends(get_actor_id)]
