"""
策略仓储

版本管理依赖的持久化协作方。引擎自身不加锁，
原子性与同一策略的写串行化由这里保证：
- unit_of_work(): 开始 / 执行 N 次写入 / 整体提交或回滚
- find_by_id(for_update=True): 行级锁
- 部分唯一索引兜底活跃名称唯一与单一 active 版本
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from policy_engine.core.errors import ConflictError
from policy_engine.database.models.policy import Policy, PolicyTemplate, PolicyVersion

logger = structlog.get_logger(__name__)

ACTIVE_NAME_INDEX = "uq_policies_active_name"


class StorageError(Exception):
    """持久化层意外失败（内部细节不外泄）"""


class PolicyRepository(ABC):
    """策略持久化接口"""

    @abstractmethod
    def unit_of_work(self):
        """异步上下文管理器：块内写入整体提交，异常时整体回滚"""

    @abstractmethod
    async def find_by_id(self, policy_id: str, for_update: bool = False) -> Optional[Policy]:
        ...

    @abstractmethod
    async def find_active_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Policy]:
        ...

    @abstractmethod
    async def find_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Policy]:
        """包含已停用策略"""

    @abstractmethod
    async def get_active_version(self, policy_id: str) -> Optional[PolicyVersion]:
        ...

    @abstractmethod
    async def create_with_initial_version(self, policy: Policy, version: PolicyVersion) -> Policy:
        ...

    @abstractmethod
    async def update_policy_and_versions(
        self,
        policy: Policy,
        previous_version: Optional[PolicyVersion] = None,
        new_version: Optional[PolicyVersion] = None,
    ) -> Policy:
        """停用旧版本、写入新版本、更新策略行（须在同一工作单元内）"""

    @abstractmethod
    async def list_versions(self, policy_id: str) -> List[PolicyVersion]:
        """版本历史，新版本在前"""

    @abstractmethod
    async def list_versions_for(self, policy_ids: Sequence[str]) -> List[PolicyVersion]:
        ...

    @abstractmethod
    async def list_policies(
        self,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[Policy], int]:
        ...

    @abstractmethod
    async def list_templates(self) -> List[PolicyTemplate]:
        ...

    @abstractmethod
    async def find_template_by_id(self, template_id: str) -> Optional[PolicyTemplate]:
        ...

    @abstractmethod
    async def add_template(self, template: PolicyTemplate) -> PolicyTemplate:
        ...


class SqlAlchemyPolicyRepository(PolicyRepository):
    """基于 SQLAlchemy AsyncSession 的实现"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if ACTIVE_NAME_INDEX in str(e.orig):
                raise ConflictError("Policy with this name already exists") from e
            raise StorageError("integrity violation") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(type(e).__name__) from e
        except Exception:
            await self.db.rollback()
            raise

    async def find_by_id(self, policy_id: str, for_update: bool = False) -> Optional[Policy]:
        query = select(Policy).where(Policy.id == policy_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def find_active_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Policy]:
        query = select(Policy).where(Policy.name == name, Policy.is_active.is_(True))
        if exclude_id:
            query = query.where(Policy.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def find_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Policy]:
        query = select(Policy).where(Policy.name == name)
        if exclude_id:
            query = query.where(Policy.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def get_active_version(self, policy_id: str) -> Optional[PolicyVersion]:
        query = select(PolicyVersion).where(
            PolicyVersion.policy_id == policy_id,
            PolicyVersion.is_active.is_(True),
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_with_initial_version(self, policy: Policy, version: PolicyVersion) -> Policy:
        self.db.add(policy)
        # 先落库策略行，满足版本外键
        await self.db.flush()
        self.db.add(version)
        await self.db.flush()
        return policy

    async def update_policy_and_versions(
        self,
        policy: Policy,
        previous_version: Optional[PolicyVersion] = None,
        new_version: Optional[PolicyVersion] = None,
    ) -> Policy:
        if previous_version is not None:
            previous_version.is_active = False
            # 先停用旧版本，部分唯一索引不允许两个 active 版本同时存在
            await self.db.flush()
        if new_version is not None:
            self.db.add(new_version)
        self.db.add(policy)
        await self.db.flush()
        return policy

    async def list_versions(self, policy_id: str) -> List[PolicyVersion]:
        query = (
            select(PolicyVersion)
            .where(PolicyVersion.policy_id == policy_id)
            .order_by(PolicyVersion.created_at.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_versions_for(self, policy_ids: Sequence[str]) -> List[PolicyVersion]:
        if not policy_ids:
            return []
        query = (
            select(PolicyVersion)
            .where(PolicyVersion.policy_id.in_(list(policy_ids)))
            .order_by(PolicyVersion.created_at.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_policies(
        self,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[Policy], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(Policy.name.ilike(pattern), Policy.description.ilike(pattern))
            )
        if is_active is not None:
            conditions.append(Policy.is_active.is_(is_active))

        query = (
            select(Policy)
            .where(*conditions)
            .order_by(Policy.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_query = select(func.count()).select_from(Policy).where(*conditions)

        result = await self.db.execute(query)
        total = await self.db.scalar(count_query)
        return list(result.scalars().all()), int(total or 0)

    async def list_templates(self) -> List[PolicyTemplate]:
        query = select(PolicyTemplate).order_by(PolicyTemplate.category.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_template_by_id(self, template_id: str) -> Optional[PolicyTemplate]:
        return await self.db.get(PolicyTemplate, template_id)

    async def add_template(self, template: PolicyTemplate) -> PolicyTemplate:
        self.db.add(template)
        await self.db.flush()
        return template


def group_versions(versions: Sequence[PolicyVersion]) -> Dict[str, List[PolicyVersion]]:
    """按 policy_id 分组（保持输入顺序）"""
    grouped: Dict[str, List[PolicyVersion]] = {}
    for version in versions:
        grouped.setdefault(version.policy_id, []).append(version)
    return grouped
