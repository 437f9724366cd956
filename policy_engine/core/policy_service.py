"""
Policy 服务层

策略与版本的生命周期管理：
- create: 校验 -> 名称检查 -> 策略 + 首个版本 1.0.0 原子写入
- update: 仅元数据变化不产生新版本；配置内容变化时停用旧版本、写入 minor+1 新版本
- delete: 软删除，版本历史保留
- create_from_template: 模板展开后走 create 的完整校验路径

解析与校验是纯计算；唯一有状态的边界是仓储的工作单元。
"""

import math
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError

from policy_engine.core.audit import AuditAction, AuditSink, ResourceType
from policy_engine.core.errors import ConflictError, NotFoundError, PolicyInternalError
from policy_engine.core.policy_repository import PolicyRepository, StorageError, group_versions
from policy_engine.database.base import utcnow
from policy_engine.database.models.policy import Policy, PolicyTemplate, PolicyVersion
from policy_engine.middleware.metrics import record_policy_operation
from policy_engine.policies.catalog import INITIAL_VERSION
from policy_engine.policies.schema import PolicyDocument
from policy_engine.policies.templates import (
    render_template_document,
    template_policy_description,
    template_tags,
)
from policy_engine.policies.validation import (
    ValidationResult,
    load_policy_document,
    validate_policy_text,
)

logger = structlog.get_logger(__name__)

CONTENT_KEYS = ("detection", "scope", "anonymization")

INITIAL_CHANGELOG = "Initial policy version"
UPDATE_CHANGELOG = "Policy updated"


class NameReservation(str, Enum):
    """
    已软删除策略的名称是否仍被占用

    ACTIVE_ONLY: 只与活跃策略比较，停用后名称可复用
    ALL: 停用策略的名称仍然保留
    """
    ACTIVE_ONLY = "active_only"
    ALL = "all"


@dataclass
class PolicyCreate:
    """创建请求"""
    name: str
    raw_text: str
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_active: bool = True


@dataclass
class PolicyPatch:
    """更新请求，None 表示不修改"""
    name: Optional[str] = None
    description: Optional[str] = None
    raw_text: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


@dataclass
class PolicyDetail:
    """策略及其版本历史（新版本在前）"""
    policy: Policy
    versions: List[PolicyVersion]
    version_count: int

    @property
    def active_version(self) -> Optional[PolicyVersion]:
        return next((v for v in self.versions if v.is_active), None)


@dataclass
class PolicyPage:
    """分页结果"""
    items: List[PolicyDetail]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def bump_minor(version: str) -> str:
    """X.Y.Z -> X.(Y+1).Z"""
    major, minor, patch = (int(part) for part in version.split("."))
    return f"{major}.{minor + 1}.{patch}"


def config_content(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """从配置快照中取出版本相关内容"""
    config = config or {}
    return {key: config[key] for key in CONTENT_KEYS if key in config}


class PolicyService:
    """Policy 服务"""

    def __init__(
        self,
        repository: PolicyRepository,
        audit: AuditSink,
        name_reservation: NameReservation = NameReservation.ACTIVE_ONLY,
    ):
        self.repository = repository
        self.audit = audit
        self.name_reservation = NameReservation(name_reservation)

    # ============================================================
    # 校验
    # ============================================================

    def validate(self, raw_text: str) -> ValidationResult:
        """校验原始文本（无副作用）"""
        return validate_policy_text(raw_text)

    # ============================================================
    # 写操作
    # ============================================================

    async def create(self, actor_id: str, data: PolicyCreate) -> Policy:
        """创建策略及其首个版本"""
        log = logger.bind(actor=actor_id, name=data.name)

        document = load_policy_document(data.raw_text)
        config = document.to_config()
        now = utcnow()

        policy = Policy(
            id=str(uuid4()),
            name=data.name,
            description=data.description,
            config=config,
            version=INITIAL_VERSION,
            tags=list(data.tags),
            is_active=data.is_active,
            created_at=now,
            updated_at=now,
        )
        version = PolicyVersion(
            id=str(uuid4()),
            policy_id=policy.id,
            version=INITIAL_VERSION,
            config=config,
            changelog=INITIAL_CHANGELOG,
            is_active=True,
            created_at=now,
        )

        async with self._storage_guard("create", name=data.name):
            async with self.repository.unit_of_work():
                await self._ensure_name_available(data.name)
                await self.repository.create_with_initial_version(policy, version)

        log.info("policy_created", policy_id=policy.id, version=policy.version)
        record_policy_operation(AuditAction.CREATE.value, version_created=True)

        await self._record_audit(
            actor_id,
            AuditAction.CREATE,
            policy.id,
            {"policy_name": policy.name, "version": policy.version},
        )
        return policy

    async def update(self, actor_id: str, policy_id: str, patch: PolicyPatch) -> Policy:
        """
        更新策略

        配置内容（detection/scope/anonymization）变化时创建新版本，
        否则只更新名称、描述、标签、启用标记。
        is_active=False 等同于软删除，审计动作记为 DELETE
        """
        log = logger.bind(actor=actor_id, policy_id=policy_id)
        new_version: Optional[PolicyVersion] = None

        async with self._storage_guard("update", policy_id=policy_id):
            async with self.repository.unit_of_work():
                policy = await self.repository.find_by_id(policy_id, for_update=True)
                if policy is None or not policy.is_active:
                    raise NotFoundError("Policy not found")

                document: Optional[PolicyDocument] = None
                if patch.raw_text is not None:
                    document = load_policy_document(patch.raw_text)

                if patch.name is not None and patch.name != policy.name:
                    await self._ensure_name_available(patch.name, exclude_id=policy.id)

                current = await self.repository.get_active_version(policy.id)
                if document is not None and self._content_changed(document, current, policy):
                    label = bump_minor(current.version if current else policy.version)
                    config = document.to_config()
                    new_version = PolicyVersion(
                        id=str(uuid4()),
                        policy_id=policy.id,
                        version=label,
                        config=config,
                        changelog=UPDATE_CHANGELOG,
                        is_active=True,
                        created_at=utcnow(),
                    )
                    policy.config = config
                    policy.version = label

                if patch.name is not None:
                    policy.name = patch.name
                if patch.description is not None:
                    policy.description = patch.description
                if patch.tags is not None:
                    policy.tags = list(patch.tags)
                if patch.is_active is not None:
                    policy.is_active = patch.is_active
                policy.updated_at = utcnow()

                await self.repository.update_policy_and_versions(
                    policy,
                    previous_version=current if new_version is not None else None,
                    new_version=new_version,
                )

        content_changed = new_version is not None
        deactivated = patch.is_active is False
        action = AuditAction.DELETE if deactivated else AuditAction.UPDATE
        if content_changed:
            log.info("policy_version_created", version=policy.version)
        log.info("policy_updated", content_changed=content_changed)
        if deactivated:
            log.info("policy_deleted", name=policy.name)
        record_policy_operation(action.value, version_created=content_changed)

        await self._record_audit(
            actor_id,
            action,
            policy.id,
            {
                "policy_name": policy.name,
                "content_changed": content_changed,
                "version": policy.version,
            },
        )
        return policy

    async def delete(self, actor_id: str, policy_id: str) -> None:
        """软删除：只翻转启用标记，不删除任何版本"""
        log = logger.bind(actor=actor_id, policy_id=policy_id)

        async with self._storage_guard("delete", policy_id=policy_id):
            async with self.repository.unit_of_work():
                policy = await self.repository.find_by_id(policy_id, for_update=True)
                if policy is None or not policy.is_active:
                    raise NotFoundError("Policy not found")

                policy.is_active = False
                policy.updated_at = utcnow()
                await self.repository.update_policy_and_versions(policy)

        log.info("policy_deleted", name=policy.name)
        record_policy_operation(AuditAction.DELETE.value)

        await self._record_audit(
            actor_id,
            AuditAction.DELETE,
            policy.id,
            {"policy_name": policy.name},
        )

    # ============================================================
    # 模板
    # ============================================================

    async def list_templates(self) -> List[PolicyTemplate]:
        async with self._storage_guard("list_templates"):
            return await self.repository.list_templates()

    async def create_from_template(self, actor_id: str, template_id: str, new_name: str) -> Policy:
        """模板展开后交给 create()，结果同样需要完整校验"""
        async with self._storage_guard("create_from_template", template_id=template_id):
            template = await self.repository.find_template_by_id(template_id)
        if template is None:
            raise NotFoundError("Policy template not found")

        logger.info("policy_template_expanding", template_id=template_id, name=new_name)

        return await self.create(
            actor_id,
            PolicyCreate(
                name=new_name,
                description=template_policy_description(template),
                raw_text=render_template_document(template),
                tags=template_tags(template),
            ),
        )

    # ============================================================
    # 查询
    # ============================================================

    async def get_one(self, policy_id: str) -> PolicyDetail:
        """获取策略及完整版本历史（包含已停用策略）"""
        async with self._storage_guard("get_one", policy_id=policy_id):
            policy = await self.repository.find_by_id(policy_id)
            if policy is None:
                raise NotFoundError("Policy not found")
            versions = await self.repository.list_versions(policy_id)
        return PolicyDetail(policy=policy, versions=versions, version_count=len(versions))

    async def list_versions(self, policy_id: str) -> List[PolicyVersion]:
        """版本历史（软删除后仍可查询）"""
        return (await self.get_one(policy_id)).versions

    async def list_all(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        active_only: Optional[bool] = None,
    ) -> PolicyPage:
        """分页列出策略；每项只带最新版本"""
        page = max(page, 1)
        limit = max(limit, 1)

        async with self._storage_guard("list_all"):
            policies, total = await self.repository.list_policies(
                offset=(page - 1) * limit,
                limit=limit,
                search=search or None,
                is_active=active_only,
            )
            grouped = group_versions(
                await self.repository.list_versions_for([p.id for p in policies])
            )

        items = []
        for policy in policies:
            versions = grouped.get(policy.id, [])
            items.append(
                PolicyDetail(policy=policy, versions=versions[:1], version_count=len(versions))
            )
        return PolicyPage(items=items, total=total, page=page, limit=limit)

    # ============================================================
    # 内部方法
    # ============================================================

    async def _ensure_name_available(self, name: str, exclude_id: Optional[str] = None) -> None:
        """名称占用检查（唯一决策点，存储层另有唯一索引兜底）"""
        if self.name_reservation is NameReservation.ALL:
            existing = await self.repository.find_by_name(name, exclude_id=exclude_id)
        else:
            existing = await self.repository.find_active_by_name(name, exclude_id=exclude_id)

        if existing is not None:
            logger.info("policy_name_conflict", name=name, existing_id=existing.id)
            raise ConflictError("Policy with this name already exists")

    @staticmethod
    def _content_changed(
        document: PolicyDocument,
        current: Optional[PolicyVersion],
        policy: Policy,
    ) -> bool:
        snapshot = current.config if current is not None else policy.config
        return config_content(snapshot) != document.content()

    @asynccontextmanager
    async def _storage_guard(self, operation: str, **context: Any) -> AsyncIterator[None]:
        """将持久化层意外失败转换为只带关联 ID 的内部错误"""
        try:
            yield
        except (StorageError, SQLAlchemyError) as e:
            correlation_id = str(uuid4())
            logger.error(
                "policy_storage_failure",
                operation=operation,
                correlation_id=correlation_id,
                error_type=type(e).__name__,
                exc_info=True,
                **context,
            )
            raise PolicyInternalError(correlation_id) from e

    async def _record_audit(
        self,
        actor_id: str,
        action: AuditAction,
        resource_id: str,
        details: Dict[str, Any],
    ) -> None:
        """写入审计事件；操作已提交，审计失败只记录日志"""
        try:
            await self.audit.record(
                actor_id=actor_id,
                action=action,
                resource_type=ResourceType.POLICY,
                resource_id=resource_id,
                details=details,
            )
        except Exception:
            logger.exception(
                "audit_record_failed",
                actor=actor_id,
                action=action.value,
                resource_id=resource_id,
            )
