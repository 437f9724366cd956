"""
策略数据库模型

- Policy: 当前活跃的策略配置（名称在活跃策略中唯一）
- PolicyVersion: 只追加的历史快照，每个策略有且仅有一个 active 版本
- PolicyTemplate: 常见监管场景的参数化模板
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from policy_engine.database.base import Base, TimestampMixin, utcnow


class Policy(Base, TimestampMixin):
    """策略表"""

    __tablename__ = "policies"
    __table_args__ = (
        # 活跃策略名称唯一：存储层兜底名称检查的竞态
        Index(
            "uq_policies_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True, comment="策略名称")
    description: Mapped[Optional[str]] = mapped_column(Text, comment="策略描述")
    config: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, comment="当前配置快照")
    version: Mapped[str] = mapped_column(String(50), nullable=False, comment="当前版本号")
    tags: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True, comment="软删除标记"
    )

    def __repr__(self) -> str:
        return f"<Policy {self.name}:{self.version} active={self.is_active}>"


class PolicyVersion(Base):
    """策略版本表（只追加）"""

    __tablename__ = "policy_versions"
    __table_args__ = (
        UniqueConstraint("policy_id", "version", name="uq_policy_versions_policy_version"),
        # 每个策略最多一个 active 版本
        Index(
            "uq_policy_versions_active",
            "policy_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    policy_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("policies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    version: Mapped[str] = mapped_column(String(50), nullable=False, comment="版本号 X.Y.Z")
    config: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, comment="配置快照")
    changelog: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<PolicyVersion {self.policy_id}:{self.version} active={self.is_active}>"


class PolicyTemplate(Base, TimestampMixin):
    """策略模板表"""

    __tablename__ = "policy_templates"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, comment="参数化配置")
    tags: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    downloads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[Optional[float]] = mapped_column(Float)

    def __repr__(self) -> str:
        return f"<PolicyTemplate {self.id} ({self.category})>"
