"""
数据库模型

所有 SQLAlchemy 模型的统一导出
"""

from policy_engine.database.models.audit_log import AuditLog
from policy_engine.database.models.policy import Policy, PolicyTemplate, PolicyVersion

__all__ = [
    # Policy
    "Policy",
    "PolicyVersion",
    "PolicyTemplate",
    # Audit
    "AuditLog",
]
