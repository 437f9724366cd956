"""
策略引擎错误类型

四类互不混淆的错误 + 一个内部错误：
- DocumentError: 原始文本无法解析或不是对象
- ValidationError: 一个或多个 schema 违规（完整列表）
- ConflictError: 活跃策略名称冲突
- NotFoundError: 策略/版本/模板不存在或已停用
- PolicyInternalError: 持久化层意外失败，仅携带关联 ID

调用方可以 ``except PolicyError`` 后按子类 ``match``。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Violation:
    """单条校验违规"""
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message}


class PolicyError(Exception):
    """策略引擎错误基类"""

    kind: str = "policy_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class DocumentError(PolicyError):
    """原始文本不可解析，调用方需重新提交"""

    kind = "document"


class ValidationError(PolicyError):
    """Schema 校验失败，携带一次遍历得到的全部违规"""

    kind = "validation"

    def __init__(self, errors: List[Violation], message: str = "Invalid policy YAML"):
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [e.to_dict() for e in self.errors]
        return data


class ConflictError(PolicyError):
    """活跃策略名称冲突"""

    kind = "conflict"


class NotFoundError(PolicyError):
    """引用的资源不存在或已停用"""

    kind = "not_found"


class PolicyInternalError(PolicyError):
    """持久化层意外失败

    不暴露存储细节，只返回关联 ID 供排查
    """

    kind = "internal"

    def __init__(self, correlation_id: str, message: Optional[str] = None):
        super().__init__(message or "Internal error while processing policy")
        self.correlation_id = correlation_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["correlation_id"] = self.correlation_id
        return data
