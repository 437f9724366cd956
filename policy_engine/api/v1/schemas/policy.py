"""
策略 API 请求/响应模型
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from policy_engine.core.policy_service import PolicyCreate, PolicyDetail, PolicyPage, PolicyPatch
from policy_engine.policies.validation import ValidationResult


# ============================================================
# 请求
# ============================================================

class PolicyCreateRequest(BaseModel):
    """创建策略请求"""
    name: str = Field(..., min_length=1, max_length=255, description="策略名称")
    description: Optional[str] = Field(None, max_length=1000, description="策略描述")
    yaml_content: str = Field(..., description="策略 YAML 文本")
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True

    def to_domain(self) -> PolicyCreate:
        return PolicyCreate(
            name=self.name,
            description=self.description,
            raw_text=self.yaml_content,
            tags=self.tags,
            is_active=self.is_active,
        )


class PolicyUpdateRequest(BaseModel):
    """更新策略请求，未提供的字段保持不变"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    yaml_content: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None

    def to_domain(self) -> PolicyPatch:
        return PolicyPatch(
            name=self.name,
            description=self.description,
            raw_text=self.yaml_content,
            tags=self.tags,
            is_active=self.is_active,
        )


class PolicyFromTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="新策略名称")


class ValidateRequest(BaseModel):
    yaml_content: str = Field(..., description="待校验的 YAML 文本")


# ============================================================
# 响应
# ============================================================

class ViolationResponse(BaseModel):
    path: str
    message: str


class ValidateResponse(BaseModel):
    """校验结果；告警不影响 valid"""
    valid: bool
    document: Optional[Dict[str, Any]] = None
    errors: List[ViolationResponse] = Field(default_factory=list)
    error_kind: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidateResponse":
        return cls(
            valid=result.valid,
            document=result.document.to_config() if result.document else None,
            errors=[ViolationResponse(**e.to_dict()) for e in result.errors],
            error_kind=result.error_kind,
            warnings=result.warnings,
        )


class PolicyVersionResponse(BaseModel):
    """策略版本"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    policy_id: str
    version: str
    config: Dict[str, Any]
    changelog: Optional[str]
    is_active: bool
    created_at: datetime


class PolicyResponse(BaseModel):
    """策略"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str]
    config: Dict[str, Any]
    version: str
    tags: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PolicyDetailResponse(PolicyResponse):
    """策略及版本历史"""
    versions: List[PolicyVersionResponse]
    version_count: int

    @classmethod
    def from_detail(cls, detail: PolicyDetail) -> "PolicyDetailResponse":
        base = PolicyResponse.model_validate(detail.policy)
        return cls(
            **base.model_dump(),
            versions=[PolicyVersionResponse.model_validate(v) for v in detail.versions],
            version_count=detail.version_count,
        )


class PolicyListResponse(BaseModel):
    """策略分页列表"""
    policies: List[PolicyDetailResponse]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: PolicyPage) -> "PolicyListResponse":
        return cls(
            policies=[PolicyDetailResponse.from_detail(item) for item in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages,
        )


class PolicyTemplateResponse(BaseModel):
    """策略模板"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    category: str
    config: Dict[str, Any]
    tags: List[str] = Field(default_factory=list)
