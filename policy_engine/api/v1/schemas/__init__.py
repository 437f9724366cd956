"""API v1 请求/响应模型"""

from policy_engine.api.v1.schemas.policy import (
    PolicyCreateRequest,
    PolicyDetailResponse,
    PolicyFromTemplateRequest,
    PolicyListResponse,
    PolicyResponse,
    PolicyTemplateResponse,
    PolicyUpdateRequest,
    PolicyVersionResponse,
    ValidateRequest,
    ValidateResponse,
)

__all__ = [
    "PolicyCreateRequest",
    "PolicyUpdateRequest",
    "PolicyFromTemplateRequest",
    "ValidateRequest",
    "ValidateResponse",
    "PolicyResponse",
    "PolicyVersionResponse",
    "PolicyDetailResponse",
    "PolicyListResponse",
    "PolicyTemplateResponse",
]
