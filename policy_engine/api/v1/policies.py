"""
策略管理 API

- GET    /v1/policies                          分页列表（search / is_active 过滤）
- GET    /v1/policies/templates                模板列表
- POST   /v1/policies/validate                 校验 YAML（返回错误与告警）
- GET    /v1/policies/default-document         内置默认策略 YAML
- POST   /v1/policies/from-template/{id}       从模板创建
- GET    /v1/policies/{id}                     详情（含版本历史）
- GET    /v1/policies/{id}/versions            版本历史
- GET    /v1/policies/{id}/document            当前配置导出为 YAML
- POST   /v1/policies                          创建
- PUT    /v1/policies/{id}                     更新
- DELETE /v1/policies/{id}                     软删除

错误由 main.py 中注册的 PolicyError 处理器统一映射为 HTTP 状态码
"""

from typing import List, Optional

from fastapi import APIRouter, Query, Response, status

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
from policy_engine.core.config import settings
from policy_engine.core.deps import ActorId, PolicySvc
from policy_engine.policies.catalog import DEFAULT_POLICY_DOCUMENT
from policy_engine.policies.parser import dump_policy_document

router = APIRouter()

YAML_MEDIA_TYPE = "application/yaml"


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    service: PolicySvc,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    search: Optional[str] = Query(None, description="按名称或描述模糊搜索"),
    is_active: Optional[bool] = Query(None, description="按启用状态过滤"),
):
    """分页列出策略"""
    result = await service.list_all(
        page=page,
        limit=min(limit, settings.POLICY_LIST_MAX_LIMIT),
        search=search,
        active_only=is_active,
    )
    return PolicyListResponse.from_page(result)


@router.get("/templates", response_model=List[PolicyTemplateResponse])
async def list_templates(service: PolicySvc):
    """列出策略模板"""
    templates = await service.list_templates()
    return [PolicyTemplateResponse.model_validate(t) for t in templates]


@router.post("/validate", response_model=ValidateResponse)
async def validate_policy(request: ValidateRequest, service: PolicySvc):
    """校验策略 YAML；告警不影响 valid"""
    return ValidateResponse.from_result(service.validate(request.yaml_content))


@router.get("/default-document")
async def get_default_document():
    """内置默认策略（YAML）"""
    return Response(content=dump_policy_document(DEFAULT_POLICY_DOCUMENT), media_type=YAML_MEDIA_TYPE)


@router.post(
    "/from-template/{template_id}",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_from_template(
    template_id: str,
    request: PolicyFromTemplateRequest,
    service: PolicySvc,
    actor_id: ActorId,
):
    """从模板创建策略"""
    policy = await service.create_from_template(actor_id, template_id, request.name)
    return PolicyResponse.model_validate(policy)


@router.get("/{policy_id}", response_model=PolicyDetailResponse)
async def get_policy(policy_id: str, service: PolicySvc):
    """获取策略详情"""
    return PolicyDetailResponse.from_detail(await service.get_one(policy_id))


@router.get("/{policy_id}/versions", response_model=List[PolicyVersionResponse])
async def list_policy_versions(policy_id: str, service: PolicySvc):
    """版本历史（软删除后仍可查询）"""
    versions = await service.list_versions(policy_id)
    return [PolicyVersionResponse.model_validate(v) for v in versions]


@router.get("/{policy_id}/document")
async def export_policy_document(policy_id: str, service: PolicySvc):
    """当前配置导出为 YAML"""
    detail = await service.get_one(policy_id)
    return Response(content=dump_policy_document(detail.policy.config), media_type=YAML_MEDIA_TYPE)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(request: PolicyCreateRequest, service: PolicySvc, actor_id: ActorId):
    """创建策略"""
    policy = await service.create(actor_id, request.to_domain())
    return PolicyResponse.model_validate(policy)


@router.put("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: str,
    request: PolicyUpdateRequest,
    service: PolicySvc,
    actor_id: ActorId,
):
    """更新策略"""
    policy = await service.update(actor_id, policy_id, request.to_domain())
    return PolicyResponse.model_validate(policy)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(policy_id: str, service: PolicySvc, actor_id: ActorId):
    """软删除策略"""
    await service.delete(actor_id, policy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
