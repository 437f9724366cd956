"""
API 路由模块

统一注册所有 API 路由
"""

from fastapi import APIRouter

from policy_engine.api.v1 import policies

router = APIRouter()

# 策略管理
router.include_router(policies.router, prefix="/v1/policies", tags=["策略管理"])
