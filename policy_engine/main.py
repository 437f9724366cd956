"""
PII 策略引擎 - 主入口

职责:
- 策略 YAML 校验（语法 / schema / 业务规则告警）
- 策略生命周期管理（创建、更新、软删除）
- 版本历史与模板实例化
- 操作审计
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from policy_engine import __version__
from policy_engine.api import router as api_router
from policy_engine.core.config import settings
from policy_engine.core.errors import PolicyError
from policy_engine.core.logging import get_logger, setup_logging
from policy_engine.database.engine import close_db
from policy_engine.middleware import MetricsMiddleware, metrics_endpoint

logger = get_logger(__name__)

# 错误类型 -> HTTP 状态码
ERROR_STATUS_CODES = {
    "document": 400,
    "validation": 400,
    "conflict": 409,
    "not_found": 404,
    "internal": 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    setup_logging()
    logger.info("application_startup", env=settings.ENV, version=__version__)
    yield
    await close_db()
    logger.info("application_shutdown")


async def policy_error_handler(request: Request, exc: PolicyError) -> JSONResponse:
    """统一策略错误响应"""
    status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("policy_request_failed", path=request.url.path, error=exc.kind)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="PII Policy Engine",
        description="PII 脱敏策略定义、校验与版本管理",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(PolicyError, policy_error_handler)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict:
        """健康检查端点"""
        return {"status": "healthy", "service": "policy-engine", "version": __version__}

    app.add_route("/metrics", metrics_endpoint)

    return app


app = create_app()
