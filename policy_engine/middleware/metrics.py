"""
Prometheus 指标

采集 HTTP 请求与策略校验、版本写入等业务指标
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware


# ============================================================
# HTTP 请求指标
# ============================================================

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "path"],
)


# ============================================================
# 策略指标
# ============================================================

POLICY_VALIDATIONS_TOTAL = Counter(
    "policy_validations_total",
    "Total policy document validations",
    ["result"],  # valid | invalid | document_error
)

POLICY_OPERATIONS_TOTAL = Counter(
    "policy_operations_total",
    "Total successful policy write operations",
    ["action"],  # CREATE | UPDATE | DELETE
)

POLICY_VERSIONS_CREATED_TOTAL = Counter(
    "policy_versions_created_total",
    "Total policy versions created",
)


# ============================================================
# 中间件
# ============================================================

class MetricsMiddleware(BaseHTTPMiddleware):
    """Prometheus 指标采集中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # 跳过 metrics 端点自身
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, path=path).inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.perf_counter() - start_time

            HTTP_REQUESTS_TOTAL.labels(
                method=method,
                path=path,
                status_code=status_code,
            ).inc()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=path).observe(duration)
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method, path=path).dec()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        规范化路径，将动态参数替换为占位符

        例如: /api/v1/policies/<uuid>/versions -> /api/v1/policies/{id}/versions
        """
        normalized = []
        for part in path.split("/"):
            if not part:
                continue
            # UUID 格式
            if len(part) == 36 and part.count("-") == 4:
                normalized.append("{id}")
            elif part.isdigit():
                normalized.append("{id}")
            else:
                normalized.append(part)

        return "/" + "/".join(normalized)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics 端点"""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# ============================================================
# 辅助函数
# ============================================================

def record_policy_validation(result: str):
    """记录一次策略校验"""
    POLICY_VALIDATIONS_TOTAL.labels(result=result).inc()


def record_policy_operation(action: str, version_created: bool = False):
    """记录一次成功的策略写操作"""
    POLICY_OPERATIONS_TOTAL.labels(action=action).inc()
    if version_created:
        POLICY_VERSIONS_CREATED_TOTAL.inc()
