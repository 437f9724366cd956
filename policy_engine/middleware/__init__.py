"""
中间件模块

提供 Prometheus 指标中间件
"""

from policy_engine.middleware.metrics import MetricsMiddleware, metrics_endpoint

__all__ = [
    "MetricsMiddleware",
    "metrics_endpoint",
]
