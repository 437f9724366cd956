"""
测试配置和 fixtures
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from policy_engine.core.deps import get_policy_service
from policy_engine.core.policy_service import PolicyService
from policy_engine.core.template_seeder import seed_builtin_templates
from policy_engine.main import app
from tests.fakes import InMemoryPolicyRepository, RecordingAuditSink


@pytest.fixture
def repository() -> InMemoryPolicyRepository:
    """内存仓储"""
    return InMemoryPolicyRepository()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def service(repository: InMemoryPolicyRepository, audit_sink: RecordingAuditSink) -> PolicyService:
    """使用内存仓储的策略服务"""
    return PolicyService(repository=repository, audit=audit_sink)


@pytest_asyncio.fixture
async def seeded_repository(repository: InMemoryPolicyRepository) -> InMemoryPolicyRepository:
    """写入内置模板后的仓储"""
    await seed_builtin_templates(repository)
    return repository


@pytest_asyncio.fixture
async def client(
    service: PolicyService,
    seeded_repository: InMemoryPolicyRepository,
) -> AsyncGenerator[AsyncClient, None]:
    """创建测试客户端"""
    app.dependency_overrides[get_policy_service] = lambda: service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
