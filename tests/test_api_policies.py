"""
策略 API 测试
"""

import pytest
import yaml
from httpx import AsyncClient

from tests.documents import EMAIL_AND_SSN, policy_yaml

BASE_URL = "/api/v1/policies"


async def _create(client: AsyncClient, name: str = "Finance PII", **payload) -> dict:
    response = await client.post(
        BASE_URL,
        json={"name": name, "yaml_content": policy_yaml(), **payload},
        headers={"X-Actor-ID": "alice"},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """测试健康检查端点"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "policy-engine"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    await client.post(f"{BASE_URL}/validate", json={"yaml_content": policy_yaml()})
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "policy_validations_total" in response.text


@pytest.mark.asyncio
async def test_validate_endpoint(client: AsyncClient):
    response = await client.post(f"{BASE_URL}/validate", json={"yaml_content": policy_yaml()})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["errors"] == []
    assert data["document"]["name"] == "Finance PII"


@pytest.mark.asyncio
async def test_validate_endpoint_reports_errors(client: AsyncClient):
    raw = policy_yaml(entities=[
        {"type": "PHONE_NUMBER", "confidence_threshold": 1.2, "action": "replace"},
    ])
    response = await client.post(f"{BASE_URL}/validate", json={"yaml_content": raw})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["error_kind"] == "validation"
    paths = {e["path"] for e in data["errors"]}
    assert "detection.entities.0.confidence_threshold" in paths
    assert "detection.entities.0.replacement" in paths


@pytest.mark.asyncio
async def test_default_document_is_valid(client: AsyncClient):
    response = await client.get(f"{BASE_URL}/default-document")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/yaml")

    validated = await client.post(f"{BASE_URL}/validate", json={"yaml_content": response.text})
    assert validated.json()["valid"] is True


@pytest.mark.asyncio
async def test_create_and_get_policy(client: AsyncClient, audit_sink):
    created = await _create(client, description="Customer data", tags=["finance"])
    assert created["version"] == "1.0.0"
    assert created["is_active"] is True
    assert created["tags"] == ["finance"]

    response = await client.get(f"{BASE_URL}/{created['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["version_count"] == 1
    assert data["versions"][0]["changelog"] == "Initial policy version"
    assert audit_sink.events[0]["actor_id"] == "alice"


@pytest.mark.asyncio
async def test_create_without_actor_header_uses_default(client: AsyncClient, audit_sink):
    response = await client.post(BASE_URL, json={"name": "Anon", "yaml_content": policy_yaml()})
    assert response.status_code == 201
    assert audit_sink.events[0]["actor_id"] == "system"


@pytest.mark.asyncio
async def test_create_invalid_yaml_returns_400(client: AsyncClient):
    response = await client.post(BASE_URL, json={"name": "Broken", "yaml_content": "name: [unclosed"})
    assert response.status_code == 400
    assert response.json()["error"] == "document"

    response = await client.post(
        BASE_URL, json={"name": "Broken", "yaml_content": policy_yaml(version="one")}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "validation"
    assert data["errors"][0]["path"] == "version"


@pytest.mark.asyncio
async def test_create_conflict_returns_409(client: AsyncClient):
    await _create(client)
    response = await client.post(BASE_URL, json={"name": "Finance PII", "yaml_content": policy_yaml()})
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


@pytest.mark.asyncio
async def test_update_creates_version_and_delete_keeps_history(client: AsyncClient):
    created = await _create(client)
    policy_url = f"{BASE_URL}/{created['id']}"

    response = await client.put(policy_url, json={"yaml_content": policy_yaml(entities=EMAIL_AND_SSN)})
    assert response.status_code == 200
    assert response.json()["version"] == "1.1.0"

    response = await client.delete(policy_url)
    assert response.status_code == 204

    response = await client.get(f"{policy_url}/versions")
    assert response.status_code == 200
    versions = response.json()
    assert [(v["version"], v["is_active"]) for v in versions] == [("1.1.0", True), ("1.0.0", False)]

    response = await client.put(policy_url, json={"description": "too late"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_export_document(client: AsyncClient):
    created = await _create(client)
    response = await client.get(f"{BASE_URL}/{created['id']}/document")
    assert response.status_code == 200
    assert yaml.safe_load(response.text) == created["config"]


@pytest.mark.asyncio
async def test_unknown_policy_returns_404(client: AsyncClient):
    response = await client.get(f"{BASE_URL}/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_list_policies(client: AsyncClient):
    await _create(client, name="Finance PII")
    await _create(client, name="Health PII")

    response = await client.get(BASE_URL, params={"search": "health"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["policies"][0]["name"] == "Health PII"

    response = await client.get(BASE_URL, params={"limit": 1})
    data = response.json()
    assert data["total"] == 2
    assert data["pages"] == 2
    assert len(data["policies"]) == 1


@pytest.mark.asyncio
async def test_templates_and_create_from_template(client: AsyncClient):
    response = await client.get(f"{BASE_URL}/templates")
    assert response.status_code == 200
    ids = {t["id"] for t in response.json()}
    assert ids == {"gdpr-compliance", "hipaa-healthcare", "financial-services"}

    response = await client.post(
        f"{BASE_URL}/from-template/financial-services",
        json={"name": "Card Data"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Card Data"
    assert data["tags"] == ["finance"]

    response = await client.post(f"{BASE_URL}/from-template/unknown", json={"name": "X"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_validate_endpoint_rejects_unencodable_text(client: AsyncClient):
    # JSON 转义的孤立代理项，解码后无法编码为 UTF-8
    response = await client.post(
        f"{BASE_URL}/validate",
        content=b'{"yaml_content": "name: \\ud800"}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["error_kind"] == "document"


@pytest.mark.asyncio
async def test_validate_endpoint_empty_mapping(client: AsyncClient):
    response = await client.post(f"{BASE_URL}/validate", json={"yaml_content": "{}"})
    data = response.json()
    assert data["error_kind"] == "validation"
    assert "anonymization" in {e["path"] for e in data["errors"]}
