"""
策略模板展开测试
"""

from types import SimpleNamespace

import pytest

from policy_engine.core.errors import ValidationError
from policy_engine.core.template_seeder import seed_builtin_templates
from policy_engine.policies.templates import (
    BUILTIN_TEMPLATES,
    expand_template,
    render_template_document,
    template_id_for,
    template_tags,
)
from policy_engine.policies.validation import load_policy_document


def _template(**config):
    return SimpleNamespace(
        name="Custom Template",
        description="A custom template",
        category="CUSTOM",
        config=config,
    )


def test_expand_applies_defaults():
    tree = expand_template(_template(entities=["PERSON", "URL"]))
    assert tree["version"] == "1.0.0"
    assert tree["detection"]["entities"] == [
        {"type": "PERSON", "confidence_threshold": 0.8, "action": "redact"},
        {"type": "URL", "confidence_threshold": 0.8, "action": "redact"},
    ]
    assert tree["scope"]["max_file_size"] == "100MB"
    assert tree["anonymization"] == {
        "default_action": "redact",
        "preserve_format": True,
        "audit_trail": True,
    }


def test_expand_replace_uses_default_token():
    tree = expand_template(_template(
        entities=["PERSON"],
        anonymization={"default_anonymizer": "replace"},
    ))
    assert tree["detection"]["entities"][0]["replacement"] == "[REDACTED]"


def test_expand_does_not_share_scope_between_templates():
    first = expand_template(_template(entities=["PERSON"]))
    first["scope"]["file_types"].append("png")
    second = expand_template(_template(entities=["PERSON"]))
    assert "png" not in second["scope"]["file_types"]


@pytest.mark.parametrize("data", BUILTIN_TEMPLATES, ids=lambda d: d["name"])
def test_builtin_templates_expand_to_valid_documents(data):
    template = SimpleNamespace(**data)
    document = load_policy_document(render_template_document(template))
    assert document.name == data["name"]
    assert [e.type.value for e in document.entities] == data["config"]["entities"]
    assert {e.confidence_threshold for e in document.entities} == {data["config"]["confidence_threshold"]}


def test_financial_template_replacement_token():
    financial = next(t for t in BUILTIN_TEMPLATES if t["name"] == "Financial Services")
    document = load_policy_document(render_template_document(SimpleNamespace(**financial)))
    assert {e.replacement for e in document.entities} == {"[FINANCIAL_DATA]"}


def test_expanded_template_with_unknown_entity_fails_validation():
    with pytest.raises(ValidationError):
        load_policy_document(render_template_document(_template(entities=["SHOE_SIZE"])))


def test_template_id_and_tags():
    assert template_id_for("HIPAA Healthcare") == "hipaa-healthcare"
    assert template_tags(_template()) == ["custom"]


@pytest.mark.asyncio
async def test_seed_is_idempotent(repository):
    created = await seed_builtin_templates(repository)
    assert created == ["gdpr-compliance", "hipaa-healthcare", "financial-services"]
    assert await seed_builtin_templates(repository) == []
    assert len(repository.templates) == 3
