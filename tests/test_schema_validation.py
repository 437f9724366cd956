"""
策略文档解析与 Schema 校验测试
"""

import pytest
import yaml

from policy_engine.core.errors import DocumentError, ValidationError
from policy_engine.policies.catalog import DEFAULT_POLICY_DOCUMENT
from policy_engine.policies.parser import NOT_AN_OBJECT_MESSAGE, dump_policy_document, parse_policy_text
from policy_engine.policies.schema import validate_schema
from policy_engine.policies.validation import load_policy_document, validate_policy_text
from tests.documents import policy_tree, policy_yaml


def _paths(error: ValidationError):
    return [v.path for v in error.errors]


# ============================================================
# 语法解析
# ============================================================

def test_parse_valid_yaml():
    tree = parse_policy_text(policy_yaml())
    assert tree["name"] == "Finance PII"


def test_parse_json_is_accepted():
    tree = parse_policy_text('{"name": "json"}')
    assert tree == {"name": "json"}


def test_parse_syntax_error():
    with pytest.raises(DocumentError) as exc_info:
        parse_policy_text("name: [unclosed")
    assert exc_info.value.message.startswith("YAML parsing error:")


@pytest.mark.parametrize("raw_text", ["", "   ", "- a\n- b\n", "just a string", "42"])
def test_parse_non_object(raw_text: str):
    with pytest.raises(DocumentError) as exc_info:
        parse_policy_text(raw_text)
    assert exc_info.value.message == NOT_AN_OBJECT_MESSAGE


def test_parse_size_limit():
    with pytest.raises(DocumentError):
        parse_policy_text("name: " + "x" * 100, max_bytes=50)


def test_document_error_is_not_validation_error():
    with pytest.raises(DocumentError) as exc_info:
        load_policy_document("[1, 2, 3]")
    assert not isinstance(exc_info.value, ValidationError)
    assert exc_info.value.kind == "document"


# ============================================================
# Schema 校验
# ============================================================

def test_valid_document():
    document = validate_schema(policy_tree())
    assert document.name == "Finance PII"
    assert document.entities[0].type.value == "EMAIL_ADDRESS"
    assert document.scope.max_file_size == "10MB"


@pytest.mark.parametrize(
    "field", ["name", "version", "description", "detection", "scope", "anonymization"]
)
def test_missing_top_level_field(field: str):
    tree = policy_tree()
    del tree[field]
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert field in _paths(exc_info.value)


def test_missing_nested_field_path():
    tree = policy_tree()
    del tree["detection"]["entities"][0]["confidence_threshold"]
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert "detection.entities.0.confidence_threshold" in _paths(exc_info.value)


def test_replace_requires_replacement():
    tree = policy_tree(entities=[
        {"type": "PHONE_NUMBER", "confidence_threshold": 0.8, "action": "replace"},
    ])
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert any("replacement" in path for path in _paths(exc_info.value))


def test_replace_with_replacement_passes():
    tree = policy_tree(entities=[
        {"type": "PHONE_NUMBER", "confidence_threshold": 0.8, "action": "replace", "replacement": "[PHONE]"},
    ])
    document = validate_schema(tree)
    assert document.entities[0].replacement == "[PHONE]"


def test_replacement_too_long():
    tree = policy_tree(entities=[
        {"type": "PERSON", "confidence_threshold": 0.8, "action": "replace", "replacement": "x" * 51},
    ])
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert "detection.entities.0.replacement" in _paths(exc_info.value)


@pytest.mark.parametrize("threshold", [-0.1, 1.5, "0.9", True])
def test_confidence_threshold_out_of_range_or_wrong_type(threshold):
    tree = policy_tree(entities=[
        {"type": "PERSON", "confidence_threshold": threshold, "action": "mask"},
    ])
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert "detection.entities.0.confidence_threshold" in _paths(exc_info.value)


@pytest.mark.parametrize("threshold", [0, 1, 0.5])
def test_confidence_threshold_bounds_inclusive(threshold):
    tree = policy_tree(entities=[
        {"type": "PERSON", "confidence_threshold": threshold, "action": "mask"},
    ])
    validate_schema(tree)


def test_unknown_entity_type_and_action():
    tree = policy_tree(entities=[
        {"type": "FAVORITE_COLOR", "confidence_threshold": 0.9, "action": "shred"},
    ])
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    paths = _paths(exc_info.value)
    assert "detection.entities.0.type" in paths
    assert "detection.entities.0.action" in paths


def test_unknown_fields_rejected():
    tree = policy_tree(owner="alice")
    tree["scope"]["encoding"] = "utf-8"
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    paths = _paths(exc_info.value)
    assert "owner" in paths
    assert "scope.encoding" in paths


def test_empty_lists_rejected():
    tree = policy_tree(entities=[])
    tree["scope"]["file_types"] = []
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    paths = _paths(exc_info.value)
    assert "detection.entities" in paths
    assert "scope.file_types" in paths


@pytest.mark.parametrize("version", ["1.0", "v1.0.0", "1.0.0-beta", 1])
def test_invalid_version_label(version):
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(policy_tree(version=version))
    assert "version" in _paths(exc_info.value)


@pytest.mark.parametrize("size", ["0B", "100 MB", "11GB", "100mb"])
def test_invalid_max_file_size(size: str):
    tree = policy_tree()
    tree["scope"]["max_file_size"] = size
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert "scope.max_file_size" in _paths(exc_info.value)


def test_non_boolean_flags_rejected():
    tree = policy_tree()
    tree["anonymization"]["audit_trail"] = "yes please"
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)
    assert "anonymization.audit_trail" in _paths(exc_info.value)


def test_all_violations_reported_at_once():
    """一次遍历报告全部违规，而不是遇到第一个就停止"""
    tree = policy_tree(entities=[
        {"type": "PERSON", "confidence_threshold": 2, "action": "mask"},
        {"type": "PHONE_NUMBER", "confidence_threshold": 0.8, "action": "replace"},
    ])
    del tree["description"]
    tree["scope"]["max_file_size"] = "huge"

    with pytest.raises(ValidationError) as exc_info:
        validate_schema(tree)

    paths = _paths(exc_info.value)
    assert "description" in paths
    assert "detection.entities.0.confidence_threshold" in paths
    assert "detection.entities.1.replacement" in paths
    assert "scope.max_file_size" in paths


def test_validation_error_to_dict():
    with pytest.raises(ValidationError) as exc_info:
        validate_schema(policy_tree(version="abc"))
    data = exc_info.value.to_dict()
    assert data["error"] == "validation"
    assert data["errors"][0]["path"] == "version"


# ============================================================
# 校验入口
# ============================================================

def test_validate_policy_text_valid():
    result = validate_policy_text(policy_yaml())
    assert result.valid
    assert result.errors == []
    assert result.document is not None


def test_validate_policy_text_invalid_does_not_raise():
    result = validate_policy_text(policy_yaml(version="one"))
    assert not result.valid
    assert result.error_kind == "validation"
    assert result.document is None


def test_validate_policy_text_document_error():
    result = validate_policy_text("- not\n- an\n- object\n")
    assert not result.valid
    assert result.error_kind == "document"
    assert result.errors[0].message == "Invalid YAML format: Content must be a valid YAML object"


ROUND_TRIP_DOCUMENTS = [
    policy_tree(),
    DEFAULT_POLICY_DOCUMENT,
    policy_tree(entities=[
        {"type": "PHONE_NUMBER", "confidence_threshold": 0.8, "action": "replace", "replacement": "[PHONE]"},
        {"type": "SSN", "confidence_threshold": 1, "action": "encrypt"},
    ]),
]


@pytest.mark.parametrize("tree", ROUND_TRIP_DOCUMENTS, ids=["basic", "default", "replace-and-int-threshold"])
def test_valid_document_round_trips(tree):
    document = load_policy_document(yaml.safe_dump(tree, sort_keys=False))
    again = load_policy_document(dump_policy_document(document))
    assert again == document
    assert yaml.safe_load(dump_policy_document(document)) == document.to_config()


def test_empty_mapping_reports_missing_fields():
    """空映射是对象，缺失字段由 schema 层逐一报告"""
    assert parse_policy_text("{}") == {}

    result = validate_policy_text("{}")
    assert not result.valid
    assert result.error_kind == "validation"
    paths = {e.path for e in result.errors}
    assert {"name", "version", "description", "detection", "scope", "anonymization"} <= paths


def test_lone_surrogate_is_document_error():
    with pytest.raises(DocumentError) as exc_info:
        parse_policy_text("name: \ud800")
    assert exc_info.value.message.startswith("YAML parsing error:")

    result = validate_policy_text("name: \ud800")
    assert not result.valid
    assert result.error_kind == "document"
