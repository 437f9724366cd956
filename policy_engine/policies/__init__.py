"""
策略文档引擎（纯计算，无副作用）

原始文本 -> 语法解析 -> Schema 校验 -> 业务规则告警
"""

from policy_engine.policies.catalog import (
    Action,
    EntityType,
    FileType,
    TemplateCategory,
    unsupported_entity_types,
)
from policy_engine.policies.file_size import bytes_of, is_valid_file_size
from policy_engine.policies.parser import dump_policy_document, parse_policy_text
from policy_engine.policies.rules import business_rule_warnings
from policy_engine.policies.schema import PolicyDocument, validate_schema
from policy_engine.policies.validation import (
    ValidationResult,
    load_policy_document,
    validate_policy_text,
)

__all__ = [
    # Catalog
    "Action",
    "EntityType",
    "FileType",
    "TemplateCategory",
    "unsupported_entity_types",
    # File size
    "bytes_of",
    "is_valid_file_size",
    # Parser
    "parse_policy_text",
    "dump_policy_document",
    # Schema
    "PolicyDocument",
    "validate_schema",
    # Rules
    "business_rule_warnings",
    # Facade
    "ValidationResult",
    "validate_policy_text",
    "load_policy_document",
]
