"""
策略模板展开

模板只列出实体类别与少量参数，展开后得到完整的策略文档：
- 每个实体填充模板阈值（缺省 0.8）与默认动作（缺省 redact）
- replace 动作填充替换文本（模板未给出时为 [REDACTED]）
- 附加标准 scope / anonymization 默认值

展开结果不被预先信任，仍需经过完整校验。
"""

import copy
from typing import Any, Dict, List, Mapping, Protocol

from policy_engine.policies.catalog import (
    DEFAULT_ACTION,
    DEFAULT_ANONYMIZATION_FLAGS,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_REPLACEMENT,
    DEFAULT_SCOPE,
    INITIAL_VERSION,
    Action,
    TemplateCategory,
)
from policy_engine.policies.parser import dump_policy_document


class TemplateLike(Protocol):
    name: str
    description: str
    category: str
    config: Dict[str, Any]


def _default_action(config: Mapping[str, Any]) -> Any:
    anonymization = config.get("anonymization") or {}
    return anonymization.get("default_anonymizer") or DEFAULT_ACTION.value


def _replacement_token(config: Mapping[str, Any]) -> Any:
    anonymizers = (config.get("anonymization") or {}).get("anonymizers") or {}
    replace = anonymizers.get(Action.REPLACE.value) or {}
    return replace.get("new_value") or DEFAULT_REPLACEMENT


def expand_entities(config: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """将模板的实体类别列表展开为完整实体规则"""
    action = _default_action(config)
    threshold = config.get("confidence_threshold")
    if threshold is None:
        threshold = DEFAULT_CONFIDENCE_THRESHOLD

    entities = []
    for entity_type in config.get("entities") or []:
        entity: Dict[str, Any] = {
            "type": entity_type,
            "confidence_threshold": threshold,
            "action": action,
        }
        if action == Action.REPLACE.value:
            entity["replacement"] = _replacement_token(config)
        entities.append(entity)
    return entities


def expand_template(template: TemplateLike) -> Dict[str, Any]:
    """展开为完整的策略文档树（未校验）"""
    config = template.config or {}
    return {
        "name": template.name,
        "version": INITIAL_VERSION,
        "description": template.description,
        "detection": {"entities": expand_entities(config)},
        "scope": copy.deepcopy(DEFAULT_SCOPE),
        "anonymization": {
            "default_action": _default_action(config),
            **DEFAULT_ANONYMIZATION_FLAGS,
        },
    }


def render_template_document(template: TemplateLike) -> str:
    """展开并序列化为 YAML 文本"""
    return dump_policy_document(expand_template(template))


def template_tags(template: TemplateLike) -> List[str]:
    category = template.category
    if isinstance(category, TemplateCategory):
        category = category.value
    return [str(category).lower()]


def template_policy_description(template: TemplateLike) -> str:
    return f"Policy created from {template.name} template"


# 内置监管模板（scripts/seed_templates.py 写入数据库）
BUILTIN_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "GDPR Compliance",
        "description": "Policy template for GDPR compliance with EU data protection requirements",
        "category": TemplateCategory.GDPR.value,
        "tags": ["gdpr", "eu", "privacy", "compliance"],
        "config": {
            "entities": ["PERSON", "EMAIL_ADDRESS", "PHONE_NUMBER", "IP_ADDRESS", "LOCATION"],
            "anonymization": {
                "default_anonymizer": "redact",
                "anonymizers": {"redact": {"type": "redact"}},
            },
            "confidence_threshold": 0.9,
        },
    },
    {
        "name": "HIPAA Healthcare",
        "description": "Healthcare data protection policy compliant with HIPAA regulations",
        "category": TemplateCategory.HIPAA.value,
        "tags": ["hipaa", "healthcare", "medical", "phi"],
        "config": {
            "entities": ["PERSON", "MEDICAL_LICENSE", "PHONE_NUMBER", "EMAIL_ADDRESS", "DATE_TIME"],
            "anonymization": {
                "default_anonymizer": "mask",
                "anonymizers": {
                    "mask": {"type": "mask", "masking_char": "X", "chars_to_mask": 6, "from_end": False}
                },
            },
            "confidence_threshold": 0.85,
        },
    },
    {
        "name": "Financial Services",
        "description": "Policy for financial data including credit cards, banking information",
        "category": TemplateCategory.FINANCE.value,
        "tags": ["finance", "banking", "credit-card", "pci"],
        "config": {
            "entities": ["CREDIT_CARD", "IBAN", "SSN", "PERSON", "PHONE_NUMBER"],
            "anonymization": {
                "default_anonymizer": "replace",
                "anonymizers": {"replace": {"type": "replace", "new_value": "[FINANCIAL_DATA]"}},
            },
            "confidence_threshold": 0.95,
        },
    },
]


def template_id_for(name: str) -> str:
    """模板 ID：名称小写，空白替换为连字符"""
    return "-".join(name.lower().split())
