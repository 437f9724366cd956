"""
策略文档校验入口

validate_policy_text: 面向调用方，不抛异常，返回 valid/document/errors/warnings
load_policy_document: 面向版本管理，失败时抛 DocumentError / ValidationError
"""

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from policy_engine.core.errors import DocumentError, ValidationError, Violation
from policy_engine.middleware.metrics import record_policy_validation
from policy_engine.policies.parser import parse_policy_text
from policy_engine.policies.rules import business_rule_warnings
from policy_engine.policies.schema import PolicyDocument, validate_schema

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """校验结果"""
    valid: bool
    document: Optional[PolicyDocument] = None
    errors: List[Violation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None  # document | validation


def load_policy_document(raw_text: str) -> PolicyDocument:
    """
    解析并校验原始文本

    Raises:
        DocumentError: 文本不可解析
        ValidationError: schema 违规（完整列表）
    """
    try:
        document = validate_schema(parse_policy_text(raw_text))
    except DocumentError:
        record_policy_validation("document_error")
        raise
    except ValidationError as e:
        record_policy_validation("invalid")
        logger.info("policy_validation_failed", error_count=len(e.errors))
        raise

    record_policy_validation("valid")
    return document


def validate_policy_text(raw_text: str) -> ValidationResult:
    """校验原始文本，附带业务规则告警"""
    try:
        document = load_policy_document(raw_text)
    except DocumentError as e:
        return ValidationResult(
            valid=False,
            errors=[Violation(path="", message=e.message)],
            error_kind=e.kind,
        )
    except ValidationError as e:
        return ValidationResult(valid=False, errors=e.errors, error_kind=e.kind)

    return ValidationResult(
        valid=True,
        document=document,
        warnings=business_rule_warnings(document),
    )
