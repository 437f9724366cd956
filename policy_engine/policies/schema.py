"""
策略文档 Schema 校验

结构/类型/枚举/范围规则由 pydantic 模型承担（封闭 schema，未知字段一律拒绝），
跨字段规则是独立的纯函数。所有校验器各自返回违规列表，
拼接后再决定成败，从而一次性报告全部违规。
"""

from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from policy_engine.core.errors import DocumentError, ValidationError, Violation
from policy_engine.policies.catalog import (
    DESCRIPTION_MAX_LENGTH,
    MAX_REPLACEMENT_LENGTH,
    NAME_MAX_LENGTH,
    Action,
    EntityType,
    FileType,
)
from policy_engine.policies.file_size import FILE_SIZE_PATTERN, bytes_of


PolicyName = Annotated[
    str, StringConstraints(strict=True, min_length=1, max_length=NAME_MAX_LENGTH)
]
PolicyVersionLabel = Annotated[
    str, StringConstraints(strict=True, pattern=r"^[0-9]+\.[0-9]+\.[0-9]+$")
]
PolicyDescription = Annotated[
    str, StringConstraints(strict=True, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
]
Replacement = Annotated[
    str, StringConstraints(strict=True, min_length=1, max_length=MAX_REPLACEMENT_LENGTH)
]
ConfidenceThreshold = Annotated[float, Field(strict=True, ge=0, le=1)]
StrictFlag = Annotated[bool, Field(strict=True)]


class _PolicyModel(BaseModel):
    """封闭 schema 基类"""

    model_config = ConfigDict(extra="forbid", frozen=True)


class EntityRule(_PolicyModel):
    """单个实体检测规则"""
    type: EntityType
    confidence_threshold: ConfidenceThreshold
    action: Action
    # 仅 action=replace 时生效，其余动作忽略
    replacement: Optional[Replacement] = None


class DetectionConfig(_PolicyModel):
    entities: List[EntityRule] = Field(..., min_length=1)


class ScopeConfig(_PolicyModel):
    """适用范围"""
    file_types: List[FileType] = Field(..., min_length=1)
    max_file_size: Annotated[str, Field(strict=True)]

    @field_validator("max_file_size")
    @classmethod
    def validate_max_file_size(cls, v: str) -> str:
        if not FILE_SIZE_PATTERN.fullmatch(v):
            raise PydanticCustomError(
                "file_size_pattern",
                "String should match pattern '^[0-9]+[KMGT]?B$'",
            )
        if bytes_of(v) is None:
            raise PydanticCustomError(
                "file_size_range",
                "File size must be greater than 0B and at most 10GB",
            )
        return v


class AnonymizationConfig(_PolicyModel):
    default_action: Action
    preserve_format: StrictFlag
    audit_trail: StrictFlag


class PolicyDocument(_PolicyModel):
    """
    已校验的策略文档

    只在校验过程中短暂存在；持久化的是其 JSON 快照
    """
    name: PolicyName
    version: PolicyVersionLabel
    description: PolicyDescription
    detection: DetectionConfig
    scope: ScopeConfig
    anonymization: AnonymizationConfig

    @property
    def entities(self) -> List[EntityRule]:
        return self.detection.entities

    def content(self) -> Dict[str, Any]:
        """配置内容（detection/scope/anonymization），用于判断是否需要新版本"""
        return self.model_dump(
            mode="json",
            include={"detection", "scope", "anonymization"},
            exclude_none=True,
        )

    def to_config(self) -> Dict[str, Any]:
        """完整 JSON 快照"""
        return self.model_dump(mode="json", exclude_none=True)


# ============================================================
# 校验器流水线
# ============================================================

def _format_path(loc: Tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def _model_violations(tree: Dict[str, Any]) -> Tuple[Optional[PolicyDocument], List[Violation]]:
    """结构/类型/枚举/范围规则"""
    try:
        return PolicyDocument.model_validate(tree), []
    except PydanticValidationError as e:
        return None, [
            Violation(path=_format_path(err["loc"]), message=err["msg"])
            for err in e.errors(include_url=False)
        ]


def _replacement_violations(tree: Dict[str, Any]) -> List[Violation]:
    """action=replace 时必须提供 replacement"""
    detection = tree.get("detection")
    if not isinstance(detection, dict):
        return []
    entities = detection.get("entities")
    if not isinstance(entities, list):
        return []

    violations = []
    for index, entity in enumerate(entities):
        if not isinstance(entity, dict):
            continue
        if entity.get("action") == Action.REPLACE.value and entity.get("replacement") is None:
            violations.append(
                Violation(
                    path=f"detection.entities.{index}.replacement",
                    message="Field required when action is 'replace'",
                )
            )
    return violations


CROSS_FIELD_RULES: List[Callable[[Dict[str, Any]], List[Violation]]] = [
    _replacement_violations,
]


def validate_schema(tree: Dict[str, Any]) -> PolicyDocument:
    """
    校验文档树并返回强类型文档

    Raises:
        DocumentError: 输入不是对象
        ValidationError: 携带全部违规
    """
    if not isinstance(tree, dict):
        raise DocumentError("Invalid YAML format: Content must be a valid YAML object")

    document, violations = _model_violations(tree)
    for rule in CROSS_FIELD_RULES:
        violations.extend(rule(tree))

    if violations or document is None:
        raise ValidationError(violations)
    return document
