"""
业务规则校验

在 schema 已通过的文档上运行，只产出告警，从不阻止持久化
"""

from typing import List

from policy_engine.policies.catalog import LOW_CONFIDENCE_THRESHOLD, Action
from policy_engine.policies.file_size import is_valid_file_size
from policy_engine.policies.schema import PolicyDocument


def business_rule_warnings(document: PolicyDocument) -> List[str]:
    """返回告警列表（可能为空）"""
    warnings: List[str] = []
    entities = document.entities

    # 重复的实体类型（每个类型只报告一次）
    seen = set()
    duplicates: List[str] = []
    for entity in entities:
        type_name = entity.type.value
        if type_name in seen and type_name not in duplicates:
            duplicates.append(type_name)
        seen.add(type_name)
    if duplicates:
        warnings.append(f"Duplicate entity types found: {', '.join(duplicates)}")

    low_confidence = [
        e.type.value for e in entities if e.confidence_threshold < LOW_CONFIDENCE_THRESHOLD
    ]
    if low_confidence:
        warnings.append(
            f"Low confidence thresholds detected for: {', '.join(low_confidence)} "
            f"(consider >= {LOW_CONFIDENCE_THRESHOLD})"
        )

    # schema 层已强制，此处兜底
    missing_replacement = [
        e.type.value for e in entities if e.action == Action.REPLACE and not e.replacement
    ]
    if missing_replacement:
        warnings.append(
            f"Replace actions missing replacement text: {', '.join(missing_replacement)}"
        )

    if not is_valid_file_size(document.scope.max_file_size):
        warnings.append(f"Invalid file size format: {document.scope.max_file_size}")

    return warnings
