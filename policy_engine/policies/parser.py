"""
策略文档语法解析与序列化

原始文本为 YAML（JSON 作为 YAML 子集同样可用）。
解析只负责结构：能否解码、顶层是否为对象；字段规则交给 schema 层。
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Union

import yaml

from policy_engine.core.config import settings
from policy_engine.core.errors import DocumentError

if TYPE_CHECKING:
    from policy_engine.policies.schema import PolicyDocument


NOT_AN_OBJECT_MESSAGE = "Invalid YAML format: Content must be a valid YAML object"


class _NoAliasDumper(yaml.SafeDumper):
    """输出中不使用锚点/别名"""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def parse_policy_text(raw_text: str, max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """
    将原始文本解码为未类型化的文档树

    Args:
        raw_text: YAML 文本
        max_bytes: 文本字节上限，默认取 POLICY_MAX_DOCUMENT_BYTES

    Returns:
        顶层映射

    Raises:
        DocumentError: 文本过大、语法错误或顶层不是对象
    """
    if not isinstance(raw_text, str):
        raise DocumentError(NOT_AN_OBJECT_MESSAGE)

    limit = max_bytes if max_bytes is not None else settings.POLICY_MAX_DOCUMENT_BYTES
    try:
        size = len(raw_text.encode("utf-8"))
    except UnicodeEncodeError as e:
        raise DocumentError(f"YAML parsing error: invalid character at position {e.start}") from e
    if size > limit:
        raise DocumentError(f"Policy document too large: {size} bytes (limit {limit})")

    try:
        tree = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise DocumentError(f"YAML parsing error: {e}") from e

    # 空文本解析为 None；空映射 {} 仍是对象，交给 schema 层报告缺失字段
    if not isinstance(tree, dict):
        raise DocumentError(NOT_AN_OBJECT_MESSAGE)

    return tree


def dump_policy_document(document: Union["PolicyDocument", Dict[str, Any]]) -> str:
    """将策略文档序列化为 YAML 文本（字段顺序不保证语义）"""
    if isinstance(document, dict):
        data = document
    else:
        data = document.model_dump(mode="json", exclude_none=True)

    return yaml.dump(
        data,
        Dumper=_NoAliasDumper,
        indent=2,
        width=120,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
