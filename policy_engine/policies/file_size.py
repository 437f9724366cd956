"""
文件大小语义校验

格式 ``{digits}{K|M|G|T|}B``，按 1024 进制换算，
有效范围 (0, 10GB]
"""

import re
from typing import Optional

from policy_engine.policies.catalog import MAX_FILE_SIZE_BYTES

FILE_SIZE_PATTERN = re.compile(r"([0-9]+)([KMGT]?)B")

_UNIT_EXPONENTS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4}


def bytes_of(spec: str) -> Optional[int]:
    """将文件大小描述换算为字节数，不合法时返回 None"""
    if not isinstance(spec, str):
        return None

    match = FILE_SIZE_PATTERN.fullmatch(spec)
    if not match:
        return None

    size = int(match.group(1)) * 1024 ** _UNIT_EXPONENTS[match.group(2)]
    if size <= 0 or size > MAX_FILE_SIZE_BYTES:
        return None
    return size


def is_valid_file_size(spec: str) -> bool:
    return bytes_of(spec) is not None
