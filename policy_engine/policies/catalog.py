"""
实体目录

支持的 PII 实体类型、匿名化动作、文件类型与模板分类的唯一来源。
Schema 校验、业务规则与模板展开都从这里取值。
"""

from enum import Enum
from typing import Any, Dict, Iterable, List


class EntityType(str, Enum):
    """可检测的个人数据类别"""
    PERSON = "PERSON"
    EMAIL_ADDRESS = "EMAIL_ADDRESS"
    PHONE_NUMBER = "PHONE_NUMBER"
    CREDIT_CARD = "CREDIT_CARD"
    SSN = "SSN"
    IBAN = "IBAN"
    IP_ADDRESS = "IP_ADDRESS"
    DATE_TIME = "DATE_TIME"
    LOCATION = "LOCATION"
    ORGANIZATION = "ORGANIZATION"
    MEDICAL_LICENSE = "MEDICAL_LICENSE"
    US_DRIVER_LICENSE = "US_DRIVER_LICENSE"
    US_PASSPORT = "US_PASSPORT"
    UK_NHS = "UK_NHS"
    URL = "URL"


class Action(str, Enum):
    """匿名化动作"""
    REDACT = "redact"
    MASK = "mask"
    REPLACE = "replace"
    ENCRYPT = "encrypt"


class FileType(str, Enum):
    """策略适用的文件扩展名"""
    TXT = "txt"
    CSV = "csv"
    JSON = "json"
    PDF = "pdf"
    DOCX = "docx"
    XLSX = "xlsx"
    PPTX = "pptx"
    JPG = "jpg"
    PNG = "png"
    TIFF = "tiff"


class TemplateCategory(str, Enum):
    """策略模板分类"""
    GENERAL = "GENERAL"
    HEALTHCARE = "HEALTHCARE"
    FINANCE = "FINANCE"
    LEGAL = "LEGAL"
    GDPR = "GDPR"
    HIPAA = "HIPAA"
    PCI_DSS = "PCI_DSS"
    CUSTOM = "CUSTOM"


# ============================================================
# 取值边界
# ============================================================

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
MAX_REPLACEMENT_LENGTH = 50
MAX_FILE_SIZE_BYTES = 10 * 1024 ** 3  # 10GB
LOW_CONFIDENCE_THRESHOLD = 0.5

INITIAL_VERSION = "1.0.0"


# ============================================================
# 模板展开默认值
# ============================================================

DEFAULT_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_REPLACEMENT = "[REDACTED]"
DEFAULT_ACTION = Action.REDACT
DEFAULT_SCOPE: Dict[str, Any] = {
    "file_types": [
        FileType.TXT.value,
        FileType.CSV.value,
        FileType.PDF.value,
        FileType.DOCX.value,
        FileType.XLSX.value,
    ],
    "max_file_size": "100MB",
}
DEFAULT_ANONYMIZATION_FLAGS: Dict[str, bool] = {
    "preserve_format": True,
    "audit_trail": True,
}


# 内置默认策略
DEFAULT_POLICY_DOCUMENT: Dict[str, Any] = {
    "name": "Default PII Detection Policy",
    "version": INITIAL_VERSION,
    "description": "Default policy for PII detection and protection",
    "detection": {
        "entities": [
            {"type": "EMAIL_ADDRESS", "confidence_threshold": 0.9, "action": "redact"},
            {"type": "PERSON", "confidence_threshold": 0.85, "action": "mask"},
            {
                "type": "PHONE_NUMBER",
                "confidence_threshold": 0.8,
                "action": "replace",
                "replacement": "[PHONE]",
            },
            {"type": "CREDIT_CARD", "confidence_threshold": 0.95, "action": "redact"},
            {"type": "SSN", "confidence_threshold": 0.95, "action": "redact"},
        ]
    },
    "scope": {
        "file_types": ["txt", "csv", "pdf", "docx"],
        "max_file_size": "100MB",
    },
    "anonymization": {
        "default_action": "redact",
        "preserve_format": True,
        "audit_trail": True,
    },
}


SUPPORTED_ENTITY_TYPES = frozenset(e.value for e in EntityType)


def unsupported_entity_types(types: Iterable[str]) -> List[str]:
    """返回不在目录中的实体类型（保持输入顺序）"""
    return [t for t in types if t not in SUPPORTED_ENTITY_TYPES]
