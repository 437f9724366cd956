"""
PII 策略引擎

将声明式 YAML 策略文档转换为经过校验、可版本化、可查询的策略实体
"""

__version__ = "0.1.0"
