"""
核心服务层

配置、日志、错误类型、审计以及策略版本管理
"""
