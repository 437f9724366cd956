#!/usr/bin/env python3
"""
内置策略模板导入脚本

用法：
    python scripts/seed_templates.py
"""

import asyncio
import sys
from pathlib import Path

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from policy_engine.core.logging import setup_logging
from policy_engine.core.policy_repository import SqlAlchemyPolicyRepository
from policy_engine.core.template_seeder import seed_builtin_templates
from policy_engine.database.engine import async_session_maker, close_db


async def seed_all() -> None:
    async with async_session_maker() as session:
        created = await seed_builtin_templates(SqlAlchemyPolicyRepository(session))

    if created:
        for template_id in created:
            print(f"  ✅ Template: {template_id}")
    else:
        print("  ℹ️  All built-in templates already present")

    await close_db()


def main():
    setup_logging()
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
