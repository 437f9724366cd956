"""
内置模板写入

已存在的模板（按 ID）保持不变，重复执行是幂等的
"""

from typing import Any, Dict, List, Optional, Sequence

import structlog

from policy_engine.core.policy_repository import PolicyRepository
from policy_engine.database.base import utcnow
from policy_engine.database.models.policy import PolicyTemplate
from policy_engine.policies.templates import BUILTIN_TEMPLATES, template_id_for

logger = structlog.get_logger(__name__)


async def seed_builtin_templates(
    repository: PolicyRepository,
    templates: Optional[Sequence[Dict[str, Any]]] = None,
) -> List[str]:
    """
    写入内置模板

    Returns:
        本次新写入的模板 ID
    """
    created = []
    async with repository.unit_of_work():
        for data in templates if templates is not None else BUILTIN_TEMPLATES:
            template_id = template_id_for(data["name"])
            if await repository.find_template_by_id(template_id) is not None:
                logger.debug("policy_template_exists", template_id=template_id)
                continue

            now = utcnow()
            await repository.add_template(
                PolicyTemplate(
                    id=template_id,
                    name=data["name"],
                    description=data["description"],
                    category=data["category"],
                    config=data["config"],
                    tags=list(data.get("tags", [])),
                    downloads=0,
                    created_at=now,
                    updated_at=now,
                )
            )
            created.append(template_id)

    logger.info("policy_templates_seeded", created=len(created))
    return created
