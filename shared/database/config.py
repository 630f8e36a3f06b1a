from __future__ import annotations

from typing import Any, Dict

from shared.config import config

MODEL_MODULES = ["shared.database.workflow_models"]

DATABASE_URL = config.database_url
DB_GENERATE_SCHEMAS = config.db_generate_schemas


def build_tortoise_config(database_url: str = DATABASE_URL) -> Dict[str, Any]:
    """Tortoise ORM config for ``database_url`` (any URL Tortoise understands)."""
    return {
        "connections": {"default": database_url},
        "apps": {
            "models": {
                "models": list(MODEL_MODULES),
                "default_connection": "default",
            },
        },
        "use_tz": True,
        "timezone": "UTC",
    }


TORTOISE_ORM: Dict[str, Any] = build_tortoise_config()


__all__ = [
    "DATABASE_URL",
    "DB_GENERATE_SCHEMAS",
    "MODEL_MODULES",
    "TORTOISE_ORM",
    "build_tortoise_config",
]
