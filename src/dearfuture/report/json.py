"""
JSON output for Dear Future.

Machine-readable counterparts of the console views. Like the console views,
these show the locked placeholder instead of the message for unopened
capsules; use dearfuture.transfer for full-fidelity exports.
"""

import json
from typing import Any

from dearfuture.schema import Capsule, CapsuleStatistics


def capsule_to_dict(capsule: Capsule) -> dict[str, Any]:
    """Display-safe dictionary for one capsule."""
    return {
        "id": capsule.id,
        "title": capsule.title,
        "message": capsule.visible_message(),
        "status": capsule.status.value,
        "color": capsule.color.value,
        "category": capsule.category,
        "unlock_at": capsule.unlock_at.isoformat(),
        "created_at": capsule.created_at.isoformat(),
        "deleted_at": capsule.deleted_at.isoformat() if capsule.deleted_at else None,
    }


def generate_capsules_json(capsules: list[Capsule], view: str) -> str:
    """Serialize a capsule listing."""
    return json.dumps(
        {
            "view": view,
            "count": len(capsules),
            "capsules": [capsule_to_dict(c) for c in capsules],
        },
        indent=2,
        ensure_ascii=False,
    )


def generate_statistics_json(stats: CapsuleStatistics) -> str:
    """Serialize the statistics report."""
    return json.dumps(stats.model_dump(mode="json"), indent=2, ensure_ascii=False)
