"""Insert-only audit trail for match scheduling and grading actions.

No update or delete operations are exposed on the audit_logs collection.
"""

import logging
from typing import Optional

import obsada.database as _db
from obsada.utils import utcnow

logger = logging.getLogger("obsada.audit")

SYSTEM_ACTOR = "SYSTEM"


async def log_audit(
    *,
    actor_id: str,
    target_id: str,
    action: str,
    metadata: Optional[dict] = None,
) -> None:
    """Write an audit record.

    Args:
        actor_id: User id, a sender phone number for inbound SMS, or "SYSTEM".
        target_id: Match or user id affected.
        action: e.g. "MATCH_CREATED", "REFEREE_GRADE_SMS".
        metadata: Optional before/after values.
    """
    doc = {
        "timestamp": utcnow(),
        "actor_id": actor_id,
        "target_id": target_id,
        "action": action,
        "metadata": metadata or {},
    }
    try:
        await _db.db.audit_logs.insert_one(doc)
    except Exception:
        # Audit logging must never fail the request
        logger.exception("Failed to write audit log: action=%s actor=%s", action, actor_id)
