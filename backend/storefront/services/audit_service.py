# Overview: Fire-and-forget audit sink for order and stock actions.

"""
Audit records are written AFTER the business transaction has committed, in
their own commit. A failing audit write is logged and dropped: it must never
undo or fail the operation it describes.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import AuditLog

logger = logging.getLogger(__name__)


def _encode(values: Any) -> str | None:
    if values is None:
        return None
    return json.dumps(values, default=str, sort_keys=True)


def log_audit_action(
    session: Session,
    *,
    user_id: int | None,
    action: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    old_values: Any = None,
    new_values: Any = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog | None:
    """
    Append an audit record. Never raises for storage failures.

    Returns the stored row, or None when the sink was unavailable.
    """
    try:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=_encode(old_values),
            new_values=_encode(new_values),
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
        )
        session.add(entry)
        session.commit()
        return entry
    except SQLAlchemyError:
        session.rollback()
        logger.warning(
            "Audit log write failed for %s %s:%s",
            action, entity_type, entity_id,
            exc_info=True,
        )
        return None
