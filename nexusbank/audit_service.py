"""
Audit Logging Service - append-only trail of administrative actions.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditLog

log = logging.getLogger(__name__)


class AuditService:
    """Stages audit rows inside the caller's unit of work."""

    @staticmethod
    def record(
        db: AsyncSession,
        action: str,
        admin_id: Optional[uuid.UUID],
        target_customer_id: Optional[uuid.UUID],
        details: str,
    ) -> AuditLog:
        """
        Add an audit entry to the session without committing.

        The entry is written by the same commit as the action it describes, so
        an action is never persisted without its audit row or vice versa.
        """
        entry = AuditLog(
            admin_id=admin_id,
            action=action,
            target_customer_id=target_customer_id,
            details=details,
        )
        db.add(entry)
        log.info("AUDIT: %s by %s on %s: %s", action, admin_id, target_customer_id, details)
        return entry
