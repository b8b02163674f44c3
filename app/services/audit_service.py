import logging
from typing import Optional, Dict, Any, Callable, Awaitable
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog


logger = logging.getLogger(__name__)


async def best_effort(
    db: AsyncSession,
    label: str,
    write: Callable[[], Awaitable[Any]],
) -> bool:
    """
    Run a side-channel write (audit, notification) after the primary commit.

    The write runs inside a SAVEPOINT and is committed on its own. A failure
    is logged and discarded; the already committed primary mutation stands.

    Returns:
        True if the write was committed
    """
    try:
        async with db.begin_nested():
            await write()
        await db.commit()
        return True
    except Exception:
        logger.exception("Best-effort %s write failed", label)
        return False


class AuditService:
    """
    Audit service for logging referral, payment and payout mutations.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        actor_type: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> AuditLog:
        """
        Create an audit log entry.

        Args:
            action: The action performed (CREATE, STATUS_CHANGE, PROCESS_PAYOUT, etc.)
            entity_type: Type of entity (REFERRAL, PAYMENT, PAYOUT)
            entity_id: ID of the affected entity
            actor_id: Partner or internal user performing the action
            actor_type: "partner" or "internal"
            old_values: Previous values (for updates)
            new_values: New values (for creates/updates)
            description: Human-readable description

        Returns:
            The created AuditLog entry
        """
        audit_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            actor_type=actor_type,
            old_values=old_values,
            new_values=new_values,
            description=description,
        )
        self.db.add(audit_log)
        await self.db.flush()
        return audit_log

    async def log_best_effort(self, **kwargs) -> bool:
        """log() wrapped in best_effort(); never raises."""
        return await best_effort(
            self.db,
            f"audit {kwargs.get('action')} {kwargs.get('entity_type')}",
            lambda: self.log(**kwargs),
        )
