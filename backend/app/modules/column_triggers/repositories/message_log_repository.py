"""
Automated Message Log Repository
Database operations for the automated_message_logs table (the ledger).

State guard: every transition is a conditional UPDATE on status = 'pending',
so two pollers racing on the same row cannot both win.
"""
from datetime import datetime, timedelta
from typing import Optional, List, Dict
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.models.automated_message_log import AutomatedMessageLog
from app.modules.column_triggers.constants import MessageLogStatus
from app.shared.core.constants import DEFAULT_PAGE_SIZE
from app.shared.db.base import utc_now
from app.shared.db.errors import translate_db_errors
from app.shared.utils.exceptions import EntityNotFoundError, InvalidStateError


class MessageLogRepository:
    """Repository for scheduled message ledger operations."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # ============================================
    # CREATE OPERATIONS
    # ============================================

    @translate_db_errors("create message log")
    async def create_entry(
        self,
        trigger_id: str,
        lead_id: str,
        user_id: str,
        message_content: str,
        whatsapp_number: str,
        instance_name: str,
        scheduled_for: datetime,
        move_event_id: Optional[str] = None
    ) -> Dict:
        """
        Record a new pending message.
        Called once per (trigger, lead move) activation.
        """
        entry = AutomatedMessageLog(
            trigger_id=trigger_id,
            lead_id=lead_id,
            user_id=user_id,
            message_content=message_content,
            whatsapp_number=whatsapp_number,
            instance_name=instance_name,
            scheduled_for=scheduled_for,
            status=MessageLogStatus.PENDING.value,
            retry_count=0,
            move_event_id=move_event_id
        )

        self.db.add(entry)
        await self.db.flush()  # Flush to get ID, let service manage commit
        await self.db.refresh(entry)

        return self._to_dict(entry)

    # ============================================
    # READ OPERATIONS
    # ============================================

    @translate_db_errors("get message log")
    async def get_by_id(self, log_id: str) -> Optional[Dict]:
        """Fetch a single ledger entry by ID."""
        entry = await self._load(log_id)
        if entry:
            return self._to_dict(entry)
        return None

    @translate_db_errors("check move event")
    async def exists_for_move_event(self, trigger_id: str, move_event_id: str) -> bool:
        """True if this trigger already produced an entry for this lead move."""
        query = (
            select(func.count())
            .select_from(AutomatedMessageLog)
            .where(
                AutomatedMessageLog.trigger_id == trigger_id,
                AutomatedMessageLog.move_event_id == move_event_id
            )
        )
        result = await self.db.execute(query)
        return (result.scalar() or 0) > 0

    @translate_db_errors("list due messages")
    async def list_due_pending(self, now: datetime, limit: Optional[int] = None) -> List[Dict]:
        """
        Pending entries whose scheduled_for is at or before `now`,
        oldest due first. This is the dispatch poller's pull query.
        """
        query = (
            select(AutomatedMessageLog)
            .where(
                AutomatedMessageLog.status == MessageLogStatus.PENDING.value,
                AutomatedMessageLog.scheduled_for <= now
            )
            .order_by(AutomatedMessageLog.scheduled_for.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return [self._to_dict(e) for e in result.scalars().all()]

    @translate_db_errors("list messages for lead")
    async def list_for_lead(self, lead_id: str) -> List[Dict]:
        """Automated message history for a lead, newest first."""
        query = (
            select(AutomatedMessageLog)
            .where(AutomatedMessageLog.lead_id == lead_id)
            .order_by(AutomatedMessageLog.created_at.desc())
        )
        result = await self.db.execute(query)
        return [self._to_dict(e) for e in result.scalars().all()]

    @translate_db_errors("list messages for user")
    async def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> List[Dict]:
        """A user's ledger entries with optional status filter, newest first."""
        query = select(AutomatedMessageLog).where(AutomatedMessageLog.user_id == user_id)

        if status:
            query = query.where(AutomatedMessageLog.status == status)

        query = query.order_by(AutomatedMessageLog.created_at.desc()).offset(skip).limit(limit)

        result = await self.db.execute(query)
        return [self._to_dict(e) for e in result.scalars().all()]

    # ============================================
    # STATE TRANSITIONS
    # ============================================

    async def mark_sent(self, log_id: str, sent_at: datetime) -> Dict:
        """
        pending → sent. Sets sent_at.

        Raises:
            EntityNotFoundError: unknown id
            InvalidStateError: entry is already sent or failed
        """
        return await self._transition(
            log_id,
            MessageLogStatus.SENT.value,
            status=MessageLogStatus.SENT.value,
            sent_at=sent_at,
        )

    async def mark_failed(self, log_id: str, error_message: str) -> Dict:
        """
        pending → failed. Sets error_message.

        Raises:
            EntityNotFoundError: unknown id
            InvalidStateError: entry is already sent or failed
        """
        return await self._transition(
            log_id,
            MessageLogStatus.FAILED.value,
            status=MessageLogStatus.FAILED.value,
            error_message=error_message,
        )

    async def record_retry(
        self,
        log_id: str,
        error_message: str,
        now: datetime,
        retry_delay: timedelta
    ) -> Dict:
        """
        Keep the entry pending and push it back by `retry_delay`.

        Increments retry_count and remembers the attempt's error in
        last_retry_error (error_message stays reserved for 'failed').
        """
        return await self._transition(
            log_id,
            "retry",
            retry_count=AutomatedMessageLog.retry_count + 1,
            last_retry_at=now,
            last_retry_error=error_message,
            scheduled_for=now + retry_delay,
        )

    # ============================================
    # HELPER METHODS
    # ============================================

    @translate_db_errors("update message log")
    async def _transition(self, log_id: str, attempted: str, **values) -> Dict:
        """Conditional update guarded by status = 'pending'."""
        values["updated_at"] = utc_now()

        stmt = (
            update(AutomatedMessageLog)
            .where(
                AutomatedMessageLog.id == log_id,
                AutomatedMessageLog.status == MessageLogStatus.PENDING.value
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        # No commit - let service layer manage transaction

        entry = await self._load(log_id)
        if result.rowcount == 0:
            if entry is None:
                raise EntityNotFoundError("AutomatedMessageLog", log_id)
            raise InvalidStateError("AutomatedMessageLog", log_id, entry.status, attempted)

        return self._to_dict(entry)

    async def _load(self, log_id: str) -> Optional[AutomatedMessageLog]:
        """Load an entry, bypassing stale identity-map state."""
        query = (
            select(AutomatedMessageLog)
            .where(AutomatedMessageLog.id == log_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _to_dict(self, entry: AutomatedMessageLog) -> Dict:
        """Convert ledger model to dict."""
        return {
            "id": entry.id,
            "trigger_id": entry.trigger_id,
            "lead_id": entry.lead_id,
            "user_id": entry.user_id,
            "message_content": entry.message_content,
            "whatsapp_number": entry.whatsapp_number,
            "instance_name": entry.instance_name,
            "status": entry.status,
            "scheduled_for": entry.scheduled_for,
            "sent_at": entry.sent_at,
            "error_message": entry.error_message,
            "retry_count": entry.retry_count,
            "last_retry_at": entry.last_retry_at,
            "last_retry_error": entry.last_retry_error,
            "move_event_id": entry.move_event_id,
            "created_at": entry.created_at,
            "updated_at": entry.updated_at,
        }
