"""
Trigger Activation Service
Turns a kanban lead move into scheduled WhatsApp messages.

Flow for one move:
1. Active 'on_enter' (and 'on_both') triggers of the destination column
2. Active 'on_exit' (and 'on_both') triggers of the source column, if any
3. For each trigger, in that order: personalize, compute send time,
   resolve the user's connected instance, record a pending ledger entry

Each trigger runs in its own savepoint. A failing trigger is logged and
reported; it never stops the others, and never fails the lead move.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.constants import TriggerCondition, SkipReason
from app.modules.column_triggers.repositories.trigger_repository import TriggerRepository
from app.modules.column_triggers.repositories.message_log_repository import MessageLogRepository
from app.modules.column_triggers.repositories.connection_repository import WhatsAppConnectionRepository
from app.modules.column_triggers.services.personalizer import render
from app.modules.column_triggers.services.schedule import compute_send_time
from app.shared.db.base import utc_now
from app.shared.utils.exceptions import PersistenceError

logger = logging.getLogger("trigger_activation")


@dataclass
class LeadMoveEvent:
    """A lead moved between kanban columns (or was created into one)."""
    lead_id: str
    lead_name: str
    to_column_id: str
    user_id: str
    lead_phone: Optional[str] = None
    from_column_id: Optional[str] = None
    move_event_id: Optional[str] = None  # Optional idempotency key for retried calls


@dataclass
class ActivationResult:
    """Outcome of one activation: what was scheduled, skipped, or failed."""
    scheduled: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduled_count": len(self.scheduled),
            "skipped_count": len(self.skipped),
            "failed_count": len(self.failed),
            "partial_failure": self.partial_failure,
            "scheduled": self.scheduled,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class TriggerActivationService:
    """Evaluates column triggers for lead moves and fills the message ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.trigger_repo = TriggerRepository(db)
        self.log_repo = MessageLogRepository(db)
        self.connection_repo = WhatsAppConnectionRepository(db)

    async def activate_on_lead_move(
        self,
        event: LeadMoveEvent,
        now: Optional[datetime] = None
    ) -> ActivationResult:
        """
        Schedule every matching trigger for a lead move.

        Args:
            event: The lead move
            now: Reference time for delays (defaults to current UTC time)

        Returns:
            ActivationResult. Lookup failures for the trigger lists propagate,
            and a failed final commit surfaces as PersistenceError; anything
            that goes wrong while handling a single trigger is captured in
            `failed`.
        """
        now = now or utc_now()
        result = ActivationResult()

        enter_triggers = await self.trigger_repo.list_active_by_column_and_condition(
            event.to_column_id,
            TriggerCondition.ON_ENTER
        )

        exit_triggers: List[Dict] = []
        if event.from_column_id:
            exit_triggers = await self.trigger_repo.list_active_by_column_and_condition(
                event.from_column_id,
                TriggerCondition.ON_EXIT
            )

        worklist = enter_triggers + exit_triggers
        if not worklist:
            logger.debug(f"No active triggers for lead {event.lead_id} move to column {event.to_column_id}")
            return result

        logger.info(
            f"Lead {event.lead_id} moved to column {event.to_column_id}: "
            f"{len(enter_triggers)} enter + {len(exit_triggers)} exit triggers"
        )

        for trigger in worklist:
            try:
                async with self.db.begin_nested():  # Savepoint per trigger
                    await self._process_trigger(trigger, event, now, result)
            except Exception as e:
                logger.error(f"Error processing trigger {trigger['id']} for lead {event.lead_id}: {str(e)}")
                result.failed.append({"trigger_id": trigger["id"], "error": str(e)})

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Commit failed for lead {event.lead_id} activation: {str(e)}")
            raise PersistenceError("commit activation", e) from e

        logger.info(
            f"Activation for lead {event.lead_id} done: {len(result.scheduled)} scheduled, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    async def _process_trigger(
        self,
        trigger: Dict,
        event: LeadMoveEvent,
        now: datetime,
        result: ActivationResult
    ) -> None:
        """Personalize, schedule and record one trigger for one lead."""
        trigger_id = trigger["id"]

        if not event.lead_phone:
            logger.warning(f"Lead {event.lead_name} has no phone number, skipping trigger {trigger_id}")
            result.skipped.append({"trigger_id": trigger_id, "reason": SkipReason.NO_PHONE.value})
            return

        message = render(trigger["message_content"], {"name": event.lead_name, "phone": event.lead_phone})
        scheduled_for = compute_send_time(trigger.get("delay_hours"), now)

        instance_name = await self.connection_repo.get_connected_instance_name(event.user_id)
        if not instance_name:
            logger.warning(f"No connected WhatsApp instance for user {event.user_id}, skipping trigger {trigger_id}")
            result.skipped.append({"trigger_id": trigger_id, "reason": SkipReason.NO_CONNECTION.value})
            return

        if event.move_event_id and await self.log_repo.exists_for_move_event(trigger_id, event.move_event_id):
            logger.warning(f"Move event {event.move_event_id} already scheduled for trigger {trigger_id}, skipping")
            result.skipped.append({"trigger_id": trigger_id, "reason": SkipReason.DUPLICATE_MOVE_EVENT.value})
            return

        entry = await self.log_repo.create_entry(
            trigger_id=trigger_id,
            lead_id=event.lead_id,
            user_id=event.user_id,
            message_content=message,
            whatsapp_number=event.lead_phone,
            instance_name=instance_name,
            scheduled_for=scheduled_for,
            move_event_id=event.move_event_id
        )
        result.scheduled.append(entry)

        logger.info(f"Trigger {trigger_id} scheduled for lead {event.lead_name} at {scheduled_for} via {instance_name}")
