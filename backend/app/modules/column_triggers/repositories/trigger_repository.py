"""
Column Message Trigger Repository
Database operations for the column_message_triggers table.

TRUST BOUNDARY: no method here checks that a column belongs to the caller.
Ownership is enforced by the API layer before the repository is reached.
"""
import math
from typing import Optional, List, Dict, Any
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.models.column_message_trigger import ColumnMessageTrigger
from app.modules.column_triggers.models.lead_column import LeadColumn
from app.modules.column_triggers.constants import TriggerCondition
from app.shared.core.constants import MAX_DELAY_HOURS
from app.shared.db.base import utc_now
from app.shared.db.errors import translate_db_errors
from app.shared.utils.exceptions import ValidationError, EntityNotFoundError

# Fields a caller may set through create/update
EDITABLE_FIELDS = (
    "user_id",
    "column_id",
    "message_title",
    "message_content",
    "trigger_condition",
    "delay_hours",
    "is_active",
)


def validate_trigger_fields(fields: Dict[str, Any]) -> None:
    """
    Check the invariants of a (possibly partial) trigger definition.

    Only keys present in `fields` are checked, so the same function serves
    create (full payload) and update (partial payload).

    Raises:
        ValidationError: on empty title/content, a delay that is not finite or
            outside 0..MAX_DELAY_HOURS, a non-boolean is_active, or an unknown condition
    """
    for name in ("message_title", "message_content"):
        if name in fields:
            value = fields[name]
            if value is None or not str(value).strip():
                raise ValidationError(name, "must not be empty")

    if "delay_hours" in fields and fields["delay_hours"] is not None:
        delay = fields["delay_hours"]
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or not math.isfinite(delay):
            raise ValidationError("delay_hours", "must be a finite number of hours")
        if delay < 0 or delay > MAX_DELAY_HOURS:
            raise ValidationError("delay_hours", f"must be between 0 and {MAX_DELAY_HOURS}")

    if "is_active" in fields and not isinstance(fields["is_active"], bool):
        raise ValidationError("is_active", "must be true or false")

    if "trigger_condition" in fields:
        condition = fields["trigger_condition"]
        if isinstance(condition, TriggerCondition):
            condition = condition.value
        if condition not in TriggerCondition.values():
            raise ValidationError(
                "trigger_condition",
                f"must be one of {', '.join(TriggerCondition.values())}"
            )

    for name in ("user_id", "column_id"):
        if name in fields and not fields[name]:
            raise ValidationError(name, "is required")


class TriggerRepository:
    """Repository for column trigger CRUD operations."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # ============================================
    # READ OPERATIONS
    # ============================================

    @translate_db_errors("list triggers by user")
    async def list_by_user(self, user_id: str) -> List[Dict]:
        """All triggers owned by a user, newest first."""
        query = (
            select(ColumnMessageTrigger)
            .where(ColumnMessageTrigger.user_id == user_id)
            .order_by(ColumnMessageTrigger.created_at.desc())
        )
        result = await self.db.execute(query)
        return [self._to_dict(t) for t in result.scalars().all()]

    @translate_db_errors("list triggers by column")
    async def list_by_column(self, column_id: str) -> List[Dict]:
        """All triggers attached to a column (any owner), newest first."""
        query = (
            select(ColumnMessageTrigger)
            .where(ColumnMessageTrigger.column_id == column_id)
            .order_by(ColumnMessageTrigger.created_at.desc())
        )
        result = await self.db.execute(query)
        return [self._to_dict(t) for t in result.scalars().all()]

    @translate_db_errors("list active triggers")
    async def list_active_by_column_and_condition(
        self,
        column_id: str,
        condition: str
    ) -> List[Dict]:
        """
        Triggers that fire for a move of kind `condition` on `column_id`.

        Matching rule: active, and stored condition is either `condition`
        itself or 'on_both'.
        """
        if isinstance(condition, TriggerCondition):
            condition = condition.value

        query = (
            select(ColumnMessageTrigger)
            .where(
                ColumnMessageTrigger.column_id == column_id,
                ColumnMessageTrigger.is_active.is_(True),
                ColumnMessageTrigger.trigger_condition.in_(TriggerCondition.matching(condition))
            )
            .order_by(ColumnMessageTrigger.created_at.desc())
        )
        result = await self.db.execute(query)
        return [self._to_dict(t) for t in result.scalars().all()]

    @translate_db_errors("list triggers by condition")
    async def list_by_condition(self, condition: str) -> List[Dict]:
        """All triggers whose stored condition is exactly `condition`."""
        if isinstance(condition, TriggerCondition):
            condition = condition.value

        query = (
            select(ColumnMessageTrigger)
            .where(ColumnMessageTrigger.trigger_condition == condition)
            .order_by(ColumnMessageTrigger.created_at.desc())
        )
        result = await self.db.execute(query)
        return [self._to_dict(t) for t in result.scalars().all()]

    @translate_db_errors("list triggers with column info")
    async def list_with_column_info(self, user_id: str) -> List[Dict]:
        """
        User's triggers labelled with their column's name and color.
        Triggers whose column no longer exists are left out (inner join).
        """
        query = (
            select(ColumnMessageTrigger, LeadColumn.name, LeadColumn.color)
            .join(LeadColumn, LeadColumn.id == ColumnMessageTrigger.column_id)
            .where(ColumnMessageTrigger.user_id == user_id)
            .order_by(ColumnMessageTrigger.created_at.desc())
        )
        result = await self.db.execute(query)

        triggers = []
        for trigger, column_name, column_color in result.all():
            data = self._to_dict(trigger)
            data["column_name"] = column_name
            data["column_color"] = column_color
            triggers.append(data)
        return triggers

    @translate_db_errors("get trigger")
    async def get_by_id(self, trigger_id: str) -> Optional[Dict]:
        """Fetch a single trigger; None when it does not exist."""
        trigger = await self.db.get(ColumnMessageTrigger, trigger_id)
        if trigger:
            return self._to_dict(trigger)
        return None

    # ============================================
    # WRITE OPERATIONS
    # ============================================

    @translate_db_errors("create trigger")
    async def create(self, fields: Dict[str, Any]) -> Dict:
        """
        Persist a new trigger.

        Returns the stored record including generated id and timestamps.
        Raises ValidationError before touching the database.
        """
        data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        data.setdefault("trigger_condition", TriggerCondition.ON_ENTER.value)
        data.setdefault("is_active", True)

        for required in ("user_id", "column_id", "message_title", "message_content"):
            if required not in data:
                raise ValidationError(required, "is required")

        validate_trigger_fields(data)
        if isinstance(data["trigger_condition"], TriggerCondition):
            data["trigger_condition"] = data["trigger_condition"].value

        trigger = ColumnMessageTrigger(**data)
        self.db.add(trigger)
        await self.db.flush()  # Get ID, let service manage commit
        await self.db.refresh(trigger)

        return self._to_dict(trigger)

    @translate_db_errors("update trigger")
    async def update(self, trigger_id: str, fields: Dict[str, Any]) -> Dict:
        """
        Merge `fields` into an existing trigger and stamp updated_at.

        Raises:
            EntityNotFoundError: no trigger with this id
            ValidationError: merged fields break an invariant
        """
        trigger = await self.db.get(ColumnMessageTrigger, trigger_id)
        if trigger is None:
            raise EntityNotFoundError("ColumnMessageTrigger", trigger_id)

        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        validate_trigger_fields(changes)
        if isinstance(changes.get("trigger_condition"), TriggerCondition):
            changes["trigger_condition"] = changes["trigger_condition"].value

        for name, value in changes.items():
            setattr(trigger, name, value)
        trigger.updated_at = utc_now()

        await self.db.flush()
        await self.db.refresh(trigger)

        return self._to_dict(trigger)

    async def toggle_active(self, trigger_id: str, is_active: bool) -> Dict:
        """Enable or disable a trigger."""
        return await self.update(trigger_id, {"is_active": is_active})

    @translate_db_errors("delete trigger")
    async def delete(self, trigger_id: str) -> bool:
        """
        Delete a trigger. Deleting a missing id is a no-op.
        Returns True if a row was removed.
        """
        stmt = delete(ColumnMessageTrigger).where(ColumnMessageTrigger.id == trigger_id)
        result = await self.db.execute(stmt)
        # No commit - let service layer manage transaction
        return result.rowcount > 0

    # ============================================
    # HELPER METHODS
    # ============================================

    def _to_dict(self, trigger: ColumnMessageTrigger) -> Dict:
        """Convert trigger model to dict."""
        return {
            "id": trigger.id,
            "user_id": trigger.user_id,
            "column_id": trigger.column_id,
            "message_title": trigger.message_title,
            "message_content": trigger.message_content,
            "trigger_condition": trigger.trigger_condition,
            "delay_hours": trigger.delay_hours,
            "is_active": trigger.is_active,
            "created_at": trigger.created_at,
            "updated_at": trigger.updated_at,
        }
