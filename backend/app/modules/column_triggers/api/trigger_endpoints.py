"""
Column Trigger API Endpoints
Trigger CRUD, lead-move activation, ledger reads and the dispatch hook.

Authentication happens upstream; the caller's user id arrives in the
X-User-Id header. Ownership of triggers is checked here, not in the
repository.
"""
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.shared.db.session import get_db
from app.shared.utils.exceptions import (
    ValidationError,
    EntityNotFoundError,
    PersistenceError,
    InvalidStateError,
)
from app.modules.column_triggers.constants import MessageLogStatus
from app.modules.column_triggers.repositories.trigger_repository import TriggerRepository
from app.modules.column_triggers.repositories.message_log_repository import MessageLogRepository
from app.modules.column_triggers.services.activation_service import TriggerActivationService, LeadMoveEvent
from app.modules.column_triggers.services.dispatch_poller import DispatchPoller
from app.modules.column_triggers.services.whatsapp_dispatcher import WhatsAppTextDispatcher
from app.modules.column_triggers.schemas.trigger_schemas import (
    # Request schemas
    CreateTriggerRequest,
    UpdateTriggerRequest,
    ToggleTriggerRequest,
    LeadMoveRequest,
    # Response schemas
    TriggerResponse,
    TriggerWithColumnResponse,
    TriggersListResponse,
    MessageLogItem,
    MessageLogsListResponse,
    ActivationResponse,
    DispatchRunResponse,
)

router = APIRouter()
logger = logging.getLogger("column_triggers_api")


# ============================================
# DEPENDENCIES & HELPERS
# ============================================

def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Caller identity, set by the authenticating gateway."""
    if not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user id")
    return x_user_id


def get_dispatcher() -> WhatsAppTextDispatcher:
    return WhatsAppTextDispatcher()


def _to_http_error(e: Exception) -> HTTPException:
    """Map domain exceptions to HTTP errors."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, EntityNotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, InvalidStateError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail="Storage temporarily unavailable")
    return HTTPException(status_code=500, detail=str(e))


async def _get_owned_trigger(repo: TriggerRepository, trigger_id: str, user_id: str) -> dict:
    """Load a trigger and make sure the caller owns it (404 / 403 otherwise)."""
    try:
        trigger = await repo.get_by_id(trigger_id)
    except PersistenceError as e:
        raise _to_http_error(e)

    if not trigger:
        raise HTTPException(status_code=404, detail="Trigger not found")
    if trigger["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Trigger belongs to another user")
    return trigger


# ============================================
# TRIGGER READ ENDPOINTS
# ============================================

@router.get("", response_model=TriggersListResponse, summary="List my triggers")
async def list_triggers(
    with_column_info: bool = Query(default=False, description="Include column name and color"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """All triggers owned by the caller, newest first."""
    repo = TriggerRepository(db)
    try:
        if with_column_info:
            triggers = await repo.list_with_column_info(user_id)
        else:
            triggers = await repo.list_by_user(user_id)
    except PersistenceError as e:
        raise _to_http_error(e)

    return TriggersListResponse(
        triggers=[TriggerWithColumnResponse(**t) for t in triggers],
        total_count=len(triggers)
    )


@router.get("/columns/{column_id}", response_model=TriggersListResponse, summary="List triggers of a column")
async def list_column_triggers(
    column_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Triggers attached to a column, restricted to the caller's own."""
    repo = TriggerRepository(db)
    try:
        triggers = await repo.list_by_column(column_id)
    except PersistenceError as e:
        raise _to_http_error(e)

    own = [t for t in triggers if t["user_id"] == user_id]
    return TriggersListResponse(
        triggers=[TriggerWithColumnResponse(**t) for t in own],
        total_count=len(own)
    )


# ============================================
# LEDGER & DISPATCH ENDPOINTS
# ============================================

@router.get("/logs", response_model=MessageLogsListResponse, summary="List automated messages")
async def list_message_logs(
    status: Optional[MessageLogStatus] = Query(default=None, description="Filter: pending, sent, failed"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """The caller's automated message ledger, newest first."""
    repo = MessageLogRepository(db)
    try:
        logs = await repo.list_for_user(
            user_id,
            status=status.value if status else None,
            skip=skip,
            limit=limit
        )
    except PersistenceError as e:
        raise _to_http_error(e)

    return MessageLogsListResponse(
        logs=[MessageLogItem(**entry) for entry in logs],
        total_count=len(logs),
        skip=skip,
        limit=limit
    )


@router.post("/activations", response_model=ActivationResponse, summary="Activate triggers for a lead move")
async def activate_triggers(
    request: LeadMoveRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Schedule messages for every trigger matching a lead move.

    Per-trigger problems (no phone, no connected instance, storage errors)
    are reported in the body; they never turn into an HTTP error.
    """
    service = TriggerActivationService(db)
    event = LeadMoveEvent(
        lead_id=request.lead_id,
        lead_name=request.lead_name,
        lead_phone=request.lead_phone,
        from_column_id=request.from_column_id,
        to_column_id=request.to_column_id,
        user_id=user_id,
        move_event_id=request.move_event_id
    )

    try:
        result = await service.activate_on_lead_move(event)
    except PersistenceError as e:
        await db.rollback()
        raise _to_http_error(e)

    return ActivationResponse(**result.to_dict())


@router.post("/dispatch/run", response_model=DispatchRunResponse, summary="Run one dispatch pass")
async def run_dispatch(
    db: AsyncSession = Depends(get_db),
    dispatcher: WhatsAppTextDispatcher = Depends(get_dispatcher)
):
    """
    Send every due pending message once (cron hook).
    Not scoped to a user: the poller serves the whole ledger.
    """
    poller = DispatchPoller(db, dispatcher)
    try:
        summary = await poller.run_once()
    except PersistenceError as e:
        await db.rollback()
        raise _to_http_error(e)

    return DispatchRunResponse(**summary)


# ============================================
# TRIGGER SINGLE-ITEM ENDPOINTS
# ============================================

@router.get("/{trigger_id}", response_model=TriggerResponse, summary="Get a trigger")
async def get_trigger(
    trigger_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    repo = TriggerRepository(db)
    trigger = await _get_owned_trigger(repo, trigger_id, user_id)
    return TriggerResponse(**trigger)


@router.post("", response_model=TriggerResponse, status_code=201, summary="Create a trigger")
async def create_trigger(
    request: CreateTriggerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Attach a new message trigger to one of the caller's columns."""
    repo = TriggerRepository(db)

    data = request.model_dump()
    data["user_id"] = user_id

    try:
        trigger = await repo.create(data)
        await db.commit()
    except (ValidationError, PersistenceError) as e:
        await db.rollback()
        raise _to_http_error(e)

    logger.info(f"Trigger {trigger['id']} created on column {trigger['column_id']}")
    return TriggerResponse(**trigger)


@router.put("/{trigger_id}", response_model=TriggerResponse, summary="Update a trigger")
async def update_trigger(
    trigger_id: str,
    request: UpdateTriggerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Update the provided fields of a trigger."""
    repo = TriggerRepository(db)
    await _get_owned_trigger(repo, trigger_id, user_id)

    try:
        trigger = await repo.update(trigger_id, request.model_dump(exclude_unset=True))
        await db.commit()
    except (ValidationError, EntityNotFoundError, PersistenceError) as e:
        await db.rollback()
        raise _to_http_error(e)

    return TriggerResponse(**trigger)


@router.patch("/{trigger_id}/active", response_model=TriggerResponse, summary="Enable or disable a trigger")
async def toggle_trigger(
    trigger_id: str,
    request: ToggleTriggerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    repo = TriggerRepository(db)
    await _get_owned_trigger(repo, trigger_id, user_id)

    try:
        trigger = await repo.toggle_active(trigger_id, request.is_active)
        await db.commit()
    except (EntityNotFoundError, PersistenceError) as e:
        await db.rollback()
        raise _to_http_error(e)

    logger.info(f"Trigger {trigger_id} {'activated' if trigger['is_active'] else 'deactivated'}")
    return TriggerResponse(**trigger)


@router.delete("/{trigger_id}", summary="Delete a trigger")
async def delete_trigger(
    trigger_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Delete a trigger. Deleting an unknown id succeeds with deleted=false."""
    repo = TriggerRepository(db)

    try:
        existing = await repo.get_by_id(trigger_id)
    except PersistenceError as e:
        raise _to_http_error(e)

    if existing and existing["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Trigger belongs to another user")

    try:
        deleted = await repo.delete(trigger_id)
        await db.commit()
    except PersistenceError as e:
        await db.rollback()
        raise _to_http_error(e)

    return {"success": True, "deleted": deleted}
