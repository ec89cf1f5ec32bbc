"""
Column Triggers - Pydantic Schemas
Request and Response models for API endpoints.
"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from app.modules.column_triggers.constants import TriggerCondition
from app.shared.core.constants import MAX_DELAY_HOURS


# ============================================
# REQUEST MODELS
# ============================================

class CreateTriggerRequest(BaseModel):
    """Request to attach a new message trigger to a column"""
    column_id: str = Field(..., min_length=1, description="Kanban column the trigger belongs to")
    message_title: str = Field(..., min_length=1, description="Human readable title")
    message_content: str = Field(
        ...,
        min_length=1,
        description="Message template; supports {{nombre}}, {{name}}, {{telefono}}, {{phone}}"
    )
    trigger_condition: TriggerCondition = Field(
        default=TriggerCondition.ON_ENTER,
        description="on_enter, on_exit or on_both"
    )
    delay_hours: Optional[float] = Field(
        default=0,
        ge=0,
        le=MAX_DELAY_HOURS,
        allow_inf_nan=False,
        description="Hours to wait before sending (at most one year); 0 or null sends immediately"
    )
    is_active: bool = True

    class Config:
        json_schema_extra = {
            "example": {
                "column_id": "b2c7a3f0-1d2e-4f5a-8b9c-0d1e2f3a4b5c",
                "message_title": "Bienvenida",
                "message_content": "Hola {{nombre}}, gracias por tu interés!",
                "trigger_condition": "on_enter",
                "delay_hours": 1,
                "is_active": True
            }
        }


class UpdateTriggerRequest(BaseModel):
    """Request to update a trigger (only provided fields change)"""
    message_title: Optional[str] = Field(default=None, min_length=1)
    message_content: Optional[str] = Field(default=None, min_length=1)
    trigger_condition: Optional[TriggerCondition] = None
    delay_hours: Optional[float] = Field(default=None, ge=0, le=MAX_DELAY_HOURS, allow_inf_nan=False)
    is_active: Optional[bool] = Field(default=None, description="Omit to leave unchanged; null is rejected")


class ToggleTriggerRequest(BaseModel):
    """Request to enable/disable a trigger"""
    is_active: bool


class LeadMoveRequest(BaseModel):
    """A lead was moved between columns (or created directly into one)"""
    lead_id: str = Field(..., min_length=1)
    lead_name: str = Field(default="", description="Display name used for {{nombre}}")
    lead_phone: Optional[str] = Field(default=None, description="Destination number; without it nothing is scheduled")
    from_column_id: Optional[str] = Field(default=None, description="Absent when the lead was just created")
    to_column_id: str = Field(..., min_length=1)
    move_event_id: Optional[str] = Field(
        default=None,
        description="Idempotency key; repeating a move with the same id schedules nothing new"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "lead_id": "6f1c2d3e-4a5b-6c7d-8e9f-0a1b2c3d4e5f",
                "lead_name": "Carlos",
                "lead_phone": "+5491122334455",
                "from_column_id": None,
                "to_column_id": "b2c7a3f0-1d2e-4f5a-8b9c-0d1e2f3a4b5c",
                "move_event_id": "move-20240101-0001"
            }
        }


# ============================================
# RESPONSE MODELS
# ============================================

class TriggerResponse(BaseModel):
    """A column message trigger"""
    id: str
    user_id: str
    column_id: str
    message_title: str
    message_content: str
    trigger_condition: str
    delay_hours: Optional[float] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TriggerWithColumnResponse(TriggerResponse):
    """Trigger labelled with its column"""
    column_name: Optional[str] = None
    column_color: Optional[str] = None


class TriggersListResponse(BaseModel):
    """Response for trigger list endpoints"""
    triggers: List[TriggerWithColumnResponse]
    total_count: int


class MessageLogItem(BaseModel):
    """One automated message ledger entry"""
    id: str
    trigger_id: Optional[str] = None
    lead_id: str
    user_id: str
    message_content: str
    whatsapp_number: str
    instance_name: str
    status: str
    scheduled_for: datetime
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    last_retry_at: Optional[datetime] = None
    last_retry_error: Optional[str] = None
    move_event_id: Optional[str] = None
    created_at: Optional[datetime] = None


class MessageLogsListResponse(BaseModel):
    """Response for ledger listing"""
    logs: List[MessageLogItem]
    total_count: int
    skip: int
    limit: int


class SkippedTrigger(BaseModel):
    trigger_id: str
    reason: str  # no_phone / no_connection / duplicate_move_event


class FailedTrigger(BaseModel):
    trigger_id: str
    error: str


class ActivationResponse(BaseModel):
    """Outcome of a lead move; the move itself always succeeds"""
    scheduled_count: int
    skipped_count: int
    failed_count: int
    partial_failure: bool
    scheduled: List[MessageLogItem]
    skipped: List[SkippedTrigger]
    failed: List[FailedTrigger]


class DispatchRunResponse(BaseModel):
    """Summary of one dispatch poller pass"""
    total: int
    sent: int
    failed: int
    retrying: int
    skipped: int
    blocked: int = 0         # Number blocked from bot, marked failed without sending
    errored: int = 0         # Storage error, entry left pending for the next pass
