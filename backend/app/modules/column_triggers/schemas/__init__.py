"""
Column Trigger Schemas

Pydantic models for API request/response validation.
"""

from .trigger_schemas import (
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

__all__ = [
    "CreateTriggerRequest",
    "UpdateTriggerRequest",
    "ToggleTriggerRequest",
    "LeadMoveRequest",
    "TriggerResponse",
    "TriggerWithColumnResponse",
    "TriggersListResponse",
    "MessageLogItem",
    "MessageLogsListResponse",
    "ActivationResponse",
    "DispatchRunResponse",
]
