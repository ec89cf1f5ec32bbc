"""
Shared Utility Functions
"""
from app.shared.utils.exceptions import (
    ValidationError,
    EntityNotFoundError,
    NotFoundError,
    PersistenceError,
    InvalidStateError,
)
from app.shared.utils.phone_utils import normalize_phone_number, to_whatsapp_chat_id

__all__ = [
    "ValidationError",
    "EntityNotFoundError",
    "NotFoundError",
    "PersistenceError",
    "InvalidStateError",
    # Phone utilities
    "normalize_phone_number",
    "to_whatsapp_chat_id",
]
