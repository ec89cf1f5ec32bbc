"""
Column Trigger Repositories

Database access layer for the column trigger module.
"""

from .trigger_repository import TriggerRepository
from .message_log_repository import MessageLogRepository
from .connection_repository import WhatsAppConnectionRepository
from .blocked_contact_repository import BlockedContactRepository

__all__ = [
    "TriggerRepository",
    "MessageLogRepository",
    "WhatsAppConnectionRepository",
    "BlockedContactRepository",
]
