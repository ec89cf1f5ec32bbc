"""
Column Trigger Models

Exports all ORM models for the column trigger module.
"""

from .column_message_trigger import ColumnMessageTrigger
from .automated_message_log import AutomatedMessageLog
from .whatsapp_connection import WhatsAppConnection
from .lead_column import LeadColumn
from .bot_blocked_contact import BotBlockedContact

__all__ = [
    "ColumnMessageTrigger",
    "AutomatedMessageLog",
    "WhatsAppConnection",
    "LeadColumn",
    "BotBlockedContact",
]
