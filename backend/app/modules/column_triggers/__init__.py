"""
Column Trigger Module

Automated WhatsApp messages attached to kanban columns.
Key features:
- Trigger definitions per column (on_enter / on_exit / on_both, delay in hours)
- Activation on lead move: personalize, schedule, record in the ledger
- Ledger of scheduled messages: pending → sent | failed
- Dispatch poller with retry bookkeeping
"""

from .models.column_message_trigger import ColumnMessageTrigger
from .models.automated_message_log import AutomatedMessageLog

__all__ = [
    "ColumnMessageTrigger",
    "AutomatedMessageLog",
]
