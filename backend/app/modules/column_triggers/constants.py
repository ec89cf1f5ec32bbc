"""
Column Trigger Constants
Centralized enums for trigger conditions and ledger statuses.

Enums inherit from str so they can be stored and compared directly
against the text columns without .value conversion.
"""
from enum import Enum


class TriggerCondition(str, Enum):
    """
    When a column trigger fires.

    ON_BOTH matches queries for either ON_ENTER or ON_EXIT.
    """
    ON_ENTER = "on_enter"    # Lead moved into the column
    ON_EXIT = "on_exit"      # Lead moved out of the column
    ON_BOTH = "on_both"      # Either direction

    @classmethod
    def values(cls) -> list:
        return [c.value for c in cls]

    @classmethod
    def matching(cls, condition: str) -> list:
        """Stored conditions that fire for a move of the given kind."""
        return [condition, cls.ON_BOTH.value]


class MessageLogStatus(str, Enum):
    """
    Status of an automated message ledger entry.

    Status Flow:
    PENDING → SENT
            ↘ FAILED

    PENDING may be rescheduled (retry) any number of times before it
    reaches a terminal state.
    """
    PENDING = "pending"  # Scheduled, waiting for the dispatch poller
    SENT = "sent"        # Delivered to the WhatsApp gateway
    FAILED = "failed"    # Gave up; error_message holds the reason

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in [cls.SENT, cls.FAILED]


class SkipReason(str, Enum):
    """Why a matching trigger produced no ledger entry."""
    NO_PHONE = "no_phone"
    NO_CONNECTION = "no_connection"
    DUPLICATE_MOVE_EVENT = "duplicate_move_event"
