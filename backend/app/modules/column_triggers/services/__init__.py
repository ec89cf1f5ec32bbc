"""
Column Trigger Services

Business logic for the column trigger module.
"""

from .personalizer import render
from .schedule import compute_send_time, to_iso
from .activation_service import TriggerActivationService, LeadMoveEvent, ActivationResult
from .dispatch_poller import DispatchPoller
from .whatsapp_dispatcher import WhatsAppTextDispatcher, DispatchResult

__all__ = [
    "render",
    "compute_send_time",
    "to_iso",
    "TriggerActivationService",
    "LeadMoveEvent",
    "ActivationResult",
    "DispatchPoller",
    "WhatsAppTextDispatcher",
    "DispatchResult",
]
