"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .slot_lock import SlotLease, SlotLock
from .local_slot_lock import LocalSlotLock

__all__ = ['SlotLease', 'SlotLock', 'LocalSlotLock']
