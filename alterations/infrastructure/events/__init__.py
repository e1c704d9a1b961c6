"""
Event infrastructure for domain event publishing and handling.
"""

from .event_bus import InMemoryEventBus
from .event_handlers import register_default_handlers

__all__ = [
    "InMemoryEventBus",
    "register_default_handlers",
]
