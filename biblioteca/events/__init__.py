"""
Domain events published by the services.
"""

from biblioteca.events.event_interface import Event, EventEmitter, EventType, event_bus

__all__ = ["Event", "EventEmitter", "EventType", "event_bus"]
