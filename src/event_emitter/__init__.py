"""Typed, synchronous publish/subscribe emitter."""

from .config import DEFAULT_MAX_LISTENERS, EmitterSettings, load_settings
from .emitter import EventEmitter, EventListener, Unsubscribe
from .event_map import EventMap
from .exceptions import ConfigurationError, EmitterError, InvalidArgument

__all__ = [
    "DEFAULT_MAX_LISTENERS",
    "ConfigurationError",
    "EmitterError",
    "EmitterSettings",
    "EventEmitter",
    "EventListener",
    "EventMap",
    "InvalidArgument",
    "Unsubscribe",
    "load_settings",
]
