"""Synchronous, in-process event emitter."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Hashable, List, Protocol, Set, Tuple, TypeVar

from .config import EmitterSettings, load_settings
from .event_map import EventMap
from .exceptions import InvalidArgument
from .logging import get_logger, log_event, set_level

LOGGER = get_logger("emitter")

E = TypeVar("E", bound=Hashable)

Unsubscribe = Callable[[], None]


class EventListener(Protocol):
    """Callable signature for event listeners."""

    def __call__(self, payload: Any) -> None:  # pragma: no cover - Protocol
        ...


@dataclass(slots=True, eq=False)
class _Registration:
    # ``callback`` is what dispatch calls; for ``once`` it is the wrapper and
    # ``listener`` the callable the caller passed in.
    callback: EventListener
    listener: EventListener
    active: bool = True


class EventEmitter(Generic[E]):
    """Registry of listeners notified synchronously when an event is emitted.

    Listeners are called in subscription order on the thread that calls
    :meth:`emit`. Exceptions raised by a listener propagate to that caller and
    stop delivery to the listeners after it.

    Listeners may subscribe and unsubscribe while an event is being
    dispatched. The delivery set is fixed when dispatch starts; a listener
    removed before its turn is skipped, and one added during dispatch only
    receives later events.

    The emitter holds no locks. Sharing one instance between threads requires
    the caller to serialize access.
    """

    def __init__(
        self,
        event_map: EventMap | None = None,
        *,
        settings: EmitterSettings | None = None,
        max_listeners: int | None = None,
        warning_handler: Callable[[str], None] | None = None,
    ) -> None:
        self._event_map = event_map
        self._settings = settings or EmitterSettings()
        self._listeners: Dict[E, Dict[int, _Registration]] = {}
        self._warned: Set[E] = set()
        self._max_listeners = self._settings.max_listeners
        self._warning_handler = warning_handler or self._log_leak_warning
        if max_listeners is not None:
            self.set_max_listeners(max_listeners)

    @classmethod
    def from_config(
        cls,
        path: str | Path | None = None,
        event_map: EventMap | None = None,
        **kwargs: Any,
    ) -> "EventEmitter[E]":
        """Build an emitter from a settings file and ``EVENT_EMITTER_*`` variables."""

        settings = load_settings(path)
        set_level(settings.log_level)
        log_event(LOGGER, "emitter_configured", settings.model_dump())
        return cls(event_map, settings=settings, **kwargs)

    @property
    def event_map(self) -> EventMap | None:
        return self._event_map

    def on(self, event_name: E, listener: EventListener) -> Unsubscribe:
        """Subscribe ``listener`` to ``event_name``.

        Subscribing the same object twice to one event is a no-op. The returned
        callable unsubscribes it again and may be called any number of times.
        """

        registration = self._register(event_name, listener, listener)
        return self._unsubscriber(event_name, registration)

    def once(self, event_name: E, listener: EventListener) -> Unsubscribe:
        """Subscribe ``listener`` for a single delivery of ``event_name``."""

        def wrapper(payload: Any) -> None:
            self.off(event_name, wrapper)
            listener(payload)

        registration = self._register(event_name, wrapper, listener)
        return self._unsubscriber(event_name, registration)

    def off(self, event_name: E, listener: EventListener) -> None:
        """Unsubscribe ``listener`` from ``event_name`` if it is subscribed.

        A pending :meth:`once` subscription is removed when given the
        callable originally passed to :meth:`once`.
        """

        registrations = self._listeners.get(event_name)
        if not registrations:
            return
        registration = registrations.get(id(listener))
        if registration is None:
            registration = next(
                (r for r in registrations.values() if r.listener is listener), None
            )
        if registration is not None:
            self._remove(event_name, registration)

    def remove_all_listeners(self, event_name: E | None = None) -> None:
        """Unsubscribe every listener of ``event_name``, or of all events when omitted."""

        names = list(self._listeners) if event_name is None else [event_name]
        for name in names:
            registrations = self._listeners.get(name)
            if not registrations:
                continue
            for registration in registrations.values():
                registration.active = False
            self._prune(name)
            LOGGER.debug("Removed all listeners from event '%s'", name)

    def emit(self, event_name: E, payload: Any = None) -> None:
        """Call every listener of ``event_name`` with ``payload``."""

        if self._event_map is not None:
            self._event_map.check_name(event_name)
            if self._settings.validate_payloads:
                self._event_map.validate(event_name, payload)

        registrations = self._listeners.get(event_name)
        if not registrations:
            LOGGER.debug("Emitting '%s' with no listeners", event_name)
            return

        snapshot = tuple(registrations.values())
        LOGGER.debug("Emitting '%s' to %d listeners", event_name, len(snapshot))
        for registration in snapshot:
            if registration.active:
                registration.callback(payload)

    def listener_count(self, event_name: E) -> int:
        return len(self._listeners.get(event_name, ()))

    def listeners(self, event_name: E) -> Tuple[EventListener, ...]:
        """Return the listeners of ``event_name`` in subscription order."""

        registrations = self._listeners.get(event_name, {})
        return tuple(registration.listener for registration in registrations.values())

    def event_names(self) -> List[E]:
        """Return the events that have listeners, in order of first subscription."""

        return list(self._listeners)

    def get_max_listeners(self) -> int:
        return self._max_listeners

    def set_max_listeners(self, max_listeners: int) -> None:
        """Set the per-event listener count above which a leak warning is produced.

        Raises:
            InvalidArgument: if ``max_listeners`` is not an integer of at least 1.
        """

        if isinstance(max_listeners, bool) or not isinstance(max_listeners, int):
            raise InvalidArgument(f"max_listeners must be an integer, got {max_listeners!r}")
        if max_listeners < 1:
            raise InvalidArgument(f"max_listeners must be at least 1, got {max_listeners}")
        self._max_listeners = max_listeners
        LOGGER.debug("max_listeners=%s", max_listeners)

    def _register(
        self, event_name: E, callback: EventListener, listener: EventListener
    ) -> _Registration:
        if self._event_map is not None:
            self._event_map.check_name(event_name)

        registrations = self._listeners.setdefault(event_name, {})
        existing = registrations.get(id(callback))
        if existing is not None:
            return existing

        registration = _Registration(callback=callback, listener=listener)
        registrations[id(callback)] = registration
        LOGGER.debug("Subscribed listener %r to event '%s'", listener, event_name)
        self._check_leak(event_name, len(registrations))
        return registration

    def _remove(self, event_name: E, registration: _Registration) -> None:
        registrations = self._listeners.get(event_name)
        if not registrations:
            return
        key = id(registration.callback)
        if registrations.get(key) is not registration:
            return
        del registrations[key]
        registration.active = False
        LOGGER.debug("Unsubscribed listener %r from event '%s'", registration.listener, event_name)
        if not registrations:
            self._prune(event_name)

    def _prune(self, event_name: E) -> None:
        self._listeners.pop(event_name, None)
        self._warned.discard(event_name)

    def _unsubscriber(self, event_name: E, registration: _Registration) -> Unsubscribe:
        def unsubscribe() -> None:
            self._remove(event_name, registration)

        return unsubscribe

    def _check_leak(self, event_name: E, count: int) -> None:
        if count <= self._max_listeners or event_name in self._warned:
            return
        self._warned.add(event_name)
        self._warning_handler(
            f"Possible listener leak detected: {count} listeners subscribed to event "
            f"{event_name!r}, which exceeds max_listeners={self._max_listeners}. "
            "Use set_max_listeners() to raise the limit."
        )

    @staticmethod
    def _log_leak_warning(message: str) -> None:
        LOGGER.warning(message, extra={"event": "max_listeners_exceeded"})


__all__ = ["EventEmitter", "EventListener", "Unsubscribe"]
