"""Custom exceptions raised by the event emitter."""


class EmitterError(RuntimeError):
    """Base error for all emitter related exceptions."""


class InvalidArgument(EmitterError, ValueError):
    """Raised when an argument is outside the accepted range or contract.

    Covers a non-positive or non-integer max-listener threshold, an event name
    missing from the declared event map, and a payload that does not match the
    type declared for its event.
    """


class ConfigurationError(EmitterError):
    """Raised when configuration values are invalid or missing."""
