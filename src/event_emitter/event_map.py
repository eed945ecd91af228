"""Declared contract between event names and their payload types.

An :class:`EventMap` is a closed set of event names, each carrying the type
of the payload emitted with it. Declarations are either Python types or
typing annotations, checked with a strict pydantic ``TypeAdapter``, or plain
dictionaries holding a JSON Schema, checked with ``jsonschema``.

Typical usage::

    class ShopEvents:
        order_placed: Order
        cart_cleared: None

    events = EventMap.from_annotations(ShopEvents)
    emitter = EventEmitter(events)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Iterator, Mapping, Tuple, get_type_hints

from jsonschema import Draft202012Validator, SchemaError
from jsonschema import ValidationError as SchemaValidationError
from pydantic import ConfigDict, PydanticSchemaGenerationError, PydanticUserError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidArgument


@dataclass(frozen=True)
class PayloadSpec:
    """Payload declaration for one event name together with its checker."""

    name: Hashable
    declaration: Any
    check: Callable[[Any], None]


def _schema_checker(name: Hashable, schema: Mapping[str, Any]) -> Callable[[Any], None]:
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as exc:
        raise InvalidArgument(f"Invalid JSON Schema for event {name!r}: {exc.message}") from exc
    validator = Draft202012Validator(schema)

    def _sort_key(error: SchemaValidationError) -> tuple:
        path = tuple(str(part) for part in error.absolute_path)
        return path + (error.message,)

    def check(payload: Any) -> None:
        errors = sorted(validator.iter_errors(payload), key=_sort_key)
        if errors:
            messages = []
            for error in errors:
                location = "/".join(str(p) for p in error.absolute_path) or "<root>"
                messages.append(f"{location}: {error.message}")
            raise InvalidArgument(
                f"Payload for event {name!r} does not match its schema: " + "; ".join(messages)
            )

    return check


def _instance_adapter(name: Hashable, declaration: Any) -> TypeAdapter:
    try:
        return TypeAdapter(declaration, config=ConfigDict(arbitrary_types_allowed=True))
    except PydanticUserError as exc:
        raise InvalidArgument(f"Unsupported payload type for event {name!r}: {declaration!r}") from exc


def _type_checker(name: Hashable, declaration: Any) -> Callable[[Any], None]:
    try:
        adapter = TypeAdapter(declaration)
    except PydanticSchemaGenerationError:
        # plain classes get an isinstance check
        adapter = _instance_adapter(name, declaration)
    except PydanticUserError as exc:
        raise InvalidArgument(f"Unsupported payload type for event {name!r}: {declaration!r}") from exc

    def check(payload: Any) -> None:
        try:
            adapter.validate_python(payload, strict=True)
        except PydanticValidationError as exc:
            raise InvalidArgument(f"Payload for event {name!r} does not match {declaration!r}: {exc}") from exc

    return check


def _build_spec(name: Hashable, declaration: Any) -> PayloadSpec:
    if isinstance(declaration, Mapping):
        check = _schema_checker(name, declaration)
    else:
        check = _type_checker(name, declaration)
    return PayloadSpec(name=name, declaration=declaration, check=check)


class EventMap:
    """Closed mapping of event names to payload declarations."""

    def __init__(self, payloads: Mapping[Hashable, Any]) -> None:
        self._specs: Dict[Hashable, PayloadSpec] = {}
        for name, declaration in payloads.items():
            self._specs[name] = _build_spec(name, declaration)

    @classmethod
    def from_annotations(cls, namespace: type) -> "EventMap":
        """Build a map from the annotated attributes of ``namespace``.

        Attribute names become the event names and their annotations the
        payload types. Names starting with an underscore are ignored.
        """

        hints = get_type_hints(namespace)
        return cls({name: hint for name, hint in hints.items() if not name.startswith("_")})

    @classmethod
    def from_enum(cls, enum_cls: type[Enum]) -> "EventMap":
        """Build a map whose event names are the members of ``enum_cls``.

        Each member's value is used as the payload declaration. Members that
        share a value become enum aliases and collapse into one event, so use
        the plain constructor with enum keys when several events carry the
        same payload type.
        """

        return cls({member: member.value for member in enum_cls})

    def names(self) -> Tuple[Hashable, ...]:
        return tuple(self._specs)

    def payload_type(self, name: Hashable) -> Any:
        self.check_name(name)
        return self._specs[name].declaration

    def check_name(self, name: Hashable) -> None:
        """Raise :class:`InvalidArgument` if ``name`` is not a declared event."""

        if not self._contains(name):
            known = ", ".join(repr(n) for n in self._specs)
            raise InvalidArgument(f"Unknown event {name!r}; declared events are: {known}")

    def validate(self, name: Hashable, payload: Any) -> Any:
        """Check ``payload`` against the declaration for ``name`` and return it unchanged."""

        self.check_name(name)
        self._specs[name].check(payload)
        return payload

    def _contains(self, name: Hashable) -> bool:
        try:
            return name in self._specs
        except TypeError:
            return False

    def __contains__(self, name: object) -> bool:
        return self._contains(name)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"EventMap({', '.join(repr(n) for n in self._specs)})"


__all__ = ["EventMap", "PayloadSpec"]
