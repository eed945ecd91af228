from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import pytest
from pydantic import BaseModel

from event_emitter import EmitterSettings, EventEmitter, EventMap, InvalidArgument
from tests._listeners import Recorder


class Bar(BaseModel):
    name: str


@dataclass
class Moved:
    x: int
    y: int


class ShopEvents:
    foo: str
    bar: Bar
    cleared: None
    tags: List[str]
    _private: int


class GameEvent(Enum):
    PLAYER_MOVED = Moved
    FLOOR_CHANGED = int


class Order:
    def __init__(self, total: float) -> None:
        self.total = total


ORDER_SCHEMA = {
    "type": "object",
    "required": ["id", "total"],
    "properties": {
        "id": {"type": "string"},
        "total": {"type": "number", "minimum": 0},
    },
}


@pytest.fixture
def shop_events() -> EventMap:
    return EventMap.from_annotations(ShopEvents)


def test_from_annotations_collects_public_names(shop_events: EventMap) -> None:
    assert shop_events.names() == ("foo", "bar", "cleared", "tags")
    assert "foo" in shop_events
    assert "_private" not in shop_events
    assert len(shop_events) == 4
    assert shop_events.payload_type("bar") is Bar


def test_from_enum_uses_members_as_names() -> None:
    events = EventMap.from_enum(GameEvent)

    assert list(events) == [GameEvent.PLAYER_MOVED, GameEvent.FLOOR_CHANGED]
    events.validate(GameEvent.PLAYER_MOVED, Moved(1, 2))
    with pytest.raises(InvalidArgument):
        events.validate(GameEvent.FLOOR_CHANGED, "3")


def test_validate_accepts_matching_payloads(shop_events: EventMap) -> None:
    assert shop_events.validate("foo", "hello") == "hello"
    bar = Bar(name="x")
    assert shop_events.validate("bar", bar) is bar
    assert shop_events.validate("cleared", None) is None
    assert shop_events.validate("tags", ["a", "b"]) == ["a", "b"]


@pytest.mark.parametrize(
    "name, payload",
    [
        ("foo", 1),
        ("bar", {"name": 1}),
        ("cleared", "nope"),
        ("tags", ["a", 2]),
    ],
)
def test_validate_rejects_mismatched_payloads(shop_events: EventMap, name: str, payload: object) -> None:
    with pytest.raises(InvalidArgument):
        shop_events.validate(name, payload)


def test_unknown_name_is_rejected(shop_events: EventMap) -> None:
    with pytest.raises(InvalidArgument, match="Unknown event 'baz'"):
        shop_events.check_name("baz")
    with pytest.raises(InvalidArgument):
        shop_events.payload_type("baz")


def test_unhashable_name_is_not_contained(shop_events: EventMap) -> None:
    assert ["foo"] not in shop_events


def test_json_schema_declaration() -> None:
    events = EventMap({"order_placed": ORDER_SCHEMA, "note": Optional[str]})

    events.validate("order_placed", {"id": "A1", "total": 9.5})
    events.validate("note", None)
    with pytest.raises(InvalidArgument, match="total"):
        events.validate("order_placed", {"id": "A1", "total": -1})
    with pytest.raises(InvalidArgument, match="<root>"):
        events.validate("order_placed", {"id": "A1"})


def test_invalid_json_schema_is_rejected() -> None:
    with pytest.raises(InvalidArgument, match="Invalid JSON Schema"):
        EventMap({"broken": {"type": "not-a-type"}})


def test_emitter_rejects_unknown_event_names(shop_events: EventMap) -> None:
    emitter = EventEmitter(shop_events)

    with pytest.raises(InvalidArgument):
        emitter.on("baz", Recorder())
    with pytest.raises(InvalidArgument):
        emitter.once("baz", Recorder())
    with pytest.raises(InvalidArgument):
        emitter.emit("baz", "x")
    assert emitter.event_names() == []


def test_emitter_keeps_total_operations_total(shop_events: EventMap) -> None:
    emitter = EventEmitter(shop_events)

    emitter.off("baz", Recorder())
    emitter.remove_all_listeners("baz")
    assert emitter.listener_count("baz") == 0
    assert emitter.listeners("baz") == ()


def test_emitter_validates_payload_before_dispatch(shop_events: EventMap) -> None:
    emitter = EventEmitter(shop_events)
    listener = Recorder()
    emitter.on("bar", listener)

    with pytest.raises(InvalidArgument):
        emitter.emit("bar", {"name": 3})
    assert listener.calls == []

    payload = Bar(name="bar")
    emitter.emit("bar", payload)
    assert listener.calls == [payload]


def test_payload_validation_can_be_disabled(shop_events: EventMap) -> None:
    emitter = EventEmitter(shop_events, settings=EmitterSettings(validate_payloads=False))
    listener = Recorder()
    emitter.on("foo", listener)
    emitter.emit("foo", 42)

    assert listener.calls == [42]
    with pytest.raises(InvalidArgument):
        emitter.emit("baz", 42)


def test_emitter_exposes_its_event_map(shop_events: EventMap) -> None:
    assert EventEmitter(shop_events).event_map is shop_events
    assert EventEmitter().event_map is None


def test_plain_class_payload_is_checked_by_instance() -> None:
    events = EventMap({"order_placed": Order})
    emitter = EventEmitter(events)
    listener = Recorder()
    emitter.on("order_placed", listener)

    order = Order(3)
    emitter.emit("order_placed", order)
    assert listener.calls == [order]

    with pytest.raises(InvalidArgument, match="order_placed"):
        emitter.emit("order_placed", {"total": 3})
    assert listener.calls == [order]
