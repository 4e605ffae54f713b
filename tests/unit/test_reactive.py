"""Tests for reactive values, persistence and key/value stores."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from sdui.state.descriptor import parse_descriptor
from sdui.state.reactive import PersistedReactiveValue, ReactiveValue
from sdui.state.storage import JsonFileStore, MemoryStore, app_state_key


class TestReactiveValue:
    def test_subscribe_replays_current_value(self) -> None:
        value = ReactiveValue(1)
        seen: list[Any] = []
        value.subscribe(seen.append)
        assert seen == [1]

    @pytest.mark.parametrize("initial", [0, "a", [1], {"k": 1}, None, True])
    def test_update_with_equal_value_is_silent(self, initial: Any) -> None:
        value = ReactiveValue(initial)
        seen: list[Any] = []
        value.subscribe(seen.append)
        assert value.update(initial) is False
        assert seen == [initial]

    @pytest.mark.parametrize(("initial", "new"), [(0, 1), ("a", "b"), ([1], [1, 2]), (None, 0)])
    def test_update_with_new_value_fires_once(self, initial: Any, new: Any) -> None:
        value = ReactiveValue(initial)
        seen: list[Any] = []
        value.subscribe(seen.append)
        assert value.update(new) is True
        assert seen == [initial, new]

    def test_cancelled_subscription_stops_receiving(self) -> None:
        value = ReactiveValue(0)
        seen: list[Any] = []
        subscription = value.subscribe(seen.append)
        subscription.cancel()
        subscription.cancel()
        value.update(1)
        assert seen == [0]
        assert not subscription.active

    def test_failing_listener_does_not_block_others(self) -> None:
        value = ReactiveValue(0)
        seen: list[Any] = []

        def broken(v: Any) -> None:
            if v:
                raise RuntimeError("boom")

        value.subscribe(broken)
        value.subscribe(seen.append)
        value.update(1)
        assert seen == [0, 1]

    @pytest.mark.asyncio
    async def test_stream_replays_then_follows(self) -> None:
        value = ReactiveValue(0)
        stream = value.stream()
        assert await stream.__anext__() == 0
        value.update(1)
        value.update(1)
        value.update(2)
        assert await stream.__anext__() == 1
        assert await stream.__anext__() == 2
        value.close()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    def test_closed_value_rejects_updates(self) -> None:
        value = ReactiveValue(0)
        value.close()
        assert value.update(1) is False
        assert value.value == 0


ROUND_TRIP_CASES = [
    ("number", 3.5),
    ("number", 42),
    ("string", "hello"),
    ("string", "123"),
    ("bool", True),
    ("json", {"a": 1, "nested": {"b": [1, 2]}}),
    ("list", [1, "two", {"three": 3}]),
]


class TestPersistence:
    @pytest.mark.parametrize(("type_name", "initial"), ROUND_TRIP_CASES)
    def test_serialize_round_trip(self, type_name: str, initial: Any) -> None:
        descriptor = parse_descriptor({"name": "v", "type": type_name, "value": initial})
        assert descriptor.deserialize(descriptor.serialize(initial)) == initial

    @pytest.mark.parametrize(("type_name", "initial"), ROUND_TRIP_CASES)
    def test_persisted_value_restores_initial(self, type_name: str, initial: Any) -> None:
        descriptor = parse_descriptor({"name": "v", "type": type_name, "value": initial})
        store = MemoryStore()
        first = _persisted(descriptor, store)
        store.put_string(first.storage_key, descriptor.serialize(first.value))
        assert _persisted(descriptor, store).value == initial

    def test_update_writes_through(self) -> None:
        descriptor = parse_descriptor({"name": "cartCount", "type": "number", "value": 0})
        store = MemoryStore()
        value = _persisted(descriptor, store)
        value.update(4)
        assert store.get_string("proj_app_state_cartCount") == "4"
        assert _persisted(descriptor, store).value == 4

    def test_stored_value_wins_over_initial(self) -> None:
        descriptor = parse_descriptor({"name": "name", "type": "string", "value": "guest"})
        store = MemoryStore({app_state_key("proj", "name"): json.dumps("ada")})
        assert _persisted(descriptor, store).value == "ada"

    def test_corrupt_stored_text_falls_back(self) -> None:
        descriptor = parse_descriptor({"name": "flags", "type": "json", "value": {"a": 1}})
        store = MemoryStore({app_state_key("proj", "flags"): "[1, 2]"})
        assert _persisted(descriptor, store).value == {"a": 1}

    def test_forget_removes_stored_copy(self) -> None:
        descriptor = parse_descriptor({"name": "n", "type": "number", "value": 0})
        store = MemoryStore()
        value = _persisted(descriptor, store)
        value.update(1)
        value.forget()
        assert store.snapshot() == {}
        assert value.value == 1


def _persisted(descriptor: Any, store: Any) -> PersistedReactiveValue[Any]:
    return PersistedReactiveValue(
        descriptor.initial_value,
        name=descriptor.key,
        project_id="proj",
        store=store,
        serialize=descriptor.serialize,
        deserialize=descriptor.deserialize,
    )


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "app.json"
        JsonFileStore(path).put_string("k", "v")
        assert JsonFileStore(path).get_string("k") == "v"
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_remove(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "app.json")
        store.put_string("k", "v")
        store.remove("k")
        assert JsonFileStore(tmp_path / "app.json").get_string("k") is None

    def test_unreadable_file_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "app.json"
        path.write_text("{not json")
        assert JsonFileStore(path).get_string("k") is None

    def test_leaves_no_temporary_files(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "app.json")
        store.put_string("a", "1")
        store.put_string("b", "2")
        assert [p.name for p in tmp_path.iterdir()] == ["app.json"]
