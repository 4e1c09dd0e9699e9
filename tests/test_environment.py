"""Tests for libproc.environment."""

from __future__ import annotations

import typing as t

import pytest

from libproc import exc
from libproc.environment import Associative, Environment


def test_environment_is_associative() -> None:
    """Environment satisfies the Associative capability."""
    assert isinstance(Environment(), Associative)


def test_plain_dict_is_not_associative() -> None:
    """dict lacks has() and store(), so it does not conform."""
    assert not isinstance({}, Associative)


def test_duck_typed_associative() -> None:
    """Any object with get/has/store conforms, no base class needed."""

    class Registry:
        def __init__(self) -> None:
            self.items: dict[str, int] = {}

        def get(self, key: str, default: int | None = None) -> int | None:
            return self.items.get(key, default)

        def has(self, key: str) -> bool:
            return key in self.items

        def store(self, entries: t.Any) -> Registry:
            self.items = dict(entries)
            return self

    registry = Registry().store({"a": 1})
    assert isinstance(registry, Associative)
    assert registry.has("a")


def test_current_snapshot(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment.current() copies os.environ."""
    monkeypatch.setenv("LIBPROC_TEST_VAR", "one")
    env = Environment.current()
    monkeypatch.setenv("LIBPROC_TEST_VAR", "two")
    assert env["LIBPROC_TEST_VAR"] == "one"


def test_mapping_protocol() -> None:
    """Environment behaves like a read-only mapping."""
    env = Environment([("A", "1"), ("B", "2")])
    assert len(env) == 2
    assert sorted(env) == ["A", "B"]
    assert dict(env) == {"A": "1", "B": "2"}
    assert env.get("C") is None
    with pytest.raises(KeyError):
        env["C"]


def test_store_replaces_entries() -> None:
    """store() swaps the whole content and returns the environment."""
    env = Environment({"A": "1"})
    assert env.store({"B": "2"}) is env
    assert not env.has("A")
    assert env.has("B")


@pytest.mark.parametrize(
    "entries",
    [{"A": 1}, {1: "A"}, {"": "x"}, [("A", None)]],
    ids=["int_value", "int_key", "empty_key", "none_value"],
)
def test_store_rejects_invalid(entries: t.Any) -> None:
    """Non-string entries and empty names raise ConfigError."""
    env = Environment({"KEEP": "1"})
    with pytest.raises(exc.ConfigError):
        env.store(entries)
    assert env.has("KEEP")
