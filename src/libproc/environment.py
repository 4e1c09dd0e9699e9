"""Environment snapshots for spawned processes.

libproc.environment
~~~~~~~~~~~~~~~~~~~

A child sees the environment that was captured when its
:class:`~libproc.config.ExecutionConfig` was built. Nothing here reads
:data:`os.environ` lazily.
"""

from __future__ import annotations

import os
import typing as t
from collections.abc import Iterable, Iterator, Mapping

from . import exc

if t.TYPE_CHECKING:
    from typing_extensions import Self

K = t.TypeVar("K")
V = t.TypeVar("V")


@t.runtime_checkable
class Associative(t.Protocol[K, V]):
    """Key-based lookup capability.

    Anything offering ``get``, ``has`` and ``store`` conforms; no base class is
    required.
    """

    def get(self, key: K, default: V | None = None) -> V | None:
        """Return the value stored under *key*, or *default*."""
        ...

    def has(self, key: K) -> bool:
        """Return True if *key* is present."""
        ...

    def store(self, entries: Iterable[tuple[K, V]] | Mapping[K, V]) -> t.Any:
        """Replace every entry with *entries*."""
        ...


class Environment(Mapping[str, str]):
    """String-to-string environment mapping, copied on construction.

    Examples
    --------
    >>> env = Environment({"GREETING": "hi"})
    >>> env.has("GREETING")
    True
    >>> env.get("MISSING", "fallback")
    'fallback'

    Copies are independent:

    >>> source = {"A": "1"}
    >>> env = Environment(source)
    >>> source["A"] = "2"
    >>> env["A"]
    '1'

    Bulk replacement:

    >>> env.store([("B", "2")])
    Environment({'B': '2'})
    >>> env.has("A")
    False
    """

    def __init__(
        self,
        entries: Iterable[tuple[str, str]] | Mapping[str, str] | None = None,
    ) -> None:
        self._entries: dict[str, str] = {}
        if entries is not None:
            self.store(entries)

    @classmethod
    def current(cls) -> Self:
        """Snapshot :data:`os.environ` as it is right now."""
        return cls(os.environ)

    def has(self, key: str) -> bool:
        return key in self._entries

    def store(
        self,
        entries: Iterable[tuple[str, str]] | Mapping[str, str],
    ) -> Self:
        """Replace all entries, validating that keys and values are strings.

        Raises
        ------
        :exc:`exc.ConfigError`
            A key or value is not a :class:`str`, or a key is empty.
        """
        items = entries.items() if isinstance(entries, Mapping) else entries
        validated: dict[str, str] = {}
        for key, value in items:
            if not isinstance(key, str) or not isinstance(value, str):
                msg = f"Environment entries must be str to str, got {key!r}={value!r}"
                raise exc.ConfigError(msg)
            if not key:
                msg = f"Invalid environment variable name: {key!r}"
                raise exc.ConfigError(msg)
            validated[key] = value
        self._entries = validated
        return self

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._entries!r})"
