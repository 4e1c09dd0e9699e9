"""Provide exceptions used by libproc.

libproc.exc
~~~~~~~~~~~

Notes
-----
Every exception raised on purpose by libproc inherits from
:exc:`LibProcException`. None of them are retried internally; retrying a
launch is up to the caller.
"""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Sequence

    from libproc.proc import Proc


class LibProcException(Exception):
    """Base exception for all libproc errors."""


class ConfigError(LibProcException, ValueError):
    """Raised if a stream directive or execution option is invalid.

    Surfaced while options are resolved, before any process is spawned.
    """


class UsageError(LibProcException):
    """Raised if a :class:`~libproc.proc.Proc` is used in an unsupported way.

    For instance reading a stream that was never captured, or spawning a
    handle twice.
    """


class SpawnError(LibProcException):
    """Raised if the operating system could not create the process.

    Examples
    --------
    >>> err = SpawnError(["nope"], FileNotFoundError(2, "No such file"))
    >>> err.command
    ['nope']
    >>> str(err)
    "Failed to spawn 'nope': [Errno 2] No such file"
    """

    def __init__(
        self,
        command: Sequence[str],
        error: OSError,
        *args: object,
    ) -> None:
        self.command = list(command)
        self.error = error
        super().__init__(f"Failed to spawn {_quote(self.command)}: {error}")


class UnsuccessfulExit(LibProcException):
    """Raised when a process that failed is disposed of without inspection.

    Examples
    --------
    >>> err = UnsuccessfulExit(command=["false"], exitcode=1, signal=0)
    >>> (err.exitcode, err.signal)
    (1, 0)
    >>> str(err)
    "The spawned command 'false' exited unsuccessfully (exit code: 1, signal: 0)"
    """

    def __init__(
        self,
        command: Sequence[str],
        exitcode: int,
        signal: int,
        proc: Proc | None = None,
        *args: object,
    ) -> None:
        self.command = list(command)
        self.exitcode = exitcode
        self.signal = signal
        self.proc = proc
        super().__init__(
            f"The spawned command {_quote(self.command)} exited unsuccessfully "
            f"(exit code: {exitcode}, signal: {signal})",
        )


def _quote(command: Sequence[str]) -> str:
    return repr(" ".join(command))


__all__ = [
    "ConfigError",
    "LibProcException",
    "SpawnError",
    "UnsuccessfulExit",
    "UsageError",
]
