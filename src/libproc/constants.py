"""Constant variables for libproc."""

from __future__ import annotations

import enum

#: Exit code reported while a process has not been reaped yet
NOT_EXITED = -1

#: Signal number reported for a process that exited on its own
NO_SIGNAL = 0

#: Text encoding used for captured pipes unless ``binary`` is set
DEFAULT_ENCODING = "utf-8"

#: Line separator for :meth:`~libproc.pipe.Pipe.lines` and
#: :meth:`~libproc.pipe.Pipe.say`
DEFAULT_NEWLINE = "\n"

#: Shell used by :func:`libproc.shell` on POSIX
POSIX_SHELL = "/bin/sh"


class StreamKind(enum.Enum):
    """Standard stream of a child process."""

    STDIN = "stdin"
    STDOUT = "stdout"
    STDERR = "stderr"

    @property
    def readable_by_child(self) -> bool:
        """Return True if the child reads from this stream."""
        return self is StreamKind.STDIN
