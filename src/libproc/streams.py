"""Resolve per-stream directives into what a child process gets.

libproc.streams
~~~~~~~~~~~~~~~

Each of a child's three standard streams is governed by one directive:

- :class:`Inherit` shares the parent's stream,
- :class:`CapturePipe` opens a pipe whose caller side becomes a
  :class:`~libproc.pipe.Pipe`,
- :class:`Discard` binds the null device,
- :class:`ExternalHandle` binds a descriptor, file object or another
  process's :class:`~libproc.pipe.Pipe`.

Examples
--------
>>> coerce_directive(True)
CapturePipe()
>>> coerce_directive(False)
Discard()
>>> coerce_directive("-")
Inherit()

>>> resolve(Discard(), StreamKind.STDIN).target == subprocess.DEVNULL
True
"""

from __future__ import annotations

import dataclasses
import logging
import os
import subprocess
import sys
import typing as t

from . import exc
from .constants import StreamKind
from .pipe import Pipe

if t.TYPE_CHECKING:
    from typing_extensions import TypeAlias

    from ._internal.types import PopenFile

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Inherit:
    """Share the parent's stream."""


@dataclasses.dataclass(frozen=True)
class CapturePipe:
    """Connect the stream to a new pipe owned by the caller."""


@dataclasses.dataclass(frozen=True)
class Discard:
    """Connect the stream to the null device."""


@dataclasses.dataclass(frozen=True)
class ExternalHandle:
    """Connect the stream to a handle the caller already holds.

    Attributes
    ----------
    handle : int | file object | :class:`~libproc.pipe.Pipe`
        Must be open, readable for stdin and writable for stdout/stderr.
    """

    handle: t.Any


StreamDirective: TypeAlias = t.Union[Inherit, CapturePipe, Discard, ExternalHandle]

_DIRECTIVE_TYPES = (Inherit, CapturePipe, Discard, ExternalHandle)


@dataclasses.dataclass(frozen=True)
class ResolvedBinding:
    """Execution-time binding of one stream.

    Attributes
    ----------
    kind : StreamKind
    directive : StreamDirective
        Directive the binding was resolved from.
    target : PopenFile
        Value handed to :class:`subprocess.Popen` for this stream.
    handoff : Pipe, optional
        Pipe of another process wired into this one. The parent's copy is
        detached once the child holds it.
    """

    kind: StreamKind
    directive: StreamDirective
    target: PopenFile = None
    handoff: Pipe | None = None

    @property
    def captured(self) -> bool:
        return isinstance(self.directive, CapturePipe) and (
            self.target == subprocess.PIPE
        )


class Bindings(t.NamedTuple):
    """Resolved stdin, stdout and stderr of one launch."""

    stdin: ResolvedBinding
    stdout: ResolvedBinding
    stderr: ResolvedBinding

    @property
    def handoffs(self) -> list[Pipe]:
        return [b.handoff for b in self if b.handoff is not None]


def coerce_directive(value: t.Any) -> StreamDirective:
    """Turn a user-supplied option into a :data:`StreamDirective`.

    Parameters
    ----------
    value : Any
        ``None`` or ``"-"`` inherit, ``True`` captures, ``False`` discards;
        descriptors, objects with ``fileno()`` and :class:`Pipe` objects become
        :class:`ExternalHandle`.

    Raises
    ------
    :exc:`exc.ConfigError`
        *value* is none of the above.

    Examples
    --------
    >>> coerce_directive(None)
    Inherit()
    >>> coerce_directive(2)
    ExternalHandle(handle=2)
    >>> coerce_directive("out.txt")
    Traceback (most recent call last):
    ...
    libproc.exc.ConfigError: Unsupported stream directive: 'out.txt'
    """
    if isinstance(value, _DIRECTIVE_TYPES):
        return value
    if value is None or value == "-":
        return Inherit()
    if value is True:
        return CapturePipe()
    if value is False:
        return Discard()
    if isinstance(value, int) or hasattr(value, "fileno"):
        return ExternalHandle(value)
    msg = f"Unsupported stream directive: {value!r}"
    raise exc.ConfigError(msg)


def resolve(directive: t.Any, kind: StreamKind) -> ResolvedBinding:
    """Resolve *directive* for the stream *kind*.

    Raises
    ------
    :exc:`exc.ConfigError`
        The directive is unsupported, or an external handle is closed, invalid
        or opened in the wrong direction. A :class:`Pipe` that still buffers
        data the parent read is refused as well, since the child would never
        see that data.
    """
    directive = coerce_directive(directive)
    if isinstance(directive, Inherit):
        return ResolvedBinding(kind, directive, None)
    if isinstance(directive, Discard):
        return ResolvedBinding(kind, directive, subprocess.DEVNULL)
    if isinstance(directive, CapturePipe):
        return ResolvedBinding(kind, directive, subprocess.PIPE)

    handle = directive.handle
    if isinstance(handle, int) and not isinstance(handle, bool):
        _check_descriptor(handle, kind)
        return ResolvedBinding(kind, directive, handle)
    fd = _check_file_object(handle, kind)
    if isinstance(handle, Pipe) and handle.buffered:
        msg = (
            f"{kind.value}: {handle!r} holds data already read by the parent; "
            "read it to the end or hand the pipe off before reading"
        )
        raise exc.ConfigError(msg)
    return ResolvedBinding(
        kind,
        directive,
        fd,
        handoff=handle if isinstance(handle, Pipe) else None,
    )


def resolve_all(
    stdin: t.Any = None,
    stdout: t.Any = None,
    stderr: t.Any = None,
    *,
    merge: bool = False,
) -> Bindings:
    """Resolve all three streams before anything is spawned.

    With *merge*, the stderr directive is ignored and stderr follows stdout,
    wherever stdout goes.

    Examples
    --------
    >>> bindings = resolve_all(stdout=True, stderr=False, merge=True)
    >>> bindings.stderr.target == subprocess.STDOUT
    True
    >>> bindings.stderr.captured
    False
    """
    in_binding = resolve(stdin, StreamKind.STDIN)
    out_binding = resolve(stdout, StreamKind.STDOUT)
    if merge:
        err_binding = ResolvedBinding(
            StreamKind.STDERR,
            out_binding.directive,
            subprocess.STDOUT,
        )
    else:
        err_binding = resolve(stderr, StreamKind.STDERR)
    return Bindings(in_binding, out_binding, err_binding)


def _direction_error(kind: StreamKind, handle: t.Any) -> exc.ConfigError:
    needed = "readable" if kind.readable_by_child else "writable"
    return exc.ConfigError(
        f"{kind.value} needs a {needed} handle, got {handle!r}",
    )


def _check_descriptor(fd: int, kind: StreamKind) -> None:
    try:
        os.fstat(fd)
    except OSError as e:
        msg = f"{kind.value}: {fd} is not an open file descriptor"
        raise exc.ConfigError(msg) from e
    if sys.platform == "win32":
        return

    import fcntl

    mode = fcntl.fcntl(fd, fcntl.F_GETFL) & os.O_ACCMODE
    if kind.readable_by_child:
        ok = mode in {os.O_RDONLY, os.O_RDWR}
    else:
        ok = mode in {os.O_WRONLY, os.O_RDWR}
    if not ok:
        raise _direction_error(kind, fd)


def _check_file_object(handle: t.Any, kind: StreamKind) -> int:
    if getattr(handle, "closed", False):
        msg = f"{kind.value}: handle {handle!r} is closed"
        raise exc.ConfigError(msg)

    probe = "readable" if kind.readable_by_child else "writable"
    check = getattr(handle, probe, None)
    if callable(check):
        try:
            ok = check()
        except ValueError as e:
            raise _direction_error(kind, handle) from e
        if not ok:
            raise _direction_error(kind, handle)

    try:
        fd = handle.fileno()
    except (OSError, ValueError) as e:
        msg = f"{kind.value}: handle {handle!r} has no usable file descriptor"
        raise exc.ConfigError(msg) from e
    if not callable(check):
        _check_descriptor(fd, kind)
    return fd
