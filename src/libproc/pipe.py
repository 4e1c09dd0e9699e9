"""Caller side of a captured stream.

libproc.pipe
~~~~~~~~~~~~

A :class:`Pipe` wraps the binary file object :mod:`subprocess` hands back
for a captured stream and applies the launch's ``binary``, ``encoding``,
``chomp`` and ``newline`` settings on top of it.
"""

from __future__ import annotations

import codecs
import contextlib
import logging
import typing as t

from . import exc
from .constants import DEFAULT_ENCODING, DEFAULT_NEWLINE, StreamKind

if t.TYPE_CHECKING:
    from collections.abc import Iterator

    from .proc import Proc

logger = logging.getLogger(__name__)

#: Bytes requested from the OS per read while looking for a line separator
CHUNK_SIZE = 8192

AnyStr = t.Union[str, bytes]


class Pipe:
    """Readable (stdout, stderr) or writable (stdin) end of a child's stream.

    Parameters
    ----------
    stream : binary file object
        Caller-side end of the OS pipe.
    kind : StreamKind
        Which of the child's streams this pipe is connected to.
    owner : Proc, optional
        Notified when the pipe reaches end-of-stream or is closed, so the
        process can be reaped once every captured stream is done.
    binary : bool
        Return and accept :class:`bytes`; *encoding* is ignored.
    encoding : str
    chomp : bool
        Strip *newline* from lines returned by :meth:`get` and :meth:`lines`.
    newline : str
        Line separator for reading lines and for :meth:`say`.

    Examples
    --------
    >>> import io
    >>> pipe = Pipe(io.BytesIO(b"a\\nb\\n"), StreamKind.STDOUT)
    >>> pipe.get()
    'a'
    >>> list(pipe.lines())
    ['b']
    >>> pipe.get() is None
    True

    >>> pipe = Pipe(io.BytesIO(b"x;y"), StreamKind.STDOUT, newline=";", chomp=False)
    >>> list(pipe)
    ['x;', 'y']
    """

    def __init__(
        self,
        stream: t.IO[bytes],
        kind: StreamKind,
        owner: Proc | None = None,
        *,
        binary: bool = False,
        encoding: str = DEFAULT_ENCODING,
        chomp: bool = True,
        newline: str = DEFAULT_NEWLINE,
    ) -> None:
        self.stream = stream
        self.kind = kind
        self.owner = owner
        self.binary = binary
        self.encoding = encoding
        self.chomp = chomp
        self.newline = newline

        # text pipes buffer decoded text, so separators are matched on
        # characters and never on the bytes of a multi-byte encoding
        self._nl: AnyStr = newline.encode(DEFAULT_ENCODING) if binary else newline
        self._buffer: t.Any = bytearray() if binary else ""
        self._decoder = (
            None
            if binary
            else codecs.getincrementaldecoder(encoding)("backslashreplace")
        )
        self._encoder = None if binary else codecs.getincrementalencoder(encoding)()
        self._eof = False
        self._detached = False

    def __repr__(self) -> str:
        state = "closed" if self.closed else ("eof" if self._eof else "open")
        return f"{self.__class__.__name__}({self.kind.value}, {state})"

    # io-style capability probes
    def readable(self) -> bool:
        return not self.kind.readable_by_child

    def writable(self) -> bool:
        return self.kind.readable_by_child

    def fileno(self) -> int:
        return self.stream.fileno()

    @property
    def closed(self) -> bool:
        return self._detached or self.stream.closed

    @property
    def eof(self) -> bool:
        """Return True once the child closed its end and the buffer is empty."""
        return self._eof and not self._buffer

    @property
    def buffered(self) -> bool:
        """Return True if data was read from the OS but not returned yet.

        Such data would be lost if the descriptor were handed to another
        process.
        """
        if self._buffer:
            return True
        return self._decoder is not None and bool(self._decoder.getstate()[0])

    @property
    def finished(self) -> bool:
        """Return True if this pipe no longer holds the process open."""
        if self.closed:
            return True
        return self.readable() and self.eof

    # reading
    def read(self, size: int = -1) -> AnyStr:
        """Read up to *size* characters (bytes in binary mode), or all if negative.

        Returns an empty string or bytes at end-of-stream.
        """
        self._require("read")
        if size == 0:
            return self._take(0)
        if size is None or size < 0:
            if not self._eof:
                self._feed(self.stream.read(), final=True)
            data = self._take(len(self._buffer))
            self._hit_eof()
            return data
        while not self._buffer and not self._eof:
            self._fill(size)
        data = self._take(size)
        if not data:
            self._hit_eof()
        return data

    def get(self) -> AnyStr | None:
        """Return the next line, or ``None`` at end-of-stream."""
        self._require("read")
        start = 0
        while True:
            idx = self._buffer.find(self._nl, start)
            if idx >= 0:
                line = self._take(idx + len(self._nl))
                return line[:idx] if self.chomp else line
            if self._eof:
                break
            # a separator may straddle the old and the new data
            start = max(len(self._buffer) - len(self._nl) + 1, 0)
            self._fill(CHUNK_SIZE)

        if not self._buffer:
            self._hit_eof()
            return None
        line = self._take(len(self._buffer))
        self._hit_eof()
        return line

    def lines(self) -> Iterator[AnyStr]:
        """Iterate over remaining lines."""
        while True:
            line = self.get()
            if line is None:
                return
            yield line

    __iter__ = lines

    def slurp(self, close: bool = False) -> AnyStr:
        """Return everything left in the stream.

        Parameters
        ----------
        close : bool
            Close the pipe afterwards, reaping the process if this was the
            last captured stream.
        """
        data = self.read()
        if close:
            self.close()
        return data

    # writing
    def write(self, data: AnyStr) -> int:
        """Write *data* and flush. Returns the number of bytes written."""
        self._require("write")
        if isinstance(data, str):
            if self._encoder is None:
                msg = "binary pipe needs bytes, got str"
                raise exc.UsageError(msg)
            data = self._encoder.encode(data)
        written = self.stream.write(data)
        self.stream.flush()
        return written

    def print(self, *items: t.Any) -> int:
        return self.write(self._join(items))

    def say(self, *items: t.Any) -> int:
        """Like :meth:`print`, followed by the line separator."""
        return self.write(self._join((*items, self.newline)))

    def flush(self) -> None:
        if self.writable() and not self.closed:
            self.stream.flush()

    def close(self) -> Proc | None:
        """Close the caller side. Returns the owning process, if any.

        Closing the last captured stream of a process reaps it.
        """
        if not self.stream.closed:
            if self.writable():
                # child may have exited without reading everything
                with contextlib.suppress(BrokenPipeError):
                    self.stream.close()
            else:
                self.stream.close()
        self._buffer = self._buffer[:0]
        return self._notify()

    def detach(self) -> None:
        """Close the parent's copy after another process took it over.

        Unlike :meth:`close`, this never reaps the owner: the process on the
        other side of the hand-off is still running.
        """
        if not self.stream.closed:
            self.stream.close()
        self._detached = True
        logger.debug("%r handed off, parent copy closed", self)

    # internals
    def _require(self, op: str) -> None:
        if self.closed:
            msg = f"{op} on closed {self.kind.value} pipe"
            raise exc.UsageError(msg)
        allowed = self.readable() if op == "read" else self.writable()
        if not allowed:
            msg = f"cannot {op} the {self.kind.value} pipe"
            raise exc.UsageError(msg)

    def _fill(self, size: int) -> None:
        read1 = getattr(self.stream, "read1", None)
        chunk = read1(size) if read1 is not None else self.stream.read(size)
        self._feed(chunk, final=not chunk)

    def _feed(self, chunk: bytes, final: bool = False) -> None:
        if self._decoder is None:
            self._buffer += chunk
        else:
            self._buffer += self._decoder.decode(chunk, final)
        if final:
            self._eof = True

    def _take(self, size: int) -> AnyStr:
        data = self._buffer[:size]
        self._buffer = self._buffer[size:]
        return bytes(data) if self._decoder is None else data

    def _hit_eof(self) -> None:
        if self._eof and self._buffer:
            return
        self._eof = True
        self._notify()

    def _notify(self) -> Proc | None:
        if self.owner is not None:
            self.owner._pipe_finished(self)
        return self.owner

    def _join(self, items: tuple[t.Any, ...]) -> AnyStr:
        if self.binary:
            return b"".join(
                i if isinstance(i, bytes) else str(i).encode(DEFAULT_ENCODING)
                for i in items
            )
        return "".join(
            i.decode(self.encoding) if isinstance(i, bytes) else str(i) for i in items
        )
