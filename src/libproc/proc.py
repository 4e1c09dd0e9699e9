"""Run external programs and inspect how they ended.

libproc.proc
~~~~~~~~~~~~

:func:`run` executes a program directly, one argument per list element.
:func:`shell` hands a single string to the platform shell. Both return a
:class:`Proc` as soon as the process exists.

Examples
--------
Capture output:

>>> proc = run("echo", "hello", stdout=True)
>>> proc.stdout.slurp(close=True)
'hello\\n'
>>> proc.exitcode
0

Arguments are never word-split or expanded:

>>> run("echo", "$HOME", stdout=True).stdout.slurp(close=True)
'$HOME\\n'

Failing processes raise when disposed of without being looked at:

>>> with run("false"):
...     pass
Traceback (most recent call last):
...
libproc.exc.UnsuccessfulExit: The spawned command 'false' exited unsuccessfully (exit code: 1, signal: 0)

Looking at the outcome first takes responsibility for it:

>>> with run("false") as proc:
...     if not proc:
...         print("failed as expected")
failed as expected
"""

from __future__ import annotations

import logging
import threading
import typing as t

from . import exc, launcher, streams
from ._internal import trace
from .config import ExecutionConfig
from .constants import (
    DEFAULT_ENCODING,
    DEFAULT_NEWLINE,
    NO_SIGNAL,
    NOT_EXITED,
    StreamKind,
)
from .pipe import Pipe

if t.TYPE_CHECKING:
    import subprocess
    import types
    from collections.abc import Mapping

    from typing_extensions import Self

    from ._internal.types import StrPath
    from .pipe import AnyStr

logger = logging.getLogger(__name__)


class Proc:
    """Handle to one external process.

    Create it with the stream directives and decoding options, then launch it
    once with :meth:`spawn` or :meth:`shell` (or use :func:`run` /
    :func:`shell`, which do both).

    Parameters
    ----------
    stdin, stdout, stderr : directive
        ``None``/``"-"`` inherit (default), ``True`` captures into a
        :class:`~libproc.pipe.Pipe`, ``False`` discards, a descriptor, file
        object or another process's pipe is wired in directly.
    binary : bool
        Captured pipes speak :class:`bytes`; *encoding* is ignored.
    chomp : bool
        Strip the line separator from lines read off captured pipes.
    merge : bool
        Send stderr wherever stdout goes; the stderr directive is ignored.
    encoding : str
    newline : str
        Line separator for reading lines and for ``say``.
    cwd : str or PathLike, optional
        Default working directory for :meth:`spawn` and :meth:`shell`.
    env : Mapping, optional
        Default environment for :meth:`spawn` and :meth:`shell`.

    Raises
    ------
    :exc:`exc.ConfigError`
        A directive is unsupported or an external handle has the wrong
        direction. Nothing is spawned.

    Examples
    --------
    >>> proc = Proc(stdout=True)
    >>> proc.pid is None, proc.command
    (True, [])
    >>> proc.spawn("echo", "later") is proc
    True
    >>> proc.stdout.get()
    'later'
    >>> proc.wait()
    0
    """

    def __init__(
        self,
        *,
        stdin: t.Any = None,
        stdout: t.Any = None,
        stderr: t.Any = None,
        binary: bool = False,
        chomp: bool = True,
        merge: bool = False,
        encoding: str = DEFAULT_ENCODING,
        newline: str = DEFAULT_NEWLINE,
        cwd: StrPath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._bindings = streams.resolve_all(stdin, stdout, stderr, merge=merge)
        self._options: dict[str, t.Any] = {
            "binary": binary,
            "chomp": chomp,
            "merge": merge,
            "encoding": encoding,
            "newline": newline,
        }
        self.cwd = cwd
        self.env = env

        self.config: ExecutionConfig | None = None
        self.command: list[str] = []
        self.pid: int | None = None
        self.process: subprocess.Popen[bytes] | None = None

        self._pipes: dict[StreamKind, Pipe] = {}
        self._exitcode = NOT_EXITED
        self._signal = NO_SIGNAL
        self._reaped = False
        self._waiting = False
        self._inspected = False
        self._sunk = False

    @classmethod
    def from_bindings(cls, bindings: streams.Bindings) -> Self:
        """Create an unspawned handle from already resolved bindings."""
        proc = cls()
        proc._bindings = bindings
        return proc

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(command={self.command!r}, pid={self.pid}, "
            f"exitcode={self._exitcode}, signal={self._signal})"
        )

    # launching
    def spawn(
        self,
        *args: t.Any,
        cwd: StrPath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Self:
        """Execute a program directly.

        ``spawn("ls", "-l")`` and ``spawn(["ls", "-l"])`` are equivalent.

        Raises
        ------
        :exc:`exc.SpawnError`
        :exc:`exc.UsageError`
            The handle was already launched.
        """
        if len(args) == 1 and isinstance(args[0], (list, tuple)):
            args = tuple(args[0])
        return self._launch(self._build(args, shell=False, cwd=cwd, env=env))

    def shell(
        self,
        command: str,
        *,
        cwd: StrPath | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Self:
        """Execute *command* through the platform shell.

        The shell performs quoting, globbing and variable expansion; never
        interpolate untrusted input into *command*.
        """
        return self._launch(self._build(command, shell=True, cwd=cwd, env=env))

    def _build(
        self,
        command: t.Any,
        *,
        shell: bool,
        cwd: StrPath | None,
        env: Mapping[str, str] | None,
    ) -> ExecutionConfig:
        return ExecutionConfig.build(
            command,
            shell=shell,
            cwd=self.cwd if cwd is None else cwd,
            env=self.env if env is None else env,
            **self._options,
        )

    def _launch(self, config: ExecutionConfig) -> Self:
        if self.process is not None:
            msg = f"{self!r} was already spawned"
            raise exc.UsageError(msg)

        # a failed launch leaves the handle untouched, ready for another try
        process = launcher.launch(config, self._bindings)

        self.config = config
        self.command = list(config.command)
        self.process = process
        self.pid = process.pid
        for binding, stream in zip(
            self._bindings,
            (process.stdin, process.stdout, process.stderr),
        ):
            if binding.captured and stream is not None:
                self._pipes[binding.kind] = Pipe(
                    stream,
                    binding.kind,
                    self,
                    binary=config.binary,
                    encoding=config.encoding,
                    chomp=config.chomp,
                    newline=config.newline,
                )
        return self

    # pipes
    def _pipe(self, kind: StreamKind) -> Pipe:
        if self.process is None:
            msg = f"{kind.value} is not available before spawn"
            raise exc.UsageError(msg)
        try:
            return self._pipes[kind]
        except KeyError:
            msg = f"{kind.value} was not captured for {self.command!r}"
            raise exc.UsageError(msg) from None

    @property
    def stdin(self) -> Pipe:
        """Writable pipe into the child; only when ``stdin=True``."""
        return self._pipe(StreamKind.STDIN)

    @property
    def stdout(self) -> Pipe:
        """Readable pipe from the child; only when ``stdout=True``."""
        return self._pipe(StreamKind.STDOUT)

    @property
    def stderr(self) -> Pipe:
        """Readable pipe from the child; only when ``stderr=True`` without merge."""
        return self._pipe(StreamKind.STDERR)

    def _pipe_finished(self, pipe: Pipe) -> None:
        if self._reaped or self._waiting or self.process is None:
            return
        if all(p.finished for p in self._pipes.values()):
            logger.debug("all captured streams of pid %s done, reaping", self.pid)
            self.wait()

    @property
    def pipes(self) -> dict[StreamKind, Pipe]:
        """Captured pipes by stream, empty before spawn."""
        return dict(self._pipes)

    # status
    @property
    def reaped(self) -> bool:
        return self._reaped

    @property
    def exitcode(self) -> int:
        """Exit status, or ``-1`` while the process has not been reaped.

        Never blocks. Reading it after the process was reaped counts as
        inspecting the outcome.
        """
        if self._reaped:
            self._inspected = True
        return self._exitcode

    @property
    def signal(self) -> int:
        """Number of the signal that killed the process, ``0`` otherwise."""
        if self._reaped:
            self._inspected = True
        return self._signal

    @property
    def succeeded(self) -> bool:
        return self._exitcode == 0 and self._signal == NO_SIGNAL

    def wait(self) -> int:
        """Block until the process exits and record its status.

        A captured stdin pipe that is still open is closed first, so the
        child sees end-of-input. Repeated calls return the cached status.

        Captured output is not read. A child that fills an unread pipe blocks
        forever; use :meth:`communicate` (or ``bool()``, ``int()``, which
        drain first) when output may exceed the pipe buffer.

        Returns
        -------
        int
            Exit code; ``0`` if the process was killed by a signal.
        """
        if self.process is None:
            msg = "wait() before spawn"
            raise exc.UsageError(msg)
        if self._reaped:
            return self._exitcode

        self._waiting = True
        try:
            stdin = self._pipes.get(StreamKind.STDIN)
            if stdin is not None and not stdin.closed:
                stdin.close()
            with trace.span("libproc.wait", child_pid=self.pid) as fields:
                returncode = self.process.wait()
                fields["returncode"] = returncode
        finally:
            self._waiting = False

        if returncode < 0:
            self._exitcode, self._signal = 0, -returncode
        else:
            self._exitcode, self._signal = returncode, NO_SIGNAL
        self._reaped = True
        logger.debug(
            "pid %s exited: exitcode=%s signal=%s",
            self.pid,
            self._exitcode,
            self._signal,
        )
        return self._exitcode

    def communicate(self, input: AnyStr | None = None) -> tuple[AnyStr, AnyStr]:
        """Feed *input*, drain stdout and stderr together, then reap.

        Reading one captured stream to the end while the child fills the
        other can deadlock on a full pipe buffer. This reads both at once.

        Returns
        -------
        tuple
            Remaining stdout and stderr. Streams that were not captured come
            back empty.

        Examples
        --------
        >>> proc = shell("echo out; echo err >&2", stdout=True, stderr=True)
        >>> proc.communicate()
        ('out\\n', 'err\\n')
        """
        if self.process is None:
            msg = "communicate() before spawn"
            raise exc.UsageError(msg)
        binary = self.config is not None and self.config.binary
        empty: AnyStr = b"" if binary else ""
        readers = {
            kind: pipe
            for kind, pipe in self._pipes.items()
            if kind is not StreamKind.STDIN and not pipe.closed
        }
        results: dict[StreamKind, AnyStr] = {}
        errors: list[BaseException] = []

        def _drain(kind: StreamKind, pipe: Pipe) -> None:
            try:
                results[kind] = pipe.read()
            except BaseException as e:  # re-raised on the calling thread
                errors.append(e)

        self._waiting = True
        try:
            threads = [
                threading.Thread(target=_drain, args=item, daemon=True)
                for item in readers.items()
            ]
            for thread in threads:
                thread.start()
            stdin = self._pipes.get(StreamKind.STDIN)
            if stdin is not None and not stdin.closed:
                try:
                    if input:
                        stdin.write(input)
                except BrokenPipeError:
                    logger.debug("pid %s closed stdin early", self.pid)
                finally:
                    stdin.close()
            for thread in threads:
                thread.join()
        finally:
            self._waiting = False
        if errors:
            raise errors[0]

        self.wait()
        return (
            results.get(StreamKind.STDOUT, empty),
            results.get(StreamKind.STDERR, empty),
        )

    def _settle(self) -> None:
        # unread output is discarded so a child blocked on a full pipe can exit
        if self.process is None:
            self.wait()
        elif not self._reaped:
            self.communicate()

    # inspection
    def __bool__(self) -> bool:
        """Drain unread output, wait, then report success.

        Counts as inspecting the outcome.
        """
        self._settle()
        self._inspected = True
        return self.succeeded

    def __int__(self) -> int:
        self._settle()
        self._inspected = True
        return self._exitcode

    # disposal
    def sink(self) -> None:
        """Dispose of the handle; runs at most once.

        Drains whatever the caller left unread, reaps the process, and raises
        :exc:`exc.UnsuccessfulExit` if it failed and nobody looked at the
        outcome.
        """
        if self._sunk or self.process is None:
            return
        self._sunk = True
        self._settle()
        if self._inspected or self.succeeded:
            logger.debug("sink pid %s: nothing to report", self.pid)
            return
        raise exc.UnsuccessfulExit(
            command=self.command,
            exitcode=self._exitcode,
            signal=self._signal,
            proc=self,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is not None:
            # the body's error wins
            self._inspected = True
        self.sink()


def run(
    *args: t.Any,
    stdin: t.Any = None,
    stdout: t.Any = None,
    stderr: t.Any = None,
    binary: bool = False,
    chomp: bool = True,
    merge: bool = False,
    encoding: str = DEFAULT_ENCODING,
    newline: str = DEFAULT_NEWLINE,
    cwd: StrPath | None = None,
    env: Mapping[str, str] | None = None,
) -> Proc:
    """Execute a program directly, without a shell.

    Each element of *args* is one argument to the program. See
    :class:`Proc` for the options.

    Raises
    ------
    :exc:`exc.ConfigError`
    :exc:`exc.SpawnError`

    Examples
    --------
    >>> run(["printf", "%s-%s", "a b", "c"], stdout=True).stdout.slurp(close=True)
    'a b-c'
    """
    return Proc(
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
        binary=binary,
        chomp=chomp,
        merge=merge,
        encoding=encoding,
        newline=newline,
    ).spawn(*args, cwd=cwd, env=env)


def shell(
    command: str,
    *,
    stdin: t.Any = None,
    stdout: t.Any = None,
    stderr: t.Any = None,
    binary: bool = False,
    chomp: bool = True,
    merge: bool = False,
    encoding: str = DEFAULT_ENCODING,
    newline: str = DEFAULT_NEWLINE,
    cwd: StrPath | None = None,
    env: Mapping[str, str] | None = None,
) -> Proc:
    """Execute *command* through the platform shell.

    Examples
    --------
    >>> proc = shell("echo $GREETING", stdout=True, env={"GREETING": "hi"})
    >>> proc.stdout.slurp(close=True)
    'hi\\n'
    >>> proc.command
    ['/bin/sh', '-c', 'echo $GREETING']
    """
    return Proc(
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
        binary=binary,
        chomp=chomp,
        merge=merge,
        encoding=encoding,
        newline=newline,
    ).shell(command, cwd=cwd, env=env)
