"""Immutable description of one process launch.

libproc.config
~~~~~~~~~~~~~~

:meth:`ExecutionConfig.build` is the only place the ambient context is
read. The working directory and the environment are copied at that moment;
changing :data:`os.environ`, the current directory, or the mapping that was
passed in afterwards has no effect on the config, nor on a process spawned
from it.
"""

from __future__ import annotations

import codecs
import dataclasses
import logging
import os
import sys
import types
import typing as t
from collections.abc import Mapping

from . import exc
from ._internal.dataclasses import SkipDefaultFieldsReprMixin
from .constants import DEFAULT_ENCODING, DEFAULT_NEWLINE, POSIX_SHELL
from .environment import Environment

if t.TYPE_CHECKING:
    from collections.abc import Iterable

    from ._internal.types import StrPath

logger = logging.getLogger(__name__)


def _empty_env() -> Mapping[str, str]:
    return types.MappingProxyType({})


@dataclasses.dataclass(frozen=True, repr=False)
class ExecutionConfig(SkipDefaultFieldsReprMixin):
    """What to run, where, and how its captured streams are decoded.

    Attributes
    ----------
    command : tuple[str, ...]
        Full argv handed to the OS. For shell launches this already includes
        the shell and its ``-c`` flag.
    shell : bool
        Whether *command* was produced by :meth:`build` from a shell string.
    cwd : str
        Absolute working directory, captured at build time.
    env : Mapping[str, str]
        Read-only copy of the environment, captured at build time. It
        replaces the child's environment entirely.
    encoding : str
        Ignored when *binary* is set.
    binary, chomp, newline, merge
        See :class:`libproc.proc.Proc`.

    Examples
    --------
    >>> config = ExecutionConfig.build(["echo", "hi"], env={"A": "1"}, cwd="/")
    >>> config
    ExecutionConfig(command=('echo', 'hi'), cwd='/', env=mappingproxy({'A': '1'}))
    >>> config.env["A"]
    '1'

    >>> ExecutionConfig.build("echo $HOME", shell=True, env={}).command
    ('/bin/sh', '-c', 'echo $HOME')
    """

    command: tuple[str, ...]
    shell: bool = False
    cwd: str = ""
    env: Mapping[str, str] = dataclasses.field(default_factory=_empty_env)
    encoding: str = DEFAULT_ENCODING
    binary: bool = False
    chomp: bool = True
    newline: str = DEFAULT_NEWLINE
    merge: bool = False

    @classmethod
    def build(
        cls,
        command: str | Iterable[t.Any],
        *,
        shell: bool = False,
        cwd: StrPath | None = None,
        env: Mapping[str, str] | None = None,
        encoding: str | None = None,
        binary: bool = False,
        chomp: bool = True,
        newline: str | None = None,
        merge: bool = False,
    ) -> ExecutionConfig:
        """Validate options and snapshot the ambient context.

        Parameters
        ----------
        command : str or iterable
            A single shell string when *shell* is set, otherwise the program
            followed by its arguments. Arguments are converted with
            :func:`os.fspath` / :class:`str` and never split.
        env : Mapping, optional
            Defaults to a copy of :data:`os.environ`.
        cwd : str or PathLike, optional
            Defaults to :func:`os.getcwd`. Relative paths are made absolute.

        Raises
        ------
        :exc:`exc.ConfigError`
            Empty command, unknown encoding, empty newline, non-string
            environment entries.
        """
        encoding = DEFAULT_ENCODING if encoding is None else encoding
        newline = DEFAULT_NEWLINE if newline is None else newline
        if not binary:
            try:
                codecs.lookup(encoding)
            except LookupError as e:
                msg = f"Unknown encoding: {encoding!r}"
                raise exc.ConfigError(msg) from e
        if not newline:
            msg = "newline must be a non-empty string"
            raise exc.ConfigError(msg)

        snapshot = Environment(os.environ if env is None else env)
        workdir = os.path.abspath(os.fspath(cwd)) if cwd is not None else os.getcwd()

        if shell:
            if not isinstance(command, str) or not command:
                msg = "shell launches need a single, non-empty command string"
                raise exc.ConfigError(msg)
            argv = shell_argv(command, snapshot)
        else:
            argv = _argv(command)

        return cls(
            command=argv,
            shell=shell,
            cwd=workdir,
            env=types.MappingProxyType(dict(snapshot)),
            encoding=encoding,
            binary=binary,
            chomp=chomp,
            newline=newline,
            merge=merge,
        )


def shell_argv(command: str, env: Mapping[str, str] | None = None) -> tuple[str, ...]:
    """Return the argv that runs *command* through the platform shell.

    Examples
    --------
    >>> shell_argv("ls | wc -l")
    ('/bin/sh', '-c', 'ls | wc -l')
    """
    if sys.platform == "win32":
        comspec = (env or os.environ).get("COMSPEC", "cmd.exe")
        return (comspec, "/c", command)
    return (POSIX_SHELL, "-c", command)


def _argv(command: str | Iterable[t.Any]) -> tuple[str, ...]:
    if isinstance(command, (str, bytes, os.PathLike)):
        command = [command]
    argv = tuple(
        os.fsdecode(arg) if isinstance(arg, (bytes, os.PathLike)) else str(arg)
        for arg in command
    )
    if not argv or not argv[0]:
        msg = "command must name a program"
        raise exc.ConfigError(msg)
    return argv
