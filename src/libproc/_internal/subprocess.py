"""Invokable :mod:`subprocess` wrapper.

Describe a launch up front, log or trace it, spawn it later.

Note
----
This is an internal API not covered by versioning policy.

Examples
--------
- :class:`~SubprocessCommand`: Wraps :class:`subprocess.Popen` in a
  :func:`~dataclasses.dataclass`.

  >>> import subprocess
  >>> cmd = SubprocessCommand(['echo', 'hi'], stdout=subprocess.PIPE)
  >>> cmd
  SubprocessCommand(args=['echo', 'hi'], stdout=-1)
  >>> proc = cmd.Popen()
  >>> proc.communicate()[0]
  b'hi\\n'

  Tweak params before invocation:

  >>> cmd = SubprocessCommand(['echo', 'hi'], stdout=subprocess.PIPE)
  >>> cmd.args[1] = 'hello'
  >>> proc = cmd.Popen()
  >>> proc.communicate()[0]
  b'hello\\n'
"""

from __future__ import annotations

import dataclasses
import subprocess
import sys
import typing as t

from typing_extensions import TypeAlias

from .dataclasses import SkipDefaultFieldsReprMixin

if t.TYPE_CHECKING:
    from collections.abc import Mapping

    from .types import PopenFile, StrPath

if sys.platform == "win32":
    _ENV: TypeAlias = "Mapping[str, str]"
else:
    _ENV: TypeAlias = "Mapping[bytes, StrPath] | Mapping[str, StrPath]"


@dataclasses.dataclass(repr=False)
class SubprocessCommand(SkipDefaultFieldsReprMixin):
    """Wraps a :mod:`subprocess` request. Inspect, mutate, control before invocation.

    Streams are always opened in binary mode; decoding is left to
    :class:`libproc.pipe.Pipe`, which knows about ``chomp`` and ``newline``.
    Nothing is run through a shell here: shell launches already carry the
    shell in *args*.

    Attributes
    ----------
    args : list[str]
        Program followed by its arguments.

    stdin, stdout, stderr : PopenFile
        ``None`` to inherit, :data:`subprocess.PIPE`, :data:`subprocess.DEVNULL`,
        :data:`subprocess.STDOUT` (stderr only), a descriptor or a file object.

    cwd : StrPath, optional
        Sets the current directory before the child is executed.

    env : Mapping, optional
        Replaces the environment of the new process.

    Examples
    --------
    >>> cmd = SubprocessCommand(["ls", "-l"], cwd="/")
    >>> cmd.args
    ['ls', '-l']
    >>> cmd
    SubprocessCommand(args=['ls', '-l'], cwd='/')
    """

    args: list[str]
    stdin: PopenFile = None
    stdout: PopenFile = None
    stderr: PopenFile = None
    cwd: StrPath | None = None
    env: _ENV | None = None

    def Popen(self) -> subprocess.Popen[bytes]:
        """Run the command with :class:`subprocess.Popen`.

        Raises
        ------
        OSError
            The executable or working directory is missing or not accessible.

        Examples
        --------
        >>> cmd = SubprocessCommand(args=['true'])
        >>> cmd.Popen().wait()
        0
        """
        return subprocess.Popen(
            self.args,
            stdin=self.stdin,
            stdout=self.stdout,
            stderr=self.stderr,
            cwd=self.cwd,
            env=self.env,
        )
