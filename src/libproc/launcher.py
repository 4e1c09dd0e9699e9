"""Create operating-system processes.

libproc.launcher
~~~~~~~~~~~~~~~~

"""

from __future__ import annotations

import logging
import subprocess
import typing as t

from . import exc
from ._internal import trace
from ._internal.subprocess import SubprocessCommand

if t.TYPE_CHECKING:
    from .config import ExecutionConfig
    from .proc import Proc
    from .streams import Bindings

logger = logging.getLogger(__name__)


def launch(config: ExecutionConfig, bindings: Bindings) -> subprocess.Popen[bytes]:
    """Start *config* with *bindings* and return the running process.

    The argv is passed to the OS as-is; no shell is involved unless
    *config* was built for a shell launch, in which case the shell is the
    first element of the argv.

    Raises
    ------
    :exc:`exc.SpawnError`
        The OS refused to create the process: missing executable, no
        permission, bad working directory.
    """
    cmd = SubprocessCommand(
        args=list(config.command),
        stdin=bindings.stdin.target,
        stdout=bindings.stdout.target,
        stderr=bindings.stderr.target,
        cwd=config.cwd,
        env=dict(config.env),
    )
    try:
        with trace.span("libproc.spawn", command=cmd.args) as fields:
            process = cmd.Popen()
            fields["child_pid"] = process.pid
    except OSError as e:
        logger.exception(f"Exception for {subprocess.list2cmdline(cmd.args)}")
        raise exc.SpawnError(config.command, e) from e

    for pipe in bindings.handoffs:
        pipe.detach()

    logger.debug(
        "spawned %s (pid %s) in %s, streams: %s",
        subprocess.list2cmdline(cmd.args),
        process.pid,
        config.cwd,
        ", ".join(
            f"{b.kind.value}={type(b.directive).__name__}" for b in bindings
        ),
    )
    return process


def spawn(config: ExecutionConfig, bindings: Bindings) -> Proc:
    """Launch *config* and return its result handle right away.

    The process keeps running; captured pipes are open and ready before it
    exits.

    Examples
    --------
    >>> from libproc.config import ExecutionConfig
    >>> from libproc.streams import resolve_all
    >>> proc = spawn(ExecutionConfig.build(["echo", "hi"]), resolve_all(stdout=True))
    >>> proc.stdout.slurp(close=True)
    'hi\\n'
    >>> proc.exitcode
    0
    """
    from .proc import Proc

    return Proc.from_bindings(bindings)._launch(config)
