"""libproc pytest plugin."""

from __future__ import annotations

import logging
import os
import typing as t

import pytest

from libproc.environment import Environment
from libproc.proc import Proc, run, shell as run_shell

if t.TYPE_CHECKING:
    import pathlib
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

#: Variables kept by :func:`proc_env`; everything else is dropped
ENV_KEEP = ("path", "home", "lang", "lc_", "tmpdir", "systemroot", "comspec")


@pytest.fixture
def proc_env() -> Environment:
    """Return a trimmed snapshot of the environment for spawned processes.

    Only variables a child commonly needs to start are kept (``PATH``,
    ``HOME``, locale), so results don't depend on the developer's shell
    setup.
    """
    return Environment(
        (k, v)
        for k, v in os.environ.items()
        if any(k.lower().startswith(needle) for needle in ENV_KEEP)
    )


@pytest.fixture
def proc_cwd(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
) -> pathlib.Path:
    """Change into a fresh temporary directory for the duration of the test."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def spawn(proc_env: Environment) -> Iterator[Callable[..., Proc]]:
    """Return a factory for :class:`~libproc.proc.Proc` objects.

    Direct launches take the argv as positional arguments; pass
    ``shell=True`` with a single string to go through the shell. Processes
    default to :func:`proc_env`. Anything still running at teardown is killed
    and reaped, and leftover pipes are closed.

    Examples
    --------
    .. code-block:: python

        def test_greeting(spawn):
            proc = spawn("echo", "hi", stdout=True)
            assert proc.stdout.slurp(close=True) == "hi\\n"
    """
    procs: list[Proc] = []

    def factory(*args: t.Any, shell: bool = False, **options: t.Any) -> Proc:
        options.setdefault("env", proc_env)
        if shell:
            (command,) = args
            proc = run_shell(command, **options)
        else:
            proc = run(*args, **options)
        procs.append(proc)
        return proc

    yield factory

    for proc in procs:
        if proc.process is None or proc.reaped:
            continue
        if proc.process.poll() is None:
            logger.debug("killing leftover pid %s", proc.pid)
            proc.process.kill()
        for pipe in proc.pipes.values():
            if not pipe.closed:
                pipe.stream.close()
        proc.wait()
