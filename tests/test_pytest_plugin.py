"""Tests for libproc pytest plugin."""

from __future__ import annotations

import os
import sys
import textwrap
import typing as t

import pytest

if t.TYPE_CHECKING:
    import pathlib

    from libproc.environment import Environment
    from libproc.proc import Proc

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX commands")


def test_plugin(
    pytester: pytest.Pytester,
) -> None:
    """Test libproc pytest plugin."""
    pytester.makefile(
        ".ini",
        pytest=textwrap.dedent(
            """
[pytest]
addopts=-vv
        """.strip(),
        ),
    )
    tests_path = pytester.path / "tests"
    files = {
        "example.py": textwrap.dedent(
            """
import pathlib

def test_spawn_fixture(spawn, proc_cwd) -> None:
    proc = spawn("pwd", stdout=True)
    assert pathlib.Path(proc.stdout.get()).resolve() == proc_cwd.resolve()

    piped = spawn("echo $0", shell=True, stdout=True)
    assert piped.stdout.slurp(close=True) == "/bin/sh\\n"

    spawn("sleep", "30")
        """,
        ),
    }
    first_test_key = next(iter(files.keys()))
    first_test_filename = str(tests_path / first_test_key)

    tests_path.mkdir()
    for file_name, text in files.items():
        test_file = tests_path / file_name
        test_file.write_text(
            text,
            encoding="utf-8",
        )

    result = pytester.runpytest(str(first_test_filename))
    result.assert_outcomes(passed=1)


def test_proc_env(proc_env: Environment) -> None:
    """proc_env keeps what a child needs to start and nothing else."""
    assert proc_env.get("PATH") == os.environ.get("PATH")
    assert not any(key.lower().startswith("pytest") for key in proc_env)


def test_spawn_defaults_to_proc_env(
    spawn: t.Callable[..., Proc],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Variables outside the allow-list don't reach spawned processes."""
    monkeypatch.setenv("LIBPROC_TEST_SECRET", "leak")
    proc = spawn("env", stdout=True)
    assert not any(line.startswith("LIBPROC_TEST_SECRET=") for line in proc.stdout)


def test_spawn_env_override(spawn: t.Callable[..., Proc]) -> None:
    """An explicit env wins over proc_env."""
    proc = spawn("env", stdout=True, env={"ONLY": "1"})
    assert list(proc.stdout) == ["ONLY=1"]


def test_proc_cwd(proc_cwd: pathlib.Path) -> None:
    """proc_cwd switches into a fresh directory."""
    assert os.getcwd() == str(proc_cwd)
    assert list(proc_cwd.iterdir()) == []
