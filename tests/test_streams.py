"""Tests for stream directive resolution."""

from __future__ import annotations

import os
import subprocess
import sys
import typing as t

import pytest

from libproc import exc, launcher
from libproc.constants import StreamKind
from libproc.proc import run
from libproc.streams import (
    CapturePipe,
    Discard,
    ExternalHandle,
    Inherit,
    coerce_directive,
    resolve,
    resolve_all,
)

if t.TYPE_CHECKING:
    import pathlib


class CoerceFixture(t.NamedTuple):
    """Test fixture for coerce_directive()."""

    test_id: str
    value: t.Any
    expected: t.Any


COERCE_FIXTURES: list[CoerceFixture] = [
    CoerceFixture(test_id="none_inherits", value=None, expected=Inherit()),
    CoerceFixture(test_id="dash_inherits", value="-", expected=Inherit()),
    CoerceFixture(test_id="true_captures", value=True, expected=CapturePipe()),
    CoerceFixture(test_id="false_discards", value=False, expected=Discard()),
    CoerceFixture(test_id="fd", value=1, expected=ExternalHandle(1)),
    CoerceFixture(
        test_id="directive_passthrough",
        value=Discard(),
        expected=Discard(),
    ),
]


@pytest.mark.parametrize(
    list(CoerceFixture._fields),
    COERCE_FIXTURES,
    ids=[test.test_id for test in COERCE_FIXTURES],
)
def test_coerce_directive(test_id: str, value: t.Any, expected: t.Any) -> None:
    """Verify user values map to the right directive."""
    assert coerce_directive(value) == expected


@pytest.mark.parametrize("value", ["out.txt", 1.5, object()])
def test_coerce_directive_rejects(value: t.Any) -> None:
    """Unsupported values raise ConfigError."""
    with pytest.raises(exc.ConfigError, match="Unsupported stream directive"):
        coerce_directive(value)


def test_config_error_is_value_error() -> None:
    """ConfigError can be caught as ValueError."""
    with pytest.raises(ValueError):
        coerce_directive("nope")


class ResolveFixture(t.NamedTuple):
    """Test fixture for resolve()."""

    test_id: str
    directive: t.Any
    target: t.Any
    captured: bool


RESOLVE_FIXTURES: list[ResolveFixture] = [
    ResolveFixture(test_id="inherit", directive=None, target=None, captured=False),
    ResolveFixture(
        test_id="discard",
        directive=False,
        target=subprocess.DEVNULL,
        captured=False,
    ),
    ResolveFixture(
        test_id="capture",
        directive=True,
        target=subprocess.PIPE,
        captured=True,
    ),
]


@pytest.mark.parametrize(
    list(ResolveFixture._fields),
    RESOLVE_FIXTURES,
    ids=[test.test_id for test in RESOLVE_FIXTURES],
)
@pytest.mark.parametrize("kind", list(StreamKind))
def test_resolve(
    test_id: str,
    directive: t.Any,
    target: t.Any,
    captured: bool,
    kind: StreamKind,
) -> None:
    """Inherit, Discard and CapturePipe resolve the same for every stream."""
    binding = resolve(directive, kind)
    assert binding.kind is kind
    assert binding.target == target
    assert binding.captured is captured
    assert binding.handoff is None


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX descriptor modes")
def test_resolve_descriptor_direction() -> None:
    """Descriptors must be readable for stdin, writable for stdout/stderr."""
    read_fd, write_fd = os.pipe()
    try:
        assert resolve(read_fd, StreamKind.STDIN).target == read_fd
        assert resolve(write_fd, StreamKind.STDOUT).target == write_fd
        assert resolve(write_fd, StreamKind.STDERR).target == write_fd

        with pytest.raises(exc.ConfigError, match="readable"):
            resolve(write_fd, StreamKind.STDIN)
        with pytest.raises(exc.ConfigError, match="writable"):
            resolve(read_fd, StreamKind.STDOUT)
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_resolve_closed_descriptor() -> None:
    """A descriptor number that is not open is rejected."""
    read_fd, write_fd = os.pipe()
    os.close(read_fd)
    os.close(write_fd)
    with pytest.raises(exc.ConfigError, match="not an open file descriptor"):
        resolve(read_fd, StreamKind.STDIN)


def test_resolve_file_object_direction(tmp_path: pathlib.Path) -> None:
    """File objects are checked with readable()/writable()."""
    path = tmp_path / "data.txt"
    path.write_text("payload\n", encoding="utf-8")

    with path.open("rb") as reader:
        binding = resolve(reader, StreamKind.STDIN)
        assert binding.target == reader.fileno()
        with pytest.raises(exc.ConfigError, match="writable"):
            resolve(reader, StreamKind.STDOUT)

    with path.open("ab") as writer:
        assert resolve(writer, StreamKind.STDERR).target == writer.fileno()
        with pytest.raises(exc.ConfigError, match="readable"):
            resolve(writer, StreamKind.STDIN)


def test_resolve_closed_file_object(tmp_path: pathlib.Path) -> None:
    """Closed file objects are rejected."""
    path = tmp_path / "data.txt"
    path.touch()
    handle = path.open("rb")
    handle.close()
    with pytest.raises(exc.ConfigError, match="closed"):
        resolve(handle, StreamKind.STDIN)


def test_mismatched_handle_spawns_nothing(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Resolution fails before the launcher is ever reached."""
    calls: list[t.Any] = []
    monkeypatch.setattr(launcher, "launch", lambda *args: calls.append(args))

    with (tmp_path / "out.txt").open("wb") as writer, pytest.raises(exc.ConfigError):
        run("cat", stdin=writer)
    assert calls == []


def test_resolve_all_merge_ignores_stderr_directive() -> None:
    """With merge, stderr follows stdout whatever its own directive says."""
    bindings = resolve_all(stdout=True, stderr="not a directive", merge=True)
    assert bindings.stdout.captured
    assert bindings.stderr.target == subprocess.STDOUT
    assert not bindings.stderr.captured


def test_resolve_all_merge_with_inherited_stdout() -> None:
    """Merging into an inherited stdout still redirects stderr."""
    bindings = resolve_all(merge=True)
    assert bindings.stdout.target is None
    assert bindings.stderr.target == subprocess.STDOUT


def test_resolve_all_independent_streams() -> None:
    """Without merge, each stream gets its own directive."""
    bindings = resolve_all(stdin=False, stdout=True, stderr=None)
    assert [b.kind for b in bindings] == list(StreamKind)
    assert bindings.stdin.target == subprocess.DEVNULL
    assert bindings.stdout.target == subprocess.PIPE
    assert bindings.stderr.target is None
    assert bindings.handoffs == []


def test_resolve_pipe_of_another_process() -> None:
    """A captured stdout pipe can feed another process's stdin."""
    producer = run("echo", "hi", stdout=True)
    binding = resolve(producer.stdout, StreamKind.STDIN)
    assert binding.handoff is producer.stdout
    assert binding.target == producer.stdout.fileno()

    with pytest.raises(exc.ConfigError, match="writable"):
        resolve(producer.stdout, StreamKind.STDOUT)

    assert producer.stdout.slurp(close=True) == "hi\n"


def test_resolve_stdin_pipe_as_stdin_rejected() -> None:
    """A writable stdin pipe cannot be another process's stdin."""
    proc = run("cat", stdin=True, stdout=False)
    with pytest.raises(exc.ConfigError, match="readable"):
        resolve(proc.stdin, StreamKind.STDIN)
    proc.stdin.close()
    assert proc.wait() == 0
