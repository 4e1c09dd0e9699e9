"""libproc, spawn external processes and redirect their standard streams."""

from .__about__ import (
    __author__,
    __copyright__,
    __description__,
    __email__,
    __license__,
    __package_name__,
    __title__,
    __version__,
)
from .config import ExecutionConfig
from .environment import Associative, Environment
from .exc import (
    ConfigError,
    LibProcException,
    SpawnError,
    UnsuccessfulExit,
    UsageError,
)
from .pipe import Pipe
from .proc import Proc, run, shell
from .streams import CapturePipe, Discard, ExternalHandle, Inherit

__all__ = (
    "Associative",
    "CapturePipe",
    "ConfigError",
    "Discard",
    "Environment",
    "ExecutionConfig",
    "ExternalHandle",
    "Inherit",
    "LibProcException",
    "Pipe",
    "Proc",
    "SpawnError",
    "UnsuccessfulExit",
    "UsageError",
    "__author__",
    "__copyright__",
    "__description__",
    "__email__",
    "__license__",
    "__package_name__",
    "__title__",
    "__version__",
    "run",
    "shell",
)
