"""Metadata package for libproc."""

from __future__ import annotations

__title__ = "libproc"
__package_name__ = "libproc"
__version__ = "0.1.0"
__description__ = "Spawn external processes, redirect their streams, check how they exit"
__email__ = "libproc@example.org"
__author__ = "libproc contributors"
__github__ = "https://github.com/libproc/libproc"
__docs__ = "https://libproc.readthedocs.io"
__tracker__ = "https://github.com/libproc/libproc/issues"
__pypi__ = "https://pypi.org/project/libproc/"
__license__ = "MIT"
__copyright__ = "Copyright 2026- libproc contributors"
