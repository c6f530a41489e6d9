# -*- coding: utf-8 -*-
"""Parametric rail, cover and connector solids for 3D printing."""

from importlib.metadata import PackageNotFoundError, version


try:
    __version__ = version("railCAD")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"
