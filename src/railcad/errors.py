"""Exception types raised by the railCAD geometry pipeline."""

from __future__ import annotations


class RailCADError(Exception):
    """Base class for railCAD failures."""


class ProfileError(RailCADError):
    """A profile could not be built or converted into a usable region."""


class NonFiniteGeometryError(RailCADError):
    """Generated geometry contains NaN or infinite coordinates."""

    def __init__(self, label: str, count: int):
        super().__init__(f"{label} geometry contains {count} non-finite coordinate(s)")
        self.label = label
        self.count = count


class BooleanEngineError(RailCADError):
    """The boolean backend is missing or failed to evaluate an operation."""


__all__ = [
    'RailCADError',
    'ProfileError',
    'NonFiniteGeometryError',
    'BooleanEngineError',
]
