"""Tunable settings for sweeping, carving, repair and interactive use.

Dimensional inputs live in :mod:`railcad.params`; this module holds the
knobs that control tessellation density and engine choice. Settings can be
overridden from a YAML document::

    path_steps: 120
    boolean_engine: manifold
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """Generation settings.

    Attributes:
        path_steps: Number of samples along a curved sweep path
        arc_resolution: Maximum angular step (degrees) when discretising arcs
        cutter_height: Length of the hole cutter cylinders (mm); must exceed
            the wall span the holes pass through
        cutter_sections: Facet count of the cutter cylinders
        debounce_delay: Input quiescence (s) before a full regeneration
        boolean_engine: Preferred ``trimesh.boolean`` engine
        repair_epsilon: Ray origin offset along the face normal for the
            parity repair (mm)
    """
    path_steps: int = 200
    arc_resolution: float = 10.0
    cutter_height: float = 12.5
    cutter_sections: int = 32
    debounce_delay: float = 1.0
    boolean_engine: Optional[str] = "manifold"
    repair_epsilon: float = 1e-3

    def __post_init__(self):
        if self.path_steps < 1:
            raise ValueError(f"path_steps must be >= 1, got {self.path_steps}")
        if not 0 < self.arc_resolution <= 90:
            raise ValueError(f"arc_resolution must be in (0, 90], got {self.arc_resolution}")
        if self.cutter_height <= 0 or self.cutter_sections < 3:
            raise ValueError("cutter_height must be > 0 and cutter_sections >= 3")
        if self.debounce_delay < 0:
            raise ValueError(f"debounce_delay must be >= 0, got {self.debounce_delay}")


DEFAULT_SETTINGS = Settings()


def load_settings(path: Path | str | None = None) -> Settings:
    """Return :data:`DEFAULT_SETTINGS` updated from a YAML file, if given."""
    if path is None:
        return DEFAULT_SETTINGS
    import yaml  # local import to avoid hard dependency if unused

    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    known = {f.name for f in dataclasses.fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
    return dataclasses.replace(DEFAULT_SETTINGS, **data)


__all__ = ['Settings', 'DEFAULT_SETTINGS', 'load_settings']
