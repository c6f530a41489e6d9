"""Input parameters and part roles.

A :class:`Parameters` value is immutable: every edit produces a new,
validated instance via :meth:`Parameters.replace`.
"""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping


class Role(str, Enum):
    """Which part a profile or solid belongs to."""

    RAIL = "rail"
    COVER = "cover"
    CONNECTOR = "connector"

    def __str__(self) -> str:
        return self.value


class TurnAxis(str, Enum):
    """Plane of the filleted turn in angled mode."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Parameters:
    """Dimensional parameters for one rail/cover/connector set.

    Attributes:
        inner_width: Channel interior width (mm)
        inner_height: Channel interior height, floor to bead centre (mm)
        length: Part length in straight mode (mm)
        len1: First leg length in angled mode (mm)
        len2: Second leg length in angled mode (mm)
        angle: Turn angle in degrees
        radius: Fillet radius of the turn (mm)
        turn_axis: Plane of the turn
        hole_count: Number of mounting holes in the rail floor
        hole_diameter: Mounting hole diameter (mm)
        clearance: Cover claw interference; larger values pull the claws
            towards the wall and tighten the snap fit
        conn_clearance: Gap between connector sleeves and the rail (mm)
        conn_wall: Connector sleeve wall thickness (mm)
        conn_length: Overall connector length (mm)
        is_angled_mode: Sweep along a filleted turn instead of a straight axis
        show_cutters: Display-only flag for the hole cutter previews
    """
    inner_width: float = 8.0
    inner_height: float = 9.0
    length: float = 100.0
    len1: float = 100.0
    len2: float = 100.0
    angle: float = 90.0
    radius: float = 20.0
    turn_axis: TurnAxis = TurnAxis.HORIZONTAL
    hole_count: int = 2
    hole_diameter: float = 4.0
    clearance: float = 0.6
    conn_clearance: float = 0.2
    conn_wall: float = 1.2
    conn_length: float = 30.0
    is_angled_mode: bool = False
    show_cutters: bool = True

    def __post_init__(self):
        if not isinstance(self.turn_axis, TurnAxis):
            object.__setattr__(self, 'turn_axis', TurnAxis(self.turn_axis))
        if self.inner_width <= 0 or self.inner_height <= 0:
            raise ValueError(
                f"Channel interior must be positive, got "
                f"{self.inner_width}x{self.inner_height}"
            )
        if self.hole_count < 0:
            raise ValueError(f"hole_count must be >= 0, got {self.hole_count}")
        if self.hole_count > 0 and self.hole_diameter <= 0:
            raise ValueError(
                f"hole_diameter must be > 0 when holes are requested, got {self.hole_diameter}"
            )
        for name in ('length', 'len1', 'len2', 'conn_length'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.radius < 0:
            raise ValueError(f"radius must be >= 0, got {self.radius}")
        if self.conn_clearance <= 0 or self.conn_wall <= 0:
            raise ValueError(
                f"Connector clearance and wall must be > 0, got "
                f"{self.conn_clearance} and {self.conn_wall}"
            )

    @property
    def sleeve_length(self) -> float:
        """Length of one connector sleeve (a third of the connector)."""
        return self.conn_length / 3.0

    @property
    def holes_requested(self) -> bool:
        return self.hole_count > 0 and self.hole_diameter > 0

    def replace(self, **changes: Any) -> "Parameters":
        """Return a copy with ``changes`` applied (keys in either case style)."""
        return dataclasses.replace(self, **_normalize_keys(changes))

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data['turn_axis'] = self.turn_axis.value
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Parameters":
        """Build parameters from a mapping with snake_case or camelCase keys."""
        return cls(**_normalize_keys(data))


_FIELD_NAMES = {f.name for f in dataclasses.fields(Parameters)}
_CAMEL = re.compile(r'(?<!^)(?=[A-Z0-9])')


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        name = key if key in _FIELD_NAMES else _CAMEL.sub('_', key).lower()
        if name not in _FIELD_NAMES:
            raise ValueError(f"Unknown parameter '{key}'")
        out[name] = value
    return out


def load_parameters(path: Path | str) -> Parameters:
    """Read parameters from a YAML or JSON document."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as fp:
        if path.suffix == ".json":
            data = json.load(fp)
        else:
            import yaml  # local import, only needed for YAML documents
            data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of parameters")
    return Parameters.from_mapping(data)


__all__ = ['Role', 'TurnAxis', 'Parameters', 'load_parameters']
