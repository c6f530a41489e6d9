"""Mounting holes through the rail floor.

Hole placement is derived from the parameters and the sweep path; each
placement becomes a cylinder cutter subtracted from the rail.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import trimesh
from trimesh import transformations as tf

from . import boolean
from .config import DEFAULT_SETTINGS, Settings
from .params import Parameters, TurnAxis
from .path import SweepPath
from .solids import GenerationMode, Solid

logger = logging.getLogger(__name__)

# Distance from the path to the cutter centre in angled mode, towards the
# rail floor. Calibrated against printed parts.
HOLE_AXIS_OFFSET = 3.0

Y_AXIS = np.array([0.0, 1.0, 0.0])
IDENTITY_QUATERNION = (1.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class HoleSpec:
    """Where one cutter goes.

    Attributes:
        index: Hole number along the rail
        t: Fraction of the path length
        position: Cutter centre
        orientation: Quaternion ``(w, x, y, z)`` rotating the cutter axis
            from +Y into place
        diameter: Hole diameter
    """
    index: int
    t: float
    position: Tuple[float, float, float]
    orientation: Tuple[float, float, float, float]
    diameter: float

    @property
    def axis(self) -> np.ndarray:
        return self.matrix()[:3, :3] @ Y_AXIS

    def matrix(self) -> np.ndarray:
        """4x4 placement of a +Y-aligned cutter."""
        m = tf.quaternion_matrix(self.orientation)
        m[:3, 3] = self.position
        return m


def _quaternion_from_to(src: np.ndarray, dst: np.ndarray) -> Tuple[float, ...]:
    rot = trimesh.geometry.align_vectors(src, dst)
    return tuple(float(v) for v in tf.quaternion_from_matrix(rot))


def hole_placements(params: Parameters, path: Optional[SweepPath] = None) -> List[HoleSpec]:
    """Return ``hole_count`` evenly spaced hole placements.

    Straight mode spaces the holes along ``z`` around the centred rail.
    Angled mode places them on the path at ``t = (i + 0.5) / N``, pushed
    :data:`HOLE_AXIS_OFFSET` towards the floor, in the path's local frame.
    """
    if not params.holes_requested:
        return []
    n = params.hole_count
    holes = []
    for i in range(n):
        t = (i + 0.5) / n
        if not params.is_angled_mode:
            step = params.length / n
            pos = np.array([0.0, 0.0, -params.length / 2.0 + step * (i + 0.5)])
            quat = IDENTITY_QUATERNION
        else:
            if path is None:
                raise ValueError("angled hole placement needs the sweep path")
            pos = np.array(path.point_at(t), dtype=float)
            if params.turn_axis is TurnAxis.VERTICAL:
                quat = tuple(float(v) for v in tf.quaternion_about_axis(-math.pi / 2, [0, 0, 1]))
                pos[0] -= HOLE_AXIS_OFFSET
            else:
                tangent = path.tangent_at(t)
                normal = np.cross(tangent, Y_AXIS)
                normal /= np.linalg.norm(normal)
                quat = _quaternion_from_to(Y_AXIS, normal)
                pos += HOLE_AXIS_OFFSET * normal
        holes.append(HoleSpec(i, t, tuple(float(v) for v in pos), quat, params.hole_diameter))
    return holes


def cutter_mesh(hole: HoleSpec, settings: Settings = DEFAULT_SETTINGS) -> trimesh.Trimesh:
    """Cylinder for ``hole``, axis along the placement's rotated +Y."""
    cyl = trimesh.creation.cylinder(radius=hole.diameter / 2.0,
                                    height=settings.cutter_height,
                                    sections=settings.cutter_sections)
    # trimesh cylinders run along +Z
    cyl.apply_transform(tf.rotation_matrix(-math.pi / 2, [1, 0, 0]))
    cyl.apply_transform(hole.matrix())
    return cyl


def carve_holes(rail: Solid, holes: List[HoleSpec], settings: Settings = DEFAULT_SETTINGS,
                backend: Optional[boolean.BooleanBackend] = None) -> List[Solid]:
    """Subtract every cutter from ``rail`` in place.

    Cutters are subtracted one at a time in placement order. The cutter
    solids are returned for display and share the rail's transform.

    Raises:
        BooleanEngineError: If the boolean backend fails
    """
    if backend is None:
        backend = boolean.get_backend(settings.boolean_engine)
    cutters = []
    mesh = rail.mesh
    for hole in holes:
        cutter = cutter_mesh(hole, settings)
        mesh = backend.difference(mesh, cutter)
        cutters.append(Solid(cutter, rail.role, GenerationMode.SWEPT,
                             transform=rail.transform.copy()))
    if holes:
        logger.debug("carved %d hole(s) of %.3f mm", len(holes), holes[0].diameter)
        rail.mesh = mesh
        rail.mode = GenerationMode.BOOLEAN
    return cutters


__all__ = [
    'HOLE_AXIS_OFFSET',
    'HoleSpec',
    'hole_placements',
    'cutter_mesh',
    'carve_holes',
]
