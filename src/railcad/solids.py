"""Solid generation for rails, covers and connectors.

Straight parts are swept along +Z with profile X on world X and profile Y
on world Y, then translated so the rail rests on ``y = 0`` and the sweep
is centred on ``z = 0``. Angled parts are swept along the filleted turn
with profile X on ``-Y`` and profile Y on ``+X`` at the start; their world
placement is kept in :attr:`Solid.transform`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
import trimesh
from trimesh import transformations as tf

from . import profiles
from .config import DEFAULT_SETTINGS, Settings
from .params import Parameters, Role
from .path import SweepPath, path_for, straight_path, tangent_offset
from .profile import Profile
from .sweep import Zone, section_of, stitch_zones, sweep_section

logger = logging.getLogger(__name__)

ANGLED_SIDE = (0.0, -1.0, 0.0)
ANGLED_UP = (1.0, 0.0, 0.0)


class GenerationMode(str, Enum):
    """How a solid's mesh was produced."""

    SWEPT = "swept"          # single profile sweep
    STITCHED = "stitched"    # zones merged into one mesh
    BOOLEAN = "boolean"      # result of a boolean subtraction

    def __str__(self) -> str:
        return self.value


@dataclass(eq=False)
class Solid:
    """A generated mesh together with its role and placement.

    Attributes:
        mesh: Triangle mesh in local coordinates
        role: Part this solid belongs to
        mode: How the mesh was produced
        transform: 4x4 local-to-world matrix
        visible: Display flag
    """
    mesh: Optional[trimesh.Trimesh]
    role: Role
    mode: GenerationMode
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    visible: bool = True

    @property
    def disposed(self) -> bool:
        return self.mesh is None

    def world_mesh(self) -> trimesh.Trimesh:
        """Copy of the mesh with :attr:`transform` baked into the vertices."""
        if self.mesh is None:
            raise ValueError(f"{self.role} solid has been disposed")
        mesh = self.mesh.copy()
        if not np.allclose(self.transform, np.eye(4)):
            mesh.apply_transform(self.transform)
        return mesh

    def dispose(self) -> None:
        """Drop the mesh so its buffers can be reclaimed."""
        self.mesh = None


def angled_transform(rail_mesh: trimesh.Trimesh, len1: float) -> np.ndarray:
    """World placement for angled parts: turn upright, ground, recentre.

    The result is ``T_z(-len1) @ T_y(ground) @ R_z(90°)`` where ``ground``
    lifts the lowest rotated rail vertex onto ``y = 0``.
    """
    rot = tf.rotation_matrix(math.pi / 2, [0, 0, 1])
    rotated_y = rail_mesh.vertices @ rot[:3, :3].T
    ground = -float(rotated_y[:, 1].min())
    return tf.translation_matrix([0.0, ground, -len1]) @ rot


class SolidGenerator:
    """Builds rail, cover and connector solids from parameters.

    Args:
        settings: Tessellation settings
        source: Optional loaded profile source; when present its rail and
            cover profiles replace the procedural ones
    """

    def __init__(self, settings: Settings = DEFAULT_SETTINGS, source=None):
        self.settings = settings
        self.source = source

    # profiles

    def rail_profile(self, params: Parameters) -> Profile:
        if self.source is not None:
            return self.source.rail
        return profiles.rail(params.inner_width, params.inner_height)

    def cover_profile(self, params: Parameters, has_claws: bool = True) -> Profile:
        if self.source is not None:
            return self.source.cover
        return profiles.cover(params.inner_width, params.inner_height,
                              params.clearance, has_claws)

    def _section(self, profile):
        return section_of(profile, self.settings.arc_resolution)

    # cover zoning

    def cover_stitches(self, params: Parameters) -> bool:
        """Whether the cover is long enough for claw-free ends."""
        if self.source is not None:
            return False
        sleeve = params.sleeve_length
        if params.is_angled_mode:
            t = tangent_offset(params.len1, params.len2, params.angle, params.radius)
            return params.len1 - t > sleeve and params.len2 - t > sleeve
        return params.length > 2 * sleeve

    def cover_zones(self, params: Parameters, path: SweepPath) -> List[Zone]:
        """Claw-free, clawed, claw-free spans over ``path``."""
        sleeve = params.sleeve_length
        total = path.length
        plain = self._section(self.cover_profile(params, has_claws=False))
        clawed = self._section(self.cover_profile(params, has_claws=True))
        return [
            Zone(plain, 0.0, sleeve),
            Zone(clawed, sleeve, total - sleeve),
            Zone(plain, total - sleeve, total),
        ]

    # solids

    def _frame(self, params: Parameters):
        if params.is_angled_mode:
            return ANGLED_SIDE, ANGLED_UP
        return None, None

    def rail(self, params: Parameters, path: SweepPath) -> Solid:
        side, up = self._frame(params)
        mesh = sweep_section(self._section(self.rail_profile(params)), path,
                             self.settings.path_steps, side, up, label='rail')
        return Solid(mesh, Role.RAIL, GenerationMode.SWEPT)

    def cover(self, params: Parameters, path: SweepPath) -> Solid:
        side, up = self._frame(params)
        if self.cover_stitches(params):
            zones = self.cover_zones(params, path)
            logger.debug("cover stitched: zones %s",
                         ", ".join(f"{z.length:.3f}" for z in zones))
            mesh = stitch_zones(zones, path, self.settings.path_steps, side, up,
                                label='cover')
            return Solid(mesh, Role.COVER, GenerationMode.STITCHED)
        logger.debug("cover not stitched, sweeping a single section")
        section = self._section(self.cover_profile(params, has_claws=False))
        mesh = sweep_section(section, path, self.settings.path_steps, side, up,
                             label='cover')
        return Solid(mesh, Role.COVER, GenerationMode.SWEPT)

    def connector(self, params: Parameters) -> Solid:
        """Sleeves, centre stop, sleeves along a straight axis, grounded and centred."""
        conn = profiles.connector(params.inner_width, params.inner_height,
                                  params.conn_clearance, params.conn_wall)
        sleeves = self._section([conn.outer_sleeve, conn.inner_sleeve])
        center = self._section(conn.center)
        s = params.sleeve_length
        path = straight_path(params.conn_length)
        zones = [
            Zone(sleeves, 0.0, s),
            Zone(center, s, 2 * s),
            Zone(sleeves, 2 * s, params.conn_length),
        ]
        mesh = stitch_zones(zones, path, self.settings.path_steps, label='connector')
        (_, min_y), _ = conn.center.bounds(self.settings.arc_resolution)
        mesh.apply_translation([0.0, -min_y, -params.conn_length / 2.0])
        return Solid(mesh, Role.CONNECTOR, GenerationMode.STITCHED)

    def build(self, params: Parameters, include_connector: bool = False) -> "SolidSet":
        """Generate every solid for ``params``.

        Raises:
            NonFiniteGeometryError: If any profile or mesh has NaN or
                infinite coordinates
        """
        path = path_for(params)
        rail = self.rail(params, path)
        cover = self.cover(params, path)

        if params.is_angled_mode:
            world = angled_transform(rail.mesh, params.len1)
            rail.transform = world
            cover.transform = world.copy()
        else:
            (_, min_y), _ = self.rail_profile(params).bounds(self.settings.arc_resolution)
            offset = [0.0, -min_y, -params.length / 2.0]
            rail.mesh.apply_translation(offset)
            cover.mesh.apply_translation(offset)

        solids = {Role.RAIL: rail, Role.COVER: cover}
        if include_connector:
            solids[Role.CONNECTOR] = self.connector(params)
        return SolidSet(path, solids)


@dataclass
class SolidSet:
    """Solids generated together, keyed by role, plus the sweep path."""
    path: SweepPath
    solids: Dict[Role, Solid]

    def __getitem__(self, role: Role) -> Solid:
        return self.solids[Role(role)]


__all__ = [
    'GenerationMode',
    'Solid',
    'SolidSet',
    'SolidGenerator',
    'angled_transform',
]
