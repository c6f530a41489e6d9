"""Sweeping cross-sections along paths and stitching multi-zone sweeps.

A *section* is a shapely polygon (or multipolygon) in profile coordinates.
Each ring of the section is carried along the path's rotation-minimising
frames to form the side walls; the ends are closed with triangulated caps.

Zoned sweeps run several sections back to back along consecutive
sub-paths. Where two zones meet, only the symmetric difference of the two
sections is capped, so the merged mesh is closed without internal walls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import trimesh
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from .errors import NonFiniteGeometryError
from .path import DEFAULT_STEPS, Frames, SweepPath
from .profile import Profile

logger = logging.getLogger(__name__)

MIN_AREA = 1e-9  # transition faces smaller than this are dropped

Section = Union[Polygon, MultiPolygon]


def section_of(profiles: Union[Profile, Iterable[Profile]],
               arc_resolution: float = 10.0) -> Section:
    """Union of the regions enclosed by one or more profiles."""
    if isinstance(profiles, Profile):
        return profiles.to_polygon(arc_resolution)
    polys = [p.to_polygon(arc_resolution) for p in profiles]
    if len(polys) == 1:
        return polys[0]
    return unary_union(polys)


def polygons_of(section) -> List[Polygon]:
    """Counter-clockwise polygons of a section, dropping empty slivers."""
    if isinstance(section, Polygon):
        polys = [section]
    elif isinstance(section, (MultiPolygon, GeometryCollection)):
        polys = [g for g in section.geoms if isinstance(g, Polygon)]
    else:
        polys = []
    return [orient(p, sign=1.0) for p in polys if not p.is_empty and p.area > MIN_AREA]


def _rings(section) -> List[np.ndarray]:
    rings = []
    for poly in polygons_of(section):
        rings.append(np.asarray(poly.exterior.coords, dtype=float)[:-1])
        for interior in poly.interiors:
            rings.append(np.asarray(interior.coords, dtype=float)[:-1])
    return rings


def place(points: np.ndarray, origin: np.ndarray, side: np.ndarray,
          up: np.ndarray) -> np.ndarray:
    """Map 2D profile points into the plane of one sweep frame."""
    pts = np.asarray(points, dtype=float)
    return origin + pts[:, 0:1] * side + pts[:, 1:2] * up


def triangulate(polygon: Polygon) -> Tuple[np.ndarray, np.ndarray]:
    """Earcut triangulation wound counter-clockwise.

    Zero-area triangles between collinear ring vertices are kept: they carry
    the ring edges the walls attach to.
    """
    verts, faces = trimesh.creation.triangulate_polygon(polygon, engine='earcut')
    verts = np.asarray(verts, dtype=float)
    faces = np.array(faces, dtype=np.int64)
    if len(faces) == 0:
        return verts, faces
    tri = verts[faces]
    area = ((tri[:, 1, 0] - tri[:, 0, 0]) * (tri[:, 2, 1] - tri[:, 0, 1])
            - (tri[:, 1, 1] - tri[:, 0, 1]) * (tri[:, 2, 0] - tri[:, 0, 0]))
    flat = np.abs(area) <= 1e-14
    # earcut winds all of its triangles alike
    if area[~flat].sum() < 0:
        faces = faces[:, ::-1].copy()
        area = -area
    cw = ~flat & (area < 0)
    faces[cw] = faces[cw][:, ::-1]
    return verts, faces


class MeshBuilder:
    """Accumulates vertex and face blocks before building one mesh."""

    def __init__(self, label: str):
        self.label = label
        self._vertices: List[np.ndarray] = []
        self._faces: List[np.ndarray] = []
        self._count = 0

    def add(self, vertices: np.ndarray, faces: np.ndarray) -> None:
        if len(faces) == 0:
            return
        self._vertices.append(np.asarray(vertices, dtype=float))
        self._faces.append(np.asarray(faces, dtype=np.int64) + self._count)
        self._count += len(vertices)

    def add_walls(self, ring: np.ndarray, frames: Frames) -> None:
        """Side walls of one ring carried through every frame."""
        m = len(ring)
        n = len(frames)
        verts = np.concatenate([
            place(ring, frames.origins[k], frames.sides[k], frames.ups[k])
            for k in range(n)
        ])
        k = np.arange(n - 1)[:, None]
        j = np.arange(m)[None, :]
        a = k * m + j
        b = k * m + (j + 1) % m
        c = (k + 1) * m + (j + 1) % m
        d = (k + 1) * m + j
        faces = np.concatenate([
            np.stack([a, b, c], axis=-1).reshape(-1, 3),
            np.stack([a, c, d], axis=-1).reshape(-1, 3),
        ])
        self.add(verts, faces)

    def add_cap(self, section, origin: np.ndarray, side: np.ndarray, up: np.ndarray,
                facing_forward: bool) -> None:
        """Flat cap; ``facing_forward`` points its normal along the tangent."""
        for poly in polygons_of(section):
            verts2d, faces = triangulate(poly)
            if not facing_forward:
                faces = faces[:, ::-1]
            self.add(place(verts2d, origin, side, up), faces)

    def build(self) -> trimesh.Trimesh:
        if not self._faces:
            raise ValueError(f"{self.label}: nothing to build")
        vertices = np.concatenate(self._vertices)
        faces = np.concatenate(self._faces)
        bad = int(np.count_nonzero(~np.isfinite(vertices)))
        if bad:
            raise NonFiniteGeometryError(self.label, bad)
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=True)


def zone_steps(path: SweepPath, steps: int) -> int:
    """Frame count for a sweep: one span suffices for a straight run."""
    if path.is_straight:
        return 1
    return max(1, int(steps))


def sweep_section(section, path: SweepPath, steps: int = DEFAULT_STEPS,
                  side: Optional[Sequence[float]] = None,
                  up: Optional[Sequence[float]] = None,
                  label: str = 'sweep') -> trimesh.Trimesh:
    """Sweep one section along ``path`` and cap both ends.

    Args:
        section: Shapely region in profile coordinates
        path: Sweep path
        steps: Frame stations along a curved path
        side: World direction of profile X at the start of the path
        up: World direction of profile Y at the start of the path
        label: Name used in diagnostics

    Raises:
        NonFiniteGeometryError: If any generated coordinate is NaN or infinite
    """
    frames = path.frames(zone_steps(path, steps), side=side, up=up)
    builder = MeshBuilder(label)
    for ring in _rings(section):
        builder.add_walls(ring, frames)
    builder.add_cap(section, frames.origins[0], frames.sides[0], frames.ups[0], False)
    builder.add_cap(section, frames.origins[-1], frames.sides[-1], frames.ups[-1], True)
    return builder.build()


def sweep_profile(profile: Profile, path: SweepPath, steps: int = DEFAULT_STEPS,
                  side: Optional[Sequence[float]] = None,
                  up: Optional[Sequence[float]] = None,
                  arc_resolution: float = 10.0) -> trimesh.Trimesh:
    return sweep_section(section_of(profile, arc_resolution), path, steps, side, up,
                         label=profile.name or 'sweep')


@dataclass
class Zone:
    """One span of a zoned sweep.

    Attributes:
        section: Region swept over this span
        start: Arc length where the zone starts
        end: Arc length where the zone ends
    """
    section: Section
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start


def stitch_zones(zones: Sequence[Zone], path: SweepPath, steps: int = DEFAULT_STEPS,
                 side: Optional[Sequence[float]] = None,
                 up: Optional[Sequence[float]] = None,
                 label: str = 'stitched') -> trimesh.Trimesh:
    """Sweep consecutive zones along ``path`` into a single closed mesh.

    Each zone is swept over its own sub-path, starting from the frame the
    previous zone ended on. At each internal boundary the part of the
    earlier section not covered by the later one is capped facing forward
    and the part of the later section not covered by the earlier one is
    capped facing backward.
    """
    if not zones:
        raise ValueError("stitching needs at least one zone")
    total = path.length
    builder = MeshBuilder(label)
    prev: Optional[Frames] = None
    prev_section = None
    for index, zone in enumerate(zones):
        sub = path.sub_path(zone.start, zone.end)
        if sub.is_straight:
            n = 1
        else:
            n = max(1, int(round(steps * zone.length / total)))
        if prev is None:
            frames = sub.frames(n, side=side, up=up)
        else:
            frames = sub.frames(n, side=prev.sides[-1], up=prev.ups[-1])
            frames.origins[0] = prev.origins[-1]
            frames.tangents[0] = prev.tangents[-1]
        logger.debug("%s zone %d: [%.3f, %.3f] with %d span(s)",
                     label, index, zone.start, zone.end, n)

        for ring in _rings(zone.section):
            builder.add_walls(ring, frames)

        origin, f_side, f_up = frames.origins[0], frames.sides[0], frames.ups[0]
        if prev_section is None:
            builder.add_cap(zone.section, origin, f_side, f_up, False)
        else:
            builder.add_cap(prev_section.difference(zone.section), origin, f_side, f_up, True)
            builder.add_cap(zone.section.difference(prev_section), origin, f_side, f_up, False)
        prev = frames
        prev_section = zone.section

    builder.add_cap(prev_section, prev.origins[-1], prev.sides[-1], prev.ups[-1], True)
    return builder.build()


__all__ = [
    'Section',
    'Zone',
    'MeshBuilder',
    'section_of',
    'polygons_of',
    'place',
    'triangulate',
    'zone_steps',
    'sweep_section',
    'sweep_profile',
    'stitch_zones',
]
