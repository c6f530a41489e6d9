"""Profiles read from and written to DXF drawings.

Only LINE and ARC entities are used. DXF arcs are counter-clockwise with
angles in degrees; they become :class:`~railcad.profile.ArcSegment`
instances in radians. Entities are chained greedily end to start, so the
drawing does not need to list them in order or with consistent direction.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, List, Optional, Union

import ezdxf

from .profile import ArcSegment, LineSegment, Profile, Segment, same_point

logger = logging.getLogger(__name__)

EPSILON = 1e-3  # endpoint match tolerance when chaining entities


def entity_segment(entity) -> Optional[Segment]:
    """Convert a LINE or ARC entity; anything else yields None."""
    kind = entity.dxftype()
    if kind == 'LINE':
        start = entity.dxf.start
        end = entity.dxf.end
        return LineSegment((float(start[0]), float(start[1])), (float(end[0]), float(end[1])))
    if kind == 'ARC':
        center = entity.dxf.center
        return ArcSegment((float(center[0]), float(center[1])), float(entity.dxf.radius),
                          math.radians(entity.dxf.start_angle),
                          math.radians(entity.dxf.end_angle), False)
    return None


def chain_segments(segments: List[Segment], tol: float = EPSILON):
    """Order ``segments`` into one chain, reversing pieces where needed.

    Returns:
        ``(chain, complete)`` where ``complete`` is False when some
        segments could not be connected
    """
    if not segments:
        return [], True
    remaining = list(segments[1:])
    chain = [segments[0]]
    current = segments[0].end
    while remaining:
        found = None
        for i, seg in enumerate(remaining):
            if same_point(seg.start, current, tol):
                found = (i, seg)
                break
        if found is None:
            for i, seg in enumerate(remaining):
                if same_point(seg.end, current, tol):
                    found = (i, seg.reversed())
                    break
        if found is None:
            return chain, False
        i, seg = found
        del remaining[i]
        chain.append(seg)
        current = seg.end
    return chain, True


def profile_from_entities(entities: Iterable, name: Optional[str] = None) -> Optional[Profile]:
    """Build a profile from LINE/ARC entities.

    A chain that cannot be completed is logged and returned as an open,
    best-effort profile. Returns None when there are no usable entities.
    """
    segments = [s for s in (entity_segment(e) for e in entities) if s is not None]
    if not segments:
        return None
    chain, complete = chain_segments(segments)
    if not complete:
        logger.warning(
            "profile %r: connected %d of %d segments; shape might be open or disjoint",
            name, len(chain), len(segments))
    closed = complete and same_point(chain[0].start, chain[-1].end, EPSILON)
    return Profile(chain, name=name, closed=closed)


def load_dxf_profile(path: Union[str, Path], layer: Optional[str] = None) -> Optional[Profile]:
    """Read a profile from the model space of a DXF file.

    Args:
        path: DXF file
        layer: Only use entities on this layer

    Returns:
        The profile, or None if the file cannot be read or holds no
        usable entities
    """
    path = Path(path)
    try:
        doc = ezdxf.readfile(str(path))
    except IOError as exc:
        logger.error("cannot read DXF file %s: %s", path, exc)
        return None
    except ezdxf.DXFStructureError as exc:
        logger.error("DXF parse error in %s: %s", path, exc)
        return None
    query = 'LINE ARC' if layer is None else f'LINE ARC[layer=="{layer}"]'
    profile = profile_from_entities(doc.modelspace().query(query), name=path.stem)
    if profile is None:
        logger.error("%s has no LINE or ARC entities", path)
    return profile


def write_dxf_profile(profile: Profile, output_path: Union[str, Path],
                      layer: str = 'PROFILE') -> bool:
    """Write ``profile`` as LINE and ARC entities.

    Returns:
        True if export succeeded, False otherwise.
    """
    doc = ezdxf.new(dxfversion='R2010', setup=False)
    msp = doc.modelspace()
    attribs = {'layer': layer}
    for seg in profile.segments:
        if isinstance(seg, LineSegment):
            msp.add_line(seg.p0, seg.p1, dxfattribs=attribs)
        else:
            start = seg.start_angle
            end = seg.start_angle + seg.sweep
            if seg.sweep < 0:
                start, end = end, start
            msp.add_arc(seg.center, seg.radius, math.degrees(start), math.degrees(end),
                        dxfattribs=attribs)
    try:
        doc.saveas(str(output_path))
    except IOError as exc:
        logger.error("DXF export error: %s", exc)
        return False
    return True


class ProfileSource:
    """Externally supplied rail and cover profiles.

    Generation with a source attached is a no-op until both profiles
    have loaded.
    """

    def __init__(self, rail: Optional[Profile] = None, cover: Optional[Profile] = None):
        self.rail = rail
        self.cover = cover

    def __repr__(self):
        return f"ProfileSource(rail={self.rail!r}, cover={self.cover!r})"

    @property
    def ready(self) -> bool:
        return self.rail is not None and self.cover is not None

    def load(self, rail_path: Union[str, Path], cover_path: Union[str, Path]) -> bool:
        """Load both profiles; a failed file leaves its slot empty."""
        self.rail = load_dxf_profile(rail_path)
        self.cover = load_dxf_profile(cover_path)
        return self.ready


__all__ = [
    'EPSILON',
    'entity_segment',
    'chain_segments',
    'profile_from_entities',
    'load_dxf_profile',
    'write_dxf_profile',
    'ProfileSource',
]
