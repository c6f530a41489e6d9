"""Procedural cross-sections for the rail, the cover and the connector.

All profiles are drawn in the part's local XY plane: X is lateral (the
channel is symmetric about X = 0) and Y is up, with the channel's inner
floor at Y = 0 and the bead centres at Y = ``inner_height``.

Example
-------
>>> from railcad.profiles import rail, cover
>>> rail_profile = rail(8.0, 9.0)
>>> cover_profile = cover(8.0, 9.0, clearance=0.6, has_claws=True)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from .profile import Point2, Profile, ProfilePen, LineSegment

# Rail
WALL_T = 1.2          # side wall thickness
FLOOR_T = 1.2         # floor thickness below the inner floor
BEAD_R = 1.0          # bead hook radius at the top of each inner wall
FLOOR_FILLET_R = 1.0  # inner floor corner fillets

# Cover
ROOF_CORNER_R = 0.8
CLIP_R = 1.1          # inner arc of the claw, hugs the rail bead
RIB_R = 2.3           # outer rib of the claw
CLAW_TIP_ANGLE = math.radians(250.0)
CLAW_BASE_OFFSET = 0.1  # claw offset is inner_width/2 - (clearance - CLAW_BASE_OFFSET)

# Connector inner sleeve taper; fixed, see DESIGN.md
TAPER_INDENT = 1.2
TAPER_HEIGHT = 1.0

HALF_PI = math.pi / 2


def _check_channel(inner_width: float, inner_height: float) -> None:
    if inner_width <= 0 or inner_height <= 0:
        raise ValueError(
            f"Channel interior must be positive, got {inner_width}x{inner_height}"
        )


def bead_radius(inner_width: float, inner_height: float) -> float:
    """Bead radius, reduced only when the channel cannot hold a full bead."""
    return min(BEAD_R, inner_height / 2.0, inner_width / 4.0)


def floor_fillet_radius(inner_width: float, inner_height: float) -> float:
    """Radius of the inner floor fillets, limited by the half width and wall height."""
    bead_r = bead_radius(inner_width, inner_height)
    return min(FLOOR_FILLET_R, inner_width / 2.0, inner_height - bead_r)


def rail(inner_width: float, inner_height: float) -> Profile:
    """Build the rail channel profile.

    Args:
        inner_width: Channel interior width
        inner_height: Height of the bead centres above the inner floor

    Returns:
        Closed counter-clockwise profile whose outer half width is
        ``inner_width / 2 + WALL_T``.
    """
    _check_channel(inner_width, inner_height)
    half_iw = inner_width / 2.0
    half_ow = half_iw + WALL_T
    bead_r = bead_radius(inner_width, inner_height)
    fillet_r = floor_fillet_radius(inner_width, inner_height)
    y_bead = inner_height
    y_top = y_bead + bead_r

    pen = ProfilePen('rail')
    pen.move_to(-half_ow, -FLOOR_T)
    pen.line_to(half_ow, -FLOOR_T)
    pen.line_to(half_ow, y_top)
    pen.line_to(half_iw, y_top)
    # right bead, bulging into the channel
    pen.absarc(half_iw, y_bead, bead_r, HALF_PI, 3 * HALF_PI, False)
    pen.line_to(half_iw, fillet_r)
    pen.absarc(half_iw - fillet_r, fillet_r, fillet_r, 0.0, -HALF_PI, True)
    pen.line_to(-(half_iw - fillet_r), 0.0)
    pen.absarc(-(half_iw - fillet_r), fillet_r, fillet_r, -HALF_PI, -math.pi, True)
    pen.line_to(-half_iw, y_bead - bead_r)
    # left bead
    pen.absarc(-half_iw, y_bead, bead_r, 3 * HALF_PI, HALF_PI, False)
    pen.line_to(-half_ow, y_top)
    return pen.close()


def claw_offset(inner_width: float, clearance: float) -> float:
    """Lateral distance of the claw centres from the channel centreline."""
    return inner_width / 2.0 - (clearance - CLAW_BASE_OFFSET)


def claw_contacts(inner_width: float, clearance: float) -> List[float]:
    """X positions, right to left, where the claws meet the underside of the roof."""
    half_ow = inner_width / 2.0 + WALL_T
    claw_x = claw_offset(inner_width, clearance)
    rib_x = claw_x - RIB_R * math.cos(math.asin(CLIP_R / RIB_R))
    xs = sorted({claw_x, rib_x, -rib_x, -claw_x}, reverse=True)
    return [x for x in xs if abs(x) < half_ow]


def cover(inner_width: float, inner_height: float, clearance: float = 0.6,
          has_claws: bool = True) -> Profile:
    """Build the snap-on cover profile.

    The roof spans the rail's outer width between ``inner_height + CLIP_R``
    and ``inner_height + RIB_R``. With ``has_claws`` each side grows a
    barbed catch that hooks the rail bead; the claw-free variant is the
    bare roof and is used at the ends where a connector sleeve slides in.

    Args:
        inner_width: Channel interior width
        inner_height: Height of the bead centres above the inner floor
        clearance: Claw interference; the claws sit at
            ``inner_width/2 - (clearance - 0.1)`` from the centreline
        has_claws: Whether to add the catches

    Raises:
        ValueError: If the claws would cross the centreline and overlap
    """
    _check_channel(inner_width, inner_height)
    half_iw = inner_width / 2.0
    half_ow = half_iw + WALL_T
    y_bead = inner_height
    top_y = y_bead + RIB_R
    bottom_y = y_bead + CLIP_R
    corner_r = min(ROOF_CORNER_R, half_ow)

    pen = ProfilePen('cover' if has_claws else 'cover-plain')
    pen.move_to(0.0, top_y)
    pen.line_to(half_ow - corner_r, top_y)
    pen.absarc(half_ow - corner_r, top_y - corner_r, corner_r, HALF_PI, 0.0, True)
    pen.line_to(half_ow, bottom_y)

    if has_claws:
        claw_x = claw_offset(inner_width, clearance)
        if claw_x - RIB_R <= 0:
            raise ValueError(
                f"Channel width {inner_width} too small for cover claws "
                f"with clearance {clearance}: the claws would overlap"
            )
        rib_angle = math.asin(CLIP_R / RIB_R)
        pen.line_to(claw_x, bottom_y)
        # right claw: inner curve, tip, outer rib back up to the roof
        pen.absarc(claw_x, y_bead, CLIP_R, HALF_PI, CLAW_TIP_ANGLE, False)
        pen.absarc(claw_x, y_bead, RIB_R, CLAW_TIP_ANGLE, math.pi - rib_angle, True)
        # left claw, mirrored
        pen.absarc(-claw_x, y_bead, RIB_R, rib_angle, math.pi - CLAW_TIP_ANGLE, True)
        pen.absarc(-claw_x, y_bead, CLIP_R, math.pi - CLAW_TIP_ANGLE, HALF_PI, False)
    else:
        # both variants share vertices along the roof underside
        for x in claw_contacts(inner_width, clearance):
            pen.line_to(x, bottom_y)

    pen.line_to(-half_ow, bottom_y)
    pen.line_to(-half_ow, top_y - corner_r)
    pen.absarc(-half_ow + corner_r, top_y - corner_r, corner_r, math.pi, HALF_PI, True)
    return pen.close()


@dataclass(frozen=True)
class ConnectorProfiles:
    """The three cross-sections of a connector.

    Attributes:
        center: Solid stop between the front and back sleeves
        outer_sleeve: Sleeve wrapped around the outside of the rail
        inner_sleeve: Sleeve sliding inside the channel
    """
    center: Profile
    outer_sleeve: Profile
    inner_sleeve: Profile

    def __iter__(self):
        return iter((self.center, self.outer_sleeve, self.inner_sleeve))


def _u_profile(name: str, outer: Sequence[Point2], inner: Sequence[Point2]) -> Profile:
    """Join two boundaries traced in the same direction into one U contour."""
    pts: List[Point2] = list(outer) + list(reversed(inner))
    segments = []
    for a, b in zip(pts, pts[1:] + pts[:1]):
        if a != b:
            segments.append(LineSegment(a, b))
    return Profile(segments, name=name)


def _mirror_up(right: Sequence[Point2]) -> List[Point2]:
    """Left half (top down, mirrored) followed by the right half (bottom up)."""
    left = [(-x, y) for x, y in reversed(right)]
    return left + list(right)


def connector(inner_width: float, inner_height: float, conn_clearance: float,
              conn_wall: float) -> ConnectorProfiles:
    """Build the connector sleeve profiles.

    The sleeves are offsets of the rail's boundaries: the inner face of a
    sleeve sits ``conn_clearance`` away from the rail and its outer face
    ``conn_clearance + conn_wall`` away.

    Raises:
        ValueError: If the clearance or wall are not positive, or the
            channel is too small to hold the inner sleeve
    """
    _check_channel(inner_width, inner_height)
    if conn_clearance <= 0 or conn_wall <= 0:
        raise ValueError(
            f"Connector clearance and wall must be > 0, got {conn_clearance} and {conn_wall}"
        )
    c = conn_clearance
    w = conn_wall
    half_iw = inner_width / 2.0
    half_ow = half_iw + WALL_T
    bead_r = bead_radius(inner_width, inner_height)
    y_top = inner_height + bead_r

    # outer sleeve, around the rail's outer walls and floor
    os_in_x = half_ow + c
    os_out_x = half_ow + c + w
    os_in_y = -FLOOR_T - c
    os_out_y = -FLOOR_T - c - w
    os_outer = _mirror_up([(os_out_x, os_out_y), (os_out_x, y_top)])
    os_inner = _mirror_up([(os_in_x, os_in_y), (os_in_x, y_top)])

    # inner sleeve, inside the channel, stepping inward below the bead
    is_out_x = half_iw - c
    is_in_x = is_out_x - w
    is_out_y = c
    is_in_y = c + w
    fillet_r = floor_fillet_radius(inner_width, inner_height)
    taper_top = inner_height - bead_r - c
    taper_bottom = taper_top - TAPER_HEIGHT
    if taper_bottom <= max(is_in_y, fillet_r):
        raise ValueError(
            f"Channel height {inner_height} too small for a connector inner sleeve "
            f"with clearance {c} and wall {w}"
        )
    if is_in_x - TAPER_INDENT <= 0:
        raise ValueError(
            f"Channel width {inner_width} too small for a connector inner sleeve "
            f"with clearance {c} and wall {w}"
        )
    if fillet_r > c:
        # chamfer the bottom corners clear of the rail floor fillets
        base = [(half_iw - fillet_r, is_out_y), (is_out_x, fillet_r)]
    else:
        base = [(is_out_x, is_out_y)]
    is_outer = _mirror_up(base + [
        (is_out_x, taper_bottom),
        (is_out_x - TAPER_INDENT, taper_top),
        (is_out_x - TAPER_INDENT, y_top),
    ])
    is_inner = _mirror_up([
        (is_in_x, is_in_y),
        (is_in_x, taper_bottom),
        (is_in_x - TAPER_INDENT, taper_top),
        (is_in_x - TAPER_INDENT, y_top),
    ])

    # the centre's top edges pass through the sleeve corners so zones share vertices
    center_outer = _mirror_up([
        (os_out_x, os_out_y),
        (os_out_x, y_top),
        (os_in_x, y_top),
        (is_out_x - TAPER_INDENT, y_top),
    ])
    return ConnectorProfiles(
        center=_u_profile('connector-center', center_outer, is_inner),
        outer_sleeve=_u_profile('connector-outer-sleeve', os_outer, os_inner),
        inner_sleeve=_u_profile('connector-inner-sleeve', is_outer, is_inner),
    )


def outer_half_width(profile: Profile, max_step_deg: float = 10.0) -> float:
    """Largest absolute X reached by ``profile``."""
    (x0, _), (x1, _) = profile.bounds(max_step_deg)
    return max(abs(x0), abs(x1))


__all__ = [
    'WALL_T',
    'FLOOR_T',
    'BEAD_R',
    'FLOOR_FILLET_R',
    'ROOF_CORNER_R',
    'CLIP_R',
    'RIB_R',
    'TAPER_INDENT',
    'TAPER_HEIGHT',
    'ConnectorProfiles',
    'rail',
    'cover',
    'connector',
    'claw_offset',
    'claw_contacts',
    'bead_radius',
    'floor_fillet_radius',
    'outer_half_width',
]
