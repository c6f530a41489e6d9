"""Closed 2D contours built from line and arc segments.

A :class:`Profile` is the cross-section that gets swept into a solid. It
is an ordered list of :class:`LineSegment` and :class:`ArcSegment`
instances in which each segment starts where the previous one ended and
the last segment ends at the first segment's start.

Arc angles follow the usual ``absarc`` convention: angles are in radians,
``clockwise=False`` sweeps counter-clockwise from ``start_angle`` to
``end_angle`` and the swept angle is normalised into ``(0, 2π]`` in the
direction of travel.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.polygon import orient
from shapely.validation import make_valid

from .errors import NonFiniteGeometryError, ProfileError

logger = logging.getLogger(__name__)

Point2 = Tuple[float, float]

TWO_PI = 2.0 * math.pi
_ANGLE_EPS = 1e-12
_POINT_TOL = 1e-9  # points closer than this are the same vertex
CLOSURE_TOL = 1e-6


def same_point(a: Sequence[float], b: Sequence[float], tol: float = _POINT_TOL) -> bool:
    return math.hypot(a[0] - b[0], a[1] - b[1]) <= tol


def arc_sweep(start_angle: float, end_angle: float, clockwise: bool) -> float:
    """Return the signed angle swept from ``start_angle`` to ``end_angle``."""
    delta = end_angle - start_angle
    same = abs(delta) < _ANGLE_EPS
    delta = math.fmod(delta, TWO_PI)
    if delta < 0:
        delta += TWO_PI
    if delta < _ANGLE_EPS:
        delta = 0.0 if same else TWO_PI
    if clockwise and not same:
        delta = -TWO_PI if delta == TWO_PI else delta - TWO_PI
    return delta


@dataclass(frozen=True)
class LineSegment:
    """Straight segment from ``p0`` to ``p1``."""

    p0: Point2
    p1: Point2

    @property
    def start(self) -> Point2:
        return self.p0

    @property
    def end(self) -> Point2:
        return self.p1

    @property
    def length(self) -> float:
        return math.hypot(self.p1[0] - self.p0[0], self.p1[1] - self.p0[1])

    def sample(self, max_step_deg: float = 10.0) -> List[Point2]:
        return [self.p0, self.p1]

    def reversed(self) -> "LineSegment":
        return LineSegment(self.p1, self.p0)


@dataclass(frozen=True)
class ArcSegment:
    """Circular arc around ``center``."""

    center: Point2
    radius: float
    start_angle: float
    end_angle: float
    clockwise: bool = False

    @property
    def sweep(self) -> float:
        return arc_sweep(self.start_angle, self.end_angle, self.clockwise)

    def point_at_angle(self, angle: float) -> Point2:
        return (self.center[0] + self.radius * math.cos(angle),
                self.center[1] + self.radius * math.sin(angle))

    @property
    def start(self) -> Point2:
        return self.point_at_angle(self.start_angle)

    @property
    def end(self) -> Point2:
        return self.point_at_angle(self.start_angle + self.sweep)

    @property
    def length(self) -> float:
        return abs(self.sweep) * self.radius

    def sample(self, max_step_deg: float = 10.0) -> List[Point2]:
        sweep = self.sweep
        count = max(2, int(math.ceil(abs(math.degrees(sweep)) / max_step_deg)))
        return [self.point_at_angle(self.start_angle + sweep * i / count)
                for i in range(count + 1)]

    def reversed(self) -> "ArcSegment":
        return ArcSegment(self.center, self.radius, self.end_angle,
                          self.start_angle, not self.clockwise)


Segment = Union[LineSegment, ArcSegment]


class Profile:
    """Ordered, closed chain of line and arc segments.

    ``closed`` is False only for best-effort contours assembled from an
    external source whose chain could not be completed.
    """

    def __init__(self, segments: Iterable[Segment], name: Optional[str] = None,
                 closed: bool = True):
        self.segments: Tuple[Segment, ...] = tuple(segments)
        if not self.segments:
            raise ProfileError("a profile needs at least one segment")
        self.name = name
        self.closed = closed

    def __repr__(self):
        return f"Profile(name={self.name!r}, segments={len(self.segments)}, closed={self.closed})"

    def __len__(self):
        return len(self.segments)

    @property
    def start(self) -> Point2:
        return self.segments[0].start

    @property
    def end(self) -> Point2:
        return self.segments[-1].end

    def is_closed(self, tol: float = CLOSURE_TOL) -> bool:
        return same_point(self.start, self.end, tol)

    def is_contiguous(self, tol: float = CLOSURE_TOL) -> bool:
        """True when every segment starts where the previous one ends."""
        return all(same_point(a.end, b.start, tol)
                   for a, b in zip(self.segments, self.segments[1:]))

    def points(self, max_step_deg: float = 10.0) -> np.ndarray:
        """Discretise the contour into an ``(n, 2)`` array.

        Consecutive duplicates are dropped. For a closed profile the last
        row repeats the first exactly.
        """
        pts: List[Point2] = []
        for seg in self.segments:
            for p in seg.sample(max_step_deg):
                if pts and same_point(pts[-1], p):
                    continue
                pts.append(p)
        if self.closed and len(pts) > 1:
            if same_point(pts[-1], pts[0], CLOSURE_TOL):
                pts[-1] = pts[0]
            else:
                pts.append(pts[0])
        return np.asarray(pts, dtype=float)

    def bounds(self, max_step_deg: float = 10.0) -> Tuple[Point2, Point2]:
        pts = self.points(max_step_deg)
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return (float(lo[0]), float(lo[1])), (float(hi[0]), float(hi[1]))

    def to_polygon(self, max_step_deg: float = 10.0) -> Polygon:
        """Return the enclosed region as a counter-clockwise shapely polygon.

        Self-touching or self-intersecting contours are repaired with
        :func:`shapely.validation.make_valid`; the largest resulting piece
        is kept.
        """
        pts = self.points(max_step_deg)
        bad = int(np.count_nonzero(~np.isfinite(pts)))
        if bad:
            raise NonFiniteGeometryError(f"profile {self.name!r}", bad)
        if len(pts) < 4:
            raise ProfileError(f"profile {self.name!r} has too few points for a region")
        poly = Polygon(pts[:-1] if same_point(pts[0], pts[-1]) else pts)
        if not poly.is_valid:
            logger.warning("profile %r is not a simple polygon, repairing", self.name)
            poly = _largest_polygon(make_valid(poly))
        if poly.is_empty or poly.area <= 0:
            raise ProfileError(f"profile {self.name!r} encloses no area")
        return orient(poly, sign=1.0)


def _largest_polygon(geom) -> Polygon:
    if isinstance(geom, Polygon):
        return geom
    candidates = [g for g in getattr(geom, 'geoms', []) if isinstance(g, (Polygon, MultiPolygon))]
    polys: List[Polygon] = []
    for g in candidates:
        polys.extend(g.geoms if isinstance(g, MultiPolygon) else [g])
    if not polys:
        return Polygon()
    return max(polys, key=lambda p: p.area)


class ProfilePen:
    """Pen-style builder for profiles.

    >>> pen = ProfilePen('square')
    >>> pen.move_to(0, 0)
    >>> pen.line_to(1, 0)
    >>> pen.line_to(1, 1)
    >>> pen.line_to(0, 1)
    >>> len(pen.close())
    4
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._segments: List[Segment] = []
        self._start: Optional[Point2] = None
        self._current: Optional[Point2] = None

    @property
    def current(self) -> Optional[Point2]:
        return self._current

    def move_to(self, x: float, y: float) -> None:
        if self._segments:
            raise ProfileError("move_to is only valid before the first segment")
        self._start = self._current = (float(x), float(y))

    def line_to(self, x: float, y: float) -> None:
        if self._current is None:
            raise ProfileError("line_to called before move_to")
        target = (float(x), float(y))
        if same_point(self._current, target):
            return
        self._segments.append(LineSegment(self._current, target))
        self._current = target

    def absarc(self, cx: float, cy: float, radius: float, start_angle: float,
               end_angle: float, clockwise: bool = False) -> None:
        """Append an arc, joining it to the current point with a line if needed."""
        arc = ArcSegment((float(cx), float(cy)), float(radius), start_angle,
                         end_angle, clockwise)
        if self._current is None:
            self._start = arc.start
        elif not same_point(self._current, arc.start):
            self.line_to(*arc.start)
        if radius <= _POINT_TOL or arc.sweep == 0.0:
            return
        self._segments.append(arc)
        self._current = arc.end

    def close(self) -> Profile:
        if self._start is None:
            raise ProfileError("cannot close an empty profile")
        self.line_to(*self._start)
        return Profile(self._segments, name=self.name)


__all__ = [
    'Point2',
    'LineSegment',
    'ArcSegment',
    'Segment',
    'Profile',
    'ProfilePen',
    'arc_sweep',
    'CLOSURE_TOL',
    'same_point',
]
