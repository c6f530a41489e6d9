"""Sweep paths: straight runs and filleted two-leg turns.

A :class:`SweepPath` is an ordered chain of :class:`LineCurve` and
:class:`QuadraticBezierCurve` segments starting at the origin along +Z.
Its public parameter ``t`` in ``[0, 1]`` is proportional to arc length
across the whole chain, so ``point_at(0.5)`` is always halfway along.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .params import Parameters, TurnAxis

DEFAULT_STEPS = 200
FILLET_EPSILON = 0.1   # keeps each leg a little longer than the fillet
MIN_TURN_DEG = 0.1
MIN_TANGENT = 0.1
BEZIER_DIVISIONS = 200

Z_AXIS = np.array([0.0, 0.0, 1.0])


def _vec(p: Sequence[float]) -> np.ndarray:
    return np.asarray(p, dtype=float).reshape(3)


def _unit(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    if n < 1e-12:
        return Z_AXIS.copy()
    return v / n


class LineCurve:
    """Straight segment from ``v0`` to ``v1``."""

    def __init__(self, v0: Sequence[float], v1: Sequence[float]):
        self.v0 = _vec(v0)
        self.v1 = _vec(v1)
        self.length = float(np.linalg.norm(self.v1 - self.v0))

    def __repr__(self):
        return f"LineCurve({self.v0.tolist()}, {self.v1.tolist()})"

    def point_at_length(self, s: float) -> np.ndarray:
        if self.length == 0.0:
            return self.v0.copy()
        return self.v0 + (self.v1 - self.v0) * (s / self.length)

    def tangent_at_length(self, s: float) -> np.ndarray:
        return _unit(self.v1 - self.v0)

    def split(self, s0: float, s1: float) -> "LineCurve":
        return LineCurve(self.point_at_length(s0), self.point_at_length(s1))


class QuadraticBezierCurve:
    """Quadratic Bézier from ``v0`` to ``v2`` with control point ``v1``.

    Arc length is tabulated over ``divisions`` uniform parameter steps and
    inverted by linear interpolation.
    """

    def __init__(self, v0: Sequence[float], v1: Sequence[float], v2: Sequence[float],
                 divisions: int = BEZIER_DIVISIONS):
        self.v0 = _vec(v0)
        self.v1 = _vec(v1)
        self.v2 = _vec(v2)
        self.divisions = divisions
        u = np.linspace(0.0, 1.0, divisions + 1)
        pts = self._points(u)
        steps = np.linalg.norm(np.diff(pts, axis=0), axis=1)
        self._u = u
        self._s = np.concatenate([[0.0], np.cumsum(steps)])
        self.length = float(self._s[-1])

    def __repr__(self):
        return (f"QuadraticBezierCurve({self.v0.tolist()}, {self.v1.tolist()}, "
                f"{self.v2.tolist()})")

    def _points(self, u) -> np.ndarray:
        u = np.asarray(u, dtype=float)[..., None]
        a = (1 - u) ** 2
        b = 2 * (1 - u) * u
        c = u ** 2
        return a * self.v0 + b * self.v1 + c * self.v2

    def point(self, u: float) -> np.ndarray:
        return self._points(u)

    def derivative(self, u: float) -> np.ndarray:
        return 2 * (1 - u) * (self.v1 - self.v0) + 2 * u * (self.v2 - self.v1)

    def u_at_length(self, s: float) -> float:
        if self.length == 0.0:
            return 0.0
        return float(np.interp(s, self._s, self._u))

    def point_at_length(self, s: float) -> np.ndarray:
        return self.point(self.u_at_length(s))

    def tangent_at_length(self, s: float) -> np.ndarray:
        return _unit(self.derivative(self.u_at_length(s)))

    def split(self, s0: float, s1: float) -> "QuadraticBezierCurve":
        """Return the piece between arc lengths ``s0`` and ``s1``."""
        u0 = self.u_at_length(s0)
        u1 = self.u_at_length(s1)
        # blossom of the quadratic at (u0, u1) gives the sub-curve control point
        ctrl = ((1 - u0) * (1 - u1) * self.v0
                + ((1 - u0) * u1 + u0 * (1 - u1)) * self.v1
                + u0 * u1 * self.v2)
        return QuadraticBezierCurve(self.point(u0), ctrl, self.point(u1), self.divisions)


Curve = Union[LineCurve, QuadraticBezierCurve]


@dataclass
class Frames:
    """Sampled sweep frames.

    Attributes:
        origins: ``(n, 3)`` points along the path
        tangents: ``(n, 3)`` unit tangents
        sides: ``(n, 3)`` unit vectors the profile X axis maps to
        ups: ``(n, 3)`` unit vectors the profile Y axis maps to
    """
    origins: np.ndarray
    tangents: np.ndarray
    sides: np.ndarray
    ups: np.ndarray

    def __len__(self):
        return len(self.origins)

    def last(self) -> Tuple[np.ndarray, np.ndarray]:
        """Side and up vectors of the final frame."""
        return self.sides[-1].copy(), self.ups[-1].copy()


def rotation_between(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Minimal rotation matrix taking unit vector ``a`` onto unit vector ``b``."""
    v = np.cross(a, b)
    c = float(np.dot(a, b))
    s = float(np.linalg.norm(v))
    if s < 1e-12:
        if c > 0:
            return np.eye(3)
        # half turn about any axis perpendicular to a
        perp = np.cross(a, [1.0, 0.0, 0.0])
        if np.linalg.norm(perp) < 1e-6:
            perp = np.cross(a, [0.0, 1.0, 0.0])
        k = perp / np.linalg.norm(perp)
        return 2.0 * np.outer(k, k) - np.eye(3)
    k = v / s
    kx = np.array([[0.0, -k[2], k[1]],
                   [k[2], 0.0, -k[0]],
                   [-k[1], k[0], 0.0]])
    return np.eye(3) + s * kx + (1.0 - c) * (kx @ kx)


class SweepPath:
    """Arc-length parameterised chain of curves."""

    def __init__(self, curves: Sequence[Curve]):
        self.curves: List[Curve] = [c for c in curves]
        if not self.curves:
            raise ValueError("a sweep path needs at least one curve")
        self._cumulative = np.cumsum([c.length for c in self.curves])

    def __repr__(self):
        return f"SweepPath({self.curves!r})"

    def __len__(self):
        return len(self.curves)

    @property
    def length(self) -> float:
        return float(self._cumulative[-1])

    @property
    def segment_lengths(self) -> List[float]:
        return [c.length for c in self.curves]

    @property
    def start(self) -> np.ndarray:
        return self.point_at_length(0.0)

    @property
    def end(self) -> np.ndarray:
        return self.point_at_length(self.length)

    @property
    def is_straight(self) -> bool:
        return len(self.curves) == 1 and isinstance(self.curves[0], LineCurve)

    def _locate(self, s: float) -> Tuple[Curve, float]:
        s = min(max(s, 0.0), self.length)
        i = int(np.searchsorted(self._cumulative, s, side='left'))
        i = min(i, len(self.curves) - 1)
        before = self._cumulative[i - 1] if i > 0 else 0.0
        return self.curves[i], s - before

    def point_at_length(self, s: float) -> np.ndarray:
        curve, local = self._locate(s)
        return curve.point_at_length(local)

    def tangent_at_length(self, s: float) -> np.ndarray:
        curve, local = self._locate(s)
        return curve.tangent_at_length(local)

    def point_at(self, t: float) -> np.ndarray:
        """Point at fraction ``t`` of the total arc length."""
        return self.point_at_length(t * self.length)

    def tangent_at(self, t: float) -> np.ndarray:
        """Unit tangent at fraction ``t`` of the total arc length."""
        return self.tangent_at_length(t * self.length)

    def sample(self, steps: int = DEFAULT_STEPS) -> np.ndarray:
        """Return ``steps + 1`` points evenly spaced by arc length."""
        return np.array([self.point_at(i / steps) for i in range(steps + 1)])

    def frames(self, steps: int = DEFAULT_STEPS, side: Optional[Sequence[float]] = None,
               up: Optional[Sequence[float]] = None) -> Frames:
        """Rotation-minimising frames at ``steps + 1`` arc-length stations.

        The first frame uses ``side`` and ``up`` (by default profile X maps
        to world X and profile Y to world Y). Each later frame is the
        previous one rotated by the minimal rotation between successive
        tangents, so the profile never twists about the path.
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        origins = np.empty((steps + 1, 3))
        tangents = np.empty((steps + 1, 3))
        sides = np.empty((steps + 1, 3))
        ups = np.empty((steps + 1, 3))
        for i in range(steps + 1):
            s = self.length * i / steps
            origins[i] = self.point_at_length(s)
            tangents[i] = self.tangent_at_length(s)

        side_v = _unit(_vec(side if side is not None else (1.0, 0.0, 0.0)))
        up_v = _unit(_vec(up if up is not None else (0.0, 1.0, 0.0)))
        sides[0] = side_v
        ups[0] = up_v
        for i in range(1, steps + 1):
            rot = rotation_between(tangents[i - 1], tangents[i])
            sides[i] = _unit(rot @ sides[i - 1])
            ups[i] = _unit(rot @ ups[i - 1])
        return Frames(origins, tangents, sides, ups)

    def sub_path(self, d0: float, d1: float) -> "SweepPath":
        """Return the portion of the path between arc lengths ``d0`` and ``d1``."""
        d0 = min(max(d0, 0.0), self.length)
        d1 = min(max(d1, 0.0), self.length)
        if d1 <= d0:
            raise ValueError(f"empty sub-path [{d0}, {d1}]")
        pieces: List[Curve] = []
        before = 0.0
        for curve, after in zip(self.curves, self._cumulative):
            lo = max(d0, before)
            hi = min(d1, after)
            if hi - lo > 1e-9:
                pieces.append(curve.split(lo - before, hi - before))
            before = after
        return SweepPath(pieces)


def tangent_offset(l1: float, l2: float, angle_deg: float, r: float) -> float:
    """Distance from the corner to where the fillet meets each leg.

    Infeasible fillets are clamped so each leg keeps at least
    ``FILLET_EPSILON`` of straight run.
    """
    theta = math.radians(angle_deg)
    max_tan = min(l1, l2) - FILLET_EPSILON
    tan_dist = abs(r * math.tan(theta / 2.0))
    if tan_dist > max_tan:
        tan_dist = max(0.0, max_tan)
    return tan_dist


def turn_direction(angle_deg: float, axis: TurnAxis) -> np.ndarray:
    """Unit direction of the second leg."""
    theta = math.radians(angle_deg)
    if TurnAxis(axis) is TurnAxis.VERTICAL:
        return np.array([0.0, math.sin(theta), math.cos(theta)])
    return np.array([math.sin(theta), 0.0, math.cos(theta)])


def straight_path(length: float) -> SweepPath:
    """Single line from the origin to ``(0, 0, length)``."""
    if length <= 0:
        raise ValueError(f"length must be > 0, got {length}")
    return SweepPath([LineCurve((0, 0, 0), (0, 0, length))])


def rounded_path(l1: float, l2: float, angle_deg: float, r: float,
                 axis: TurnAxis = TurnAxis.HORIZONTAL) -> SweepPath:
    """Two legs joined at ``angle_deg`` with a quadratic fillet of radius ``r``.

    Args:
        l1: Length of the first leg, along +Z from the origin
        l2: Length of the second leg, measured from the corner
        angle_deg: Turn angle in degrees
        r: Fillet radius; clamped when it does not fit the legs
        axis: Plane of the turn

    Returns:
        A two-line path when the turn or fillet is negligible, otherwise
        line, Bézier fillet, line.
    """
    if l1 <= 0 or l2 <= 0:
        raise ValueError(f"leg lengths must be > 0, got {l1} and {l2}")
    tan_dist = tangent_offset(l1, l2, angle_deg, r)
    dir2 = turn_direction(angle_deg, axis)
    corner = np.array([0.0, 0.0, l1])
    origin = np.zeros(3)

    if abs(angle_deg) < MIN_TURN_DEG or tan_dist < MIN_TANGENT:
        return SweepPath([
            LineCurve(origin, corner),
            LineCurve(corner, corner + dir2 * l2),
        ])

    p1 = np.array([0.0, 0.0, max(0.0, l1 - tan_dist)])
    p2 = corner + dir2 * tan_dist
    end = p2 + dir2 * max(0.0, l2 - tan_dist)
    return SweepPath([
        LineCurve(origin, p1),
        QuadraticBezierCurve(p1, corner, p2),
        LineCurve(p2, end),
    ])


def path_for(params: Parameters) -> SweepPath:
    """Path for the current mode: a straight run or the filleted turn."""
    if params.is_angled_mode:
        return rounded_path(params.len1, params.len2, params.angle, params.radius,
                            params.turn_axis)
    return straight_path(params.length)


__all__ = [
    'LineCurve',
    'QuadraticBezierCurve',
    'Frames',
    'SweepPath',
    'rotation_between',
    'tangent_offset',
    'turn_direction',
    'straight_path',
    'rounded_path',
    'path_for',
    'DEFAULT_STEPS',
]
