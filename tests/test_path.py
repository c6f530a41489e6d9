"""Tests for sweep paths and rotation-minimising frames."""

import math

import numpy as np
import pytest

from railcad.params import Parameters, TurnAxis
from railcad.path import (
    LineCurve,
    QuadraticBezierCurve,
    SweepPath,
    path_for,
    rotation_between,
    rounded_path,
    straight_path,
    tangent_offset,
)


class TestTangentOffset:

    def test_ninety_degrees(self):
        assert tangent_offset(100, 100, 90, 20) == pytest.approx(20.0)

    def test_clamped_to_shorter_leg(self):
        assert tangent_offset(10, 100, 90, 50) == pytest.approx(10 - 0.1)

    def test_clamp_never_negative(self):
        assert tangent_offset(0.05, 100, 90, 50) == 0.0

    def test_negative_angle(self):
        assert tangent_offset(100, 100, -90, 20) == pytest.approx(20.0)


class TestRoundedPath:

    @pytest.mark.parametrize('axis', list(TurnAxis))
    @pytest.mark.parametrize('angle', [30.0, 90.0, 135.0])
    def test_endpoints(self, axis, angle):
        path = rounded_path(100, 80, angle, 20, axis)
        assert np.allclose(path.point_at(0), [0, 0, 0])
        theta = math.radians(angle)
        if axis is TurnAxis.VERTICAL:
            expected = [0, 80 * math.sin(theta), 100 + 80 * math.cos(theta)]
        else:
            expected = [80 * math.sin(theta), 0, 100 + 80 * math.cos(theta)]
        assert np.allclose(path.point_at(1), expected)

    def test_three_segments_with_fillet(self):
        path = rounded_path(100, 100, 90, 20)
        assert len(path) == 3
        assert isinstance(path.curves[1], QuadraticBezierCurve)
        assert np.allclose(path.curves[0].v1, [0, 0, 80])
        assert np.allclose(path.curves[1].v2, [20, 0, 100])

    def test_zero_angle_is_collinear(self):
        path = rounded_path(50, 30, 0.0, 20)
        assert len(path) == 2
        assert all(isinstance(c, LineCurve) for c in path.curves)
        pts = path.sample(20)
        assert np.allclose(pts[:, :2], 0.0)
        assert path.length == pytest.approx(80.0)

    def test_tiny_radius_is_sharp_corner(self):
        path = rounded_path(50, 30, 90, 0.05)
        assert len(path) == 2
        assert np.allclose(path.curves[0].v1, [0, 0, 50])

    def test_clamped_fillet_still_reaches_end(self):
        path = rounded_path(10, 10, 90, 100)
        assert np.allclose(path.point_at(1), [10, 0, 10])
        assert path.curves[0].length == pytest.approx(0.1)

    def test_tangents_continuous(self):
        path = rounded_path(100, 100, 90, 20)
        s = path.curves[0].length
        before = path.tangent_at_length(s - 1e-6)
        after = path.tangent_at_length(s + 1e-6)
        assert np.allclose(before, after, atol=1e-4)
        assert np.allclose(path.tangent_at(1), [1, 0, 0])

    def test_invalid_legs(self):
        with pytest.raises(ValueError):
            rounded_path(0, 10, 90, 5)


class TestSweepPath:

    def test_arc_length_parameter(self):
        path = SweepPath([LineCurve((0, 0, 0), (0, 0, 10)), LineCurve((0, 0, 10), (0, 30, 10))])
        assert path.length == pytest.approx(40.0)
        assert np.allclose(path.point_at(0.25), [0, 0, 10])
        assert np.allclose(path.point_at(0.5), [0, 10, 10])

    def test_bezier_length(self):
        # degenerate control point on the chord: a straight line
        curve = QuadraticBezierCurve((0, 0, 0), (0, 0, 5), (0, 0, 10))
        assert curve.length == pytest.approx(10.0)
        assert np.allclose(curve.point_at_length(2.5), [0, 0, 2.5], atol=1e-6)

    def test_sample_count(self):
        assert straight_path(10).sample(7).shape == (8, 3)

    def test_sub_path_lines(self):
        path = straight_path(100)
        sub = path.sub_path(10, 35)
        assert sub.length == pytest.approx(25.0)
        assert np.allclose(sub.start, [0, 0, 10])
        assert np.allclose(sub.end, [0, 0, 35])

    def test_sub_path_spans_fillet(self):
        path = rounded_path(100, 100, 90, 20)
        sub = path.sub_path(50, path.length - 50)
        assert len(sub) == 3
        assert sub.length == pytest.approx(path.length - 100, rel=1e-4)
        assert np.allclose(sub.start, path.point_at_length(50))
        assert np.allclose(sub.end, path.point_at_length(path.length - 50), atol=1e-6)

    def test_sub_path_inside_fillet(self):
        path = rounded_path(100, 100, 90, 20)
        s0 = path.curves[0].length + 5
        sub = path.sub_path(s0, s0 + 10)
        assert len(sub) == 1
        assert sub.length == pytest.approx(10.0, rel=1e-3)
        assert np.allclose(sub.start, path.point_at_length(s0), atol=1e-6)

    def test_empty_sub_path(self):
        with pytest.raises(ValueError):
            straight_path(10).sub_path(5, 5)

    def test_path_for_modes(self):
        assert path_for(Parameters(length=42)).length == pytest.approx(42.0)
        angled = path_for(Parameters(is_angled_mode=True, len1=50, len2=50, angle=0))
        assert angled.length == pytest.approx(100.0)


class TestFrames:

    def test_straight_frames_constant(self):
        frames = straight_path(10).frames(4)
        assert np.allclose(frames.sides, [1, 0, 0])
        assert np.allclose(frames.ups, [0, 1, 0])
        assert np.allclose(frames.origins[-1], [0, 0, 10])

    @pytest.mark.parametrize('axis', list(TurnAxis))
    def test_frames_stay_orthonormal(self, axis):
        path = rounded_path(100, 100, 90, 20, axis)
        frames = path.frames(100, side=(0, -1, 0), up=(1, 0, 0))
        dots = [
            np.einsum('ij,ij->i', frames.sides, frames.ups),
            np.einsum('ij,ij->i', frames.sides, frames.tangents),
            np.einsum('ij,ij->i', frames.ups, frames.tangents),
        ]
        for d in dots:
            assert np.allclose(d, 0.0, atol=1e-9)
        assert np.allclose(np.cross(frames.sides, frames.ups), frames.tangents, atol=1e-9)

    def test_horizontal_turn_keeps_side(self):
        # rotation about Y leaves the -Y side vector alone
        frames = rounded_path(100, 100, 90, 20).frames(50, side=(0, -1, 0), up=(1, 0, 0))
        assert np.allclose(frames.sides[-1], [0, -1, 0])
        assert np.allclose(frames.ups[-1], [0, 0, -1], atol=1e-9)

    def test_vertical_turn_keeps_up(self):
        frames = rounded_path(100, 100, 90, 20, TurnAxis.VERTICAL).frames(
            50, side=(0, -1, 0), up=(1, 0, 0))
        assert np.allclose(frames.ups[-1], [1, 0, 0])

    def test_rotation_between(self):
        a = np.array([0.0, 0.0, 1.0])
        b = np.array([1.0, 0.0, 0.0])
        assert np.allclose(rotation_between(a, b) @ a, b)
        assert np.allclose(rotation_between(a, -a) @ a, -a)
        assert np.allclose(rotation_between(a, a), np.eye(3))
