"""Tests for single-section sweeps and zone stitching."""

import numpy as np
import pytest
from shapely.geometry import Polygon, box

from railcad.errors import NonFiniteGeometryError
from railcad.path import rounded_path, straight_path
from railcad.sweep import (
    MeshBuilder,
    Zone,
    polygons_of,
    stitch_zones,
    sweep_section,
    triangulate,
    zone_steps,
)


def _square(half):
    return box(-half, -half, half, half)


def test_triangulate_is_ccw():
    # clockwise input
    poly = Polygon([(0, 0), (0, 1), (1, 1), (1, 0)])
    verts, faces = triangulate(poly)
    tri = verts[faces]
    area = ((tri[:, 1, 0] - tri[:, 0, 0]) * (tri[:, 2, 1] - tri[:, 0, 1])
            - (tri[:, 1, 1] - tri[:, 0, 1]) * (tri[:, 2, 0] - tri[:, 0, 0]))
    assert np.all(area >= 0)
    assert area.sum() / 2 == pytest.approx(1.0)


def test_triangulate_keeps_collinear_ring_edges():
    # inner wall with a run of collinear vertices, as beside the rail bead
    ring = [(0, 0), (2, 0), (2, 1), (1.5, 1), (1.5, 3), (1.5, 4), (1.5, 8),
            (2, 8), (2, 10), (0, 10)]
    verts, faces = triangulate(Polygon(ring))
    key = [tuple(np.round(v, 9)) for v in verts]
    edges = {frozenset((key[f[i]], key[f[(i + 1) % 3]])) for f in faces for i in range(3)}
    for a, b in zip(ring, ring[1:] + ring[:1]):
        assert frozenset((a, b)) in edges

    mesh = sweep_section(Polygon(ring), straight_path(5))
    assert mesh.is_watertight
    assert mesh.volume == pytest.approx(Polygon(ring).area * 5)


def test_polygons_of_drops_slivers():
    sliver = box(0, 0, 1e-6, 1e-6)
    assert polygons_of(sliver) == []
    assert len(polygons_of(_square(1).union(box(5, 5, 6, 6)))) == 2


def test_straight_sweep_is_a_box():
    mesh = sweep_section(_square(1.0), straight_path(10))
    assert mesh.is_watertight
    assert mesh.is_winding_consistent
    assert mesh.volume == pytest.approx(40.0)
    assert np.allclose(mesh.bounds, [[-1, -1, 0], [1, 1, 10]])


def test_straight_sweep_uses_one_span():
    assert zone_steps(straight_path(10), 200) == 1
    mesh = sweep_section(_square(1.0), straight_path(10), steps=200)
    # four walls of two triangles plus two caps of two triangles
    assert len(mesh.faces) == 12


def test_curved_sweep_outward():
    path = rounded_path(20, 20, 90, 5)
    mesh = sweep_section(_square(0.5), path, steps=60)
    assert mesh.is_watertight
    assert mesh.volume > 0
    assert mesh.volume == pytest.approx(path.length, rel=0.02)


def test_section_with_hole():
    tube = _square(2.0).difference(_square(1.0))
    mesh = sweep_section(tube, straight_path(5))
    assert mesh.is_watertight
    assert mesh.volume == pytest.approx(12.0 * 5)


def test_non_finite_vertices_raise():
    builder = MeshBuilder('bad')
    builder.add(np.array([[0, 0, 0], [1, 0, 0], [np.nan, 1, 0]]), np.array([[0, 1, 2]]))
    with pytest.raises(NonFiniteGeometryError) as info:
        builder.build()
    assert info.value.label == 'bad'
    assert info.value.count == 1


def test_empty_builder_raises():
    with pytest.raises(ValueError):
        MeshBuilder('empty').build()


class TestStitch:

    def test_narrow_middle(self):
        wide = _square(2.0)
        narrow = _square(1.0)
        zones = [Zone(wide, 0, 10), Zone(narrow, 10, 20), Zone(wide, 20, 30)]
        mesh = stitch_zones(zones, straight_path(30))
        assert mesh.is_watertight
        assert mesh.is_winding_consistent
        assert mesh.volume == pytest.approx(16 * 10 + 4 * 10 + 16 * 10)

    def test_wide_middle(self):
        wide = _square(2.0)
        narrow = _square(1.0)
        zones = [Zone(narrow, 0, 5), Zone(wide, 5, 25), Zone(narrow, 25, 30)]
        mesh = stitch_zones(zones, straight_path(30))
        assert mesh.is_watertight
        assert mesh.volume == pytest.approx(4 * 5 + 16 * 20 + 4 * 5)

    def test_single_zone_matches_sweep(self):
        section = _square(1.0)
        stitched = stitch_zones([Zone(section, 0, 10)], straight_path(10))
        swept = sweep_section(section, straight_path(10))
        assert stitched.volume == pytest.approx(swept.volume)

    def test_no_internal_walls(self):
        wide = _square(2.0)
        narrow = _square(1.0)
        zones = [Zone(wide, 0, 10), Zone(narrow, 10, 20)]
        mesh = stitch_zones(zones, straight_path(20))
        # the narrow zone's start face lies inside the wide cap and is not capped
        mid = mesh.triangles_center[np.isclose(mesh.triangles_center[:, 2], 10.0)]
        inside = np.all(np.abs(mid[:, :2]) < 1.0, axis=1)
        assert not np.any(inside)

    def test_curved_zones_share_boundary(self):
        path = rounded_path(30, 30, 90, 10)
        s = path.length
        zones = [
            Zone(_square(1.0), 0, s / 3),
            Zone(_square(1.5), s / 3, 2 * s / 3),
            Zone(_square(1.0), 2 * s / 3, s),
        ]
        mesh = stitch_zones(zones, path, steps=90)
        assert mesh.is_watertight
        assert mesh.volume > 0

    def test_empty_zones(self):
        with pytest.raises(ValueError):
            stitch_zones([], straight_path(10))
