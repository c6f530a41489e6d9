"""Tests for the generation owner: commit, abort, visibility and export."""

import asyncio
import logging

import numpy as np
import pytest

from railcad import boolean, profiles
from railcad.config import Settings
from railcad.dxf_profile import ProfileSource
from railcad.export import read_binary_stl
from railcad.params import Parameters, Role
from railcad.solids import GenerationMode
from railcad.system import RailSystem


FAST = Settings(path_steps=40, arc_resolution=15.0)

requires_manifold = pytest.mark.skipif(
    not boolean.is_available('manifold'), reason="manifold3d boolean engine not installed")


@pytest.fixture
def system():
    return RailSystem(FAST)


def test_export_before_generate(system):
    assert system.export_solid(Role.RAIL) is None
    assert system.save_stl(Role.RAIL) is None


def test_preview_generation(system):
    gen = system.generate(Parameters(hole_count=2), skip_holes=True)
    assert gen is system.current
    assert gen.is_preview
    assert gen.cutters == []
    assert gen.solid(Role.RAIL).mode is GenerationMode.SWEPT


def test_commit_releases_previous(system):
    first = system.generate(Parameters(hole_count=0))
    rail = first.solid(Role.RAIL)
    second = system.generate(Parameters(hole_count=0, length=50))
    assert system.current is second
    assert rail.disposed
    assert not second.solid(Role.RAIL).disposed


def test_non_finite_keeps_previous(system, caplog):
    good = system.generate(Parameters(hole_count=0))
    with caplog.at_level(logging.ERROR, logger='railcad'):
        result = system.generate(Parameters(hole_count=0, inner_height=float('nan')))
    assert result is None
    assert system.current is good
    assert not good.solid(Role.RAIL).disposed
    assert 'non-finite' in caplog.text


def test_source_not_ready_is_noop(system):
    system.source = ProfileSource()
    assert system.generate(Parameters(hole_count=0)) is None
    assert system.current is None


def test_source_profiles_used():
    source = ProfileSource(profiles.rail(12, 9), profiles.cover(12, 9))
    system = RailSystem(FAST, source)
    gen = system.generate(Parameters(hole_count=0))
    rail = gen.solid(Role.RAIL).mesh
    assert rail.bounds[1][0] == pytest.approx(6 + profiles.WALL_T)


def test_visibility(system):
    system.set_visibility(rail=False)
    gen = system.generate(Parameters(hole_count=0))
    assert not gen.solid(Role.RAIL).visible
    assert gen.solid(Role.COVER).visible
    system.set_visibility(rail=True, cover=False)
    assert gen.solid(Role.RAIL).visible
    assert not gen.solid(Role.COVER).visible


def test_export_filename():
    assert RailSystem.export_filename(Role.COVER) == 'cover.stl'
    assert RailSystem.export_filename('connector') == 'connector.stl'


def test_export_without_holes(system, tmp_path):
    params = Parameters(hole_count=0, length=40)
    system.generate(params)
    path = system.save_stl(Role.COVER, directory=tmp_path)
    assert path == tmp_path / 'cover.stl'
    header, _, triangles = read_binary_stl(path.read_bytes())
    assert header.rstrip() == b'cover'
    # tipped for printing, the 40 mm sweep axis lies along Y
    extents = np.ptp(triangles.reshape(-1, 3), axis=0)
    assert extents[1] == pytest.approx(40.0, abs=1e-4)


def test_export_connector_regenerates(system):
    params = Parameters(hole_count=0)
    system.generate(params)
    assert Role.CONNECTOR not in system.current.solids
    data = system.export_solid(Role.CONNECTOR)
    assert data is not None
    assert Role.CONNECTOR in system.current.solids


def test_cutter_toggle_keeps_generation(system):
    gen = system.generate(Parameters(length=40, hole_count=0))
    assert system.export_solid(Role.RAIL, gen.params.replace(show_cutters=False)) is not None
    assert system.current is gen
    assert not system.current.params.show_cutters


@requires_manifold
class TestWithHoles:

    def test_straight_rail_holes(self, system):
        params = Parameters(length=100, hole_count=2, hole_diameter=3)
        gen = system.generate(params)
        assert gen.holes_carved
        assert not gen.is_preview
        rail = gen.solid(Role.RAIL)
        assert rail.mode is GenerationMode.BOOLEAN
        assert gen.solid(Role.COVER).mode is not GenerationMode.BOOLEAN
        centres = sorted(c.mesh.centroid[2] for c in gen.cutters)
        assert centres == pytest.approx([-25.0, 25.0])

    def test_cutter_visibility(self, system):
        gen = system.generate(Parameters(hole_count=1, show_cutters=False))
        assert all(not c.visible for c in gen.cutters)

    def test_export_hides_cutters_without_regenerating(self, system):
        gen = system.generate(Parameters(length=60, hole_count=1))
        assert all(c.visible for c in gen.cutters)
        system.export_solid(Role.RAIL, gen.params.replace(showCutters=False))
        assert system.current is gen
        assert all(not c.visible for c in gen.cutters)
        assert not any(c.disposed for c in gen.cutters)

    def test_export_replaces_preview(self, system):
        params = Parameters(length=60, hole_count=1, hole_diameter=3)
        preview = system.generate(params, skip_holes=True)
        assert system.export_solid(Role.RAIL) is not None
        assert system.current is not preview
        assert system.current.holes_carved
        assert system.current.solid(Role.RAIL).mode is GenerationMode.BOOLEAN

    def test_export_with_new_params(self, system):
        system.generate(Parameters(length=60, hole_count=1))
        data = system.export_solid(Role.RAIL, Parameters(length=30, hole_count=1))
        assert data is not None
        assert system.current.params.length == 30

    def test_generate_async(self):
        boolean.reset_backend()
        system = RailSystem(FAST)
        gen = asyncio.run(system.generate_async(Parameters(length=40, hole_count=1)))
        assert gen.holes_carved
        assert boolean.get_backend(FAST.boolean_engine) is not None
