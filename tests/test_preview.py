import numpy as np
import pytest

from railcad import profiles
from railcad.params import Parameters, Role
from railcad.preview import preview_layout


def test_rail_fits_canvas():
    layout = preview_layout(Parameters(), Role.RAIL, width=300, height=200)
    (x0, y0), (x1, y1) = profiles.rail(8, 9).bounds()
    expected = min(230 / (x1 - x0), 130 / (y1 - y0))
    assert layout.scale == pytest.approx(expected)
    assert layout.center == (140.0, 90.0)
    xs, ys = layout.polyline[:, 0], layout.polyline[:, 1]
    assert xs.min() >= 0 and xs.max() <= 300
    assert ys.min() >= 0 and ys.max() <= 200


def test_y_axis_flipped():
    layout = preview_layout(Parameters(), Role.RAIL)
    (_, y0), (_, y1) = layout.bounds
    _, top = layout.to_screen(0.0, y1)
    _, bottom = layout.to_screen(0.0, y0)
    assert top < bottom


def test_bounding_box_centre_maps_to_centre():
    layout = preview_layout(Parameters(), Role.COVER)
    (x0, y0), (x1, y1) = layout.bounds
    assert layout.to_screen((x0 + x1) / 2, (y0 + y1) / 2) == pytest.approx(layout.center)


def test_dimension_labels():
    layout = preview_layout(Parameters(inner_width=8, inner_height=9), Role.RAIL)
    texts = [d.text for d in layout.dimensions]
    assert texts == ['W: 10.4', 'H: 11.2', 'Inner: 8']
    assert layout.dimensions[1].vertical
    width_line = layout.dimensions[0]
    assert width_line.start[1] == pytest.approx(width_line.end[1])


def test_connector_uses_center_profile():
    layout = preview_layout(Parameters(), 'connector')
    conn = profiles.connector(8, 9, 0.2, 1.2)
    assert np.asarray(layout.bounds) == pytest.approx(np.asarray(conn.center.bounds()))


def test_canvas_too_small():
    with pytest.raises(ValueError):
        preview_layout(Parameters(), Role.RAIL, width=60, height=60)
