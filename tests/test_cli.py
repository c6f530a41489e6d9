import logging

import pytest

from railcad import cli
from railcad.export import read_binary_stl


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger('railcad')
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_parse_assignments():
    values = cli.parse_assignments(['length=50', 'isAngledMode=true', 'turn_axis=vertical'])
    assert values == {'length': 50, 'isAngledMode': True, 'turn_axis': 'vertical'}
    with pytest.raises(ValueError):
        cli.parse_assignments(['length'])


def test_profile_command(capsys):
    assert cli.main(['profile', 'rail']) == 0
    out = capsys.readouterr().out
    assert out.startswith('rail: x [-5.200, 5.200] y [-1.200, 10.000]')


def test_profile_connector_writes_dxf(tmp_path, capsys):
    target = tmp_path / 'conn.dxf'
    assert cli.main(['profile', 'connector', '--dxf', str(target)]) == 0
    out = capsys.readouterr().out
    assert 'center:' in out and 'inner_sleeve:' in out
    for name in ('center', 'outer_sleeve', 'inner_sleeve'):
        assert (tmp_path / f'conn_{name}.dxf').exists()


def test_export_cover(tmp_path, capsys):
    code = cli.main(['export', '--role', 'cover', '--skip-holes', '--output', str(tmp_path),
                     '--set', 'length=30', '--settings', str(_fast_settings(tmp_path))])
    assert code == 0
    target = tmp_path / 'cover.stl'
    assert capsys.readouterr().out.strip() == str(target)
    header, _, triangles = read_binary_stl(target.read_bytes())
    assert header.rstrip() == b'cover'
    assert len(triangles) > 0


def test_export_refuses_overwrite(tmp_path, capsys):
    (tmp_path / 'rail.stl').write_bytes(b'')
    code = cli.main(['export', '--role', 'rail', '--output', str(tmp_path)])
    assert code == 2
    assert 'already exists' in capsys.readouterr().err


def test_invalid_parameter(capsys):
    assert cli.main(['profile', 'rail', '--set', 'inner_width=-3']) == 2
    assert 'error:' in capsys.readouterr().err


def test_unknown_parameter(capsys):
    assert cli.main(['profile', 'cover', '--set', 'bogus=1']) == 2


def test_params_file(tmp_path, capsys):
    params = tmp_path / 'params.yaml'
    params.write_text('innerWidth: 12\n')
    assert cli.main(['profile', 'rail', '--params', str(params)]) == 0
    assert 'x [-7.200, 7.200]' in capsys.readouterr().out


def _fast_settings(tmp_path):
    path = tmp_path / 'settings.yaml'
    path.write_text('path_steps: 20\narc_resolution: 20\n')
    return path
