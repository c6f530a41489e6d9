"""Command line interface: export print-ready STL files or inspect profiles."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Sequence

import yaml

from . import profiles
from .config import load_settings
from .dxf_profile import write_dxf_profile
from .logging_config import setup_logging
from .params import Parameters, Role, load_parameters
from .system import RailSystem


def parse_assignments(items: Sequence[str]) -> Dict[str, object]:
    """Turn ``key=value`` strings into a mapping, values parsed as YAML scalars."""
    out: Dict[str, object] = {}
    for item in items:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise ValueError(f"expected key=value, got '{item}'")
        out[key.strip()] = yaml.safe_load(value)
    return out


def _roles(choice: str) -> List[Role]:
    if choice == 'all':
        return [Role.RAIL, Role.COVER, Role.CONNECTOR]
    return [Role(choice)]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='railcad',
        description="Generate 3D-printable rail, cover and connector parts.",
    )
    parser.add_argument('--verbose', '-v', action='store_true', help="Enable debug logging.")
    parser.add_argument('--settings', type=Path, default=None,
                        help="YAML file overriding generation settings.")
    sub = parser.add_subparsers(dest='command', required=True)

    exp = sub.add_parser('export', help="Write binary STL files.")
    exp.add_argument('--params', type=Path, default=None,
                     help="YAML or JSON parameter file.")
    exp.add_argument('--set', dest='assignments', action='append', default=[],
                     metavar='KEY=VALUE', help="Override one parameter. Repeatable.")
    exp.add_argument('--role', choices=['rail', 'cover', 'connector', 'all'], default='all',
                     help="Part to export (default: all).")
    exp.add_argument('--output', type=Path, default=Path('.'),
                     help="Destination directory (default: current directory).")
    exp.add_argument('--skip-holes', action='store_true',
                     help="Export the rail without mounting holes.")
    exp.add_argument('--overwrite', action='store_true',
                     help="Allow replacing existing files in the output directory.")

    prof = sub.add_parser('profile', help="Print profile bounds.")
    prof.add_argument('role', choices=['rail', 'cover', 'connector'])
    prof.add_argument('--params', type=Path, default=None)
    prof.add_argument('--set', dest='assignments', action='append', default=[],
                      metavar='KEY=VALUE')
    prof.add_argument('--dxf', type=Path, default=None,
                      help="Also write the profile to this DXF file.")
    return parser


def _load_params(args) -> Parameters:
    params = load_parameters(args.params) if args.params else Parameters()
    if args.assignments:
        params = params.replace(**parse_assignments(args.assignments))
    return params


def _cmd_export(args, settings) -> int:
    params = _load_params(args)
    if args.skip_holes:
        params = params.replace(hole_count=0)
    roles = _roles(args.role)

    for role in roles:
        target = args.output / RailSystem.export_filename(role)
        if target.exists() and not args.overwrite:
            raise FileExistsError(f"export target already exists: {target}")

    system = RailSystem(settings)
    if system.generate(params, include_connector=Role.CONNECTOR in roles) is None:
        print("Generation failed; nothing exported.", file=sys.stderr)
        return 1
    written = []
    for role in roles:
        path = system.save_stl(role, params, args.output)
        if path is not None:
            written.append(path)

    if not written:
        print("No geometry exported.", file=sys.stderr)
        return 1
    for path in written:
        print(path)
    return 0


def _cmd_profile(args, settings) -> int:
    params = _load_params(args)
    role = Role(args.role)
    if role is Role.CONNECTOR:
        conn = profiles.connector(params.inner_width, params.inner_height,
                                  params.conn_clearance, params.conn_wall)
        named = [('center', conn.center), ('outer_sleeve', conn.outer_sleeve),
                 ('inner_sleeve', conn.inner_sleeve)]
    elif role is Role.COVER:
        named = [('cover', profiles.cover(params.inner_width, params.inner_height,
                                          params.clearance))]
    else:
        named = [('rail', profiles.rail(params.inner_width, params.inner_height))]

    for name, profile in named:
        (x0, y0), (x1, y1) = profile.bounds(settings.arc_resolution)
        count = len(profile.points(settings.arc_resolution)) - 1
        print(f"{name}: x [{x0:.3f}, {x1:.3f}] y [{y0:.3f}, {y1:.3f}] "
              f"{len(profile)} segments, {count} points")

    if args.dxf is not None:
        if len(named) > 1:
            for name, profile in named:
                write_dxf_profile(profile, args.dxf.with_name(f"{args.dxf.stem}_{name}.dxf"))
        else:
            write_dxf_profile(named[0][1], args.dxf)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        settings = load_settings(args.settings)
        if args.command == 'export':
            return _cmd_export(args, settings)
        return _cmd_profile(args, settings)
    except (ValueError, FileExistsError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
