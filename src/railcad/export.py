"""Print orientation and binary STL output."""

from __future__ import annotations

import io
import logging
import math
import struct
from typing import BinaryIO, List, Tuple, Union

import numpy as np
import trimesh
from trimesh import transformations as tf

from .params import Parameters, Role, TurnAxis
from .repair import RepairReport, face_normals, repair_winding
from .solids import GenerationMode, Solid

logger = logging.getLogger(__name__)

_HEADER_SIZE = 80
_STRUCT_TRIANGLE = struct.Struct('<12fH')
_STRUCT_COUNT = struct.Struct('<I')

X_AXIS = [1, 0, 0]
Z_AXIS = [0, 0, 1]


def print_transform(role: Role, params: Parameters) -> np.ndarray:
    """Rotation that lays a part flat for printing.

    Rails and connectors are tipped ``+90°`` about X and covers ``-90°``.
    Horizontal angled parts are additionally turned ``90°`` about Z first.
    """
    role = Role(role)
    angle = -math.pi / 2 if role is Role.COVER else math.pi / 2
    rot = tf.rotation_matrix(angle, X_AXIS)
    if params.is_angled_mode and params.turn_axis is TurnAxis.HORIZONTAL:
        rot = rot @ tf.rotation_matrix(math.pi / 2, Z_AXIS)
    return rot


def prepare_for_export(solid: Solid, params: Parameters) -> Tuple[trimesh.Trimesh, RepairReport]:
    """World mesh, rotated for printing, with stitched windings repaired.

    The solid itself is left untouched.
    """
    mesh = solid.world_mesh()
    mesh.apply_transform(print_transform(solid.role, params))
    if solid.mode is GenerationMode.STITCHED:
        report = repair_winding(mesh)
    else:
        report = RepairReport(checked=0, flipped=0)
    return mesh, report


def write_binary_stl(mesh: trimesh.Trimesh, path_or_file: Union[str, BinaryIO],
                     name: str = 'railCAD') -> None:
    """Write ``mesh`` as binary STL.

    ``path_or_file`` can be a filesystem path or an open binary stream.
    Facet normals are derived from the vertex order.
    """
    close_when_done = False
    if hasattr(path_or_file, 'write'):
        stream = path_or_file
    else:
        stream = open(path_or_file, 'wb')
        close_when_done = True

    triangles = np.asarray(mesh.triangles, dtype=float)
    normals = face_normals(mesh) if len(triangles) else np.zeros((0, 3))
    try:
        header = (name[:_HEADER_SIZE]).encode('ascii', errors='replace')
        header = header.ljust(_HEADER_SIZE, b' ')
        stream.write(header)
        stream.write(_STRUCT_COUNT.pack(len(triangles)))

        for normal, tri in zip(normals, triangles):
            data = _STRUCT_TRIANGLE.pack(
                *normal,
                *tri[0],
                *tri[1],
                *tri[2],
                0,
            )
            stream.write(data)
    finally:
        if close_when_done:
            stream.close()


def stl_bytes(mesh: trimesh.Trimesh, name: str = 'railCAD') -> bytes:
    buf = io.BytesIO()
    write_binary_stl(mesh, buf, name)
    return buf.getvalue()


def read_binary_stl(data: bytes) -> Tuple[bytes, np.ndarray, np.ndarray]:
    """Parse binary STL bytes.

    Returns:
        ``(header, normals, triangles)`` with ``normals`` of shape
        ``(n, 3)`` and ``triangles`` of shape ``(n, 3, 3)``
    """
    if len(data) < _HEADER_SIZE + _STRUCT_COUNT.size:
        raise ValueError("Invalid binary STL: file too small")
    (count,) = _STRUCT_COUNT.unpack_from(data, _HEADER_SIZE)
    expected = _HEADER_SIZE + _STRUCT_COUNT.size + count * _STRUCT_TRIANGLE.size
    if len(data) != expected:
        raise ValueError(f"Invalid binary STL: expected {expected} bytes, got {len(data)}")
    normals: List[Tuple[float, ...]] = []
    triangles: List[Tuple[float, ...]] = []
    offset = _HEADER_SIZE + _STRUCT_COUNT.size
    for _ in range(count):
        values = _STRUCT_TRIANGLE.unpack_from(data, offset)
        normals.append(values[0:3])
        triangles.append(values[3:12])
        offset += _STRUCT_TRIANGLE.size
    return (data[:_HEADER_SIZE],
            np.asarray(normals, dtype=float).reshape(-1, 3),
            np.asarray(triangles, dtype=float).reshape(-1, 3, 3))


def export_stl(solid: Solid, params: Parameters, name: str | None = None) -> bytes:
    """Print-ready binary STL for ``solid``."""
    mesh, report = prepare_for_export(solid, params)
    if report.flipped:
        logger.info("%s: repaired winding of %d face(s)", solid.role, report.flipped)
    return stl_bytes(mesh, name or str(solid.role))


__all__ = [
    'print_transform',
    'prepare_for_export',
    'write_binary_stl',
    'stl_bytes',
    'read_binary_stl',
    'export_stl',
]
