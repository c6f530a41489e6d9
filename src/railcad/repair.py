"""Outward winding repair by ray parity.

Stitched meshes are assembled from independently wound pieces. Every face
is tested by casting a ray from just above its centroid along its own
normal: a ray that leaves a closed solid crosses the surface an even
number of times, so an odd count means the face points inward and its
winding is reversed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import trimesh
from trimesh.ray.ray_triangle import RayMeshIntersector

from .config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

HIT_DIGITS = 6  # hits closer than this along one ray are the same crossing


@dataclass(frozen=True)
class RepairReport:
    """Outcome of a repair pass."""
    checked: int
    flipped: int

    def __bool__(self):
        return self.flipped > 0


def face_normals(mesh: trimesh.Trimesh) -> np.ndarray:
    """Unit normals from the vertex order, ``(c - b) x (a - b)``."""
    tri = mesh.triangles
    a, b, c = tri[:, 0], tri[:, 1], tri[:, 2]
    normals = np.cross(c - b, a - b)
    lengths = np.linalg.norm(normals, axis=1)
    ok = lengths > 0
    normals[ok] /= lengths[ok][:, None]
    return normals


def crossing_counts(mesh: trimesh.Trimesh, origins: np.ndarray,
                    directions: np.ndarray) -> np.ndarray:
    """Number of distinct surface crossings along each ray."""
    intersector = RayMeshIntersector(mesh)
    _, ray_idx, locations = intersector.intersects_id(
        origins, directions, multiple_hits=True, return_locations=True)
    counts = np.zeros(len(origins), dtype=np.int64)
    if len(ray_idx) == 0:
        return counts
    dist = np.einsum('ij,ij->i', locations - origins[ray_idx], directions[ray_idx])
    # a ray through a shared edge or vertex hits several faces at one distance
    keys = np.unique(np.column_stack([ray_idx, np.round(dist, HIT_DIGITS)]), axis=0)
    np.add.at(counts, keys[:, 0].astype(np.int64), 1)
    return counts


def repair_winding(mesh: trimesh.Trimesh,
                   epsilon: float = DEFAULT_SETTINGS.repair_epsilon) -> RepairReport:
    """Flip every face whose normal points into the solid, in place.

    Args:
        mesh: Closed triangle mesh
        epsilon: Offset of each ray origin along the face normal

    Returns:
        How many faces were tested and how many were flipped
    """
    faces = np.array(mesh.faces, dtype=np.int64)
    if len(faces) == 0:
        return RepairReport(0, 0)
    normals = face_normals(mesh)
    valid = np.linalg.norm(normals, axis=1) > 0
    origins = mesh.triangles_center + epsilon * normals

    counts = np.zeros(len(faces), dtype=np.int64)
    idx = np.nonzero(valid)[0]
    if len(idx):
        counts[idx] = crossing_counts(mesh, origins[idx], normals[idx])
    flip = valid & (counts % 2 == 1)

    flipped = int(np.count_nonzero(flip))
    if flipped:
        faces[flip] = faces[flip][:, [0, 2, 1]]
        mesh.faces = faces
    # touching vertex_normals recomputes them from the current winding
    _ = mesh.vertex_normals
    logger.debug("repair: %d of %d face(s) flipped", flipped, len(faces))
    return RepairReport(checked=len(faces), flipped=flipped)


__all__ = ['RepairReport', 'face_normals', 'crossing_counts', 'repair_winding']
