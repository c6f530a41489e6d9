"""Layout for a 2D profile preview.

Only the geometry of the preview is computed here: the fit scale, the
profile-to-screen mapping and the dimension annotations. Drawing them is
left to whatever canvas the caller has.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

import numpy as np

from . import profiles
from .params import Parameters, Role

PADDING = 35       # px around the fitted profile
LABEL_SHIFT = 10   # px the centre moves up/left to leave room for labels
DIM_OFFSET = 10    # px between the profile and the outer dimension lines


@dataclass(frozen=True)
class DimensionLine:
    """A dimension annotation in screen coordinates."""
    start: Tuple[float, float]
    end: Tuple[float, float]
    text: str
    vertical: bool = False


@dataclass(frozen=True)
class PreviewLayout:
    """Fitted preview of one profile.

    Attributes:
        role: Previewed part
        scale: Pixels per millimetre
        bounds: ``((min_x, min_y), (max_x, max_y))`` of the profile
        center: Screen point the profile's bounding-box centre maps to
        polyline: ``(n, 2)`` screen coordinates of the contour
        dimensions: Outer width, height and inner width annotations
    """
    role: Role
    scale: float
    bounds: Tuple[Tuple[float, float], Tuple[float, float]]
    center: Tuple[float, float]
    polyline: np.ndarray
    dimensions: List[DimensionLine]

    def to_screen(self, x: float, y: float) -> Tuple[float, float]:
        """Map profile coordinates to screen pixels (Y down)."""
        (x0, y0), (x1, y1) = self.bounds
        gcx = (x0 + x1) / 2.0
        gcy = (y0 + y1) / 2.0
        return (self.center[0] + (x - gcx) * self.scale,
                self.center[1] - (y - gcy) * self.scale)


def _preview_profile(params: Parameters, role: Role):
    if role is Role.RAIL:
        return profiles.rail(params.inner_width, params.inner_height)
    if role is Role.COVER:
        return profiles.cover(params.inner_width, params.inner_height, params.clearance)
    return profiles.connector(params.inner_width, params.inner_height,
                              params.conn_clearance, params.conn_wall).center


def preview_layout(params: Parameters, role: Union[Role, str] = Role.RAIL,
                   width: int = 300, height: int = 200, padding: float = PADDING,
                   arc_resolution: float = 10.0) -> PreviewLayout:
    """Fit the ``role`` profile into a ``width`` x ``height`` canvas."""
    role = Role(role)
    pts = _preview_profile(params, role).points(arc_resolution)
    x0, y0 = pts.min(axis=0)
    x1, y1 = pts.max(axis=0)
    geo_w = x1 - x0
    geo_h = y1 - y0
    if geo_w <= 0 or geo_h <= 0:
        raise ValueError(f"{role} profile has an empty bounding box")
    scale = float(min((width - padding * 2) / geo_w, (height - padding * 2) / geo_h))
    if scale <= 0:
        raise ValueError(f"canvas {width}x{height} too small for padding {padding}")
    center = (width / 2.0 - LABEL_SHIFT, height / 2.0 - LABEL_SHIFT)
    bounds = ((float(x0), float(y0)), (float(x1), float(y1)))

    layout = PreviewLayout(role, scale, bounds, center, np.empty((0, 2)), [])
    screen = np.array([layout.to_screen(x, y) for x, y in pts])

    dim_y = y0 - DIM_OFFSET / scale
    dim_x = x1 + DIM_OFFSET / scale
    iw = params.inner_width
    ih = params.inner_height
    dims = [
        DimensionLine(layout.to_screen(x0, dim_y), layout.to_screen(x1, dim_y),
                      f"W: {geo_w:.1f}"),
        DimensionLine(layout.to_screen(dim_x, y0), layout.to_screen(dim_x, y1),
                      f"H: {geo_h:.1f}", vertical=True),
        DimensionLine(layout.to_screen(-iw / 2, ih / 2), layout.to_screen(iw / 2, ih / 2),
                      f"Inner: {iw:g}"),
    ]
    return PreviewLayout(role, scale, bounds, center, screen, dims)


__all__ = ['DimensionLine', 'PreviewLayout', 'preview_layout']
