"""The generation owner: builds, commits and exports solids.

:class:`RailSystem` keeps exactly one committed :class:`Generation`. A new
generation is fully built before it replaces the old one, so a failed
build leaves the previous solids in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from . import boolean
from .config import DEFAULT_SETTINGS, Settings
from .errors import NonFiniteGeometryError
from .export import export_stl
from .holes import carve_holes, hole_placements
from .params import Parameters, Role
from .path import SweepPath
from .solids import Solid, SolidGenerator

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Generation:
    """Everything produced by one generation request.

    Attributes:
        params: Parameters the solids were built from
        solids: Solids by role
        cutters: Hole cutter solids, for display
        path: Sweep path of the rail and cover
        holes_carved: Whether the rail had its holes subtracted
    """
    params: Parameters
    solids: Dict[Role, Solid]
    path: SweepPath
    cutters: List[Solid] = field(default_factory=list)
    holes_carved: bool = False

    @property
    def is_preview(self) -> bool:
        """True when holes were requested but skipped."""
        return self.params.holes_requested and not self.holes_carved

    def solid(self, role: Role) -> Optional[Solid]:
        return self.solids.get(Role(role))

    def release(self) -> None:
        for solid in self.solids.values():
            solid.dispose()
        for cutter in self.cutters:
            cutter.dispose()


class RailSystem:
    """Owns the current generation and the display flags.

    Args:
        settings: Generation settings
        source: Optional external profile source; while it is not ready,
            generation requests are ignored
    """

    def __init__(self, settings: Settings = DEFAULT_SETTINGS, source=None):
        self.settings = settings
        self.source = source
        self.current: Optional[Generation] = None
        self.show_rail = True
        self.show_cover = True
        self.show_cutters = True

    # generation

    def _generator(self) -> SolidGenerator:
        return SolidGenerator(self.settings, self.source)

    def build(self, params: Parameters, skip_holes: bool = False,
              include_connector: bool = False,
              backend: Optional[boolean.BooleanBackend] = None) -> Generation:
        """Build a generation without committing it.

        Raises:
            NonFiniteGeometryError: If generated geometry is not finite
            BooleanEngineError: If hole carving fails
        """
        built = self._generator().build(params, include_connector)
        gen = Generation(params, built.solids, built.path)
        if params.holes_requested and not skip_holes:
            holes = hole_placements(params, built.path)
            gen.cutters = carve_holes(built.solids[Role.RAIL], holes, self.settings, backend)
            gen.holes_carved = True
        return gen

    def commit(self, gen: Generation) -> Generation:
        """Release the previous generation and make ``gen`` current."""
        if self.current is not None and self.current is not gen:
            self.current.release()
        self.current = gen
        self._apply_visibility()
        return gen

    def generate(self, params: Parameters, skip_holes: bool = False,
                 include_connector: bool = False,
                 backend: Optional[boolean.BooleanBackend] = None) -> Optional[Generation]:
        """Build and commit a generation.

        Returns:
            The committed generation, or None if nothing was generated
            (profile source not loaded, or non-finite geometry; in the
            latter case the previous generation stays current)
        """
        if self.source is not None and not self.source.ready:
            logger.debug("profile source not loaded, skipping generation")
            return None
        try:
            gen = self.build(params, skip_holes, include_connector, backend)
        except NonFiniteGeometryError as exc:
            logger.error("%s; keeping previous solids", exc)
            return None
        return self.commit(gen)

    async def generate_async(self, params: Parameters, skip_holes: bool = False,
                             include_connector: bool = False) -> Optional[Generation]:
        """Like :meth:`generate`, loading the boolean backend first if needed."""
        backend = None
        if params.holes_requested and not skip_holes:
            backend = await boolean.load_backend(self.settings.boolean_engine)
        return self.generate(params, skip_holes, include_connector, backend)

    # display

    def set_visibility(self, rail: Optional[bool] = None, cover: Optional[bool] = None,
                       cutters: Optional[bool] = None) -> None:
        if rail is not None:
            self.show_rail = rail
        if cover is not None:
            self.show_cover = cover
        if cutters is not None:
            self.show_cutters = cutters
        self._apply_visibility()

    def _apply_visibility(self) -> None:
        gen = self.current
        if gen is None:
            return
        flags = {Role.RAIL: self.show_rail, Role.COVER: self.show_cover}
        for role, solid in gen.solids.items():
            solid.visible = flags.get(role, True)
        show_cutters = self.show_cutters and gen.params.show_cutters
        for cutter in gen.cutters:
            cutter.visible = show_cutters

    # export

    def _needs_regeneration(self, role: Role, params: Parameters) -> bool:
        gen = self.current
        # show_cutters only affects display
        same = gen.params.replace(show_cutters=params.show_cutters) == params
        return not same or gen.is_preview or role not in gen.solids

    def export_solid(self, role: Union[Role, str],
                     params: Optional[Parameters] = None) -> Optional[bytes]:
        """Print-ready binary STL for ``role``.

        Returns None if nothing has been generated yet. A preview
        generation, or one built from other parameters, is replaced by a
        full generation before exporting.
        """
        role = Role(role)
        if self.current is None:
            logger.info("nothing generated yet, export of %s skipped", role)
            return None
        params = params if params is not None else self.current.params
        if self._needs_regeneration(role, params):
            include_connector = role is Role.CONNECTOR or Role.CONNECTOR in self.current.solids
            if self.generate(params, skip_holes=False,
                             include_connector=include_connector) is None:
                return None
        elif params != self.current.params:
            self.current.params = params
            self._apply_visibility()
        solid = self.current.solid(role)
        if solid is None:
            return None
        return export_stl(solid, self.current.params)

    @staticmethod
    def export_filename(role: Union[Role, str]) -> str:
        return f"{Role(role)}.stl"

    def save_stl(self, role: Union[Role, str], params: Optional[Parameters] = None,
                 directory: Union[str, Path] = '.') -> Optional[Path]:
        """Write :meth:`export_solid` output into ``directory``."""
        data = self.export_solid(role, params)
        if data is None:
            return None
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.export_filename(role)
        target.write_bytes(data)
        logger.info("wrote %s (%d bytes)", target, len(data))
        return target


__all__ = ['Generation', 'RailSystem']
