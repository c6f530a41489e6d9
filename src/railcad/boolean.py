"""Boolean subtraction through :mod:`trimesh.boolean`.

The actual CSG kernel is whichever ``trimesh`` engine is installed; the
default is ``manifold`` (from the ``manifold3d`` package). Loading the
backend is done once: :func:`get_backend` initialises it synchronously and
:func:`load_backend` does the same from asyncio code, sharing a single
task between concurrent awaiters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

import trimesh

from .config import DEFAULT_SETTINGS
from .errors import BooleanEngineError

logger = logging.getLogger(__name__)

_backend: Optional["BooleanBackend"] = None
_backend_tasks: Dict[Optional[str], asyncio.Task] = {}


def engines_available() -> set[str]:
    """Return the set of trimesh boolean backends that are operational."""
    return set(trimesh.boolean.engines_available)


def is_available(engine: str | None = None) -> bool:
    """Check whether a boolean backend can run."""
    available = engines_available()
    if not available:
        return False
    if engine is None:
        return True
    return engine in available


class BooleanBackend:
    """Thin wrapper binding trimesh booleans to one engine."""

    def __init__(self, engine: str | None = DEFAULT_SETTINGS.boolean_engine):
        available = engines_available()
        if engine is not None and engine not in available:
            raise BooleanEngineError(
                f"trimesh boolean engine '{engine}' is not available (available: {sorted(available)})"
            )
        if engine is None and not available:
            raise BooleanEngineError(
                "no trimesh boolean engines are available; install manifold3d"
            )
        self.engine = engine

    def __repr__(self):
        return f"BooleanBackend(engine={self.engine!r})"

    def difference(self, a: trimesh.Trimesh, b: trimesh.Trimesh) -> trimesh.Trimesh:
        """Return ``a - b``.

        Raises:
            BooleanEngineError: If the engine fails to evaluate the operation
        """
        try:
            result = trimesh.boolean.difference([a, b], engine=self.engine, check_volume=False)
        except Exception as exc:
            raise BooleanEngineError(f"trimesh boolean difference failed: {exc}") from exc
        if result is None:
            raise BooleanEngineError("trimesh boolean difference returned no mesh")
        return result

    def warm_up(self) -> None:
        """Run one small subtraction so later calls do not pay start-up costs."""
        box = trimesh.creation.box(extents=(2.0, 2.0, 2.0))
        probe = trimesh.creation.box(extents=(1.0, 1.0, 4.0))
        self.difference(box, probe)


def _create_backend(engine: str | None) -> BooleanBackend:
    backend = BooleanBackend(engine)
    backend.warm_up()
    logger.debug("boolean backend ready: %s", backend.engine)
    return backend


def get_backend(engine: str | None = DEFAULT_SETTINGS.boolean_engine) -> BooleanBackend:
    """Return the shared backend, initialising it on first use."""
    global _backend
    if _backend is None or _backend.engine != engine:
        _backend = _create_backend(engine)
    return _backend


async def _load(engine: str | None) -> BooleanBackend:
    global _backend
    backend = await asyncio.to_thread(_create_backend, engine)
    # published from the event loop thread, never from the worker
    _backend = backend
    return backend


async def load_backend(engine: str | None = DEFAULT_SETTINGS.boolean_engine) -> BooleanBackend:
    """Asynchronous :func:`get_backend`; concurrent callers for one engine share one load."""
    if _backend is not None and _backend.engine == engine:
        return _backend
    loop = asyncio.get_running_loop()
    task = _backend_tasks.get(engine)
    if task is None or task.get_loop() is not loop:
        task = _backend_tasks[engine] = loop.create_task(_load(engine))
    try:
        return await asyncio.shield(task)
    finally:
        if task.done() and _backend_tasks.get(engine) is task:
            del _backend_tasks[engine]


def reset_backend() -> None:
    """Forget the shared backend (tests use this to start clean)."""
    global _backend
    _backend = None
    _backend_tasks.clear()


def difference(a: trimesh.Trimesh, b: trimesh.Trimesh,
               engine: str | None = DEFAULT_SETTINGS.boolean_engine) -> trimesh.Trimesh:
    """Subtract ``b`` from ``a`` with the shared backend."""
    return get_backend(engine).difference(a, b)


__all__ = [
    'BooleanBackend',
    'engines_available',
    'is_available',
    'get_backend',
    'load_backend',
    'reset_backend',
    'difference',
]
