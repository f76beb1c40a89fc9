"""Contract between the overlay session and a subtitle renderer.

Renderers live in a module that is imported on demand, so a session that
never shows subtitles never pays for loading one. The module exposes a
factory taking :class:`RendererOptions` and returning (or resolving to) an
object with ``set_script`` and ``destroy``.
"""

import asyncio
import importlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from src.overlay.media_element import MediaElement

logger = logging.getLogger(__name__)


class OverlayRenderer(Protocol):
    def set_script(self, content: str) -> None: ...

    def destroy(self) -> None: ...


@dataclass
class RendererOptions:
    """Construction options handed to a renderer factory.

    ``available_fonts`` maps lower-cased family names to font bytes. When a
    custom font is supplied, ``use_local_fonts`` is False so the renderer
    uses it instead of whatever the system has under the same name.
    """

    video: MediaElement
    sub_content: str
    fonts: list[Path] = field(default_factory=list)
    fallback_font: str | None = None
    available_fonts: dict[str, bytes] = field(default_factory=dict)
    use_local_fonts: bool = True
    on_render: Callable[[list[str]], None] | None = None


RendererFactory = Callable[[RendererOptions], OverlayRenderer | Awaitable[OverlayRenderer]]
RendererLoader = Callable[[], Awaitable[RendererFactory]]


class RendererLoadError(Exception):
    """The renderer module or its factory could not be loaded."""

    pass


def module_renderer_loader(module_name: str, factory_name: str) -> RendererLoader:
    """Build a loader that imports ``module_name`` off the event loop."""

    async def load() -> RendererFactory:
        try:
            module = await asyncio.to_thread(importlib.import_module, module_name)
        except ImportError as e:
            raise RendererLoadError(f"Could not import renderer module {module_name}") from e
        factory = getattr(module, factory_name, None)
        if not callable(factory):
            raise RendererLoadError(
                f"Renderer module {module_name} has no factory '{factory_name}'"
            )
        logger.debug(f"Loaded renderer factory {module_name}.{factory_name}")
        return factory

    return load


async def build_renderer(
    factory: RendererFactory, options: RendererOptions
) -> OverlayRenderer:
    """Call ``factory``, awaiting the result when it is asynchronous."""
    renderer = factory(options)
    if inspect.isawaitable(renderer):
        renderer = await renderer
    return renderer
