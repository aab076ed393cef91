"""Image loading with placeholder, loaded and error phases.

An ``ImageLoader`` tracks one displayed image. It resolves the URL to
request (asking resizable hosts for a smaller re-encoded variant), fetches
it in a background task and moves from ``LOADING`` to ``LOADED`` or
``ERROR``. ``ERROR`` is terminal for that request: there is no retry.

Changing ``src``/``width``/``height``/``quality`` restarts the load. Every
start bumps a generation counter and cancels the previous task; a
completion whose generation is no longer current is dropped, so the newest
request always wins regardless of the order responses arrive in.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable

import httpx

from core.config import AppSettings
from core.interfaces.image_fetcher import ImageFetcher

logger = logging.getLogger(__name__)

PLACEHOLDER_SRC = (
    'data:image/svg+xml,%3Csvg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 300 200"%3E'
    '%3Crect width="300" height="200" fill="%23cccccc"%3E%3C/rect%3E%3C/svg%3E'
)
DEFAULT_QUALITY = 75


class ImagePhase(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class ImageRequest:
    src: str
    alt: str
    width: int | None = None
    height: int | None = None
    quality: int = DEFAULT_QUALITY

    @property
    def key(self) -> tuple[str, int | None, int | None, int]:
        return (self.src, self.width, self.height, self.quality)


@dataclass(frozen=True)
class ImageState:
    request: ImageRequest
    phase: ImagePhase
    url: str
    display_src: str = PLACEHOLDER_SRC
    size: int = 0
    error: str | None = None

    @property
    def show_placeholder(self) -> bool:
        return self.phase is ImagePhase.LOADING

    @property
    def show_image(self) -> bool:
        return self.phase is ImagePhase.LOADED

    @property
    def show_error(self) -> bool:
        return self.phase is ImagePhase.ERROR


def is_resizable_host(src: str, hosts: Iterable[str]) -> bool:
    try:
        host = httpx.URL(src).host
    except (httpx.InvalidURL, TypeError):
        return False
    if not host:
        return False
    return any(host == h or host.endswith("." + h) for h in hosts)


def build_image_url(
    src: str,
    *,
    width: int | None = None,
    height: int | None = None,
    quality: int = DEFAULT_QUALITY,
    image_format: str = "webp",
    hosts: Iterable[str] = ("supabase.co",),
) -> str:
    """URL to request for ``src``.

    Resizable hosts get ``width``/``height`` (when given), ``quality`` and
    ``format`` appended to the query string; any other URL is returned
    untouched.
    """

    if not is_resizable_host(src, hosts):
        return src

    url = httpx.URL(src)
    if width:
        url = url.copy_add_param("width", str(width))
    if height:
        url = url.copy_add_param("height", str(height))
    url = url.copy_add_param("quality", str(quality))
    url = url.copy_add_param("format", image_format)
    return str(url)


Listener = Callable[[ImageState], None]


class ImageLoader:
    """State holder for one image on screen."""

    def __init__(
        self,
        request: ImageRequest,
        fetcher: ImageFetcher,
        *,
        settings: AppSettings | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._fetcher = fetcher
        self._generation = 0
        self._task: asyncio.Task[ImageState] | None = None
        self._listeners: list[Listener] = []
        self._state = self._initial_state(request)

    @property
    def state(self) -> ImageState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def resolve_url(self, request: ImageRequest) -> str:
        return build_image_url(
            request.src,
            width=request.width,
            height=request.height,
            quality=request.quality,
            image_format=self._settings.image_format,
            hosts=self._settings.resizable_image_hosts,
        )

    def start(self) -> asyncio.Task[ImageState]:
        """Begin loading the current request in the background.

        Calling it again returns the same task until the request changes or the
        loader is cancelled.
        """

        if self._task is not None:
            return self._task
        return self._restart(self._state.request)

    def update(self, request: ImageRequest) -> asyncio.Task[ImageState] | None:
        """Apply new props; restarts only when the fetch parameters changed."""

        if request.key == self._state.request.key:
            if request.alt != self._state.request.alt:
                self._set(replace(self._state, request=request))
            return self._task
        return self._restart(request)

    async def load(self, request: ImageRequest | None = None) -> ImageState:
        task = self.update(request) if request is not None else None
        if task is None:
            task = self.start()
        # A newer request may cancel this task; the caller still gets the current state.
        await asyncio.wait({task})
        return self._state

    def cancel(self) -> None:
        """Stop caring about the pending load (the image left the screen)."""

        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _initial_state(self, request: ImageRequest) -> ImageState:
        return ImageState(request=request, phase=ImagePhase.LOADING, url=self.resolve_url(request))

    def _restart(self, request: ImageRequest) -> asyncio.Task[ImageState]:
        self.cancel()
        generation = self._generation
        self._set(self._initial_state(request))
        self._task = asyncio.get_running_loop().create_task(self._run(self._state, generation))
        return self._task

    async def _run(self, pending: ImageState, generation: int) -> ImageState:
        try:
            data = await self._fetcher.fetch(pending.url)
        except Exception as exc:
            if generation != self._generation:
                return self._state
            logger.error("Failed to load image: %s (%s)", pending.request.src, exc)
            self._set(replace(pending, phase=ImagePhase.ERROR, error=str(exc) or type(exc).__name__))
            return self._state

        if generation != self._generation:
            logger.debug("Dropping stale image response for %s", pending.request.src)
            return self._state
        self._set(replace(pending, phase=ImagePhase.LOADED, display_src=pending.url, size=len(data)))
        return self._state

    def _set(self, state: ImageState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
