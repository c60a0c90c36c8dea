"""
Concurrent decode scheduler.

Every task is launched as soon as it is scheduled and runs independently:
metadata decode, pixel decode, normalization, then publication to the task's
sink. Tasks share no state, so a failing task never affects the others.
Results come back through :class:`DecodeHandle` objects and
:meth:`DecodeScheduler.join`, which is the point after which every sink has
fired.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import io
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

from pixelgrid.domain.types.grid import GridLayout, PixelGrid, Truncation
from pixelgrid.domain.types.task import DecodeResult, DecodeTask, TaskState, raise_for_failures
from pixelgrid.errors import CodecError, DecodeError, DecodeStage
from pixelgrid.io.decorators import submit_background, sync_compatible
from pixelgrid.io.env import PipelineSettings, load_settings
from pixelgrid.ops.codecs.base import Codec
from pixelgrid.ops.codecs.registry import guess_codec
from pixelgrid.ops.normalize import to_pixel_grid

logger = logging.getLogger(__name__)


class _AssetLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['asset']}] {msg}", kwargs


def decode_task(
    task: DecodeTask,
    *,
    layout: Union[GridLayout, str] = GridLayout.EXACT,
    truncation: Union[Truncation, str] = Truncation.HIGH_BYTE,
    premultiply_alpha: bool = False,
    on_state: Optional[Callable[[TaskState], None]] = None,
) -> DecodeResult:
    """
    Run one task to completion in the calling thread.

    The sink is called at most once, and only with a complete grid. Any
    failure is returned as a ``FAILED`` result naming the stage.
    """
    log = _AssetLogger(logger, {"asset": task.name})

    def enter(state: TaskState) -> None:
        if on_state is not None:
            on_state(state)

    def fail(stage: DecodeStage, exc: Exception) -> DecodeResult:
        error = DecodeError(task.name, stage, exc)
        log.error("Decode failed during %s stage: %s", stage.value, exc)
        log.debug("Failure details", exc_info=exc)
        enter(TaskState.FAILED)
        return DecodeResult(name=task.name, state=TaskState.FAILED, error=error)

    enter(TaskState.METADATA_DECODING)
    log.info("Decoding config")
    try:
        config = task.codec.read_config(io.BytesIO(task.data))
    except Exception as e:
        return fail(DecodeStage.METADATA, e)
    log.debug("Image is %dx%d (%s)", config.width, config.height, config.format or "unknown format")

    enter(TaskState.PIXEL_DECODING)
    log.info("Decoding pixels")
    try:
        source = task.codec.read_image(io.BytesIO(task.data))
    except Exception as e:
        return fail(DecodeStage.PIXELS, e)

    enter(TaskState.NORMALIZING)
    try:
        grid = to_pixel_grid(
            config,
            source,
            layout=layout,
            truncation=truncation,
            premultiply_alpha=premultiply_alpha,
        )
    except Exception as e:
        return fail(DecodeStage.NORMALIZE, e)

    if task.sink is not None:
        try:
            task.sink(grid)
        except Exception as e:
            return fail(DecodeStage.PUBLISH, e)

    enter(TaskState.PUBLISHED)
    log.info("Published %dx%d grid", grid.height, grid.width)
    return DecodeResult(name=task.name, state=TaskState.PUBLISHED, grid=grid)


@dataclass(eq=False)
class DecodeHandle:
    """Completion handle of one scheduled task."""

    task: DecodeTask
    state: TaskState = TaskState.CREATED
    future: Optional[concurrent.futures.Future] = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.task.name

    def done(self) -> bool:
        return self.future is not None and self.future.done()

    def result(self, timeout: Optional[float] = None) -> DecodeResult:
        """Block until the task finishes and return its result."""
        if self.future is None:
            raise RuntimeError(f"Task {self.name!r} was never scheduled")
        return self.future.result(timeout=timeout)

    def _set_state(self, state: TaskState) -> None:
        self.state = state


class DecodeScheduler:
    """
    Launches decode tasks concurrently and collects their results.

    :Usage example:

     .. code-block:: python

        from pixelgrid import DecodeScheduler, DecodeTask, PngCodec

        scheduler = DecodeScheduler(layout="exact")
        handles = scheduler.schedule([DecodeTask(name="logo", data=raw, codec=PngCodec())])
        results = scheduler.join()          # or: await scheduler.join()
        grid = results[0].unwrap()
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        *,
        layout: Union[GridLayout, str, None] = None,
        truncation: Union[Truncation, str, None] = None,
        premultiply_alpha: Optional[bool] = None,
        max_concurrency: Optional[int] = None,
        fail_fast: Optional[bool] = None,
    ):
        overrides = {
            "layout": layout,
            "truncation": truncation,
            "premultiply_alpha": premultiply_alpha,
            "max_concurrency": max_concurrency,
            "fail_fast": fail_fast,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if settings is None:
            settings = load_settings(**overrides)
        elif overrides:
            settings = load_settings(**{**settings.model_dump(), **overrides})
        self.settings = settings
        self._pending: List[DecodeHandle] = []
        self._pending_lock = threading.Lock()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    def schedule(self, tasks: Iterable[DecodeTask]) -> List[DecodeHandle]:
        """Launch one decode per task without waiting for any of them."""
        handles = []
        for task in tasks:
            handle = DecodeHandle(task=task)
            handle.future = submit_background(self._run(handle))
            handles.append(handle)
        logger.debug("Scheduled %d decode task(s)", len(handles))
        with self._pending_lock:
            self._pending.extend(handles)
        return handles

    def schedule_one(self, task: DecodeTask) -> DecodeHandle:
        return self.schedule([task])[0]

    async def _run(self, handle: DecodeHandle) -> DecodeResult:
        limit = self.settings.max_concurrency
        if limit is None:
            return await self._decode_in_thread(handle)
        async with self._limiter(limit):
            return await self._decode_in_thread(handle)

    def _limiter(self, limit: int) -> asyncio.Semaphore:
        # Only touched from the background loop; rebuilt if that loop was restarted.
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(limit)
            self._semaphore_loop = loop
        return self._semaphore

    async def _decode_in_thread(self, handle: DecodeHandle) -> DecodeResult:
        """
        Run one decode on a thread of its own.

        A shared executor would cap the number of decodes in flight, so a
        task blocked inside its codec could hold back tasks scheduled after it.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result, error):
            if future.cancelled():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def target():
            try:
                result = self._decode(handle)
            except Exception as e:
                loop.call_soon_threadsafe(settle, None, e)
            else:
                loop.call_soon_threadsafe(settle, result, None)

        threading.Thread(target=target, name=f"pixelgrid-decode-{handle.name}", daemon=True).start()
        return await future

    def _decode(self, handle: DecodeHandle) -> DecodeResult:
        return decode_task(
            handle.task,
            layout=self.settings.layout,
            truncation=self.settings.truncation,
            premultiply_alpha=self.settings.premultiply_alpha,
            on_state=handle._set_state,
        )

    @sync_compatible
    async def join(self, handles: Optional[Iterable[DecodeHandle]] = None) -> List[DecodeResult]:
        """
        Wait for ``handles`` (default: everything scheduled and not yet joined).

        Results are returned in the order the handles were given. With
        ``fail_fast`` enabled, :class:`AssetDecodeError` is raised once all of
        them have finished if any failed.
        """
        with self._pending_lock:
            if handles is None:
                handles, self._pending = self._pending, []
            else:
                handles = list(handles)
                joined = {id(h) for h in handles}
                self._pending = [h for h in self._pending if id(h) not in joined]
        results = list(await asyncio.gather(*(asyncio.wrap_future(h.future) for h in handles)))
        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("%d of %d decode task(s) failed", failed, len(results))
        if self.settings.fail_fast:
            raise_for_failures(results)
        return results

    @sync_compatible
    async def run(self, tasks: Iterable[DecodeTask]) -> List[DecodeResult]:
        """Schedule ``tasks`` and wait for all of them."""
        handles = self.schedule(tasks)
        return await self.join(handles)


def decode_all(tasks: Iterable[DecodeTask], settings: Optional[PipelineSettings] = None, **kwargs):
    """Decode ``tasks`` concurrently with a one-off scheduler (sync compatible)."""
    return DecodeScheduler(settings, **kwargs).run(tasks)


def decode_bytes(
    data: bytes,
    codec: Optional[Codec] = None,
    name: str = "<bytes>",
    **kwargs,
) -> PixelGrid:
    """
    Decode one encoded image in the calling thread.

    The codec is guessed from the magic number when not given. Keyword
    arguments are passed to :func:`decode_task`.

    Raises:
        DecodeError: If any stage fails.
    """
    if codec is None:
        try:
            codec = guess_codec(data)
        except CodecError as e:
            raise DecodeError(name, DecodeStage.METADATA, e) from e
    return decode_task(DecodeTask(name=name, data=data, codec=codec), **kwargs).unwrap()


__all__ = [
    "DecodeHandle",
    "DecodeScheduler",
    "decode_all",
    "decode_bytes",
    "decode_task",
]
