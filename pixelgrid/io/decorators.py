"""
Background event loop shared by the decode scheduler.

Coroutines submitted here run on one daemon thread, so synchronous callers
can launch decode work without owning an event loop.
"""

from __future__ import annotations

import asyncio
import atexit
import concurrent.futures
import functools
import logging
import threading
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)

_bg_loop: Optional[asyncio.AbstractEventLoop] = None
_bg_thread: Optional[threading.Thread] = None
_bg_started = threading.Event()
_bg_lock = threading.Lock()


def _loop_thread_target() -> None:
    global _bg_loop
    loop = asyncio.new_event_loop()
    _bg_loop = loop
    asyncio.set_event_loop(loop)
    _bg_started.set()
    try:
        loop.run_forever()
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        except RuntimeError:
            logger.debug("Background loop shut down with pending work", exc_info=True)
        loop.close()
        _bg_loop = None


def _ensure_bg_loop_started() -> asyncio.AbstractEventLoop:
    global _bg_thread
    with _bg_lock:
        if _bg_loop is None or not (_bg_thread is not None and _bg_thread.is_alive()):
            _bg_started.clear()
            _bg_thread = threading.Thread(
                target=_loop_thread_target, name="pixelgrid-bg-loop", daemon=True
            )
            _bg_thread.start()
            _bg_started.wait()
        assert _bg_loop is not None
        return _bg_loop


def background_loop() -> asyncio.AbstractEventLoop:
    """The running background loop, started on first use."""
    return _ensure_bg_loop_started()


def submit_background(coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
    """Schedule ``coro`` on the background loop without waiting for it."""
    loop = _ensure_bg_loop_started()
    return asyncio.run_coroutine_threadsafe(coro, loop)


def run_background(coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
    """Run ``coro`` on the background loop and block until it finishes."""
    return submit_background(coro).result(timeout=timeout)


def stop_background_loop() -> None:
    global _bg_loop, _bg_thread
    loop = _bg_loop
    if loop is None:
        return
    try:
        loop.call_soon_threadsafe(loop.stop)
    except RuntimeError:
        # loop already closed
        pass
    if _bg_thread and _bg_thread.is_alive():
        _bg_thread.join(timeout=2.0)
    _bg_loop = None
    _bg_thread = None


atexit.register(stop_background_loop)


def sync_compatible(async_fn: Callable[..., Coroutine[Any, Any, Any]]):
    """
    Let an ``async def`` method be called from both worlds.

    Without a running loop the call blocks and returns the result; inside a
    running loop it returns an awaitable. The coroutine itself always runs on
    the background loop.
    """

    @functools.wraps(async_fn)
    def wrapper(self, *args, **kwargs):
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            return run_background(async_fn(self, *args, **kwargs))
        if current_loop is _bg_loop:
            return async_fn(self, *args, **kwargs)

        async def _await_bg():
            fut = submit_background(async_fn(self, *args, **kwargs))
            return await asyncio.wrap_future(fut)

        return _await_bg()

    return wrapper
