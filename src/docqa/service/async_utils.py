"""Bridge for calling coroutines from synchronous code.

Model backends keep async HTTP connection pools that are bound to the event
loop they were first used on. Flask handlers therefore submit their work to
one long-lived loop running in a background thread instead of creating a
loop per request.
"""

import asyncio
import logging
import threading
from typing import Any

logger = logging.getLogger(__name__)

_loop: asyncio.AbstractEventLoop | None = None
_thread: threading.Thread | None = None
_lock = threading.Lock()


def get_background_loop() -> asyncio.AbstractEventLoop:
    """Return the shared background event loop, starting it on first use."""
    global _loop, _thread
    with _lock:
        if _loop is None or _loop.is_closed():
            _loop = asyncio.new_event_loop()
            _thread = threading.Thread(target=_loop.run_forever, name="docqa-async", daemon=True)
            _thread.start()
            logger.debug("🔁 Started background event loop")
        return _loop


def run_async(coro: Any) -> Any:
    """Run a coroutine on the shared background loop and wait for its result.

    This is useful for calling async functions from synchronous Flask routes.
    Every call runs on the same loop, so clients created by earlier calls stay
    usable.

    Args:
        coro: An awaitable coroutine to execute

    Returns:
        The result of the coroutine

    Note:
        For CLI commands, prefer using asyncio.run() directly.
    """
    future = asyncio.run_coroutine_threadsafe(coro, get_background_loop())
    return future.result()


def shutdown_background_loop() -> None:
    """Stop and close the shared loop. A later run_async starts a new one."""
    global _loop, _thread
    with _lock:
        loop, thread = _loop, _thread
        _loop = _thread = None
    if loop is None:
        return
    loop.call_soon_threadsafe(loop.stop)
    if thread is not None:
        thread.join()
    loop.close()
    logger.debug("🔁 Stopped background event loop")
