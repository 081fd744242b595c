"""Background asyncio loop for map I/O."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Coroutine, Optional

from PyQt6.QtCore import QThread, pyqtSignal, pyqtSlot

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class AsyncBridge(QThread):
    """
    Thread hosting the asyncio event loop that runs map store coroutines.

    Coroutines are submitted from the UI thread; their outcomes are
    delivered back to the UI thread through a queued signal, so
    callbacks may safely touch widgets.
    """

    # (callback, value) pairs delivered on the thread owning the bridge
    _delivered = pyqtSignal(object, object)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready = threading.Event()
        self._delivered.connect(self._deliver)

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    def start_loop(self) -> None:
        """Start the thread and wait until its loop accepts work."""
        self.start()
        self._ready.wait()

    def run(self) -> None:
        """Run the event loop until ``stop_loop`` is called."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        logger.info("Async bridge loop started")

        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            if pending:
                # Let queued writes settle before closing
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            logger.info("Async bridge loop stopped")

    def stop_loop(self) -> None:
        """Stop the loop after pending tasks finish and join the thread."""
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        self.wait()

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> concurrent.futures.Future:
        """
        Schedule a coroutine on the loop.

        Args:
            coro: Coroutine to run
            on_result: Called on the UI thread with the result
            on_error: Called on the UI thread with the exception

        Returns:
            Future for callers that want to block on the outcome
        """
        if self._loop is None:
            coro.close()
            raise RuntimeError("Async bridge loop is not running")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _done(f: concurrent.futures.Future) -> None:
            if f.cancelled():
                return
            error = f.exception()
            if error is not None:
                if on_error is not None:
                    self._delivered.emit(on_error, error)
                else:
                    logger.error(f"Unhandled error in background task: {error}")
            elif on_result is not None:
                self._delivered.emit(on_result, f.result())

        future.add_done_callback(_done)
        return future

    @pyqtSlot(object, object)
    def _deliver(self, callback: Callable[[Any], None], value: Any) -> None:
        callback(value)
