"""Background asyncio loop used by the desktop window."""
from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, Optional

LOGGER = logging.getLogger(__name__)


class AsyncRunner:
    """Runs an event loop on a daemon thread and accepts coroutines from other threads."""

    def __init__(self, name: str = "prospect-triage-loop") -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._started = False

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self) -> "AsyncRunner":
        if not self._started:
            self._thread.start()
            self._started = True
        return self

    def submit(self, coro: Coroutine[Any, Any, Any]) -> "Future[Any]":
        if not self._started:
            coro.close()
            raise RuntimeError("AsyncRunner.start() must be called before submitting work")
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if not self._started:
            self.loop.close()
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():  # pragma: no cover - stuck coroutine
            LOGGER.warning("Event loop thread did not stop within %s seconds", timeout)
            return
        self.loop.close()
        self._started = False


__all__ = ["AsyncRunner"]
