"""Cancellable confirmation countdown shown on the summary view."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

OnConfirm = Callable[[], Awaitable[object] | object]


class ConfirmCountdown:
    """Counts down from ``seconds`` and then fires ``on_confirm`` once.

    Cancelling stops the countdown only; once ``on_confirm`` has started it
    runs to completion.
    """

    def __init__(self, seconds: int = 15, tick: float = 1.0) -> None:
        self._seconds = seconds
        self._tick = tick
        self._remaining = seconds
        self._task: asyncio.Task[None] | None = None
        self._firing: asyncio.Task[None] | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_confirm: OnConfirm) -> None:
        """Start (or restart) the countdown. Needs a running event loop."""
        self.cancel()
        self._remaining = self._seconds
        self._task = asyncio.get_running_loop().create_task(self._run(on_confirm))

    def cancel(self) -> bool:
        if not self.running:
            return False
        assert self._task is not None
        self._task.cancel()
        self._task = None
        self._remaining = self._seconds
        logger.debug("Countdown cancelled")
        return True

    async def wait(self) -> None:
        """Wait until the countdown and any confirmation it fired have finished."""
        task = self._task or self._firing
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def _run(self, on_confirm: OnConfirm) -> None:
        while self._remaining > 0:
            await asyncio.sleep(self._tick)
            self._remaining -= 1

        # Detach before firing so a later cancel() cannot interrupt the submission.
        self._firing, self._task = self._task, None
        logger.debug("Countdown elapsed, confirming")
        try:
            result = on_confirm()
            if inspect.isawaitable(result):
                await result
        finally:
            self._firing = None
