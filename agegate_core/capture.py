"""Scoped ownership of the capture source (camera or equivalent).

The source is opened when the session is entered and released on every exit
path: error (immediately), explicit ``stop()``, the auto-stop timer scheduled
after a result, or plain session exit when no timer was scheduled.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from .errors import AnalysisCancelled, InputError
from .pipeline.contracts import Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureConfig:
    # Seconds the source stays open after a result before it is released
    auto_stop_delay: float = 4.0

    # Seconds to wait for the first frame
    frame_timeout: float = 5.0


@runtime_checkable
class CaptureSource(Protocol):
    """Camera-like frame source. Any method may return an awaitable."""

    def open(self) -> Any: ...

    def read_frame(self) -> Any: ...

    def close(self) -> Any: ...


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


def _log_close_result(task: asyncio.Future) -> None:
    if task.cancelled():
        logger.warning("Release of capture source was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Error while releasing capture source: %s", exc)
    else:
        logger.info("Capture source released")


class CaptureSession:
    def __init__(self, source: CaptureSource, cfg: CaptureConfig = CaptureConfig()):
        self.source = source
        self.cfg = cfg
        self.stop_event = asyncio.Event()
        self._opened = False
        self._closed = False
        self._auto_stop_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Future] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    async def __aenter__(self) -> "CaptureSession":
        await _maybe_await(self.source.open())
        self._opened = True
        logger.info("Capture source opened")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None or self._auto_stop_task is None:
            self.close()
        return False

    async def read_frame(self) -> Frame:
        if self.stopped:
            raise AnalysisCancelled("Capture stopped before a frame was read")
        try:
            frame = await asyncio.wait_for(_maybe_await(self.source.read_frame()),
                                           timeout=self.cfg.frame_timeout)
        except asyncio.TimeoutError as e:
            raise InputError(f"No frame within {self.cfg.frame_timeout:.1f}s") from e
        if not isinstance(frame, Frame):
            frame = Frame(pixels=frame)
        return frame

    def schedule_auto_stop(self, delay: Optional[float] = None) -> None:
        """Release the source ``delay`` seconds from now unless stopped earlier."""
        if self._closed or self._auto_stop_task is not None:
            return
        delay = self.cfg.auto_stop_delay if delay is None else delay
        self._auto_stop_task = asyncio.ensure_future(self._auto_stop_after(delay))
        logger.debug("Auto-stop scheduled in %.1fs", delay)

    async def _auto_stop_after(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=max(0.0, delay))
        except asyncio.TimeoutError:
            logger.info("Auto-stopping capture source")
        finally:
            # also runs when the loop cancels the task at shutdown
            self.close()

    def stop(self) -> None:
        """Explicit stop: wake pending delays, block new passes, release the source."""
        self.stop_event.set()
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.stop_event.set()
        if not self._opened:
            return
        try:
            result = self.source.close()
        except Exception as e:
            logger.warning("Error while releasing capture source: %s", e)
            return
        if inspect.isawaitable(result):
            self._close_task = asyncio.ensure_future(result)
            self._close_task.add_done_callback(_log_close_result)
        else:
            logger.info("Capture source released")
