# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingestion loop for one collect-then-commit cycle.

Listens on the radio link until it goes idle, closes or a stop is
requested, then disconnects and flushes everything collected as one batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..exceptions import InvalidTimestamp, SinkWriteFailed
from ..link.base import FrameSource, LinkControl
from ..sink.base import ReadingSink
from .buffer import ReadingBuffer
from .extractor import extract, utc_now
from .flusher import flush
from .models import Frame, Reading

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 3.0

Extractor = Callable[[Frame], Optional[Reading]]


class LoopState(Enum):
    LISTENING = "listening"
    DONE = "done"


class StopReason(Enum):
    IDLE_TIMEOUT = "idle_timeout"
    LINK_CLOSED = "link_closed"
    STOPPED = "stopped"


@dataclass
class CycleReport:
    """Outcome of one ingestion cycle."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    reason: Optional[StopReason] = None
    frames_received: int = 0
    frames_dropped: int = 0
    readings_collected: int = 0
    committed: int = 0
    lost: int = 0
    error: Optional[SinkWriteFailed] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def duration(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class IngestionLoop:
    """
    Two-state (LISTENING -> DONE) loop over a frame source.

    Each iteration waits on a race between the next frame, the idle
    timeout and a stop request. The wait is re-entered after every frame,
    so the timeout measures inactivity since the last frame arrived.
    When a frame and a stop request are ready together, the frame is
    collected before the loop stops.

    Frames with unparseable timestamps are dropped and listening
    continues; one bad radio frame must not end the cycle.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        control: LinkControl,
        sink: ReadingSink,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        extractor: Extractor = extract,
    ):
        """
        Initialize ingestion loop.

        Args:
            frame_source: Source of decoded frames from the radio link
            control: Handle used to disconnect the link when done
            sink: Sink the collected batch is flushed to
            idle_timeout: Seconds without a frame before the cycle ends
            extractor: Frame to Reading extraction function
        """
        if idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive")

        self.frame_source = frame_source
        self.control = control
        self.sink = sink
        self.idle_timeout = idle_timeout
        self.extractor = extractor
        self.buffer = ReadingBuffer()
        self.state = LoopState.LISTENING
        self._started = False
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

    def request_stop(self) -> None:
        """Ask the loop to stop listening and flush what it has."""
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self) -> CycleReport:
        """
        Run the cycle to completion.

        Returns:
            CycleReport; a failed flush is recorded in ``report.error``
        """
        if self._started:
            raise RuntimeError("Ingestion loop can only run once")
        self._started = True

        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._stop_event.set()

        report = CycleReport(started_at=utc_now())
        logger.info(f"Listening for frames (idle timeout {self.idle_timeout}s)")

        report.reason = await self._listen(report)
        self.state = LoopState.DONE
        logger.info(
            f"Stopped listening ({report.reason.value}): "
            f"{report.frames_received} frames, {report.readings_collected} readings"
        )

        await self._disconnect()

        readings = self.buffer.drain()
        loop = asyncio.get_running_loop()
        try:
            # The sink client blocks; keep the event loop free to handle signals
            report.committed = await loop.run_in_executor(None, flush, self.sink, readings)
        except SinkWriteFailed as e:
            report.lost = e.lost
            report.error = e

        report.finished_at = utc_now()
        return report

    async def _listen(self, report: CycleReport) -> StopReason:
        stop_task = asyncio.ensure_future(self._stop_event.wait())
        frame_task: Optional[asyncio.Future] = None

        try:
            while True:
                if frame_task is None:
                    frame_task = asyncio.ensure_future(self.frame_source.next_frame())

                done, _ = await asyncio.wait(
                    {frame_task, stop_task},
                    timeout=self.idle_timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if frame_task in done:
                    completed, frame_task = frame_task, None
                    try:
                        frame = completed.result()
                    except Exception as e:
                        logger.error(f"Frame source failed: {e}")
                        return StopReason.LINK_CLOSED

                    if frame is None:
                        return StopReason.LINK_CLOSED

                    self._handle_frame(frame, report)

                if stop_task in done or self._stop_event.is_set():
                    return StopReason.STOPPED

                if not done:
                    return StopReason.IDLE_TIMEOUT
        finally:
            pending = [t for t in (frame_task, stop_task) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    def _handle_frame(self, frame: Frame, report: CycleReport) -> None:
        report.frames_received += 1

        try:
            reading = self.extractor(frame)
        except InvalidTimestamp as e:
            logger.warning(f"Dropping frame: {e}")
            reading = None

        if reading is None:
            report.frames_dropped += 1
            return

        self.buffer.append(reading)
        report.readings_collected += 1

    async def _disconnect(self) -> None:
        try:
            await self.control.disconnect()
        except Exception as e:
            logger.error(f"Failed to disconnect from radio: {e}")
