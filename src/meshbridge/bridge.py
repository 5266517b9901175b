# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Bridge orchestration.

Wires the radio link, the ingestion loop and the sink together for one
ingestion cycle, and turns SIGINT/SIGTERM into a stop request so the
collected batch is still flushed on shutdown.
"""

import asyncio
import logging
import signal
from typing import Awaitable, Callable, Optional, Tuple

from .config import Config
from .exceptions import ConfigError
from .link import meshtastic_link
from .link.base import FrameSource, LinkControl
from .processing.ingestion import CycleReport, IngestionLoop, LoopState
from .sink.base import ReadingSink
from .sink.influx import InfluxSink

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Tuple[FrameSource, LinkControl]]]

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TelemetryBridge:
    """
    Runs one collect-then-commit cycle.

    Manages:
    - Configuration validation
    - Sink creation (InfluxDB unless a sink is supplied)
    - Radio link connection
    - Signal-driven stop requests
    """

    def __init__(
        self,
        config: Config,
        sink: Optional[ReadingSink] = None,
        connector: Optional[Connector] = None,
    ):
        """
        Initialize bridge.

        Args:
            config: Configuration instance
            sink: Sink to flush to (creates an InfluxSink if not provided)
            connector: Coroutine opening the radio link (Meshtastic TCP by default)
        """
        self.config = config
        self.sink = sink
        self._owns_sink = sink is None
        self.connector = connector or meshtastic_link.connect
        self.ingestion: Optional[IngestionLoop] = None
        self._signals_installed = False

    def _initialize_sink(self) -> None:
        if self.sink is not None:
            return

        self.sink = InfluxSink.connect(
            self.config.influx_url,
            self.config.influx_database,
            measurement=self.config.measurement,
        )

    def _close_sink(self) -> None:
        if self._owns_sink and isinstance(self.sink, InfluxSink):
            self.sink.close()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            for sig in STOP_SIGNALS:
                loop.add_signal_handler(sig, self.stop)
            self._signals_installed = True
        except (NotImplementedError, RuntimeError) as e:
            # Not available on this platform or outside the main thread
            logger.debug(f"Signal handlers not installed: {e}")

    def _remove_signal_handlers(self) -> None:
        if not self._signals_installed:
            return

        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)
        self._signals_installed = False

    def stop(self) -> None:
        """Stop listening; the cycle still flushes what it collected."""
        if self.ingestion is None:
            return

        if self.ingestion.state == LoopState.DONE:
            logger.warning("Received shutdown signal while flushing; waiting for the write to finish")
            return

        logger.info("Received shutdown signal")
        self.ingestion.request_stop()

    async def run_cycle(self) -> CycleReport:
        """
        Connect, collect until idle, disconnect and flush.

        Returns:
            CycleReport for the cycle

        Raises:
            ConfigError: if the configuration is invalid
            LinkConnectError: if the radio cannot be reached
        """
        errors = self.config.validate()
        if errors:
            raise ConfigError(errors)

        self._initialize_sink()

        try:
            frame_source, control = await self.connector(self.config.link_address)

            self.ingestion = IngestionLoop(
                frame_source,
                control,
                self.sink,
                idle_timeout=float(self.config.idle_timeout),
            )

            self._install_signal_handlers()
            try:
                report = await self.ingestion.run()
            finally:
                self._remove_signal_handlers()
        finally:
            self._close_sink()

        if report.ok:
            logger.info(f"Cycle finished in {report.duration:.1f}s: {report.committed} readings committed")
        else:
            logger.error(f"Cycle failed: {report.error}")

        return report


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
