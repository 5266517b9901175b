# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fakes for the radio link and the sink.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pytest

from meshbridge.processing.models import (
    DeviceMetrics,
    Frame,
    NodeIdentity,
    NodePosition,
    NodeStatus,
    Reading,
)


@dataclass
class Pause:
    """Delay inserted between scripted frames."""

    seconds: float


class FakeFrameSource:
    """
    Scripted frame source.

    Yields the scripted frames (honouring pauses), then either reports
    end of stream or waits forever like an idle radio.
    """

    def __init__(self, script=(), end_of_stream: bool = False, error: Optional[Exception] = None):
        self._script = deque(script)
        self.end_of_stream = end_of_stream
        self.error = error
        self.calls = 0

    async def next_frame(self) -> Optional[Frame]:
        self.calls += 1
        while self._script:
            item = self._script.popleft()
            if isinstance(item, Pause):
                await asyncio.sleep(item.seconds)
                continue
            return item

        if self.error is not None:
            raise self.error

        if self.end_of_stream:
            return None

        await asyncio.Event().wait()


class FakeControl:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.disconnects = 0

    async def disconnect(self) -> None:
        self.disconnects += 1
        if self.error is not None:
            raise self.error


class FakeSink:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.batches: List[List[Reading]] = []

    def write_batch(self, readings: Sequence[Reading]) -> None:
        if self.error is not None:
            raise self.error
        self.batches.append(list(readings))


def node_status_frame(
    last_heard: Optional[int] = 1700000000,
    node_id: Optional[str] = "!abc123",
    long_name: str = "Node A",
    short_name: str = "NA",
    metrics: Optional[DeviceMetrics] = None,
    position: Optional[NodePosition] = None,
    snr: float = 6.25,
    hops_away: int = 0,
    via_mqtt: bool = False,
) -> Frame:
    identity = None
    if node_id is not None:
        identity = NodeIdentity(node_id=node_id, long_name=long_name, short_name=short_name)

    return Frame(
        payload=NodeStatus(
            last_heard=last_heard,
            identity=identity,
            metrics=metrics,
            position=position,
            snr=snr,
            hops_away=hops_away,
            via_mqtt=via_mqtt,
        )
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MESHBRIDGE_* variables from the developer's shell out of tests."""
    for key in (
        "MESHBRIDGE_INFLUX_URL",
        "MESHBRIDGE_INFLUX_DATABASE",
        "MESHBRIDGE_MEASUREMENT",
        "MESHBRIDGE_LINK_ADDRESS",
        "MESHBRIDGE_IDLE_TIMEOUT",
        "MESHBRIDGE_LOG_LEVEL",
        "MESHBRIDGE_CONFIG",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def fake_control():
    return FakeControl()
