# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Data types flowing through the ingestion pipeline.

Frames arrive from the radio link with a tagged payload. Only the
node-status variant carries telemetry; every other variant is modelled
as ``OtherPayload`` so that the extractor can match the payload
exhaustively and route anything it does not handle to the drop path.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

UNKNOWN = "unknown"


@dataclass(frozen=True)
class NodeIdentity:
    """User sub-structure of a node-status payload."""

    node_id: str
    long_name: str
    short_name: str


@dataclass(frozen=True)
class DeviceMetrics:
    """Device metrics sub-structure of a node-status payload."""

    battery_level: int = 0
    voltage: float = 0.0
    channel_utilization: float = 0.0
    air_util_tx: float = 0.0


@dataclass(frozen=True)
class NodePosition:
    """Position sub-structure. Coordinates are degrees scaled by 1e7."""

    latitude: int = 0
    longitude: int = 0
    altitude: int = 0


# Substituted for absent sub-structures
UNKNOWN_IDENTITY = NodeIdentity(node_id=UNKNOWN, long_name=UNKNOWN, short_name=UNKNOWN)
EMPTY_METRICS = DeviceMetrics()
NO_POSITION = NodePosition()


@dataclass(frozen=True)
class NodeStatus:
    """
    Node-status payload variant.

    ``last_heard`` is epoch seconds; ``0`` means the radio has not heard
    the node yet, ``None`` means the frame carries no timestamp at all.
    """

    last_heard: Optional[int]
    identity: Optional[NodeIdentity] = None
    metrics: Optional[DeviceMetrics] = None
    position: Optional[NodePosition] = None
    snr: float = 0.0
    hops_away: int = 0
    via_mqtt: bool = False


@dataclass(frozen=True)
class OtherPayload:
    """Any payload variant the pipeline does not handle."""

    kind: str


Payload = Union[NodeStatus, OtherPayload]


@dataclass(frozen=True)
class Frame:
    """One decoded unit received from the radio link."""

    payload: Optional[Payload] = None


@dataclass(frozen=True)
class Reading:
    """Normalized telemetry record for one node-status frame."""

    timestamp: datetime
    node_id: str
    long_name: str
    short_name: str
    snr: float
    battery_level: int
    voltage: float
    channel_utilization: float
    air_util_tx: float
    latitude: int
    longitude: int
    altitude: int
    via_mqtt: bool
    hops_away: int
