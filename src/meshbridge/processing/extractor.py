# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Frame to Reading extraction.

Pure functions, no I/O. Absent sub-structures are replaced by their
empty counterparts from ``models`` so every Reading field is always set.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..exceptions import InvalidTimestamp
from .models import (
    EMPTY_METRICS,
    NO_POSITION,
    UNKNOWN_IDENTITY,
    Frame,
    NodeStatus,
    OtherPayload,
    Reading,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# last_heard value the radio reports for nodes it has never heard from
NEVER_HEARD = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(last_heard: int) -> datetime:
    """
    Interpret ``last_heard`` as whole seconds since the epoch.

    Raises:
        InvalidTimestamp: if the value cannot be represented as a datetime
    """
    try:
        return datetime.fromtimestamp(last_heard, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimestamp(last_heard) from e


def extract(frame: Frame, now: Optional[Clock] = None) -> Optional[Reading]:
    """
    Build a Reading from a frame.

    Args:
        frame: Decoded frame from the radio link
        now: Clock used when the frame carries no timestamp

    Returns:
        Reading, or None if the frame is dropped (no payload, a payload
        variant other than node status, or a never-heard node)

    Raises:
        InvalidTimestamp: if last_heard is out of range
    """
    payload = frame.payload

    if payload is None:
        logger.debug("Dropping frame without payload")
        return None

    if isinstance(payload, OtherPayload):
        logger.debug(f"Dropping {payload.kind} frame")
        return None

    if not isinstance(payload, NodeStatus):
        logger.debug(f"Dropping frame with unhandled payload {type(payload).__name__}")
        return None

    if payload.last_heard == NEVER_HEARD:
        logger.debug("Dropping node status with last_heard=0")
        return None

    return _reading_from_status(payload, now or utc_now)


def _reading_from_status(status: NodeStatus, now: Clock) -> Reading:
    if status.last_heard is None:
        timestamp = now()
    else:
        timestamp = to_timestamp(status.last_heard)

    identity = status.identity or UNKNOWN_IDENTITY
    metrics = status.metrics or EMPTY_METRICS
    position = status.position or NO_POSITION

    return Reading(
        timestamp=timestamp,
        node_id=identity.node_id,
        long_name=identity.long_name,
        short_name=identity.short_name,
        snr=status.snr,
        battery_level=metrics.battery_level,
        voltage=metrics.voltage,
        channel_utilization=metrics.channel_utilization,
        air_util_tx=metrics.air_util_tx,
        latitude=position.latitude,
        longitude=position.longitude,
        altitude=position.altitude,
        via_mqtt=status.via_mqtt,
        hops_away=status.hops_away,
    )
