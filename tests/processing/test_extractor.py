# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for frame extraction and defaulting rules.
"""

from datetime import datetime, timezone

import pytest

from meshbridge.exceptions import InvalidTimestamp
from meshbridge.processing.extractor import extract, to_timestamp
from meshbridge.processing.models import (
    DeviceMetrics,
    Frame,
    NodePosition,
    OtherPayload,
)

from conftest import node_status_frame

FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class TestDroppedFrames:
    """Frames that must not produce a reading."""

    def test_frame_without_payload(self):
        """Test that a frame with no payload is dropped."""
        assert extract(Frame()) is None

    @pytest.mark.parametrize("kind", ["packet", "my_info", "config_complete_id", "channel"])
    def test_other_payload_variants(self, kind):
        """Test that non node-status variants are dropped."""
        assert extract(Frame(payload=OtherPayload(kind=kind))) is None

    def test_never_heard_node(self):
        """Test that last_heard=0 is dropped even with full sub-structures."""
        frame = node_status_frame(
            last_heard=0,
            metrics=DeviceMetrics(battery_level=90, voltage=4.0),
            position=NodePosition(latitude=1, longitude=2, altitude=3),
            hops_away=1,
        )
        assert extract(frame) is None

    def test_unrecognised_payload_object(self):
        """Test that an unexpected payload type falls through to the drop path."""
        assert extract(Frame(payload="raw bytes")) is None


class TestDefaulting:
    """Absent sub-structures map to defined defaults."""

    def test_missing_identity(self):
        """Test that node_id, long_name and short_name default to unknown."""
        reading = extract(node_status_frame(node_id=None))

        assert reading.node_id == "unknown"
        assert reading.long_name == "unknown"
        assert reading.short_name == "unknown"

    def test_missing_metrics(self):
        """Test that device metrics default to zero."""
        reading = extract(node_status_frame(metrics=None))

        assert reading.battery_level == 0
        assert reading.voltage == 0.0
        assert reading.channel_utilization == 0.0
        assert reading.air_util_tx == 0.0

    def test_missing_position(self):
        """Test that position defaults to zero."""
        reading = extract(node_status_frame(position=None))

        assert reading.latitude == 0
        assert reading.longitude == 0
        assert reading.altitude == 0

    def test_present_substructures_are_copied(self):
        """Test that present sub-structures are copied verbatim."""
        frame = node_status_frame(
            metrics=DeviceMetrics(battery_level=55, voltage=3.7, channel_utilization=4.5, air_util_tx=0.8),
            position=NodePosition(latitude=515000000, longitude=-1200000, altitude=42),
            snr=-3.5,
            hops_away=3,
            via_mqtt=True,
        )
        reading = extract(frame)

        assert reading.battery_level == 55
        assert reading.voltage == 3.7
        assert reading.channel_utilization == 4.5
        assert reading.air_util_tx == 0.8
        assert reading.latitude == 515000000
        assert reading.longitude == -1200000
        assert reading.altitude == 42
        assert reading.snr == -3.5
        assert reading.hops_away == 3
        assert reading.via_mqtt is True


class TestTimestamp:
    """Timestamp derivation from last_heard."""

    def test_last_heard_seconds(self):
        """Test that last_heard is interpreted as epoch seconds in UTC."""
        reading = extract(node_status_frame(last_heard=1700000000))
        assert reading.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_missing_timestamp_uses_clock(self):
        """Test that a frame without last_heard is stamped with the current time."""
        reading = extract(node_status_frame(last_heard=None), now=lambda: FIXED_NOW)
        assert reading.timestamp == FIXED_NOW

    def test_out_of_range_timestamp(self):
        """Test that an unrepresentable last_heard raises InvalidTimestamp."""
        with pytest.raises(InvalidTimestamp) as exc_info:
            extract(node_status_frame(last_heard=10 ** 20))
        assert exc_info.value.last_heard == 10 ** 20

    def test_to_timestamp_is_timezone_aware(self):
        """Test that converted timestamps carry UTC tzinfo."""
        assert to_timestamp(1).tzinfo == timezone.utc


class TestScenario:
    """Full extraction of a typical node-status frame."""

    def test_identity_metrics_no_position(self):
        """Test extraction of a node with identity and metrics but no position."""
        frame = node_status_frame(
            last_heard=1700000000,
            node_id="!abc123",
            long_name="Node A",
            short_name="NA",
            metrics=DeviceMetrics(battery_level=80, voltage=4.1, channel_utilization=1.2, air_util_tx=0.3),
            hops_away=2,
            via_mqtt=False,
        )
        reading = extract(frame)

        assert reading.node_id == "!abc123"
        assert reading.long_name == "Node A"
        assert reading.short_name == "NA"
        assert reading.battery_level == 80
        assert reading.voltage == 4.1
        assert reading.channel_utilization == 1.2
        assert reading.air_util_tx == 0.3
        assert reading.hops_away == 2
        assert reading.via_mqtt is False
        assert (reading.latitude, reading.longitude, reading.altitude) == (0, 0, 0)
