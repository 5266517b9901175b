# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Sinks that commit batches of readings.
"""

from .base import ReadingSink
from .console import ConsoleSink
from .influx import InfluxSink, reading_to_point

__all__ = ["ReadingSink", "ConsoleSink", "InfluxSink", "reading_to_point"]
