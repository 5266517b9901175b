# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
In-memory buffer holding the readings of one ingestion cycle.
"""

import threading
from collections import deque
from typing import Deque, List

from .models import Reading


class ReadingBuffer:
    """
    Ordered, append-only collection of readings.

    Readings keep arrival order; nothing is sorted or deduplicated.
    Operations are guarded by a lock so the buffer can be handed between
    threads, although the ingestion loop only ever touches it from one task.
    """

    def __init__(self):
        self._readings: Deque[Reading] = deque()
        self._lock = threading.Lock()

    def append(self, reading: Reading) -> None:
        """Add a reading to the end of the buffer."""
        with self._lock:
            self._readings.append(reading)

    def drain(self) -> List[Reading]:
        """
        Return all buffered readings and empty the buffer.

        Returns:
            Readings in arrival order (empty list if nothing was buffered)
        """
        with self._lock:
            readings = list(self._readings)
            self._readings.clear()
            return readings

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def is_empty(self) -> bool:
        return len(self) == 0
