# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Sink contract used by the flusher.
"""

from typing import Protocol, Sequence, runtime_checkable

from ..processing.models import Reading


@runtime_checkable
class ReadingSink(Protocol):
    """Anything that can commit a batch of readings in one call."""

    def write_batch(self, readings: Sequence[Reading]) -> None:
        """Write all readings or raise; partial commits are not allowed."""
