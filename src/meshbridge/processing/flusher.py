# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Commit a drained buffer to the sink as one batch.
"""

import logging
from typing import Sequence

from ..exceptions import SinkWriteFailed
from ..sink.base import ReadingSink
from .models import Reading

logger = logging.getLogger(__name__)


def flush(sink: ReadingSink, readings: Sequence[Reading]) -> int:
    """
    Write readings to the sink in a single batch.

    The write is all-or-nothing and is not retried.

    Args:
        sink: Sink to write to
        readings: Drained readings

    Returns:
        Number of readings committed (0 without calling the sink if empty)

    Raises:
        SinkWriteFailed: if the sink rejects the batch
    """
    if not readings:
        logger.info("No readings to flush")
        return 0

    try:
        sink.write_batch(readings)
    except Exception as e:
        logger.error(f"Failed to write batch of {len(readings)} readings: {e}")
        raise SinkWriteFailed(len(readings), e) from e

    logger.info(f"Committed {len(readings)} readings")
    return len(readings)
