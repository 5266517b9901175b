# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Link contracts consumed by the ingestion loop.
"""

from typing import Optional, Protocol

from ..processing.models import Frame


class FrameSource(Protocol):
    """Suspend-until-available source of decoded frames."""

    async def next_frame(self) -> Optional[Frame]:
        """Return the next frame, or None once the link has closed."""


class LinkControl(Protocol):
    """Control handle for an open link."""

    async def disconnect(self) -> None:
        """Close the link. May raise; callers treat failures as best-effort."""
