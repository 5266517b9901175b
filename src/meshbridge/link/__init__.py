# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Radio link adapters.
"""

from .base import FrameSource, LinkControl
from .meshtastic_link import connect, decode_from_radio, parse_endpoint

__all__ = ["FrameSource", "LinkControl", "connect", "decode_from_radio", "parse_endpoint"]
