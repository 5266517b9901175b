# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Exception hierarchy for the telemetry bridge.
"""

from typing import List, Optional


class MeshBridgeError(Exception):
    """Base class for all bridge errors."""


class InvalidTimestamp(MeshBridgeError):
    """A node-status frame carried a last-heard value that is not a valid instant."""

    def __init__(self, last_heard: int):
        super().__init__(f"last_heard={last_heard} is outside the representable time range")
        self.last_heard = last_heard


class SinkWriteFailed(MeshBridgeError):
    """
    A batch write to the sink failed.

    The batch is not retried or requeued, so ``lost`` readings are gone.
    The underlying error is available as ``cause`` (and ``__cause__``).
    """

    def __init__(self, lost: int, cause: Optional[BaseException] = None):
        super().__init__(f"sink write failed, {lost} readings lost: {cause}")
        self.lost = lost
        self.cause = cause


class LinkConnectError(MeshBridgeError):
    """The radio link endpoint could not be reached."""

    def __init__(self, endpoint: str, reason: str = ""):
        message = f"Failed to connect to radio at {endpoint}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.endpoint = endpoint


class ConfigError(MeshBridgeError):
    """Configuration failed validation."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)
