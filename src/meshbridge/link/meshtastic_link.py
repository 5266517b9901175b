# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Meshtastic TCP link.

The meshtastic library owns the socket, the config handshake and a
background reader thread. Every FromRadio frame it reads is decoded into
a ``Frame`` and handed to the asyncio side through a queue.
"""

import asyncio
import logging
from typing import Optional, Tuple

from google.protobuf.message import DecodeError
from meshtastic.mesh_interface import MeshInterface
from meshtastic.protobuf import mesh_pb2
from meshtastic.tcp_interface import TCPInterface

from ..exceptions import LinkConnectError
from ..processing.models import (
    DeviceMetrics,
    Frame,
    NodeIdentity,
    NodePosition,
    NodeStatus,
    OtherPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 4403
NODE_INFO_VARIANT = "node_info"


def parse_endpoint(endpoint: str) -> Tuple[str, int]:
    """
    Split a ``host[:port]`` endpoint.

    Raises:
        ValueError: if the host is empty or the port is not a valid number
    """
    if not isinstance(endpoint, str):
        raise ValueError(f"endpoint must be a string, got {endpoint!r}")

    host, sep, port = endpoint.strip().rpartition(":")
    if not sep:
        host, port = port, str(DEFAULT_PORT)

    if not host:
        raise ValueError(f"missing host in endpoint {endpoint!r}")

    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in endpoint {endpoint!r}") from None

    if not 0 < port_number < 65536:
        raise ValueError(f"port out of range in endpoint {endpoint!r}")

    return host, port_number


def decode_node_info(node_info: mesh_pb2.NodeInfo) -> NodeStatus:
    """Map a NodeInfo protobuf onto NodeStatus, keeping absent sub-messages as None."""
    identity = None
    if node_info.HasField("user"):
        user = node_info.user
        identity = NodeIdentity(
            node_id=user.id,
            long_name=user.long_name,
            short_name=user.short_name,
        )

    metrics = None
    if node_info.HasField("device_metrics"):
        dm = node_info.device_metrics
        metrics = DeviceMetrics(
            battery_level=dm.battery_level,
            voltage=dm.voltage,
            channel_utilization=dm.channel_utilization,
            air_util_tx=dm.air_util_tx,
        )

    position = None
    if node_info.HasField("position"):
        pos = node_info.position
        position = NodePosition(
            latitude=pos.latitude_i,
            longitude=pos.longitude_i,
            altitude=pos.altitude,
        )

    return NodeStatus(
        last_heard=node_info.last_heard,
        identity=identity,
        metrics=metrics,
        position=position,
        snr=node_info.snr,
        hops_away=node_info.hops_away,
        via_mqtt=node_info.via_mqtt,
    )


def decode_from_radio(from_radio: mesh_pb2.FromRadio) -> Frame:
    """Map a FromRadio protobuf onto a Frame."""
    variant = from_radio.WhichOneof("payload_variant")

    if variant is None:
        return Frame()

    if variant == NODE_INFO_VARIANT:
        return Frame(payload=decode_node_info(from_radio.node_info))

    return Frame(payload=OtherPayload(kind=variant))


class MeshtasticFrameSource:
    """
    Queue bridging the meshtastic reader thread and the ingestion task.

    ``push`` and ``close`` are safe to call from any thread. Once the end
    of stream has been delivered, ``next_frame`` keeps returning None.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._exhausted = False

    def push(self, frame: Optional[Frame]) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, frame)
        except RuntimeError:
            # Event loop already closed, the cycle is over
            logger.debug("Discarding frame received after shutdown")

    def close(self) -> None:
        self.push(None)

    async def next_frame(self) -> Optional[Frame]:
        if self._exhausted:
            return None

        frame = await self._queue.get()
        if frame is None:
            self._exhausted = True
        return frame


class RadioInterface(TCPInterface):
    """TCPInterface that forwards every decoded FromRadio frame to a frame source."""

    def __init__(self, hostname: str, port: int, source: MeshtasticFrameSource):
        # Frames arrive during the config handshake inside TCPInterface.__init__
        self._frame_source = source
        super().__init__(hostname=hostname, portNumber=port)

    # _handleFromRadio and _disconnected are MeshInterface hooks, checked against
    # meshtastic 2.3 through 2.x; the dependency is pinned below 3.
    def _handleFromRadio(self, fromRadioBytes):
        super()._handleFromRadio(fromRadioBytes)

        from_radio = mesh_pb2.FromRadio()
        try:
            from_radio.ParseFromString(fromRadioBytes)
        except DecodeError as e:
            logger.warning(f"Discarding undecodable FromRadio frame: {e}")
            return

        self._frame_source.push(decode_from_radio(from_radio))

    def _disconnected(self):
        super()._disconnected()
        self._frame_source.close()


class MeshtasticControl:
    """Disconnect handle for an open RadioInterface."""

    def __init__(self, interface: TCPInterface):
        self.interface = interface

    async def disconnect(self) -> None:
        logger.info("Disconnecting from radio")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.interface.close)


async def connect(endpoint: str) -> Tuple[MeshtasticFrameSource, MeshtasticControl]:
    """
    Open a TCP link to a Meshtastic radio.

    Blocks (in a worker thread) until the radio has finished sending its
    configuration; node database frames received meanwhile are queued.

    Args:
        endpoint: ``host[:port]`` of the radio

    Returns:
        Frame source and control handle

    Raises:
        LinkConnectError: if the endpoint is invalid or unreachable
    """
    try:
        host, port = parse_endpoint(endpoint)
    except ValueError as e:
        raise LinkConnectError(endpoint, str(e)) from e

    loop = asyncio.get_running_loop()
    source = MeshtasticFrameSource(loop)

    logger.info(f"Connecting to radio at {host}:{port}")
    try:
        interface = await loop.run_in_executor(
            None, lambda: RadioInterface(host, port, source)
        )
    except (OSError, MeshInterface.MeshInterfaceError) as e:
        raise LinkConnectError(endpoint, str(e)) from e

    logger.info("Radio link established")
    return source, MeshtasticControl(interface)
