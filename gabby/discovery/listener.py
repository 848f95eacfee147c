"""
Discovery Listener

Binds the discovery port on all interfaces and turns every announcement into
a PeerRecord in the directory.

The peer's address is the datagram's source address; the payload only
carries the messaging port and display name.

Known limitations:
- Datagrams longer than the receive buffer are truncated, not rejected.
- Our own announcements are not filtered, so a host may find itself under
  its own display name.
"""

import asyncio
import logging
import socket
from typing import Callable, List, Optional, Tuple

from .codec import BUFFER_SIZE, DISCOVERY_PORT, decode
from .directory import PeerDirectory, PeerRecord
from ..errors import BindFailed, MalformedPayload

logger = logging.getLogger(__name__)

# Called with the record of a display name seen for the first time
PeerJoinedCallback = Callable[[PeerRecord], None]


class Listener:
    """
    Passive discovery listener.

    Idle until start() binds the socket, then Listening until stop().
    """

    def __init__(self, directory: PeerDirectory, port: int = DISCOVERY_PORT,
                 host: str = '0.0.0.0', buffer_size: int = BUFFER_SIZE):
        """
        Initialize the listener.

        Args:
            directory: Directory to record discovered peers in
            port: UDP discovery port (0 picks an ephemeral port)
            host: Address to bind, all interfaces by default
            buffer_size: Maximum bytes read per datagram
        """
        self.directory = directory
        self.port = port
        self.host = host
        self.buffer_size = buffer_size

        self._socket: Optional[socket.socket] = None
        self._callbacks: List[PeerJoinedCallback] = []
        self._running = False
        self._receive_task: Optional[asyncio.Task] = None

        # Statistics
        self.datagrams_received = 0
        self.datagrams_rejected = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, or None while idle."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    def on_peer_joined(self, callback: PeerJoinedCallback):
        """Register a callback for newly discovered display names."""
        self._callbacks.append(callback)

    async def start(self):
        """
        Bind the discovery socket and start receiving.

        Raises:
            BindFailed: if the socket cannot be bound
        """
        if self._running:
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Lets several instances share the port on one host (macOS/Linux)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass

        try:
            sock.bind((self.host, self.port))
        except (OSError, OverflowError) as e:
            sock.close()
            raise BindFailed(self.host, self.port, e) from e

        sock.setblocking(False)
        self._socket = sock
        self._running = True
        self._receive_task = asyncio.create_task(self._receive_loop())

        logger.info(f"Listening for announcements on {self.host}:{self.bound_port}")

    async def stop(self):
        """Stop receiving and close the socket."""
        self._running = False

        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._socket:
            self._socket.close()
            self._socket = None

        logger.debug("Discovery listener stopped")

    async def _receive_loop(self):
        """Receive and process announcements until stopped."""
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                data, addr = await loop.sock_recvfrom(self._socket, self.buffer_size)
            except OSError as e:
                if self._running:
                    logger.error(f"Error receiving announcement: {e}")
                    await asyncio.sleep(1)
                continue

            self.handle_datagram(data, addr)

    def handle_datagram(self, data: bytes,
                        addr: Tuple[str, int]) -> Optional[PeerRecord]:
        """
        Record the sender of one announcement.

        Args:
            data: Raw datagram payload
            addr: (ip, port) the datagram was sent from

        Returns:
            The stored record, or None if the payload was malformed
        """
        self.datagrams_received += 1
        sender_ip = addr[0]

        try:
            payload = decode(data)
        except MalformedPayload as e:
            self.datagrams_rejected += 1
            logger.warning(f"Skipping announcement from {sender_ip}: {e}")
            return None

        record = PeerRecord(
            address=sender_ip,
            port=payload.port,
            display_name=payload.display_name,
        )
        is_new = self.directory.upsert(payload.display_name, record)

        if is_new:
            logger.info(f"Found new host: {record.endpoint} with nickname: "
                        f"{record.display_name}")
            for callback in self._callbacks:
                try:
                    callback(record)
                except Exception as e:
                    logger.error(f"Peer joined callback error: {e}")
        else:
            logger.debug(f"Refreshed {record.display_name} at {record.endpoint}")

        return record
