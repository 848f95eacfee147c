"""
Presence Announcer

Broadcasts `<port>;<name>` to the discovery port at a fixed interval.
Announcements are fire-and-forget: a failed send is logged and the next tick
tries again.
"""

import asyncio
import logging
import socket
from typing import Optional

from .codec import DISCOVERY_PORT, encode
from .resolver import broadcast_address
from ..errors import SendFailed

logger = logging.getLogger(__name__)

# Seconds between announcements
ANNOUNCE_INTERVAL = 5.0


class Announcer:
    """
    Periodically announces this host to the local broadcast domain.

    Never touches the peer directory.
    """

    def __init__(self, display_name: str, messaging_port: int,
                 discovery_port: int = DISCOVERY_PORT,
                 interval: float = ANNOUNCE_INTERVAL,
                 sock: Optional[socket.socket] = None):
        """
        Initialize the announcer.

        Args:
            display_name: Name other peers will know us by
            messaging_port: TCP port our message server listens on
            discovery_port: UDP port peers listen for announcements on
            interval: Seconds between announcements
            sock: Pre-built UDP socket (created on start if not given). A
                socket passed in stays open on stop(); closing it is the
                caller's job.
        """
        self.display_name = display_name
        self.messaging_port = messaging_port
        self.discovery_port = discovery_port
        self.interval = interval

        self._socket = sock
        self._owns_socket = sock is None
        self._running = False
        self._task: Optional[asyncio.Task] = None

        # Consecutive failed announcements
        self._failures = 0
        self.announcements_sent = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the announce loop."""
        if self._running:
            return

        if self._socket is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                sock.setblocking(False)
            except OSError:
                sock.close()
                raise
            self._socket = sock
            self._owns_socket = True

        self._running = True
        self._task = asyncio.create_task(self._announce_loop())
        logger.info(f"Announcing '{self.display_name}' every {self.interval}s "
                    f"on UDP port {self.discovery_port}")

    async def stop(self):
        """Stop announcing and close the socket if we created it."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._socket and self._owns_socket:
            self._socket.close()
            self._socket = None

    def announce(self):
        """
        Send a single announcement.

        Raises:
            SendFailed: if the datagram could not be sent
        """
        if self._socket is None:
            raise SendFailed("Announcer socket is not open")

        data = encode(self.messaging_port, self.display_name)
        target = (broadcast_address(), self.discovery_port)

        try:
            self._socket.sendto(data, target)
        except OSError as e:
            raise SendFailed(f"Broadcast to {target[0]}:{target[1]} failed: {e}") from e

        self.announcements_sent += 1
        logger.debug(f"Sent announcement {data!r} to {target[0]}:{target[1]}")

    async def _announce_loop(self):
        """Announce until stopped."""
        while self._running:
            try:
                self.announce()
            except SendFailed as e:
                self._record_failure(e)
            else:
                self._record_success()

            await asyncio.sleep(self.interval)

    def _record_failure(self, error: SendFailed):
        self._failures += 1
        # Only the first failure of a run is worth a warning
        if self._failures == 1:
            logger.warning(f"{error}; retrying every {self.interval}s")
        else:
            logger.debug(f"Announcement failed ({self._failures} in a row): {error}")

    def _record_success(self):
        if self._failures:
            logger.info(f"Announcements resumed after {self._failures} failures")
        self._failures = 0
