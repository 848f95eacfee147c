"""
Gabby Node - Main Controller

Orchestrates the components of one chat participant:
- Message server for incoming chat messages (TCP)
- Discovery listener filling the peer directory (UDP)
- Announcer broadcasting our presence (UDP)

The node owns the PeerDirectory and hands it to the components that need it.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from .config import Config
from .discovery import (
    Announcer, Listener, PeerDirectory, PeerJoinedCallback, PeerRecord,
    resolve_local_ipv4,
)
from .errors import UnknownPeer
from .messaging import MessageServer, send_message

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = "Unknown"

# (sender display name, message text)
MessageCallback = Callable[[str, str], None]


class GabbyNode:
    """
    A complete chat node.

    Lifecycle: start() acquires every socket and fails fast with
    NoRouteAvailable or BindFailed; stop() releases them again.
    """

    def __init__(self, config: Config = None):
        """
        Initialize a node.

        Args:
            config: Node configuration (uses defaults if not provided)
        """
        self.config = config or Config()

        self.directory = PeerDirectory()
        self.listener = Listener(
            self.directory,
            port=self.config.discovery_port,
            buffer_size=self.config.buffer_size,
        )

        # Created on start, once our address is known
        self.server: Optional[MessageServer] = None
        self.announcer: Optional[Announcer] = None
        self.local_ip: Optional[str] = None

        self._message_callbacks: List[MessageCallback] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def messaging_port(self) -> Optional[int]:
        """TCP port peers should send messages to."""
        return self.server.bound_port if self.server else None

    def on_message(self, callback: MessageCallback):
        """Register a callback for incoming chat messages."""
        self._message_callbacks.append(callback)

    def on_peer_joined(self, callback: PeerJoinedCallback):
        """Register a callback for newly discovered peers."""
        self.listener.on_peer_joined(callback)

    async def start(self):
        """
        Start the node.

        Raises:
            NoRouteAvailable: if our outward-facing address cannot be resolved
            BindFailed: if the message or discovery socket cannot be bound
        """
        if self._running:
            return

        self.local_ip = resolve_local_ipv4(
            (self.config.route_host, self.config.route_port)
        )
        logger.info(f"Starting gabby node '{self.display_name}' on {self.local_ip}")

        self.server = MessageServer(
            self._handle_message,
            host=self.local_ip,
            port=self.config.port
        )
        await self.server.start()

        try:
            await self.listener.start()

            self.announcer = Announcer(
                display_name=self.display_name,
                messaging_port=self.messaging_port,
                discovery_port=self.config.discovery_port,
                interval=self.config.announce_interval,
            )
            await self.announcer.start()
        except BaseException:
            await self._release()
            raise

        self._running = True
        logger.info(f"Node started, messages on {self.local_ip}:{self.messaging_port}")

    async def stop(self):
        """Stop the node."""
        if not self._running:
            return

        self._running = False
        await self._release()

        logger.info("Node stopped")

    async def _release(self):
        """Stop whichever components have been started."""
        if self.announcer:
            await self.announcer.stop()
        await self.listener.stop()
        if self.server:
            await self.server.stop()

    def peers(self) -> Dict[str, PeerRecord]:
        """Get all known peers."""
        return self.directory.snapshot()

    def resolve_peer(self, name: str) -> PeerRecord:
        """
        Get the record for a display name.

        Raises:
            UnknownPeer: if nobody has announced that name
        """
        record = self.directory.lookup(name)
        if record is None:
            raise UnknownPeer(name)
        return record

    async def send(self, name: str, text: str) -> PeerRecord:
        """
        Send a message to a peer by display name.

        Raises:
            UnknownPeer: if the name is not in the directory
            SendFailed: if the peer cannot be reached
        """
        record = self.resolve_peer(name)
        await self.send_to(record, text)
        return record

    async def send_to(self, record: PeerRecord, text: str):
        """Send a message to a known peer record."""
        await send_message(record.address, record.port, text)

    def name_for_address(self, address: str) -> str:
        """Display name announced from an address, or 'Unknown'."""
        record = self.directory.find_by_address(address)
        return record.display_name if record else UNKNOWN_SENDER

    def _handle_message(self, sender_ip: str, text: str):
        sender = self.name_for_address(sender_ip)
        logger.debug(f"Message from {sender} ({sender_ip}): {text!r}")

        for callback in self._message_callbacks:
            try:
                callback(sender, text)
            except Exception as e:
                logger.error(f"Message callback error: {e}")

    async def wait_for_peers(self, timeout: float) -> Dict[str, PeerRecord]:
        """Listen for announcements for a while and return what was found."""
        logger.info(f"Discovering peers for {timeout}s...")
        await asyncio.sleep(timeout)
        peers = self.peers()
        logger.info(f"Discovered {len(peers)} peers")
        return peers
