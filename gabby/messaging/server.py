"""
Message Server

TCP server receiving chat messages from peers.
"""

import asyncio
import logging
from typing import Callable, Optional

from .protocol import FrameError, read_frame
from ..errors import BindFailed

logger = logging.getLogger(__name__)

# (sender ip, message text)
MessageHandler = Callable[[str, str], None]


class MessageServer:
    """
    Receives length-prefixed chat messages.

    Every complete message is passed to the handler together with the
    sender's IP address.
    """

    def __init__(self, on_message: MessageHandler,
                 host: str = '0.0.0.0', port: int = 8080):
        self.on_message = on_message
        self.host = host
        self.port = port
        self.server: Optional[asyncio.AbstractServer] = None

        self.messages_received = 0

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, or None when not started."""
        if not self.server or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def start(self):
        """
        Start accepting connections.

        Raises:
            BindFailed: if the address cannot be bound
        """
        try:
            self.server = await asyncio.start_server(
                self._handle_connection,
                self.host,
                self.port
            )
        except (OSError, OverflowError) as e:
            raise BindFailed(self.host, self.port, e) from e

        logger.info(f"Listening for messages on {self.host}:{self.bound_port}")

    async def stop(self):
        """Stop the server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            logger.debug("Message server stopped")

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        """Deliver every frame sent on one connection."""
        peer = writer.get_extra_info('peername')
        sender_ip = peer[0] if peer else 'unknown'
        logger.debug(f"New message connection from {sender_ip}")

        try:
            while True:
                text = await read_frame(reader)
                if text is None:
                    break

                self.messages_received += 1
                try:
                    self.on_message(sender_ip, text)
                except Exception as e:
                    logger.error(f"Message handler error: {e}")

        except FrameError as e:
            logger.warning(f"Dropping connection from {sender_ip}: {e}")
        except OSError as e:
            logger.error(f"Error reading from {sender_ip}: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
