"""
Chat Message Protocol

Design Decision: Message Framing
================================

Options Considered:
1. Read into a fixed 1024-byte buffer
   - Simplest
   - Long messages are cut off or need guesswork to reassemble

2. Newline-delimited text
   - Easy to debug
   - Messages cannot contain newlines

3. Length-prefixed frames
   - Exact message boundaries, any content
   - A few bytes of overhead

Decision: Length-prefixed frames
```
+----------------+--------------------+
| Length (4B BE) | UTF-8 message text |
+----------------+--------------------+
```
One connection may carry several frames; the receiver reads until EOF.
"""

import asyncio
import logging
import struct
from typing import Optional

from ..errors import SendFailed

logger = logging.getLogger(__name__)

HEADER = struct.Struct('>I')

# Sanity limit for a single chat message
MAX_MESSAGE_SIZE = 1024 * 1024

# Seconds to wait for a peer to accept a connection
CONNECT_TIMEOUT = 5.0


class FrameError(ValueError):
    """Raised when a received frame is invalid."""


def encode_frame(text: str) -> bytes:
    """Serialize a message into a length-prefixed frame."""
    body = text.encode('utf-8')
    if len(body) > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message too large: {len(body)} bytes")
    return HEADER.pack(len(body)) + body


async def read_frame(reader: asyncio.StreamReader) -> Optional[str]:
    """
    Read one frame from a stream.

    Returns:
        The message text, or None on a clean EOF between frames

    Raises:
        FrameError: on oversized, truncated or non-UTF-8 frames
    """
    try:
        header = await reader.readexactly(HEADER.size)
    except asyncio.IncompleteReadError as e:
        if e.partial:
            raise FrameError("Connection closed inside frame header")
        return None

    (length,) = HEADER.unpack(header)
    if length > MAX_MESSAGE_SIZE:
        raise FrameError(f"Message too large: {length} bytes")

    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise FrameError(f"Connection closed after {len(e.partial)} of {length} bytes")

    try:
        return body.decode('utf-8')
    except UnicodeDecodeError as e:
        raise FrameError(f"Message is not valid UTF-8: {e}")


async def send_message(host: str, port: int, text: str,
                       timeout: float = CONNECT_TIMEOUT):
    """
    Deliver one message to a peer's message server.

    Raises:
        SendFailed: if the peer cannot be reached
    """
    frame = encode_frame(text)

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout
        )
    except (OSError, asyncio.TimeoutError) as e:
        raise SendFailed(f"Cannot connect to {host}:{port}: {e}") from e

    try:
        writer.write(frame)
        await writer.drain()
    except OSError as e:
        raise SendFailed(f"Sending to {host}:{port} failed: {e}") from e
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    logger.debug(f"Message {text!r} has been sent to {host}:{port}")
