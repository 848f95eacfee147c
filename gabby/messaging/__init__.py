"""
Messaging Module - Point-to-point chat over TCP
"""

from .protocol import (
    MAX_MESSAGE_SIZE, FrameError, encode_frame, read_frame, send_message,
)
from .server import MessageHandler, MessageServer

__all__ = [
    'MAX_MESSAGE_SIZE',
    'FrameError',
    'encode_frame',
    'read_frame',
    'send_message',
    'MessageHandler',
    'MessageServer',
]
