"""
Gabby - LAN peer discovery and chat.

Hosts announce themselves over UDP broadcast, keep a directory of the peers
they hear, and exchange text messages over TCP.
"""

from .errors import (
    BindFailed, GabbyError, MalformedPayload, NoRouteAvailable, SendFailed,
    UnknownPeer,
)
from .discovery import PeerDirectory, PeerRecord
from .config import Config, load_config
from .node import GabbyNode

__version__ = "0.1.0"

__all__ = [
    'GabbyError',
    'MalformedPayload',
    'NoRouteAvailable',
    'BindFailed',
    'SendFailed',
    'UnknownPeer',
    'PeerDirectory',
    'PeerRecord',
    'Config',
    'load_config',
    'GabbyNode',
]
