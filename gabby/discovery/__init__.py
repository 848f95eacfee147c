"""
Discovery Module - Peer Discovery on LAN

Hosts announce `<port>;<name>` over UDP broadcast and record each other in a
PeerDirectory.
"""

from .codec import (
    BUFFER_SIZE, DELIMITER, DISCOVERY_PORT, MAX_PORT, DiscoveryPayload, decode,
    encode,
)
from .resolver import broadcast_address, resolve_local_ipv4
from .directory import PeerDirectory, PeerRecord
from .announcer import ANNOUNCE_INTERVAL, Announcer
from .listener import Listener, PeerJoinedCallback

__all__ = [
    'BUFFER_SIZE',
    'DELIMITER',
    'DISCOVERY_PORT',
    'MAX_PORT',
    'ANNOUNCE_INTERVAL',
    'DiscoveryPayload',
    'encode',
    'decode',
    'broadcast_address',
    'resolve_local_ipv4',
    'PeerDirectory',
    'PeerRecord',
    'Announcer',
    'Listener',
    'PeerJoinedCallback',
]
