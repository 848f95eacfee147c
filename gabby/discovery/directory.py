"""
Peer Directory

In-memory map of display name -> PeerRecord, filled by the listener and read
by the messaging path and the peer listing.

Entries are never expired. A newer announcement for the same name replaces
the older one (last writer wins).
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class PeerRecord:
    """A remote host reachable for messaging."""
    address: str
    port: int
    display_name: str

    @property
    def endpoint(self) -> str:
        return f"{self.address}:{self.port}"


class PeerDirectory:
    """
    Thread-safe peer directory.

    The listener writes from the event loop while the chat loop reads from
    a worker thread, so every operation holds a threading lock.
    """

    def __init__(self):
        self._peers: Dict[str, PeerRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, name: str, record: PeerRecord) -> bool:
        """
        Insert or replace the record for a name.

        Returns:
            True if the name was not known before
        """
        with self._lock:
            is_new = name not in self._peers
            self._peers[name] = record
        return is_new

    def lookup(self, name: str) -> Optional[PeerRecord]:
        """Get the record for a name, or None if it is unknown."""
        with self._lock:
            return self._peers.get(name)

    def find_by_address(self, address: str) -> Optional[PeerRecord]:
        """Get the first record announced from an IP address."""
        with self._lock:
            for record in self._peers.values():
                if record.address == address:
                    return record
        return None

    def snapshot(self) -> Dict[str, PeerRecord]:
        """Get a point-in-time copy of all entries."""
        with self._lock:
            return dict(self._peers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._peers
