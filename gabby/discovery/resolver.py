"""
Address Resolution

The outward-facing address is found by "connecting" a UDP socket towards a
well-known external host. No packet is sent; the OS just picks the outbound
interface, whose address we read back from the local endpoint.
"""

import logging
import socket
from typing import Tuple

from ..errors import NoRouteAvailable

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_TARGET = ("8.8.8.8", 80)

# Limited broadcast. Works on single-NIC, single-subnet LANs; this is not a
# subnet-directed broadcast.
LIMITED_BROADCAST = "255.255.255.255"


def resolve_local_ipv4(target: Tuple[str, int] = DEFAULT_ROUTE_TARGET) -> str:
    """
    Get this host's outward-facing IPv4 address.

    Args:
        target: External (host, port) used to select the outbound interface

    Raises:
        NoRouteAvailable: if the host has no route to the target address
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(target)
            local_ip = s.getsockname()[0]
    except OSError as e:
        raise NoRouteAvailable(f"No route to {target[0]}:{target[1]}: {e}") from e

    logger.debug(f"Resolved local address {local_ip}")
    return local_ip


def broadcast_address() -> str:
    """Get the address discovery announcements are sent to."""
    return LIMITED_BROADCAST
