"""
Discovery Payload Codec

Wire format:
```
<messaging port>;<display name>
```

The sender's address is deliberately absent: receivers take it from the
datagram's source address, so a peer cannot advertise an address other than
the one it actually sends from.

Display names must not contain the delimiter. The codec does not check this
on encode; the CLI rejects such names before they reach it.
"""

from dataclasses import dataclass

from ..errors import MalformedPayload

DELIMITER = ";"
MAX_PORT = 65535

# Discovery port shared by every gabby instance on the LAN
DISCOVERY_PORT = 8888

# Receive buffer; longer datagrams are truncated by the OS
BUFFER_SIZE = 1024


@dataclass(frozen=True)
class DiscoveryPayload:
    """Contents of a single discovery announcement."""
    port: int
    display_name: str


def encode(port: int, display_name: str) -> bytes:
    """Serialize a discovery payload."""
    if not 0 <= port <= MAX_PORT:
        raise ValueError(f"Port out of range: {port}")
    return f"{port}{DELIMITER}{display_name}".encode('utf-8')


def decode(data: bytes) -> DiscoveryPayload:
    """
    Parse a discovery payload.

    Raises:
        MalformedPayload: if the payload is not UTF-8, does not have exactly
            two fields, or the port is not a base-10 integer in range.
    """
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError:
        raise MalformedPayload(data, "not valid UTF-8")

    fields = text.split(DELIMITER)
    if len(fields) != 2:
        raise MalformedPayload(data, f"expected 2 fields, got {len(fields)}")

    port_field, display_name = fields
    # int() alone would accept signs, whitespace and non-ASCII digits
    if not (port_field.isascii() and port_field.isdigit()):
        raise MalformedPayload(data, f"invalid port {port_field!r}")

    port = int(port_field)
    if port > MAX_PORT:
        raise MalformedPayload(data, f"port out of range: {port}")

    return DiscoveryPayload(port=port, display_name=display_name)
