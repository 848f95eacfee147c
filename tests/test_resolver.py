"""
Tests for address resolution
"""

from unittest.mock import MagicMock, patch

import pytest

from gabby.discovery import broadcast_address, resolve_local_ipv4
from gabby.errors import NoRouteAvailable


def _fake_socket(local_ip="192.168.1.20", connect_error=None):
    sock = MagicMock()
    sock.__enter__.return_value = sock
    sock.getsockname.return_value = (local_ip, 54321)
    if connect_error:
        sock.connect.side_effect = connect_error
    return sock


class TestResolveLocalIPv4:

    def test_reads_local_endpoint(self):
        sock = _fake_socket()
        with patch("gabby.discovery.resolver.socket.socket", return_value=sock):
            assert resolve_local_ipv4(("8.8.8.8", 80)) == "192.168.1.20"

        sock.connect.assert_called_once_with(("8.8.8.8", 80))
        sock.__exit__.assert_called_once()

    def test_offline_host_raises(self):
        """Network unreachable becomes NoRouteAvailable"""
        sock = _fake_socket(connect_error=OSError(101, "Network is unreachable"))
        with patch("gabby.discovery.resolver.socket.socket", return_value=sock):
            with pytest.raises(NoRouteAvailable):
                resolve_local_ipv4()

        sock.__exit__.assert_called_once()


def test_broadcast_address_is_limited_broadcast():
    assert broadcast_address() == "255.255.255.255"
