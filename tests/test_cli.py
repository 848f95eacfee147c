"""
Tests for the chat input handling and CLI entry point
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from gabby import cli as cli_module
from gabby.cli import ChatSession, cli, parse_input, peers_table
from gabby.discovery import PeerRecord
from gabby.errors import NoRouteAvailable, SendFailed, UnknownPeer

JIMMY = PeerRecord("192.168.1.5", 9000, "jimmy")
SALLY = PeerRecord("192.168.1.6", 9100, "sally")


class TestParseInput:

    def test_addressed_message(self):
        parsed = parse_input("jimmy:Hello there friend\n")
        assert parsed.kind == 'message'
        assert parsed.target == "jimmy"
        assert parsed.text == "Hello there friend"

    def test_colons_stay_in_message(self):
        parsed = parse_input("jimmy:meet at 10:30")
        assert parsed.target == "jimmy"
        assert parsed.text == "meet at 10:30"

    def test_plain_message(self):
        parsed = parse_input("  just text  ")
        assert parsed.kind == 'message'
        assert parsed.target is None
        assert parsed.text == "just text"

    def test_command(self):
        parsed = parse_input("!L")
        assert parsed.kind == 'command'
        assert parsed.text == "l"

    def test_empty(self):
        assert parse_input("   \n").kind == 'empty'


def make_node(peers=None):
    peers = peers or {}
    node = MagicMock()
    node.peers.return_value = dict(peers)
    node.send_to = AsyncMock()

    def resolve_peer(name):
        if name not in peers:
            raise UnknownPeer(name)
        return peers[name]

    node.resolve_peer.side_effect = resolve_peer
    return node


class TestChatSession:

    @pytest.mark.asyncio
    async def test_addressed_message_selects_peer(self):
        node = make_node({"jimmy": JIMMY})
        session = ChatSession(node)

        assert await session.handle_line("jimmy:hi") is True
        assert await session.handle_line("again") is True

        assert session.current_peer == JIMMY
        assert [c.args for c in node.send_to.await_args_list] == [
            (JIMMY, "hi"), (JIMMY, "again"),
        ]

    @pytest.mark.asyncio
    async def test_unknown_peer_is_reported(self):
        node = make_node({"jimmy": JIMMY})
        session = ChatSession(node)

        with patch.object(cli_module, "console") as console:
            assert await session.handle_line("nobody:hi") is True

        node.send_to.assert_not_awaited()
        assert "Invalid name" in console.print.call_args.args[0]

    @pytest.mark.asyncio
    async def test_message_without_peer(self):
        node = make_node()
        session = ChatSession(node)

        with patch.object(cli_module, "console") as console:
            await session.handle_line("hello?")

        node.send_to.assert_not_awaited()
        assert "No peer selected" in console.print.call_args.args[0]

    @pytest.mark.asyncio
    async def test_send_failure_keeps_session(self):
        node = make_node({"jimmy": JIMMY})
        node.send_to.side_effect = SendFailed("Cannot connect to 192.168.1.5:9000")
        session = ChatSession(node)

        with patch.object(cli_module, "console"):
            assert await session.handle_line("jimmy:hi") is True

    @pytest.mark.asyncio
    async def test_commands(self):
        node = make_node({"jimmy": JIMMY})
        session = ChatSession(node)

        with patch.object(cli_module, "console") as console:
            assert await session.handle_line("!l") is True
            node.peers.assert_called_once()

            assert await session.handle_line("!bogus") is True
            assert "Unknown command" in console.print.call_args.args[0]

            assert await session.handle_line("!q") is False


def test_peers_table_sorted_by_name():
    table = peers_table({"sally": SALLY, "jimmy": JIMMY})
    assert table.row_count == 2
    assert list(table.columns[0].cells) == ["jimmy", "sally"]


class TestCommandLine:

    @pytest.fixture(autouse=True)
    def quiet_logging(self, monkeypatch):
        monkeypatch.setattr(cli_module, "setup_logging", lambda level: None)

    def test_name_with_delimiter_rejected(self):
        result = CliRunner().invoke(cli, ["--name", "jim;my", "peers"])
        assert result.exit_code == 2
        assert "must not contain" in result.output

    def test_invalid_log_level_rejected(self):
        result = CliRunner().invoke(cli, ["--log", "LOUD", "peers"])
        assert result.exit_code == 2

    @pytest.mark.parametrize("option", ["--port", "--discovery-port"])
    def test_out_of_range_port_rejected(self, option):
        with patch.object(cli_module.GabbyNode, "start", AsyncMock()) as start:
            result = CliRunner().invoke(
                cli, ["--name", "me", option, "70000", "peers", "--wait", "0"])

        assert result.exit_code == 2
        start.assert_not_called()

    @pytest.mark.parametrize("var,value", [
        ("GABBY_PORT", "abc"),
        ("GABBY_ANNOUNCE_INTERVAL", "soon"),
    ])
    def test_bad_environment_value_rejected(self, monkeypatch, tmp_path, var, value):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(var, value)

        result = CliRunner().invoke(cli, ["--name", "me", "peers", "--wait", "0"])

        assert result.exit_code == 2
        assert f"Invalid {var}" in result.output

    def test_offline_host_exits_with_error(self):
        with patch.object(cli_module.GabbyNode, "start",
                          AsyncMock(side_effect=NoRouteAvailable("No route to 8.8.8.8:80"))):
            result = CliRunner().invoke(cli, ["--name", "jimmy", "peers", "--wait", "0"])

        assert result.exit_code == 1
        assert "Cannot start" in result.output

    def test_peers_lists_discovered(self):
        with patch.object(cli_module.GabbyNode, "start", AsyncMock()), \
                patch.object(cli_module.GabbyNode, "stop", AsyncMock()), \
                patch.object(cli_module.GabbyNode, "wait_for_peers",
                             AsyncMock(return_value={"jimmy": JIMMY})):
            result = CliRunner().invoke(cli, ["--name", "me", "--log", "1", "peers"])

        assert result.exit_code == 0
        assert "jimmy" in result.output
        assert "192.168.1.5" in result.output
