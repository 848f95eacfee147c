#!/usr/bin/env python3
"""
Gabby CLI

Command-line interface for LAN discovery and chat.

Usage:
    gabby chat                  # Discover peers and chat with them
    gabby --name jimmy chat     # Chat under a chosen display name
    gabby peers                 # List peers announcing on the LAN

Chat input:
    jimmy:Hello there friend    # Send to jimmy, remember jimmy as current peer
    Hello again                 # Send to the current peer
    !l                          # List known peers
    !q                          # Quit
"""

import asyncio
import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import load_config, normalize_log_level, validate_display_name
from .discovery import MAX_PORT, PeerRecord
from .errors import BindFailed, NoRouteAvailable, SendFailed, UnknownPeer
from .node import GabbyNode

console = Console()


def setup_logging(level: str = 'DEBUG'):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=True, show_path=True)],
        force=True,
    )


@dataclass
class ChatInput:
    """One parsed line of chat input."""
    kind: str  # 'message' | 'command' | 'empty'
    target: Optional[str] = None
    text: str = ''


def parse_input(line: str) -> ChatInput:
    """
    Parse a line typed into the chat.

    `name:text` addresses a peer, `!cmd` is a command, anything else is a
    message for the current peer.
    """
    line = line.strip()
    if not line:
        return ChatInput(kind='empty')

    if line.startswith('!'):
        return ChatInput(kind='command', text=line[1:].strip().lower())

    if ':' in line:
        target, _, text = line.partition(':')
        return ChatInput(kind='message', target=target.strip(), text=text)

    return ChatInput(kind='message', text=line)


def peers_table(peers: Dict[str, PeerRecord], title: str = "Known Peers") -> Table:
    """Render a directory snapshot."""
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("IP", style="yellow")
    table.add_column("Port", justify="right")

    for name in sorted(peers):
        record = peers[name]
        table.add_row(escape(name), record.address, str(record.port))

    return table


class ChatSession:
    """Interactive chat state: the node plus the peer last addressed."""

    def __init__(self, node: GabbyNode):
        self.node = node
        self.current_peer: Optional[PeerRecord] = None

    async def handle_line(self, line: str) -> bool:
        """
        Act on one line of input.

        Returns:
            False when the user asked to quit
        """
        parsed = parse_input(line)

        if parsed.kind == 'empty':
            return True

        if parsed.kind == 'command':
            return self._run_command(parsed.text)

        if parsed.target is not None:
            try:
                self.current_peer = self.node.resolve_peer(parsed.target)
            except UnknownPeer:
                console.print(f"[red]Invalid name: {escape(parsed.target)}[/red]")
                return True

        if self.current_peer is None:
            console.print("[yellow]No peer selected, prefix your message with name:[/yellow]")
            return True

        try:
            await self.node.send_to(self.current_peer, parsed.text)
        except SendFailed as e:
            console.print(f"[red]{escape(str(e))}[/red]")

        return True

    def _run_command(self, command: str) -> bool:
        if command in ('l', 'list'):
            peers = self.node.peers()
            if peers:
                console.print(peers_table(peers))
            else:
                console.print("[yellow]No peers discovered yet[/yellow]")
            return True

        if command in ('q', 'quit'):
            return False

        console.print(f"[red]Unknown command: !{escape(command)}[/red]")
        return True


def print_message(sender: str, text: str):
    console.print(f"[bold cyan]\\[{escape(sender)}][/bold cyan]-->{escape(text)}")


def print_peer_joined(record: PeerRecord):
    console.print(f"[green]{escape(record.display_name)} joined "
                  f"({record.endpoint})[/green]")


def start_stdin_reader(loop: asyncio.AbstractEventLoop) -> asyncio.Queue:
    """
    Feed stdin lines into a queue from a daemon thread.

    None is queued on EOF. The thread never blocks interpreter shutdown.
    """
    lines: asyncio.Queue = asyncio.Queue()

    def read():
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:
            # Event loop already closed
            pass

    threading.Thread(target=read, name="stdin-reader", daemon=True).start()
    return lines


@click.group()
@click.option('--name', default=None, help='Choose how you will be known')
@click.option('--log', 'log_level', default=None,
              help='Log level: DEBUG, INFO, ERROR (or 0, 1, 2)')
@click.option('--port', type=click.IntRange(0, MAX_PORT), default=None,
              help='TCP port to receive messages on')
@click.option('--discovery-port', type=click.IntRange(0, MAX_PORT), default=None,
              help='UDP discovery port')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              default=None, help='JSON config file')
@click.pass_context
def cli(ctx, name, log_level, port, discovery_port, config_path):
    """Gabby - find people on your LAN and chat with them."""
    try:
        config = load_config(Path(config_path) if config_path else None)
        if name is not None:
            config.display_name = name
        validate_display_name(config.display_name)
        if log_level is not None:
            config.log_level = normalize_log_level(log_level)
    except ValueError as e:
        raise click.BadParameter(str(e))

    if port is not None:
        config.port = port
    if discovery_port is not None:
        config.discovery_port = discovery_port

    setup_logging(config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


async def _start_node(node: GabbyNode) -> bool:
    """Start a node, reporting fatal startup errors."""
    try:
        await node.start()
    except (NoRouteAvailable, BindFailed) as e:
        console.print(f"[red]Cannot start: {escape(str(e))}[/red]")
        return False
    return True


@cli.command()
@click.pass_context
def chat(ctx):
    """Discover peers and chat with them."""
    config = ctx.obj['config']

    async def run() -> int:
        node = GabbyNode(config)
        node.on_message(print_message)
        node.on_peer_joined(print_peer_joined)

        if not await _start_node(node):
            return 1

        session = ChatSession(node)
        console.print(f"[dim]You are [bold]{escape(node.display_name)}[/bold]. "
                      f"Type name:message, !l to list peers, !q to quit[/dim]")

        lines = start_stdin_reader(asyncio.get_running_loop())
        try:
            while True:
                line = await lines.get()
                if line is None:
                    break
                if not await session.handle_line(line):
                    break
        finally:
            await node.stop()

        return 0

    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
        code = 0
    ctx.exit(code)


@cli.command()
@click.option('--wait', default=6.0, help='Seconds to listen for announcements')
@click.pass_context
def peers(ctx, wait):
    """List peers announcing on the LAN."""
    config = ctx.obj['config']

    async def run() -> int:
        node = GabbyNode(config)

        console.print("[dim]Discovering peers...[/dim]")
        if not await _start_node(node):
            return 1

        try:
            discovered = await node.wait_for_peers(wait)
        finally:
            await node.stop()

        if not discovered:
            console.print("[yellow]No peers found[/yellow]")
        else:
            console.print(peers_table(discovered, title="Discovered Peers (LAN)"))
        return 0

    ctx.exit(asyncio.run(run()))


if __name__ == '__main__':
    cli()
