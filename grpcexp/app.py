"""Application entry point for the grpcexp explorer."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .core.client import ClientConfig, ClientError, GrpcClient
from .core.schema import Kind, SchemaNode
from .form.controller import DEFAULT_TIMEOUT

log = logging.getLogger(__name__)

DEFAULT_PORT = 50051

_BANNER = r"""

   __ _ _ __ _ __   ___ _____  ___ __
  / _` | '__| '_ \ / __/ _ \ \/ / '_ \
 | (_| | |  | |_) | (_|  __/>  <| |_) |
  \__, |_|  | .__/ \___\___/_/\_\ .__/
  |___/     |_|                 |_|
"""


def _render_splash(console: Console, target: str) -> None:
    """Display the startup banner using Rich for colour output."""

    console.print(f"[#00B7FF]{_BANNER}[/]", justify="center")
    console.print(f"[#00B7FF bold]grpcexp v{__version__}[/]", justify="center")
    console.print(f"[#7DF9FF]connecting to {target}…[/]", justify="center")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grpcexp",
        description="An interactive explorer for interacting with grpc servers.",
    )
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help="grpc server port")
    parser.add_argument("-a", "--addr", default="", help="grpc server address")
    parser.add_argument(
        "--protoset",
        default=None,
        help="path to protoset file (uses server reflection if not specified)",
    )
    parser.add_argument("--tls", action="store_true", help="use TLS to connect to the server")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="per-call timeout in seconds",
    )
    parser.add_argument("--no-splash", action="store_true", help="skip the startup banner")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("version", help="display the installed version")
    list_parser = sub.add_parser("list", help="list services, or the methods of one service")
    list_parser.add_argument("service", nargs="?")
    describe_parser = sub.add_parser("describe", help="show the input message of a method")
    describe_parser.add_argument("method")
    return parser


def resolve_target(options: argparse.Namespace) -> str:
    if options.addr:
        return options.addr
    return f"localhost:{options.port}"


def config_from_options(options: argparse.Namespace) -> ClientConfig:
    return ClientConfig(
        target=resolve_target(options),
        tls=options.tls,
        protoset=options.protoset,
    )


# ---------------------------------------------------------------------------
# Headless commands
# ---------------------------------------------------------------------------


def _cmd_list(client: GrpcClient, console: Console, service: Optional[str]) -> None:
    if not service:
        table = Table(title="Services")
        table.add_column("Service", style="bold")
        for name in client.list_services():
            table.add_row(name)
        console.print(table)
        return

    table = Table(title=f"Methods of {service}")
    table.add_column("Method", style="bold")
    table.add_column("Input")
    table.add_column("Output")
    table.add_column("Kind", style="dim")
    for info in client.list_methods(service):
        table.add_row(info.name, info.input_type, info.output_type, info.streaming)
    console.print(table)


def _schema_label(node: SchemaNode) -> str:
    if node.kind is Kind.UNSUPPORTED:
        return f"{node.name} [red](unsupported: {node.reason})[/]"
    if node.kind is Kind.ENUM:
        names = ", ".join(value.name for value in node.enum_values)
        return f"{node.name}: [cyan]{node.type_name}[/] [dim]{{{names}}}[/]"
    if node.kind is Kind.REPEATED and node.element is not None:
        return f"{node.name}: [cyan]repeated {node.element.type_name or node.element.kind.value}[/]"
    if node.kind is Kind.MAP and node.key is not None and node.value is not None:
        value_type = node.value.type_name or node.value.kind.value
        return f"{node.name}: [cyan]map<{node.key.type_name}, {value_type}>[/]"
    if node.kind is Kind.ONEOF:
        return f"{node.name}: [magenta]oneof[/]"
    return f"{node.name}: [cyan]{node.type_name or node.kind.value}[/]"


def schema_tree(node: SchemaNode, tree: Optional[Tree] = None) -> Tree:
    """Build a Rich tree describing ``node`` and its descendants."""

    if tree is None:
        tree = Tree(f"[bold]{node.type_name or node.name}[/]")
    for child in node.children:
        branch = tree.add(_schema_label(child))
        if child.kind in (Kind.MESSAGE, Kind.ONEOF):
            schema_tree(child, branch)
        elif child.kind is Kind.REPEATED and child.element is not None:
            schema_tree(child.element, branch)
        elif child.kind is Kind.MAP and child.value is not None:
            schema_tree(child.value, branch)
    return tree


def _cmd_describe(client: GrpcClient, console: Console, method: str) -> None:
    schema = client.resolve_input_schema(method)
    console.print(f"[bold]{method}[/]")
    console.print(schema_tree(schema))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start grpcexp."""

    parser = build_parser()
    options = parser.parse_args(list(argv) if argv is not None else None)
    console = Console(highlight=False)

    if options.command == "version":
        console.print(__version__)
        return 0

    config = config_from_options(options)
    interactive = options.command is None
    if interactive and not options.no_splash:
        _render_splash(console, config.target)

    try:
        client = GrpcClient.connect(config)
    except ClientError as exc:
        Console(stderr=True, highlight=False).print(f"[red]error:[/] {exc}")
        return 1

    try:
        if options.command == "list":
            _cmd_list(client, console, options.service)
        elif options.command == "describe":
            _cmd_describe(client, console, options.method)
        else:
            from .tui import launch_tui

            launch_tui(client, timeout=options.timeout)
    except ClientError as exc:
        Console(stderr=True, highlight=False).print(f"[red]error:[/] {exc}")
        return 1
    finally:
        client.close()
        logging.shutdown()
    return 0


__all__ = ["build_parser", "main", "resolve_target", "schema_tree"]
