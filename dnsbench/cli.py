"""
Command-line interface for dnsbench.

Runs the DNS benchmark followed by the website load-time test and
prints live results and summaries.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import (
    DEFAULT_DNS_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_REPETITIONS,
    DEFAULT_TOP_N,
)
from .models import BenchmarkConfig, ConfigurationError, Transport
from .output import JSONOutput, RichConsoleOutput
from .resolvers import (
    DEFAULT_DOMAINS,
    DEFAULT_SERVERS,
    SERVERS,
    get_server,
    list_servers,
    parse_server,
)
from .runner import TestRunner


def configure_logging(verbose: bool) -> None:
    """Send library logs through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__)
def main():
    """
    dnsbench - DNS resolver benchmark with website load-time test.

    Measures every resolver address against popular domains, then loads
    those domains while ranking the fastest resolvers.
    """
    pass


@main.command()
@click.option(
    "--server", "-s",
    multiple=True,
    help="Built-in server to test (can specify multiple). Options: " + ", ".join(list_servers()),
)
@click.option(
    "--custom-server", "-c",
    multiple=True,
    help='Custom server as "Name=addr[:port],addr[:port]"',
)
@click.option(
    "--domain", "-d",
    multiple=True,
    help="Domain to test (can specify multiple) [default: built-in list]",
)
@click.option(
    "--queries", "-n",
    type=int,
    default=DEFAULT_REPETITIONS,
    show_default=True,
    help="Queries per domain for each server address",
)
@click.option(
    "--top",
    type=int,
    default=DEFAULT_TOP_N,
    show_default=True,
    help="Number of fastest servers used for the HTTP test",
)
@click.option(
    "--dns-timeout",
    type=float,
    default=DEFAULT_DNS_TIMEOUT,
    show_default=True,
    help="DNS query timeout in seconds",
)
@click.option(
    "--http-timeout",
    type=float,
    default=DEFAULT_HTTP_TIMEOUT,
    show_default=True,
    help="HTTP request timeout in seconds",
)
@click.option(
    "--tcp",
    is_flag=True,
    help="Send DNS queries over TCP instead of UDP",
)
@click.option(
    "--no-http",
    is_flag=True,
    help="Skip the website load-time test",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Write results to a JSON file",
)
@click.option(
    "--json",
    is_flag=True,
    help="Output results as JSON to stdout",
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress live per-query output",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug logs",
)
def run(
    server: tuple,
    custom_server: tuple,
    domain: tuple,
    queries: int,
    top: int,
    dns_timeout: float,
    http_timeout: float,
    tcp: bool,
    no_http: bool,
    output: Optional[str],
    json: bool,
    quiet: bool,
    verbose: bool,
):
    """
    Run the DNS benchmark and website load-time test.

    Examples:

    \b
      # All built-in servers and domains
      dnsbench run

    \b
      # Compare two providers on a few domains
      dnsbench run -s google -s cloudflare -d github.com -d x.com

    \b
      # Add a custom resolver and skip the HTTP test
      dnsbench run -c "Home=192.168.1.1" --no-http
    """
    configure_logging(verbose)

    servers = []
    try:
        for name in server:
            servers.append(get_server(name))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        for spec in custom_server:
            servers.append(parse_server(spec))
    except (ConfigurationError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="--custom-server")

    if not servers:
        servers = [get_server(name) for name in DEFAULT_SERVERS]

    config = BenchmarkConfig(
        servers=servers,
        domains=list(domain) or list(DEFAULT_DOMAINS),
        repetitions=queries,
        top_n=top,
        dns_timeout=dns_timeout,
        http_timeout=http_timeout,
        transport=Transport.TCP if tcp else Transport.UDP,
    )

    try:
        config.validate()
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    live = not quiet and not json
    display = RichConsoleOutput()

    if live:
        display.print_config(config)

    runner = TestRunner(
        config,
        dns_sink=display.log_dns_sample if live else None,
        http_sink=display.log_http_sample if live else None,
    )

    async def run_benchmark():
        try:
            return await runner.run(http=not no_http)
        finally:
            await runner.close()

    try:
        report = asyncio.run(run_benchmark())
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        sys.exit(130)

    if json:
        click.echo(JSONOutput.format(report))
    elif not quiet:
        display.print(report)
    else:
        display.print_top_servers(report)

    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            path = path.with_suffix(".json")
        JSONOutput.save(report, path)
        if not quiet and not json:
            click.echo(f"Results saved to {path}")


@main.command(name="list-servers")
def list_available():
    """List all built-in DNS servers."""
    console = Console()
    table = Table(
        title="Available DNS Servers",
        box=box.ROUNDED,
        header_style="bold cyan",
    )

    table.add_column("Key", style="green")
    table.add_column("Name", style="cyan")
    table.add_column("Addresses", style="yellow")
    table.add_column("Description")

    for key, identity in sorted(SERVERS.items()):
        table.add_row(
            key,
            identity.name,
            identity.display_addresses(", "),
            identity.description or "",
        )

    console.print(table)
    console.print()
    console.print("[dim]Default domains:[/dim]", ", ".join(DEFAULT_DOMAINS))


if __name__ == "__main__":
    main()
