"""
Output formatting for benchmark results.

Provides:
- Live per-sample log lines for both phases
- Rich terminal tables and summaries
- JSON export of a single run
"""

import json
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import DNS_THRESHOLDS, HTTP_THRESHOLDS
from .models import BenchmarkConfig, BenchmarkReport, Outcome, Sample


STATUS_SYMBOLS = {
    Outcome.SUCCESS: ("green", "✓"),
    Outcome.TIMEOUT: ("red", "⏱"),
    Outcome.FAILURE: ("red", "✗"),
    Outcome.NO_DATA: ("red", "✗"),
}


def latency_style(latency_ms: float, thresholds: dict[str, float]) -> str:
    """Colour for a latency value given medium/slow thresholds."""
    if latency_ms > thresholds["slow"]:
        return "red"
    if latency_ms > thresholds["medium"]:
        return "yellow"
    return "green"


def _round(value: Optional[float], digits: int = 3) -> Optional[float]:
    return round(value, digits) if value is not None else None


class JSONOutput:
    """JSON output formatter."""

    @staticmethod
    def to_dict(report: BenchmarkReport) -> dict:
        config = report.config
        return {
            "metadata": {
                "started_at": report.started_at.isoformat(),
                "completed_at": report.completed_at.isoformat(),
                "duration_seconds": report.duration_seconds,
                "servers": len(config.servers),
                "domains": len(config.domains),
                "repetitions": config.repetitions,
                "transport": config.transport.value,
                "dns_samples": len(report.dns_samples),
                "http_samples": len(report.http_samples),
            },
            "servers": [
                {
                    "name": stat.server_name,
                    "address": stat.server_address,
                    "queries": {
                        "total": stat.total_count,
                        "successful": stat.success_count,
                        "success_rate_pct": round(stat.success_rate, 2),
                    },
                    "latency_ms": {
                        "min": _round(stat.min_latency),
                        "avg": _round(stat.mean_latency),
                        "max": _round(stat.max_latency),
                    },
                }
                for stat in report.server_stats
            ],
            "domains": [
                {
                    "domain": stat.domain,
                    "avg_latency_ms": _round(stat.mean_latency),
                    "success_rate_pct": round(stat.success_rate, 2),
                }
                for stat in report.domain_stats
            ],
            "top_servers": [
                {
                    "name": ranking.identity.name,
                    "addresses": list(ranking.identity.addresses),
                    "avg_latency_ms": round(ranking.mean_latency, 3),
                }
                for ranking in report.top_servers
            ],
            "http": [
                {
                    "name": group.server_name,
                    "avg_latency_ms": round(group.mean_latency, 3),
                    "results": [
                        {
                            "domain": sample.domain,
                            "status_code": sample.status_code,
                            "latency_ms": round(sample.latency_ms, 3),
                            "error": sample.error,
                        }
                        for sample in group.samples
                    ],
                }
                for group in report.http_groups
            ],
        }

    @staticmethod
    def format(report: BenchmarkReport, indent: int = 2) -> str:
        """Format a benchmark report as JSON."""
        return json.dumps(JSONOutput.to_dict(report), indent=indent)

    @staticmethod
    def save(report: BenchmarkReport, path: Path) -> None:
        """Save a benchmark report to a JSON file."""
        with open(path, "w") as f:
            f.write(JSONOutput.format(report))


class RichConsoleOutput:
    """Rich library console output with colors and tables."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)

    # Live log sinks, called from the log channel consumer

    def log_dns_sample(self, sample: Sample) -> None:
        colour, symbol = STATUS_SYMBOLS[sample.outcome]
        rtt_colour = latency_style(sample.latency_ms, DNS_THRESHOLDS)

        line = (
            f"[cyan][{sample.timestamp:%H:%M:%S}.{sample.timestamp.microsecond // 1000:03d}][/cyan] "
            f"[{colour}]{symbol}[/{colour}] "
            f"{escape(sample.server_address):<25} | "
            f"[blue]{escape(sample.domain):<18}[/blue] | "
            f"[{rtt_colour}]{sample.latency_ms:8.2f} ms[/{rtt_colour}]"
        )
        if not sample.is_success:
            line += f" | [red]\\[{sample.outcome.value}][/red]"
        self.console.print(line)

    def log_http_sample(self, sample: Sample) -> None:
        if sample.error and not sample.status_code:
            colour, symbol = "red", "✗"
        elif sample.status_code == 200:
            colour, symbol = "green", "+"
        else:
            colour, symbol = "yellow", "!"
        rtt_colour = latency_style(sample.latency_ms, HTTP_THRESHOLDS)

        line = (
            f"    [cyan][{sample.timestamp:%H:%M:%S}][/cyan] "
            f"[{colour}]{symbol}[/{colour}] "
            f"[dim]{escape(sample.server_name):<12}[/dim] "
            f"{escape(sample.domain):<25} | "
            f"[cyan]{sample.status_code or 0:3d}[/cyan] | "
            f"[{rtt_colour}]{sample.latency_ms:6.0f} ms[/{rtt_colour}]"
        )
        if sample.error:
            line += f" | [red]\\[ERROR: {escape(sample.error)}][/red]"
        self.console.print(line)

    # Report sections

    def print_config(self, config: BenchmarkConfig) -> None:
        console = self.console
        console.print()
        console.print(Panel.fit(
            "[bold cyan]DNS BENCHMARK[/bold cyan]",
            border_style="cyan",
        ))
        console.print("[blue][*] Configuration:[/blue]")
        console.print(f"    DNS Servers: {len(config.servers)} providers")
        for server in config.servers:
            addresses = escape(server.display_addresses(", "))
            console.print(f"      • [cyan]{escape(server.name)}[/cyan]: {addresses}")
        console.print(f"    Domains: {len(config.domains)} websites")
        console.print(f"    Queries per domain: {config.repetitions} per address")
        console.print(f"    Total queries: {config.expected_dns_samples}")
        console.print()

    def print_dns_summary(self, report: BenchmarkReport) -> None:
        console = self.console

        table = Table(
            title="Server Statistics (sorted by average RTT)",
            box=box.ROUNDED,
            header_style="bold magenta",
        )
        table.add_column("Server", style="cyan")
        table.add_column("Min (ms)", justify="right", style="green")
        table.add_column("Avg (ms)", justify="right", style="yellow")
        table.add_column("Max (ms)", justify="right", style="red")
        table.add_column("Success", justify="right")

        for stat in report.server_stats:
            rate_style = "green" if stat.success_rate >= 100 else "red"
            table.add_row(
                escape(stat.key),
                f"{stat.display_min:.2f}",
                f"{stat.display_mean:.2f}",
                f"{stat.display_max:.2f}",
                f"[{rate_style}]{stat.success_rate:.1f}%[/{rate_style}]",
            )

        console.print()
        console.print(table)

        table = Table(
            title="Per-Domain Statistics (sorted by average RTT)",
            box=box.ROUNDED,
            header_style="bold magenta",
        )
        table.add_column("Domain", style="cyan")
        table.add_column("Avg (ms)", justify="right", style="green")
        table.add_column("Success", justify="right")

        for stat in report.domain_stats:
            table.add_row(escape(stat.key), f"{stat.display_mean:.2f}", f"{stat.success_rate:.1f}%")

        console.print()
        console.print(table)
        console.print()

    def print_top_servers(self, report: BenchmarkReport) -> None:
        console = self.console
        if not report.top_servers:
            console.print(Panel(
                "[bold yellow]No successful queries - cannot rank servers[/bold yellow]",
                border_style="yellow",
            ))
            return

        console.print(f"[blue][*] Top {len(report.top_servers)} fastest DNS servers:[/blue]")
        for idx, ranking in enumerate(report.top_servers, start=1):
            console.print(
                f"    {idx}. {escape(ranking.identity.name)} "
                f"({escape(ranking.identity.display_addresses())}) - avg: {ranking.mean_latency:.2f} ms"
            )
        console.print()

    def print_http_summary(self, report: BenchmarkReport) -> None:
        console = self.console
        if not report.http_groups:
            return

        console.print("[blue][*] Overall Load Time Summary (grouped by DNS server):[/blue]")
        for idx, group in enumerate(report.http_groups, start=1):
            table = Table(
                title=f"DNS Server #{idx}: {escape(group.server_name)} (avg {group.mean_latency:.0f} ms)",
                box=box.ROUNDED,
                header_style="bold magenta",
            )
            table.add_column("Domain", style="cyan")
            table.add_column("Status")
            table.add_column("Response Time", justify="right")

            for sample in group.samples:
                status = f"HTTP {sample.status_code}" if sample.status_code else "ERROR"
                colour = latency_style(sample.latency_ms, HTTP_THRESHOLDS)
                table.add_row(
                    escape(sample.domain),
                    status,
                    f"[{colour}]{sample.latency_ms:.0f} ms[/{colour}]",
                )

            console.print(table)
            console.print()

    def print(self, report: BenchmarkReport) -> None:
        """Print every summary section of a report."""
        self.print_dns_summary(report)
        self.print_top_servers(report)
        self.print_http_summary(report)

        winner = report.winner
        message = "[bold green]BENCHMARK COMPLETED[/bold green]"
        if winner:
            message += (
                f"\nFastest: {escape(winner.identity.name)} "
                f"({winner.mean_latency:.2f} ms) | Duration: {report.duration_seconds:.1f}s"
            )
        self.console.print(Panel(message, border_style="green"))
        self.console.print()
