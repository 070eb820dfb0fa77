from __future__ import annotations

import io

from rich.console import Console

from dnsbench.models import BenchmarkConfig, Outcome, ProbeKind, ServerIdentity
from dnsbench.output import RichConsoleOutput


def _display() -> tuple[RichConsoleOutput, io.StringIO]:
    buffer = io.StringIO()
    return RichConsoleOutput(Console(file=buffer, width=200, highlight=False)), buffer


def test_dns_log_line_keeps_bracketed_text(make_sample) -> None:
    display, buffer = _display()

    display.log_dns_sample(make_sample(
        12.0,
        Outcome.FAILURE,
        address="[2001:db8::1]:53",
        domain="[bold]x.com",
    ))

    output = buffer.getvalue()
    assert "[bold]x.com" in output
    assert "[2001:db8::1]:53" in output
    assert "[FAILURE]" in output


def test_http_log_line_keeps_bracketed_text(make_sample) -> None:
    display, buffer = _display()

    display.log_http_sample(make_sample(
        80.0,
        server="[red]Lab",
        domain="[i]y.com",
        kind=ProbeKind.HTTP,
        status_code=200,
    ))

    output = buffer.getvalue()
    assert "[red]Lab" in output
    assert "[i]y.com" in output


def test_config_lists_server_names_literally() -> None:
    display, buffer = _display()
    config = BenchmarkConfig(
        servers=[ServerIdentity("[b]Home", ("10.0.0.1",))],
        domains=["a.com"],
    )

    display.print_config(config)

    assert "[b]Home: 10.0.0.1" in buffer.getvalue()
