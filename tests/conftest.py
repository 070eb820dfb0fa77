from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset
import httpx
import pytest

from dnsbench.models import Outcome, ProbeKind, Sample, TimingBreakdown
from dnsbench.transports import BaseTransport


def _make_response(domain: str, rcode: int = dns.rcode.NOERROR, answers: int = 1) -> dns.message.Message:
    query = dns.message.make_query(domain, dns.rdatatype.A)
    response = dns.message.make_response(query)
    response.set_rcode(rcode)
    for i in range(answers):
        response.answer.append(
            dns.rrset.from_text(f"{domain}.", 300, "IN", "A", f"192.0.2.{i + 1}")
        )
    return response


class FakeDNSTransport(BaseTransport):
    """Answers from a plan instead of the network.

    ``plan(address, domain)`` returns an exception to raise, ``None`` for
    "no response", or a ``(response, latency_ms)`` tuple.
    """

    def __init__(self, plan: Callable[[str, str], object]):
        self.plan = plan
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def query(self, message, address, timeout):
        domain = message.question[0].name.to_text(omit_final_dot=True)
        self.calls.append((address, domain))
        result = self.plan(address, domain)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return None, TimingBreakdown(total_ms=1.0)
        response, latency_ms = result
        return response, TimingBreakdown(total_ms=latency_ms, query_ms=latency_ms)

    async def close(self):
        self.closed = True


class FakeHTTPTransport:
    """Replays per-URL results: exceptions are raised, (status, ms) returned."""

    def __init__(self, results: dict[str, list] | None = None, default=(200, 50.0)):
        self.results = {url: list(items) for url, items in (results or {}).items()}
        self.default = default
        self.calls: list[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, *exc_info):
        self.exited = True

    async def head(self, url, timeout):
        self.calls.append(url)
        queue = self.results.get(url)
        result = queue.pop(0) if queue else self.default
        if isinstance(result, Exception):
            raise result
        return result


def _sample(
    latency_ms: float,
    outcome: Outcome = Outcome.SUCCESS,
    server: str = "Alpha",
    address: str = "10.0.0.1:53",
    domain: str = "example.com",
    kind: ProbeKind = ProbeKind.DNS,
    status_code: Optional[int] = None,
) -> Sample:
    return Sample(
        server_name=server,
        server_address=address,
        domain=domain,
        latency_ms=latency_ms,
        outcome=outcome,
        error=None if outcome == Outcome.SUCCESS else outcome.value,
        timestamp=datetime(2026, 1, 1, 12, 0, 0),
        kind=kind,
        status_code=status_code,
    )


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def fake_dns():
    return FakeDNSTransport


@pytest.fixture
def fake_http():
    return FakeHTTPTransport


@pytest.fixture
def make_sample():
    return _sample


@pytest.fixture
def connect_error():
    def _factory(message: str = "connection refused") -> httpx.ConnectError:
        return httpx.ConnectError(message)
    return _factory
