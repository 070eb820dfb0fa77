from __future__ import annotations

import asyncio
import socket
import struct
import time

import dns.message
import dns.rcode
import dns.rrset
import pytest

from dnsbench.collector import SampleCollector
from dnsbench.models import BenchmarkConfig, Outcome, ServerIdentity, Transport
from dnsbench.query_engine import DNSQueryEngine
from dnsbench.transports import TCPTransport, UDPTransport


def _answer(wire: bytes) -> bytes:
    query = dns.message.from_wire(wire)
    response = dns.message.make_response(query)
    response.answer.append(
        dns.rrset.from_text(query.question[0].name, 300, "IN", "A", "192.0.2.1")
    )
    return response.to_wire()


class _UDPResponder(asyncio.DatagramProtocol):
    """Answers every query after ``delay`` seconds, or never when silent."""

    def __init__(self, delay: float = 0.0, silent: bool = False):
        self.delay = delay
        self.silent = silent
        self.received = 0
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.received += 1
        if self.silent:
            return
        loop = asyncio.get_running_loop()
        loop.call_later(self.delay, self.transport.sendto, _answer(data), addr)


async def _start_udp(responder: _UDPResponder) -> tuple[asyncio.DatagramTransport, str]:
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: responder,
        local_addr=("127.0.0.1", 0),
    )
    port = transport.get_extra_info("sockname")[1]
    return transport, f"127.0.0.1:{port}"


async def _tcp_handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    length = struct.unpack("!H", await reader.readexactly(2))[0]
    wire = _answer(await reader.readexactly(length))
    writer.write(struct.pack("!H", len(wire)) + wire)
    await writer.drain()
    writer.close()
    await writer.wait_closed()


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _config(address: str, repetitions: int, timeout: float, transport: Transport = Transport.UDP):
    return BenchmarkConfig(
        servers=[ServerIdentity("Local", (address,))],
        domains=["example.com"],
        repetitions=repetitions,
        dns_timeout=timeout,
        transport=transport,
    )


def test_udp_queries_overlap_on_the_wire() -> None:
    responder = _UDPResponder(delay=0.5)

    async def scenario():
        server, address = await _start_udp(responder)
        try:
            config = _config(address, repetitions=40, timeout=3.0)
            engine = DNSQueryEngine(timeout=config.dns_timeout, transport=UDPTransport())
            collector = SampleCollector(expected=config.expected_dns_samples)
            start = time.perf_counter()
            await engine.run(config, collector)
            return collector.snapshot(), time.perf_counter() - start
        finally:
            server.close()

    samples, elapsed = asyncio.run(scenario())

    assert len(samples) == responder.received == 40
    assert all(s.outcome == Outcome.SUCCESS for s in samples)
    # 40 answers delayed by 500 ms each only fit if every query is in flight at once
    assert max(s.latency_ms for s in samples) < 1500
    assert elapsed < 2.0


def test_udp_silent_server_times_out() -> None:
    responder = _UDPResponder(silent=True)

    async def scenario():
        server, address = await _start_udp(responder)
        try:
            config = _config(address, repetitions=1, timeout=0.3)
            engine = DNSQueryEngine(timeout=config.dns_timeout, transport=UDPTransport())
            collector = SampleCollector(expected=1)
            await engine.run(config, collector)
            return collector.snapshot()
        finally:
            server.close()

    (sample,) = asyncio.run(scenario())

    assert responder.received == 1
    assert sample.outcome == Outcome.TIMEOUT
    assert sample.error == "DNS query timeout"
    assert sample.latency_ms >= 250


def test_udp_transport_returns_parsed_response() -> None:
    async def scenario():
        server, address = await _start_udp(_UDPResponder())
        try:
            query = dns.message.make_query("example.com", "A")
            return await UDPTransport().query(query, address, timeout=2.0)
        finally:
            server.close()

    response, timing = asyncio.run(scenario())

    assert response.rcode() == dns.rcode.NOERROR
    assert len(response.answer) == 1
    assert timing.total_ms == timing.query_ms > 0


def test_tcp_transport_length_prefixed_exchange() -> None:
    async def scenario():
        server = await asyncio.start_server(_tcp_handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            query = dns.message.make_query("example.com", "A")
            return await TCPTransport().query(query, f"127.0.0.1:{port}", timeout=2.0)
        finally:
            server.close()
            await server.wait_closed()

    response, timing = asyncio.run(scenario())

    assert response.rcode() == dns.rcode.NOERROR
    assert response.answer[0].name.to_text() == "example.com."
    assert timing.connection_ms >= 0
    assert timing.total_ms == pytest.approx(timing.connection_ms + timing.query_ms)


def test_tcp_refused_connection_is_timeout() -> None:
    config = _config(f"127.0.0.1:{_unused_port()}", repetitions=2, timeout=1.0, transport=Transport.TCP)

    async def scenario():
        engine = DNSQueryEngine(timeout=config.dns_timeout, transport_type=config.transport)
        collector = SampleCollector(expected=config.expected_dns_samples)
        await engine.run(config, collector)
        return collector.snapshot()

    samples = asyncio.run(scenario())

    assert len(samples) == 2
    assert all(s.outcome == Outcome.TIMEOUT for s in samples)
