"""
Network transports used by the probe engines.

DNS transports send a single query message to one resolver address:
- UDP (standard DNS)
- TCP (DNS over TCP)

``HTTPTransport`` issues timed HEAD requests over a pooled httpx client.
Every transport raises on network errors; classification is left to
the engines.
"""

import asyncio
import struct
import time
from abc import ABC, abstractmethod
from typing import Optional

import dns.asyncquery
import dns.message
import httpx

from .config import (
    HTTP_KEEPALIVE_EXPIRY,
    HTTP_MAX_CONNECTIONS,
    USER_AGENT,
)
from .models import TimingBreakdown, Transport, split_address


class BaseTransport(ABC):
    """Base class for DNS transports."""

    transport_type: Transport

    @abstractmethod
    async def query(
        self,
        message: dns.message.Message,
        address: str,
        timeout: float,
    ) -> tuple[Optional[dns.message.Message], TimingBreakdown]:
        """
        Send a DNS query and return the response.

        Returns:
            Tuple of (response or None, timing_breakdown)
        """
        pass

    async def close(self):
        pass


class UDPTransport(BaseTransport):
    """Standard DNS over UDP."""

    transport_type = Transport.UDP

    async def query(
        self,
        message: dns.message.Message,
        address: str,
        timeout: float,
    ) -> tuple[Optional[dns.message.Message], TimingBreakdown]:
        """Send DNS query over UDP."""
        host, port = split_address(address)
        start = time.perf_counter_ns()

        response = await dns.asyncquery.udp(message, host, timeout=timeout, port=port)

        total_ms = (time.perf_counter_ns() - start) / 1_000_000
        timing = TimingBreakdown(total_ms=total_ms, query_ms=total_ms)
        return response, timing


class TCPTransport(BaseTransport):
    """DNS over TCP."""

    transport_type = Transport.TCP

    async def query(
        self,
        message: dns.message.Message,
        address: str,
        timeout: float,
    ) -> tuple[Optional[dns.message.Message], TimingBreakdown]:
        """Send DNS query over TCP with timing breakdown."""
        host, port = split_address(address)
        connect_start = time.perf_counter_ns()

        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout,
        )
        connection_ms = (time.perf_counter_ns() - connect_start) / 1_000_000

        try:
            query_start = time.perf_counter_ns()

            # DNS over TCP requires length prefix
            wire = message.to_wire()
            writer.write(struct.pack("!H", len(wire)) + wire)
            await writer.drain()

            length_data = await asyncio.wait_for(reader.readexactly(2), timeout=timeout)
            response_length = struct.unpack("!H", length_data)[0]
            response_data = await asyncio.wait_for(
                reader.readexactly(response_length),
                timeout=timeout,
            )

            query_ms = (time.perf_counter_ns() - query_start) / 1_000_000
            response = dns.message.from_wire(response_data)
        finally:
            writer.close()
            await writer.wait_closed()

        timing = TimingBreakdown(
            total_ms=connection_ms + query_ms,
            connection_ms=connection_ms,
            query_ms=query_ms,
        )
        return response, timing


def create_transport(transport_type: Transport) -> BaseTransport:
    """
    Create a DNS transport instance for the given type.

    Raises:
        ValueError: For an unknown transport type
    """
    if transport_type == Transport.UDP:
        return UDPTransport()
    elif transport_type == Transport.TCP:
        return TCPTransport()
    else:
        raise ValueError(f"Unknown transport type: {transport_type}")


class HTTPTransport:
    """
    Timed HTTP HEAD requests over a pooled client.

    Use as an async context manager; idle pooled connections are closed
    on exit.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HTTPTransport":
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                limits=httpx.Limits(
                    max_connections=HTTP_MAX_CONNECTIONS,
                    max_keepalive_connections=HTTP_MAX_CONNECTIONS,
                    keepalive_expiry=HTTP_KEEPALIVE_EXPIRY,
                ),
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def head(self, url: str, timeout: float) -> tuple[int, float]:
        """
        Send a HEAD request.

        Returns:
            Tuple of (status_code, elapsed_ms)

        Raises:
            httpx.HTTPError: On any transport failure
        """
        if self._client is None:
            raise RuntimeError("HTTPTransport used outside of its context")

        start = time.perf_counter_ns()
        response = await self._client.head(url, timeout=timeout)
        elapsed_ms = (time.perf_counter_ns() - start) / 1_000_000
        return response.status_code, elapsed_ms

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
