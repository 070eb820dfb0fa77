"""
Data models for dnsbench.

Defines structured types for probe tasks, samples, aggregated
statistics and the final benchmark report.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import dns.exception
import dns.name

from .config import (
    DEFAULT_DNS_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_REPETITIONS,
    DEFAULT_SCHEME,
    DEFAULT_TOP_N,
    DNS_PORT,
    HTTP_RETRY_DELAY,
)


class ConfigurationError(ValueError):
    """Raised when a benchmark configuration cannot be scheduled."""


class Transport(Enum):
    """DNS transport protocols."""
    UDP = "udp"
    TCP = "tcp"


class ProbeKind(Enum):
    """Kind of network operation a probe performs."""
    DNS = "dns"
    HTTP = "http"


class Outcome(Enum):
    """Terminal state of a single probe."""
    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"
    FAILURE = "FAILURE"
    NO_DATA = "NO_DATA"


def split_address(address: str, default_port: int = DNS_PORT) -> tuple[str, int]:
    """
    Split ``host``, ``host:port``, ``[v6]`` or ``[v6]:port``.

    Raises:
        ConfigurationError: If the host is empty or the port is not
            a number between 1 and 65535
    """
    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep:
            raise ConfigurationError(f"Invalid address {address!r}: missing ']'")
        if rest and not rest.startswith(":"):
            raise ConfigurationError(f"Invalid address {address!r}")
        port = rest[1:] if rest else None
    elif address.count(":") == 1:
        host, port = address.split(":")
    else:
        # bare IPv6 or bare host
        host, port = address, None

    if not host:
        raise ConfigurationError(f"Invalid address {address!r}: empty host")
    if port is None:
        return host, default_port

    try:
        number = int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port in {address!r}") from None
    if not 1 <= number <= 65535:
        raise ConfigurationError(f"Port out of range in {address!r}")
    return host, number


@dataclass(frozen=True)
class ServerIdentity:
    """
    A named resolver with one or more network addresses.

    Addresses are deduplicated, keeping the order they were given in.
    """
    name: str
    addresses: tuple[str, ...]
    description: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ConfigurationError("Server name must not be empty")

        unique = []
        for address in self.addresses:
            address = address.strip()
            if address and address not in unique:
                split_address(address)
                unique.append(address)

        if not unique:
            raise ConfigurationError(f"Server {self.name} has no addresses")

        object.__setattr__(self, "addresses", tuple(unique))

    @property
    def primary(self) -> str:
        return self.addresses[0]

    def display_addresses(self, separator: str = " + ") -> str:
        return separator.join(self.addresses)


@dataclass(frozen=True)
class ProbeTask:
    """One unit of work, consumed by exactly one worker."""
    server_name: str
    address: str
    domain: str
    attempt: int
    kind: ProbeKind = ProbeKind.DNS


@dataclass
class TimingBreakdown:
    """Timing reported by a transport for one exchange."""
    total_ms: float
    connection_ms: float = 0.0  # TCP handshake time
    query_ms: float = 0.0       # DNS query round-trip


@dataclass(frozen=True)
class Sample:
    """Immutable result of a single DNS or HTTP probe."""
    server_name: str
    server_address: str
    domain: str
    latency_ms: float
    outcome: Outcome
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    kind: ProbeKind = ProbeKind.DNS

    # HTTP only; 0 when every attempt failed
    status_code: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.outcome == Outcome.SUCCESS


@dataclass(frozen=True)
class AggregateStat:
    """
    Statistics derived from a group of samples.

    ``min_latency``, ``max_latency`` and ``mean_latency`` are ``None``
    when the group has no successful samples.
    """
    key: str
    min_latency: Optional[float]
    max_latency: Optional[float]
    mean_latency: Optional[float]
    total_count: int
    success_count: int

    server_name: Optional[str] = None
    server_address: Optional[str] = None
    domain: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.success_count > 0

    @property
    def success_rate(self) -> float:
        """Percentage of successful probes."""
        if self.total_count == 0:
            return 0.0
        return (self.success_count / self.total_count) * 100

    @property
    def display_mean(self) -> float:
        return self.mean_latency if self.mean_latency is not None else 0.0

    @property
    def display_min(self) -> float:
        return self.min_latency if self.min_latency is not None else 0.0

    @property
    def display_max(self) -> float:
        return self.max_latency if self.max_latency is not None else 0.0


@dataclass(frozen=True)
class ServerRanking:
    """A server selected for the HTTP phase."""
    identity: ServerIdentity
    mean_latency: float
    success_count: int


@dataclass(frozen=True)
class HTTPGroup:
    """HTTP samples of one server, sorted fastest first."""
    server_name: str
    mean_latency: float
    samples: tuple[Sample, ...]


@dataclass
class BenchmarkConfig:
    """Inputs of one benchmark run."""
    servers: list[ServerIdentity]
    domains: list[str]
    repetitions: int = DEFAULT_REPETITIONS
    top_n: int = DEFAULT_TOP_N
    dns_timeout: float = DEFAULT_DNS_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    retry_delay: float = HTTP_RETRY_DELAY
    transport: Transport = Transport.UDP
    scheme: str = DEFAULT_SCHEME

    def validate(self) -> "BenchmarkConfig":
        """
        Reject configurations that cannot produce a benchmark.

        Raises:
            ConfigurationError: If the configuration is unusable
        """
        if not self.servers:
            raise ConfigurationError("At least one DNS server is required")
        if not self.domains:
            raise ConfigurationError("At least one domain is required")
        if any(not d or not d.strip() for d in self.domains):
            raise ConfigurationError("Domains must not be empty")
        for domain in self.domains:
            try:
                dns.name.from_text(domain.strip())
            except dns.exception.DNSException as e:
                raise ConfigurationError(f"Invalid domain {domain!r}: {e}") from None
        if self.repetitions < 1:
            raise ConfigurationError(
                f"Repetitions must be at least 1, got {self.repetitions}"
            )
        if self.top_n < 0:
            raise ConfigurationError(f"Top-N must not be negative, got {self.top_n}")
        if self.dns_timeout <= 0 or self.http_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive")
        if self.retry_delay < 0:
            raise ConfigurationError("Retry delay must not be negative")
        return self

    @property
    def expected_dns_samples(self) -> int:
        """Number of DNS samples a complete run produces."""
        addresses = sum(len(server.addresses) for server in self.servers)
        return addresses * len(self.domains) * self.repetitions


@dataclass
class BenchmarkReport:
    """Complete result of a benchmark run."""
    started_at: datetime
    completed_at: datetime
    config: BenchmarkConfig

    dns_samples: tuple[Sample, ...] = ()
    server_stats: list[AggregateStat] = field(default_factory=list)
    domain_stats: list[AggregateStat] = field(default_factory=list)
    top_servers: list[ServerRanking] = field(default_factory=list)

    http_samples: tuple[Sample, ...] = ()
    http_groups: list[HTTPGroup] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Total benchmark duration in seconds."""
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def winner(self) -> Optional[ServerRanking]:
        """Fastest server identity (if any succeeded)."""
        return self.top_servers[0] if self.top_servers else None
