"""
Benchmark runner.

Orchestrates the two phases of a run:
- DNS phase: probe every server address for every domain, then rank
- HTTP phase: load every domain once per top-ranked server
"""

import logging
from datetime import datetime
from typing import Optional

from .collector import LogChannel, LogSink, SampleCollector
from .http_engine import HTTPLoadTester
from .models import BenchmarkConfig, BenchmarkReport, Sample, ServerRanking
from .query_engine import DNSQueryEngine
from .statistics import StatisticsEngine
from .transports import BaseTransport, HTTPTransport

logger = logging.getLogger(__name__)


class TestRunner:
    """
    Runs a complete benchmark for one configuration.

    Collectors and log channels are created per phase and handed to
    the engines explicitly.
    """

    # Not a pytest test class
    __test__ = False

    def __init__(
        self,
        config: BenchmarkConfig,
        dns_transport: Optional[BaseTransport] = None,
        http_transport: Optional[HTTPTransport] = None,
        dns_sink: Optional[LogSink] = None,
        http_sink: Optional[LogSink] = None,
    ):
        """
        Initialize the test runner.

        Args:
            config: Benchmark configuration, validated immediately
            dns_transport: DNS transport override (default from config)
            http_transport: HTTP transport override (default pooled httpx client)
            dns_sink: Receives each DNS sample as it completes
            http_sink: Receives each HTTP sample as it completes
        """
        self.config = config.validate()
        self.engine = DNSQueryEngine(
            timeout=config.dns_timeout,
            transport=dns_transport,
            transport_type=config.transport,
        )
        self.http_transport = http_transport
        self.dns_sink = dns_sink
        self.http_sink = http_sink

    async def run_dns_phase(self) -> tuple[Sample, ...]:
        """Probe the full DNS matrix and return every sample."""
        collector = SampleCollector(expected=self.config.expected_dns_samples)
        channel = LogChannel(self.dns_sink)
        channel.start()

        try:
            await self.engine.run(self.config, collector, channel)
        finally:
            await channel.join()

        samples = collector.snapshot()
        if len(samples) != collector.expected:
            logger.warning(
                "Expected %d DNS samples, collected %d",
                collector.expected,
                len(samples),
            )
        return samples

    async def run_http_phase(
        self,
        top_servers: list[ServerRanking],
    ) -> tuple[Sample, ...]:
        """Load every domain once per selected server."""
        identities = [ranking.identity for ranking in top_servers]
        collector = SampleCollector(expected=len(identities) * len(self.config.domains))
        if not identities:
            return collector.snapshot()

        channel = LogChannel(self.http_sink)
        channel.start()

        transport = self.http_transport or HTTPTransport()
        try:
            async with transport:
                tester = HTTPLoadTester(
                    transport,
                    timeout=self.config.http_timeout,
                    retry_delay=self.config.retry_delay,
                    scheme=self.config.scheme,
                )
                await tester.run(identities, self.config.domains, collector, channel)
        finally:
            # client setup can fail before the tester gets to close the channel
            if not channel.closed:
                channel.close()
            await channel.join()

        return collector.snapshot()

    async def run(self, http: bool = True) -> BenchmarkReport:
        """
        Run both phases and build the report.

        Args:
            http: Whether to run the HTTP load phase

        Returns:
            BenchmarkReport with samples, stats and rankings
        """
        started_at = datetime.now()

        dns_samples = await self.run_dns_phase()
        server_stats = StatisticsEngine.server_stats(dns_samples)
        domain_stats = StatisticsEngine.domain_stats(dns_samples)
        top_servers = StatisticsEngine.select_top(server_stats, self.config.top_n)

        if len(top_servers) < self.config.top_n:
            logger.info(
                "Only %d server(s) answered successfully, wanted %d",
                len(top_servers),
                self.config.top_n,
            )

        http_samples: tuple[Sample, ...] = ()
        if http:
            http_samples = await self.run_http_phase(top_servers)

        return BenchmarkReport(
            started_at=started_at,
            completed_at=datetime.now(),
            config=self.config,
            dns_samples=dns_samples,
            server_stats=server_stats,
            domain_stats=domain_stats,
            top_servers=top_servers,
            http_samples=http_samples,
            http_groups=StatisticsEngine.group_http(http_samples),
        )

    async def close(self):
        """Clean up resources."""
        await self.engine.close()
