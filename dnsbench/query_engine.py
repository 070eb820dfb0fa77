"""
Core DNS probe engine.

Expands the {server x domain x repetition x address} matrix into probe
tasks, runs them all concurrently and classifies every response into a
``Sample``.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

import dns.exception
import dns.message
import dns.rcode
import dns.rdatatype

from .collector import LogChannel, SampleCollector
from .config import DEFAULT_DNS_TIMEOUT
from .models import (
    BenchmarkConfig,
    Outcome,
    ProbeKind,
    ProbeTask,
    Sample,
    Transport,
)
from .transports import BaseTransport, create_transport

logger = logging.getLogger(__name__)


class DNSQueryEngine:
    """
    Concurrent DNS probe scheduler.

    Every probe becomes its own asyncio task; there is no concurrency cap
    beyond the size of the matrix itself.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_DNS_TIMEOUT,
        transport: Optional[BaseTransport] = None,
        transport_type: Transport = Transport.UDP,
    ):
        """
        Initialize the query engine.

        Args:
            timeout: Per-query timeout in seconds
            transport: Transport to send queries with (overrides transport_type)
            transport_type: Transport protocol used when no transport is given
        """
        self.timeout = timeout
        self.transport = transport or create_transport(transport_type)

    @staticmethod
    def build_tasks(config: BenchmarkConfig) -> list[ProbeTask]:
        """Expand the configuration into one task per matrix cell."""
        tasks = []
        for server in config.servers:
            for domain in config.domains:
                for attempt in range(config.repetitions):
                    for address in server.addresses:
                        tasks.append(ProbeTask(
                            server_name=server.name,
                            address=address,
                            domain=domain,
                            attempt=attempt,
                            kind=ProbeKind.DNS,
                        ))
        return tasks

    @staticmethod
    def _create_query_message(domain: str) -> dns.message.Message:
        return dns.message.make_query(domain, dns.rdatatype.A)

    async def probe(self, task: ProbeTask) -> Sample:
        """
        Execute a single DNS probe.

        Network problems never raise; they are recorded in the returned
        sample's outcome and error.
        """
        timestamp = datetime.now()
        try:
            message = self._create_query_message(task.domain)
        except dns.exception.DNSException as e:
            return self._sample(task, 0.0, Outcome.FAILURE, f"invalid query: {e}", timestamp)

        start = time.perf_counter()

        try:
            response, timing = await self.transport.query(
                message,
                task.address,
                timeout=self.timeout,
            )
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug("DNS query to %s for %s failed: %r", task.address, task.domain, e)
            return self._sample(task, elapsed_ms, Outcome.TIMEOUT, "DNS query timeout", timestamp)

        latency_ms = timing.total_ms

        if response is None:
            return self._sample(task, latency_ms, Outcome.FAILURE, "no response", timestamp)

        rcode = response.rcode()
        if rcode != dns.rcode.NOERROR:
            error = f"rcode: {dns.rcode.to_text(rcode)}"
            return self._sample(task, latency_ms, Outcome.FAILURE, error, timestamp)

        if not response.answer:
            return self._sample(task, latency_ms, Outcome.NO_DATA, "no answer records", timestamp)

        return self._sample(task, latency_ms, Outcome.SUCCESS, None, timestamp)

    @staticmethod
    def _sample(
        task: ProbeTask,
        latency_ms: float,
        outcome: Outcome,
        error: Optional[str],
        timestamp: datetime,
    ) -> Sample:
        return Sample(
            server_name=task.server_name,
            server_address=task.address,
            domain=task.domain,
            latency_ms=latency_ms,
            outcome=outcome,
            error=error,
            timestamp=timestamp,
            kind=ProbeKind.DNS,
        )

    async def run(
        self,
        config: BenchmarkConfig,
        collector: SampleCollector,
        channel: Optional[LogChannel] = None,
    ) -> int:
        """
        Probe the full matrix and wait for every probe to finish.

        Each sample is appended to ``collector`` and published to
        ``channel``. The channel is closed once all probes are done.

        Args:
            config: Validated benchmark configuration
            collector: Destination for the samples
            channel: Optional live log channel

        Returns:
            Number of probes executed
        """
        async def worker(task: ProbeTask) -> None:
            collector.producer_started()
            try:
                sample = await self.probe(task)
                collector.append(sample)
                if channel is not None:
                    channel.publish(sample)
            finally:
                collector.producer_finished()

        try:
            config.validate()
            tasks = self.build_tasks(config)
            logger.info("Starting %d DNS probes", len(tasks))
            results = await asyncio.gather(
                *(worker(task) for task in tasks),
                return_exceptions=True,
            )
        finally:
            if channel is not None:
                channel.close()

        # every worker has finished; surface the first unexpected error
        for result in results:
            if isinstance(result, BaseException):
                raise result

        logger.info("Completed %d DNS probes", len(tasks))
        return len(tasks)

    async def close(self):
        """Close the underlying transport."""
        await self.transport.close()
