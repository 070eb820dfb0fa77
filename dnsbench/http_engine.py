"""
Website load-time probes.

For every selected server identity, each domain is fetched with a HEAD
request. A transport failure is retried once after a short delay;
exactly one sample is recorded per (identity, domain) pair.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import httpx

from .collector import LogChannel, SampleCollector
from .config import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_SCHEME,
    HTTP_ATTEMPTS,
    HTTP_RETRY_DELAY,
)
from .models import Outcome, ProbeKind, ProbeTask, Sample, ServerIdentity
from .transports import HTTPTransport

logger = logging.getLogger(__name__)


class HTTPLoadTester:
    """
    HTTP probe scheduler.

    Domains are probed one after another for a given identity, while
    identities run concurrently.
    """

    def __init__(
        self,
        transport: HTTPTransport,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        retry_delay: float = HTTP_RETRY_DELAY,
        scheme: str = DEFAULT_SCHEME,
    ):
        self.transport = transport
        self.timeout = timeout
        self.retry_delay = retry_delay
        self.scheme = scheme

    def url_for(self, domain: str) -> str:
        return f"{self.scheme}://{domain}"

    async def probe(self, task: ProbeTask) -> Sample:
        """
        Time one page load, retrying once on transport failure.

        Returns:
            A single sample describing the last attempt made
        """
        url = self.url_for(task.domain)
        timestamp = datetime.now()
        elapsed_ms = 0.0
        last_error: Optional[Exception] = None

        for attempt in range(HTTP_ATTEMPTS):
            loop = asyncio.get_running_loop()
            start = loop.time()
            try:
                status_code, elapsed_ms = await self.transport.head(url, self.timeout)
            except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
                elapsed_ms = (loop.time() - start) * 1000
                last_error = e
                logger.debug("HEAD %s attempt %d failed: %r", url, attempt + 1, e)
                if attempt < HTTP_ATTEMPTS - 1:
                    await asyncio.sleep(self.retry_delay)
                continue

            if status_code >= 400:
                outcome, error = Outcome.FAILURE, f"HTTP {status_code}"
            else:
                outcome, error = Outcome.SUCCESS, None
            return self._sample(task, elapsed_ms, outcome, error, status_code, timestamp)

        return self._sample(
            task,
            elapsed_ms,
            Outcome.FAILURE,
            str(last_error) or type(last_error).__name__,
            0,
            timestamp,
        )

    @staticmethod
    def _sample(
        task: ProbeTask,
        latency_ms: float,
        outcome: Outcome,
        error: Optional[str],
        status_code: int,
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
            kind=ProbeKind.HTTP,
            status_code=status_code,
        )

    async def _probe_identity(
        self,
        identity: ServerIdentity,
        domains: list[str],
        collector: SampleCollector,
        channel: Optional[LogChannel],
    ) -> None:
        collector.producer_started()
        try:
            for domain in domains:
                task = ProbeTask(
                    server_name=identity.name,
                    address=identity.primary,
                    domain=domain,
                    attempt=0,
                    kind=ProbeKind.HTTP,
                )
                sample = await self.probe(task)
                collector.append(sample)
                if channel is not None:
                    channel.publish(sample)
        finally:
            collector.producer_finished()

    async def run(
        self,
        identities: list[ServerIdentity],
        domains: list[str],
        collector: SampleCollector,
        channel: Optional[LogChannel] = None,
    ) -> int:
        """
        Probe every domain for every identity.

        The channel is closed once every identity is done.

        Returns:
            Number of samples produced
        """
        logger.info(
            "Starting HTTP probes for %d server(s) x %d domain(s)",
            len(identities),
            len(domains),
        )
        try:
            results = await asyncio.gather(
                *(
                    self._probe_identity(identity, domains, collector, channel)
                    for identity in identities
                ),
                return_exceptions=True,
            )
        finally:
            if channel is not None:
                channel.close()

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return len(identities) * len(domains)
