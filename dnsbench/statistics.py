"""
Statistical analysis engine for benchmark samples.

Reduces raw samples into:
- Per-server stats (one row per server address)
- Per-domain stats (across all servers)
- Top-N server identities for the HTTP phase
- HTTP samples grouped by server
"""

from typing import Callable, Iterable, Optional

import numpy as np

from .models import (
    AggregateStat,
    HTTPGroup,
    ProbeKind,
    Sample,
    ServerIdentity,
    ServerRanking,
)


def _latency_sort_key(stat: AggregateStat) -> tuple:
    # Groups without a single success have no latency and always sort last
    return (stat.mean_latency is None, stat.display_mean, stat.key)


class StatisticsEngine:
    """Calculates aggregated statistics from samples."""

    @staticmethod
    def aggregate(
        key: str,
        samples: list[Sample],
        **labels: Optional[str],
    ) -> AggregateStat:
        """
        Aggregate one group of samples.

        Min, max and mean are computed over successful samples only and
        are ``None`` when the group has none.
        """
        latencies = np.array([s.latency_ms for s in samples if s.is_success], dtype=float)

        if latencies.size:
            min_lat = float(np.min(latencies))
            max_lat = float(np.max(latencies))
            avg_lat = float(np.mean(latencies))
        else:
            min_lat = max_lat = avg_lat = None

        return AggregateStat(
            key=key,
            min_latency=min_lat,
            max_latency=max_lat,
            mean_latency=avg_lat,
            total_count=len(samples),
            success_count=int(latencies.size),
            **labels,
        )

    @staticmethod
    def _group(
        samples: Iterable[Sample],
        key: Callable[[Sample], tuple],
    ) -> dict[tuple, list[Sample]]:
        groups: dict[tuple, list[Sample]] = {}
        for sample in samples:
            groups.setdefault(key(sample), []).append(sample)
        return groups

    @staticmethod
    def server_stats(samples: Iterable[Sample]) -> list[AggregateStat]:
        """
        Calculate statistics per (server name, server address).

        Args:
            samples: DNS samples of a completed run

        Returns:
            Stats sorted by mean latency, servers without successes last
        """
        dns_samples = (s for s in samples if s.kind == ProbeKind.DNS)
        groups = StatisticsEngine._group(
            dns_samples,
            lambda s: (s.server_name, s.server_address),
        )

        stats = [
            StatisticsEngine.aggregate(
                f"{name} ({address})",
                group,
                server_name=name,
                server_address=address,
            )
            for (name, address), group in groups.items()
        ]
        return sorted(stats, key=_latency_sort_key)

    @staticmethod
    def domain_stats(samples: Iterable[Sample]) -> list[AggregateStat]:
        """Calculate statistics per domain, across every server."""
        dns_samples = (s for s in samples if s.kind == ProbeKind.DNS)
        groups = StatisticsEngine._group(dns_samples, lambda s: (s.domain,))

        stats = [
            StatisticsEngine.aggregate(domain, group, domain=domain)
            for (domain,), group in groups.items()
        ]
        return sorted(stats, key=_latency_sort_key)

    @staticmethod
    def select_top(
        stats: Iterable[AggregateStat],
        n: int,
    ) -> list[ServerRanking]:
        """
        Select the ``n`` fastest server identities.

        Per-address stats of the same server name are merged. The merged
        identity only carries addresses that answered successfully, and
        its mean is taken over all successful samples of those addresses.
        Servers without any success are never selected, so fewer than
        ``n`` rankings may be returned.

        Args:
            stats: Per-server stats from :meth:`server_stats`
            n: Maximum number of identities to return

        Returns:
            Rankings sorted by combined mean latency
        """
        if n < 0:
            raise ValueError(f"n must not be negative, got {n}")

        merged: dict[str, dict] = {}
        for stat in stats:
            if not stat.has_data or stat.server_name is None:
                continue
            entry = merged.setdefault(
                stat.server_name,
                {"addresses": set(), "total": 0.0, "count": 0},
            )
            entry["addresses"].add(stat.server_address)
            entry["total"] += stat.mean_latency * stat.success_count
            entry["count"] += stat.success_count

        rankings = [
            ServerRanking(
                identity=ServerIdentity(name=name, addresses=tuple(sorted(entry["addresses"]))),
                mean_latency=entry["total"] / entry["count"],
                success_count=entry["count"],
            )
            for name, entry in merged.items()
        ]
        rankings.sort(key=lambda r: (r.mean_latency, r.identity.name))
        return rankings[:n]

    @staticmethod
    def group_http(samples: Iterable[Sample]) -> list[HTTPGroup]:
        """
        Group HTTP samples by server name.

        Unlike DNS stats, the mean includes failed probes: their elapsed
        time is still a measured load time.
        """
        http_samples = (s for s in samples if s.kind == ProbeKind.HTTP)
        groups = StatisticsEngine._group(http_samples, lambda s: (s.server_name,))

        result = []
        for (name,), group in groups.items():
            latencies = np.array([s.latency_ms for s in group], dtype=float)
            result.append(HTTPGroup(
                server_name=name,
                mean_latency=float(np.mean(latencies)),
                samples=tuple(sorted(group, key=lambda s: s.latency_ms)),
            ))

        result.sort(key=lambda g: (g.mean_latency, g.server_name))
        return result
