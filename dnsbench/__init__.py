"""
dnsbench - DNS resolver benchmark with website load-time correlation.

Measures resolver latency for every server address, ranks the fastest
resolvers and times real page loads for the same domains.
"""

__version__ = "2.0.0"

from .collector import LogChannel, SampleCollector
from .models import (
    AggregateStat,
    BenchmarkConfig,
    BenchmarkReport,
    ConfigurationError,
    Outcome,
    Sample,
    ServerIdentity,
)
from .query_engine import DNSQueryEngine
from .runner import TestRunner
from .statistics import StatisticsEngine

__all__ = [
    "__version__",
    "AggregateStat",
    "BenchmarkConfig",
    "BenchmarkReport",
    "ConfigurationError",
    "DNSQueryEngine",
    "LogChannel",
    "Outcome",
    "Sample",
    "SampleCollector",
    "ServerIdentity",
    "StatisticsEngine",
    "TestRunner",
]
