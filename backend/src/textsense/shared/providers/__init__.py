"""Multi-provider orchestration building blocks.

Provides sliding-window rate limiting, provider health tracking with
cool-downs, response caching, statistics, and fallback chain construction.
"""

from textsense.shared.providers.types import (
    ErrorRecord,
    ProviderStatus,
    RateLimitStatus,
    StatisticsSnapshot,
)
from textsense.shared.providers.cache import ResponseCache
from textsense.shared.providers.chain import DEFAULT_TASK_CHAINS, build_provider_chain
from textsense.shared.providers.health import ProviderHealthRegistry
from textsense.shared.providers.rate_limiter import RateLimiterFactory, SlidingWindowRateLimiter
from textsense.shared.providers.stats import RequestStatistics

__all__ = [
    "DEFAULT_TASK_CHAINS",
    "ErrorRecord",
    "ProviderHealthRegistry",
    "ProviderStatus",
    "RateLimitStatus",
    "RateLimiterFactory",
    "RequestStatistics",
    "ResponseCache",
    "SlidingWindowRateLimiter",
    "StatisticsSnapshot",
    "build_provider_chain",
]
