"""
Cache module for the Trade Risk Monitor.

Provides Redis-backed advisory locks for batch evaluation.
"""

from riskmonitor.services.cache.redis_client import (
    EvaluationLockCache,
    account_lock_key,
    get_lock_cache,
    init_redis,
    close_redis,
)

__all__ = [
    "EvaluationLockCache",
    "account_lock_key",
    "get_lock_cache",
    "init_redis",
    "close_redis",
]
