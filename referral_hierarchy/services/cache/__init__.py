"""
Result cache package.

Short-TTL memoisation of listing responses with pattern invalidation.
"""

from referral_hierarchy.services.cache.result_cache import ResultCache

__all__ = ["ResultCache"]
