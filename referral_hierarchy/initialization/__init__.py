"""
Initialization package.

Process-level setup shared by entry points and scripts.
"""

from referral_hierarchy.initialization.logging import setup_logging

__all__ = ["setup_logging"]
