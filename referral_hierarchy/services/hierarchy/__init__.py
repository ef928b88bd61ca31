"""
Hierarchy services package.

Contains the two halves of the referral closure index:
- closure_maintainer: Writes closure rows on edge creation
- query_service: Ancestor/descendant lookups within the visibility cap
"""

from referral_hierarchy.services.hierarchy.closure_maintainer import (
    ClosureMaintainer,
    build_closure_rows,
    build_edge_rows,
)
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyMembership,
    HierarchyQueryService,
)


__all__ = [
    "ClosureMaintainer",
    "HierarchyMembership",
    "HierarchyQueryService",
    "build_closure_rows",
    "build_edge_rows",
]
