"""Family graph maintenance: mutator, traversal queries, registry helpers.

Everything in this package is pure and synchronous; asynchronous
persistence and cache coordination live in ``family_graph.cache``.
"""
from .moderation import filter_blocked_updates, hidden_person_ids, mark_blocked_placeholders
from .mutator import apply_edge, remove_edge, require_endpoints
from .queries import (
    FamilyUnit,
    LineageEntry,
    TraversalDirection,
    count_ancestors,
    count_descendants,
    family_unit,
    get_siblings,
    sibling_group,
    walk_ancestors,
    walk_descendants,
)
from .registry import (
    add_person,
    build_registry,
    find_by_account,
    project_registry,
    replace_person,
    swap_identifier,
)

__all__ = [
    # Mutator
    "apply_edge",
    "remove_edge",
    "require_endpoints",
    # Queries
    "count_ancestors",
    "count_descendants",
    "get_siblings",
    "sibling_group",
    "walk_ancestors",
    "walk_descendants",
    "family_unit",
    "FamilyUnit",
    "LineageEntry",
    "TraversalDirection",
    # Registry
    "build_registry",
    "project_registry",
    "add_person",
    "replace_person",
    "swap_identifier",
    "find_by_account",
    # Moderation
    "mark_blocked_placeholders",
    "hidden_person_ids",
    "filter_blocked_updates",
]
