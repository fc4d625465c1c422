"""family-graph - relationship graph core for a family-tree social app.

Maintains bidirectional parent/child/spouse/sibling adjacency on people,
answers lineage queries, and coordinates optimistic writes against a
remote store.
"""

__version__ = "0.1.0"

from .errors import (
    FamilyGraphError,
    InvalidEdgeError,
    MissingEndpointWarning,
    ReconciliationMismatch,
    RemoteWriteFailure,
)
from .graph import apply_edge, count_ancestors, count_descendants, get_siblings, remove_edge
from .models import Person, PersonDraft, RelationshipEdge, RelationshipType


# Lazy imports keep the pure graph layer free of the async/IO stack
def __getattr__(name: str):
    if name == "FamilyTreeSession":
        from .service import FamilyTreeSession
        return FamilyTreeSession
    if name == "OptimisticCoordinator":
        from .cache import OptimisticCoordinator
        return OptimisticCoordinator
    if name == "CollectionCache":
        from .cache import CollectionCache
        return CollectionCache
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "__version__",
    "Person",
    "PersonDraft",
    "RelationshipEdge",
    "RelationshipType",
    "apply_edge",
    "remove_edge",
    "count_ancestors",
    "count_descendants",
    "get_siblings",
    "FamilyGraphError",
    "InvalidEdgeError",
    "MissingEndpointWarning",
    "ReconciliationMismatch",
    "RemoteWriteFailure",
]
