"""Optimistic local cache: collection store and mutation coordinator."""

from .coordinator import Mutation, OptimisticCoordinator
from .store import PEOPLE, UPDATES, CollectionCache

__all__ = [
    "CollectionCache",
    "OptimisticCoordinator",
    "Mutation",
    "PEOPLE",
    "UPDATES",
]
