"""The outline tree: node table, ordering invariants and mutations."""

from trestle.tree.store import (
    CyclicMoveError,
    InvalidMoveError,
    NodeNotFoundError,
    NodeStore,
    RootExistsError,
    RootNodeError,
)

__all__ = [
    "CyclicMoveError",
    "InvalidMoveError",
    "NodeNotFoundError",
    "NodeStore",
    "RootExistsError",
    "RootNodeError",
]
