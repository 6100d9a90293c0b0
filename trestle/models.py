"""Canonical data structures and event types for Trestle.

Defined once here, referenced everywhere else. `Node` is the in-memory tree
record owned by the NodeStore; `FlatNodeRecord` is the flat shape that comes
back from a SPARQL SELECT (or a parsed Turtle document) before the tree is
linked. Event payloads describe what a NodeStore mutation did; the TreeEvent
wraps them with metadata for listeners.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Canonical data structures
# ---------------------------------------------------------------------------

ROOT_KIND = "RootNode"
ITEM_KIND = "Node"

NodeKind = Literal["RootNode", "Node"]


class Node(BaseModel):
    id: str
    kind: NodeKind = ITEM_KIND
    title: str = ""
    created: datetime | None = None
    description: str | None = None  # markdown
    parent_id: str | None = None
    child_ids: list[str] = Field(default_factory=list)
    index: int | None = None  # position in parent's child_ids, None for the root

    @property
    def is_root(self) -> bool:
        return self.kind == ROOT_KIND


class FlatNodeRecord(BaseModel):
    """One node as loaded from the endpoint: unlinked, with a raw index.

    `type` and `parent` are local names (last URI path segment), not URIs.
    """

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    title: str | None = None
    created: datetime | None = None
    index: int | None = None
    parent: str | None = None
    description: str | None = None


class NodePatch(BaseModel):
    """Fields to update on a node. Only fields explicitly set are applied.

    Structural fields (id, parent, children, index) and the creation time
    cannot be changed through a patch; passing them fails validation.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Event payloads, one per event type
# ---------------------------------------------------------------------------


class RootCreatedPayload(BaseModel):
    node_id: str


class NodeAddedPayload(BaseModel):
    node_id: str
    parent_id: str
    index: int


class NodeUpdatedPayload(BaseModel):
    node_id: str
    fields: list[str]


class NodeMovedPayload(BaseModel):
    node_id: str
    old_parent_id: str | None = None
    new_parent_id: str
    old_index: int | None = None
    new_index: int


class NodeDeletedPayload(BaseModel):
    node_id: str
    parent_id: str | None = None
    deleted_node_ids: list[str]  # descendants first, node_id last


class TreeRebuiltPayload(BaseModel):
    root_id: str | None = None
    node_count: int
    detached_node_ids: list[str] = Field(default_factory=list)  # tops of detached subtrees
    dropped_node_ids: list[str] = Field(default_factory=list)  # not typed as outline nodes


class TreeResetPayload(BaseModel):
    pass


class SaveFailedPayload(BaseModel):
    reason: str


# ---------------------------------------------------------------------------
# Event type registry
# ---------------------------------------------------------------------------

EVENT_TYPES: dict[str, type[BaseModel]] = {
    "RootCreated": RootCreatedPayload,
    "NodeAdded": NodeAddedPayload,
    "NodeUpdated": NodeUpdatedPayload,
    "NodeMoved": NodeMovedPayload,
    "NodeDeleted": NodeDeletedPayload,
    "TreeRebuilt": TreeRebuiltPayload,
    "TreeReset": TreeResetPayload,
    "SaveFailed": SaveFailedPayload,
}


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class TreeEvent(BaseModel):
    """Wraps every tree event with metadata. Delivered to store listeners."""

    event_type: str
    timestamp: datetime
    payload: dict[str, Any]

    def typed_payload(self) -> BaseModel:
        """Deserialize payload into the correct Pydantic model based on event_type."""
        payload_cls = EVENT_TYPES[self.event_type]
        return payload_cls.model_validate(self.payload)
