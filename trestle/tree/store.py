"""NodeStore: the canonical outline tree, kept in lockstep with its RDF projection.

The store owns the node table and the parent/children adjacency, and the
RDFProjector that mirrors it. Every mutation re-projects exactly the nodes
whose fields it changed before returning, so the graph never holds stale
triples. Listeners receive a TreeEvent after each successful mutation.

Unknown-id policy: update_node, update_description, move_node and
delete_node silently ignore an unknown node id. An unknown *target*
(add_node's parent, move_node's new parent) raises NodeNotFoundError,
because proceeding would orphan a node.

Loaded data may hold nodes the root cannot reach, such as orphans or
members of a parent cycle. They are kept as detached subtrees so
a save writes them back unchanged; only the root's subtree is the outline.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel

from trestle.config import TrestleConfig
from trestle.models import (
    ITEM_KIND,
    ROOT_KIND,
    FlatNodeRecord,
    Node,
    NodeAddedPayload,
    NodeDeletedPayload,
    NodeMovedPayload,
    NodePatch,
    NodeUpdatedPayload,
    RootCreatedPayload,
    TreeEvent,
    TreeRebuiltPayload,
    TreeResetPayload,
)
from trestle.rdf.projector import RDFProjector
from trestle.rdf.terms import Vocabulary
from trestle.utils.ids import generate_node_id, utc_now

logger = logging.getLogger(__name__)

TreeListener = Callable[[TreeEvent], None]


class NodeStore:
    """Ordered n-ary tree of outline nodes with exactly one root."""

    def __init__(
        self,
        config: TrestleConfig | None = None,
        projector: RDFProjector | None = None,
    ) -> None:
        config = config or TrestleConfig()
        self._projector = projector or RDFProjector(Vocabulary.from_config(config))
        self._nodes: dict[str, Node] = {}
        self._root_id: str | None = None
        self._detached_ids: list[str] = []
        self._listeners: list[TreeListener] = []

    # -- State --

    @property
    def is_ready(self) -> bool:
        """True once a root exists (Ready); False while Uninitialized."""
        return self._root_id is not None

    @property
    def root_id(self) -> str | None:
        return self._root_id

    @property
    def detached_ids(self) -> list[str]:
        """Tops of the subtrees not reachable from the root, in load order."""
        return list(self._detached_ids)

    @property
    def projector(self) -> RDFProjector:
        return self._projector

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # -- Listeners --

    def subscribe(self, listener: TreeListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event_type: str, payload: BaseModel) -> TreeEvent:
        """Deliver an event to every listener. A failing listener is logged and skipped."""
        event = TreeEvent(
            event_type=event_type,
            timestamp=utc_now(),
            payload=payload.model_dump(),
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed while handling %s", event_type)
        return event

    # -- Reads --

    def get_node(self, node_id: str) -> Node | None:
        """Snapshot of a node, or None if unknown."""
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node is not None else None

    def get_root(self) -> Node | None:
        if self._root_id is None:
            return None
        return self.get_node(self._root_id)

    def get_all_nodes(self) -> list[Node]:
        """Snapshots of every node, depth-first pre-order from the root.

        Detached subtrees follow the root's, each in pre-order.
        """
        return [self._nodes[node_id].model_copy(deep=True) for node_id in self._walk()]

    def descendant_ids(self, node_id: str) -> list[str]:
        """All descendants of a node in pre-order, excluding the node itself."""
        if node_id not in self._nodes:
            return []
        return self._walk(node_id)[1:]

    def is_ancestor(self, ancestor_id: str, node_id: str) -> bool:
        """True if ancestor_id is a strict ancestor of node_id.

        Follows linked parents only: a detached top's recorded parent is
        not an ancestor.
        """
        current = self._nodes.get(node_id)
        while current is not None and current.parent_id is not None:
            parent = self._nodes.get(current.parent_id)
            if parent is None or current.id not in parent.child_ids:
                break
            if parent.id == ancestor_id:
                return True
            current = parent
        return False

    def to_flat(self) -> list[FlatNodeRecord]:
        """Flat records for every node, the inverse of rebuild_from_flat."""
        return [
            FlatNodeRecord(
                id=node.id,
                type=node.kind,
                title=node.title,
                created=node.created,
                index=node.index,
                parent=node.parent_id,
                description=node.description,
            )
            for node in (self._nodes[node_id] for node_id in self._walk())
        ]

    # -- Mutations --

    def create_root(self) -> Node:
        """Create the root of an empty store. Raises RootExistsError if one exists."""
        if self._root_id is not None:
            raise RootExistsError(self._root_id)

        root = Node(id=generate_node_id("root"), kind=ROOT_KIND, created=utc_now())
        self._nodes[root.id] = root
        self._root_id = root.id
        self._projector.project_node(root)

        self.publish("RootCreated", RootCreatedPayload(node_id=root.id))
        return root.model_copy(deep=True)

    def add_node(self, parent_id: str, title: str = "", index: int | None = None) -> Node:
        """Create a node under parent_id at index (clamped), or append.

        Raises NodeNotFoundError if the parent does not exist.
        """
        parent = self._nodes.get(parent_id)
        if parent is None:
            raise NodeNotFoundError(parent_id)

        node = Node(
            id=generate_node_id(),
            kind=ITEM_KIND,
            title=title or "",
            created=utc_now(),
            parent_id=parent_id,
        )
        self._nodes[node.id] = node
        self._insert_child(parent, node.id, index)
        self._project(self._renumber(parent))

        self.publish(
            "NodeAdded",
            NodeAddedPayload(node_id=node.id, parent_id=parent_id, index=node.index),
        )
        return node.model_copy(deep=True)

    def update_node(self, node_id: str, fields: NodePatch | dict[str, Any]) -> None:
        """Merge title/description into a node. No-op for an unknown node id.

        For a known node, fields outside NodePatch raise ValidationError.
        """
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("update_node: unknown node %r, ignoring", node_id)
            return

        patch = fields if isinstance(fields, NodePatch) else NodePatch.model_validate(fields)

        applied = []
        for field_name in sorted(patch.model_fields_set):
            value = getattr(patch, field_name)
            if field_name == "title" and value is None:
                continue
            setattr(node, field_name, value)
            applied.append(field_name)

        if not applied:
            return

        self._projector.project_node(node)
        self.publish("NodeUpdated", NodeUpdatedPayload(node_id=node_id, fields=applied))

    def update_description(self, node_id: str, text: str | None) -> None:
        """Set (or clear, with None) a node's markdown description."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("update_description: unknown node %r, ignoring", node_id)
            return

        node.description = text
        self._projector.project_node(node)
        self.publish(
            "NodeUpdated", NodeUpdatedPayload(node_id=node_id, fields=["description"])
        )

    def move_node(self, node_id: str, new_parent_id: str, new_index: int | None = None) -> None:
        """Move a node (with its subtree) under new_parent_id at new_index (clamped).

        No-op for an unknown node_id. All checks happen before any mutation:
        RootNodeError for the root, NodeNotFoundError for an unknown new
        parent, CyclicMoveError when the new parent is the node itself or
        one of its descendants.
        """
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("move_node: unknown node %r, ignoring", node_id)
            return
        if node.is_root:
            raise RootNodeError(node_id, "move")

        new_parent = self._nodes.get(new_parent_id)
        if new_parent is None:
            raise NodeNotFoundError(new_parent_id)
        if new_parent_id == node_id or self.is_ancestor(node_id, new_parent_id):
            raise CyclicMoveError(node_id, new_parent_id)

        old_parent_id = node.parent_id
        old_index = node.index
        changed = [node_id]

        old_parent = self._nodes.get(old_parent_id) if old_parent_id is not None else None
        if old_parent is not None and node_id in old_parent.child_ids:
            old_parent.child_ids.remove(node_id)
            changed.extend(self._renumber(old_parent))
        if node_id in self._detached_ids:
            self._detached_ids.remove(node_id)

        node.parent_id = new_parent_id
        self._insert_child(new_parent, node_id, new_index)
        changed.extend(self._renumber(new_parent))
        self._project(changed)

        self.publish(
            "NodeMoved",
            NodeMovedPayload(
                node_id=node_id,
                old_parent_id=old_parent_id,
                new_parent_id=new_parent_id,
                old_index=old_index,
                new_index=node.index,
            ),
        )

    def delete_node(self, node_id: str) -> None:
        """Delete a node and its entire subtree. No-op for an unknown id.

        Raises RootNodeError for the root; use reset() to clear the tree.
        """
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("delete_node: unknown node %r, ignoring", node_id)
            return
        if node_id == self._root_id:
            raise RootNodeError(node_id, "delete")

        # Descendants depth-first, the node itself last
        doomed = list(reversed(self._walk(node_id)))
        for doomed_id in doomed:
            del self._nodes[doomed_id]
            self._projector.remove_node(doomed_id)
        if node_id in self._detached_ids:
            self._detached_ids.remove(node_id)

        parent = self._nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None and node_id in parent.child_ids:
            parent.child_ids.remove(node_id)
            self._project(self._renumber(parent))

        self.publish(
            "NodeDeleted",
            NodeDeletedPayload(
                node_id=node_id,
                parent_id=node.parent_id,
                deleted_node_ids=doomed,
            ),
        )

    def reset(self) -> None:
        """Drop every node and triple; the store becomes Uninitialized."""
        self._nodes = {}
        self._root_id = None
        self._detached_ids = []
        self._projector.clear()
        self.publish("TreeReset", TreeResetPayload())

    def rebuild_from_flat(self, records: Iterable[FlatNodeRecord]) -> None:
        """Replace the whole tree from flat records (e.g. SPARQL result rows).

        Rows for the same id are merged, later non-null fields winning.
        Resources typed neither RootNode nor Node are ignored. The first
        root found becomes the root. Every other outline node is kept:
        links to missing parents are dropped, and whatever the root cannot
        reach stays as a detached subtree. Without a root the store stays
        Uninitialized and every node is detached.
        """
        merged: dict[str, FlatNodeRecord] = {}
        kinds: dict[str, str] = {}
        for record in records:
            existing = merged.get(record.id)
            if existing is None:
                merged[record.id] = record
            else:
                merged[record.id] = existing.model_copy(
                    update=record.model_dump(exclude_none=True)
                )
            if record.type == ROOT_KIND or (
                record.type == ITEM_KIND and kinds.get(record.id) != ROOT_KIND
            ):
                kinds[record.id] = record.type

        # First pass: register every outline node
        nodes: dict[str, Node] = {}
        dropped: list[str] = []
        root_id: str | None = None
        for node_id, record in merged.items():
            kind = kinds.get(node_id)
            if kind is None:
                logger.debug("Ignoring %r: type %r is not an outline type", node_id, record.type)
                dropped.append(node_id)
                continue
            if kind == ROOT_KIND and root_id is None:
                root_id = node_id
            nodes[node_id] = Node(
                id=node_id,
                kind=kind,
                title=record.title or "",
                created=record.created,
                description=record.description,
                parent_id=record.parent if kind == ITEM_KIND else None,
                index=record.index if kind == ITEM_KIND else None,
            )

        # Second pass: link children, dropping links to missing parents
        for node_id, node in nodes.items():
            if node.parent_id is None or node.parent_id == node_id:
                continue
            parent = nodes.get(node.parent_id)
            if parent is not None:
                parent.child_ids.append(node_id)
        for node in nodes.values():
            node.child_ids.sort(key=lambda child_id: nodes[child_id].index or 0)

        seen = _preorder(nodes, root_id) if root_id is not None else {}
        detached: list[str] = []

        def detach(top_id: str) -> None:
            detached.append(top_id)
            seen.update(_preorder(nodes, top_id))

        for node_id, node in nodes.items():
            if node_id not in seen and (node.parent_id is None or node.parent_id not in nodes):
                detach(node_id)
        # Whatever is left hangs off a parent cycle: cut the link into each top
        for node_id, node in nodes.items():
            if node_id in seen:
                continue
            parent = nodes[node.parent_id]
            if node_id in parent.child_ids:
                parent.child_ids.remove(node_id)
            detach(node_id)

        if root_id is None:
            logger.warning(
                "No root among %d loaded records; store left uninitialized", len(merged)
            )
        if detached:
            logger.warning(
                "Keeping %d detached subtrees not reachable from root %r", len(detached), root_id
            )

        self._nodes = nodes
        self._root_id = root_id
        self._detached_ids = detached
        for node in self._nodes.values():
            self._renumber(node)

        self._projector.rebuild_all(self._nodes[node_id] for node_id in self._walk())
        self.publish(
            "TreeRebuilt",
            TreeRebuiltPayload(
                root_id=root_id,
                node_count=len(self._nodes),
                detached_node_ids=detached,
                dropped_node_ids=dropped,
            ),
        )

    # -- Internals --

    def _walk(self, start_id: str | None = None) -> list[str]:
        """Pre-order ids from start_id, or the root's subtree then every detached one."""
        if start_id is not None:
            if start_id not in self._nodes:
                return []
            return list(_preorder(self._nodes, start_id))

        tops = ([self._root_id] if self._root_id is not None else []) + self._detached_ids
        order: dict[str, None] = {}
        for top_id in tops:
            order.update(_preorder(self._nodes, top_id))
        return list(order)

    @staticmethod
    def _insert_child(parent: Node, child_id: str, index: int | None) -> None:
        if index is None:
            parent.child_ids.append(child_id)
        else:
            position = max(0, min(index, len(parent.child_ids)))
            parent.child_ids.insert(position, child_id)

    def _renumber(self, parent: Node) -> list[str]:
        """Set each child's index to its position. Returns ids whose index changed."""
        changed = []
        for position, child_id in enumerate(parent.child_ids):
            child = self._nodes[child_id]
            if child.index != position:
                child.index = position
                changed.append(child_id)
        return changed

    def _project(self, node_ids: Iterable[str]) -> None:
        for node_id in dict.fromkeys(node_ids):
            node = self._nodes.get(node_id)
            if node is not None:
                self._projector.project_node(node)


def _preorder(nodes: dict[str, Node], start_id: str) -> dict[str, None]:
    """Ids reachable from start_id, in depth-first pre-order (as an ordered set)."""
    order: dict[str, None] = {}
    stack = [start_id]
    while stack:
        node_id = stack.pop()
        if node_id in order or node_id not in nodes:
            continue
        order[node_id] = None
        stack.extend(reversed(nodes[node_id].child_ids))
    return order


class NodeNotFoundError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class RootExistsError(Exception):
    def __init__(self, root_id: str) -> None:
        self.root_id = root_id
        super().__init__(f"Root already exists: {root_id}")


class InvalidMoveError(Exception):
    pass


class RootNodeError(InvalidMoveError):
    def __init__(self, node_id: str, operation: str) -> None:
        self.node_id = node_id
        self.operation = operation
        super().__init__(f"Cannot {operation} the root node: {node_id}")


class CyclicMoveError(InvalidMoveError):
    def __init__(self, node_id: str, new_parent_id: str) -> None:
        self.node_id = node_id
        self.new_parent_id = new_parent_id
        super().__init__(
            f"Cannot move {node_id} under {new_parent_id}: it is the node or one of its descendants"
        )
