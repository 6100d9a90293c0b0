"""Outline service: coordinates NodeStore, serializer and sync gateway.

Owns the load/save lifecycle and the outliner commands (add child, add
sibling, indent, outdent) that the presentation layer triggers. Every
command goes through the NodeStore mutation API.
"""

import asyncio
import logging

from trestle.config import TrestleConfig
from trestle.models import Node, NodePatch, SaveFailedPayload
from trestle.serialization.sparql import (
    MalformedLoadResponseError,
    bindings_to_flat,
    build_load_query,
)
from trestle.serialization.turtle import store_to_turtle
from trestle.sync.gateway import LoadTransportError, SaveTransportError, SyncGateway
from trestle.tree.store import NodeNotFoundError, NodeStore, RootNodeError

logger = logging.getLogger(__name__)


class OutlineService:
    """The single writer for one outline."""

    def __init__(self, store: NodeStore, gateway: SyncGateway, config: TrestleConfig) -> None:
        self._store = store
        self._gateway = gateway
        self._config = config
        self._save_lock = asyncio.Lock()

    @property
    def store(self) -> NodeStore:
        return self._store

    # -- Persistence --

    async def load(self) -> bool:
        """Replace the tree with the endpoint's content.

        Returns True if the endpoint answered. On a transport failure or a
        malformed response the tree is reset to a fresh root-only outline
        and False is returned. An answer without a root gets a new root.
        """
        query = build_load_query(self._config)
        try:
            bindings = await self._gateway.fetch_bindings(query)
        except (LoadTransportError, MalformedLoadResponseError) as e:
            logger.warning("Load failed, starting an empty outline: %s", e)
            self._store.reset()
            self._store.create_root()
            return False

        self._store.rebuild_from_flat(bindings_to_flat(bindings))
        if not self._store.is_ready:
            logger.info("Endpoint holds no outline root; creating one")
            self._store.create_root()

        logger.info("Loaded outline with %d nodes", len(self._store))
        return True

    def to_turtle(self) -> str:
        return store_to_turtle(self._store, self._config)

    async def save(self) -> bool:
        """PUT the current tree. Returns False on failure; local state is kept.

        Concurrent saves are serialized; each one sends the tree as it is
        when its turn comes.
        """
        async with self._save_lock:
            turtle = self.to_turtle()
            try:
                await self._gateway.put_turtle(turtle)
            except SaveTransportError as e:
                logger.error("Save failed: %s", e)
                self._store.publish("SaveFailed", SaveFailedPayload(reason=str(e)))
                return False

        logger.info("Saved outline with %d nodes", len(self._store))
        return True

    # -- Commands --

    def add_root_item(self, title: str = "", index: int | None = None) -> Node:
        """Insert a top-level item at index (clamped), or append."""
        root = self._store.get_root()
        if root is None:
            raise OutlineNotInitializedError()
        return self._store.add_node(root.id, title, index)

    def add_child(self, parent_id: str, title: str = "", index: int | None = None) -> Node:
        return self._store.add_node(parent_id, title, index)

    def add_sibling(self, node_id: str, title: str = "") -> Node:
        """Insert a new node directly after node_id."""
        node = self._require_node(node_id)
        if node.parent_id is None:
            raise RootNodeError(node_id, "add a sibling to")
        return self._store.add_node(node.parent_id, title, (node.index or 0) + 1)

    def update_node(self, node_id: str, patch: NodePatch) -> Node:
        self._require_node(node_id)
        self._store.update_node(node_id, patch)
        return self._require_node(node_id)

    def update_description(self, node_id: str, description: str | None) -> Node:
        self._require_node(node_id)
        self._store.update_description(node_id, description)
        return self._require_node(node_id)

    def move_node(self, node_id: str, new_parent_id: str, new_index: int | None = None) -> Node:
        self._require_node(node_id)
        self._store.move_node(node_id, new_parent_id, new_index)
        return self._require_node(node_id)

    def delete_node(self, node_id: str) -> None:
        self._require_node(node_id)
        self._store.delete_node(node_id)

    def indent(self, node_id: str) -> Node:
        """Make a node the last child of its previous sibling.

        The first child of a parent cannot be indented and is left in place,
        as is a detached top.
        """
        node = self._require_node(node_id)
        parent = self._linked_parent(node)
        if parent is None or not node.index:
            return node

        new_parent_id = parent.child_ids[node.index - 1]
        self._store.move_node(node_id, new_parent_id)
        return self._require_node(node_id)

    def outdent(self, node_id: str) -> Node:
        """Move a node to just after its parent, one level up.

        Children of the root (or of a detached top) cannot be outdented and
        are left in place.
        """
        node = self._require_node(node_id)
        parent = self._linked_parent(node)
        if parent is None or self._linked_parent(parent) is None:
            return node

        self._store.move_node(node_id, parent.parent_id, (parent.index or 0) + 1)
        return self._require_node(node_id)

    def _linked_parent(self, node: Node) -> Node | None:
        if node.parent_id is None:
            return None
        parent = self._store.get_node(node.parent_id)
        if parent is None or node.id not in parent.child_ids:
            return None
        return parent

    def _require_node(self, node_id: str) -> Node:
        node = self._store.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node


class OutlineNotInitializedError(Exception):
    def __init__(self) -> None:
        super().__init__("Outline has no root; load or create one first")
