"""Shared test helpers."""

from typing import Any

from rdflib import Literal, URIRef
from rdflib.namespace import RDF, XSD

from trestle.config import TrestleConfig
from trestle.models import Node
from trestle.sync.gateway import SyncGateway
from trestle.tree.store import NodeStore
from trestle.utils.ids import format_timestamp


class FakeGateway(SyncGateway):
    """Serves canned bindings and records every saved Turtle document."""

    def __init__(
        self,
        bindings: list[dict[str, Any]] | None = None,
        load_error: Exception | None = None,
        save_error: Exception | None = None,
    ) -> None:
        self.bindings = bindings or []
        self.load_error = load_error
        self.save_error = save_error
        self.queries: list[str] = []
        self.saved: list[str] = []

    async def fetch_bindings(self, query: str) -> list[dict[str, Any]]:
        self.queries.append(query)
        if self.load_error is not None:
            raise self.load_error
        return self.bindings

    async def put_turtle(self, turtle: str) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(turtle)


# -- SPARQL result helpers --


def make_binding(
    config: TrestleConfig,
    node_id: str,
    type_: str = "Node",
    title: str | None = None,
    created: str | None = None,
    index: int | str | None = None,
    parent: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """One SPARQL JSON result row for an outline node."""
    binding: dict[str, Any] = {
        "node": {"type": "uri", "value": f"{config.base_uri}{node_id}"},
        "type": {"type": "uri", "value": f"{config.ts_namespace}{type_}"},
    }
    if title is not None:
        binding["title"] = {"type": "literal", "value": title}
    if created is not None:
        binding["created"] = {"type": "literal", "value": created}
    if index is not None:
        binding["index"] = {"type": "literal", "value": str(index)}
    if parent is not None:
        binding["parent"] = {"type": "uri", "value": f"{config.base_uri}{parent}"}
    if description is not None:
        binding["description"] = {"type": "literal", "value": description}
    return binding


def make_load_response(bindings: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "head": {"vars": ["node", "type", "title", "created", "index", "parent", "description"]},
        "results": {"bindings": bindings},
    }


# -- Tree helpers --


def build_sample_tree(store: NodeStore) -> dict[str, str]:
    """root -> A -> (A1, A2), root -> B. Returns ids by label."""
    root = store.get_root() or store.create_root()
    a = store.add_node(root.id, "A")
    b = store.add_node(root.id, "B")
    a1 = store.add_node(a.id, "A1")
    a2 = store.add_node(a.id, "A2")
    return {"root": root.id, "A": a.id, "B": b.id, "A1": a1.id, "A2": a2.id}


def structure(store: NodeStore) -> dict[str, tuple[str | None, str, list[str]]]:
    """id -> (parent_id, title, child_ids): what a round-trip must preserve."""
    return {
        node.id: (node.parent_id, node.title, node.child_ids)
        for node in store.get_all_nodes()
    }


def expected_pairs(node: Node, config: TrestleConfig) -> set[tuple]:
    """The (predicate, object) pairs a node's fields should project to."""
    dc = config.dc_namespace
    ts = config.ts_namespace
    pairs: set[tuple] = {
        (RDF.type, URIRef(f"{ts}{node.kind}")),
        (URIRef(f"{dc}title"), Literal(node.title)),
    }
    if node.created is not None:
        pairs.add(
            (URIRef(f"{dc}created"), Literal(format_timestamp(node.created), datatype=XSD.dateTime))
        )
    if node.description is not None:
        pairs.add((URIRef(f"{ts}description"), Literal(node.description)))
    if node.parent_id is not None:
        pairs.add((URIRef(f"{ts}parent"), URIRef(f"{config.base_uri}{node.parent_id}")))
    if node.index is not None:
        pairs.add((URIRef(f"{ts}index"), Literal(str(node.index))))
    return pairs


def assert_tree_consistent(store: NodeStore, config: TrestleConfig) -> None:
    """Check every structural invariant and the projection of every node."""
    nodes = {node.id: node for node in store.get_all_nodes()}
    assert len(nodes) == len(store), "every node is walked from the root or a detached top"

    root = nodes[store.root_id]
    assert root.is_root
    assert root.parent_id is None
    assert root.index is None

    attached = {root.id, *store.descendant_ids(root.id)}
    assert [node_id for node_id in attached if nodes[node_id].is_root] == [root.id]
    assert not attached & set(store.detached_ids)

    for node in nodes.values():
        assert len(set(node.child_ids)) == len(node.child_ids)
        for position, child_id in enumerate(node.child_ids):
            child = nodes[child_id]
            assert child.parent_id == node.id
            assert child.index == position
        if node.id in attached and not node.is_root:
            assert node.id in nodes[node.parent_id].child_ids

    total = 0
    for node in nodes.values():
        pairs = expected_pairs(node, config)
        assert store.projector.quads_for(node.id) == pairs, node.id
        total += len(pairs)
    assert len(store.projector) == total, "no stray triples"
