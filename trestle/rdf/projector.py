"""RDF projector: projects outline nodes into an rdflib graph.

The read side of the outline. Every node maps onto a fixed predicate set;
the graph content for a node is always rebuilt from the node's current
fields, never patched field by field.
"""

import logging
from collections.abc import Iterable

from rdflib import Graph, Literal, URIRef
from rdflib.namespace import RDF, XSD

from trestle.models import Node
from trestle.rdf.terms import InvalidURIValueError, Vocabulary
from trestle.utils.ids import format_timestamp

logger = logging.getLogger(__name__)


class RDFProjector:
    """Keeps a default-graph triple collection mirroring the node table."""

    def __init__(self, vocabulary: Vocabulary) -> None:
        self._vocab = vocabulary
        self._graph = Graph()
        self._graph.bind("dc", vocabulary.dc)
        self._graph.bind("ts", vocabulary.ts)

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocab

    def project_node(self, node: Node) -> None:
        """Replace every triple whose subject is the node with its current fields."""
        try:
            subject = self._vocab.node_uri(node.id)
        except InvalidURIValueError as e:
            logger.warning("Cannot project node %r: %s", node.id, e)
            return

        self._graph.remove((subject, None, None))
        for predicate, obj in self._predicate_objects(node):
            self._graph.add((subject, predicate, obj))

    def remove_node(self, node_id: str) -> None:
        """Remove triples with the node as subject or as object."""
        uri = self._raw_uri(node_id)
        self._graph.remove((uri, None, None))
        self._graph.remove((None, None, uri))

    def rebuild_all(self, nodes: Iterable[Node]) -> None:
        self.clear()
        for node in nodes:
            self.project_node(node)

    def clear(self) -> None:
        self._graph.remove((None, None, None))

    def get_quads(self) -> Graph:
        """The live graph. Callers must treat it as read-only."""
        return self._graph

    def quads_for(self, node_id: str) -> set[tuple]:
        """(predicate, object) pairs currently projected for a node."""
        return set(self._graph.predicate_objects(self._raw_uri(node_id)))

    def __len__(self) -> int:
        return len(self._graph)

    def _raw_uri(self, node_id: str) -> URIRef:
        return URIRef(f"{self._vocab.base_uri}{node_id}")

    def _predicate_objects(self, node: Node) -> list[tuple]:
        dc = self._vocab.dc
        ts = self._vocab.ts
        pairs: list[tuple] = [(RDF.type, self._vocab.kind_uri(node.kind))]

        if node.title is not None:
            pairs.append((dc["title"], Literal(node.title)))

        if node.created is not None:
            pairs.append(
                (dc["created"], Literal(format_timestamp(node.created), datatype=XSD.dateTime))
            )

        if node.description is not None:
            pairs.append((ts["description"], Literal(node.description)))

        if node.parent_id is not None:
            try:
                parent = self._vocab.node_uri(node.parent_id)
            except InvalidURIValueError as e:
                logger.warning("Node %r: parent projected as literal: %s", node.id, e)
                parent = Literal(node.parent_id)
            pairs.append((ts["parent"], parent))

        if node.index is not None:
            pairs.append((ts["index"], Literal(str(node.index))))

        return pairs
