"""Turtle side of the serializer.

store_to_turtle writes the document the endpoint receives on save. Its
layout and string escaping are a wire contract: keep them byte-exact.
Reading goes through rdflib's parser and comes back as flat records.
"""

import logging

from rdflib import Graph
from rdflib.namespace import RDF

from trestle.config import TrestleConfig
from trestle.models import ROOT_KIND, FlatNodeRecord
from trestle.rdf.terms import Vocabulary
from trestle.serialization.records import record_from_values
from trestle.serialization.sparql import MalformedLoadResponseError
from trestle.tree.store import NodeStore
from trestle.utils.ids import format_timestamp

logger = logging.getLogger(__name__)


def escape_turtle(text: str | None) -> str:
    """Escape a string for a double-quoted Turtle literal."""
    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def store_to_turtle(store: NodeStore, config: TrestleConfig) -> str:
    """Serialize the whole tree as the Turtle document sent on save.

    Detached subtrees are written too, each item under its recorded parent.
    """
    base = config.base_uri
    lines = [
        f"@prefix dc: <{config.dc_namespace}> .",
        f"@prefix ts: <{config.ts_namespace}> .",
        "",
    ]

    root_id = store.root_id
    for node in store.get_all_nodes():
        subject = f"<{base}{node.id}>"
        if node.kind == ROOT_KIND:
            lines.append(f"{subject} a ts:RootNode .")
            continue

        properties = []
        if node.title:
            properties.append(f'dc:title "{escape_turtle(node.title)}"')
        if node.created is not None:
            properties.append(f'dc:created "{format_timestamp(node.created)}"')
        if node.index is not None:
            properties.append(f'ts:index "{node.index}"')
        # An item loaded without a parent is written under the root
        parent_id = node.parent_id or root_id
        if parent_id:
            properties.append(f"ts:parent <{base}{parent_id}>")

        if properties:
            lines.append(f"{subject} a ts:Node;")
            lines.extend(f"   {prop} ;" for prop in properties[:-1])
            lines.append(f"   {properties[-1]} .")
        else:
            lines.append(f"{subject} a ts:Node .")

        if node.description:
            lines.append(f'{subject} dc:description """{escape_turtle(node.description)}""" .')

    return "\n".join(lines) + "\n"


def turtle_to_flat(text: str, config: TrestleConfig) -> list[FlatNodeRecord]:
    """Parse a Turtle document into flat node records.

    Raises MalformedLoadResponseError if the text is not valid Turtle.
    """
    graph = Graph()
    try:
        graph.parse(data=text, format="turtle")
    except (SyntaxError, ValueError) as e:
        raise MalformedLoadResponseError(f"invalid Turtle: {e}") from e
    return graph_to_flat(graph, Vocabulary.from_config(config))


def graph_to_flat(graph: Graph, vocabulary: Vocabulary) -> list[FlatNodeRecord]:
    """Flat records for every typed subject in a graph.

    Reads the projector's predicates; descriptions are accepted under
    either ts:description or dc:description. One record per rdf:type.
    """
    dc = vocabulary.dc
    ts = vocabulary.ts
    records: list[FlatNodeRecord] = []
    for subject, type_uri in graph.subject_objects(RDF.type):
        description = graph.value(subject, ts["description"])
        if description is None:
            description = graph.value(subject, dc["description"])
        try:
            record = record_from_values(
                str(subject),
                str(type_uri),
                title=_text(graph.value(subject, dc["title"])),
                created=_text(graph.value(subject, dc["created"])),
                index=_text(graph.value(subject, ts["index"])),
                parent=_text(graph.value(subject, ts["parent"])),
                description=_text(description),
            )
        except ValueError as e:
            logger.warning("Skipping %s: %s", subject, e)
            continue
        records.append(record)
    return records


def _text(term: object | None) -> str | None:
    return str(term) if term is not None else None
