"""Shared construction of FlatNodeRecords from raw RDF values."""

from trestle.models import FlatNodeRecord
from trestle.rdf.terms import local_name


def record_from_values(
    node: str | None,
    type_: str | None,
    title: str | None = None,
    created: str | None = None,
    index: str | None = None,
    parent: str | None = None,
    description: str | None = None,
) -> FlatNodeRecord:
    """Build a record from URI/literal strings as they come out of a result row.

    node, type_ and parent are URIs and reduce to their last path segment.
    Raises ValueError (including pydantic's ValidationError) for a missing
    node/type, a non-numeric index or a malformed created date.
    """
    if not node:
        raise ValueError("missing ?node")
    if not type_:
        raise ValueError("missing ?type")

    return FlatNodeRecord(
        id=local_name(node),
        type=local_name(type_),
        title=title,
        created=created,
        index=int(index, 10) if index is not None else None,
        parent=local_name(parent) if parent else None,
        description=description,
    )
