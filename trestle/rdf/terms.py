"""Namespaces and URI construction for the outline vocabulary."""

import re

from rdflib import Namespace, URIRef

from trestle.config import TrestleConfig

# Characters that may not appear unescaped in an IRI reference
_IRI_FORBIDDEN = re.compile(r'[\x00-\x20<>"{}|^`\\]')


class Vocabulary:
    """The `dc:`/`ts:` namespaces plus the dataset base URI.

    Namespaces are indexed with `ns["title"]`, never attribute access:
    `Namespace` is a str subclass, so `ns.title` / `ns.index` are str methods.
    """

    def __init__(self, base_uri: str, dc_namespace: str, ts_namespace: str) -> None:
        self.base_uri = base_uri
        self.dc = Namespace(dc_namespace)
        self.ts = Namespace(ts_namespace)

    @classmethod
    def from_config(cls, config: TrestleConfig) -> "Vocabulary":
        return cls(config.base_uri, config.dc_namespace, config.ts_namespace)

    def node_uri(self, node_id: str) -> URIRef:
        """Build `{base_uri}{node_id}`. Raises InvalidURIValueError."""
        if not node_id or "/" in node_id:
            raise InvalidURIValueError(node_id, "node id must be a single path segment")
        return checked_uri(f"{self.base_uri}{node_id}")

    def kind_uri(self, kind: str) -> URIRef:
        return self.ts[kind]


def checked_uri(value: str) -> URIRef:
    """Wrap a string as a URIRef, rejecting values that are not valid IRIs."""
    if not value or _IRI_FORBIDDEN.search(value):
        raise InvalidURIValueError(value, "contains characters not allowed in an IRI")
    return URIRef(value)


def local_name(uri: str) -> str:
    """Last path segment of a URI: 'http://x/trestle/nid-1' -> 'nid-1'."""
    return str(uri).rsplit("/", 1)[-1]


class InvalidURIValueError(ValueError):
    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid URI value {value!r}: {reason}")
