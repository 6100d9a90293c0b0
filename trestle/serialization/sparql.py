"""SPARQL side of the serializer: the load query and its JSON result rows."""

import json
import logging
from typing import Any

from trestle.config import TrestleConfig
from trestle.models import FlatNodeRecord
from trestle.serialization.records import record_from_values

logger = logging.getLogger(__name__)

_OPTIONAL_VARIABLES = ("title", "created", "index", "parent", "description")


def build_load_query(config: TrestleConfig) -> str:
    """SELECT every typed resource with its outline fields.

    Only ?node and ?type are required. Descriptions are read from either
    dc:description or ts:description. No type filter: resources that are
    not outline nodes are discarded when the tree is rebuilt.
    """
    return f"""
PREFIX dc: <{config.dc_namespace}>
PREFIX ts: <{config.ts_namespace}>

SELECT ?node ?type ?title ?created ?index ?parent ?description WHERE {{
    ?node a ?type .
    OPTIONAL {{ ?node dc:title ?title }} .
    OPTIONAL {{ ?node dc:created ?created }} .
    OPTIONAL {{ ?node ts:index ?index }} .
    OPTIONAL {{ ?node ts:parent ?parent }} .
    OPTIONAL {{ ?node dc:description|ts:description ?description }} .
}}
"""


def parse_load_response(raw: str | bytes | dict[str, Any]) -> list[dict[str, Any]]:
    """Extract `results.bindings` from a SPARQL JSON result.

    Raises MalformedLoadResponseError if the payload is not JSON or has no
    bindings list.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MalformedLoadResponseError("response is not valid JSON") from e
    else:
        data = raw

    try:
        bindings = data["results"]["bindings"]
    except (KeyError, TypeError) as e:
        raise MalformedLoadResponseError("response has no results.bindings") from e

    if not isinstance(bindings, list):
        raise MalformedLoadResponseError("results.bindings is not a list")
    return bindings


def bindings_to_flat(bindings: list[dict[str, Any]]) -> list[FlatNodeRecord]:
    """Convert result rows into flat node records.

    A row with a missing ?node/?type, a malformed date or a non-numeric
    index is skipped with a warning; the remaining rows still load.
    """
    records: list[FlatNodeRecord] = []
    for position, binding in enumerate(bindings):
        try:
            values = {name: _binding_value(binding, name) for name in _OPTIONAL_VARIABLES}
            record = record_from_values(
                _binding_value(binding, "node"),
                _binding_value(binding, "type"),
                **values,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping binding %d: %s", position, e)
            continue
        records.append(record)

    if len(records) < len(bindings):
        logger.info("Loaded %d of %d bindings", len(records), len(bindings))
    return records


def _binding_value(binding: dict[str, Any], name: str) -> str | None:
    entry = binding.get(name)
    if entry is None:
        return None
    return entry["value"]


class MalformedLoadResponseError(Exception):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed load response: {reason}")
