"""Sync gateway: the network boundary between the outline and a SPARQL endpoint.

The core only hands over plain data: a query string out and bindings back
on load, a Turtle document out on save.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from trestle.serialization.sparql import parse_load_response

logger = logging.getLogger(__name__)

SPARQL_RESULTS_ACCEPT = "application/sparql-results+json, application/json"
TURTLE_CONTENT_TYPE = "text/turtle"


class SyncGateway(ABC):
    """Abstract interface for outline persistence."""

    @abstractmethod
    async def fetch_bindings(self, query: str) -> list[dict[str, Any]]:
        """Run a SELECT query and return its result rows.

        Raises LoadTransportError or MalformedLoadResponseError.
        """
        ...

    @abstractmethod
    async def put_turtle(self, turtle: str) -> None:
        """Replace the stored outline with a Turtle document.

        Raises SaveTransportError.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""


class SparqlGateway(SyncGateway):
    """GETs queries from and PUTs Turtle to a single endpoint URL."""

    def __init__(
        self,
        endpoint: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def fetch_bindings(self, query: str) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                self._endpoint,
                params={"query": query},
                headers={"Accept": SPARQL_RESULTS_ACCEPT},
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise LoadTransportError(self._endpoint, str(e)) from e

        bindings = parse_load_response(response.content)
        logger.debug("Fetched %d bindings from %s", len(bindings), self._endpoint)
        return bindings

    async def put_turtle(self, turtle: str) -> None:
        try:
            response = await self._client.put(
                self._endpoint,
                content=turtle.encode("utf-8"),
                headers={"Content-Type": TURTLE_CONTENT_TYPE},
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SaveTransportError(self._endpoint, str(e)) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LoadTransportError(Exception):
    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Load from {endpoint} failed: {reason}")


class SaveTransportError(Exception):
    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Save to {endpoint} failed: {reason}")
