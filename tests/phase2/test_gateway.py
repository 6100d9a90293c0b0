"""Tests for SparqlGateway against a mocked HTTP endpoint."""

import httpx
import pytest

from tests.fixtures import make_binding, make_load_response
from trestle.serialization.sparql import MalformedLoadResponseError
from trestle.sync.gateway import LoadTransportError, SaveTransportError, SparqlGateway

ENDPOINT = "http://sparql.test/trestle"
# A control character makes httpx reject the URL before any request is sent
BAD_ENDPOINT = "http://sparql.test/tres\ntle"


def make_gateway(handler) -> SparqlGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SparqlGateway(ENDPOINT, client=client)


class TestFetchBindings:
    async def test_sends_query_and_accept_header(self, config):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = make_load_response([make_binding(config, "root-1", "RootNode")])
            return httpx.Response(200, json=body)

        gateway = make_gateway(handler)
        bindings = await gateway.fetch_bindings("SELECT * WHERE { ?s ?p ?o }")

        assert len(bindings) == 1
        request = seen[0]
        assert request.method == "GET"
        assert request.url.params["query"] == "SELECT * WHERE { ?s ?p ?o }"
        assert "application/sparql-results+json" in request.headers["accept"]

    async def test_http_error_status(self):
        gateway = make_gateway(lambda request: httpx.Response(503, text="down"))
        with pytest.raises(LoadTransportError) as exc_info:
            await gateway.fetch_bindings("SELECT")
        assert exc_info.value.endpoint == ENDPOINT

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        gateway = make_gateway(handler)
        with pytest.raises(LoadTransportError):
            await gateway.fetch_bindings("SELECT")

    async def test_unusable_endpoint_url(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        gateway = SparqlGateway(BAD_ENDPOINT, client=client)
        with pytest.raises(LoadTransportError) as exc_info:
            await gateway.fetch_bindings("SELECT")
        assert exc_info.value.endpoint == BAD_ENDPOINT

    async def test_malformed_body(self):
        gateway = make_gateway(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(MalformedLoadResponseError):
            await gateway.fetch_bindings("SELECT")

    async def test_body_without_bindings(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"boolean": True}))
        with pytest.raises(MalformedLoadResponseError):
            await gateway.fetch_bindings("ASK {}")


class TestPutTurtle:
    async def test_puts_turtle_document(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        gateway = make_gateway(handler)
        await gateway.put_turtle('<http://x/a> <http://x/p> "é" .\n')

        request = seen[0]
        assert request.method == "PUT"
        assert str(request.url) == ENDPOINT
        assert request.headers["content-type"] == "text/turtle"
        assert request.content.decode("utf-8") == '<http://x/a> <http://x/p> "é" .\n'

    async def test_http_error_status(self):
        gateway = make_gateway(lambda request: httpx.Response(500))
        with pytest.raises(SaveTransportError) as exc_info:
            await gateway.put_turtle("")
        assert exc_info.value.endpoint == ENDPOINT

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        gateway = make_gateway(handler)
        with pytest.raises(SaveTransportError):
            await gateway.put_turtle("")

    async def test_unusable_endpoint_url(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204)))
        gateway = SparqlGateway(BAD_ENDPOINT, client=client)
        with pytest.raises(SaveTransportError):
            await gateway.put_turtle("")


class TestClose:
    async def test_borrowed_client_left_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        gateway = SparqlGateway(ENDPOINT, client=client)
        await gateway.close()
        assert not client.is_closed
        await client.aclose()

    async def test_owned_client_closed(self):
        gateway = SparqlGateway(ENDPOINT)
        await gateway.close()
        assert gateway._client.is_closed
