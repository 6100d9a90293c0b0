"""Trestle FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trestle.config import TrestleConfig
from trestle.outline.router import get_outline_service
from trestle.outline.router import router as outline_router
from trestle.outline.service import OutlineService
from trestle.sync.gateway import SparqlGateway
from trestle.tree.store import NodeStore

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the outline from the endpoint and wire the service."""
    # .env next to the package root (endpoint settings stay out of shell profile)
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")
    config = TrestleConfig.from_env()

    gateway = SparqlGateway(config.sparql_endpoint, timeout=config.http_timeout)
    store = NodeStore(config)
    service = OutlineService(store, gateway, config)
    await service.load()
    app.dependency_overrides[get_outline_service] = lambda: service

    app.state.config = config
    yield

    await gateway.close()


app = FastAPI(
    title="Trestle",
    description="Hierarchical outliner persisted as RDF through a SPARQL endpoint",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:9090"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(outline_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}
