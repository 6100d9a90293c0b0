"""FastAPI routes the presentation layer uses to read and mutate the outline."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from trestle.models import NodePatch
from trestle.outline.schemas import (
    CreateNodeRequest,
    DescriptionRequest,
    LoadResponse,
    MoveNodeRequest,
    NewNodeRequest,
    NodeResponse,
    OutlineResponse,
    PatchNodeRequest,
    SaveResponse,
)
from trestle.outline.service import OutlineNotInitializedError, OutlineService
from trestle.tree.store import CyclicMoveError, NodeNotFoundError, RootNodeError

router = APIRouter(prefix="/api/outline", tags=["outline"])

TURTLE_MEDIA_TYPE = "text/turtle"


def get_outline_service() -> OutlineService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("OutlineService not initialized")


@router.get("")
async def get_outline(
    service: OutlineService = Depends(get_outline_service),
) -> OutlineResponse:
    store = service.store
    return OutlineResponse(
        root_id=store.root_id,
        nodes=[NodeResponse.from_node(node) for node in store.get_all_nodes()],
    )


@router.post("/nodes", status_code=status.HTTP_201_CREATED)
async def create_node(
    request: CreateNodeRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        if request.parent_id is None:
            node = service.add_root_item(request.title, request.index)
        else:
            node = service.add_child(request.parent_id, request.title, request.index)
    except OutlineNotInitializedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return NodeResponse.from_node(node)


@router.get("/nodes/{node_id}")
async def get_node(
    node_id: str,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    node = service.store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return NodeResponse.from_node(node)


@router.patch("/nodes/{node_id}")
async def update_node(
    node_id: str,
    request: PatchNodeRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    patch = NodePatch(**request.model_dump(exclude_unset=True))
    try:
        return NodeResponse.from_node(service.update_node(node_id, patch))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.put("/nodes/{node_id}/description")
async def update_description(
    node_id: str,
    request: DescriptionRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        return NodeResponse.from_node(service.update_description(node_id, request.description))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.post("/nodes/{node_id}/move")
async def move_node(
    node_id: str,
    request: MoveNodeRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        node = service.move_node(node_id, request.new_parent_id, request.new_index)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CyclicMoveError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RootNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return NodeResponse.from_node(node)


@router.delete("/nodes/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(
    node_id: str,
    service: OutlineService = Depends(get_outline_service),
) -> None:
    try:
        service.delete_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except RootNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/nodes/{node_id}/children", status_code=status.HTTP_201_CREATED)
async def add_child(
    node_id: str,
    request: NewNodeRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        return NodeResponse.from_node(service.add_child(node_id, request.title))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.post("/nodes/{node_id}/siblings", status_code=status.HTTP_201_CREATED)
async def add_sibling(
    node_id: str,
    request: NewNodeRequest,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        return NodeResponse.from_node(service.add_sibling(node_id, request.title))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except RootNodeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/nodes/{node_id}/indent")
async def indent_node(
    node_id: str,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        return NodeResponse.from_node(service.indent(node_id))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.post("/nodes/{node_id}/outdent")
async def outdent_node(
    node_id: str,
    service: OutlineService = Depends(get_outline_service),
) -> NodeResponse:
    try:
        return NodeResponse.from_node(service.outdent(node_id))
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.get("/turtle")
async def get_turtle(
    service: OutlineService = Depends(get_outline_service),
) -> Response:
    return Response(content=service.to_turtle(), media_type=TURTLE_MEDIA_TYPE)


@router.post("/save")
async def save_outline(
    service: OutlineService = Depends(get_outline_service),
) -> SaveResponse:
    return SaveResponse(saved=await service.save())


@router.post("/load")
async def load_outline(
    service: OutlineService = Depends(get_outline_service),
) -> LoadResponse:
    loaded = await service.load()
    return LoadResponse(loaded=loaded, node_count=len(service.store))
