"""Request and response schemas for outline endpoints."""

from pydantic import BaseModel, ConfigDict

from trestle.models import Node
from trestle.utils.ids import format_timestamp

# -- Requests --


class CreateNodeRequest(BaseModel):
    parent_id: str | None = None  # None: top-level item under the root
    title: str = ""
    index: int | None = None


class NewNodeRequest(BaseModel):
    title: str = ""


class PatchNodeRequest(BaseModel):
    """Fields to update on a node. Only fields present in the request body are changed."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None


class DescriptionRequest(BaseModel):
    description: str | None


class MoveNodeRequest(BaseModel):
    new_parent_id: str
    new_index: int | None = None


# -- Responses --


class NodeResponse(BaseModel):
    node_id: str
    kind: str
    title: str
    created: str | None = None
    description: str | None = None
    parent_id: str | None = None
    child_ids: list[str]
    index: int | None = None

    @classmethod
    def from_node(cls, node: Node) -> "NodeResponse":
        return cls(
            node_id=node.id,
            kind=node.kind,
            title=node.title,
            created=format_timestamp(node.created) if node.created else None,
            description=node.description,
            parent_id=node.parent_id,
            child_ids=node.child_ids,
            index=node.index,
        )


class OutlineResponse(BaseModel):
    root_id: str | None = None
    nodes: list[NodeResponse]


class LoadResponse(BaseModel):
    loaded: bool
    node_count: int


class SaveResponse(BaseModel):
    saved: bool
