"""
Data models for crawling, path finding and progress reporting.
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field

# node name -> ordered neighbor names
Graph = Dict[str, List[str]]


# --- Crawl pipeline ---

class JobRequest(BaseModel):
    """A node name submitted for crawling."""
    name: str = Field(..., min_length=1, description="Page title to crawl")
    sequence: int = Field(..., ge=1, description="1-based position in the seed file")


class JobResult(BaseModel):
    """Outcome of one JobRequest. Always produced, even on failure."""
    name: str
    sequence: int
    connections: List[str] = Field(default_factory=list, description="Neighbors kept after filtering")
    error: Optional[str] = Field(None, description="Failure description if the fetch failed")

    @property
    def failed(self) -> bool:
        return self.error is not None


class CrawlReport(BaseModel):
    """Summary returned once the aggregator has persisted the graph."""
    output_path: Path
    jobs_processed: int
    node_count: int
    failed_nodes: List[str] = Field(default_factory=list)


# --- Remote link API documents ---

class WikiLink(BaseModel):
    ns: int
    title: str


class WikiPageLinks(BaseModel):
    title: Optional[str] = None
    links: List[WikiLink] = Field(default_factory=list)


class WikiQuery(BaseModel):
    pages: Dict[str, WikiPageLinks] = Field(default_factory=dict)


class WikiContinue(BaseModel):
    plcontinue: Optional[str] = None


class WikiLinksResponse(BaseModel):
    """One page of a `prop=links` query response."""
    query: WikiQuery = Field(default_factory=WikiQuery)
    continue_: WikiContinue = Field(default_factory=WikiContinue, alias="continue")


# --- Path queries ---

class QueryErrorKind(str, Enum):
    """Machine-distinguishable query failure kinds."""
    START_NOT_FOUND = "start_not_found"
    END_NOT_FOUND = "end_not_found"
    NO_PATH = "no_path"


class PathQuery(BaseModel):
    """Request model for a shortest path search."""
    model_config = ConfigDict(populate_by_name=True)

    start_node: Annotated[str, Field(min_length=1)] = Field(..., alias="startNode")
    end_node: Annotated[str, Field(min_length=1)] = Field(..., alias="endNode")


class PathResult(BaseModel):
    """A shortest path, start to end inclusive."""
    path: List[str] = Field(..., min_length=1, description="Node names from start to end")

    @computed_field
    @property
    def length(self) -> int:
        """Number of edges in the path."""
        return len(self.path) - 1


class ExplorationEvent(BaseModel):
    """Nodes visited at one BFS level. Used for observation only."""
    level: int = Field(..., ge=1)
    nodes: List[str] = Field(default_factory=list)


class Person(BaseModel):
    name: str


# --- Progress messages ---
#
# Client sends:  {"startNode": "Albert Einstein", "endNode": "Isaac Newton"}
# Server streams {"type": "level_explored", "data": {"level": 1, "nodes": [...]}}
#                {"type": "path_found", "data": {"path": [...], "length": 2}}

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NodeExplored(_WireModel):
    level: int
    node: str
    nodes_explored_at_level: int = Field(0, alias="nodesExploredAtLevel")


class LevelExplored(_WireModel):
    level: int
    nodes: List[str]


class PathFound(_WireModel):
    path: List[str]
    length: int


class SearchError(_WireModel):
    kind: QueryErrorKind
    message: str


class NodeExploredMessage(_WireModel):
    type: Literal["node_explored"] = "node_explored"
    data: NodeExplored


class LevelExploredMessage(_WireModel):
    type: Literal["level_explored"] = "level_explored"
    data: LevelExplored


class PathFoundMessage(_WireModel):
    type: Literal["path_found"] = "path_found"
    data: PathFound


class ErrorMessage(_WireModel):
    type: Literal["error"] = "error"
    data: SearchError


ProgressMessage = Annotated[
    Union[NodeExploredMessage, LevelExploredMessage, PathFoundMessage, ErrorMessage],
    Field(discriminator="type"),
]

_progress_adapter: TypeAdapter = TypeAdapter(ProgressMessage)


def encode_message(message: BaseModel) -> str:
    """Encode a progress message to its JSON wire form."""
    return message.model_dump_json(by_alias=True)


def decode_message(raw: Union[str, bytes]) -> BaseModel:
    """Decode a JSON wire message into its concrete progress message type."""
    return _progress_adapter.validate_json(raw)
