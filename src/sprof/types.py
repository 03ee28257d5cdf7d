from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from sprof.errors import NoEntryPointError


class Func(BaseModel):
    """
    Identity of one callable unit.

    Two values with equal (pkg_path, receiver, name) are the same function.
    """
    model_config = ConfigDict(frozen=True)

    pkg_path: str = ""
    receiver: str = ""
    name: str

    def __str__(self) -> str:
        s = ""
        if self.pkg_path:
            s += self.pkg_path + "."
        if self.receiver:
            s += "(" + self.receiver + ")."
        s += self.name
        return s


class FileLoc(BaseModel):
    file: str
    line_start: int
    line_end: int


class CallGraphNode(BaseModel):
    func: Func
    # None when the function has no inspectable source
    body_size: Optional[int] = Field(default=None, ge=0)
    loc: Optional[FileLoc] = None

    def id(self) -> str:
        return str(self.func)


class CallGraphEdgeAttributes(BaseModel):
    loc: FileLoc


class CallGraphEdge(BaseModel):
    caller_id: str
    callee_id: str
    attributes: Optional[CallGraphEdgeAttributes] = None


class CallGraph(BaseModel):
    nodes: list[CallGraphNode]
    edges: list[CallGraphEdge]
    root_id: Optional[str] = None

    _by_id: Optional[dict[str, CallGraphNode]] = PrivateAttr(default=None)
    _out: Optional[dict[str, list[CallGraphNode]]] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def check_references(self) -> "CallGraph":
        ids: set[str] = set()
        for node in self.nodes:
            node_id = node.id()
            if node_id in ids:
                raise ValueError(f"duplicate call graph node: {node_id}")
            ids.add(node_id)
        for edge in self.edges:
            if edge.caller_id not in ids:
                raise ValueError(f"edge from unknown node: {edge.caller_id}")
            if edge.callee_id not in ids:
                raise ValueError(f"edge to unknown node: {edge.callee_id}")
        if self.root_id is not None and self.root_id not in ids:
            raise ValueError(f"unknown root node: {self.root_id}")
        return self

    def __eq__(self, other: object) -> bool:
        # the lazy index is derived state
        if not isinstance(other, CallGraph):
            return NotImplemented
        return (self.nodes, self.edges, self.root_id) == (other.nodes, other.edges, other.root_id)

    def _index(self) -> None:
        if self._by_id is not None:
            return
        self._by_id = {node.id(): node for node in self.nodes}
        self._out = {node_id: [] for node_id in self._by_id}
        for edge in self.edges:
            self._out[edge.caller_id].append(self._by_id[edge.callee_id])

    def node(self, node_id: str) -> CallGraphNode:
        self._index()
        return self._by_id[node_id]

    def callees(self, node_id: str) -> list[CallGraphNode]:
        """Callee nodes of node_id, one per outgoing edge, in edge order."""
        self._index()
        return self._out[node_id]

    def root(self) -> CallGraphNode:
        if self.root_id is None:
            raise NoEntryPointError("call graph has no entry point")
        return self.node(self.root_id)
