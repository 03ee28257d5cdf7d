import logging

from pydantic import BaseModel, ConfigDict, Field

from sprof.config import MAX_DEPTH, MAX_DEPTH_LIMIT
from sprof.stack import Stack
from sprof.types import CallGraph, CallGraphNode, Func

logger = logging.getLogger(__name__)


class Sample(BaseModel):
    """One weighted call path, frames ordered root first."""
    model_config = ConfigDict(frozen=True)

    frames: tuple[Func, ...]
    count: int = Field(gt=0)


def is_elided(fn: Func) -> bool:
    # package initializers are not meaningful call targets
    return fn.name == "init" and fn.receiver == ""


class StaticProfiler:
    """
    Walk a call graph depth-first from its entry point and weigh every call
    path it reaches.

    A node's weight is its body size divided by the depth it is reached at,
    plus one if it calls nothing else. Functions already on the current path
    are not entered again, and the walk never goes deeper than max_depth
    frames.
    """
    def __init__(self, graph: CallGraph, max_depth: int = MAX_DEPTH):
        if not 1 <= max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}, got {max_depth}")
        self.graph = graph
        self.max_depth = max_depth
        self._samples: list[Sample] = []

    def run(self, root: CallGraphNode | None = None) -> list[Sample]:
        if root is None:
            root = self.graph.root()
        self._samples = []
        self._visit(Stack().add(root.func), root)
        logger.debug(f"Synthesized {len(self._samples)} samples from root {root.id()}")
        return self._samples

    def _visit(self, stack: Stack, node: CallGraphNode):
        callees = self.graph.callees(node.id())

        count = 0
        if node.body_size:
            count += node.body_size // max(1, len(stack))
        if not callees:
            count += 1
        if count > 0:
            self._samples.append(Sample(frames=stack.frames, count=count))

        if len(stack) >= self.max_depth:
            return

        for callee in callees:
            fn = callee.func
            if is_elided(fn):
                continue

            # avoid recursion
            if fn in stack:
                logger.debug(f"Skipping recursive call to {fn} from {node.id()}")
                continue
            self._visit(stack.add(fn), callee)
