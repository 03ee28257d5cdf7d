import logging

from pydantic import ValidationError

from sprof.errors import InputResolutionError
from sprof.types import CallGraph
from sprof.utils.fs import FileSystem

logger = logging.getLogger(__name__)


def load_call_graph(fs: FileSystem, path: str) -> CallGraph:
    """Load a call graph saved as JSON (see format_callgraph_json)."""
    try:
        content = fs.read_file(path)
        graph = CallGraph.model_validate_json(content)
    except (OSError, UnicodeDecodeError) as e:
        raise InputResolutionError(f"{path}: {e}") from e
    except ValidationError as e:
        raise InputResolutionError(f"{path}: invalid call graph: {e}") from e
    logger.debug(f"Loaded call graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges from {path}")
    return graph


def format_callgraph_json(call_graph: CallGraph) -> str:
    """Format call graph as JSON."""
    return call_graph.model_dump_json(indent=2, exclude_none=True)
