import ast
import builtins
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from sprof.errors import InputResolutionError, NoEntryPointError
from sprof.types import CallGraph, CallGraphEdge, CallGraphNode, FileLoc, Func
from sprof.utils.fs import FileSystem

logger = logging.getLogger(__name__)

FunctionDef = ast.FunctionDef | ast.AsyncFunctionDef

BUILTIN_NAMES = frozenset(
    name for name in dir(builtins) if callable(getattr(builtins, name)) and not name.startswith("_")
)


@dataclass
class ModuleInfo:
    name: str
    file: str
    source: str
    tree: ast.Module
    is_package: bool = False
    functions: dict[str, FunctionDef] = field(default_factory=dict)
    classes: dict[str, dict[str, FunctionDef]] = field(default_factory=dict)
    # local name -> module, from `import x.y` / `import x.y as z`
    imports: dict[str, str] = field(default_factory=dict)
    # local name -> (module, name), from `from x import y`
    from_imports: dict[str, tuple[str, str]] = field(default_factory=dict)


class CallGraphBuilder:
    """
    Build a call graph from Python source, syntactically.

    Calls are resolved by name only: module functions, methods called through
    self/cls or their class, imported functions and builtins. Anything that
    needs type inference is ignored. Functions outside the analyzed sources
    become leaf nodes without a body size.
    """
    def __init__(self, fs: FileSystem, entry: str = "main"):
        self.fs = fs
        self.entry = entry
        self._modules: dict[str, ModuleInfo] = {}
        self._nodes: dict[Func, CallGraphNode] = {}
        self._edges: list[CallGraphEdge] = []

    def run(self, file_or_dir: str) -> CallGraph:
        self._modules = {}
        self._nodes = {}
        self._edges = []

        root_dir = os.path.abspath(file_or_dir)
        is_dir = self.fs.is_dir(root_dir)
        files = self.fs.list_files(root_dir)
        if not files:
            raise InputResolutionError(f"no Python files found in {file_or_dir}")

        init_file = os.path.join(root_dir, "__init__.py")
        root_is_package = is_dir and init_file in files
        for file in files:
            name, is_package = self._module_name(root_dir, file, is_dir, root_is_package)
            self._modules[name] = self._parse(name, file, is_package)

        for module in self._modules.values():
            self._add_definitions(module)
        for module in sorted(self._modules.values(), key=lambda m: m.name):
            self._add_calls(module)

        root = self._find_entry()
        graph = CallGraph(
            nodes=list(self._nodes.values()),
            edges=self._edges,
            root_id=root.id(),
        )
        logger.debug(
            f"Built call graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges, "
            f"root {graph.root_id}")
        return graph

    def _module_name(self, root_dir: str, file: str, is_dir: bool, root_is_package: bool) -> tuple[str, bool]:
        if not is_dir:
            stem = os.path.splitext(os.path.basename(file))[0]
            if stem == "__init__":
                return os.path.basename(os.path.dirname(file)), True
            return stem, False

        parts = os.path.splitext(os.path.relpath(file, root_dir))[0].split(os.sep)
        is_package = parts[-1] == "__init__"
        if is_package:
            parts = parts[:-1]
        if root_is_package:
            parts = [os.path.basename(root_dir)] + parts
        return ".".join(parts) or os.path.basename(root_dir), is_package

    def _parse(self, name: str, file: str, is_package: bool) -> ModuleInfo:
        try:
            source = self.fs.read_file(file)
            tree = ast.parse(source, filename=file)
        except (OSError, ValueError, SyntaxError) as e:
            raise InputResolutionError(f"{file}: {e}") from e
        logger.debug(f"Parsed module {name} from {file} ({self.fs.get_file_metadata(file).lines} lines)")

        module = ModuleInfo(name=name, file=file, source=source, tree=tree, is_package=is_package)
        for stmt in tree.body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                module.functions[stmt.name] = stmt
            elif isinstance(stmt, ast.ClassDef):
                module.classes[stmt.name] = {
                    item.name: item
                    for item in stmt.body
                    if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
                }

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.asname:
                        module.imports[alias.asname] = alias.name
                    else:
                        top = alias.name.split(".")[0]
                        module.imports[top] = top
            elif isinstance(node, ast.ImportFrom):
                source_module = self._resolve_import_from(module, node)
                for alias in node.names:
                    if alias.name == "*":
                        continue
                    module.from_imports[alias.asname or alias.name] = (source_module, alias.name)
        return module

    def _resolve_import_from(self, module: ModuleInfo, node: ast.ImportFrom) -> str:
        if node.level == 0:
            return node.module or ""
        base = module.name.split(".")
        if not module.is_package:
            base = base[:-1]
        if node.level > 1:
            base = base[:max(0, len(base) - (node.level - 1))]
        if node.module:
            base = base + [node.module]
        return ".".join(base)

    def _add_definitions(self, module: ModuleInfo):
        for name, fn in module.functions.items():
            self._add_function(module, Func(pkg_path=module.name, name=name), fn)
        for class_name, methods in module.classes.items():
            for name, fn in methods.items():
                self._add_function(module, Func(pkg_path=module.name, receiver=class_name, name=name), fn)

    def _add_function(self, module: ModuleInfo, func: Func, fn: FunctionDef):
        segment = ast.get_source_segment(module.source, fn) or ""
        self._nodes[func] = CallGraphNode(
            func=func,
            body_size=len(segment),
            loc=FileLoc(file=module.file, line_start=fn.lineno, line_end=fn.end_lineno or fn.lineno),
        )

    def _add_calls(self, module: ModuleInfo):
        for name, fn in module.functions.items():
            self._add_calls_from(module, Func(pkg_path=module.name, name=name), fn, None)
        for class_name, methods in module.classes.items():
            for name, fn in methods.items():
                caller = Func(pkg_path=module.name, receiver=class_name, name=name)
                self._add_calls_from(module, caller, fn, class_name)

    def _add_calls_from(self, module: ModuleInfo, caller: Func, fn: FunctionDef, class_name: Optional[str]):
        calls = [
            node
            for stmt in fn.body
            for node in ast.walk(stmt)
            if isinstance(node, ast.Call)
        ]
        calls.sort(key=lambda c: (c.lineno, c.col_offset))
        for call in calls:
            callee = self._resolve_call(module, call.func, class_name)
            if callee is None:
                continue
            if callee not in self._nodes:
                # outside the analyzed sources: no body to measure
                self._nodes[callee] = CallGraphNode(func=callee)
            self._edges.append(CallGraphEdge(
                caller_id=str(caller),
                callee_id=str(callee),
                attributes={
                    "loc": {
                        "file": module.file,
                        "line_start": call.lineno,
                        "line_end": call.end_lineno or call.lineno,
                    }
                },
            ))
            logger.debug(f"Found call: {caller} -> {callee} at {module.file}:{call.lineno}")

    def _resolve_call(self, module: ModuleInfo, target: ast.expr, class_name: Optional[str]) -> Optional[Func]:
        if isinstance(target, ast.Name):
            return self._resolve_name(module, target.id)
        if not isinstance(target, ast.Attribute):
            return None

        value = target.value
        if isinstance(value, ast.Name):
            if value.id in ("self", "cls") and class_name is not None:
                if target.attr in module.classes[class_name]:
                    return Func(pkg_path=module.name, receiver=class_name, name=target.attr)
                return None
            if value.id in module.classes:
                return self._resolve_method(module.name, value.id, target.attr)
            if value.id in module.from_imports:
                source_module, name = module.from_imports[value.id]
                imported = self._modules.get(source_module)
                if imported is not None and name in imported.classes:
                    return self._resolve_method(source_module, name, target.attr)

        dotted = _dotted_name(value)
        if dotted is None:
            return None
        target_module = self._module_alias(module, dotted)
        if target_module is None:
            return None
        return self._resolve_qualified(target_module, target.attr)

    def _resolve_name(self, module: ModuleInfo, name: str) -> Optional[Func]:
        if name in module.functions or name in module.classes:
            return self._resolve_qualified(module.name, name)
        if name in module.from_imports:
            source_module, imported_name = module.from_imports[name]
            return self._resolve_qualified(source_module, imported_name)
        if name in BUILTIN_NAMES:
            return Func(name=name)
        return None

    def _resolve_qualified(self, module_name: str, name: str) -> Optional[Func]:
        module = self._modules.get(module_name)
        if module is None:
            return Func(pkg_path=module_name, name=name)
        if name in module.functions:
            return Func(pkg_path=module_name, name=name)
        if name in module.classes:
            return self._resolve_method(module_name, name, "__init__")
        return None

    def _resolve_method(self, module_name: str, class_name: str, name: str) -> Optional[Func]:
        if name in self._modules[module_name].classes[class_name]:
            return Func(pkg_path=module_name, receiver=class_name, name=name)
        return None

    def _module_alias(self, module: ModuleInfo, dotted: str) -> Optional[str]:
        first, _, rest = dotted.partition(".")
        if first in module.imports:
            base = module.imports[first]
        elif first in module.from_imports:
            source_module, name = module.from_imports[first]
            base = f"{source_module}.{name}" if source_module else name
            # a project module's attribute that is not itself a module
            if source_module in self._modules and base not in self._modules:
                return None
        else:
            return None
        return f"{base}.{rest}" if rest else base

    def _find_entry(self) -> CallGraphNode:
        candidates = sorted(
            (m for m in self._modules.values() if self.entry in m.functions),
            key=lambda m: (m.name.split(".")[-1] != "__main__", m.name),
        )
        if not candidates:
            raise NoEntryPointError(f"no {self.entry} function found")
        return self._nodes[Func(pkg_path=candidates[0].name, name=self.entry)]


def _dotted_name(node: ast.expr) -> Optional[str]:
    parts: list[str] = []
    current = node
    while isinstance(current, ast.Attribute):
        parts.append(current.attr)
        current = current.value
    if not isinstance(current, ast.Name):
        return None
    parts.append(current.id)
    return ".".join(reversed(parts))
