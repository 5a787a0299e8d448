import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .exceptions import ResolutionError
from .interfaces import FileProvider
from .models import ArrayTypeExpr, BinaryOp, Identifier, ImportDecl, Literal, Module, NamedTypeExpr
from .parser import parse

logger = logging.getLogger(__name__)


@dataclass
class ModuleGraph:
    """Every module reachable from `entry`, with import edges resolved to module ids."""

    entry: str
    modules: Dict[str, Module] = field(default_factory=dict)
    edges: Dict[str, List[Tuple[ImportDecl, str]]] = field(default_factory=dict)

    def dependencies(self, module_id: str) -> List[str]:
        return [target for _, target in self.edges.get(module_id, [])]

    def topological_order(self) -> List[str]:
        """Modules with their dependencies first; the entry module is last."""
        order: List[str] = []
        seen: Set[str] = set()

        def visit(module_id: str) -> None:
            if module_id in seen:
                return
            seen.add(module_id)
            for dep in self.dependencies(module_id):
                visit(dep)
            order.append(module_id)

        visit(self.entry)
        return order


def type_text(type_expr) -> str:
    if isinstance(type_expr, ArrayTypeExpr):
        return f"{type_text(type_expr.element)}[{_size_text(type_expr.size)}]"
    return type_expr.name


def _size_text(expr) -> str:
    if isinstance(expr, Literal):
        return str(expr.value)
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, BinaryOp):
        return f"({_size_text(expr.left)}{expr.op}{_size_text(expr.right)})"
    return "_"


class ModuleResolver:
    def __init__(self, provider: FileProvider):
        self.provider = provider

    def resolve(self, entry_id: str) -> ModuleGraph:
        entry_id = self.provider.resolve(None, entry_id)
        graph = ModuleGraph(entry_id)
        pending = [entry_id]
        while pending:
            module_id = pending.pop()
            if module_id in graph.modules:
                continue
            module = parse(self.provider.read(module_id), module_id)
            logger.debug("Loaded module %s", module_id)
            graph.modules[module_id] = module
            edges = []
            for decl in module.imports:
                target = self.provider.resolve(module_id, decl.path)
                edges.append((decl, target))
                if target not in graph.modules:
                    pending.append(target)
            graph.edges[module_id] = edges

        self._check_cycles(graph)
        for module_id, module in graph.modules.items():
            self._check_duplicates(module)
        for module_id in graph.modules:
            self._check_imports(graph, module_id)
        return graph

    def _check_cycles(self, graph: ModuleGraph) -> None:
        visiting: List[str] = []
        done: Set[str] = set()

        def visit(module_id: str) -> None:
            if module_id in done:
                return
            if module_id in visiting:
                cycle = visiting[visiting.index(module_id):] + [module_id]
                raise ResolutionError(f"Import cycle: {' -> '.join(cycle)}")
            visiting.append(module_id)
            for decl, target in graph.edges.get(module_id, []):
                visit(target)
            visiting.pop()
            done.add(module_id)

        visit(graph.entry)

    def _check_duplicates(self, module: Module) -> None:
        names: Dict[str, str] = {}

        def claim(name: str, what: str, loc) -> None:
            if name in names:
                raise ResolutionError(
                    f"Duplicate symbol '{name}' ({what} clashes with {names[name]})", loc
                )
            names[name] = what

        for const in module.consts:
            claim(const.name, "constant", const.loc)
        for struct in module.structs:
            claim(struct.name, "struct", struct.loc)

        signatures: Set[Tuple[str, Tuple[str, ...]]] = set()
        for func in module.functions:
            if func.name in names:
                raise ResolutionError(
                    f"Duplicate symbol '{func.name}' (function clashes with {names[func.name]})",
                    func.loc,
                )
            key = (func.name, tuple(type_text(p.type_expr) for p in func.params))
            if key in signatures:
                raise ResolutionError(
                    f"Duplicate function '{func.name}({', '.join(key[1])})'", func.loc
                )
            signatures.add(key)

    def _check_imports(self, graph: ModuleGraph, module_id: str) -> None:
        module = graph.modules[module_id]
        local: Dict[str, str] = {c.name: "constant" for c in module.consts}
        local.update({s.name: "struct" for s in module.structs})
        for decl, target in graph.edges[module_id]:
            exported = graph.modules[target]
            for item in decl.items:
                if not self._exports(exported, item.name):
                    raise ResolutionError(
                        f"Module {target} has no symbol '{item.name}'", decl.loc
                    )
                if item.local_name in local:
                    raise ResolutionError(
                        f"Imported name '{item.local_name}' clashes with a local "
                        f"{local[item.local_name]}",
                        decl.loc,
                    )

    @staticmethod
    def _exports(module: Module, name: str) -> bool:
        return (
            any(f.name == name for f in module.functions)
            or any(s.name == name for s in module.structs)
            or any(c.name == name for c in module.consts)
        )


def resolve(entry_id: str, provider: FileProvider, resolver: Optional[ModuleResolver] = None) -> ModuleGraph:
    return (resolver or ModuleResolver(provider)).resolve(entry_id)
