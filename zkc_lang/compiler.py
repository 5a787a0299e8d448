import logging
import os
from dataclasses import dataclass
from typing import Optional

from .checker import TypedProgram, check
from .circuit import Circuit
from .config import CompilerConfig
from .flattener import flatten
from .interfaces import FileProvider, FileSystemProvider, InMemoryProvider
from .modules import ModuleGraph, ModuleResolver

logger = logging.getLogger(__name__)


def _with_entry(provider: Optional[InMemoryProvider], module_id: str, source: str) -> InMemoryProvider:
    sources = dict(provider.sources) if provider is not None else {}
    sources[module_id] = source
    return InMemoryProvider(sources)


@dataclass(frozen=True)
class Compilation:
    """Every stage's artifact for one entry module."""

    graph: ModuleGraph
    program: TypedProgram
    circuit: Circuit


def compile_program(
    entry_id: str, provider: FileProvider, config: Optional[CompilerConfig] = None
) -> Compilation:
    config = config or CompilerConfig()
    logger.debug("Compiling %s for curve %s", entry_id, config.curve)
    graph = ModuleResolver(provider).resolve(entry_id)
    program = check(graph, config)
    circuit = flatten(program, config)
    return Compilation(graph, program, circuit)


def compile_source(
    source: str,
    module_id: str = "main.zok",
    config: Optional[CompilerConfig] = None,
    provider: Optional[InMemoryProvider] = None,
) -> Circuit:
    """Compile an in-memory entry module; `provider` supplies any imported modules."""
    return compile_program(module_id, _with_entry(provider, module_id, source), config).circuit


def compile_file(path: str, config: Optional[CompilerConfig] = None) -> Circuit:
    path = os.path.abspath(path)
    provider = FileSystemProvider(os.path.dirname(path))
    return compile_program(os.path.basename(path), provider, config).circuit


def check_source(
    source: str,
    module_id: str = "main.zok",
    config: Optional[CompilerConfig] = None,
    provider: Optional[InMemoryProvider] = None,
) -> TypedProgram:
    """Parse, resolve and type-check without flattening."""
    graph = ModuleResolver(_with_entry(provider, module_id, source)).resolve(module_id)
    return check(graph, config)
