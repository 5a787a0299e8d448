from .grammar import ZKC_GRAMMAR
from .exceptions import (
    AbiError,
    ConfigError,
    ExecutionError,
    ExecutionKind,
    FlattenError,
    ParseError,
    ResolutionError,
    SourceLocation,
    TypeCheckError,
    TypeCheckKind,
    ZkcError,
)
from .fields import PrimeField
from .config import CompilerConfig, load_config
from .parser import parse
from .interfaces import FileProvider, FileSystemProvider, InMemoryProvider
from .modules import ModuleGraph, ModuleResolver
from .checker import TypedProgram, check
from .circuit import Circuit, LinComb
from .flattener import flatten
from .abi import AbiSignature
from .interpreter import Witness, compute_witness, execute
from .backend import Backend, Proof, VerificationKey, get_backend, register_backend
from .compiler import Compilation, compile_file, compile_program, compile_source

__all__ = [
    "ZKC_GRAMMAR",
    "ZkcError",
    "ParseError",
    "ResolutionError",
    "TypeCheckError",
    "TypeCheckKind",
    "FlattenError",
    "ExecutionError",
    "ExecutionKind",
    "AbiError",
    "ConfigError",
    "SourceLocation",
    "PrimeField",
    "CompilerConfig",
    "load_config",
    "parse",
    "FileProvider",
    "FileSystemProvider",
    "InMemoryProvider",
    "ModuleGraph",
    "ModuleResolver",
    "TypedProgram",
    "check",
    "Circuit",
    "LinComb",
    "flatten",
    "AbiSignature",
    "Witness",
    "execute",
    "compute_witness",
    "Backend",
    "Proof",
    "VerificationKey",
    "get_backend",
    "register_backend",
    "Compilation",
    "compile_source",
    "compile_file",
    "compile_program",
]
