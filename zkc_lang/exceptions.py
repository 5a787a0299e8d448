from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class SourceLocation:
    module: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.module}:{self.line}:{self.column}"


class ZkcError(Exception):
    """Base exception for the compiler and the witness interpreter."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location is not None:
            return f"{self.location}: {self.message}"
        return self.message


class ParseError(ZkcError):
    """Raised when source text is not a well-formed program."""

    @property
    def line(self) -> int:
        return self.location.line if self.location else 0

    @property
    def column(self) -> int:
        return self.location.column if self.location else 0


class ResolutionError(ZkcError):
    """Raised for missing modules, missing symbols and import cycles."""

    pass


class TypeCheckKind(Enum):
    UNBOUND_IDENTIFIER = "UnboundIdentifier"
    NO_MATCHING_OVERLOAD = "NoMatchingOverload"
    AMBIGUOUS_CALL = "AmbiguousCall"
    GENERIC_INFERENCE = "GenericInference"
    OUT_OF_BOUNDS = "OutOfBounds"
    TYPE_MISMATCH = "TypeMismatch"
    REDEFINITION = "Redefinition"
    INVALID_RETURN = "InvalidReturn"


class TypeCheckError(ZkcError):
    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        kind: TypeCheckKind = TypeCheckKind.TYPE_MISMATCH,
    ):
        super().__init__(message, location)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind.value}: {super().__str__()}"


class FlattenError(ZkcError):
    """Raised when a typed program cannot be lowered to a finite circuit."""

    pass


class ExecutionKind(Enum):
    ASSERTION_FAILED = "User assertion failed"
    DIVISION_BY_ZERO = "Division by zero"
    OUT_OF_BOUNDS = "Out of bounds array access"
    COMPARISON_RANGE = "Comparison operand exceeds the safe bit width"
    ARGUMENT_BITNESS = "Argument bitness check failed"
    BITNESS = "Bitness check failed"
    SUM = "Sum check failed"
    EUCLIDEAN = "Euclidean check failed"
    EQUAL = "Equal check failed"
    INVALID_INPUT = "Invalid program input"


class ExecutionError(ZkcError):
    """Fatal for one witness computation; the circuit itself stays valid."""

    def __init__(
        self,
        kind: ExecutionKind,
        message: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ):
        super().__init__(message or kind.value, location)
        self.kind = kind


class AbiError(ZkcError):
    pass


class ConfigError(ZkcError):
    pass
