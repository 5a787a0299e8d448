from dataclasses import dataclass
from typing import Optional, Tuple, Union, TYPE_CHECKING

from .exceptions import SourceLocation

if TYPE_CHECKING:
    from .types import Type


# --- Type expressions (as written in source) ---


@dataclass(frozen=True)
class PrimTypeExpr:
    name: str
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class NamedTypeExpr:
    name: str
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class ArrayTypeExpr:
    element: "TypeExpr"
    size: "Expr"
    loc: Optional[SourceLocation] = None


TypeExpr = Union[PrimTypeExpr, NamedTypeExpr, ArrayTypeExpr]


# --- Expressions ---
# `ty` is None in parser output and set by the checker on the copies it returns.


@dataclass(frozen=True)
class Literal:
    value: int
    suffix: Optional[str] = None
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class BoolLiteral:
    value: bool
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Identifier:
    name: str
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expr"
    right: "Expr"
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Expr"
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Ternary:
    condition: "Expr"
    consequence: "Expr"
    alternative: "Expr"
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Call:
    name: str
    generic_args: Optional[Tuple["Expr", ...]]
    args: Tuple["Expr", ...]
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None
    returns: Tuple["Type", ...] = ()
    target: Optional[str] = None


@dataclass(frozen=True)
class Index:
    base: "Expr"
    index: "Expr"
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Member:
    base: "Expr"
    name: str
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class ArrayLiteral:
    items: Tuple["Expr", ...]
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class ArrayRepeat:
    value: "Expr"
    count: "Expr"
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class StructLiteral:
    name: str
    fields: Tuple[Tuple[str, "Expr"], ...]
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


Expr = Union[
    Literal,
    BoolLiteral,
    Identifier,
    BinaryOp,
    UnaryOp,
    Ternary,
    Call,
    Index,
    Member,
    ArrayLiteral,
    ArrayRepeat,
    StructLiteral,
]


# --- Statements ---


@dataclass(frozen=True)
class IndexSelector:
    index: Expr


@dataclass(frozen=True)
class MemberSelector:
    name: str


Selector = Union[IndexSelector, MemberSelector]


@dataclass(frozen=True)
class Declaration:
    type_expr: TypeExpr
    name: str
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Assignee:
    name: str
    selectors: Tuple[Selector, ...] = ()
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


Target = Union[Declaration, Assignee]


@dataclass(frozen=True)
class Definition:
    targets: Tuple[Target, ...]
    expr: Expr
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class CallStatement:
    call: Call
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class Assertion:
    expr: Expr
    message: Optional[str] = None
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class ForLoop:
    var_type: TypeExpr
    var: str
    start: Expr
    end: Expr
    body: Tuple["Statement", ...]
    loc: Optional[SourceLocation] = None
    ty: Optional["Type"] = None


@dataclass(frozen=True)
class Return:
    exprs: Tuple[Expr, ...]
    loc: Optional[SourceLocation] = None


Statement = Union[Definition, CallStatement, Assertion, ForLoop, Return]


# --- Declarations ---


@dataclass(frozen=True)
class ImportItem:
    name: str
    alias: Optional[str] = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class ImportDecl:
    path: str
    items: Tuple[ImportItem, ...]
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class ConstDecl:
    type_expr: TypeExpr
    name: str
    expr: Expr
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class StructDecl:
    name: str
    fields: Tuple[Tuple[str, TypeExpr], ...]
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class Param:
    name: str
    type_expr: TypeExpr
    private: bool = False
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class FunctionDecl:
    name: str
    generics: Tuple[str, ...]
    params: Tuple[Param, ...]
    returns: Tuple[TypeExpr, ...]
    body: Tuple[Statement, ...]
    loc: Optional[SourceLocation] = None


@dataclass(frozen=True)
class Module:
    id: str
    imports: Tuple[ImportDecl, ...]
    consts: Tuple[ConstDecl, ...]
    structs: Tuple[StructDecl, ...]
    functions: Tuple[FunctionDecl, ...]
