import functools
import posixpath
from typing import Any, Optional, Tuple

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedEOF, UnexpectedInput, VisitError

from .exceptions import ParseError, SourceLocation, ZkcError
from .grammar import ZKC_GRAMMAR
from .models import (
    ArrayLiteral,
    ArrayRepeat,
    ArrayTypeExpr,
    Assertion,
    Assignee,
    BinaryOp,
    BoolLiteral,
    Call,
    CallStatement,
    ConstDecl,
    Declaration,
    Definition,
    ForLoop,
    FunctionDecl,
    Identifier,
    ImportDecl,
    ImportItem,
    Index,
    IndexSelector,
    Literal,
    Member,
    MemberSelector,
    Module,
    NamedTypeExpr,
    Param,
    PrimTypeExpr,
    Return,
    StructDecl,
    StructLiteral,
    Ternary,
    UnaryOp,
)


HEX_WIDTHS = {2: "u8", 4: "u16", 8: "u32", 16: "u64"}
NUMBER_SUFFIXES = ("u8", "u16", "u32", "u64", "f")


@functools.lru_cache(maxsize=None)
def _parser() -> Lark:
    return Lark(ZKC_GRAMMAR, parser="lalr", propagate_positions=True, maybe_placeholders=False)


def _binary(op: str):
    def build(self, meta, items):
        return BinaryOp(op, items[0], items[1], self._loc(meta))

    return build


@v_args(meta=True)
class AstBuilder(Transformer):
    """Turns a lark parse tree into the frozen dataclass AST of `models`."""

    class _Generics(tuple):
        pass

    class _Params(tuple):
        pass

    class _Returns(tuple):
        pass

    class _Block(tuple):
        pass

    class _GenericArgs(tuple):
        pass

    class _Args(tuple):
        pass

    def __init__(self, module_id: str):
        super().__init__()
        self.module_id = module_id

    def _loc(self, meta) -> Optional[SourceLocation]:
        if getattr(meta, "empty", True):
            return None
        return SourceLocation(self.module_id, meta.line, meta.column)

    def _tok_loc(self, tok: Token) -> SourceLocation:
        return SourceLocation(self.module_id, tok.line, tok.column)

    # --- Declarations ---

    def start(self, meta, items):
        imports = tuple(i for i in items if isinstance(i, ImportDecl))
        consts = tuple(i for i in items if isinstance(i, ConstDecl))
        structs = tuple(i for i in items if isinstance(i, StructDecl))
        functions = tuple(i for i in items if isinstance(i, FunctionDecl))
        return Module(self.module_id, imports, consts, structs, functions)

    def from_import(self, meta, items):
        path, names = items
        return ImportDecl(str(path)[1:-1], tuple(names), self._loc(meta))

    def main_import(self, meta, items):
        path = str(items[0])[1:-1]
        if len(items) > 1:
            alias = str(items[1])
        else:
            alias = posixpath.splitext(posixpath.basename(path))[0]
        return ImportDecl(path, (ImportItem("main", alias),), self._loc(meta))

    def import_list(self, meta, items):
        return items

    def import_item(self, meta, items):
        alias = str(items[1]) if len(items) > 1 else None
        return ImportItem(str(items[0]), alias)

    def const_decl(self, meta, items):
        ty, name, expr = items
        return ConstDecl(ty, str(name), expr, self._loc(meta))

    def struct_decl(self, meta, items):
        return StructDecl(str(items[0]), tuple(items[1:]), self._loc(meta))

    def struct_field(self, meta, items):
        ty, name = items
        return (str(name), ty)

    def function_decl(self, meta, items):
        name = str(items[0])
        generics, params, returns, body = (), (), (), ()
        for item in items[1:]:
            if isinstance(item, self._Generics):
                generics = tuple(item)
            elif isinstance(item, self._Params):
                params = tuple(item)
            elif isinstance(item, self._Returns):
                returns = tuple(item)
            elif isinstance(item, self._Block):
                body = tuple(item)
        return FunctionDecl(name, generics, params, returns, body, self._loc(meta))

    def generic_params(self, meta, items):
        return self._Generics(str(n) for n in items)

    def params(self, meta, items):
        return self._Params(items)

    def param(self, meta, items):
        private = False
        if isinstance(items[0], str) and not isinstance(items[0], Token):
            private = items[0] == "private"
            items = items[1:]
        ty, name = items
        return Param(str(name), ty, private, self._loc(meta))

    def private(self, meta, items):
        return "private"

    def public(self, meta, items):
        return "public"

    def single_return(self, meta, items):
        return self._Returns(items)

    def tuple_return(self, meta, items):
        return self._Returns(items)

    # --- Types ---

    def type(self, meta, items):
        base, dims = items[0], items[1:]
        return self._wrap_dims(base, dims)

    @staticmethod
    def _wrap_dims(base, dims):
        # `T[N][M]` is N arrays of M elements, so the last dimension is innermost.
        ty = base
        for size in reversed(dims):
            ty = ArrayTypeExpr(ty, size, getattr(base, "loc", None))
        return ty

    def array_dim(self, meta, items):
        return items[0]

    def named_type(self, meta, items):
        return NamedTypeExpr(str(items[0]), self._tok_loc(items[0]))

    def field_type(self, meta, items):
        return PrimTypeExpr("field", self._loc(meta))

    def bool_type(self, meta, items):
        return PrimTypeExpr("bool", self._loc(meta))

    def u8_type(self, meta, items):
        return PrimTypeExpr("u8", self._loc(meta))

    def u16_type(self, meta, items):
        return PrimTypeExpr("u16", self._loc(meta))

    def u32_type(self, meta, items):
        return PrimTypeExpr("u32", self._loc(meta))

    def u64_type(self, meta, items):
        return PrimTypeExpr("u64", self._loc(meta))

    # --- Statements ---

    def block(self, meta, items):
        return self._Block(items)

    def definition(self, meta, items):
        return Definition(tuple(items[:-1]), items[-1], self._loc(meta))

    def typed_prim(self, meta, items):
        base, dims, name = items[0], items[1:-1], items[-1]
        return Declaration(self._wrap_dims(base, dims), str(name), self._loc(meta))

    def lhs_named(self, meta, items):
        head = items[0]
        if len(items) > 1 and isinstance(items[-1], Token):
            # `Point[2] ps`: a declaration whose type is a struct name
            selectors = items[1:-1]
            dims = []
            for sel in selectors:
                if not isinstance(sel, IndexSelector):
                    raise ParseError(
                        f"Unexpected member access in the type of '{items[-1]}'",
                        self._loc(meta),
                    )
                dims.append(sel.index)
            base = NamedTypeExpr(str(head), self._tok_loc(head))
            return Declaration(self._wrap_dims(base, dims), str(items[-1]), self._loc(meta))
        return Assignee(str(head), tuple(items[1:]), self._loc(meta))

    def index_sel(self, meta, items):
        return IndexSelector(items[0])

    def member_sel(self, meta, items):
        return MemberSelector(str(items[0]))

    def call_stmt(self, meta, items):
        return CallStatement(items[0], self._loc(meta))

    def assertion(self, meta, items):
        message = str(items[1])[1:-1] if len(items) > 1 else None
        return Assertion(items[0], message, self._loc(meta))

    def for_loop(self, meta, items):
        ty, var, start, end, body = items
        return ForLoop(ty, str(var), start, end, tuple(body), self._loc(meta))

    def return_stmt(self, meta, items):
        return Return(tuple(items), self._loc(meta))

    # --- Expressions ---

    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    rem = _binary("%")
    pow = _binary("**")
    eq = _binary("==")
    ne = _binary("!=")
    lt = _binary("<")
    le = _binary("<=")
    gt = _binary(">")
    ge = _binary(">=")
    and_ = _binary("&&")
    or_ = _binary("||")
    bitand = _binary("&")
    bitor = _binary("|")
    bitxor = _binary("^")
    shl = _binary("<<")
    shr = _binary(">>")

    def neg(self, meta, items):
        return UnaryOp("-", items[0], self._loc(meta))

    def not_(self, meta, items):
        return UnaryOp("!", items[0], self._loc(meta))

    def ternary(self, meta, items):
        return Ternary(items[0], items[1], items[2], self._loc(meta))

    def index(self, meta, items):
        return Index(items[0], items[1], self._loc(meta))

    def member(self, meta, items):
        return Member(items[0], str(items[1]), self._loc(meta))

    def true(self, meta, items):
        return BoolLiteral(True, self._loc(meta))

    def false(self, meta, items):
        return BoolLiteral(False, self._loc(meta))

    def var(self, meta, items):
        return Identifier(str(items[0]), self._tok_loc(items[0]))

    def array_lit(self, meta, items):
        return ArrayLiteral(tuple(items), self._loc(meta))

    def array_repeat(self, meta, items):
        return ArrayRepeat(items[0], items[1], self._loc(meta))

    def struct_lit(self, meta, items):
        return StructLiteral(str(items[0]), tuple(items[1:]), self._loc(meta))

    def field_init(self, meta, items):
        return (str(items[0]), items[1])

    def call(self, meta, items):
        name = str(items[0])
        generic_args: Optional[Tuple[Any, ...]] = None
        args: Tuple[Any, ...] = ()
        for item in items[1:]:
            if isinstance(item, self._GenericArgs):
                generic_args = tuple(item)
            elif isinstance(item, self._Args):
                args = tuple(item)
        return Call(name, generic_args, args, self._loc(meta))

    def generic_args(self, meta, items):
        return self._GenericArgs(items)

    def args(self, meta, items):
        return self._Args(items)

    def number(self, meta, items):
        tok = items[0]
        return parse_number(str(tok), self._tok_loc(tok))


def parse_number(text: str, loc: Optional[SourceLocation] = None) -> Literal:
    if text.startswith("0x"):
        digits = text[2:]
        suffix = HEX_WIDTHS.get(len(digits))
        if suffix is None:
            raise ParseError(
                f"Hex literal '{text}' must have 2, 4, 8 or 16 digits", loc
            )
        return Literal(int(digits, 16), suffix, loc)
    for suffix in NUMBER_SUFFIXES:
        if text.endswith(suffix):
            value = int(text[: -len(suffix)])
            return Literal(value, "field" if suffix == "f" else suffix, loc)
    return Literal(int(text), None, loc)


def _error_location(e: UnexpectedInput, source: str, module_id: str) -> SourceLocation:
    line = getattr(e, "line", -1)
    column = getattr(e, "column", -1)
    if isinstance(e, UnexpectedEOF) or line is None or line < 1:
        lines = source.splitlines() or [""]
        line, column = len(lines), len(lines[-1]) + 1
    return SourceLocation(module_id, line, column)


def _describe(e: UnexpectedInput) -> str:
    token = getattr(e, "token", None)
    if isinstance(e, UnexpectedEOF) or (token is not None and token.type == "$END"):
        return "Unexpected end of input"
    if token is not None:
        expected = sorted(getattr(e, "expected", None) or getattr(e, "accepts", None) or [])
        hint = f" (expected one of: {', '.join(expected[:8])})" if expected else ""
        return f"Unexpected token '{token}'{hint}"
    char = getattr(e, "char", None)
    if char is not None:
        return f"Unexpected character '{char}'"
    return str(e).splitlines()[0]


def parse(source: str, module_id: str = "main.zok") -> Module:
    """Parse one source file. Raises ParseError; never returns a partial AST."""
    try:
        tree = _parser().parse(source)
    except UnexpectedInput as e:
        raise ParseError(_describe(e), _error_location(e, source, module_id)) from e
    try:
        return AstBuilder(module_id).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ZkcError):
            raise e.orig_exc from None
        raise

