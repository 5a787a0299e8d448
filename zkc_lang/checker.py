import logging
from dataclasses import dataclass, field as dc_field, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .abi import AbiInput, AbiSignature
from .config import CompilerConfig
from .exceptions import FlattenError, SourceLocation, TypeCheckError, TypeCheckKind
from .fields import PrimeField
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
    Index,
    IndexSelector,
    Literal,
    Member,
    MemberSelector,
    NamedTypeExpr,
    PrimTypeExpr,
    Return,
    StructDecl,
    StructLiteral,
    Ternary,
    UnaryOp,
)
from .modules import ModuleGraph
from .scope import ScopeManager
from .types import (
    BOOL,
    FIELD,
    INT_LITERAL,
    PRIMITIVES,
    U32,
    UINT_WIDTHS,
    ArrayType,
    BoolType,
    FieldType,
    IntLiteralType,
    StructType,
    Type,
    UintType,
    assignable,
    concrete,
    contains_literal,
    is_numeric,
    unify_literal,
)

logger = logging.getLogger(__name__)

ARITHMETIC = {"+", "-", "*", "/", "%"}
COMPARISONS = {"<", "<=", ">", ">="}
EQUALITY = {"==", "!="}
LOGICAL = {"&&", "||"}
BITWISE = {"&", "|", "^"}
SHIFTS = {"<<", ">>"}

BUILTINS = ("to_field", "to_bits", "from_bits")


@dataclass(frozen=True)
class TypedParam:
    name: str
    ty: Type
    private: bool = False


@dataclass(frozen=True)
class TypedFunction:
    key: str
    module: str
    name: str
    generic_values: Tuple[int, ...]
    params: Tuple[TypedParam, ...]
    returns: Tuple[Type, ...]
    body: tuple
    loc: Optional[SourceLocation] = None


@dataclass
class TypedProgram:
    functions: Dict[str, TypedFunction]
    main: str
    signature: AbiSignature
    field: PrimeField
    entry: str = ""

    @property
    def main_function(self) -> TypedFunction:
        return self.functions[self.main]


@dataclass(frozen=True)
class FunctionRef:
    module: str
    decl: FunctionDecl
    index: int

    def key(self, generic_values: Sequence[int]) -> str:
        suffix = f"<{','.join(str(v) for v in generic_values)}>" if generic_values else ""
        return f"{self.module}::{self.decl.name}/{self.index}{suffix}"


@dataclass
class ModuleContext:
    """Names visible at the top level of one module."""

    module_id: str
    consts: Dict[str, Any] = dc_field(default_factory=dict)
    structs: Dict[str, Tuple[str, StructDecl]] = dc_field(default_factory=dict)
    functions: Dict[str, List[FunctionRef]] = dc_field(default_factory=dict)


class _InferenceFailure(Exception):
    pass


def _type_error(message: str, loc, kind: TypeCheckKind = TypeCheckKind.TYPE_MISMATCH):
    return TypeCheckError(message, loc, kind)


# --- Compile-time folding ---


def fold_constant(expr, field: PrimeField) -> Any:
    """Value of a typed expression built only from literals, or None."""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, BoolLiteral):
        return expr.value
    if isinstance(expr, ArrayLiteral):
        items = [fold_constant(i, field) for i in expr.items]
        return None if any(i is None for i in items) else items
    if isinstance(expr, ArrayRepeat):
        value = fold_constant(expr.value, field)
        count = fold_constant(expr.count, field)
        return None if value is None or count is None else [value] * count
    if isinstance(expr, StructLiteral):
        members = {n: fold_constant(e, field) for n, e in expr.fields}
        return None if any(v is None for v in members.values()) else members
    if isinstance(expr, Index):
        base = fold_constant(expr.base, field)
        idx = fold_constant(expr.index, field)
        if base is None or idx is None or not 0 <= idx < len(base):
            return None
        return base[idx]
    if isinstance(expr, Member):
        base = fold_constant(expr.base, field)
        return None if base is None else base.get(expr.name)
    if isinstance(expr, UnaryOp):
        value = fold_constant(expr.operand, field)
        if value is None:
            return None
        if expr.op == "!":
            if isinstance(expr.ty, UintType):
                return ~value & expr.ty.max_value
            return not value
        return field.neg(value)
    if isinstance(expr, Ternary):
        cond = fold_constant(expr.condition, field)
        if cond is None:
            return None
        return fold_constant(expr.consequence if cond else expr.alternative, field)
    if isinstance(expr, BinaryOp):
        left = fold_constant(expr.left, field)
        right = fold_constant(expr.right, field)
        if left is None or right is None:
            return None
        return _fold_binary(expr.op, expr.left.ty, left, right, field)
    return None


def _fold_binary(op: str, ty: Type, a: Any, b: Any, field: PrimeField) -> Any:
    if op in EQUALITY:
        return (a == b) == (op == "==")
    if op == "&&":
        return a and b
    if op == "||":
        return a or b
    if op in COMPARISONS:
        return {"<": a < b, "<=": a <= b, ">": a > b, ">=": a >= b}[op]
    if isinstance(ty, UintType):
        mask = ty.max_value
        if op == "+":
            return (a + b) & mask
        if op == "-":
            return (a - b) & mask
        if op == "*":
            return (a * b) & mask
        if op in ("/", "%"):
            if b == 0:
                return None
            return a // b if op == "/" else a % b
        if op == "&":
            return a & b
        if op == "|":
            return a | b
        if op == "^":
            return a ^ b
        if op == "<<":
            return (a << b) & mask
        if op == ">>":
            return a >> b
        return None
    if op == "+":
        return field.add(a, b)
    if op == "-":
        return field.sub(a, b)
    if op == "*":
        return field.mul(a, b)
    if op == "/":
        return None if b % field.modulus == 0 else field.div(a, b)
    if op == "**":
        return field.pow(a, b)
    return None


def value_to_expr(value: Any, ty: Type, loc=None):
    """Literal expression of a folded constant, already typed."""
    if isinstance(ty, BoolType):
        return BoolLiteral(bool(value), loc, ty)
    if isinstance(ty, ArrayType):
        items = tuple(value_to_expr(v, ty.element, loc) for v in value)
        return ArrayLiteral(items, loc, ty)
    if isinstance(ty, StructType):
        fields = tuple((n, value_to_expr(value[n], t, loc)) for n, t in ty.members)
        return StructLiteral(ty.name, fields, loc, ty)
    return Literal(value, str(ty), loc, ty)


# --- Checker ---


class Checker:
    """Type checks a module graph and monomorphises every reachable function."""

    def __init__(self, graph: ModuleGraph, config: Optional[CompilerConfig] = None):
        self.graph = graph
        self.config = config or CompilerConfig()
        self.field = self.config.field
        self.contexts: Dict[str, ModuleContext] = {}
        self.functions: Dict[str, TypedFunction] = {}
        self._instantiating: List[str] = []
        self._structs: Dict[Tuple[str, str], StructType] = {}
        self._structs_in_progress: Set[Tuple[str, str]] = set()

    def check(self) -> TypedProgram:
        for module_id in self.graph.topological_order():
            self._build_context(module_id)

        for module_id in self.graph.topological_order():
            ctx = self.contexts[module_id]
            for refs in ctx.functions.values():
                for ref in refs:
                    if ref.module == module_id and not ref.decl.generics:
                        self.instantiate(ref, ())

        main_key, signature = self._entry_point()
        logger.debug("Checked %d function instantiations", len(self.functions))
        return TypedProgram(self.functions, main_key, signature, self.field, self.graph.entry)

    # --- Module level ---

    def _build_context(self, module_id: str) -> None:
        module = self.graph.modules[module_id]
        ctx = ModuleContext(module_id)
        self.contexts[module_id] = ctx

        counts: Dict[str, int] = {}
        for decl in module.functions:
            index = counts.get(decl.name, 0)
            counts[decl.name] = index + 1
            ctx.functions.setdefault(decl.name, []).append(FunctionRef(module_id, decl, index))
        for struct in module.structs:
            ctx.structs[struct.name] = (module_id, struct)

        for decl, target in self.graph.edges.get(module_id, []):
            source = self.contexts[target]
            for item in decl.items:
                local = item.local_name
                if item.name in source.functions:
                    own = [r for r in source.functions[item.name] if r.module == target]
                    ctx.functions.setdefault(local, []).extend(own or source.functions[item.name])
                elif item.name in source.structs:
                    ctx.structs[local] = source.structs[item.name]
                elif item.name in source.consts:
                    ctx.consts[local] = source.consts[item.name]

        for const in module.consts:
            ctx.consts[const.name] = self._evaluate_const(ctx, const)

    def _evaluate_const(self, ctx: ModuleContext, const: ConstDecl):
        body = BodyChecker(self, ctx, {})
        ty = body.resolve_type(const.type_expr)
        typed = body.coerce(body.expr(const.expr, ty), ty, const.loc)
        value = fold_constant(typed, self.field)
        if value is None:
            raise _type_error(
                f"Constant '{const.name}' must be a compile-time value", const.loc
            )
        return value_to_expr(value, ty, const.loc)

    def struct_type(self, ctx: ModuleContext, name: str, loc) -> StructType:
        if name not in ctx.structs:
            raise _type_error(f"Undefined type '{name}'", loc, TypeCheckKind.UNBOUND_IDENTIFIER)
        module_id, decl = ctx.structs[name]
        key = (module_id, decl.name)
        if key in self._structs:
            return self._structs[key]
        if key in self._structs_in_progress:
            raise _type_error(f"Struct '{decl.name}' contains itself", decl.loc)
        self._structs_in_progress.add(key)
        try:
            body = BodyChecker(self, self.contexts[module_id], {})
            members = []
            seen: Set[str] = set()
            for member_name, type_expr in decl.fields:
                if member_name in seen:
                    raise _type_error(
                        f"Duplicate member '{member_name}' in struct '{decl.name}'",
                        decl.loc,
                        TypeCheckKind.REDEFINITION,
                    )
                seen.add(member_name)
                members.append((member_name, body.resolve_type(type_expr)))
            ty = StructType(decl.name, tuple(members), module_id)
        finally:
            self._structs_in_progress.discard(key)
        self._structs[key] = ty
        return ty

    def _entry_point(self) -> Tuple[str, AbiSignature]:
        entry = self.graph.entry
        refs = [r for r in self.contexts[entry].functions.get("main", []) if r.module == entry]
        if not refs:
            raise _type_error(
                f"Module {entry} has no 'main' function", None, TypeCheckKind.UNBOUND_IDENTIFIER
            )
        if len(refs) > 1:
            raise _type_error("'main' cannot be overloaded", refs[1].decl.loc, TypeCheckKind.AMBIGUOUS_CALL)
        ref = refs[0]
        if ref.decl.generics:
            raise _type_error("'main' cannot be generic", ref.decl.loc, TypeCheckKind.GENERIC_INFERENCE)
        key = self.instantiate(ref, ())
        main = self.functions[key]
        inputs = tuple(AbiInput(p.name, p.ty, not p.private) for p in main.params)
        return key, AbiSignature(inputs, main.returns)

    # --- Monomorphisation ---

    def instantiate(self, ref: FunctionRef, generic_values: Tuple[int, ...]) -> str:
        key = ref.key(generic_values)
        if key in self.functions or key in self._instantiating:
            # A key still being checked is a recursive call; the flattener rejects it.
            return key
        if len(self._instantiating) >= self.config.max_inline_depth:
            raise FlattenError(
                f"Recursion through '{ref.decl.name}' exceeds the inlining depth of "
                f"{self.config.max_inline_depth}",
                ref.decl.loc,
            )
        self._instantiating.append(key)
        try:
            decl = ref.decl
            generics = dict(zip(decl.generics, generic_values))
            body = BodyChecker(self, self.contexts[ref.module], generics)
            params = tuple(
                TypedParam(p.name, body.resolve_type(p.type_expr), p.private) for p in decl.params
            )
            returns = tuple(body.resolve_type(t) for t in decl.returns)
            typed_body = body.function_body(decl, params, returns)
        finally:
            self._instantiating.pop()
        self.functions[key] = TypedFunction(
            key, ref.module, decl.name, tuple(generic_values), params, returns, typed_body, decl.loc
        )
        logger.debug("Instantiated %s", key)
        return key


class BodyChecker:
    """Checks the statements and expressions of one function instantiation."""

    def __init__(self, checker: Checker, ctx: ModuleContext, generics: Dict[str, int]):
        self.checker = checker
        self.ctx = ctx
        self.generics = generics
        self.field = checker.field
        self.scope = ScopeManager()

    # --- Types ---

    def resolve_type(self, type_expr) -> Type:
        if isinstance(type_expr, PrimTypeExpr):
            return PRIMITIVES[type_expr.name]
        if isinstance(type_expr, NamedTypeExpr):
            return self.checker.struct_type(self.ctx, type_expr.name, type_expr.loc)
        if isinstance(type_expr, ArrayTypeExpr):
            element = self.resolve_type(type_expr.element)
            return ArrayType(element, self.constant_u32(type_expr.size, "Array size"))
        raise _type_error(f"Unknown type {type_expr!r}", getattr(type_expr, "loc", None))

    def constant_u32(self, expr, what: str) -> int:
        typed = self.coerce(self.expr(expr, U32), U32, expr.loc)
        value = fold_constant(typed, self.field)
        if value is None:
            raise _type_error(f"{what} must be a compile-time constant", expr.loc)
        return value

    def coerce(self, expr, target: Type, loc):
        if expr.ty == target:
            return expr
        if not assignable(expr.ty, target):
            raise _type_error(f"Expected {target}, found {expr.ty}", loc or expr.loc)
        return self._retype(expr, target)

    def _retype(self, expr, target: Type):
        if not contains_literal(expr.ty):
            return expr
        if isinstance(expr, Literal):
            self._check_literal_range(expr.value, target, expr.loc)
            return replace(expr, ty=target)
        if isinstance(expr, BinaryOp):
            if expr.op in ("**", "<<", ">>"):
                return replace(expr, left=self._retype(expr.left, target), ty=target)
            return replace(
                expr,
                left=self._retype(expr.left, target),
                right=self._retype(expr.right, target),
                ty=target,
            )
        if isinstance(expr, UnaryOp):
            if expr.op == "-" and isinstance(target, UintType):
                raise _type_error(f"Negative value cannot be {target}", expr.loc)
            return replace(expr, operand=self._retype(expr.operand, target), ty=target)
        if isinstance(expr, Ternary):
            return replace(
                expr,
                consequence=self._retype(expr.consequence, target),
                alternative=self._retype(expr.alternative, target),
                ty=target,
            )
        if isinstance(expr, ArrayLiteral):
            items = tuple(self._retype(i, target.element) for i in expr.items)
            return replace(expr, items=items, ty=target)
        if isinstance(expr, ArrayRepeat):
            return replace(expr, value=self._retype(expr.value, target.element), ty=target)
        if isinstance(expr, Index):
            base_ty = ArrayType(target, expr.base.ty.length)
            return replace(expr, base=self._retype(expr.base, base_ty), ty=target)
        raise _type_error(f"Cannot use {expr.ty} as {target}", expr.loc)

    def _check_literal_range(self, value: int, ty: Type, loc) -> None:
        if isinstance(ty, UintType) and value > ty.max_value:
            raise _type_error(f"Literal {value} does not fit in {ty}", loc, TypeCheckKind.OUT_OF_BOUNDS)
        if isinstance(ty, FieldType) and value >= self.field.modulus:
            raise _type_error(
                f"Literal {value} is not smaller than the field modulus", loc, TypeCheckKind.OUT_OF_BOUNDS
            )
        if isinstance(ty, BoolType):
            raise _type_error("Integer literal used as bool", loc)

    def _settle(self, expr):
        """Give leftover literal-typed operands the default numeric type."""
        if contains_literal(expr.ty):
            return self._retype(expr, concrete(expr.ty))
        return expr

    # --- Function bodies ---

    def function_body(self, decl: FunctionDecl, params: Tuple[TypedParam, ...], returns: Tuple[Type, ...]):
        for param, typed in zip(decl.params, params):
            self.scope.declare(param.name, typed.ty, param.loc)
        self.returns = returns
        body = decl.body
        out = []
        for i, stmt in enumerate(body):
            if isinstance(stmt, Return) and i != len(body) - 1:
                raise _type_error(
                    "return must be the last statement of a function", stmt.loc, TypeCheckKind.INVALID_RETURN
                )
            out.append(self.statement(stmt, top_level=True))
        if returns and not (body and isinstance(body[-1], Return)):
            raise _type_error(
                f"Function '{decl.name}' must end with a return statement",
                decl.loc,
                TypeCheckKind.INVALID_RETURN,
            )
        return tuple(out)

    def statement(self, stmt, top_level: bool = False):
        if isinstance(stmt, Definition):
            return self._definition(stmt)
        if isinstance(stmt, CallStatement):
            return replace(stmt, call=self.expr(stmt.call))
        if isinstance(stmt, Assertion):
            expr = self.expr(stmt.expr, BOOL)
            if expr.ty != BOOL:
                raise _type_error(f"assert expects bool, found {expr.ty}", stmt.loc)
            return replace(stmt, expr=expr)
        if isinstance(stmt, ForLoop):
            return self._for_loop(stmt)
        if isinstance(stmt, Return):
            if not top_level:
                raise _type_error(
                    "return is not allowed inside a loop", stmt.loc, TypeCheckKind.INVALID_RETURN
                )
            return self._return(stmt)
        raise _type_error(f"Unsupported statement {type(stmt).__name__}", getattr(stmt, "loc", None))

    def _return(self, stmt: Return):
        if len(stmt.exprs) != len(self.returns):
            raise _type_error(
                f"Expected {len(self.returns)} return values, found {len(stmt.exprs)}",
                stmt.loc,
                TypeCheckKind.INVALID_RETURN,
            )
        exprs = tuple(
            self.coerce(self.expr(e, ty), ty, e.loc) for e, ty in zip(stmt.exprs, self.returns)
        )
        return replace(stmt, exprs=exprs)

    def _for_loop(self, stmt: ForLoop):
        ty = self.resolve_type(stmt.var_type)
        if not isinstance(ty, (UintType, FieldType)):
            raise _type_error(f"Loop variable must be numeric, found {ty}", stmt.loc)
        start = self.coerce(self.expr(stmt.start, ty), ty, stmt.loc)
        end = self.coerce(self.expr(stmt.end, ty), ty, stmt.loc)
        self.scope.push_frame()
        try:
            self.scope.declare(stmt.var, ty, stmt.loc, readonly=True)
            body = tuple(self.statement(s) for s in stmt.body)
        finally:
            self.scope.pop_frame()
        return replace(stmt, start=start, end=end, body=body, ty=ty)

    def _definition(self, stmt: Definition):
        if len(stmt.targets) > 1:
            if not isinstance(stmt.expr, Call):
                raise _type_error("Multiple targets require a function call", stmt.loc)
            call = self.expr(stmt.expr)
            if len(call.returns) != len(stmt.targets):
                raise _type_error(
                    f"Expected {len(stmt.targets)} values, '{call.name}' returns {len(call.returns)}",
                    stmt.loc,
                )
            targets = []
            for target, ty in zip(stmt.targets, call.returns):
                typed = self._target(target)
                if typed.ty != ty:
                    raise _type_error(f"Expected {typed.ty}, found {ty}", target.loc or stmt.loc)
                targets.append(typed)
            self._declare_targets(targets)
            return replace(stmt, targets=tuple(targets), expr=call)

        target = self._target(stmt.targets[0])
        expr = self.expr(stmt.expr, target.ty)
        if isinstance(expr, Call) and len(expr.returns) != 1:
            raise _type_error(f"'{expr.name}' returns {len(expr.returns)} values", stmt.loc)
        expr = self.coerce(expr, target.ty, stmt.loc)
        self._declare_targets([target])
        return replace(stmt, targets=(target,), expr=expr)

    def _declare_targets(self, targets) -> None:
        for target in targets:
            if isinstance(target, Declaration):
                self.scope.declare(target.name, target.ty, target.loc)
            else:
                # Loop variables cannot be reassigned.
                self.scope.set(target.name, self.scope.get(target.name, target.loc), target.loc)

    def _target(self, target):
        if isinstance(target, Declaration):
            return replace(target, ty=self.resolve_type(target.type_expr))
        ty = self.scope.get(target.name, target.loc)
        selectors = []
        for sel in target.selectors:
            if isinstance(sel, IndexSelector):
                if not isinstance(ty, ArrayType):
                    raise _type_error(f"Cannot index into {ty}", target.loc)
                index = self._index_expr(sel.index, ty, target.loc)
                selectors.append(IndexSelector(index))
                ty = ty.element
            else:
                if not isinstance(ty, StructType) or ty.member(sel.name) is None:
                    raise _type_error(f"{ty} has no member '{sel.name}'", target.loc)
                selectors.append(sel)
                ty = ty.member(sel.name)
        return replace(target, selectors=tuple(selectors), ty=ty)

    def _index_expr(self, index, array: ArrayType, loc):
        typed = self.coerce(self.expr(index, U32), U32, index.loc or loc)
        value = fold_constant(typed, self.field)
        if value is not None and value >= array.length:
            raise _type_error(
                f"Index {value} is out of bounds for {array}", index.loc or loc, TypeCheckKind.OUT_OF_BOUNDS
            )
        return typed

    # --- Expressions ---

    def expr(self, e, expected: Optional[Type] = None):
        method = getattr(self, "_expr_" + type(e).__name__, None)
        if method is None:
            raise _type_error(f"Unsupported expression {type(e).__name__}", getattr(e, "loc", None))
        return method(e, expected)

    def _expr_Literal(self, e: Literal, expected):
        if e.suffix is not None:
            ty = PRIMITIVES[e.suffix]
            self._check_literal_range(e.value, ty, e.loc)
            return replace(e, ty=ty)
        if expected is not None and isinstance(expected, (FieldType, UintType)):
            self._check_literal_range(e.value, expected, e.loc)
            return replace(e, ty=expected)
        return replace(e, ty=INT_LITERAL)

    def _expr_BoolLiteral(self, e: BoolLiteral, expected):
        return replace(e, ty=BOOL)

    def _expr_Identifier(self, e: Identifier, expected):
        ty = self.scope.lookup(e.name)
        if ty is not None:
            return replace(e, ty=ty)
        if e.name in self.generics:
            return Literal(self.generics[e.name], "u32", e.loc, U32)
        if e.name in self.ctx.consts:
            return replace(self.ctx.consts[e.name], loc=e.loc)
        raise _type_error(f"Identifier '{e.name}' is undefined", e.loc, TypeCheckKind.UNBOUND_IDENTIFIER)

    def _expr_UnaryOp(self, e: UnaryOp, expected):
        operand = self.expr(e.operand, expected)
        if e.op == "!":
            if operand.ty != BOOL and not isinstance(operand.ty, UintType):
                raise _type_error(f"'!' expects bool or an unsigned integer, found {operand.ty}", e.loc)
            return replace(e, operand=operand, ty=operand.ty)
        if isinstance(operand.ty, UintType) or not is_numeric(operand.ty):
            raise _type_error(f"Unary '-' expects field, found {operand.ty}", e.loc)
        return replace(e, operand=operand, ty=operand.ty)

    def _expr_BinaryOp(self, e: BinaryOp, expected):
        op = e.op
        if op in LOGICAL:
            left = self.expr(e.left, BOOL)
            right = self.expr(e.right, BOOL)
            if left.ty != BOOL or right.ty != BOOL:
                raise _type_error(f"'{op}' expects bool operands, found {left.ty} and {right.ty}", e.loc)
            return replace(e, left=left, right=right, ty=BOOL)

        if op == "**":
            left = self.expr(e.left, expected)
            right = self.coerce(self.expr(e.right, U32), U32, e.loc)
            if not isinstance(left.ty, (FieldType, IntLiteralType)):
                raise _type_error(f"'**' expects a field base, found {left.ty}", e.loc)
            if fold_constant(right, self.field) is None:
                raise _type_error("Exponent must be a compile-time constant", e.right.loc or e.loc)
            return replace(e, left=left, right=right, ty=left.ty)

        if op in SHIFTS:
            left = self.expr(e.left, expected)
            right = self.coerce(self.expr(e.right, U32), U32, e.loc)
            if not isinstance(left.ty, (UintType, IntLiteralType)):
                raise _type_error(f"'{op}' expects an unsigned integer, found {left.ty}", e.loc)
            if fold_constant(right, self.field) is None:
                raise _type_error("Shift amount must be a compile-time constant", e.right.loc or e.loc)
            return replace(e, left=left, right=right, ty=left.ty)

        operand_hint = expected if op in ARITHMETIC or op in BITWISE else None
        left = self.expr(e.left, operand_hint)
        right = self.expr(e.right, operand_hint)
        ty = unify_literal(left.ty, right.ty)
        if ty is None:
            raise _type_error(f"Cannot apply '{op}' to {left.ty} and {right.ty}", e.loc)
        if op in EQUALITY or op in COMPARISONS:
            if contains_literal(ty):
                ty = concrete(ty)
            left, right = self.coerce(left, ty, e.loc), self.coerce(right, ty, e.loc)
            if op in COMPARISONS and not isinstance(ty, (FieldType, UintType)):
                raise _type_error(f"'{op}' expects field or unsigned operands, found {ty}", e.loc)
            return replace(e, left=left, right=right, ty=BOOL)

        left, right = self.coerce(left, ty, e.loc), self.coerce(right, ty, e.loc)
        if op in BITWISE and not isinstance(ty, (UintType, IntLiteralType)):
            raise _type_error(f"'{op}' expects unsigned operands, found {ty}", e.loc)
        if op == "%" and not isinstance(ty, (UintType, IntLiteralType)):
            raise _type_error(f"'%' expects unsigned operands, found {ty}", e.loc)
        if op in ARITHMETIC and not is_numeric(ty):
            raise _type_error(f"'{op}' expects numeric operands, found {ty}", e.loc)
        return replace(e, left=left, right=right, ty=ty)

    def _expr_Ternary(self, e: Ternary, expected):
        cond = self.expr(e.condition, BOOL)
        if cond.ty != BOOL:
            raise _type_error(f"Condition must be bool, found {cond.ty}", e.loc)
        yes = self.expr(e.consequence, expected)
        no = self.expr(e.alternative, expected)
        ty = unify_literal(yes.ty, no.ty)
        if ty is None:
            raise _type_error(f"Branches have different types {yes.ty} and {no.ty}", e.loc)
        return replace(
            e, condition=cond, consequence=self.coerce(yes, ty, e.loc), alternative=self.coerce(no, ty, e.loc), ty=ty
        )

    def _expr_Index(self, e: Index, expected):
        base = self._settle(self.expr(e.base))
        if not isinstance(base.ty, ArrayType):
            raise _type_error(f"Cannot index into {base.ty}", e.loc)
        index = self._index_expr(e.index, base.ty, e.loc)
        return replace(e, base=base, index=index, ty=base.ty.element)

    def _expr_Member(self, e: Member, expected):
        base = self.expr(e.base)
        if not isinstance(base.ty, StructType) or base.ty.member(e.name) is None:
            raise _type_error(f"{base.ty} has no member '{e.name}'", e.loc)
        return replace(e, base=base, ty=base.ty.member(e.name))

    def _expr_ArrayLiteral(self, e: ArrayLiteral, expected):
        element_hint = expected.element if isinstance(expected, ArrayType) else None
        if not e.items:
            if element_hint is None or expected.length != 0:
                raise _type_error("Cannot infer the type of an empty array", e.loc)
            return replace(e, ty=expected)
        items = [self.expr(i, element_hint) for i in e.items]
        ty = items[0].ty
        for item in items[1:]:
            unified = unify_literal(ty, item.ty)
            if unified is None:
                raise _type_error(f"Array elements have different types {ty} and {item.ty}", e.loc)
            ty = unified
        items = tuple(self.coerce(i, ty, e.loc) for i in items)
        return replace(e, items=items, ty=ArrayType(ty, len(items)))

    def _expr_ArrayRepeat(self, e: ArrayRepeat, expected):
        element_hint = expected.element if isinstance(expected, ArrayType) else None
        value = self.expr(e.value, element_hint)
        count = self.constant_u32(e.count, "Repeat count")
        return replace(
            e, value=value, count=Literal(count, "u32", e.count.loc, U32), ty=ArrayType(value.ty, count)
        )

    def _expr_StructLiteral(self, e: StructLiteral, expected):
        ty = self.checker.struct_type(self.ctx, e.name, e.loc)
        given = dict(e.fields)
        names = [n for n, _ in ty.members]
        if len(given) != len(e.fields) or set(given) != set(names):
            raise _type_error(f"Struct {ty} expects members {names}, found {[n for n, _ in e.fields]}", e.loc)
        fields = tuple(
            (n, self.coerce(self.expr(given[n], t), t, e.loc)) for n, t in ty.members
        )
        return replace(e, fields=fields, ty=ty)

    def _expr_Call(self, e: Call, expected):
        args = [self.expr(a) for a in e.args]
        explicit = None
        if e.generic_args is not None:
            explicit = [self.constant_u32(g, "Generic argument") for g in e.generic_args]

        matches = []
        inference_failure = None
        for ref in self.ctx.functions.get(e.name, []):
            if len(ref.decl.params) != len(args):
                continue
            try:
                match = self._match(ref, args, explicit)
            except _InferenceFailure as failure:
                inference_failure = failure
                continue
            if match is not None:
                matches.append(match)
        matches.extend(self._match_builtins(e.name, args, explicit))

        if not matches:
            if inference_failure is not None:
                raise _type_error(str(inference_failure), e.loc, TypeCheckKind.GENERIC_INFERENCE)
            arg_types = ", ".join(str(a.ty) for a in args)
            raise _type_error(
                f"No overload of '{e.name}' accepts ({arg_types})", e.loc, TypeCheckKind.NO_MATCHING_OVERLOAD
            )
        if len(matches) > 1:
            raise _type_error(
                f"Call to '{e.name}' matches {len(matches)} overloads", e.loc, TypeCheckKind.AMBIGUOUS_CALL
            )

        target, values, param_types, returns = matches[0]
        typed_args = tuple(self.coerce(a, t, e.loc) for a, t in zip(args, param_types))
        if isinstance(target, FunctionRef):
            key = self.checker.instantiate(target, values)
        else:
            key = target
        generic_args = tuple(Literal(v, "u32", e.loc, U32) for v in values) or None
        ty = returns[0] if len(returns) == 1 else None
        return replace(e, generic_args=generic_args, args=typed_args, ty=ty, returns=returns, target=key)

    def _match(self, ref: FunctionRef, args, explicit: Optional[List[int]]):
        decl = ref.decl
        bindings: Dict[str, int] = {}
        if explicit is not None:
            if len(explicit) != len(decl.generics):
                raise _InferenceFailure(
                    f"'{decl.name}' expects {len(decl.generics)} generic arguments, found {len(explicit)}"
                )
            bindings.update(zip(decl.generics, explicit))
        for param, arg in zip(decl.params, args):
            if not self._unify(param.type_expr, arg.ty, bindings, decl.generics):
                return None
        unbound = [g for g in decl.generics if g not in bindings]
        if unbound:
            raise _InferenceFailure(f"Cannot infer generic parameter(s) {', '.join(unbound)} of '{decl.name}'")

        callee = BodyChecker(self.checker, self.checker.contexts[ref.module], bindings)
        param_types = [callee.resolve_type(p.type_expr) for p in decl.params]
        if not all(assignable(a.ty, t) for a, t in zip(args, param_types)):
            return None
        returns = tuple(callee.resolve_type(t) for t in decl.returns)
        values = tuple(bindings[g] for g in decl.generics)
        return ref, values, param_types, returns

    def _unify(self, type_expr, actual: Type, bindings: Dict[str, int], generics) -> bool:
        if not isinstance(type_expr, ArrayTypeExpr):
            return True
        if not isinstance(actual, ArrayType):
            return False
        size = type_expr.size
        if isinstance(size, Identifier) and size.name in generics:
            bound = bindings.get(size.name)
            if bound is None:
                bindings[size.name] = actual.length
            elif bound != actual.length:
                raise _InferenceFailure(
                    f"Generic parameter {size.name} is bound to both {bound} and {actual.length}"
                )
        return self._unify(type_expr.element, actual.element, bindings, generics)

    def _match_builtins(self, name: str, args, explicit):
        if name not in BUILTINS or len(args) != 1 or explicit:
            return []
        ty = args[0].ty
        if name == "to_field" and isinstance(ty, (UintType, BoolType)):
            return [("builtin::to_field", (), [ty], (FIELD,))]
        if name == "to_bits" and isinstance(ty, UintType):
            return [("builtin::to_bits", (), [ty], (ArrayType(BOOL, ty.bits),))]
        if name == "from_bits" and isinstance(ty, ArrayType) and ty.element == BOOL and ty.length in UINT_WIDTHS:
            return [("builtin::from_bits", (), [ty], (UintType(ty.length),))]
        return []


def check(graph: ModuleGraph, config: Optional[CompilerConfig] = None) -> TypedProgram:
    return Checker(graph, config).check()
