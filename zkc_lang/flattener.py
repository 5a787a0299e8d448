import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .checker import TypedFunction, TypedProgram
from .circuit import (
    ONE,
    Circuit,
    Constraint,
    Definition,
    Directive,
    FlatFunction,
    LinComb,
    map_statement,
    statement_wires,
)
from .config import CompilerConfig
from .exceptions import ExecutionKind, FlattenError
from .models import (
    Assertion,
    Assignee,
    BinaryOp,
    CallStatement,
    Declaration,
    ForLoop,
    IndexSelector,
    Return,
)
from .models import Definition as DefinitionStmt
from .scope import ScopeManager
from .types import ArrayType, BoolType, FieldType, StructType, Type, UintType

logger = logging.getLogger(__name__)


class Uint:
    """An unsigned integer carried as its bits, least significant first."""

    __slots__ = ("bits",)

    def __init__(self, bits: Sequence[LinComb]):
        self.bits = tuple(bits)

    @property
    def width(self) -> int:
        return len(self.bits)

    def constant_value(self) -> Optional[int]:
        if not all(b.is_constant() for b in self.bits):
            return None
        return sum(b.constant_value() << i for i, b in enumerate(self.bits))


def leaves(value) -> List[LinComb]:
    """Scalar wires of a value in declaration order; integers contribute their bits."""
    if isinstance(value, LinComb):
        return [value]
    if isinstance(value, Uint):
        return list(value.bits)
    if isinstance(value, list):
        return [leaf for item in value for leaf in leaves(item)]
    return [leaf for item in value.values() for leaf in leaves(item)]


def from_leaves(ty: Type, it: Iterator[LinComb]):
    if isinstance(ty, UintType):
        return Uint([next(it) for _ in range(ty.bits)])
    if isinstance(ty, ArrayType):
        return [from_leaves(ty.element, it) for _ in range(ty.length)]
    if isinstance(ty, StructType):
        return {name: from_leaves(member, it) for name, member in ty.members}
    return next(it)


class FlatBuilder:
    """Emits statements over fresh variables and implements the arithmetic gadgets."""

    def __init__(self, flattener: "Flattener"):
        self.flattener = flattener
        self.field = flattener.field
        self.p = flattener.field.modulus
        self.statements: List[Any] = []
        self.next_var = 1
        self.loc = None

    def new_var(self) -> int:
        var = self.next_var
        self.next_var += 1
        return var

    def const(self, value: int) -> LinComb:
        return LinComb.constant(value % self.p)

    def add(self, a: LinComb, b: LinComb) -> LinComb:
        return a.add(b, self.p)

    def sub(self, a: LinComb, b: LinComb) -> LinComb:
        return a.sub(b, self.p)

    def scale(self, a: LinComb, k: int) -> LinComb:
        return a.scale(k, self.p)

    def not_(self, a: LinComb) -> LinComb:
        return self.sub(self.const(1), a)

    def mul(self, a: LinComb, b: LinComb) -> LinComb:
        if a.is_constant():
            return self.scale(b, a.constant_value())
        if b.is_constant():
            return self.scale(a, b.constant_value())
        var = self.new_var()
        self.statements.append(Definition(var, a, b, self.loc))
        return LinComb.wire(var)

    def constrain(self, a: LinComb, b: LinComb, c: LinComb, kind: ExecutionKind, message: Optional[str] = None):
        self.statements.append(Constraint(a, b, c, kind, message, self.loc))

    def hint(self, count: int, solver: str, inputs: Sequence[LinComb], params=(), kind=ExecutionKind.INVALID_INPUT):
        outputs = tuple(self.new_var() for _ in range(count))
        self.statements.append(Directive(outputs, solver, tuple(inputs), tuple(params), kind, self.loc))
        return [LinComb.wire(o) for o in outputs]

    # --- Bits ---

    def recompose(self, bits: Sequence[LinComb]) -> LinComb:
        total = LinComb()
        for i, bit in enumerate(bits):
            total = self.add(total, self.scale(bit, 1 << i))
        return total

    def decompose(self, value: LinComb, width: int, kind: Optional[ExecutionKind] = None) -> List[LinComb]:
        """`width` boolean-constrained bits whose recomposition equals `value`."""
        if value.is_constant():
            v = value.constant_value()
            if v >> width:
                raise FlattenError(f"Constant {v} does not fit in {width} bits", self.loc)
            return [self.const((v >> i) & 1) for i in range(width)]
        bits = self.hint(width, "bits", [value], (width,), kind or ExecutionKind.BITNESS)
        bit_kind = kind if kind is ExecutionKind.ARGUMENT_BITNESS else ExecutionKind.BITNESS
        for bit in bits:
            self.constrain(bit, bit, bit, bit_kind)
        self.constrain(self.recompose(bits), self.const(1), value, kind or ExecutionKind.SUM)
        return bits

    def uint_const(self, value: int, width: int) -> Uint:
        value &= (1 << width) - 1
        return Uint([self.const((value >> i) & 1) for i in range(width)])

    # --- Gadgets ---

    def is_zero(self, d: LinComb) -> LinComb:
        if d.is_constant():
            return self.const(1 if d.constant_value() == 0 else 0)
        (inv,) = self.hint(1, "inverse_or_zero", [d])
        nonzero = self.mul(d, inv)
        self.constrain(d, self.not_(nonzero), LinComb(), ExecutionKind.EQUAL)
        return self.not_(nonzero)

    def select(self, cond: LinComb, yes, no):
        if isinstance(yes, LinComb):
            if yes == no:
                return yes
            return self.add(self.mul(cond, self.sub(yes, no)), no)
        if isinstance(yes, Uint):
            return Uint([self.select(cond, a, b) for a, b in zip(yes.bits, no.bits)])
        if isinstance(yes, list):
            return [self.select(cond, a, b) for a, b in zip(yes, no)]
        return {k: self.select(cond, yes[k], no[k]) for k in yes}

    def select_one(self, indicators: Sequence[LinComb], options: Sequence[Any]):
        first = options[0]
        if isinstance(first, LinComb):
            total = LinComb()
            for ind, option in zip(indicators, options):
                total = self.add(total, self.mul(ind, option))
            return total
        if isinstance(first, Uint):
            return Uint(
                [self.select_one(indicators, [o.bits[i] for o in options]) for i in range(first.width)]
            )
        if isinstance(first, list):
            return [self.select_one(indicators, [o[i] for o in options]) for i in range(len(first))]
        return {k: self.select_one(indicators, [o[k] for o in options]) for k in first}

    def index_indicators(self, index: Uint, length: int) -> List[LinComb]:
        """One equality flag per position, with a check that exactly one is set."""
        idx = self.recompose(index.bits)
        indicators = [self.is_zero(self.sub(idx, self.const(j))) for j in range(length)]
        total = LinComb()
        for ind in indicators:
            total = self.add(total, ind)
        self.constrain(total, self.const(1), self.const(1), ExecutionKind.OUT_OF_BOUNDS)
        return indicators

    def compare_bits(self, a: Sequence[LinComb], b: Sequence[LinComb]) -> Tuple[LinComb, LinComb]:
        """(a < b, a == b) by a running reduction from the most significant bit."""
        lt = self.const(0)
        eq = self.const(1)
        for a_i, b_i in zip(reversed(a), reversed(b)):
            lt = self.add(lt, self.mul(eq, self.mul(self.not_(a_i), b_i)))
            both = self.mul(a_i, b_i)
            xor = self.sub(self.add(a_i, b_i), self.scale(both, 2))
            eq = self.mul(eq, self.not_(xor))
        return lt, eq

    def comparison_width(self) -> int:
        return self.flattener.config.safe_comparison_bits()

    def equals(self, a, b) -> LinComb:
        if isinstance(a, LinComb):
            return self.is_zero(self.sub(a, b))
        if isinstance(a, Uint):
            return self.is_zero(self.sub(self.recompose(a.bits), self.recompose(b.bits)))
        pairs = zip(a, b) if isinstance(a, list) else ((a[k], b[k]) for k in a)
        result = self.const(1)
        for x, y in pairs:
            result = self.mul(result, self.equals(x, y))
        return result

    # --- Inlining ---

    def inline(self, template: FlatFunction, args: Sequence[LinComb]) -> List[LinComb]:
        mapping: Dict[int, LinComb] = dict(zip(template.arguments, args))

        def lc(value: LinComb) -> LinComb:
            return value.substitute(mapping, self.p)

        def var(v: int) -> int:
            fresh = self.new_var()
            mapping[v] = LinComb.wire(fresh)
            return fresh

        for stmt in template.statements:
            self.statements.append(map_statement(stmt, lc, var))
        return [lc(r) for r in template.returns]


class FunctionFlattener(FlatBuilder):
    """Flattens one monomorphised function body into a template."""

    def __init__(self, flattener: "Flattener", function: TypedFunction):
        super().__init__(flattener)
        self.function = function
        self.scope = ScopeManager()
        self.returns: List[LinComb] = []

    def build(self) -> FlatFunction:
        arguments: List[int] = []
        for param in self.function.params:
            value = self._fresh(param.ty, arguments)
            self.scope.declare(param.name, value)
        for stmt in self.function.body:
            self.statement(stmt)
        return FlatFunction(
            self.function.key, tuple(arguments), tuple(self.statements), tuple(self.returns), self.next_var
        )

    def _fresh(self, ty: Type, arguments: List[int]):
        count = sum(1 for _ in _leaf_types(ty))
        wires = []
        for _ in range(count):
            var = self.new_var()
            arguments.append(var)
            wires.append(LinComb.wire(var))
        return from_leaves(ty, iter(wires))

    # --- Statements ---

    def statement(self, stmt) -> None:
        self.loc = getattr(stmt, "loc", None)
        if isinstance(stmt, DefinitionStmt):
            if len(stmt.targets) > 1:
                values = self.call_values(stmt.expr)
            else:
                values = [self.expr(stmt.expr)]
            for target, value in zip(stmt.targets, values):
                self.assign(target, value)
        elif isinstance(stmt, CallStatement):
            self.call_values(stmt.call)
        elif isinstance(stmt, Assertion):
            self.assertion(stmt)
        elif isinstance(stmt, ForLoop):
            self.for_loop(stmt)
        elif isinstance(stmt, Return):
            values = [self.expr(e) for e in stmt.exprs]
            self.returns = [leaf for v in values for leaf in leaves(v)]
        else:
            raise FlattenError(f"Unsupported statement {type(stmt).__name__}", self.loc)

    def assign(self, target, value) -> None:
        if isinstance(target, Declaration):
            self.scope.declare(target.name, value)
            return
        current = self.scope.get(target.name)
        self.scope.set(target.name, self.update(current, list(target.selectors), value))

    def update(self, current, selectors, value):
        if not selectors:
            return value
        sel, rest = selectors[0], selectors[1:]
        if isinstance(sel, IndexSelector):
            index = self.expr(sel.index)
            position = index.constant_value()
            if position is not None:
                if position >= len(current):
                    raise FlattenError(f"Index {position} is out of bounds for length {len(current)}", self.loc)
                updated = list(current)
                updated[position] = self.update(current[position], rest, value)
                return updated
            indicators = self.index_indicators(index, len(current))
            return [
                self.select(ind, self.update(item, rest, value), item)
                for ind, item in zip(indicators, current)
            ]
        updated = dict(current)
        updated[sel.name] = self.update(current[sel.name], rest, value)
        return updated

    def assertion(self, stmt: Assertion) -> None:
        e = stmt.expr
        if isinstance(e, BinaryOp) and e.op == "==" and isinstance(e.left.ty, (FieldType, BoolType, UintType)):
            left, right = self.expr(e.left), self.expr(e.right)
            if isinstance(left, Uint):
                left, right = self.recompose(left.bits), self.recompose(right.bits)
            diff = self.sub(left, right)
            if diff.is_constant():
                if diff.constant_value() != 0:
                    self._unsatisfiable(stmt)
                return
            self.constrain(diff, self.const(1), LinComb(), ExecutionKind.ASSERTION_FAILED, stmt.message)
            return
        cond = self.expr(e)
        if cond.is_constant():
            if cond.constant_value() != 1:
                self._unsatisfiable(stmt)
            return
        self.constrain(cond, self.const(1), self.const(1), ExecutionKind.ASSERTION_FAILED, stmt.message)

    def _unsatisfiable(self, stmt: Assertion) -> None:
        logger.warning("Assertion at %s is always false", stmt.loc)
        self.constrain(self.const(1), self.const(1), self.const(0), ExecutionKind.ASSERTION_FAILED, stmt.message)

    def for_loop(self, stmt: ForLoop) -> None:
        start = self._constant_int(self.expr(stmt.start))
        end = self._constant_int(self.expr(stmt.end))
        if start is None or end is None:
            raise FlattenError("Loop bounds must be compile-time constants", stmt.loc)
        count = max(0, end - start)
        if count > self.flattener.config.max_unroll:
            raise FlattenError(
                f"Loop of {count} iterations exceeds the unroll limit of {self.flattener.config.max_unroll}",
                stmt.loc,
            )
        for i in range(start, end):
            self.scope.push_frame()
            try:
                if isinstance(stmt.ty, UintType):
                    self.scope.declare(stmt.var, self.uint_const(i, stmt.ty.bits))
                else:
                    self.scope.declare(stmt.var, self.const(i))
                for inner in stmt.body:
                    self.statement(inner)
            finally:
                self.scope.pop_frame()
            self.loc = stmt.loc

    @staticmethod
    def _constant_int(value) -> Optional[int]:
        if isinstance(value, Uint):
            return value.constant_value()
        if isinstance(value, LinComb) and value.is_constant():
            return value.constant_value()
        return None

    # --- Expressions ---

    def expr(self, e):
        method = getattr(self, "_expr_" + type(e).__name__, None)
        if method is None:
            raise FlattenError(f"Unsupported expression {type(e).__name__}", e.loc)
        return method(e)

    def _expr_Literal(self, e):
        if isinstance(e.ty, UintType):
            return self.uint_const(e.value, e.ty.bits)
        return self.const(e.value)

    def _expr_BoolLiteral(self, e):
        return self.const(1 if e.value else 0)

    def _expr_Identifier(self, e):
        return self.scope.get(e.name, e.loc)

    def _expr_Ternary(self, e):
        cond = self.expr(e.condition)
        if cond.is_constant():
            return self.expr(e.consequence if cond.constant_value() else e.alternative)
        return self.select(cond, self.expr(e.consequence), self.expr(e.alternative))

    def _expr_UnaryOp(self, e):
        value = self.expr(e.operand)
        if e.op == "!":
            if isinstance(value, Uint):
                return Uint([self.not_(b) for b in value.bits])
            return self.not_(value)
        return self.scale(value, -1)

    def _expr_Index(self, e):
        base = self.expr(e.base)
        index = self.expr(e.index)
        position = index.constant_value()
        if position is not None:
            if position >= len(base):
                raise FlattenError(f"Index {position} is out of bounds for length {len(base)}", e.loc)
            return base[position]
        return self.select_one(self.index_indicators(index, len(base)), base)

    def _expr_Member(self, e):
        return self.expr(e.base)[e.name]

    def _expr_ArrayLiteral(self, e):
        return [self.expr(i) for i in e.items]

    def _expr_ArrayRepeat(self, e):
        value = self.expr(e.value)
        return [value] * e.ty.length

    def _expr_StructLiteral(self, e):
        return {name: self.expr(value) for name, value in e.fields}

    def _expr_Call(self, e):
        values = self.call_values(e)
        return values[0] if len(values) == 1 else None

    def call_values(self, e) -> List[Any]:
        args = [self.expr(a) for a in e.args]
        if e.target.startswith("builtin::"):
            return [self._builtin(e.target.split("::", 1)[1], args[0])]
        template = self.flattener.template(e.target)
        outputs = iter(self.inline(template, [leaf for a in args for leaf in leaves(a)]))
        return [from_leaves(ty, outputs) for ty in e.returns]

    def _builtin(self, name: str, arg):
        if name == "to_field":
            return self.recompose(arg.bits) if isinstance(arg, Uint) else arg
        if name == "to_bits":
            return list(reversed(arg.bits))
        return Uint(list(reversed(arg)))

    def _expr_BinaryOp(self, e):
        op = e.op
        left = self.expr(e.left)
        right = self.expr(e.right)
        self.loc = e.loc or self.loc
        if op == "&&":
            return self.mul(left, right)
        if op == "||":
            return self.sub(self.add(left, right), self.mul(left, right))
        if op in ("==", "!="):
            eq = self.equals(left, right)
            return eq if op == "==" else self.not_(eq)
        if op in ("<", "<=", ">", ">="):
            return self._compare(op, left, right)
        if isinstance(left, Uint):
            return self._uint_binary(op, left, right)
        return self._field_binary(op, left, right)

    def _compare(self, op: str, left, right) -> LinComb:
        if op in (">", ">="):
            left, right = right, left
        if isinstance(left, Uint):
            a, b = left.bits, right.bits
        else:
            width = self.comparison_width()
            a = self.decompose(left, width, ExecutionKind.COMPARISON_RANGE)
            b = self.decompose(right, width, ExecutionKind.COMPARISON_RANGE)
        lt, eq = self.compare_bits(a, b)
        return lt if op in ("<", ">") else self.add(lt, eq)

    def _field_binary(self, op: str, a: LinComb, b: LinComb) -> LinComb:
        if op == "+":
            return self.add(a, b)
        if op == "-":
            return self.sub(a, b)
        if op == "*":
            return self.mul(a, b)
        if op == "/":
            return self._field_div(a, b)
        if op == "**":
            exponent = self._constant_int(b)
            if exponent is None:
                raise FlattenError("Exponent must be a compile-time constant", self.loc)
            return self._pow(a, exponent)
        raise FlattenError(f"Unsupported field operator '{op}'", self.loc)

    def _field_div(self, a: LinComb, b: LinComb) -> LinComb:
        if b.is_constant():
            if b.constant_value() == 0:
                raise FlattenError("Division by zero", self.loc)
            return self.scale(a, self.field.inv(b.constant_value()))
        (inv,) = self.hint(1, "inverse", [b], kind=ExecutionKind.DIVISION_BY_ZERO)
        self.constrain(b, inv, self.const(1), ExecutionKind.DIVISION_BY_ZERO)
        (q,) = self.hint(1, "div", [a, b], kind=ExecutionKind.DIVISION_BY_ZERO)
        self.constrain(b, q, a, ExecutionKind.DIVISION_BY_ZERO)
        return q

    def _pow(self, base: LinComb, exponent: int) -> LinComb:
        result = self.const(1)
        square = base
        while exponent:
            if exponent & 1:
                result = self.mul(result, square)
            exponent >>= 1
            if exponent:
                square = self.mul(square, square)
        return result

    def _uint_binary(self, op: str, a: Uint, b) -> Uint:
        n = a.width
        if op in ("<<", ">>"):
            amount = b.constant_value()
            if amount is None:
                raise FlattenError("Shift amount must be a compile-time constant", self.loc)
            zero = self.const(0)
            if op == "<<":
                bits = [a.bits[i - amount] if i >= amount else zero for i in range(n)]
            else:
                bits = [a.bits[i + amount] if i + amount < n else zero for i in range(n)]
            return Uint(bits)
        if op == "&":
            return Uint([self.mul(x, y) for x, y in zip(a.bits, b.bits)])
        if op == "|":
            return Uint([self.sub(self.add(x, y), self.mul(x, y)) for x, y in zip(a.bits, b.bits)])
        if op == "^":
            return Uint(
                [self.sub(self.add(x, y), self.scale(self.mul(x, y), 2)) for x, y in zip(a.bits, b.bits)]
            )

        x, y = self.recompose(a.bits), self.recompose(b.bits)
        if op == "+":
            return Uint(self.decompose(self.add(x, y), n + 1)[:n])
        if op == "-":
            return Uint(self.decompose(self.add(x, self.sub(self.const(1 << n), y)), n + 1)[:n])
        if op == "*":
            return Uint(self.decompose(self.mul(x, y), 2 * n)[:n])
        if op in ("/", "%"):
            return self._uint_divmod(op, a, b)
        raise FlattenError(f"Unsupported integer operator '{op}'", self.loc)

    def _uint_divmod(self, op: str, a: Uint, b: Uint) -> Uint:
        n = a.width
        va, vb = a.constant_value(), b.constant_value()
        if vb == 0:
            raise FlattenError("Division by zero", self.loc)
        if va is not None and vb is not None:
            return self.uint_const(va // vb if op == "/" else va % vb, n)
        x, y = self.recompose(a.bits), self.recompose(b.bits)
        q, r = self.hint(2, "euclidean_div", [x, y], kind=ExecutionKind.DIVISION_BY_ZERO)
        q_bits = self.decompose(q, n)
        r_bits = self.decompose(r, n)
        self.constrain(y, self.recompose(q_bits), self.sub(x, self.recompose(r_bits)), ExecutionKind.EUCLIDEAN)
        lt, _ = self.compare_bits(r_bits, b.bits)
        self.constrain(lt, self.const(1), self.const(1), ExecutionKind.EUCLIDEAN)
        return Uint(q_bits if op == "/" else r_bits)


def _leaf_types(ty: Type) -> Iterator[Type]:
    if isinstance(ty, UintType):
        for _ in range(ty.bits):
            yield BoolType()
    elif isinstance(ty, ArrayType):
        for _ in range(ty.length):
            yield from _leaf_types(ty.element)
    elif isinstance(ty, StructType):
        for _, member in ty.members:
            yield from _leaf_types(member)
    else:
        yield ty


class Flattener:
    """Lowers a typed program to a numbered circuit."""

    def __init__(self, program: TypedProgram, config: Optional[CompilerConfig] = None):
        self.program = program
        self.config = config or CompilerConfig()
        self.field = program.field
        self.templates: Dict[str, FlatFunction] = {}
        self.instantiations: List[str] = []
        self._in_progress: List[str] = []

    def template(self, key: str) -> FlatFunction:
        if key in self.templates:
            return self.templates[key]
        if key in self._in_progress:
            raise FlattenError(
                f"Recursive call to '{key}' cannot be inlined",
                self.program.functions[key].loc if key in self.program.functions else None,
            )
        if len(self._in_progress) >= self.config.max_inline_depth:
            raise FlattenError(f"Inlining depth exceeds {self.config.max_inline_depth} at '{key}'")
        function = self.program.functions[key]
        self._in_progress.append(key)
        self.instantiations.append(key)
        try:
            template = FunctionFlattener(self, function).build()
        finally:
            self._in_progress.pop()
        self.templates[key] = template
        logger.debug("Flattened %s: %d statements", key, len(template.statements))
        return template

    def flatten(self) -> Circuit:
        main = self.program.main_function
        builder = FlatBuilder(self)
        public: List[int] = []
        private: List[int] = []
        args: List[Any] = []
        for param in main.params:
            wires = public if not param.private else private
            args.append(self._input(builder, param.ty, wires))

        template = self.template(main.key)
        returns = iter(builder.inline(template, [leaf for a in args for leaf in leaves(a)]))
        outputs: List[int] = []
        for ty in main.returns:
            value = from_leaves(ty, returns)
            for leaf in self._abi_leaves(builder, value):
                out = builder.new_var()
                builder.statements.append(Definition(out, leaf, LinComb.constant(1)))
                outputs.append(out)

        circuit = self._number(builder.statements, public, outputs, private)
        logger.info(
            "Compiled %s: %d constraints, %d wires, %d instantiations",
            self.program.entry or main.module,
            circuit.num_constraints,
            circuit.num_wires,
            len(circuit.instantiations),
        )
        return circuit

    def _input(self, builder: FlatBuilder, ty: Type, wires: List[int]):
        if isinstance(ty, ArrayType):
            return [self._input(builder, ty.element, wires) for _ in range(ty.length)]
        if isinstance(ty, StructType):
            return {name: self._input(builder, member, wires) for name, member in ty.members}
        var = builder.new_var()
        wires.append(var)
        value = LinComb.wire(var)
        if isinstance(ty, BoolType):
            builder.constrain(value, value, value, ExecutionKind.ARGUMENT_BITNESS)
        elif isinstance(ty, UintType):
            return Uint(builder.decompose(value, ty.bits, ExecutionKind.ARGUMENT_BITNESS))
        return value

    def _abi_leaves(self, builder: FlatBuilder, value) -> List[LinComb]:
        if isinstance(value, LinComb):
            return [value]
        if isinstance(value, Uint):
            return [builder.recompose(value.bits)]
        items = value if isinstance(value, list) else value.values()
        return [leaf for item in items for leaf in self._abi_leaves(builder, item)]

    def _number(self, statements, public: List[int], outputs: List[int], private: List[int]) -> Circuit:
        """Renumber variables: ~one, public inputs, outputs, private inputs, then first use."""
        mapping: Dict[int, int] = {ONE: ONE}
        for var in public + outputs + private:
            mapping[var] = len(mapping)
        for stmt in statements:
            for var in statement_wires(stmt):
                if var not in mapping:
                    mapping[var] = len(mapping)

        def lc(value: LinComb) -> LinComb:
            return value.rename(mapping)

        numbered = tuple(map_statement(s, lc, mapping.__getitem__) for s in statements)
        return Circuit(
            curve=self.field.name,
            num_wires=len(mapping),
            public_inputs=tuple(mapping[v] for v in public),
            outputs=tuple(mapping[v] for v in outputs),
            private_inputs=tuple(mapping[v] for v in private),
            statements=numbered,
            signature=self.program.signature,
            instantiations=tuple(self.instantiations),
        )


def flatten(program: TypedProgram, config: Optional[CompilerConfig] = None) -> Circuit:
    return Flattener(program, config).flatten()
