import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .abi import AbiSignature
from .exceptions import ExecutionKind, SourceLocation
from .fields import PrimeField


ONE = 0


class WireRole(Enum):
    ONE = "one"
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


class LinComb:
    """Sparse linear combination of wires. Wire 0 is the constant one."""

    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Mapping[int, int]] = None):
        self.terms: Dict[int, int] = {w: c for w, c in (terms or {}).items() if c}

    @classmethod
    def constant(cls, value: int) -> "LinComb":
        return cls({ONE: value})

    @classmethod
    def wire(cls, wire: int, coeff: int = 1) -> "LinComb":
        return cls({wire: coeff})

    def is_constant(self) -> bool:
        return all(w == ONE for w in self.terms)

    def constant_value(self) -> int:
        return self.terms.get(ONE, 0)

    def add(self, other: "LinComb", p: int) -> "LinComb":
        terms = dict(self.terms)
        for w, c in other.terms.items():
            terms[w] = (terms.get(w, 0) + c) % p
        return LinComb(terms)

    def sub(self, other: "LinComb", p: int) -> "LinComb":
        return self.add(other.scale(-1, p), p)

    def scale(self, k: int, p: int) -> "LinComb":
        k %= p
        return LinComb({w: c * k % p for w, c in self.terms.items()})

    def substitute(self, mapping: Mapping[int, "LinComb"], p: int) -> "LinComb":
        out: Dict[int, int] = {}
        for w, c in self.terms.items():
            replacement = mapping.get(w)
            if replacement is None:
                out[w] = (out.get(w, 0) + c) % p
                continue
            for rw, rc in replacement.terms.items():
                out[rw] = (out.get(rw, 0) + c * rc) % p
        return LinComb(out)

    def rename(self, mapping: Mapping[int, int]) -> "LinComb":
        return LinComb({mapping.get(w, w): c for w, c in self.terms.items()})

    def evaluate(self, values: Sequence[Optional[int]], p: int) -> int:
        total = 0
        for w, c in self.terms.items():
            total += c * values[w]
        return total % p

    def wires(self) -> Iterator[int]:
        return iter(sorted(self.terms))

    def to_json(self) -> List[List[Any]]:
        return [[w, str(c)] for w, c in sorted(self.terms.items())]

    @classmethod
    def from_json(cls, data: Iterable[Sequence[Any]]) -> "LinComb":
        return cls({int(w): int(c) for w, c in data})

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LinComb) and self.terms == other.terms

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.terms.items())))

    def __repr__(self) -> str:
        if not self.terms:
            return "0"
        parts = []
        for w, c in sorted(self.terms.items()):
            parts.append(str(c) if w == ONE else f"{c}*_{w}")
        return " + ".join(parts)


@dataclass(frozen=True)
class Definition:
    """`var := a * b`; computed by the interpreter and emitted as a constraint."""

    var: int
    a: LinComb
    b: LinComb
    location: Optional[SourceLocation] = None

    def row(self) -> Tuple[LinComb, LinComb, LinComb]:
        return self.a, self.b, LinComb.wire(self.var)


@dataclass(frozen=True)
class Constraint:
    """`a * b = c`, checked at witness time with `kind` as the failure reason."""

    a: LinComb
    b: LinComb
    c: LinComb
    kind: ExecutionKind = ExecutionKind.ASSERTION_FAILED
    message: Optional[str] = None
    location: Optional[SourceLocation] = None

    def row(self) -> Tuple[LinComb, LinComb, LinComb]:
        return self.a, self.b, self.c


@dataclass(frozen=True)
class Directive:
    """Witness hint: `outputs = solver(inputs)`; emits no constraint of its own."""

    outputs: Tuple[int, ...]
    solver: str
    inputs: Tuple[LinComb, ...]
    params: Tuple[int, ...] = ()
    kind: ExecutionKind = ExecutionKind.INVALID_INPUT
    location: Optional[SourceLocation] = None


Statement = Union[Definition, Constraint, Directive]


def map_statement(stmt: Statement, lc: Callable[[LinComb], LinComb], var: Callable[[int], int]) -> Statement:
    if isinstance(stmt, Definition):
        return Definition(var(stmt.var), lc(stmt.a), lc(stmt.b), stmt.location)
    if isinstance(stmt, Constraint):
        return Constraint(lc(stmt.a), lc(stmt.b), lc(stmt.c), stmt.kind, stmt.message, stmt.location)
    return Directive(
        tuple(var(o) for o in stmt.outputs),
        stmt.solver,
        tuple(lc(i) for i in stmt.inputs),
        stmt.params,
        stmt.kind,
        stmt.location,
    )


def statement_wires(stmt: Statement) -> Iterator[int]:
    """Wires of a statement in order of appearance."""
    if isinstance(stmt, Directive):
        for i in stmt.inputs:
            yield from i.wires()
        yield from stmt.outputs
    elif isinstance(stmt, Definition):
        yield from stmt.a.wires()
        yield from stmt.b.wires()
        yield stmt.var
    else:
        for part in stmt.row():
            yield from part.wires()


@dataclass(frozen=True)
class FlatFunction:
    """Flattened body of one monomorphised function, instantiated by substitution."""

    key: str
    arguments: Tuple[int, ...]
    statements: Tuple[Statement, ...]
    returns: Tuple[LinComb, ...]
    num_vars: int


def _location_to_json(loc: Optional[SourceLocation]):
    return None if loc is None else [loc.module, loc.line, loc.column]


def _location_from_json(data) -> Optional[SourceLocation]:
    return None if data is None else SourceLocation(data[0], int(data[1]), int(data[2]))


def statement_to_json(stmt: Statement) -> Dict[str, Any]:
    if isinstance(stmt, Definition):
        return {
            "type": "definition",
            "var": stmt.var,
            "a": stmt.a.to_json(),
            "b": stmt.b.to_json(),
            "location": _location_to_json(stmt.location),
        }
    if isinstance(stmt, Constraint):
        return {
            "type": "constraint",
            "a": stmt.a.to_json(),
            "b": stmt.b.to_json(),
            "c": stmt.c.to_json(),
            "kind": stmt.kind.name,
            "message": stmt.message,
            "location": _location_to_json(stmt.location),
        }
    return {
        "type": "directive",
        "outputs": list(stmt.outputs),
        "solver": stmt.solver,
        "inputs": [i.to_json() for i in stmt.inputs],
        "params": list(stmt.params),
        "kind": stmt.kind.name,
        "location": _location_to_json(stmt.location),
    }


def statement_from_json(data: Mapping[str, Any]) -> Statement:
    loc = _location_from_json(data.get("location"))
    kind = data["type"]
    if kind == "definition":
        return Definition(int(data["var"]), LinComb.from_json(data["a"]), LinComb.from_json(data["b"]), loc)
    if kind == "constraint":
        return Constraint(
            LinComb.from_json(data["a"]),
            LinComb.from_json(data["b"]),
            LinComb.from_json(data["c"]),
            ExecutionKind[data["kind"]],
            data.get("message"),
            loc,
        )
    if kind == "directive":
        return Directive(
            tuple(int(o) for o in data["outputs"]),
            data["solver"],
            tuple(LinComb.from_json(i) for i in data["inputs"]),
            tuple(int(p) for p in data.get("params", [])),
            ExecutionKind[data["kind"]],
            loc,
        )
    raise ValueError(f"Unknown statement type {kind!r}")


@dataclass(frozen=True)
class Circuit:
    """A numbered, immutable constraint system plus its input/output layout."""

    curve: str
    num_wires: int
    public_inputs: Tuple[int, ...]
    outputs: Tuple[int, ...]
    private_inputs: Tuple[int, ...]
    statements: Tuple[Statement, ...]
    signature: AbiSignature
    instantiations: Tuple[str, ...] = ()

    @property
    def field(self) -> PrimeField:
        return PrimeField.for_curve(self.curve)

    @property
    def public_wires(self) -> Tuple[int, ...]:
        return self.public_inputs + self.outputs

    def role(self, wire: int) -> WireRole:
        if wire == ONE:
            return WireRole.ONE
        if wire in self.public_inputs or wire in self.outputs:
            return WireRole.PUBLIC
        if wire in self.private_inputs:
            return WireRole.PRIVATE
        return WireRole.INTERNAL

    def constraints(self) -> List[Tuple[LinComb, LinComb, LinComb]]:
        """R1CS rows in program order: every definition and every constraint."""
        return [s.row() for s in self.statements if not isinstance(s, Directive)]

    @property
    def num_constraints(self) -> int:
        return sum(1 for s in self.statements if not isinstance(s, Directive))

    def is_satisfied(self, values: Sequence[int]) -> bool:
        if len(values) != self.num_wires or values[ONE] != 1:
            return False
        p = self.field.modulus
        for a, b, c in self.constraints():
            if a.evaluate(values, p) * b.evaluate(values, p) % p != c.evaluate(values, p):
                return False
        return True

    def wire_name(self, wire: int) -> str:
        if wire == ONE:
            return "~one"
        if wire in self.outputs:
            return f"~out_{self.outputs.index(wire)}"
        return f"_{wire}"

    def to_r1cs(self) -> Dict[str, Any]:
        """Sparse rows keyed by wire name, with the public statement layout."""

        def row(lc: LinComb) -> Dict[str, str]:
            return {self.wire_name(w): str(c) for w, c in sorted(lc.terms.items())}

        constraints = []
        for stmt in self.statements:
            if isinstance(stmt, Directive):
                continue
            a, b, c = stmt.row()
            entry = {"A": row(a), "B": row(b), "C": row(c)}
            if stmt.location is not None:
                entry["source"] = str(stmt.location)
            constraints.append(entry)
        return {
            "variables": {self.wire_name(w): w for w in range(self.num_wires)},
            "constraints": constraints,
            "meta": {
                "curve": self.curve,
                "modulus": str(self.field.modulus),
                "num_public": 1 + len(self.public_wires),
            },
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "curve": self.curve,
            "num_wires": self.num_wires,
            "public_inputs": list(self.public_inputs),
            "outputs": list(self.outputs),
            "private_inputs": list(self.private_inputs),
            "signature": self.signature.to_dict(),
            "instantiations": list(self.instantiations),
            "statements": [statement_to_json(s) for s in self.statements],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Circuit":
        return cls(
            curve=data["curve"],
            num_wires=int(data["num_wires"]),
            public_inputs=tuple(data["public_inputs"]),
            outputs=tuple(data["outputs"]),
            private_inputs=tuple(data["private_inputs"]),
            statements=tuple(statement_from_json(s) for s in data["statements"]),
            signature=AbiSignature.from_dict(data["signature"]),
            instantiations=tuple(data.get("instantiations", [])),
        )

    @classmethod
    def from_json(cls, text: str) -> "Circuit":
        return cls.from_dict(json.loads(text))
