import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from . import abi
from .circuit import ONE, Circuit, Constraint, Definition, Directive
from .exceptions import AbiError, ExecutionError, ExecutionKind
from .fields import PrimeField
from .solvers import SolverError, solve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Witness:
    """A value for every wire of one circuit, in wire order."""

    values: Tuple[int, ...]
    public_wires: Tuple[int, ...] = ()
    output_wires: Tuple[int, ...] = ()

    @property
    def outputs(self) -> List[int]:
        return [self.values[w] for w in self.output_wires]

    def public_values(self) -> List[int]:
        """Public inputs followed by outputs: the statement a proof is checked against."""
        return [self.values[w] for w in self.public_wires]

    def decoded_outputs(self, signature: abi.AbiSignature, field: Optional[PrimeField] = None) -> List[Any]:
        return abi.decode_outputs(signature, self.outputs, field)

    def to_json(self) -> str:
        return json.dumps(
            {
                "values": [str(v) for v in self.values],
                "public_wires": list(self.public_wires),
                "output_wires": list(self.output_wires),
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, text: str) -> "Witness":
        data = json.loads(text)
        return cls(
            tuple(int(v) for v in data["values"]),
            tuple(data.get("public_wires", [])),
            tuple(data.get("output_wires", [])),
        )


def _check_inputs(name: str, values: Sequence[int], expected: int, modulus: int) -> None:
    if len(values) != expected:
        raise ExecutionError(
            ExecutionKind.INVALID_INPUT, f"Expected {expected} {name} inputs, found {len(values)}"
        )
    for v in values:
        if not isinstance(v, int) or isinstance(v, bool) or not 0 <= v < modulus:
            raise ExecutionError(ExecutionKind.INVALID_INPUT, f"Input {v!r} is not a field element")


def execute(circuit: Circuit, public_inputs: Sequence[int], private_inputs: Sequence[int]) -> Witness:
    """Replay the circuit on concrete inputs, re-checking every constraint."""
    field = circuit.field
    p = field.modulus
    _check_inputs("public", public_inputs, len(circuit.public_inputs), p)
    _check_inputs("private", private_inputs, len(circuit.private_inputs), p)

    values: List[Optional[int]] = [None] * circuit.num_wires
    values[ONE] = 1
    for wire, v in zip(circuit.public_inputs, public_inputs):
        values[wire] = v
    for wire, v in zip(circuit.private_inputs, private_inputs):
        values[wire] = v

    for stmt in circuit.statements:
        if isinstance(stmt, Directive):
            inputs = [i.evaluate(values, p) for i in stmt.inputs]
            try:
                outputs = solve(stmt.solver, field, inputs, stmt.params)
            except ZeroDivisionError:
                raise ExecutionError(ExecutionKind.DIVISION_BY_ZERO, location=stmt.location)
            except SolverError as e:
                raise ExecutionError(stmt.kind, f"{stmt.kind.value}: {e}", stmt.location)
            for wire, v in zip(stmt.outputs, outputs):
                values[wire] = v % p
        elif isinstance(stmt, Definition):
            values[stmt.var] = stmt.a.evaluate(values, p) * stmt.b.evaluate(values, p) % p
        elif isinstance(stmt, Constraint):
            left = stmt.a.evaluate(values, p) * stmt.b.evaluate(values, p) % p
            if left != stmt.c.evaluate(values, p):
                raise ExecutionError(stmt.kind, stmt.message, stmt.location)

    witness = Witness(tuple(values), circuit.public_wires, circuit.outputs)
    logger.debug("Computed witness over %d wires", circuit.num_wires)
    return witness


def compute_witness(
    circuit: Circuit, arguments: Union[Mapping[str, Any], Sequence[Any]]
) -> Witness:
    """ABI-encode structured arguments, then execute."""
    try:
        flat = abi.encode(circuit.signature, arguments, circuit.field)
    except AbiError as e:
        raise ExecutionError(ExecutionKind.INVALID_INPUT, str(e))
    public, private = abi.split_inputs(circuit.signature, flat)
    witness = execute(circuit, public, private)
    logger.info("Witness computed: %d outputs", len(witness.output_wires))
    return witness


def decode_witness_outputs(circuit: Circuit, witness: Witness) -> List[Any]:
    return witness.decoded_outputs(circuit.signature, circuit.field)


def witness_summary(circuit: Circuit, witness: Witness) -> Dict[str, Any]:
    return {
        "inputs": abi.decode(
            circuit.signature,
            [witness.values[w] for w in circuit.public_inputs + circuit.private_inputs],
            circuit.field,
        ),
        "outputs": decode_witness_outputs(circuit, witness),
    }
