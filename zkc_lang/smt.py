"""SMT-LIB2 view of a circuit, built with z3.

Every wire becomes an integer constrained to `[0, |~prime|)` and every R1CS row
`A * B = C` becomes `(A * B - C) mod |~prime| = 0`.
"""

import logging
from typing import Dict, Optional

import z3

from .circuit import ONE, Circuit, LinComb
from .interpreter import Witness

logger = logging.getLogger(__name__)


def _wire_vars(circuit: Circuit) -> Dict[int, z3.ArithRef]:
    return {w: z3.Int(circuit.wire_name(w)) for w in range(circuit.num_wires)}


def _lin(lc: LinComb, wires: Dict[int, z3.ArithRef]) -> z3.ArithRef:
    if not lc.terms:
        return z3.IntVal(0)
    terms = [wires[w] * z3.IntVal(c) if c != 1 else wires[w] for w, c in sorted(lc.terms.items())]
    return z3.Sum(terms) if len(terms) > 1 else terms[0]


def build_solver(circuit: Circuit, witness: Optional[Witness] = None) -> z3.Solver:
    prime = z3.Int("~prime")
    wires = _wire_vars(circuit)
    solver = z3.Solver()
    solver.add(prime == circuit.field.modulus)
    solver.add(wires[ONE] == 1)
    for w in range(1, circuit.num_wires):
        solver.add(wires[w] >= 0, wires[w] < prime)
    for a, b, c in circuit.constraints():
        solver.add((_lin(a, wires) * _lin(b, wires) - _lin(c, wires)) % prime == 0)
    if witness is not None:
        for w, value in enumerate(witness.values):
            if w != ONE:
                solver.add(wires[w] == value)
    return solver


def to_smtlib2(circuit: Circuit) -> str:
    text = build_solver(circuit).to_smt2()
    logger.debug("Exported %d constraints as SMT-LIB2", circuit.num_constraints)
    return text


def check_witness(circuit: Circuit, witness: Witness) -> bool:
    """True when z3 agrees the witness satisfies every row. Meant for small circuits."""
    if len(witness.values) != circuit.num_wires:
        return False
    result = build_solver(circuit, witness).check()
    logger.debug("z3 witness check: %s", result)
    return result == z3.sat
