from __future__ import annotations

import json
import unittest

import zkc_lang
from zkc_lang import ExecutionKind, abi, smt
from zkc_lang.circuit import ONE, Circuit, Constraint, Directive, LinComb, WireRole
from zkc_lang.interpreter import Witness


PRODUCT = """
def main(field a, private field b, field c) -> field {
    field d = a * b;
    assert(d == c);
    return d + a;
}
"""

DIVMOD = """
def main(u8 a, u8 b) -> (u8, u8) {
    return a / b, a % b;
}
"""


class CircuitLayoutTests(unittest.TestCase):
    def test_compilation_is_deterministic(self) -> None:
        first = zkc_lang.compile_source(PRODUCT).to_json()
        second = zkc_lang.compile_source(PRODUCT).to_json()
        self.assertEqual(first, second)

    def test_public_wires_come_first(self) -> None:
        circuit = zkc_lang.compile_source(PRODUCT)
        self.assertEqual(circuit.public_inputs, (1, 2))
        self.assertEqual(circuit.outputs, (3,))
        self.assertEqual(circuit.private_inputs, (4,))
        self.assertIs(circuit.role(ONE), WireRole.ONE)
        self.assertIs(circuit.role(3), WireRole.PUBLIC)
        self.assertIs(circuit.role(4), WireRole.PRIVATE)
        self.assertIs(circuit.role(5), WireRole.INTERNAL)

    def test_internal_wires_in_first_use_order(self) -> None:
        circuit = zkc_lang.compile_source(DIVMOD)
        seen = []
        for stmt in circuit.statements:
            wires = stmt.outputs if isinstance(stmt, Directive) else [getattr(stmt, "var", None)]
            for w in wires:
                if w is not None and w > 4 and w not in seen:
                    seen.append(w)
        self.assertEqual(seen, sorted(seen))

    def test_constraints_follow_program_order(self) -> None:
        circuit = zkc_lang.compile_source(PRODUCT)
        constraints = [s for s in circuit.statements if isinstance(s, Constraint)]
        self.assertEqual(len(constraints), 1)
        self.assertIs(constraints[0].kind, ExecutionKind.ASSERTION_FAILED)
        self.assertEqual(constraints[0].location.line, 4)

    def test_json_round_trip(self) -> None:
        circuit = zkc_lang.compile_source(DIVMOD)
        restored = Circuit.from_json(circuit.to_json())
        self.assertEqual(restored.to_json(), circuit.to_json())
        witness = zkc_lang.compute_witness(restored, [17, 5])
        self.assertEqual(witness.outputs, [3, 2])

    def test_r1cs_export(self) -> None:
        circuit = zkc_lang.compile_source(PRODUCT)
        r1cs = circuit.to_r1cs()
        self.assertEqual(len(r1cs["constraints"]), circuit.num_constraints)
        self.assertEqual(r1cs["variables"]["~one"], 0)
        self.assertEqual(r1cs["variables"]["~out_0"], 3)
        self.assertEqual(r1cs["meta"]["num_public"], 4)
        json.dumps(r1cs)

    def test_witness_json_round_trip(self) -> None:
        circuit = zkc_lang.compile_source(PRODUCT)
        witness = zkc_lang.compute_witness(circuit, {"a": 3, "b": 4, "c": 12})
        self.assertEqual(witness.outputs, [15])
        self.assertEqual(witness.public_values(), [3, 12, 15])
        restored = Witness.from_json(witness.to_json())
        self.assertEqual(restored, witness)

    def test_tampered_witness_is_not_satisfying(self) -> None:
        circuit = zkc_lang.compile_source(PRODUCT)
        witness = zkc_lang.compute_witness(circuit, {"a": 3, "b": 4, "c": 12})
        values = list(witness.values)
        self.assertTrue(circuit.is_satisfied(values))
        values[circuit.outputs[0]] += 1
        self.assertFalse(circuit.is_satisfied(values))


class LinCombTests(unittest.TestCase):
    def test_arithmetic_is_reduced(self) -> None:
        p = 7
        a = LinComb({1: 3, ONE: 2})
        b = LinComb({1: 4})
        self.assertEqual(a.add(b, p), LinComb({ONE: 2}))
        self.assertEqual(a.scale(3, p), LinComb({1: 2, ONE: 6}))
        self.assertTrue(a.sub(a, p).is_constant())

    def test_substitute(self) -> None:
        p = 101
        lc = LinComb({1: 2, 2: 1})
        out = lc.substitute({1: LinComb({5: 3, ONE: 1})}, p)
        self.assertEqual(out, LinComb({5: 6, ONE: 2, 2: 1}))


class AbiCodecTests(unittest.TestCase):
    def test_outputs_round_trip(self) -> None:
        circuit = zkc_lang.compile_source(
            "struct P { field x; bool ok; }\n"
            "def main(field a) -> (u8, P, field[2]) { return 7, P { x: a, ok: true }, [a, 1]; }"
        )
        values = [7, {"x": 5, "ok": True}, [5, 1]]
        flat = abi.encode_outputs(circuit.signature, values, circuit.field)
        self.assertEqual(flat, [7, 5, 1, 5, 1])
        self.assertEqual(abi.decode_outputs(circuit.signature, flat, circuit.field), values)
        witness = zkc_lang.compute_witness(circuit, [5])
        self.assertEqual(witness.outputs, flat)

    def test_decode_rejects_non_canonical_field_elements(self) -> None:
        circuit = zkc_lang.compile_source("def main(field a, private field b) -> field { return a + b; }")
        p = circuit.field.modulus
        with self.assertRaises(zkc_lang.AbiError):
            abi.decode(circuit.signature, [p, 1], circuit.field)
        with self.assertRaises(zkc_lang.AbiError):
            abi.decode_outputs(circuit.signature, [p + 3])
        self.assertEqual(abi.decode(circuit.signature, [p - 1, 1]), {"a": p - 1, "b": 1})


class SmtTests(unittest.TestCase):
    def setUp(self) -> None:
        self.circuit = zkc_lang.compile_source("def main(field a, field b) -> field { return a * b; }")

    def test_export_declares_prime_and_wires(self) -> None:
        text = smt.to_smtlib2(self.circuit)
        self.assertIn("~prime", text)
        self.assertIn(str(self.circuit.field.modulus), text)
        self.assertIn("declare-fun", text)
        self.assertIn("~out_0", text)

    def test_witness_check(self) -> None:
        witness = zkc_lang.compute_witness(self.circuit, [3, 4])
        self.assertTrue(smt.check_witness(self.circuit, witness))
        values = list(witness.values)
        values[self.circuit.outputs[0]] = 13
        self.assertFalse(smt.check_witness(self.circuit, Witness(tuple(values))))


if __name__ == "__main__":
    unittest.main(verbosity=2)
