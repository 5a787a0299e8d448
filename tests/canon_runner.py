from __future__ import annotations

import unittest
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import zkc_lang
from zkc_lang import ExecutionKind, TypeCheckKind


ROOT = Path(__file__).resolve().parents[1]
FIXTURES = ROOT / "tests" / "fixtures"


@dataclass
class _RunResult:
    circuit: zkc_lang.Circuit | None
    witness: zkc_lang.Witness | None
    outputs: list[Any] | None
    error: Exception | None


def _compile_fixture(fixture_name: str, config: zkc_lang.CompilerConfig | None = None) -> zkc_lang.Circuit:
    fixture_path = FIXTURES / fixture_name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Missing fixture: {fixture_path}")
    return zkc_lang.compile_file(str(fixture_path), config)


def _run_fixture(fixture_name: str, arguments: Any = (), config: zkc_lang.CompilerConfig | None = None) -> _RunResult:
    """Compile then execute a fixture, capturing the first error from either stage."""
    circuit = witness = outputs = None
    err: Exception | None = None
    try:
        circuit = _compile_fixture(fixture_name, config)
        witness = zkc_lang.compute_witness(circuit, list(arguments) if isinstance(arguments, tuple) else arguments)
        outputs = witness.decoded_outputs(circuit.signature, circuit.field)
    except zkc_lang.ZkcError as e:
        err = e
    return _RunResult(circuit, witness, outputs, err)


class CanonTests(unittest.TestCase):
    def _assert_sound(self, r: _RunResult) -> None:
        self.assertIsNone(r.error)
        self.assertTrue(r.circuit.is_satisfied(list(r.witness.values)))

    # Arithmetic and relations

    def test_factorisation_accepts_valid_factors(self) -> None:
        r = _run_fixture("factor.zok", {"p": 2, "q": 2, "n": 4})
        self._assert_sound(r)
        self.assertEqual(r.outputs, [])

    def test_factorisation_rejects_wrong_product(self) -> None:
        r = _run_fixture("factor.zok", {"p": 2, "q": 3, "n": 4})
        self.assertIsInstance(r.error, zkc_lang.ExecutionError)
        self.assertIs(r.error.kind, ExecutionKind.ASSERTION_FAILED)

    def test_factorisation_rejects_trivial_factor(self) -> None:
        r = _run_fixture("factor.zok", {"p": 1, "q": 4, "n": 4})
        self.assertIsInstance(r.error, zkc_lang.ExecutionError)
        self.assertIs(r.error.kind, ExecutionKind.ASSERTION_FAILED)

    def test_factor_inputs_are_split_by_visibility(self) -> None:
        circuit = _compile_fixture("factor.zok")
        self.assertEqual(circuit.public_inputs, (1,))
        self.assertEqual(circuit.outputs, ())
        self.assertEqual(circuit.private_inputs, (2, 3))

    def test_comparison_le(self) -> None:
        for x, y, expected in ((5, 7, True), (7, 5, False), (5, 5, True), (0, 2**32 - 1, True)):
            with self.subTest(x=x, y=y):
                r = _run_fixture("comparison.zok", [x, y])
                self._assert_sound(r)
                self.assertEqual(r.outputs, [expected])

    def test_comparison_le_on_constants(self) -> None:
        r = _run_fixture("comparison_constants.zok")
        self._assert_sound(r)
        self.assertEqual(r.outputs, [True, False, True])

    def test_field_division(self) -> None:
        r = _run_fixture("division.zok", {"a": 6, "b": 3})
        self._assert_sound(r)
        self.assertEqual(r.outputs, [2])

    def test_field_division_by_zero_fails_at_runtime(self) -> None:
        r = _run_fixture("division.zok", {"a": 6, "b": 0})
        self.assertIsInstance(r.error, zkc_lang.ExecutionError)
        self.assertIs(r.error.kind, ExecutionKind.DIVISION_BY_ZERO)
        self.assertIsNone(r.witness)

    def test_uint_arithmetic_wraps(self) -> None:
        r = _run_fixture("uint_arith.zok", [200, 7])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [207, 193, (200 * 7) % 256, 28, 4])
        r = _run_fixture("uint_arith.zok", [100, 200])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [44, 156, 32, 0, 100])

    def test_uint_division_by_zero(self) -> None:
        r = _run_fixture("uint_arith.zok", [5, 0])
        self.assertIsInstance(r.error, zkc_lang.ExecutionError)
        self.assertIs(r.error.kind, ExecutionKind.DIVISION_BY_ZERO)

    def test_uint_bitwise(self) -> None:
        r = _run_fixture("uint_bitwise.zok", [200, 100])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [64, 236, 172, 144, 50, 55])

    # Functions

    def test_overload_resolves_by_arity(self) -> None:
        r = _run_fixture("overload.zok")
        self._assert_sound(r)
        self.assertEqual(r.outputs, [3])
        self.assertIn("overload.zok::f/1", r.circuit.instantiations)
        self.assertNotIn("overload.zok::f/0", r.circuit.instantiations)

    def test_overload_without_match_is_a_type_error(self) -> None:
        with self.assertRaises(zkc_lang.TypeCheckError) as ctx:
            _compile_fixture("overload_no_match.zok")
        self.assertIs(ctx.exception.kind, TypeCheckKind.NO_MATCHING_OVERLOAD)
        self.assertIn("NoMatchingOverload", str(ctx.exception))

    def test_generic_instantiations_are_unique(self) -> None:
        r = _run_fixture("generics.zok", [[1, 2], [3, 4], [5, 6, 7]])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [28])
        keys = list(r.circuit.instantiations)
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(keys.count("generics.zok::total/0<2>"), 1)
        self.assertEqual(keys.count("generics.zok::total/0<3>"), 1)
        self.assertNotEqual(keys.index("generics.zok::total/0<2>"), keys.index("generics.zok::total/0<3>"))

    def test_structs(self) -> None:
        r = _run_fixture("structs.zok", {"p": {"x": 3, "y": 4}})
        self._assert_sound(r)
        self.assertEqual(r.outputs, [15, {"x": 5, "y": 3}])

    # Arrays and loops

    def test_loops_unroll_with_array_updates(self) -> None:
        r = _run_fixture("loops.zok", [[1, 2, 3, 4]])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [[1, 3, 6, 10]])

    def test_runtime_index(self) -> None:
        r = _run_fixture("runtime_index.zok", [[10, 20, 30], 1])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [20])

    def test_runtime_index_out_of_bounds(self) -> None:
        r = _run_fixture("runtime_index.zok", [[10, 20, 30], 5])
        self.assertIsInstance(r.error, zkc_lang.ExecutionError)
        self.assertIs(r.error.kind, ExecutionKind.OUT_OF_BOUNDS)

    def test_static_index_out_of_bounds(self) -> None:
        with self.assertRaises(zkc_lang.TypeCheckError) as ctx:
            _compile_fixture("static_oob.zok")
        self.assertIs(ctx.exception.kind, TypeCheckKind.OUT_OF_BOUNDS)
        self.assertEqual(ctx.exception.location.line, 2)

    # Modules

    def test_imports_with_alias(self) -> None:
        r = _run_fixture("imports/main.zok", [2])
        self._assert_sound(r)
        self.assertEqual(r.outputs, [9])
        self.assertIn("lib.zok::scale/0", r.circuit.instantiations)

    def test_import_cycle_is_rejected(self) -> None:
        with self.assertRaises(zkc_lang.ResolutionError) as ctx:
            _compile_fixture("cycle/a.zok")
        self.assertIn("Import cycle: a.zok -> b.zok -> a.zok", str(ctx.exception))


if __name__ == "__main__":
    unittest.main(verbosity=2)
