import unittest
import pytest

import zkc_lang

hypothesis = pytest.importorskip("hypothesis")
strategies = hypothesis.strategies

P = zkc_lang.PrimeField.for_curve("bn128").modulus

_leaves = strategies.sampled_from(["a", "b"]) | strategies.integers(0, 1000).map(str)
_expressions = strategies.recursive(
    _leaves,
    lambda inner: strategies.tuples(inner, strategies.sampled_from(["+", "-", "*"]), inner).map(
        lambda t: f"({t[0]} {t[1]} {t[2]})"
    ),
    max_leaves=8,
)


class FuzzTests(unittest.TestCase):
    @hypothesis.given(strategies.text())
    def test_fuzz_parser_stability(self, trash_text: str) -> None:
        try:
            zkc_lang.parse(trash_text, "fuzz.zok")
        except zkc_lang.ParseError as e:
            # Every rejection points somewhere inside the input.
            self.assertGreaterEqual(e.line, 1)

    @hypothesis.settings(deadline=None, max_examples=50)
    @hypothesis.given(_expressions, strategies.integers(0, P - 1), strategies.integers(0, P - 1))
    def test_arithmetic_matches_python(self, expr: str, a: int, b: int) -> None:
        source = f"def main(field a, private field b) -> field {{ return {expr}; }}"
        circuit = zkc_lang.compile_source(source)
        witness = zkc_lang.compute_witness(circuit, [a, b])
        self.assertTrue(circuit.is_satisfied(list(witness.values)))
        self.assertEqual(witness.outputs, [eval(expr, {"a": a, "b": b}) % P])


if __name__ == "__main__":
    unittest.main(verbosity=2)
