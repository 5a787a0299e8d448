from __future__ import annotations

import unittest

import pytest

import zkc_lang
from zkc_lang import abi
from zkc_lang.abi import AbiInput, AbiSignature
from zkc_lang.types import BOOL, FIELD, U8, U32, U64, ArrayType, StructType

hypothesis = pytest.importorskip("hypothesis")
strategies = hypothesis.strategies

BN128 = zkc_lang.PrimeField.for_curve("bn128")

PRODUCT = """
def main(field a, private field b) -> field {
    field c = a * b;
    assert(c != 0);
    return c + a;
}
"""

_types = strategies.recursive(
    strategies.sampled_from([FIELD, BOOL, U8, U32, U64]),
    lambda inner: strategies.one_of(
        strategies.builds(ArrayType, inner, strategies.integers(0, 3)),
        strategies.builds(lambda a, b: StructType("S", (("a", a), ("b", b))), inner, inner),
    ),
    max_leaves=6,
)


def _values_for(ty):
    if ty == FIELD:
        return strategies.integers(0, BN128.modulus - 1)
    if ty == BOOL:
        return strategies.booleans()
    if isinstance(ty, ArrayType):
        return strategies.lists(_values_for(ty.element), min_size=ty.length, max_size=ty.length)
    if isinstance(ty, StructType):
        return strategies.fixed_dictionaries({name: _values_for(t) for name, t in ty.members})
    return strategies.integers(0, ty.max_value)


@strategies.composite
def _signature_and_values(draw):
    count = draw(strategies.integers(1, 4))
    inputs = []
    values = {}
    for i in range(count):
        ty = draw(_types)
        entry = AbiInput(f"arg{i}", ty, draw(strategies.booleans()))
        inputs.append(entry)
        values[entry.name] = draw(_values_for(ty))
    return AbiSignature(tuple(inputs)), values


class AbiRoundTripTests(unittest.TestCase):
    @hypothesis.given(_signature_and_values())
    def test_decode_inverts_encode(self, case) -> None:
        signature, values = case
        flat = abi.encode(signature, values)
        self.assertEqual(len(flat), sum(i.type.size() for i in signature.inputs))
        self.assertEqual(abi.decode(signature, flat), values)

    @hypothesis.given(_signature_and_values())
    def test_abi_document_round_trip(self, case) -> None:
        signature, _ = case
        self.assertEqual(AbiSignature.from_dict(signature.to_dict()), signature)

    @hypothesis.given(_types)
    def test_type_document_round_trip(self, ty) -> None:
        self.assertEqual(abi.type_from_dict(abi.type_to_dict(ty)), ty)


class WitnessSoundnessTests(unittest.TestCase):
    circuit: zkc_lang.Circuit

    @classmethod
    def setUpClass(cls) -> None:
        cls.circuit = zkc_lang.compile_source(PRODUCT)

    @hypothesis.settings(max_examples=50, deadline=None)
    @hypothesis.given(
        strategies.integers(1, BN128.modulus - 1), strategies.integers(1, BN128.modulus - 1)
    )
    def test_witness_satisfies_every_constraint(self, a: int, b: int) -> None:
        witness = zkc_lang.compute_witness(self.circuit, [a, b])
        self.assertTrue(self.circuit.is_satisfied(list(witness.values)))
        self.assertEqual(witness.outputs, [(a * b + a) % BN128.modulus])

    @hypothesis.settings(max_examples=25, deadline=None)
    @hypothesis.given(strategies.integers(0, 255), strategies.integers(1, 255))
    def test_uint_division_matches_python(self, a: int, b: int) -> None:
        circuit = zkc_lang.compile_source("def main(u8 a, u8 b) -> (u8, u8) { return a / b, a % b; }")
        witness = zkc_lang.compute_witness(circuit, [a, b])
        self.assertTrue(circuit.is_satisfied(list(witness.values)))
        self.assertEqual(witness.outputs, [a // b, a % b])


if __name__ == "__main__":
    unittest.main(verbosity=2)
