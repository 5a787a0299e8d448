from __future__ import annotations

import json
import unittest
from typing import Sequence

import zkc_lang
from zkc_lang.backend import (
    Backend,
    BackendError,
    G1Affine,
    G2Affine,
    Proof,
    ProofPoints,
    SetupKeypair,
    VerificationKey,
    available_backends,
    from_hex,
    get_backend,
    register_backend,
    to_hex,
    unregister_backend,
)

SQUARE = "def main(field x, private field y) -> field { assert(y * y == x); return y; }"


def _g1(n: int) -> G1Affine:
    return G1Affine(to_hex(n), to_hex(n + 1))


def _g2(n: int) -> G2Affine:
    return G2Affine((to_hex(n), to_hex(n + 1)), (to_hex(n + 2), to_hex(n + 3)))


class _EchoBackend(Backend):
    """Accepts a proof when its inputs equal the public values of the witness."""

    scheme = "echo"
    curves = ("bn128",)

    def setup(self, circuit: zkc_lang.Circuit) -> SetupKeypair:
        gamma_abc = tuple(_g1(i) for i in range(len(circuit.public_wires) + 1))
        vk = VerificationKey(_g1(1), _g2(2), _g2(3), _g2(4), gamma_abc)
        return SetupKeypair(b"pk", vk)

    def prove(self, circuit: zkc_lang.Circuit, proving_key: bytes, witness: zkc_lang.Witness) -> Proof:
        if not circuit.is_satisfied(list(witness.values)):
            raise BackendError("Witness does not satisfy the circuit")
        return Proof.create(ProofPoints(_g1(5), _g2(6), _g1(7)), witness.public_values())

    def verify(self, verification_key: VerificationKey, public_inputs: Sequence[int], proof: Proof) -> bool:
        verification_key.check_inputs(len(public_inputs))
        return [from_hex(v) for v in proof.inputs] == list(public_inputs)


class RegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        register_backend(_EchoBackend)
        self.addCleanup(unregister_backend, "echo")

    def test_lookup_by_scheme(self) -> None:
        self.assertIn("echo", available_backends())
        self.assertIsInstance(get_backend("echo"), _EchoBackend)

    def test_unknown_scheme(self) -> None:
        with self.assertRaises(BackendError) as ctx:
            get_backend("marlin")
        self.assertIn("echo", str(ctx.exception))

    def test_backend_needs_a_scheme(self) -> None:
        class Nameless(_EchoBackend):
            scheme = ""

        with self.assertRaises(BackendError):
            register_backend(Nameless)

    def test_unregister(self) -> None:
        unregister_backend("echo")
        self.assertNotIn("echo", available_backends())

    def test_supports_checks_curve(self) -> None:
        backend = get_backend("echo")
        self.assertTrue(backend.supports(zkc_lang.compile_source(SQUARE)))
        config = zkc_lang.CompilerConfig(curve="bls12_381")
        self.assertFalse(backend.supports(zkc_lang.compile_source(SQUARE, config=config)))


class ProofFlowTests(unittest.TestCase):
    def test_setup_prove_verify(self) -> None:
        backend = _EchoBackend()
        circuit = zkc_lang.compile_source(SQUARE)
        keypair = backend.setup(circuit)
        witness = zkc_lang.compute_witness(circuit, {"x": 9, "y": 3})
        proof = backend.prove(circuit, keypair.proving_key, witness)
        self.assertEqual(proof.inputs, (to_hex(9), to_hex(3)))
        self.assertTrue(backend.verify(keypair.verification_key, [9, 3], proof))
        self.assertFalse(backend.verify(keypair.verification_key, [9, 4], proof))

    def test_input_count_mismatch(self) -> None:
        backend = _EchoBackend()
        keypair = backend.setup(zkc_lang.compile_source(SQUARE))
        proof = Proof.create(ProofPoints(_g1(0), _g2(0), _g1(0)), [9])
        with self.assertRaises(BackendError):
            backend.verify(keypair.verification_key, [9], proof)


class SerialisationTests(unittest.TestCase):
    def test_hex_encoding(self) -> None:
        text = to_hex(255)
        self.assertEqual(len(text), 66)
        self.assertTrue(text.startswith("0x"))
        self.assertEqual(from_hex(text), 255)

    def test_proof_json_round_trip(self) -> None:
        proof = Proof.create(ProofPoints(_g1(1), _g2(2), _g1(3)), [1, 2])
        data = json.loads(json.dumps(proof.to_json()))
        self.assertEqual(Proof.from_json(data), proof)
        self.assertEqual(len(data["proof"]["b"]), 2)
        self.assertEqual(len(data["proof"]["b"][0]), 2)

    def test_verification_key_json_round_trip(self) -> None:
        vk = VerificationKey(_g1(1), _g2(2), _g2(3), _g2(4), (_g1(5), _g1(6)))
        data = json.loads(json.dumps(vk.to_json()))
        self.assertEqual(VerificationKey.from_json(data), vk)

    def test_bw6_g2_points_are_plain(self) -> None:
        point = G2Affine(to_hex(1), to_hex(2))
        self.assertEqual(point.to_json(), [to_hex(1), to_hex(2)])
        self.assertEqual(G2Affine.from_json(point.to_json()), point)


if __name__ == "__main__":
    unittest.main(verbosity=2)
