from __future__ import annotations
import io
import json
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

# We import the entrypoint script specifically to test it
import zkc
import zkc_lang

SOURCE = "def main(field a, private field b) -> field { return a * b; }\n"


class EntrypointCoverageTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = self._tmp.name
        self.source = self._path("prog.zok")
        with open(self.source, "w", encoding="utf-8") as f:
            f.write(SOURCE)
        self.circuit = self._path("prog.json")

    def _path(self, name: str) -> str:
        return os.path.join(self.dir, name)

    def _run(self, *argv: str) -> str:
        buf = io.StringIO()
        with patch.object(sys, "argv", ["zkc.py", *argv]), redirect_stdout(buf):
            zkc.main()
        return buf.getvalue()

    def test_compile_writes_artifacts(self) -> None:
        abi_path = self._path("abi.json")
        r1cs_path = self._path("r1cs.json")
        out = self._run("compile", self.source, "-o", self.circuit, "--abi", abi_path, "--r1cs", r1cs_path)
        self.assertIn("2 constraints", out)
        with open(self.circuit, encoding="utf-8") as f:
            circuit = zkc_lang.Circuit.from_json(f.read())
        self.assertEqual(circuit.private_inputs, (3,))
        with open(abi_path, encoding="utf-8") as f:
            self.assertEqual(zkc_lang.AbiSignature.from_dict(json.load(f)), circuit.signature)
        with open(r1cs_path, encoding="utf-8") as f:
            self.assertEqual(len(json.load(f)["constraints"]), 2)

    def test_compile_to_stdout(self) -> None:
        out = self._run("compile", self.source)
        self.assertEqual(json.loads(out)["curve"], "bn128")

    def test_config_file_next_to_source_is_used(self) -> None:
        with open(self._path("zkc.toml"), "w", encoding="utf-8") as f:
            f.write('[compiler]\ncurve = "bls12_381"\n')
        out = self._run("compile", self.source)
        self.assertEqual(json.loads(out)["curve"], "bls12_381")
        out = self._run("compile", self.source, "--curve", "bn128")
        self.assertEqual(json.loads(out)["curve"], "bn128")

    def test_compute_witness(self) -> None:
        self._run("compile", self.source, "-o", self.circuit)
        witness_path = self._path("witness.json")
        out = self._run("compute-witness", "-i", self.circuit, "-a", "[3, 4]", "-o", witness_path)
        self.assertEqual(out.strip(), "[12]")
        out = self._run("inspect", "-i", self.circuit, "--witness", witness_path)
        self.assertIn("witness satisfies circuit: True", out)

    def test_compute_witness_from_file(self) -> None:
        self._run("compile", self.source, "-o", self.circuit)
        args_path = self._path("args.json")
        with open(args_path, "w", encoding="utf-8") as f:
            json.dump({"a": 5, "b": 6}, f)
        out = self._run("compute-witness", "-i", self.circuit, "--arguments-file", args_path)
        self.assertEqual(out.strip(), "[30]")

    def test_inspect(self) -> None:
        self._run("compile", self.source, "-o", self.circuit)
        out = self._run("inspect", "-i", self.circuit)
        self.assertIn("constraints:    2", out)
        self.assertIn("private field b", out)
        self.assertIn("instantiation prog.zok::main/0", out)

    def test_export_smt(self) -> None:
        self._run("compile", self.source, "-o", self.circuit)
        out = self._run("export-smt", "-i", self.circuit)
        self.assertIn("~prime", out)

    def test_main_exits_on_error(self) -> None:
        missing_path = os.path.join(self.dir, "no_such_file.zok")
        err = io.StringIO()
        with patch.object(zkc.sys, "argv", ["zkc.py", "compile", missing_path]), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                zkc.main()
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Error:", err.getvalue())

    def test_main_exits_on_failed_assertion(self) -> None:
        with open(self.source, "w", encoding="utf-8") as f:
            f.write("def main(field a) { assert(a == 1); return; }\n")
        self._run("compile", self.source, "-o", self.circuit)
        err = io.StringIO()
        with patch.object(zkc.sys, "argv", ["zkc.py", "compute-witness", "-i", self.circuit, "-a", "[2]"]), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                zkc.main()
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
