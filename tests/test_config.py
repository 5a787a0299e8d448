from __future__ import annotations

import os
import tempfile
import unittest

import zkc_lang
from zkc_lang import CompilerConfig, ConfigError, load_config


class ConfigTests(unittest.TestCase):
    def _write(self, text: str) -> str:
        handle = tempfile.NamedTemporaryFile("w", suffix=".toml", delete=False)
        with handle:
            handle.write(text)
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def test_defaults(self) -> None:
        config = load_config(environ={})
        self.assertEqual(config, CompilerConfig())
        self.assertEqual(config.safe_comparison_bits(), 253)

    def test_file_then_environment(self) -> None:
        path = self._write('[compiler]\ncurve = "bls12_381"\nmax_unroll = 64\n')
        config = load_config(path, environ={"ZKC_MAX_UNROLL": "32"})
        self.assertEqual(config.curve, "bls12_381")
        self.assertEqual(config.max_unroll, 32)
        self.assertEqual(config.field.modulus, zkc_lang.PrimeField.for_curve("bls12_381").modulus)

    def test_explicit_overrides_win(self) -> None:
        config = load_config(environ={"ZKC_COMPARISON_BITS": "64"}).merged({"comparison_bits": 32, "curve": None})
        self.assertEqual(config.comparison_bits, 32)
        self.assertEqual(config.curve, "bn128")

    def test_invalid_integer(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(environ={"ZKC_MAX_UNROLL": "lots"})

    def test_unknown_curve(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(environ={"ZKC_CURVE": "secp256k1"})

    def test_unknown_key(self) -> None:
        path = self._write("[compiler]\noptimize = 1\n")
        with self.assertRaises(ConfigError) as ctx:
            load_config(path, environ={})
        self.assertIn("optimize", str(ctx.exception))

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config("/nonexistent/zkc.toml", environ={})

    def test_malformed_file(self) -> None:
        path = self._write("[compiler\n")
        with self.assertRaises(ConfigError):
            load_config(path, environ={})

    def test_comparison_width_is_checked_on_load(self) -> None:
        for width in ("254", "300", "0"):
            with self.subTest(width=width):
                with self.assertRaises(ConfigError):
                    load_config(environ={"ZKC_COMPARISON_BITS": width})
        with self.assertRaises(ConfigError):
            CompilerConfig().merged({"curve": "bls12_381", "comparison_bits": 255})
        self.assertEqual(load_config(environ={"ZKC_COMPARISON_BITS": "253"}).comparison_bits, 253)

    def test_comparison_width_must_stay_below_field_size(self) -> None:
        with self.assertRaises(ConfigError):
            CompilerConfig(comparison_bits=254).safe_comparison_bits()
        self.assertEqual(CompilerConfig(comparison_bits=16).safe_comparison_bits(), 16)


if __name__ == "__main__":
    unittest.main(verbosity=2)
