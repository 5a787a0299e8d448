from __future__ import annotations

import importlib.util
import tempfile
import unittest
from dataclasses import dataclass
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
LSP_PATH = ROOT / "packages" / "zkc-vscode" / "server" / "lsp_server.py"
FIXTURES = ROOT / "tests" / "fixtures"


def _load_lsp_module():
    spec = importlib.util.spec_from_file_location("zkc_lsp_server", LSP_PATH)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Failed to load module spec from {LSP_PATH}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


@dataclass
class _Doc:
    source: str


class _Workspace:
    def __init__(self, text: str):
        self._doc = _Doc(text)

    def get_document(self, uri: str) -> _Doc:
        return self._doc


class _LS:
    def __init__(self, text: str):
        self.workspace = _Workspace(text)
        self.published: dict[str, list[object]] = {}

    def publish_diagnostics(self, uri: str, diagnostics: list[object]) -> None:
        self.published[uri] = diagnostics


class LspTests(unittest.TestCase):
    def setUp(self):
        self.lsp = _load_lsp_module()
        self.uri = (FIXTURES / "scratch.zok").as_uri()

    def test_clean_document_has_no_diagnostics(self) -> None:
        src = "def main(field a) -> field { return a + 1; }"
        self.assertEqual(self.lsp.diagnose(self.uri, src), [])

    def test_syntax_error_position(self) -> None:
        src = "def main() -> field {\n    return 1\n}\n"
        diags = self.lsp.diagnose(self.uri, src)
        self.assertEqual(len(diags), 1)
        self.assertEqual(diags[0].range.start.line, 2)
        self.assertEqual(diags[0].source, "zkc")

    def test_unbound_identifier_is_reported(self) -> None:
        src = "def main() -> field {\n    return missing;\n}\n"
        diags = self.lsp.diagnose(self.uri, src)
        self.assertEqual(len(diags), 1)
        self.assertIn("missing", diags[0].message)
        self.assertEqual(diags[0].range.start.line, 1)
        self.assertEqual(diags[0].range.start.character, 11)

    def test_imports_resolve_next_to_the_document(self) -> None:
        uri = (FIXTURES / "imports" / "scratch.zok").as_uri()
        src = 'from "./lib" import scale;\ndef main(field a) -> field { return scale(a); }\n'
        self.assertEqual(self.lsp.diagnose(uri, src), [])
        src = 'from "./lib" import nothing;\ndef main(field a) -> field { return a; }\n'
        diags = self.lsp.diagnose(uri, src)
        self.assertIn("nothing", diags[0].message)

    def test_error_in_imported_module_is_pinned_to_top(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            Path(td, "bad.zok").write_text("def f() -> field { return nope; }\n", encoding="utf-8")
            uri = Path(td, "main.zok").as_uri()
            src = 'from "./bad" import f;\n\ndef main() -> field { return f(); }\n'
            diags = self.lsp.diagnose(uri, src)
        self.assertEqual(len(diags), 1)
        self.assertEqual(diags[0].range.start.line, 0)
        self.assertIn("bad.zok", diags[0].message)

    def test_validate_publishes(self) -> None:
        ls = _LS("def main() -> bool { return 1; }")
        self.lsp.validate(ls, self.uri)
        self.assertEqual(len(ls.published[self.uri]), 1)
        ls = _LS("def main() -> bool { return true; }")
        self.lsp.validate(ls, self.uri)
        self.assertEqual(ls.published[self.uri], [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
