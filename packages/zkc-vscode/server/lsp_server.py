from __future__ import annotations

import os
import sys
from pathlib import Path
from urllib.parse import unquote, urlparse


def _fatal(msg: str) -> None:
    sys.stderr.write(msg + "\n")
    sys.stderr.flush()


try:
    try:
        from pygls.lsp.server import LanguageServer
    except ImportError:
        from pygls.server import LanguageServer
    from lsprotocol.types import (
        TEXT_DOCUMENT_DID_CHANGE,
        TEXT_DOCUMENT_DID_OPEN,
        TEXT_DOCUMENT_DID_SAVE,
        Diagnostic,
        DiagnosticSeverity,
        Position,
        PublishDiagnosticsParams,
        Range,
    )
except ImportError as e:
    _fatal(f"zkc language server: failed to import LSP dependencies: {e}")
    raise


SERVER = LanguageServer("zkc-server", "v0.1")

# zkc_lang lives three directories up when running from a checkout.
SERVER_DIR = Path(__file__).resolve().parent
ROOT_DIR = SERVER_DIR.parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

try:
    from zkc_lang import FileSystemProvider, ModuleResolver, ZkcError, check
except ImportError:
    _fatal("zkc language server: could not import 'zkc_lang'. Ensure it is installed or on PYTHONPATH.")
    raise


class EditorProvider(FileSystemProvider):
    """Disk modules, except the open document whose text comes from the editor."""

    def __init__(self, root: str, module_id: str, text: str):
        super().__init__(root)
        self.overrides = {module_id: text}

    def read(self, module_id: str) -> str:
        if module_id in self.overrides:
            return self.overrides[module_id]
        return super().read(module_id)


def _make_diag(line0: int, col0: int, msg: str) -> Diagnostic:
    start = Position(line=max(line0, 0), character=max(col0, 0))
    end = Position(line=max(line0, 0), character=max(col0, 0) + 10)
    return Diagnostic(
        range=Range(start=start, end=end),
        message=msg,
        severity=DiagnosticSeverity.Error,
        source="zkc",
    )


def _split_uri(uri: str) -> tuple[str, str]:
    parsed = urlparse(uri)
    path = unquote(parsed.path) if parsed.scheme == "file" else uri
    return os.path.dirname(path) or ".", os.path.basename(path) or "main.zok"


def diagnose(uri: str, text: str) -> list[Diagnostic]:
    """Type-check the document (and its imports); report the first error found."""
    root, module_id = _split_uri(uri)
    try:
        check(ModuleResolver(EditorProvider(root, module_id, text)).resolve(module_id))
    except ZkcError as e:
        loc = e.location
        # Errors located in an imported module are pinned to the top of this one.
        if loc is None or loc.module != module_id:
            return [_make_diag(0, 0, str(e))]
        return [_make_diag(loc.line - 1, loc.column - 1, e.message)]
    return []


def _document_source(ls, uri: str) -> str:
    workspace = ls.workspace
    getter = getattr(workspace, "get_text_document", None) or workspace.get_document
    return getter(uri).source


def _publish(ls, uri: str, diags: list[Diagnostic]) -> None:
    if hasattr(ls, "text_document_publish_diagnostics"):
        ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=diags))
    else:
        ls.publish_diagnostics(uri, diags)


def validate(ls, uri: str) -> None:
    _publish(ls, uri, diagnose(uri, _document_source(ls, uri)))


@SERVER.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls, params):
    validate(ls, params.text_document.uri)


@SERVER.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls, params):
    validate(ls, params.text_document.uri)


@SERVER.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls, params):
    validate(ls, params.text_document.uri)


if __name__ == "__main__":
    SERVER.start_io()
