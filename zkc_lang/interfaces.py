import os
import posixpath
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .exceptions import ResolutionError


class FileProvider(ABC):
    """Abstracts source lookup so the resolver can run over disks, editors or tests."""

    @abstractmethod
    def read(self, module_id: str) -> str: ...

    def resolve(self, requestor_id: Optional[str], path: str) -> str:
        """Module id of `path` imported from `requestor_id` (POSIX-style, relative)."""
        if path.startswith("/"):
            target = path
        else:
            base = posixpath.dirname(requestor_id) if requestor_id else ""
            target = posixpath.join(base, path)
        target = posixpath.normpath(target)
        if not posixpath.splitext(target)[1]:
            target += ".zok"
        return target


class InMemoryProvider(FileProvider):
    """Dict-backed sources, used by tests and `compile_source`."""

    def __init__(self, sources: Optional[Dict[str, str]] = None):
        self.sources: Dict[str, str] = dict(sources or {})

    def read(self, module_id: str) -> str:
        try:
            return self.sources[module_id]
        except KeyError:
            raise ResolutionError(f"Module not found: {module_id}")


class FileSystemProvider(FileProvider):
    """Reads modules from disk; module ids are paths relative to `root`."""

    def __init__(self, root: Optional[str] = None):
        self.root = os.path.abspath(root or os.getcwd())

    def path_of(self, module_id: str) -> str:
        return os.path.join(self.root, *module_id.split("/"))

    def read(self, module_id: str) -> str:
        path = self.path_of(module_id)
        if not os.path.isfile(path):
            raise ResolutionError(f"Module not found: {module_id} ({path})")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise ResolutionError(f"Failed reading module {module_id}: {e}")
