from typing import Any, Dict, List, Optional, Set

from .exceptions import SourceLocation, TypeCheckError, TypeCheckKind


class ScopeManager:
    """Lexical frames: one per function body, one per loop body."""

    def __init__(self):
        self.stack: List[Dict[str, Any]] = [{}]
        self.readonly: List[Set[str]] = [set()]

    def push_frame(self, frame: Optional[Dict[str, Any]] = None) -> None:
        self.stack.append(dict(frame or {}))
        self.readonly.append(set())

    def pop_frame(self) -> None:
        if len(self.stack) > 1:
            self.stack.pop()
            self.readonly.pop()

    def lookup(self, name: str) -> Optional[Any]:
        for frame in reversed(self.stack):
            if name in frame:
                return frame[name]
        return None

    def __contains__(self, name: str) -> bool:
        return any(name in frame for frame in self.stack)

    def get(self, name: str, loc: Optional[SourceLocation] = None) -> Any:
        for frame in reversed(self.stack):
            if name in frame:
                return frame[name]
        raise TypeCheckError(
            f"Identifier '{name}' is undefined", loc, TypeCheckKind.UNBOUND_IDENTIFIER
        )

    def declare(
        self,
        name: str,
        value: Any,
        loc: Optional[SourceLocation] = None,
        readonly: bool = False,
    ) -> None:
        if name in self.stack[-1]:
            raise TypeCheckError(
                f"Duplicate declaration of '{name}' in the same scope",
                loc,
                TypeCheckKind.REDEFINITION,
            )
        self.stack[-1][name] = value
        if readonly:
            self.readonly[-1].add(name)

    def set(self, name: str, value: Any, loc: Optional[SourceLocation] = None) -> None:
        for frame, readonly in zip(reversed(self.stack), reversed(self.readonly)):
            if name in frame:
                if name in readonly:
                    raise TypeCheckError(
                        f"Cannot assign to read-only variable '{name}'",
                        loc,
                        TypeCheckKind.TYPE_MISMATCH,
                    )
                frame[name] = value
                return
        raise TypeCheckError(
            f"Identifier '{name}' is undefined", loc, TypeCheckKind.UNBOUND_IDENTIFIER
        )
