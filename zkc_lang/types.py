from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class FieldType:
    def size(self) -> int:
        return 1

    def __str__(self) -> str:
        return "field"


@dataclass(frozen=True)
class BoolType:
    def size(self) -> int:
        return 1

    def __str__(self) -> str:
        return "bool"


@dataclass(frozen=True)
class UintType:
    bits: int

    def size(self) -> int:
        return 1

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1

    def __str__(self) -> str:
        return f"u{self.bits}"


@dataclass(frozen=True)
class ArrayType:
    element: "Type"
    length: int

    def size(self) -> int:
        return self.element.size() * self.length

    def __str__(self) -> str:
        # Print outer dimension first, matching the source syntax.
        dims = []
        ty: Type = self
        while isinstance(ty, ArrayType):
            dims.append(ty.length)
            ty = ty.element
        return str(ty) + "".join(f"[{d}]" for d in dims)


@dataclass(frozen=True)
class StructType:
    name: str
    members: Tuple[Tuple[str, "Type"], ...]
    module: str = ""

    def size(self) -> int:
        return sum(ty.size() for _, ty in self.members)

    def member(self, name: str) -> Optional["Type"]:
        for member_name, ty in self.members:
            if member_name == name:
                return ty
        return None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IntLiteralType:
    """Type of an integer literal with no suffix, before context fixes it."""

    def size(self) -> int:
        return 1

    def __str__(self) -> str:
        return "{integer}"


Type = Union[FieldType, BoolType, UintType, ArrayType, StructType, IntLiteralType]

FIELD = FieldType()
BOOL = BoolType()
INT_LITERAL = IntLiteralType()
U8, U16, U32, U64 = UintType(8), UintType(16), UintType(32), UintType(64)

PRIMITIVES: Dict[str, Type] = {
    "field": FIELD,
    "bool": BOOL,
    "u8": U8,
    "u16": U16,
    "u32": U32,
    "u64": U64,
}

UINT_WIDTHS = (8, 16, 32, 64)


def is_uint(ty: Type) -> bool:
    return isinstance(ty, UintType)


def is_numeric(ty: Type) -> bool:
    return isinstance(ty, (FieldType, UintType, IntLiteralType))


def contains_literal(ty: Type) -> bool:
    if isinstance(ty, IntLiteralType):
        return True
    if isinstance(ty, ArrayType):
        return contains_literal(ty.element)
    return False


def assignable(actual: Type, expected: Type) -> bool:
    """Whether a value of `actual` type may be used where `expected` is required."""
    if actual == expected:
        return True
    if isinstance(actual, IntLiteralType):
        return isinstance(expected, (FieldType, UintType))
    if isinstance(actual, ArrayType) and isinstance(expected, ArrayType):
        return actual.length == expected.length and assignable(actual.element, expected.element)
    return False


def concrete(ty: Type) -> Type:
    """Replace leftover literal types by `field`, the default numeric type."""
    if isinstance(ty, IntLiteralType):
        return FIELD
    if isinstance(ty, ArrayType):
        return ArrayType(concrete(ty.element), ty.length)
    return ty


def unify_literal(left: Type, right: Type) -> Optional[Type]:
    """Common type of two operands, letting a literal side adopt the other side's type."""
    if left == right:
        return left
    if assignable(left, right):
        return right
    if assignable(right, left):
        return left
    return None
