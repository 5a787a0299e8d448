from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import AbiError
from .fields import PrimeField
from .types import (
    ArrayType,
    BoolType,
    FieldType,
    PRIMITIVES,
    StructType,
    Type,
    UintType,
)


@dataclass(frozen=True)
class AbiInput:
    name: str
    type: Type
    public: bool = True

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"name": self.name, "public": self.public}
        entry.update(type_to_dict(self.type))
        return entry

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AbiInput":
        try:
            return cls(data["name"], type_from_dict(data), bool(data.get("public", True)))
        except KeyError as e:
            raise AbiError(f"ABI input is missing key {e}")


@dataclass(frozen=True)
class AbiSignature:
    """Inputs of `main` in declaration order, plus its return types."""

    inputs: Tuple[AbiInput, ...]
    outputs: Tuple[Type, ...] = ()

    @property
    def public_inputs(self) -> Tuple[AbiInput, ...]:
        return tuple(i for i in self.inputs if i.public)

    @property
    def private_inputs(self) -> Tuple[AbiInput, ...]:
        return tuple(i for i in self.inputs if not i.public)

    def ordered_inputs(self) -> Tuple[AbiInput, ...]:
        """Encoding order: public inputs first, then private ones."""
        return self.public_inputs + self.private_inputs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": [i.to_dict() for i in self.inputs],
            "outputs": [type_to_dict(t) for t in self.outputs],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AbiSignature":
        inputs = tuple(AbiInput.from_dict(i) for i in data.get("inputs", []))
        outputs = tuple(type_from_dict(t) for t in data.get("outputs", []))
        return cls(inputs, outputs)


def type_to_dict(ty: Type) -> Dict[str, Any]:
    if isinstance(ty, ArrayType):
        inner = type_to_dict(ty.element)
        return {"type": "array", "components": dict(size=ty.length, **inner)}
    if isinstance(ty, StructType):
        members = [dict(name=name, **type_to_dict(t)) for name, t in ty.members]
        return {"type": "struct", "components": {"name": ty.name, "members": members}}
    return {"type": str(ty)}


def type_from_dict(data: Mapping[str, Any]) -> Type:
    kind = data.get("type")
    if kind in PRIMITIVES:
        return PRIMITIVES[kind]
    components = data.get("components")
    if not isinstance(components, Mapping):
        raise AbiError(f"Unknown ABI type {kind!r}")
    if kind == "array":
        return ArrayType(type_from_dict(components), int(components["size"]))
    if kind == "struct":
        members = tuple((m["name"], type_from_dict(m)) for m in components.get("members", []))
        return StructType(components["name"], members)
    raise AbiError(f"Unknown ABI type {kind!r}")


def _default_field(field: Optional[PrimeField]) -> PrimeField:
    return field or PrimeField.for_curve("bn128")


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise AbiError(f"Expected {what}, found a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise AbiError(f"Expected {what}, found {value!r}")


def encode_value(ty: Type, value: Any, field: PrimeField, out: List[int]) -> None:
    if isinstance(ty, FieldType):
        v = _as_int(value, "a field element")
        if not field.contains(v):
            raise AbiError(f"Field element {v} is outside [0, p)")
        out.append(v)
    elif isinstance(ty, BoolType):
        if not isinstance(value, bool):
            raise AbiError(f"Expected a boolean, found {value!r}")
        out.append(1 if value else 0)
    elif isinstance(ty, UintType):
        v = _as_int(value, str(ty))
        if not 0 <= v <= ty.max_value:
            raise AbiError(f"Value {v} does not fit in {ty}")
        out.append(v)
    elif isinstance(ty, ArrayType):
        if not isinstance(value, (list, tuple)) or len(value) != ty.length:
            raise AbiError(f"Expected an array of {ty.length} elements for {ty}")
        for item in value:
            encode_value(ty.element, item, field, out)
    elif isinstance(ty, StructType):
        if not isinstance(value, Mapping) or set(value) != {n for n, _ in ty.members}:
            raise AbiError(f"Expected members {[n for n, _ in ty.members]} for {ty}")
        for name, member_ty in ty.members:
            encode_value(member_ty, value[name], field, out)
    else:
        raise AbiError(f"Type {ty} cannot be encoded")


def decode_value(ty: Type, flat: Sequence[int], pos: int, field: PrimeField) -> Tuple[Any, int]:
    if isinstance(ty, ArrayType):
        items = []
        for _ in range(ty.length):
            item, pos = decode_value(ty.element, flat, pos, field)
            items.append(item)
        return items, pos
    if isinstance(ty, StructType):
        members = {}
        for name, member_ty in ty.members:
            members[name], pos = decode_value(member_ty, flat, pos, field)
        return members, pos
    if pos >= len(flat):
        raise AbiError("Not enough values to decode")
    raw = flat[pos]
    if not field.contains(raw):
        raise AbiError(f"Value {raw} is not a canonical field element")
    if isinstance(ty, BoolType):
        if raw not in (0, 1):
            raise AbiError(f"Value {raw} is not a boolean")
        return raw == 1, pos + 1
    if isinstance(ty, UintType) and not 0 <= raw <= ty.max_value:
        raise AbiError(f"Value {raw} does not fit in {ty}")
    return raw, pos + 1


def _by_name(signature: AbiSignature, values: Union[Mapping[str, Any], Sequence[Any]]) -> Dict[str, Any]:
    if isinstance(values, Mapping):
        expected = {i.name for i in signature.inputs}
        unknown = set(values) - expected
        missing = expected - set(values)
        if unknown or missing:
            raise AbiError(
                f"Argument mismatch: missing {sorted(missing)}, unexpected {sorted(unknown)}"
            )
        return dict(values)
    if len(values) != len(signature.inputs):
        raise AbiError(f"Expected {len(signature.inputs)} arguments, found {len(values)}")
    return {i.name: v for i, v in zip(signature.inputs, values)}


def encode(
    signature: AbiSignature,
    values: Union[Mapping[str, Any], Sequence[Any]],
    field: Optional[PrimeField] = None,
) -> List[int]:
    field = _default_field(field)
    named = _by_name(signature, values)
    out: List[int] = []
    for entry in signature.ordered_inputs():
        encode_value(entry.type, named[entry.name], field, out)
    return out


def decode(signature: AbiSignature, flat: Sequence[int], field: Optional[PrimeField] = None) -> Dict[str, Any]:
    field = _default_field(field)
    values: Dict[str, Any] = {}
    pos = 0
    for entry in signature.ordered_inputs():
        values[entry.name], pos = decode_value(entry.type, flat, pos, field)
    if pos != len(flat):
        raise AbiError(f"Expected {pos} values, found {len(flat)}")
    # Report in declaration order, not encoding order.
    return {i.name: values[i.name] for i in signature.inputs}


def split_inputs(signature: AbiSignature, flat: Sequence[int]) -> Tuple[List[int], List[int]]:
    """Split an encoded vector into its public and private parts."""
    width = sum(i.type.size() for i in signature.public_inputs)
    return list(flat[:width]), list(flat[width:])


def encode_outputs(signature: AbiSignature, values: Sequence[Any], field: Optional[PrimeField] = None) -> List[int]:
    field = _default_field(field)
    if len(values) != len(signature.outputs):
        raise AbiError(f"Expected {len(signature.outputs)} return values, found {len(values)}")
    out: List[int] = []
    for ty, value in zip(signature.outputs, values):
        encode_value(ty, value, field, out)
    return out


def decode_outputs(signature: AbiSignature, flat: Sequence[int], field: Optional[PrimeField] = None) -> List[Any]:
    field = _default_field(field)
    values = []
    pos = 0
    for ty in signature.outputs:
        value, pos = decode_value(ty, flat, pos, field)
        values.append(value)
    if pos != len(flat):
        raise AbiError(f"Expected {pos} return values, found {len(flat)}")
    return values
