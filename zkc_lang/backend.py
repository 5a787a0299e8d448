import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Type, Union

from .circuit import Circuit
from .exceptions import ZkcError
from .interpreter import Witness

logger = logging.getLogger(__name__)


class BackendError(ZkcError):
    pass


def to_hex(value: int) -> str:
    """Field element as a 0x-prefixed, 32-byte big-endian hex string."""
    return f"0x{value:064x}"


def from_hex(text: str) -> int:
    return int(text, 16)


Fq2 = Tuple[str, str]


@dataclass(frozen=True)
class G1Affine:
    x: str
    y: str

    def to_json(self) -> List[str]:
        return [self.x, self.y]

    @classmethod
    def from_json(cls, data: Sequence[str]) -> "G1Affine":
        x, y = data
        return cls(x, y)


@dataclass(frozen=True)
class G2Affine:
    """Coordinates are Fq2 pairs on most curves and plain Fq elements on BW6."""

    x: Union[Fq2, str]
    y: Union[Fq2, str]

    def to_json(self) -> List[Any]:
        if isinstance(self.x, str):
            return [self.x, self.y]
        return [list(self.x), list(self.y)]

    @classmethod
    def from_json(cls, data: Sequence[Any]) -> "G2Affine":
        x, y = data
        if isinstance(x, str):
            return cls(x, y)
        return cls(tuple(x), tuple(y))


@dataclass(frozen=True)
class ProofPoints:
    a: G1Affine
    b: G2Affine
    c: G1Affine

    def to_json(self) -> Dict[str, Any]:
        return {"a": self.a.to_json(), "b": self.b.to_json(), "c": self.c.to_json()}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ProofPoints":
        return cls(G1Affine.from_json(data["a"]), G2Affine.from_json(data["b"]), G1Affine.from_json(data["c"]))


@dataclass(frozen=True)
class VerificationKey:
    alpha: G1Affine
    beta: G2Affine
    gamma: G2Affine
    delta: G2Affine
    gamma_abc: Tuple[G1Affine, ...]

    def to_json(self) -> Dict[str, Any]:
        return {
            "alpha": self.alpha.to_json(),
            "beta": self.beta.to_json(),
            "gamma": self.gamma.to_json(),
            "delta": self.delta.to_json(),
            "gamma_abc": [g.to_json() for g in self.gamma_abc],
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "VerificationKey":
        return cls(
            G1Affine.from_json(data["alpha"]),
            G2Affine.from_json(data["beta"]),
            G2Affine.from_json(data["gamma"]),
            G2Affine.from_json(data["delta"]),
            tuple(G1Affine.from_json(g) for g in data["gamma_abc"]),
        )

    def check_inputs(self, count: int) -> None:
        if len(self.gamma_abc) != count + 1:
            raise BackendError(
                f"Verification key expects {len(self.gamma_abc) - 1} public inputs, found {count}"
            )


@dataclass(frozen=True)
class Proof:
    proof: ProofPoints
    inputs: Tuple[str, ...]

    def to_json(self) -> Dict[str, Any]:
        return {"proof": self.proof.to_json(), "inputs": list(self.inputs)}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Proof":
        return cls(ProofPoints.from_json(data["proof"]), tuple(data["inputs"]))

    @classmethod
    def create(cls, points: ProofPoints, public_values: Sequence[int]) -> "Proof":
        return cls(points, tuple(to_hex(v) for v in public_values))


@dataclass(frozen=True)
class SetupKeypair:
    proving_key: bytes
    verification_key: VerificationKey


class Backend(ABC):
    """A proof system over compiled circuits; implementations live outside this package."""

    scheme: str = ""
    curves: Tuple[str, ...] = ()

    def supports(self, circuit: Circuit) -> bool:
        return not self.curves or circuit.curve in self.curves

    @abstractmethod
    def setup(self, circuit: Circuit) -> SetupKeypair: ...

    @abstractmethod
    def prove(self, circuit: Circuit, proving_key: bytes, witness: Witness) -> Proof: ...

    @abstractmethod
    def verify(self, verification_key: VerificationKey, public_inputs: Sequence[int], proof: Proof) -> bool: ...


_BACKENDS: Dict[str, Type[Backend]] = {}


def register_backend(cls: Type[Backend]) -> Type[Backend]:
    """Class decorator making a backend available under its scheme name."""
    if not cls.scheme:
        raise BackendError(f"Backend {cls.__name__} has no scheme name")
    _BACKENDS[cls.scheme] = cls
    logger.debug("Registered backend %s (%s)", cls.scheme, cls.__name__)
    return cls


def unregister_backend(scheme: str) -> None:
    _BACKENDS.pop(scheme, None)


def get_backend(scheme: str) -> Backend:
    try:
        return _BACKENDS[scheme]()
    except KeyError:
        known = ", ".join(sorted(_BACKENDS)) or "none"
        raise BackendError(f"No backend registered for scheme '{scheme}' (available: {known})")


def available_backends() -> List[str]:
    return sorted(_BACKENDS)
