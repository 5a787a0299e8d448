from dataclasses import dataclass
from typing import Dict, List

from .exceptions import ConfigError


CURVE_MODULI: Dict[str, int] = {
    "bn128": 21888242871839275222246405745257275088548364400416034343698204186575808495617,
    "bls12_381": 52435875175126190479447740508185965837690552500527637822603658699938581184513,
    "bls12_377": 8444461749428370424248824938781546531375899335154063827935233455917409239041,
    "bw6_761": 258664426012969094010652733694893533536393512754914660539884262666720468348340822774968888139573360124440321458177,
}


@dataclass(frozen=True)
class PrimeField:
    """Scalar field of a curve. Elements are plain ints kept in [0, modulus)."""

    name: str
    modulus: int

    @classmethod
    def for_curve(cls, curve: str) -> "PrimeField":
        try:
            return cls(curve, CURVE_MODULI[curve])
        except KeyError:
            known = ", ".join(sorted(CURVE_MODULI))
            raise ConfigError(f"Unknown curve '{curve}' (known: {known})")

    @property
    def bits(self) -> int:
        return self.modulus.bit_length()

    def canon(self, value: int) -> int:
        return value % self.modulus

    def add(self, a: int, b: int) -> int:
        return (a + b) % self.modulus

    def sub(self, a: int, b: int) -> int:
        return (a - b) % self.modulus

    def mul(self, a: int, b: int) -> int:
        return a * b % self.modulus

    def neg(self, a: int) -> int:
        return -a % self.modulus

    def inv(self, a: int) -> int:
        if a % self.modulus == 0:
            raise ZeroDivisionError("inverse of zero")
        return pow(a, -1, self.modulus)

    def div(self, a: int, b: int) -> int:
        return a * self.inv(b) % self.modulus

    def pow(self, a: int, e: int) -> int:
        return pow(a, e, self.modulus)

    def to_bits(self, value: int, width: int) -> List[int]:
        """Little-endian bits of `value`; raises if it does not fit `width` bits."""
        value = self.canon(value)
        if value >> width:
            raise ValueError(f"{value} does not fit in {width} bits")
        return [(value >> i) & 1 for i in range(width)]

    def contains(self, value: int) -> bool:
        return 0 <= value < self.modulus
