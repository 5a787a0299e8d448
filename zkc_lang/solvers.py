"""Witness hints. Each solver maps input values to output values and is pure."""

from typing import Callable, Dict, List, Sequence

from .fields import PrimeField


class SolverError(ValueError):
    pass


def bits(field: PrimeField, inputs: Sequence[int], params: Sequence[int]) -> List[int]:
    """Little-endian decomposition of one value into `params[0]` bits."""
    (value,), (width,) = inputs, params
    try:
        return field.to_bits(value, width)
    except ValueError as e:
        raise SolverError(str(e))


def inverse_or_zero(field: PrimeField, inputs: Sequence[int], params: Sequence[int]) -> List[int]:
    (value,) = inputs
    return [0 if value == 0 else field.inv(value)]


def inverse(field: PrimeField, inputs: Sequence[int], params: Sequence[int]) -> List[int]:
    (value,) = inputs
    return [field.inv(value)]


def div(field: PrimeField, inputs: Sequence[int], params: Sequence[int]) -> List[int]:
    a, b = inputs
    return [field.div(a, b)]


def euclidean_div(field: PrimeField, inputs: Sequence[int], params: Sequence[int]) -> List[int]:
    """Integer quotient and remainder of two values known to fit their widths."""
    x, y = inputs
    if y == 0:
        raise ZeroDivisionError("integer division by zero")
    q, r = divmod(x, y)
    return [q, r]


SOLVERS: Dict[str, Callable[[PrimeField, Sequence[int], Sequence[int]], List[int]]] = {
    "bits": bits,
    "inverse_or_zero": inverse_or_zero,
    "inverse": inverse,
    "div": div,
    "euclidean_div": euclidean_div,
}


def solve(name: str, field: PrimeField, inputs: Sequence[int], params: Sequence[int] = ()) -> List[int]:
    try:
        solver = SOLVERS[name]
    except KeyError:
        raise SolverError(f"Unknown solver '{name}'")
    return solver(field, inputs, params)
