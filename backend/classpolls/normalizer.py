"""
Turns a raw slider vector into a distribution that sums to 100.

Each category is scaled by 100 / sum(raw) and rounded to one decimal place.
The rounded values are summed as-is, so ``total`` can drift slightly from 100;
that drift is kept rather than redistributed.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, NamedTuple, Sequence

from classpolls.config import CATEGORY_COUNT
from classpolls.errors import EmptyAllocationError, InvalidAllocationError

MIN_POINTS = 0
MAX_POINTS = 100

_ONE_DECIMAL = Decimal("0.1")


class Normalized(NamedTuple):
    values: List[float]
    total: float
    original_total: int


def round_half_up(value: float, places: str = "0.1") -> float:
    # Decimal(value) is the exact binary value, so ties behave like Number.toFixed
    return float(Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def validate(raw: Sequence[int]) -> List[int]:
    if len(raw) != CATEGORY_COUNT:
        raise InvalidAllocationError(
            f"Expected {CATEGORY_COUNT} values, got {len(raw)}"
        )
    checked = []
    for i, v in enumerate(raw):
        if isinstance(v, bool) or not isinstance(v, int):
            raise InvalidAllocationError(f"Value {i} must be an integer, got {v!r}")
        if not MIN_POINTS <= v <= MAX_POINTS:
            raise InvalidAllocationError(
                f"Value {i} must be between {MIN_POINTS} and {MAX_POINTS}, got {v}"
            )
        checked.append(v)
    return checked


def normalize(raw: Sequence[int]) -> Normalized:
    """
    Scale ``raw`` so it sums to 100.
    :raises EmptyAllocationError: every slider is at zero.
    :raises InvalidAllocationError: wrong length or a value outside 0..100.
    """
    checked = validate(raw)
    original_total = sum(checked)
    if original_total == 0:
        raise EmptyAllocationError()

    values = [round_half_up(v / original_total * 100) for v in checked]
    return Normalized(values=values, total=sum(values), original_total=original_total)


def percent_preview(raw: Sequence[int]) -> List[int]:
    """Whole-percent share of each slider, shown live while dragging."""
    total = sum(raw)
    if total <= 0:
        return [0] * len(raw)
    return [int(round_half_up(v / total * 100, "1")) for v in raw]
