import math
from typing import Iterable, List, Mapping, Optional, Sequence

from classpolls.models import CategorySummary, DashboardSummary

BIN_COUNT = 10
BIN_WIDTH = 10
BIN_LABELS = ["0-9", "10-19", "20-29", "30-39", "40-49",
              "50-59", "60-69", "70-79", "80-89", "90-100"]


def _category_value(record: Mapping, index: int) -> Optional[float]:
    """The record's value for one category, or None when it has none."""
    values = record.get("values")
    if not values or index >= len(values):
        return None
    value = values[index]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def bin_index(value: float) -> int:
    # 0-9 -> bin 0, ..., 90-99 -> bin 9, 100 folded into bin 9
    return min(max(int(value // BIN_WIDTH), 0), BIN_COUNT - 1)


def histogram(records: Iterable[Mapping], index: int) -> List[int]:
    bins = [0] * BIN_COUNT
    for record in records:
        value = _category_value(record, index)
        if value is not None:
            bins[bin_index(value)] += 1
    return bins


def category_average(records: Iterable[Mapping], index: int) -> int:
    """
    Mean of one category rounded half up to a whole percent.
    Records without a value for the category are left out of the mean, so the
    denominator is the number of records carrying it rather than every record
    (the older dashboard counted a missing value as 0). ``histogram`` skips the
    same records, which keeps the two consistent.
    """
    present = [v for v in (_category_value(r, index) for r in records) if v is not None]
    if not present:
        return 0
    return int(math.floor(sum(present) / len(present) + 0.5))


def summarize(records: Sequence[Mapping], labels: Sequence[str], session_id: str) -> DashboardSummary:
    categories = []
    for index, label in enumerate(labels):
        bins = histogram(records, index)
        categories.append(CategorySummary(
            label=label,
            average=category_average(records, index),
            count=sum(bins),
            labels=list(BIN_LABELS),
            bins=bins,
        ))
    return DashboardSummary(
        session_id=session_id,
        total_responses=len(records),
        categories=categories,
    )
