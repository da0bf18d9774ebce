from datetime import datetime
from typing import Annotated, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from classpolls.config import CATEGORY_COUNT

#─── Pydantic models for the payloads ──────────────────────────────
class AllocationIn(BaseModel):
    values: List[Annotated[int, Field(ge=0, le=100)]] = Field(..., min_length=CATEGORY_COUNT, max_length=CATEGORY_COUNT)
    submission_id: Optional[str] = Field(default=None, max_length=64)


class AllocationRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    # stored records may be short a category or carry a null; the aggregator skips those
    values: List[Optional[float]] = []
    total: Optional[float] = None
    original_total: Optional[float] = Field(default=None, alias="originalTotal")
    created_at: datetime = Field(alias="createdAt")


class CategorySummary(BaseModel):
    label: str
    average: int
    count: int
    labels: List[str]
    bins: List[int]


class DashboardSummary(BaseModel):
    session_id: str
    total_responses: int
    categories: List[CategorySummary]


class DashboardState(BaseModel):
    status: Literal["loading", "error", "ready"]
    error: Optional[str] = None
    records: List[AllocationRecord] = []
    summary: Optional[DashboardSummary] = None
