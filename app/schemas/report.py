"""
Pydantic schemas for the donor report.

JSON keys are camelCase (``bySegment``, ``byCategory``) to match what the
charts on the frontend consume; Python attributes stay snake_case.
"""

from datetime import date
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class SeriesPoint(BaseModel):
    """Signups on one calendar day and the running total up to that day."""

    day: date
    daily: int = Field(..., ge=1)
    cumulative: int = Field(..., ge=1)


class DonorReport(BaseModel):
    """Point-in-time aggregate over donors, optionally bounded by signup date."""

    total: int
    by_segment: Dict[str, int] = Field(..., alias="bySegment")
    by_category: Dict[str, int] = Field(..., alias="byCategory")
    series: List[SeriesPoint]

    model_config = ConfigDict(populate_by_name=True)
