"""
Response envelopes shared by every endpoint.

Success and error bodies have a fixed shape so the frontend can handle all
responses with one code path; declaring them here also puts the error
contract into the OpenAPI document.
"""

from typing import Dict, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class SuccessResponse(BaseModel, Generic[DataT]):
    """Envelope for every 2xx response."""

    status: Literal["success"] = "success"
    message: str = Field(..., examples=["Donor fetched"])
    data: DataT


class ErrorResponse(BaseModel):
    """Envelope for every error response."""

    status: Literal["error"] = "error"
    message: str = Field(..., examples=["Donor not found"])
    errors: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-field validation messages (422 only)",
        examples=[{"phone": "phone already exists"}],
    )
    request_id: str = Field(
        ...,
        description="Correlation id; quote it when reporting a problem",
    )


class PageMeta(BaseModel):
    """Pagination metadata for list endpoints."""

    page: int
    per_page: int
    total: int
    page_count: int
