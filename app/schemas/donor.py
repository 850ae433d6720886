"""
Pydantic schemas for Donor API request / response serialisation.

``DonorCreate`` holds every field rule.  ``DonorUpdate`` is a lenient sparse
patch: the service merges it over the stored row and re-validates the merged
result with ``DonorCreate``, so create and update share one rule set.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.donor import BloodGroup, DonorCategory, DonorSegment, enum_values
from app.schemas.common import PageMeta

OPTIONAL_FIELDS = ("phone", "email", "blood_group", "address", "segment", "category")
EDITABLE_FIELDS = ("full_name",) + OPTIONAL_FIELDS


def _blank_to_none(v: Any) -> Any:
    """Trim strings; empty or whitespace-only strings mean "not provided"."""
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class DonorCreate(BaseModel):
    """Schema for ``POST /donors`` and for re-validating merged updates."""

    full_name: str = Field(
        ...,
        description="Donor's full name (3-120 characters)",
        examples=["Ada Lovelace"],
    )
    phone: Optional[str] = Field(
        default=None,
        description="Contact phone, 7-20 characters, unique across donors",
        examples=["5551234567"],
    )
    email: Optional[str] = Field(
        default=None,
        description="Contact email, unique across donors; stored exactly as sent",
        examples=["ada@example.org"],
    )
    blood_group: Optional[BloodGroup] = None
    address: Optional[str] = Field(default=None, description="Postal address (max 255 characters)")
    segment: Optional[DonorSegment] = None
    category: Optional[DonorCategory] = None

    @field_validator(*OPTIONAL_FIELDS, mode="before")
    @classmethod
    def blank_optional_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name is required")
        if len(v) < 3:
            raise ValueError("full_name must be at least 3 characters")
        if len(v) > 120:
            raise ValueError("full_name must be at most 120 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) < 7:
            raise ValueError("phone must be at least 7 characters")
        if len(v) > 20:
            raise ValueError("phone must be at most 20 characters")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        """Check the address but return it as given; no display-name form."""
        if v is None:
            return v
        if len(v) > 120:
            raise ValueError("email must be at most 120 characters")
        if "<" in v or ">" in v:
            raise ValueError("email must be a plain address without a display name")
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            raise ValueError("email must be a valid email address")
        return v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 255:
            raise ValueError("address must be at most 255 characters")
        return v

    def to_row(self) -> Dict[str, Optional[str]]:
        """Plain column values (enums flattened to their string values)."""
        return self.model_dump(mode="json")


class DonorUpdate(BaseModel):
    """
    Schema for ``PUT /donors/{id}``.

    Every field is optional.  Omitted, ``null`` and blank fields keep the
    stored value; rule checks happen after the merge.
    """

    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    segment: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(*EDITABLE_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class DonorResponse(BaseModel):
    """Schema returned by all single-donor endpoints."""

    id: int
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    segment: Optional[str] = None
    category: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        # SQLite returns naive values; they were written as UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class DonorPage(BaseModel):
    """One page of donors plus pagination metadata."""

    items: List[DonorResponse]
    meta: PageMeta


class DeletedDonor(BaseModel):
    id: int


class DonorOptions(BaseModel):
    """Allowed values for the enumerated donor fields."""

    blood_group: List[str] = Field(default_factory=lambda: enum_values(BloodGroup))
    segment: List[str] = Field(default_factory=lambda: enum_values(DonorSegment))
    category: List[str] = Field(default_factory=lambda: enum_values(DonorCategory))
