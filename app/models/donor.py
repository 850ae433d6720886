"""
Donor domain model.

Represents a donor persisted in the ``donors`` table, together with the
closed value sets used to classify donors.  The enums are the single source
of truth for allowed values: create and update validation, and the options
endpoint, all read from here.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


class BloodGroup(str, Enum):
    """ABO/Rh blood groups."""

    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class DonorSegment(str, Enum):
    """Who the donor is."""

    INDIVIDUAL = "individual"
    CORPORATE = "corporate"
    FOUNDATION = "foundation"


class DonorCategory(str, Enum):
    """How the donor gives."""

    RECURRING = "recurring"
    VIP = "VIP"
    MAJOR = "major"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Donor(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for donors.

    Classification columns are plain VARCHARs validated against the enums
    above in the schema layer, so grouping in reports works on the raw
    stored strings on every backend.

    Constraints:
    - ``phone`` and ``email`` carry unique indexes; NULLs do not collide.
    - ``sqlite_autoincrement`` stops SQLite from reusing the id of a deleted
      last row.  PostgreSQL sequences never reuse ids.
    """

    __tablename__ = "donors"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(full_name) >= 3", name="ck_donors_full_name_min_length"),
        {"sqlite_autoincrement": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str = Field(index=True, max_length=120)
    phone: Optional[str] = Field(default=None, unique=True, index=True, max_length=20)
    email: Optional[str] = Field(default=None, unique=True, index=True, max_length=120)
    blood_group: Optional[str] = Field(default=None, max_length=3)
    address: Optional[str] = Field(default=None, max_length=255)
    segment: Optional[str] = Field(default=None, index=True, max_length=20)
    category: Optional[str] = Field(default=None, index=True, max_length=20)
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,  # report date-range filters scan this column
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def touch(self) -> None:
        """Refresh ``updated_at`` before persisting a mutation."""
        self.updated_at = _utcnow()

    def __repr__(self) -> str:
        return f"<Donor id={self.id} full_name='{self.full_name}'>"
