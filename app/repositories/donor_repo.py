"""
Donor repository: data-access layer for the ``donors`` table.

Extends generic CRUD with the filtered listing, the uniqueness look-ups used
before writes, and the grouped reads behind the report.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import ColumnElement, func, or_, select

from app.models.donor import Donor
from app.repositories.base import BaseRepository


class DonorRepository(BaseRepository[Donor]):
    """Concrete repository for :class:`Donor` entities."""

    # ── Listing ──

    def _list_filters(
        self,
        segment: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[ColumnElement[bool]]:
        """
        Build WHERE conditions for the donor list.

        ``segment`` / ``category`` are exact matches; ``search`` is a
        case-insensitive substring match over name, phone and email.  All
        three are AND-combined.  LIKE wildcards in ``search`` are escaped.
        """
        conditions: List[ColumnElement[bool]] = []
        if segment:
            conditions.append(self.model.segment == segment)
        if category:
            conditions.append(self.model.category == category)
        if search:
            conditions.append(
                or_(
                    self.model.full_name.icontains(search, autoescape=True),
                    self.model.phone.icontains(search, autoescape=True),
                    self.model.email.icontains(search, autoescape=True),
                )
            )
        return conditions

    async def list_page(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        segment: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Donor]:
        """Return one page of donors, newest id first."""
        stmt = (
            select(self.model)
            .where(*self._list_filters(segment, category, search))
            .order_by(self.model.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_matching(
        self,
        *,
        segment: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> int:
        """Count donors matching the same filters as :meth:`list_page`."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*self._list_filters(segment, category, search))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    # ── Uniqueness look-ups ──

    async def _find_by(self, column: Any, value: str, exclude_id: Optional[int]) -> Optional[Donor]:
        stmt = select(self.model).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()

    async def find_by_phone(self, phone: str, exclude_id: Optional[int] = None) -> Optional[Donor]:
        """Another donor holding ``phone``, ignoring ``exclude_id`` (the row being updated)."""
        return await self._find_by(self.model.phone, phone, exclude_id)

    async def find_by_email(self, email: str, exclude_id: Optional[int] = None) -> Optional[Donor]:
        """Another donor holding ``email``, ignoring ``exclude_id``."""
        return await self._find_by(self.model.email, email, exclude_id)

    # ── Report queries ──

    def _created_between(
        self, start_at: Optional[datetime], end_at: Optional[datetime]
    ) -> List[ColumnElement[bool]]:
        conditions: List[ColumnElement[bool]] = []
        if start_at is not None:
            conditions.append(self.model.created_at >= start_at)
        if end_at is not None:
            conditions.append(self.model.created_at <= end_at)
        return conditions

    async def count_created(
        self, start_at: Optional[datetime] = None, end_at: Optional[datetime] = None
    ) -> int:
        """Number of donors created within the (inclusive) bounds."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*self._created_between(start_at, end_at))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def count_grouped_by(
        self,
        column_name: str,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> List[Tuple[Optional[str], int]]:
        """
        ``(value, count)`` pairs for ``column_name`` within the bounds.

        Raw stored values are returned, NULL and empty string included;
        bucketing is left to the caller.
        """
        column = getattr(self.model, column_name)
        stmt = (
            select(column, func.count())
            .where(*self._created_between(start_at, end_at))
            .group_by(column)
        )
        result = await self.db.execute(stmt)
        return [(value, int(count)) for value, count in result.all()]

    async def created_timestamps(
        self, start_at: Optional[datetime] = None, end_at: Optional[datetime] = None
    ) -> List[datetime]:
        """``created_at`` of every donor within the bounds, oldest first."""
        stmt = (
            select(self.model.created_at)
            .where(*self._created_between(start_at, end_at))
            .order_by(self.model.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
