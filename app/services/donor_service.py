"""
Donor service: business logic layer for donor CRUD.

All field rules and uniqueness checks live here; the service never exposes
repository internals to the caller.  Domain exceptions from
``app.core.exceptions`` keep the layer framework-agnostic.

Uniqueness:
    ``phone`` / ``email`` are pre-checked so the caller gets a per-field
    message.  Two concurrent writes can both pass the pre-check; the unique
    indexes reject the second one at commit time and the resulting
    ``IntegrityError`` is translated into the same field error.
"""

import logging
import math
from typing import Dict, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import (
    NotFoundException,
    ValidationFailedException,
    translate_db_errors,
    validation_error_map,
)
from app.core.patch import merge_patch
from app.models.donor import Donor
from app.repositories.donor_repo import DonorRepository
from app.schemas.common import PageMeta
from app.schemas.donor import EDITABLE_FIELDS, DonorCreate, DonorPage, DonorResponse, DonorUpdate

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("phone", "email")


def normalize_pagination(
    page: Optional[int],
    per_page: Optional[int],
    default_per_page: int = 20,
    max_per_page: int = 100,
) -> Tuple[int, int]:
    """
    Clamp paging input instead of rejecting it.

    ``page`` below 1 becomes 1; ``per_page`` below 1 falls back to the
    default and anything above ``max_per_page`` is capped.
    """
    page = page if page and page >= 1 else 1
    if not per_page or per_page < 1:
        per_page = default_per_page
    return page, min(per_page, max_per_page)


def _clean_filter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _constraint_errors(exc: IntegrityError) -> Dict[str, str]:
    """Map a unique-constraint violation onto the field(s) it names."""
    detail = str(exc.orig).lower()
    fields = [name for name in UNIQUE_FIELDS if name in detail]
    if not fields:
        return {"donor": "donor conflicts with an existing record"}
    return {name: f"{name} already exists" for name in fields}


class DonorService:
    """Encapsulates CRUD + validation rules for :class:`Donor`."""

    def __init__(
        self,
        donor_repo: DonorRepository,
        default_per_page: int = settings.DEFAULT_PER_PAGE,
        max_per_page: int = settings.MAX_PER_PAGE,
    ):
        self._repo = donor_repo
        self._default_per_page = default_per_page
        self._max_per_page = max_per_page

    # ── Queries ──

    @translate_db_errors("Failed to fetch donors")
    async def list_donors(
        self,
        page: Optional[int] = 1,
        per_page: Optional[int] = None,
        segment: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> DonorPage:
        """
        Return one page of donors, newest first, with pagination metadata.

        ``page_count`` is never below 1, so an empty result still reports
        a single (empty) page.
        """
        page, per_page = normalize_pagination(
            page, per_page, self._default_per_page, self._max_per_page
        )
        filters = {
            "segment": _clean_filter(segment),
            "category": _clean_filter(category),
            "search": _clean_filter(search),
        }

        total = await self._repo.count_matching(**filters)
        donors = await self._repo.list_page(
            offset=(page - 1) * per_page, limit=per_page, **filters
        )
        meta = PageMeta(
            page=page,
            per_page=per_page,
            total=total,
            page_count=max(1, math.ceil(total / per_page)),
        )
        return DonorPage(items=[DonorResponse.model_validate(d) for d in donors], meta=meta)

    @translate_db_errors("Failed to fetch donor")
    async def get_donor(self, donor_id: int) -> Donor:
        """Raises :class:`NotFoundException` if the donor does not exist."""
        donor = await self._repo.get(donor_id)
        if donor is None:
            raise NotFoundException("Donor", donor_id)
        return donor

    # ── Commands ──

    async def _uniqueness_errors(
        self, row: Dict[str, Optional[str]], exclude_id: Optional[int] = None
    ) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        phone = row.get("phone")
        if phone and await self._repo.find_by_phone(phone, exclude_id=exclude_id):
            errors["phone"] = "phone already exists"
        email = row.get("email")
        if email and await self._repo.find_by_email(email, exclude_id=exclude_id):
            errors["email"] = "email already exists"
        return errors

    @translate_db_errors("Failed to create donor")
    async def create_donor(self, donor_in: DonorCreate) -> Donor:
        """
        Insert a validated donor.

        Raises :class:`ValidationFailedException` naming ``phone`` and/or
        ``email`` when either is already taken.  Nothing is written then.
        """
        row = donor_in.to_row()
        errors = await self._uniqueness_errors(row)
        if errors:
            raise ValidationFailedException(errors)

        try:
            created = await self._repo.create(Donor(**row))
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating donor: %s", exc.orig)
            raise ValidationFailedException(_constraint_errors(exc))

        logger.info("Created donor %s (%s)", created.id, created.full_name)
        return created

    @translate_db_errors("Failed to update donor")
    async def update_donor(self, donor_id: int, patch: DonorUpdate) -> Donor:
        """
        Apply a sparse patch to an existing donor.

        1. Missing donor → :class:`NotFoundException` before anything else.
        2. Supplied (non-blank) fields are merged over the stored values.
        3. The merged record is re-validated with the create rules and the
           uniqueness checks, which ignore this donor's own row.
        4. Only then are attributes assigned and ``updated_at`` refreshed.
        """
        donor = await self._repo.get(donor_id)
        if donor is None:
            raise NotFoundException("Donor", donor_id)

        current = {name: getattr(donor, name) for name in EDITABLE_FIELDS}
        merged = merge_patch(current, patch.model_dump(), EDITABLE_FIELDS)
        try:
            row = DonorCreate.model_validate(merged).to_row()
        except ValidationError as exc:
            raise ValidationFailedException(validation_error_map(exc.errors()))

        errors = await self._uniqueness_errors(row, exclude_id=donor_id)
        if errors:
            raise ValidationFailedException(errors)

        for name, value in row.items():
            setattr(donor, name, value)
        donor.touch()

        try:
            updated = await self._repo.update(donor)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError updating donor %s: %s", donor_id, exc.orig)
            raise ValidationFailedException(_constraint_errors(exc))

        logger.info("Updated donor %s", donor_id)
        return updated

    @translate_db_errors("Failed to delete donor")
    async def delete_donor(self, donor_id: int) -> int:
        """Delete a donor permanently and return its id."""
        donor = await self._repo.get(donor_id)
        if donor is None:
            raise NotFoundException("Donor", donor_id)
        await self._repo.delete(donor)
        logger.info("Deleted donor %s", donor_id)
        return donor_id
