"""
Donor API endpoints.

- GET    /donors             List donors (paginated, filterable)
- GET    /donors/report      Aggregate report (counts + daily series)
- GET    /donors/options     Allowed values for enumerated fields
- GET    /donors/{id}        Retrieve a donor
- POST   /donors             Create a donor
- PUT    /donors/{id}        Partially update a donor
- DELETE /donors/{id}        Delete a donor

Static paths are declared before ``/{donor_id}`` so they are never captured
by the id route.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ValidationFailedException,
    validation_error_map,
)
from app.db.session import get_db
from app.models.donor import Donor
from app.repositories.donor_repo import DonorRepository
from app.schemas.common import ErrorResponse, SuccessResponse
from app.schemas.donor import (
    DeletedDonor,
    DonorCreate,
    DonorOptions,
    DonorPage,
    DonorResponse,
    DonorUpdate,
)
from app.schemas.report import DonorReport
from app.services.donor_service import DonorService
from app.services.report_service import ReportService

router = APIRouter()

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Donor not found"}}
_INVALID = {
    400: {"model": ErrorResponse, "description": "Body is not a JSON object"},
    422: {"model": ErrorResponse, "description": "Field validation failed"},
}


# ── Dependency injection ──
# A fresh service per request, wired to that request's DB session.


def _get_donor_service(db: AsyncSession = Depends(get_db)) -> DonorService:
    """Build a DonorService wired to the current request's DB session."""
    return DonorService(DonorRepository(Donor, db))


def _get_report_service(db: AsyncSession = Depends(get_db)) -> ReportService:
    """Build a ReportService wired to the current request's DB session."""
    return ReportService(DonorRepository(Donor, db))


def _parse_day(value: Optional[str], field: str) -> Optional[date]:
    """Blank means "no bound"; anything else must be ``YYYY-MM-DD``."""
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationFailedException({field: f"{field} must be a date in YYYY-MM-DD format"})


async def _read_patch(request: Request) -> DonorUpdate:
    """
    Parse the update body.

    A missing body, invalid JSON or a non-object is a 400; wrongly typed
    fields are a 422 with the usual field map.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise BadRequestException()
    if not isinstance(payload, dict):
        raise BadRequestException()
    try:
        return DonorUpdate.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailedException(validation_error_map(exc.errors()))


# ── Endpoints ──


@router.get(
    "",
    response_model=SuccessResponse[DonorPage],
    summary="List donors",
    description=(
        "Newest donors first.  ``per_page`` is clamped to 1-100 (default 20) "
        "and ``page`` to at least 1.  ``search`` matches name, phone or email "
        "case-insensitively; ``segment`` and ``category`` are exact filters."
    ),
)
async def list_donors(
    page: Optional[int] = Query(1, description="1-based page number"),
    per_page: Optional[int] = Query(None, description="Page size (1-100, default 20)"),
    segment: Optional[str] = Query(None, description="Exact segment filter"),
    category: Optional[str] = Query(None, description="Exact category filter"),
    search: Optional[str] = Query(None, description="Substring of name, phone or email"),
    service: DonorService = Depends(_get_donor_service),
) -> SuccessResponse[DonorPage]:
    result = await service.list_donors(
        page=page, per_page=per_page, segment=segment, category=category, search=search
    )
    message = "No donors found" if result.meta.total == 0 else "Donors fetched"
    return SuccessResponse[DonorPage](message=message, data=result)


@router.get(
    "/report",
    response_model=SuccessResponse[DonorReport],
    summary="Donor report",
    description=(
        "Total donors, counts by segment and by category (missing values under "
        "``unknown``) and a cumulative daily signup series.  ``start`` / ``end`` "
        "(``YYYY-MM-DD``, inclusive) bound ``created_at``."
    ),
    responses={422: {"model": ErrorResponse, "description": "Invalid date range"}},
)
async def donor_report(
    start: Optional[str] = Query(None, description="First day, YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="Last day, YYYY-MM-DD"),
    service: ReportService = Depends(_get_report_service),
) -> SuccessResponse[DonorReport]:
    report = await service.build_report(_parse_day(start, "start"), _parse_day(end, "end"))
    return SuccessResponse[DonorReport](message="Donor report fetched", data=report)


@router.get(
    "/options",
    response_model=SuccessResponse[DonorOptions],
    summary="Donor field options",
    description="Allowed values for ``blood_group``, ``segment`` and ``category``.",
)
async def donor_options() -> SuccessResponse[DonorOptions]:
    return SuccessResponse[DonorOptions](message="Donor options", data=DonorOptions())


@router.get(
    "/{donor_id}",
    response_model=SuccessResponse[DonorResponse],
    summary="Get a donor",
    responses=_NOT_FOUND,
)
async def get_donor(
    donor_id: int,
    service: DonorService = Depends(_get_donor_service),
) -> SuccessResponse[DonorResponse]:
    donor = await service.get_donor(donor_id)
    return SuccessResponse[DonorResponse](
        message="Donor fetched", data=DonorResponse.model_validate(donor)
    )


@router.post(
    "",
    response_model=SuccessResponse[DonorResponse],
    status_code=201,
    summary="Create a donor",
    description="``phone`` and ``email`` must be unique when given.",
    responses=_INVALID,
)
async def create_donor(
    donor: DonorCreate,
    service: DonorService = Depends(_get_donor_service),
) -> SuccessResponse[DonorResponse]:
    created = await service.create_donor(donor)
    return SuccessResponse[DonorResponse](
        message="Donor created", data=DonorResponse.model_validate(created)
    )


@router.put(
    "/{donor_id}",
    response_model=SuccessResponse[DonorResponse],
    summary="Update a donor",
    description=(
        "Partial update: omitted, ``null`` or blank fields keep their stored "
        "value.  The merged record is validated with the create rules."
    ),
    responses={**_NOT_FOUND, **_INVALID},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": DonorUpdate.model_json_schema()}},
        }
    },
)
async def update_donor(
    donor_id: int,
    request: Request,
    service: DonorService = Depends(_get_donor_service),
) -> SuccessResponse[DonorResponse]:
    # Existence is checked before the body is parsed.
    await service.get_donor(donor_id)
    patch = await _read_patch(request)
    updated = await service.update_donor(donor_id, patch)
    return SuccessResponse[DonorResponse](
        message="Donor updated", data=DonorResponse.model_validate(updated)
    )


@router.delete(
    "/{donor_id}",
    response_model=SuccessResponse[DeletedDonor],
    summary="Delete a donor",
    description="Permanently removes the donor.",
    responses=_NOT_FOUND,
)
async def delete_donor(
    donor_id: int,
    service: DonorService = Depends(_get_donor_service),
) -> SuccessResponse[DeletedDonor]:
    deleted_id = await service.delete_donor(donor_id)
    return SuccessResponse[DeletedDonor](message="Donor deleted", data=DeletedDonor(id=deleted_id))
