"""
Unit tests for Pydantic schemas and the sparse-patch merge.

Tests cover:
- DonorCreate field rules (lengths, enums, email, blank handling)
- DonorUpdate blank normalisation
- DonorResponse / DonorOptions / DonorReport serialisation
- merge_patch semantics
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.core.exceptions import validation_error_map
from app.core.patch import merge_patch
from app.models.donor import BloodGroup, DonorCategory, DonorSegment
from app.schemas.donor import DonorCreate, DonorOptions, DonorResponse, DonorUpdate

from .conftest import make_donor


def _errors(exc_info) -> dict:
    return validation_error_map(exc_info.value.errors())


# ────────────────────────────────────────────────────────────────────────────
# DonorCreate
# ────────────────────────────────────────────────────────────────────────────


class TestDonorCreate:
    def test_minimal_valid(self):
        donor = DonorCreate(full_name="Ada Lovelace")
        assert donor.full_name == "Ada Lovelace"
        assert donor.phone is None
        assert donor.segment is None

    def test_full_valid(self):
        donor = DonorCreate(
            full_name="Ada Lovelace",
            phone="5551234567",
            email="ada@example.org",
            blood_group="O-",
            address="12 St James's Square, London",
            segment="individual",
            category="VIP",
        )
        assert donor.blood_group is BloodGroup.O_NEG
        assert donor.segment is DonorSegment.INDIVIDUAL
        assert donor.category is DonorCategory.VIP
        assert donor.to_row() == {
            "full_name": "Ada Lovelace",
            "phone": "5551234567",
            "email": "ada@example.org",
            "blood_group": "O-",
            "address": "12 St James's Square, London",
            "segment": "individual",
            "category": "VIP",
        }

    def test_name_is_stripped(self):
        assert DonorCreate(full_name="  Ada Lovelace  ").full_name == "Ada Lovelace"

    def test_missing_name(self):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate()
        assert "full_name" in _errors(exc_info)

    def test_blank_name(self):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="   ")
        assert _errors(exc_info) == {"full_name": "full_name is required"}

    @pytest.mark.parametrize(
        "name, message",
        [
            ("Al", "full_name must be at least 3 characters"),
            ("x" * 121, "full_name must be at most 120 characters"),
        ],
    )
    def test_name_length(self, name, message):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name=name)
        assert _errors(exc_info) == {"full_name": message}

    def test_name_length_boundaries_accepted(self):
        assert DonorCreate(full_name="Abe").full_name == "Abe"
        assert len(DonorCreate(full_name="y" * 120).full_name) == 120

    @pytest.mark.parametrize(
        "phone, message",
        [
            ("123456", "phone must be at least 7 characters"),
            ("1" * 21, "phone must be at most 20 characters"),
        ],
    )
    def test_phone_length(self, phone, message):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", phone=phone)
        assert _errors(exc_info) == {"phone": message}

    def test_invalid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", email="not-an-email")
        assert _errors(exc_info) == {"email": "email must be a valid email address"}

    def test_email_kept_exactly_as_sent(self):
        donor = DonorCreate(full_name="Ada Lovelace", email="Ada.L@Example.ORG")
        assert donor.email == "Ada.L@Example.ORG"
        assert donor.to_row()["email"] == "Ada.L@Example.ORG"

    def test_email_surrounding_whitespace_trimmed(self):
        assert DonorCreate(full_name="Ada Lovelace", email="  ada@example.org ").email == (
            "ada@example.org"
        )

    def test_email_display_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", email="Ada <ada@example.org>")
        assert _errors(exc_info) == {
            "email": "email must be a plain address without a display name"
        }

    def test_email_too_long(self):
        email = "a" * 60 + "@" + "b" * 60 + ".org"
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", email=email)
        assert _errors(exc_info) == {"email": "email must be at most 120 characters"}

    def test_address_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", address="z" * 256)
        assert _errors(exc_info) == {"address": "address must be at most 255 characters"}

    @pytest.mark.parametrize(
        "field, value",
        [
            ("blood_group", "C+"),
            ("segment", "nonprofit"),
            ("category", "vip"),
        ],
    )
    def test_enum_fields_reject_unknown_values(self, field, value):
        with pytest.raises(ValidationError) as exc_info:
            DonorCreate(full_name="Ada Lovelace", **{field: value})
        assert list(_errors(exc_info)) == [field]

    def test_blank_optionals_become_none(self):
        donor = DonorCreate(
            full_name="Ada Lovelace",
            phone="",
            email="  ",
            blood_group="",
            address="",
            segment="",
            category=" ",
        )
        assert donor.to_row() == {
            "full_name": "Ada Lovelace",
            "phone": None,
            "email": None,
            "blood_group": None,
            "address": None,
            "segment": None,
            "category": None,
        }


# ────────────────────────────────────────────────────────────────────────────
# DonorUpdate
# ────────────────────────────────────────────────────────────────────────────


class TestDonorUpdate:
    def test_all_fields_optional(self):
        assert DonorUpdate().model_dump() == {
            "full_name": None,
            "phone": None,
            "email": None,
            "blood_group": None,
            "address": None,
            "segment": None,
            "category": None,
        }

    def test_blank_means_not_provided(self):
        patch = DonorUpdate(full_name="   ", phone="", segment=" corporate ")
        assert patch.full_name is None
        assert patch.phone is None
        assert patch.segment == "corporate"

    def test_unknown_keys_ignored(self):
        patch = DonorUpdate.model_validate({"id": 99, "created_at": "x", "address": "Here"})
        assert patch.address == "Here"
        assert not hasattr(patch, "id")


# ────────────────────────────────────────────────────────────────────────────
# Response schemas
# ────────────────────────────────────────────────────────────────────────────


class TestDonorResponse:
    def test_from_orm_object(self):
        response = DonorResponse.model_validate(make_donor(id=42))
        assert response.id == 42
        assert response.full_name == "Ada Lovelace"
        assert response.created_at is not None

    def test_naive_timestamps_read_as_utc(self):
        naive = datetime(2026, 1, 5, 9, 15)
        response = DonorResponse.model_validate(make_donor(created_at=naive, updated_at=naive))
        assert response.created_at == datetime(2026, 1, 5, 9, 15, tzinfo=timezone.utc)
        assert response.model_dump(mode="json")["updated_at"] == "2026-01-05T09:15:00Z"

    def test_aware_timestamps_converted_to_utc(self):
        local = datetime(2026, 1, 5, 15, 0, tzinfo=timezone(timedelta(hours=5, minutes=45)))
        response = DonorResponse.model_validate(make_donor(created_at=local))
        assert response.created_at == datetime(2026, 1, 5, 9, 15, tzinfo=timezone.utc)
        assert response.created_at.utcoffset() == timedelta(0)

    def test_options_match_enums(self):
        options = DonorOptions()
        assert options.blood_group == ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
        assert options.segment == ["individual", "corporate", "foundation"]
        assert options.category == ["recurring", "VIP", "major"]


# ────────────────────────────────────────────────────────────────────────────
# merge_patch
# ────────────────────────────────────────────────────────────────────────────


class TestMergePatch:
    def test_supplied_values_win(self):
        assert merge_patch({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_none_keeps_current(self):
        assert merge_patch({"a": 1, "b": 2}, {"a": None, "b": None}) == {"a": 1, "b": 2}

    def test_falsy_but_present_values_apply(self):
        assert merge_patch({"n": 5, "flag": True}, {"n": 0, "flag": False}) == {
            "n": 0,
            "flag": False,
        }

    def test_fields_restrict_keys(self):
        merged = merge_patch({"a": 1, "id": 7}, {"a": 2, "extra": "x"}, fields=["a"])
        assert merged == {"a": 2}

    def test_inputs_not_mutated(self):
        current = {"a": 1}
        patch = {"a": 2}
        merge_patch(current, patch)
        assert current == {"a": 1}
        assert patch == {"a": 2}
