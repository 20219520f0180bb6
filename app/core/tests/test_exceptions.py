"""
Tests for core/exceptions.py.
"""

import pytest

from buildings.exceptions import ApartmentNotOccupied, InvalidParentApartment
from core.exceptions import BaseApplicationError, ConflictError, NotFoundError, ValidationError


class TestBaseApplicationError:
    def test_defaults(self):
        error = BaseApplicationError("Something failed")

        assert error.error_code == "APPLICATION_ERROR"
        assert error.details == {}
        assert str(error) == "[APPLICATION_ERROR] Something failed"

    def test_to_dict_omits_empty_details(self):
        assert NotFoundError("Apartment not found").to_dict() == {
            "error": "Apartment not found",
            "error_code": "NOT_FOUND",
        }

    def test_to_dict_with_details(self):
        error = ValidationError("Bad amount", error_code="INVALID_EXPENSE_AMOUNT", details={"amount": "-5.00"})

        assert error.to_dict() == {
            "error": "Bad amount",
            "error_code": "INVALID_EXPENSE_AMOUNT",
            "details": {"amount": "-5.00"},
        }

    def test_repr(self):
        error = ConflictError("Busy", details={"id": "1"})

        assert repr(error) == "ConflictError(message='Busy', error_code='CONFLICT', details={'id': '1'})"


class TestDomainErrors:
    @pytest.mark.parametrize(
        ("error_class", "family", "code"),
        [
            (ApartmentNotOccupied, ConflictError, "APARTMENT_NOT_OCCUPIED"),
            (InvalidParentApartment, ValidationError, "INVALID_PARENT_APARTMENT"),
        ],
    )
    def test_family_and_code(self, error_class, family, code):
        error = error_class("message")

        assert isinstance(error, family)
        assert error.error_code == code

    def test_explicit_code_wins(self):
        assert ApartmentNotOccupied("message", error_code="CUSTOM").error_code == "CUSTOM"
