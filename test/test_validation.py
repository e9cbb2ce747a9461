"""Tests for client-side field validation."""

import pytest

from lodge_portal.members.validation import (
    validate_contact_email,
    validate_contact_phone,
    validate_full_name,
    validate_position,
    validate_profile_fields,
    validate_sign_up,
)
from lodge_portal.shared.exceptions import ValidationError


class TestFullName:
    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_missing_name_is_required(self, value) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_full_name(value)
        assert exc_info.value.message == "Full name is required"
        assert exc_info.value.field == "full_name"

    def test_one_character_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 2 characters"):
            validate_full_name("A")

    def test_101_characters_rejected(self) -> None:
        with pytest.raises(ValidationError, match="less than 100 characters"):
            validate_full_name("x" * 101)

    def test_boundaries_accepted_and_stripped(self) -> None:
        assert validate_full_name("  Al ") == "Al"
        assert validate_full_name("y" * 100) == "y" * 100


class TestPosition:
    def test_none_passes_through(self) -> None:
        assert validate_position(None) is None

    def test_blank_becomes_none(self) -> None:
        assert validate_position("   ") is None

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError, match="Position must be less than 50 characters"):
            validate_position("W" * 51)


class TestContactFields:
    @pytest.mark.parametrize("email", ["brother@lodge.org", "A.B+c@Sub.Example.CO"])
    def test_valid_email(self, email: str) -> None:
        assert validate_contact_email(email) == email

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "a@b.c", "@lodge.org"])
    def test_invalid_email(self, email: str) -> None:
        with pytest.raises(ValidationError, match="valid email address"):
            validate_contact_email(email)

    def test_empty_email_is_none(self) -> None:
        assert validate_contact_email("") is None

    @pytest.mark.parametrize("phone", ["+44 1923 123456", "(01923) 855-123", "0123456789"])
    def test_valid_phone(self, phone: str) -> None:
        assert validate_contact_phone(phone) == phone

    @pytest.mark.parametrize("phone", ["12345", "phone: 0123456789", "(((  )))----"])
    def test_invalid_phone(self, phone: str) -> None:
        with pytest.raises(ValidationError, match="valid phone number"):
            validate_contact_phone(phone)


class TestProfileFields:
    def test_only_present_fields_checked(self) -> None:
        cleaned = validate_profile_fields({"full_name": " Hiram Abiff ", "share_contact_info": True})
        assert cleaned == {"full_name": "Hiram Abiff", "share_contact_info": True}

    def test_first_invalid_field_raises(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_profile_fields({"full_name": "Hiram", "contact_email": "nope"})
        assert exc_info.value.field == "contact_email"


class TestSignUp:
    def test_empty_full_name_checked_first(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_sign_up("", "", "")
        assert exc_info.value.message == "Full name is required"

    def test_email_required(self) -> None:
        with pytest.raises(ValidationError, match="Email is required"):
            validate_sign_up("  ", "secret1", "Hiram Abiff")

    def test_short_password(self) -> None:
        with pytest.raises(ValidationError, match="Password must be at least 6 characters"):
            validate_sign_up("h@lodge.test", "12345", "Hiram Abiff")

    def test_returns_stripped_values(self) -> None:
        assert validate_sign_up(" h@lodge.test ", "123456", " Hiram ") == ("h@lodge.test", "Hiram")
