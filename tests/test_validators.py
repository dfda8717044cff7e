import pytest

from agrichain import validators


@pytest.mark.parametrize("email", ["a@b.co", "first.last@farm.example.in", "x-y@z.org"])
def test_valid_emails(email):
    assert validators.validate_email(email) is None


@pytest.mark.parametrize("email", ["", "plainaddress", "a@b", "a@b.toolong"])
def test_invalid_emails(email):
    assert validators.validate_email(email)


def test_phone_must_be_ten_digits():
    assert validators.validate_phone("9876543210") is None
    assert validators.validate_phone("98765") == "Please enter a valid 10-digit phone number"
    assert validators.validate_phone("98765abcde")


def test_signup_password_strength():
    assert validators.validate_signup_password("Harvest2025") is None
    assert validators.validate_signup_password("short1A") == "Password must be at least 8 characters"
    assert validators.validate_signup_password("alllowercase1") == "Password must contain uppercase, lowercase, and number"


def test_login_password_only_checks_length():
    assert validators.validate_login_password("abcdef") is None
    assert validators.validate_login_password("abc")


def test_aadhaar_and_pan():
    assert validators.validate_aadhaar("123456789012") is None
    assert validators.validate_aadhaar("1234") is not None
    assert validators.validate_pan("ABCDE1234F") is None
    assert validators.validate_pan("abcde1234f") is not None


def test_kyc_status():
    assert validators.kyc_status("123456789012", "ABCDE1234F") == "pending"
    assert validators.kyc_status("123456789012", "") == "incomplete"


def test_validate_signup_reports_first_problem():
    form = {"first_name": "", "last_name": "Patil", "email": "bad", "phone": "1", "password": "x"}
    assert validators.validate_signup(form) == "First name is required"


@pytest.mark.parametrize("value", ["٩٨٧٦٥٤٣٢١٠", "98765432¹⁰", "９８７６５４３２１０"])
def test_phone_rejects_non_ascii_digits(value):
    assert validators.validate_phone(value) == "Please enter a valid 10-digit phone number"


@pytest.mark.parametrize("value", ["١٢٣٤٥٦٧٨٩٠١٢", "1234567890¹²"])
def test_aadhaar_rejects_non_ascii_digits(value):
    assert validators.validate_aadhaar(value) == "Please enter a valid 12-digit Aadhaar number"
