# agrichain/validators.py
"""
Form / KYC field checks shared by sign-up, sign-in and profile updates.
Each validator returns an error message, or None when the value is fine.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

EMAIL_RE = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")
PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
PHONE_RE = re.compile(r"[0-9]{10}")
AADHAAR_RE = re.compile(r"[0-9]{12}")
STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def validate_name(value: Optional[str], label: str = "Name") -> Optional[str]:
    if not (value or "").strip():
        return f"{label} is required"
    return None


def validate_email(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return "Email is required"
    if not EMAIL_RE.match(value):
        return "Please enter a valid email"
    return None


def validate_phone(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return "Phone number is required"
    if not PHONE_RE.fullmatch(value):
        return "Please enter a valid 10-digit phone number"
    return None


def validate_signup_password(value: Optional[str]) -> Optional[str]:
    value = value or ""
    if not value:
        return "Password is required"
    if len(value) < 8:
        return "Password must be at least 8 characters"
    if not STRONG_PASSWORD_RE.match(value):
        return "Password must contain uppercase, lowercase, and number"
    return None


def validate_login_password(value: Optional[str]) -> Optional[str]:
    value = value or ""
    if not value:
        return "Please enter your password"
    if len(value) < 6:
        return "Password must be at least 6 characters"
    return None


def validate_aadhaar(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return "Aadhaar number is required"
    if not AADHAAR_RE.fullmatch(value):
        return "Please enter a valid 12-digit Aadhaar number"
    return None


def validate_pan(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return "PAN number is required"
    if not PAN_RE.match(value):
        return "Please enter a valid PAN number"
    return None


def kyc_status(aadhaar_number: Optional[str], pan_number: Optional[str]) -> str:
    """'pending' when both documents are well-formed and await verification."""
    if validate_aadhaar(aadhaar_number) is None and validate_pan(pan_number) is None:
        return "pending"
    return "incomplete"


def validate_signup(form: Dict[str, Optional[str]]) -> Optional[str]:
    """First failing field message for a sign-up payload."""
    checks = (
        validate_name(form.get("first_name"), "First name"),
        validate_name(form.get("last_name"), "Last name"),
        validate_email(form.get("email")),
        validate_phone(form.get("phone")),
        validate_signup_password(form.get("password")),
    )
    for message in checks:
        if message:
            return message
    return None
