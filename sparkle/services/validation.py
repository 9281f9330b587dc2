"""
Local form validation.

Everything here runs before a request is built; a failure raises
``ValidationError`` and nothing is sent to the network.
"""

from __future__ import annotations

from sparkle.errors import ValidationError
from sparkle.schemas import SetupProfileRequest, UpdateProfileRequest

MIN_AGE = 18
MAX_AGE = 100
MIN_PASSWORD_LENGTH = 6


def _require(value: str | None, field: str, message: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(message, field=field)


def _check_age(age: int, field: str) -> None:
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValidationError(f"Age must be between {MIN_AGE} and {MAX_AGE}", field=field)


def validate_login(email: str, password: str) -> None:
    _require(email, "email", "Email is required")
    _require(password, "password", "Password is required")


def validate_registration(
    name: str,
    email: str,
    password: str,
    confirm_password: str | None = None,
) -> None:
    _require(name, "name", "Name is required")
    _require(email, "email", "Email is required")
    if "@" not in email:
        raise ValidationError("Please enter a valid email address", field="email")
    _require(password, "password", "Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if confirm_password is not None and confirm_password != password:
        raise ValidationError("Passwords do not match", field="confirm_password")


def _check_age_range(min_age: int, max_age: int) -> None:
    _check_age(min_age, "min_age")
    _check_age(max_age, "max_age")
    if min_age > max_age:
        raise ValidationError("Minimum age cannot exceed maximum age", field="min_age")


def validate_profile_setup(request: SetupProfileRequest) -> None:
    _check_age(request.age, "age")
    _require(request.bio, "bio", "Please write a bio")
    if not [i for i in request.interests if i.strip()]:
        raise ValidationError("Please add at least one interest", field="interests")
    _require(request.photo_url, "photo_url", "Please add a photo URL")
    _check_age_range(request.min_age, request.max_age)
    if not request.interested_in_gender:
        raise ValidationError("Please choose who you are interested in", field="interested_in_gender")


def validate_profile_update(request: UpdateProfileRequest) -> None:
    """Same rules as setup, applied only to the fields being changed."""
    if request.age is not None:
        _check_age(request.age, "age")
    if request.bio is not None:
        _require(request.bio, "bio", "Bio cannot be empty")
    if request.interests is not None and not [i for i in request.interests if i.strip()]:
        raise ValidationError("Please add at least one interest", field="interests")
    if request.photo_url is not None:
        _require(request.photo_url, "photo_url", "Photo URL cannot be empty")
    if request.min_age is not None or request.max_age is not None:
        _check_age_range(
            request.min_age if request.min_age is not None else MIN_AGE,
            request.max_age if request.max_age is not None else MAX_AGE,
        )
