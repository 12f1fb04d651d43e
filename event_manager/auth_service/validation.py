"""
Signup and login form validation.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from event_manager.errors import ValidationError
from event_manager.models import ROLES

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6
USERNAME_REGEX = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FIELD_LABELS = {
    "username": "Username",
    "email": "Email",
    "role": "Role",
    "password": "Password",
    "confirmPassword": "Password confirmation",
}


def _field(form: Mapping[str, Any], name: str, type_errors: Dict[str, str], strip: bool = True) -> str:
    """JSON bodies can carry numbers or lists where text is expected."""
    value = form.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        type_errors[name] = f"{FIELD_LABELS[name]} must be text"
        return ""
    return value.strip() if strip else value


@dataclass
class SignupData:
    username: str
    email: str
    password: str
    role: str

    def to_params(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "role": self.role,
        }


def validate_signup(form: Mapping[str, Any]) -> SignupData:
    """
    Validate the signup form.

    Expects:
    - username: 3+ characters, letters, numbers and underscores only
    - email: a plausible address
    - role: "Attendee" or "Organizer"
    - password: 6+ characters
    - confirmPassword: must equal password

    Returns:
        SignupData: The cleaned form, without confirmPassword.

    Raises:
        ValidationError: With one message per invalid field.
    """
    errors: Dict[str, str] = {}
    type_errors: Dict[str, str] = {}

    username = _field(form, "username", type_errors)
    email = _field(form, "email", type_errors)
    role = _field(form, "role", type_errors, strip=False)
    password = _field(form, "password", type_errors, strip=False)
    confirm = _field(form, "confirmPassword", type_errors, strip=False)

    if not username:
        errors["username"] = "Username is required"
    elif len(username) < USERNAME_MIN_LENGTH:
        errors["username"] = f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    elif not USERNAME_REGEX.match(username):
        errors["username"] = "Username can only contain letters, numbers, and underscores"

    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_REGEX.match(email):
        errors["email"] = "Please enter a valid email address"

    if role not in ROLES:
        errors["role"] = "Please select a role"

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"

    if not confirm:
        errors["confirmPassword"] = "Please confirm your password"
    elif confirm != password:
        errors["confirmPassword"] = "Passwords do not match"

    errors.update(type_errors)
    if errors:
        raise ValidationError(next(iter(errors.values())), fields=errors)

    return SignupData(username=username, email=email, password=password, role=role)


def validate_login(form: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    username = _field(form, "username", errors)
    password = _field(form, "password", errors, strip=False)

    if not username:
        errors.setdefault("username", "Username is required")
    if not password:
        errors.setdefault("password", "Password is required")

    if errors:
        raise ValidationError("Username and password required", fields=errors)

    return {"username": username, "password": password}
