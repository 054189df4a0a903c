# laundry/accounts/gateway.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import pydantic
from loguru import logger

from ..auth import create_token, decode_token, hash_password, verify_password
from ..config import Settings
from ..errors import (
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from ..models import EmailCheck, public_user, to_iso, utcnow
from .store import CredentialStore

MIN_PASSWORD_LENGTH = 8
PROFILE_FIELDS = ("firstName", "lastName", "phone")


def _blank(v: Any) -> bool:
    return not isinstance(v, str) or not v.strip()


def _check_password_length(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class AuthGateway:
    def __init__(self, users: CredentialStore, settings: Settings) -> None:
        self.users = users
        self.settings = settings

    # -------------------
    # Registration / login
    # -------------------
    def signup(self, firstName: str, lastName: str, email: str, phone: str, password: str) -> Dict[str, Any]:
        if any(_blank(v) for v in (firstName, lastName, email, phone, password)):
            raise ValidationError("All fields are required")
        try:
            EmailCheck(email=email)
        except pydantic.ValidationError:
            raise ValidationError("Email is invalid")
        _check_password_length(password)

        digest, salt = hash_password(password)
        user = {
            "id": uuid4().hex,
            "firstName": firstName.strip(),
            "lastName": lastName.strip(),
            "email": email.strip(),
            "phone": phone.strip(),
            "password": digest,
            "salt": salt,
            "createdAt": to_iso(utcnow()),
        }
        self.users.insert(user)
        logger.info("Registered user {}", user["id"])
        return public_user(user)

    def login(self, email: str, password: str) -> Tuple[Dict[str, Any], str]:
        if _blank(email) or not password:
            raise ValidationError("Email and password are required")

        user = self.users.find_by_email(email.strip())
        # unknown email and wrong password look identical
        if not user or not verify_password(password, user.get("password", ""), user.get("salt", "")):
            logger.info("Failed login attempt")
            raise InvalidCredentials()

        token = create_token(user, self.settings)
        logger.info("User {} logged in", user["id"])
        return public_user(user), token

    def authenticate(self, token: Optional[str]) -> Dict[str, Any]:
        if not token:
            raise Unauthenticated()
        payload = decode_token(token, self.settings)
        if not payload:
            raise InvalidToken()
        return payload

    # -------------------
    # Profile
    # -------------------
    def get_profile(self, user_id: str) -> Dict[str, Any]:
        user = self.users.find_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return public_user(user)

    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        changes = {k: fields[k].strip() for k in PROFILE_FIELDS if not _blank(fields.get(k))}
        if not changes:
            return self.get_profile(user_id)
        changes["updatedAt"] = to_iso(utcnow())
        return public_user(self.users.update(user_id, changes))

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        user = self.users.find_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        if not verify_password(current_password, user.get("password", ""), user.get("salt", "")):
            raise InvalidCredentials("Current password is incorrect")
        _check_password_length(new_password)

        digest, salt = hash_password(new_password)
        self.users.update(user_id, {"password": digest, "salt": salt, "updatedAt": to_iso(utcnow())})
        logger.info("Password changed for user {}", user_id)

    # -------------------
    # Administration
    # -------------------
    def list_users(self) -> List[Dict[str, Any]]:
        return [public_user(u) for u in self.users.list_all()]

    def delete_account(self, user_id: str) -> Dict[str, Any]:
        if self.settings.deployment_mode != "local":
            raise Forbidden("Users cannot be deleted on this deployment")
        removed = self.users.delete(user_id)
        logger.info("Deleted user {}", user_id)
        return public_user(removed)
