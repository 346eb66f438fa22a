from __future__ import annotations

import logging
import re

from backoffice.domain.errors import ApiError, AuthorizationError, ValidationError
from backoffice.domain.models import User
from backoffice.domain.status import UserRole
from backoffice.repositories.payloads import require_object, user_from_payload

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def validate_name(name: str) -> str:
    clean = (name or "").strip()
    if len(clean) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must have at least {MIN_NAME_LENGTH} characters.", field="name")
    return clean


def validate_email(email: str) -> str:
    clean = (email or "").strip()
    if not EMAIL_RE.match(clean):
        raise ValidationError("Invalid email.", field="email")
    return clean


def validate_new_password(password: str, confirm: str, field: str = "password") -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must have at least {MIN_PASSWORD_LENGTH} characters.", field=field)
    if password != confirm:
        raise ValidationError("Password confirmation does not match.", field="confirm")
    return password


PERMISSIONS: dict[str, set[UserRole]] = {
    "manage_products": {UserRole.ADMIN, UserRole.GESTOR},
    "create_purchase": {UserRole.ADMIN, UserRole.GESTOR, UserRole.GERENTE_COMPRAS},
    "receive_purchase": {UserRole.ADMIN, UserRole.GESTOR, UserRole.GERENTE_COMPRAS},
    "decide_approval": {UserRole.ADMIN, UserRole.GERENTE_COMPRAS},
    "create_sale": {UserRole.ADMIN, UserRole.GESTOR, UserRole.VENDEDOR},
    "fulfil_sale": {UserRole.ADMIN, UserRole.GESTOR, UserRole.VENDEDOR},
    "manage_users": {UserRole.ADMIN},
    "view_reports": {UserRole.ADMIN, UserRole.GESTOR, UserRole.VENDEDOR, UserRole.GERENTE_COMPRAS},
}


class AuthService:
    def __init__(self, api, session):
        self.api = api
        self.session = session

    def login(self, email: str, password: str) -> User | None:
        email_clean = (email or "").strip()
        if not email_clean:
            raise AuthorizationError("Email is required.")
        if not password:
            raise AuthorizationError("Password is required.")

        try:
            data = self.api.post("/api/auth/login", json={"email": email_clean, "password": password})
        except ApiError as e:
            if e.status_code in (400, 401):
                raise AuthorizationError("Invalid email or password.") from e
            raise
        if not isinstance(data, dict) or not data.get("accessToken"):
            raise AuthorizationError("Login response did not include an access token.")

        user = self.session.start(data)
        log.info("login_ok user=%s", self.session.actor_name)
        return user

    def register(self, name: str, email: str, password: str, password_confirm: str) -> User | None:
        payload = {
            "name": validate_name(name),
            "email": validate_email(email),
            "password": validate_new_password(password, password_confirm),
            "passwordConfirm": password_confirm,
        }
        data = self.api.post("/api/auth/register", json=payload)
        if not isinstance(data, dict) or not data.get("accessToken"):
            raise AuthorizationError("Register response did not include an access token.")
        return self.session.start(data)

    def current_user(self) -> User:
        user = user_from_payload(require_object(self.api.get("/api/auth/me"), "user"))
        self.session.update_user(user)
        return user

    def update_profile(self, name: str, email: str) -> User:
        payload = {"name": validate_name(name), "email": validate_email(email)}
        data = self.api.put("/api/auth/update-profile", json=payload)
        user = user_from_payload(require_object(data, "user"))
        self.session.update_user(user)
        return user

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> None:
        if len(current_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError("Current password is required.", field="current_password")
        validate_new_password(new_password, confirm_password, field="new_password")
        if new_password == current_password:
            raise ValidationError("New password must be different from the current password.", field="new_password")
        self.api.post(
            "/api/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )
        log.info("password_changed user=%s", self.session.actor_name)

    def logout(self) -> None:
        log.info("logout user=%s", self.session.actor_name)
        self.session.clear()

    def can(self, action: str, user: User | None = None) -> bool:
        actor = user or self.session.user
        allowed_roles = PERMISSIONS.get(action)
        if not actor or not allowed_roles:
            return False
        return any(actor.has_role(role) for role in allowed_roles)

    def require_action(self, action: str, user: User | None = None) -> None:
        if not self.can(action, user):
            raise AuthorizationError(f"Your role is not allowed to perform '{action}'.")
