from __future__ import annotations

import logging

from backoffice.domain.errors import ValidationError
from backoffice.domain.models import User
from backoffice.domain.status import UnknownStatus, normalize_user_role
from backoffice.repositories.payloads import as_list, require_object, user_from_payload
from backoffice.repositories.retry import RetryPolicy
from backoffice.services.auth_service import validate_email, validate_name, validate_new_password

log = logging.getLogger(__name__)

BASE_PATH = "/api/users"


def _role_value(role: str) -> str:
    normalized = normalize_user_role(role)
    if isinstance(normalized, UnknownStatus):
        raise ValidationError("Select a valid role.", field="role")
    return normalized.value


class UserService:
    def __init__(self, api, retry: RetryPolicy | None = None):
        self.api = api
        self.retry = retry or RetryPolicy()

    def list_users(self) -> list[User]:
        return [user_from_payload(row) for row in as_list(self.api.get(BASE_PATH))]

    def get_user(self, user_id: int) -> User:
        data = self.retry.call(self.api.get, f"{BASE_PATH}/{int(user_id)}")
        return user_from_payload(require_object(data, "user"))

    def create_user(self, name: str, email: str, password: str, password_confirm: str, role: str) -> User:
        payload = {
            "nome": validate_name(name),
            "email": validate_email(email),
            "senha": validate_new_password(password, password_confirm),
            "role": _role_value(role),
        }
        user = user_from_payload(require_object(self.api.post(BASE_PATH, json=payload), "user"))
        log.info("user_created user_id=%s role=%s", user.id, payload["role"])
        return user

    def update_user(self, user_id: int, name: str, email: str, role: str) -> User:
        payload = {
            "nome": validate_name(name),
            "email": validate_email(email),
            "role": _role_value(role),
        }
        data = self.api.put(f"{BASE_PATH}/{int(user_id)}", json=payload)
        return user_from_payload(require_object(data, "user"))

    def delete_user(self, user_id: int) -> None:
        self.api.delete(f"{BASE_PATH}/{int(user_id)}")
        log.info("user_deleted user_id=%s", user_id)

    def activate(self, user_id: int) -> User:
        data = self.api.patch(f"{BASE_PATH}/{int(user_id)}/activate")
        return user_from_payload(require_object(data, "user"))

    def deactivate(self, user_id: int) -> User:
        data = self.api.patch(f"{BASE_PATH}/{int(user_id)}/deactivate")
        return user_from_payload(require_object(data, "user"))
