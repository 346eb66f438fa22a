from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Optional

from backoffice.domain.models import User
from backoffice.repositories.payloads import user_from_payload, user_to_store

log = logging.getLogger(__name__)


class AppSession:
    """Identity and tokens for the running client.

    One instance is created at startup, hydrated from the on-disk store, and
    handed to every collaborator that needs to know who is acting. Logout (or a
    failed token refresh) clears it and notifies listeners.
    """

    def __init__(self, store_path: Path | str | None = None):
        self.store_path = Path(store_path) if store_path else None
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user: Optional[User] = None
        self._on_clear: list[Callable[[], None]] = []

    # ---------- lifecycle ----------
    def hydrate(self) -> bool:
        if not self.store_path or not self.store_path.exists():
            return False
        try:
            data = json.loads(self.store_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("session_store_unreadable path=%s error=%s", self.store_path, e)
            return False
        if not isinstance(data, dict):
            return False
        self.access_token = data.get("accessToken") or None
        self.refresh_token = data.get("refreshToken") or None
        user = data.get("user")
        self.user = user_from_payload(user) if isinstance(user, dict) else None
        return self.is_authenticated

    def start(self, auth_response: dict) -> User | None:
        self.access_token = auth_response.get("accessToken") or None
        self.refresh_token = auth_response.get("refreshToken") or None
        user = auth_response.get("user")
        self.user = user_from_payload(user) if isinstance(user, dict) else None
        self._save()
        return self.user

    def update_tokens(self, access_token: str, refresh_token: str | None = None) -> None:
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        self._save()

    def update_user(self, user: User) -> None:
        self.user = user
        self._save()

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user = None
        if self.store_path:
            self.store_path.unlink(missing_ok=True)
        for callback in list(self._on_clear):
            callback()

    def on_clear(self, callback: Callable[[], None]) -> None:
        self._on_clear.append(callback)

    # ---------- identity ----------
    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @property
    def actor_name(self) -> str:
        if self.user:
            return self.user.username or self.user.email or "system"
        return "system"

    def has_role(self, role: str) -> bool:
        return bool(self.user and self.user.has_role(role))

    def _save(self) -> None:
        if not self.store_path:
            return
        payload = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "user": user_to_store(self.user) if self.user else None,
        }
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        self.store_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
