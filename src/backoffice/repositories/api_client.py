from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import requests

from backoffice.domain.errors import ApiError, NetworkError, SessionExpiredError, error_for_status

log = logging.getLogger("backoffice.http")

REFRESH_PATH = "/api/auth/refresh"
_NO_REFRESH_PATHS = {REFRESH_PATH, "/api/auth/login", "/api/auth/register"}


class ApiClient:
    """JSON-over-HTTP access to the back-office API.

    The access token is read from the session right before each request. A
    401 triggers a single refresh attempt for that request; if the refresh
    fails (or the replay is still unauthorized) the session is cleared and
    ``SessionExpiredError`` is raised.

    Refreshes are serialized: UI loaders run on worker threads, and the
    server hands out single-use refresh tokens, so only one thread may
    exchange the refresh token at a time. A thread that waited while another
    one refreshed just replays with the new access token.
    """

    def __init__(
        self,
        base_url: str,
        session,
        timeout: int = 30,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.http = http or requests.Session()
        self._expired_listeners: list[Callable[[], None]] = []
        self._refresh_lock = threading.Lock()

    def on_session_expired(self, callback: Callable[[], None]) -> None:
        self._expired_listeners.append(callback)

    # ---------- verbs ----------
    def get(self, path: str, params: dict | None = None) -> object:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: object = None, params: dict | None = None) -> object:
        return self.request("POST", path, params=params, json=json)

    def put(self, path: str, json: object = None) -> object:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: object = None) -> object:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> object:
        return self.request("DELETE", path)

    # ---------- core ----------
    def request(self, method: str, path: str, params: dict | None = None, json: object = None) -> object:
        token = self.session.access_token
        response = self._send(method, path, params, json, token)

        if response.status_code == 401 and path not in _NO_REFRESH_PATHS:
            if self._refresh_tokens(token):
                token = self.session.access_token
                response = self._send(method, path, params, json, token)
            if response.status_code == 401:
                self._expire_session(token)
                raise SessionExpiredError(
                    "Session expired. Please log in again.",
                    status_code=401,
                    payload=self._decode(response, strict=False),
                )

        if not response.ok:
            body = self._decode(response, strict=False)
            message = body.get("message") if isinstance(body, dict) else None
            log.warning("api_error method=%s path=%s status=%s", method, path, response.status_code)
            raise error_for_status(response.status_code, message, body)

        return self._decode(response, strict=True)

    def _send(
        self, method: str, path: str, params: dict | None, json: object, token: str | None
    ) -> requests.Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if json is not None:
            headers["Content-Type"] = "application/json"

        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.http.request(
                method.upper(),
                url,
                params=clean_params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning("api_unreachable method=%s path=%s error=%s", method, path, e)
            raise NetworkError(f"Could not reach the server: {e}") from e
        log.info("api_call method=%s path=%s status=%s", method.upper(), path, response.status_code)
        return response

    def _refresh_tokens(self, stale_token: str | None) -> bool:
        with self._refresh_lock:
            current = self.session.access_token
            if current and current != stale_token:
                log.info("token_refresh_skipped reason=already_refreshed")
                return True
            return self._exchange_refresh_token()

    def _exchange_refresh_token(self) -> bool:
        refresh_token = self.session.refresh_token
        if not refresh_token:
            return False
        try:
            response = self.http.request(
                "POST",
                f"{self.base_url}{REFRESH_PATH}",
                json={"refreshToken": refresh_token},
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning("token_refresh_unreachable error=%s", e)
            return False
        if not response.ok:
            log.warning("token_refresh_rejected status=%s", response.status_code)
            return False
        data = self._decode(response, strict=False)
        if not isinstance(data, dict) or not data.get("accessToken"):
            return False
        self.session.update_tokens(data["accessToken"], data.get("refreshToken"))
        log.info("token_refreshed")
        return True

    def _expire_session(self, rejected_token: str | None) -> None:
        with self._refresh_lock:
            # another thread already cleared or renewed the session
            if not self.session.access_token or self.session.access_token != rejected_token:
                return
            self.session.clear()
        for callback in list(self._expired_listeners):
            callback()

    @staticmethod
    def _decode(response: requests.Response, strict: bool) -> object:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            if strict:
                raise ApiError(
                    "Server returned an invalid JSON body.", status_code=response.status_code
                ) from e
            return None
