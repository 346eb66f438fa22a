import json
import re
import sys
from pathlib import Path
from urllib.parse import urlsplit

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from backoffice.application.session import AppSession  # noqa: E402
from backoffice.repositories.retry import RetryPolicy  # noqa: E402


def make_response(status: int = 200, body=None, url: str = "http://api.test/") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = b"" if body is None else json.dumps(body).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    resp.encoding = "utf-8"
    resp.url = url
    return resp


class Replies(list):
    """Successive answers for the same call; each call consumes one."""


class FakeApi:
    """Stands in for ApiClient: records every call and answers from a table keyed by (method, path)."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def _handle(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        result = self.responses.get((method, path))
        if isinstance(result, Replies):
            result = result.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    def get(self, path, params=None):
        return self._handle("GET", path, params=params)

    def post(self, path, json=None, params=None):
        return self._handle("POST", path, json=json, params=params)

    def put(self, path, json=None):
        return self._handle("PUT", path, json=json)

    def patch(self, path, json=None):
        return self._handle("PATCH", path, json=json)

    def delete(self, path):
        return self._handle("DELETE", path)


class FakeHttp:
    """Scripted requests.Session: returns queued responses in order and records the requests."""

    def __init__(self, *responses):
        self.queue = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        if not self.queue:
            raise AssertionError(f"unexpected request {method} {url}")
        item = self.queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def paths(self):
        return [(r["method"], urlsplit(r["url"]).path) for r in self.requests]


class FakeBackend:
    """In-memory purchase order / approval API behind the requests.Session interface.

    Sending an order whose total is above ``threshold`` creates one PENDING
    approval task and leaves the order SENT; at or below it the order is
    accepted straight away.
    """

    def __init__(self, threshold: float = 10000.0):
        self.threshold = threshold
        self.orders: dict[int, dict] = {}
        self.tasks: dict[int, dict] = {}
        self.requests = []
        self._ids = {"order": 0, "line": 0, "task": 0}

    def _next(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.requests.append((method, path, params, json))
        routes = [
            ("POST", r"/api/purchase-orders", self._create_order),
            ("GET", r"/api/purchase-orders", self._list_orders),
            ("GET", r"/api/purchase-orders/(\d+)", self._get_order),
            ("POST", r"/api/purchase-orders/(\d+)/send", self._send_order),
            ("POST", r"/api/purchase-orders/(\d+)/lines/(\d+)/receive", self._receive_line),
            ("GET", r"/api/approvals/pending", self._list_tasks),
            ("GET", r"/api/approvals/(\d+)", self._get_task),
            ("POST", r"/api/approvals/(\d+)/(approve|reject)", self._decide),
        ]
        for verb, pattern, handler in routes:
            m = re.fullmatch(pattern, path)
            if verb == method and m:
                status, body = handler(*m.groups(), params=params or {}, body=json or {})
                return make_response(status, body, url=url)
        return make_response(404, {"message": f"No route for {method} {path}"}, url=url)

    # ---------- handlers ----------
    def _create_order(self, params, body):
        order_id = self._next("order")
        lines = []
        for ln in body.get("linhas", []):
            lines.append({**ln, "id": self._next("line"), "quantidadeRecebida": 0})
        total = sum(ln["quantidade"] * ln["precoUnitario"] for ln in lines)
        order = {
            "id": order_id,
            "numeroCompra": f"PO-{order_id:04d}",
            "fornecedorNome": body.get("fornecedorNome"),
            "fornecedorEmail": body.get("fornecedorEmail"),
            "status": "DRAFT",
            "total": total,
            "linhas": lines,
        }
        self.orders[order_id] = order
        return 201, order

    def _list_orders(self, params, body):
        return 200, list(self.orders.values())

    def _get_order(self, order_id, params, body):
        order = self.orders.get(int(order_id))
        return (200, order) if order else (404, {"message": "Purchase order not found"})

    def _send_order(self, order_id, params, body):
        order = self.orders.get(int(order_id))
        if order is None:
            return 404, {"message": "Purchase order not found"}
        if order["status"] != "DRAFT":
            return 409, {"message": "Only draft orders can be sent"}
        if order["total"] > self.threshold:
            order["status"] = "SENT"
            task_id = self._next("task")
            self.tasks[task_id] = {
                "id": task_id,
                "targetId": order["id"],
                "status": "PENDING",
                "requestedAt": "2026-10-01T10:00:00",
            }
        else:
            order["status"] = "ACCEPTED"
        return 200, order

    def _receive_line(self, order_id, line_id, params, body):
        order = self.orders.get(int(order_id))
        if order is None:
            return 404, {"message": "Purchase order not found"}
        line = next((ln for ln in order["linhas"] if ln["id"] == int(line_id)), None)
        if line is None:
            return 404, {"message": "Line not found"}
        line["quantidadeRecebida"] += float(params["qty"])
        done = all(ln["quantidadeRecebida"] >= ln["quantidade"] for ln in order["linhas"])
        order["status"] = "CLOSED" if done else "PARTIALLY_RECEIVED"
        return 200, order

    def _list_tasks(self, params, body):
        return 200, list(self.tasks.values())

    def _get_task(self, task_id, params, body):
        task = self.tasks.get(int(task_id))
        return (200, task) if task else (404, {"message": "Approval task not found"})

    def _decide(self, task_id, action, params, body):
        task = self.tasks.get(int(task_id))
        if task is None:
            return 404, {"message": "Approval task not found"}
        if task["status"] != "PENDING":
            return 409, {"message": "Task already decided"}
        task["status"] = "APPROVED" if action == "approve" else "REJECTED"
        task["comment"] = body.get("comment")
        task["decidedAt"] = "2026-10-02T09:30:00"
        order = self.orders[task["targetId"]]
        order["status"] = "ACCEPTED" if action == "approve" else "CANCELLED"
        return 200, task


ADMIN_AUTH = {
    "accessToken": "access-1",
    "refreshToken": "refresh-1",
    "user": {"id": 7, "name": "Maria Souza", "email": "maria@loja.co.mz", "username": "maria", "role": "ADMIN"},
}


@pytest.fixture
def session():
    s = AppSession()
    s.start(dict(ADMIN_AUTH))
    return s


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry(sleeps):
    return RetryPolicy(max_attempts=3, base_delay_ms=300, sleep=sleeps.append)
