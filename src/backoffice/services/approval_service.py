from __future__ import annotations

import logging
from typing import Iterable, Union

from backoffice.domain.errors import ConflictError, DataIntegrityError, ValidationError
from backoffice.domain.models import ApprovalTask, PurchaseOrder
from backoffice.domain.status import ApprovalStatus, normalize_approval_status, status_label
from backoffice.repositories.payloads import approval_task_from_payload, as_list, require_object
from backoffice.repositories.retry import RetryPolicy

log = logging.getLogger("backoffice.purchases")

BASE_PATH = "/api/approvals"

TaskRef = Union[ApprovalTask, int]


def filter_tasks(tasks: Iterable[ApprovalTask], status: str = "ALL") -> list[ApprovalTask]:
    if str(status).upper() == "ALL":
        return list(tasks)
    wanted = normalize_approval_status(status)
    return [t for t in tasks if t.status == wanted]


def pending_count(tasks: Iterable[ApprovalTask]) -> int:
    return sum(1 for t in tasks if t.is_pending)


class ApprovalService:
    def __init__(self, api, session, purchases, retry: RetryPolicy | None = None):
        self.api = api
        self.session = session
        self.purchases = purchases
        self.retry = retry or RetryPolicy()

    def list_pending(self) -> list[ApprovalTask]:
        """Every task the server returns, whatever its status; narrow with ``filter_tasks``."""
        return [approval_task_from_payload(row) for row in as_list(self.api.get(f"{BASE_PATH}/pending"))]

    def get_task(self, task_id: int) -> ApprovalTask:
        data = self.retry.call(self.api.get, f"{BASE_PATH}/{int(task_id)}")
        return approval_task_from_payload(require_object(data, "approval task"))

    def load_task_with_order(self, task_id: int) -> tuple[ApprovalTask, PurchaseOrder]:
        task = self.get_task(task_id)
        if task.purchase_order_id is None:
            raise DataIntegrityError(f"Approval task {task_id} does not reference a purchase order.")
        return task, self.purchases.get_order(task.purchase_order_id)

    def approve(self, task: TaskRef, comment: str = "") -> ApprovalTask:
        task_id = self._decidable_id(task)
        return self._decide(task_id, "approve", (comment or "").strip())

    def reject(self, task: TaskRef, reason: str) -> ApprovalTask:
        reason_clean = (reason or "").strip()
        if not reason_clean:
            raise ValidationError("A rejection reason is required.", field="reason")
        task_id = self._decidable_id(task)
        return self._decide(task_id, "reject", reason_clean)

    def _decidable_id(self, task: TaskRef) -> int:
        if isinstance(task, ApprovalTask):
            if task.id is None:
                raise DataIntegrityError("Approval task has no id.")
            if task.status != ApprovalStatus.PENDING:
                raise ConflictError(f"Task {task.id} was already decided ({status_label(task.status)}).")
            return int(task.id)
        return int(task)

    def _decide(self, task_id: int, action: str, comment: str) -> ApprovalTask:
        data = self.api.post(
            f"{BASE_PATH}/{task_id}/{action}",
            json={"approver": self.session.actor_name, "comment": comment},
        )
        decided = approval_task_from_payload(require_object(data, "approval task"))
        log.info("approval_decided task_id=%s action=%s status=%s", task_id, action, status_label(decided.status))
        return decided
