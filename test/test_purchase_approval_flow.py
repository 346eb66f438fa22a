import pytest

from backoffice.application.container import build_container
from backoffice.config import ApiSettings
from backoffice.domain.errors import ConflictError
from backoffice.domain.status import ApprovalStatus, PurchaseOrderStatus

from conftest import ADMIN_AUTH, FakeBackend


def _container(tmp_path, threshold):
    backend = FakeBackend(threshold=threshold)
    settings = ApiSettings(base_url="http://api.test", approval_threshold=threshold, retry_backoff_ms=0)
    container = build_container(settings, session_path=tmp_path / "session.json", http=backend)
    container.session.start(dict(ADMIN_AUTH))
    return container, backend


def _create_and_send(container):
    purchases = container.purchases
    order = purchases.create_order("ACME Lda", "compras@acme.co.mz", [{"product_id": 1, "quantity": 3, "unit_price": 200}])
    assert order.total == 600
    assert order.status == PurchaseOrderStatus.DRAFT
    return order, purchases.submit_for_approval(order.id)


def test_order_below_threshold_is_approved_without_task(tmp_path):
    container, backend = _container(tmp_path, threshold=10000)

    order, sent = _create_and_send(container)

    assert sent.status == PurchaseOrderStatus.APPROVED
    assert container.approvals.list_pending() == []
    assert sent.requires_approval(container.settings.approval_threshold) is False


def test_order_above_threshold_waits_for_one_pending_task(tmp_path):
    container, backend = _container(tmp_path, threshold=500)

    order, sent = _create_and_send(container)

    assert sent.status == PurchaseOrderStatus.SENT
    tasks = [t for t in container.approvals.list_pending() if t.is_pending]
    assert len(tasks) == 1
    assert tasks[0].purchase_order_id == order.id
    assert tasks[0].status == ApprovalStatus.PENDING


def test_approve_then_receive_closes_the_order(tmp_path):
    container, backend = _container(tmp_path, threshold=500)
    order, _ = _create_and_send(container)
    task = container.approvals.list_pending()[0]

    decided = container.approvals.approve(task, "ok")
    assert decided.status == ApprovalStatus.APPROVED

    approved = container.purchases.get_order(order.id)
    assert approved.status == PurchaseOrderStatus.APPROVED
    line = approved.lines[0]

    partial = container.purchases.receive_line(approved, line.id, 1)
    assert partial.status == PurchaseOrderStatus.APPROVED
    assert partial.lines[0].remaining_quantity == 2

    closed = container.purchases.receive_line(partial, line.id, 2)
    assert closed.status == PurchaseOrderStatus.RECEIVED
    assert ("POST", f"/api/purchase-orders/{order.id}/lines/{line.id}/receive", {"qty": 2, "username": "maria"}, None) \
        in backend.requests


def test_second_decision_on_same_task_is_a_conflict(tmp_path):
    container, backend = _container(tmp_path, threshold=500)
    _create_and_send(container)
    task_id = container.approvals.list_pending()[0].id

    container.approvals.reject(task_id, "Preço acima do orçamento")

    with pytest.raises(ConflictError, match="already decided"):
        container.approvals.approve(task_id)
    assert container.purchases.list_orders()[0].status == PurchaseOrderStatus.REJECTED
