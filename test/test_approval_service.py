import pytest

from backoffice.domain.errors import ConflictError, DataIntegrityError, ValidationError
from backoffice.domain.models import ApprovalTask
from backoffice.domain.status import ApprovalStatus
from backoffice.services.approval_service import ApprovalService, filter_tasks, pending_count
from backoffice.services.purchase_service import PurchaseService

from conftest import FakeApi


def _service(api, session, retry):
    return ApprovalService(api, session, PurchaseService(api, session, retry=retry), retry=retry)


def _task(status=ApprovalStatus.PENDING, task_id=1):
    return ApprovalTask(id=task_id, purchase_order_id=10, status=status)


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_reject_requires_reason_before_any_call(session, retry, reason):
    api = FakeApi()
    with pytest.raises(ValidationError, match="rejection reason"):
        _service(api, session, retry).reject(_task(), reason)
    assert api.calls == []


def test_reject_with_reason_posts_comment(session, retry):
    api = FakeApi({("POST", "/api/approvals/1/reject"): {"id": 1, "targetId": 10, "status": "REJECTED",
                                                         "comment": "Preço alto"}})
    decided = _service(api, session, retry).reject(_task(), "  Preço alto ")

    assert decided.status == ApprovalStatus.REJECTED
    assert api.calls[0][2]["json"] == {"approver": "maria", "comment": "Preço alto"}


def test_approve_accepts_plain_id(session, retry):
    api = FakeApi({("POST", "/api/approvals/8/approve"): {"id": 8, "status": "APPROVED"}})
    assert _service(api, session, retry).approve(8).status == ApprovalStatus.APPROVED
    assert api.calls[0][2]["json"]["comment"] == ""


def test_already_decided_task_is_refused(session, retry):
    api = FakeApi()
    with pytest.raises(ConflictError, match="already decided"):
        _service(api, session, retry).approve(_task(ApprovalStatus.APPROVED))
    assert api.calls == []


def test_task_without_order_is_a_data_integrity_error(session, retry):
    api = FakeApi({("GET", "/api/approvals/3"): {"id": 3, "status": "PENDING"}})
    with pytest.raises(DataIntegrityError, match="does not reference"):
        _service(api, session, retry).load_task_with_order(3)


def test_load_task_with_order(session, retry):
    api = FakeApi({
        ("GET", "/api/approvals/3"): {"id": 3, "pedidoCompraId": 10, "status": "PENDING"},
        ("GET", "/api/purchase-orders/10"): {"id": 10, "status": "SENT", "fornecedorNome": "ACME", "total": 12000},
    })
    task, order = _service(api, session, retry).load_task_with_order(3)
    assert task.purchase_order_id == 10
    assert order.supplier_name == "ACME"


def test_filter_and_count():
    tasks = [_task(ApprovalStatus.PENDING, 1), _task(ApprovalStatus.APPROVED, 2), _task(ApprovalStatus.PENDING, 3)]
    assert [t.id for t in filter_tasks(tasks, "PENDING")] == [1, 3]
    assert len(filter_tasks(tasks, "all")) == 3
    assert pending_count(tasks) == 2


def test_decision_without_body_is_a_data_integrity_error(session, retry):
    api = FakeApi({("POST", "/api/approvals/8/approve"): None})
    with pytest.raises(DataIntegrityError, match="no approval task"):
        _service(api, session, retry).approve(8)
