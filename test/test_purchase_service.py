import pytest

from backoffice.domain.errors import DataIntegrityError, ValidationError
from backoffice.domain.models import PurchaseOrder, PurchaseOrderLine
from backoffice.domain.status import PurchaseOrderStatus
from backoffice.services.purchase_service import PurchaseService

from conftest import FakeApi


def _approved_order(received: float = 0):
    return PurchaseOrder(
        id=10,
        order_number="PO-0010",
        supplier_name="ACME",
        supplier_email=None,
        status=PurchaseOrderStatus.APPROVED,
        lines=(PurchaseOrderLine(id=3, product_id=1, variant_id=1, quantity=5, unit_price=20, received_quantity=received),),
    )


def test_create_order_posts_portuguese_payload(session, retry):
    api = FakeApi({("POST", "/api/purchase-orders"): {"id": 1, "status": "DRAFT", "total": 250, "fornecedorNome": "ACME"}})
    purchases = PurchaseService(api, session, retry=retry)

    order = purchases.create_order(
        "  ACME ",
        "",
        [{"product_id": 1, "quantity": 2, "unit_price": 100}, {"product_id": 2, "quantity": 1, "unit_price": 50}],
    )

    method, path, kwargs = api.calls[0]
    body = kwargs["json"]
    assert (method, path) == ("POST", "/api/purchase-orders")
    assert body["fornecedorNome"] == "ACME"
    assert "fornecedorEmail" not in body
    assert body["status"] == "DRAFT"
    assert body["total"] == 250
    assert body["linhas"][0] == {"produtoId": 1, "variacaoId": 1, "quantidade": 2.0, "precoUnitario": 100.0, "total": 200.0}
    assert order.status == PurchaseOrderStatus.DRAFT


@pytest.mark.parametrize(
    "supplier, lines, message",
    [
        ("", [{"product_id": 1, "quantity": 1, "unit_price": 1}], "Supplier name is required"),
        ("ACME", [], "at least one line"),
        ("ACME", [{"product_id": None, "quantity": 1, "unit_price": 1}], "product is required"),
        ("ACME", [{"product_id": 1, "quantity": 0, "unit_price": 1}], "quantity must be > 0"),
        ("ACME", [{"product_id": 1, "quantity": 1, "unit_price": -3}], "unit price must be > 0"),
    ],
)
def test_create_order_validation_happens_before_network(session, retry, supplier, lines, message):
    api = FakeApi()
    with pytest.raises(ValidationError, match=message):
        PurchaseService(api, session, retry=retry).create_order(supplier, None, lines)
    assert api.calls == []


def test_submit_for_approval_reflects_server_status(session, retry):
    api = FakeApi({("POST", "/api/purchase-orders/4/send"): {"id": 4, "status": "SENT", "total": 20000}})
    order = PurchaseService(api, session, retry=retry).submit_for_approval(4)

    assert order.status == PurchaseOrderStatus.SENT
    assert api.calls[0][2]["params"] == {"username": "maria"}


def test_receive_more_than_ordered_is_rejected_without_network(session, retry):
    api = FakeApi()
    with pytest.raises(ValidationError, match="cannot exceed"):
        PurchaseService(api, session, retry=retry).receive_line(_approved_order(), 3, 6)
    assert api.calls == []


def test_receive_exactly_remaining_quantity_succeeds(session, retry):
    api = FakeApi({("POST", "/api/purchase-orders/10/lines/3/receive"): {"id": 10, "status": "CLOSED"}})
    updated = PurchaseService(api, session, retry=retry).receive_line(_approved_order(received=2), 3, 3)

    assert updated.status == PurchaseOrderStatus.RECEIVED
    assert api.calls[0][2]["params"] == {"qty": 3, "username": "maria"}


def test_receive_rejects_zero_unknown_line_and_wrong_status(session, retry):
    purchases = PurchaseService(FakeApi(), session, retry=retry)
    with pytest.raises(ValidationError, match="> 0"):
        purchases.receive_line(_approved_order(), 3, 0)
    with pytest.raises(ValidationError, match="Line not found"):
        purchases.receive_line(_approved_order(), 99, 1)

    draft = PurchaseOrder(id=1, order_number=None, supplier_name="X", supplier_email=None,
                          status=PurchaseOrderStatus.DRAFT, lines=_approved_order().lines)
    with pytest.raises(ValidationError, match="cannot receive"):
        purchases.receive_line(draft, 3, 1)


def test_list_orders_accepts_paged_payload(session, retry):
    api = FakeApi({("GET", "/api/purchase-orders"): {"content": [{"id": 1, "status": "ACCEPTED"}, "junk"]}})
    orders = PurchaseService(api, session, retry=retry).list_orders()
    assert [o.status for o in orders] == [PurchaseOrderStatus.APPROVED]


@pytest.mark.parametrize("body", [None, {}, []])
def test_empty_reply_is_not_turned_into_a_blank_order(session, retry, body):
    api = FakeApi({
        ("GET", "/api/purchase-orders/4"): body,
        ("POST", "/api/purchase-orders/4/send"): body,
        ("POST", "/api/purchase-orders/10/lines/3/receive"): body,
    })
    purchases = PurchaseService(api, session, retry=retry)

    with pytest.raises(DataIntegrityError, match="no purchase order"):
        purchases.get_order(4)
    with pytest.raises(DataIntegrityError, match="no purchase order"):
        purchases.submit_for_approval(4)
    with pytest.raises(DataIntegrityError, match="no purchase order"):
        purchases.receive_line(_approved_order(), 3, 1)
