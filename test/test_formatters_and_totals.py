import math

from backoffice.domain.formatters import format_currency, format_datetime, format_number, safe_multiply, to_number
from backoffice.domain.models import PurchaseOrder, PurchaseOrderLine
from backoffice.domain.status import PurchaseOrderStatus
from backoffice.services.purchase_service import PurchaseService


def test_safe_multiply_never_returns_nan():
    assert safe_multiply(None, 5) == 0
    assert safe_multiply(3, "4") == 12
    assert safe_multiply("abc", 7) == 0
    assert safe_multiply(float("nan"), 2) == 0
    assert safe_multiply(float("inf"), 2) == 0
    assert not math.isnan(safe_multiply(object(), 1))


def test_to_number_defaults():
    assert to_number(" 2.5 ") == 2.5
    assert to_number(True) == 0.0
    assert to_number("", default=-1) == -1


def _order(lines, server_total=None):
    return PurchaseOrder(
        id=1,
        order_number="PO-1",
        supplier_name="Fornecedor",
        supplier_email=None,
        status=PurchaseOrderStatus.DRAFT,
        lines=tuple(lines),
        server_total=server_total,
    )


def test_purchase_order_total_from_lines():
    order = _order([
        PurchaseOrderLine(id=1, product_id=1, variant_id=1, quantity=2, unit_price=100),
        PurchaseOrderLine(id=2, product_id=2, variant_id=1, quantity=1, unit_price=50),
    ])
    assert order.computed_total == 250
    assert order.total == 250


def test_server_total_wins_over_partial_lines():
    order = _order([PurchaseOrderLine(id=1, product_id=1, variant_id=1, quantity=1, unit_price=10)], server_total=99.5)
    assert order.total == 99.5
    assert order.computed_total == 10


def test_preview_total_tolerates_garbage_lines():
    lines = [{"quantity": 2, "unit_price": 100}, {"quantity": "1", "unit_price": "50"}, {"quantity": None}]
    assert PurchaseService.preview_total(lines) == 250


def test_requires_approval_is_strictly_above_threshold():
    line = PurchaseOrderLine(id=1, product_id=1, variant_id=1, quantity=1, unit_price=10000)
    assert not _order([line]).requires_approval(10000)
    assert _order([line]).requires_approval(9999.99)


def test_remaining_quantity_never_negative():
    line = PurchaseOrderLine(id=1, product_id=1, variant_id=1, quantity=5, unit_price=1, received_quantity=7)
    assert line.remaining_quantity == 0


def test_display_formatting():
    assert format_currency(1234.5) == "1.234,50 MZN"
    assert format_currency(None) == "-"
    assert format_currency("x", "USD") == "-"
    assert format_number(1500) == "1.500"
    assert format_number(None) == "0"
    assert format_datetime("2026-03-05T14:07:00Z") == "05/03/2026 14:07"
    assert format_datetime("") == "-"
    assert format_datetime("not a date") == "-"
