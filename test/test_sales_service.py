import pytest

from backoffice.domain.errors import DataIntegrityError, ValidationError
from backoffice.domain.models import Customer
from backoffice.domain.status import SaleStatus
from backoffice.services.sales_service import SalesService

from conftest import FakeApi


def test_create_sale_payload_and_total(session, retry):
    api = FakeApi({("POST", "/api/sales"): {"id": 2, "status": "DRAFT", "clienteNome": "Joana", "total": 36}})
    sales = SalesService(api, session, retry=retry)

    sale = sales.create_sale(
        Customer(name=" Joana ", email="", phone="84 123 4567"),
        [{"product_id": 5, "variant_id": 9, "quantity": 3, "unit_price": "12"}],
    )

    body = api.calls[0][2]["json"]
    assert body["clienteNome"] == "Joana"
    assert body["clienteTelefone"] == "84 123 4567"
    assert "clienteEmail" not in body
    assert body["total"] == 36
    assert body["itens"] == [{"produtoId": 5, "variacaoId": 9, "quantidade": 3.0, "precoUnitario": 12.0, "total": 36.0}]
    assert sale.status == SaleStatus.DRAFT


@pytest.mark.parametrize(
    "customer, items, message",
    [
        (Customer(name="  "), [{"product_id": 1, "quantity": 1, "unit_price": 1}], "Customer name"),
        (Customer(name="Ana"), [], "at least one item"),
        (Customer(name="Ana"), [{"product_id": 1, "quantity": -1, "unit_price": 1}], "quantity must be > 0"),
        (Customer(name="Ana"), [{"product_id": 1, "quantity": 1, "unit_price": 0}], "unit price must be > 0"),
    ],
)
def test_create_sale_validation(session, retry, customer, items, message):
    api = FakeApi()
    with pytest.raises(ValidationError, match=message):
        SalesService(api, session, retry=retry).create_sale(customer, items)
    assert api.calls == []


def test_confirm_uses_default_location_and_actor(session, retry):
    api = FakeApi({("POST", "/api/sales/4/confirm"): {"id": 4, "status": "CONFIRMED"}})
    sale = SalesService(api, session, retry=retry, default_location="maputo").confirm(4)

    assert sale.status == SaleStatus.CONFIRMED
    assert api.calls[0][2]["params"] == {"location": "maputo", "username": "maria"}


def test_ship_with_explicit_location_and_actor(session, retry):
    api = FakeApi({("POST", "/api/sales/4/ship"): {"id": 4, "status": "SHIPPED"}})
    sale = SalesService(api, session, retry=retry).ship(4, location="beira", actor="joao")

    assert sale.status == SaleStatus.SHIPPED
    assert api.calls[0][2]["params"] == {"location": "beira", "username": "joao"}


@pytest.mark.parametrize("action", ["confirm", "ship"])
def test_transition_without_body_is_a_data_integrity_error(session, retry, action):
    api = FakeApi({("POST", f"/api/sales/4/{action}"): None})
    with pytest.raises(DataIntegrityError, match="no sale"):
        getattr(SalesService(api, session, retry=retry), action)(4)


def test_get_sale_without_body_is_a_data_integrity_error(session, retry):
    api = FakeApi({("GET", "/api/sales/4"): None})
    with pytest.raises(DataIntegrityError, match="no sale"):
        SalesService(api, session, retry=retry).get_sale(4)
