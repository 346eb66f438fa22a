import pytest

from backoffice.domain.errors import (
    NetworkError,
    NotFoundError,
    RetriesExhaustedError,
    ServerError,
    is_transient,
)
from backoffice.repositories.retry import RetryPolicy, exponential_backoff, retrying
from backoffice.services.purchase_service import PurchaseService

from conftest import FakeApi, Replies


def test_two_server_errors_then_success_retries_exactly_twice(session, retry, sleeps):
    order = {"id": 5, "fornecedorNome": "ACME", "status": "DRAFT", "linhas": []}
    api = FakeApi({
        ("GET", "/api/purchase-orders/5"): Replies([ServerError("boom", status_code=500),
                                                    ServerError("boom", status_code=503),
                                                    order]),
    })
    purchases = PurchaseService(api, session, retry=retry)

    result = purchases.get_order(5)

    assert result.id == 5
    assert len(api.calls) == 3
    assert sleeps == [0.3, 0.6]


def test_not_found_is_not_retried(session, retry, sleeps):
    api = FakeApi({("GET", "/api/purchase-orders/9"): NotFoundError("missing", status_code=404)})
    purchases = PurchaseService(api, session, retry=retry)

    with pytest.raises(NotFoundError):
        purchases.get_order(9)

    assert len(api.calls) == 1
    assert sleeps == []


def test_exhaustion_chains_last_error(sleeps):
    calls = []

    @retrying(max_attempts=3, backoff=exponential_backoff(100), sleep=sleeps.append)
    def always_fails():
        calls.append(1)
        raise ServerError("down", status_code=502)

    with pytest.raises(RetriesExhaustedError) as info:
        always_fails()

    assert len(calls) == 3
    assert info.value.attempts == 3
    assert isinstance(info.value.__cause__, ServerError)
    assert sleeps == [0.1, 0.2]


def test_network_errors_are_not_transient():
    assert not is_transient(NetworkError("offline"))
    assert not is_transient(ValueError("x"))
    assert is_transient(ServerError("x", status_code=500))


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError, match="max_attempts"):
        RetryPolicy(max_attempts=0).call(lambda: None)


def test_wrap_keeps_function_name():
    policy = RetryPolicy(sleep=lambda _s: None)

    def fetch_order():
        return 1

    assert policy.wrap(fetch_order).__name__ == "fetch_order"
