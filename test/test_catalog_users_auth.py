import pytest

from backoffice.application.session import AppSession
from backoffice.domain.errors import AuthorizationError, BadRequestError, ServerError, ValidationError
from backoffice.domain.status import ProductStatus, UserRole
from backoffice.services.auth_service import AuthService
from backoffice.services.product_service import ProductService
from backoffice.services.user_service import UserService

from conftest import ADMIN_AUTH, FakeApi


# ---------- products ----------
def test_list_products_hides_soft_deleted(retry):
    api = FakeApi({("GET", "/api/products"): [
        {"id": 1, "nome": "Camisa", "status": "ATIVO", "precoPadrao": 450},
        {"id": 2, "nome": "Calça", "status": "ACTIVO", "deletedAt": "2026-01-02T10:00:00"},
    ]})
    products = ProductService(api, retry=retry)

    visible = products.list_products()
    assert [p.id for p in visible] == [1]
    assert visible[0].status == ProductStatus.ACTIVO
    assert len(products.list_products(include_deleted=True)) == 2


def test_create_product_validates_and_posts(retry):
    api = FakeApi({("POST", "/api/products"): {"id": 3, "nome": "Boné", "precoPadrao": 120}})
    products = ProductService(api, retry=retry)

    with pytest.raises(ValidationError, match="at least 3"):
        products.create_product("ab", 10)
    with pytest.raises(ValidationError, match=">= 0"):
        products.create_product("Boné", -1)
    with pytest.raises(ValidationError, match="Unknown product status"):
        products.create_product("Boné", 1, status="SUMIDO")
    assert api.calls == []

    product = products.create_product(" Boné ", "120", category="Acessórios")
    assert product.id == 3
    assert api.calls[0][2]["json"] == {"nome": "Boné", "categoria": "Acessórios", "status": "ACTIVO", "precoPadrao": 120.0}


def test_update_and_delete_product_paths(retry):
    api = FakeApi({("PUT", "/api/products/3"): {"id": 3, "nome": "Boné azul"}})
    products = ProductService(api, retry=retry)

    products.update_product(3, "Boné azul", 130, status="INATIVO")
    products.delete_product(3)

    assert [(m, p) for m, p, _ in api.calls] == [("PUT", "/api/products/3"), ("DELETE", "/api/products/3")]
    assert api.calls[0][2]["json"]["status"] == "INACTIVO"


# ---------- users ----------
def test_create_user_requires_known_role(retry):
    api = FakeApi()
    with pytest.raises(ValidationError, match="valid role"):
        UserService(api, retry=retry).create_user("Carlos", "c@x.co", "segredo", "segredo", "CHEFE")
    assert api.calls == []


def test_create_user_checks_password_confirmation(retry):
    with pytest.raises(ValidationError, match="confirmation"):
        UserService(FakeApi(), retry=retry).create_user("Carlos", "c@x.co", "segredo", "outro1", "ADMIN")


def test_create_and_toggle_user(retry):
    api = FakeApi({
        ("POST", "/api/users"): {"id": 4, "nome": "Carlos", "email": "c@x.co", "role": "VENDEDOR"},
        ("PATCH", "/api/users/4/deactivate"): {"id": 4, "nome": "Carlos", "email": "c@x.co", "role": "VENDEDOR",
                                               "activo": False},
    })
    users = UserService(api, retry=retry)

    user = users.create_user("Carlos", "c@x.co", "segredo", "segredo", "sales")
    assert user.role == UserRole.VENDEDOR
    assert api.calls[0][2]["json"]["role"] == "VENDEDOR"

    assert users.deactivate(4).active is False


# ---------- auth ----------
def test_login_starts_session():
    session = AppSession()
    api = FakeApi({("POST", "/api/auth/login"): dict(ADMIN_AUTH)})

    user = AuthService(api, session).login(" maria@loja.co.mz ", "segredo")

    assert user.username == "maria"
    assert session.is_authenticated
    assert api.calls[0][2]["json"] == {"email": "maria@loja.co.mz", "password": "segredo"}


def test_login_bad_credentials_become_authorization_error():
    api = FakeApi({("POST", "/api/auth/login"): BadRequestError("bad", status_code=400)})
    with pytest.raises(AuthorizationError, match="Invalid email or password"):
        AuthService(api, AppSession()).login("a@b.co", "x")


def test_login_server_error_propagates():
    api = FakeApi({("POST", "/api/auth/login"): ServerError("down", status_code=500)})
    with pytest.raises(ServerError):
        AuthService(api, AppSession()).login("a@b.co", "x")


def test_change_password_rules(session):
    api = FakeApi()
    auth = AuthService(api, session)

    with pytest.raises(ValidationError, match="at least 6"):
        auth.change_password("antiga1", "curta", "curta")
    with pytest.raises(ValidationError, match="does not match"):
        auth.change_password("antiga1", "nova123", "nova124")
    with pytest.raises(ValidationError, match="different"):
        auth.change_password("antiga1", "antiga1", "antiga1")
    assert api.calls == []

    auth.change_password("antiga1", "nova123", "nova123")
    assert api.calls[0][:2] == ("POST", "/api/auth/change-password")
    assert api.calls[0][2]["json"] == {"currentPassword": "antiga1", "newPassword": "nova123"}


def test_update_profile_refreshes_session_user(session):
    api = FakeApi({("PUT", "/api/auth/update-profile"): {"id": 7, "name": "Maria S.", "email": "ms@loja.co.mz",
                                                         "role": "ADMIN"}})
    AuthService(api, session).update_profile("Maria S.", "ms@loja.co.mz")
    assert session.user.email == "ms@loja.co.mz"

    with pytest.raises(ValidationError, match="Invalid email"):
        AuthService(api, session).update_profile("Maria", "not-an-email")


def test_permissions_by_role():
    session = AppSession()
    session.start({"accessToken": "t", "user": {"id": 2, "name": "Vera", "email": "v@x.co", "role": "VENDEDOR"}})
    auth = AuthService(FakeApi(), session)

    assert auth.can("create_sale")
    assert not auth.can("decide_approval")
    assert not auth.can("no_such_action")
    with pytest.raises(AuthorizationError, match="manage_users"):
        auth.require_action("manage_users")


def test_logout_clears_session(session):
    AuthService(FakeApi(), session).logout()
    assert not session.is_authenticated
    assert not AuthService(FakeApi(), session).can("view_reports")


def test_register_validates_then_starts_session():
    session = AppSession()
    api = FakeApi({("POST", "/api/auth/register"): dict(ADMIN_AUTH)})
    auth = AuthService(api, session)

    with pytest.raises(ValidationError, match="does not match"):
        auth.register("Maria Souza", "maria@loja.co.mz", "segredo", "segredo!")
    assert api.calls == []

    user = auth.register(" Maria Souza ", "maria@loja.co.mz", "segredo", "segredo")

    assert user.username == "maria"
    assert session.is_authenticated
    assert api.calls[0][2]["json"]["name"] == "Maria Souza"


def test_current_user_replaces_stale_stored_user(tmp_path):
    store = tmp_path / "session.json"
    session = AppSession(store)
    session.start(dict(ADMIN_AUTH))
    api = FakeApi({("GET", "/api/auth/me"): {"id": 7, "name": "Maria Souza", "email": "maria@loja.co.mz",
                                             "username": "maria", "role": "VENDEDOR"}})
    auth = AuthService(api, session)
    assert auth.can("manage_users")

    auth.current_user()

    assert session.user.role == UserRole.VENDEDOR
    assert not auth.can("manage_users")
    reloaded = AppSession(store)
    assert reloaded.hydrate()
    assert reloaded.user.role == UserRole.VENDEDOR
