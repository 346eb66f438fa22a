from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import requests

from backoffice.application.actions import ActionGuard, ResponseTracker
from backoffice.application.session import AppSession
from backoffice.config import ApiSettings
from backoffice.repositories.api_client import ApiClient
from backoffice.repositories.retry import RetryPolicy
from backoffice.services.approval_service import ApprovalService
from backoffice.services.auth_service import AuthService
from backoffice.services.product_service import ProductService
from backoffice.services.purchase_service import PurchaseService
from backoffice.services.reporting_service import ReportingService
from backoffice.services.sales_service import SalesService
from backoffice.services.user_service import UserService


@dataclass(frozen=True)
class AppContainer:
    settings: ApiSettings
    session: AppSession
    api: ApiClient
    actions: ActionGuard
    responses: ResponseTracker
    auth: AuthService
    purchases: PurchaseService
    approvals: ApprovalService
    sales: SalesService
    products: ProductService
    users: UserService
    reporting: ReportingService


def build_container(
    settings: ApiSettings,
    session_path: Path | str | None = None,
    http: requests.Session | None = None,
) -> AppContainer:
    session = AppSession(session_path)
    session.hydrate()

    api = ApiClient(settings.base_url, session, timeout=settings.timeout_seconds, http=http)
    retry = RetryPolicy(max_attempts=settings.retry_attempts, base_delay_ms=settings.retry_backoff_ms)

    auth = AuthService(api, session)
    purchases = PurchaseService(api, session, retry=retry)
    approvals = ApprovalService(api, session, purchases, retry=retry)
    sales = SalesService(api, session, retry=retry, default_location=settings.default_location)
    products = ProductService(api, retry=retry)
    users = UserService(api, retry=retry)
    reporting = ReportingService(
        api,
        purchases=purchases,
        sales=sales,
        products=products,
        approvals=approvals,
        low_stock_threshold=settings.low_stock_threshold,
    )

    return AppContainer(
        settings=settings,
        session=session,
        api=api,
        actions=ActionGuard(),
        responses=ResponseTracker(),
        auth=auth,
        purchases=purchases,
        approvals=approvals,
        sales=sales,
        products=products,
        users=users,
        reporting=reporting,
    )
