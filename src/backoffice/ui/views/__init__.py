from .purchases_view import PurchasesView
from .approvals_view import ApprovalsView
from .sales_view import SalesView
from .products_view import ProductsView
from .users_view import UsersView
from .reports_view import ReportsView

__all__ = ["PurchasesView", "ApprovalsView", "SalesView", "ProductsView", "UsersView", "ReportsView"]
