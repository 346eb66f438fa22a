from .auth_service import AuthService
from .purchase_service import PurchaseService
from .approval_service import ApprovalService
from .sales_service import SalesService
from .product_service import ProductService
from .user_service import UserService
from .reporting_service import ReportingService

__all__ = [
    "AuthService",
    "PurchaseService",
    "ApprovalService",
    "SalesService",
    "ProductService",
    "UserService",
    "ReportingService",
]
