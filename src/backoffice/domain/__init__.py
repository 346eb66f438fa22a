from .models import (
    ApprovalTask,
    Customer,
    Product,
    ProductVariant,
    PurchaseOrder,
    PurchaseOrderLine,
    Sale,
    SaleItem,
    User,
)
from .errors import (
    ApiError,
    AppError,
    AuthorizationError,
    ConflictError,
    DataIntegrityError,
    NotFoundError,
    RetriesExhaustedError,
    ValidationError,
)

__all__ = [
    "ApprovalTask",
    "Customer",
    "Product",
    "ProductVariant",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "Sale",
    "SaleItem",
    "User",
    "ApiError",
    "AppError",
    "AuthorizationError",
    "ConflictError",
    "DataIntegrityError",
    "NotFoundError",
    "RetriesExhaustedError",
    "ValidationError",
]
