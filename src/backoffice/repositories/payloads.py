"""Translation between API JSON bodies and domain dataclasses.

The API uses Portuguese camelCase field names (``fornecedorNome``,
``linhas``...). English spellings are accepted as a fallback on input.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Optional

from backoffice.domain.errors import DataIntegrityError
from backoffice.domain.formatters import to_number
from backoffice.domain.models import (
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
from backoffice.domain.status import (
    normalize_approval_status,
    normalize_product_status,
    normalize_purchase_order_status,
    normalize_sale_status,
    normalize_user_role,
    UnknownStatus,
)


def _pick(data: dict, *keys: str):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _int_or_none(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _float_or_none(value: object) -> Optional[float]:
    if value is None:
        return None
    number = to_number(value, default=math.nan)
    return None if math.isnan(number) else number


def _str_or_none(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_list(payload: object) -> list[dict]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        items = payload.get("content") or payload.get("items") or payload.get("data") or []
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def require_object(payload: object, what: str) -> dict:
    """Body of a fetch or state change; an empty 200 is a broken server reply, not a blank record."""
    if not isinstance(payload, dict) or not payload:
        raise DataIntegrityError(f"Server returned no {what} data.")
    return payload


def _now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


# ---------- purchase orders ----------
def purchase_line_from_payload(data: dict) -> PurchaseOrderLine:
    quantity = to_number(_pick(data, "quantidade", "quantity"))
    received = to_number(_pick(data, "quantidadeRecebida", "receivedQuantity"))
    return PurchaseOrderLine(
        id=_int_or_none(data.get("id")),
        product_id=_int_or_none(_pick(data, "produtoId", "productId")) or 0,
        variant_id=_int_or_none(_pick(data, "variacaoId", "variantId")),
        quantity=quantity,
        unit_price=to_number(_pick(data, "precoUnitario", "unitPrice")),
        received_quantity=min(received, quantity) if quantity > 0 else received,
        product_name=_str_or_none(_pick(data, "produtoNome", "productName")),
    )


def purchase_order_from_payload(data: dict) -> PurchaseOrder:
    raw_status = _pick(data, "status")
    lines = tuple(purchase_line_from_payload(ln) for ln in as_list(_pick(data, "linhas", "lines")))
    return PurchaseOrder(
        id=_int_or_none(data.get("id")),
        order_number=_str_or_none(_pick(data, "numeroCompra", "orderNumber")),
        supplier_name=str(_pick(data, "fornecedorNome", "supplierName") or ""),
        supplier_email=_str_or_none(_pick(data, "fornecedorEmail", "supplierEmail")),
        status=normalize_purchase_order_status(raw_status),
        lines=lines,
        server_total=_float_or_none(data.get("total")),
        rejection_reason=_str_or_none(_pick(data, "justificativaRejeicao", "rejectionReason")),
        created_by=_str_or_none(data.get("createdBy")),
        created_at=_str_or_none(_pick(data, "createdAt", "data")),
        raw_status=None if raw_status is None else str(raw_status),
    )


def purchase_order_create_payload(
    supplier_name: str,
    supplier_email: Optional[str],
    lines: Iterable[dict],
    total: float,
) -> dict:
    payload_lines = []
    for ln in lines:
        quantity = to_number(ln.get("quantity"))
        unit_price = to_number(ln.get("unit_price"))
        item = {
            "produtoId": int(ln["product_id"]),
            "variacaoId": _int_or_none(ln.get("variant_id")) or 1,
            "quantidade": quantity,
            "precoUnitario": unit_price,
            "total": quantity * unit_price,
        }
        if ln.get("product_name"):
            item["produtoNome"] = ln["product_name"]
        payload_lines.append(item)

    payload = {
        "fornecedorNome": supplier_name,
        "fornecedorEmail": supplier_email or None,
        "status": "DRAFT",
        "total": total,
        "linhas": payload_lines,
        "data": _now_iso(),
    }
    return {k: v for k, v in payload.items() if v is not None}


# ---------- approvals ----------
def approval_task_from_payload(data: dict) -> ApprovalTask:
    return ApprovalTask(
        id=_int_or_none(data.get("id")),
        purchase_order_id=_int_or_none(_pick(data, "targetId", "pedidoCompraId", "purchaseOrderId")),
        status=normalize_approval_status(data.get("status")),
        rejection_comment=_str_or_none(_pick(data, "comment", "justificativaRejeicao")),
        requested_at=_str_or_none(_pick(data, "requestedAt", "criadoEm")),
        decided_at=_str_or_none(_pick(data, "decidedAt", "atualizadoEm")),
    )


# ---------- sales ----------
def sale_item_from_payload(data: dict) -> SaleItem:
    return SaleItem(
        product_id=_int_or_none(_pick(data, "produtoId", "productId")) or 0,
        variant_id=_int_or_none(_pick(data, "variacaoId", "variantId")),
        quantity=to_number(_pick(data, "quantidade", "quantity")),
        unit_price=to_number(_pick(data, "precoUnitario", "unitPrice")),
        product_name=_str_or_none(_pick(data, "produtoNome", "productName")),
        variant_sku=_str_or_none(_pick(data, "variacaoSku", "variantSku")),
    )


def sale_from_payload(data: dict) -> Sale:
    customer = Customer(
        name=str(_pick(data, "clienteNome", "customerName") or ""),
        email=_str_or_none(_pick(data, "clienteEmail", "customerEmail")),
        phone=_str_or_none(_pick(data, "clienteTelefone", "customerPhone")),
    )
    return Sale(
        id=_int_or_none(data.get("id")),
        sale_date=_str_or_none(_pick(data, "createdAt", "data", "saleDate")),
        customer=customer,
        status=normalize_sale_status(data.get("status")),
        items=tuple(sale_item_from_payload(it) for it in as_list(_pick(data, "itens", "items"))),
        server_total=_float_or_none(data.get("total")),
        created_by=_str_or_none(data.get("createdBy")),
        created_at=_str_or_none(data.get("createdAt")),
    )


def sale_create_payload(customer: Customer, items: Iterable[dict], total: float) -> dict:
    payload_items = []
    for it in items:
        quantity = to_number(it.get("quantity"))
        unit_price = to_number(it.get("unit_price"))
        payload_items.append({
            "produtoId": int(it["product_id"]),
            "variacaoId": _int_or_none(it.get("variant_id")) or 0,
            "quantidade": quantity,
            "precoUnitario": unit_price,
            "total": quantity * unit_price,
        })

    payload = {
        "data": _now_iso(),
        "clienteNome": customer.name,
        "clienteEmail": customer.email or None,
        "clienteTelefone": customer.phone or None,
        "status": "DRAFT",
        "total": total,
        "itens": payload_items,
    }
    return {k: v for k, v in payload.items() if v is not None}


# ---------- products ----------
def variant_from_payload(data: dict) -> ProductVariant:
    return ProductVariant(
        id=_int_or_none(data.get("id")),
        product_id=_int_or_none(_pick(data, "produtoId", "productId")),
        name=str(_pick(data, "nome", "name") or ""),
        sku=str(data.get("sku") or ""),
        price=to_number(_pick(data, "preco", "price")),
        quantity=to_number(_pick(data, "quantidade", "quantity")),
        reserved_quantity=to_number(_pick(data, "quantidadeReservada", "reservedQuantity")),
    )


def product_from_payload(data: dict) -> Product:
    return Product(
        id=_int_or_none(data.get("id")),
        name=str(_pick(data, "nome", "name") or ""),
        description=_str_or_none(_pick(data, "descricao", "description")),
        category=_str_or_none(_pick(data, "categoria", "category")),
        status=normalize_product_status(data.get("status")),
        default_price=to_number(_pick(data, "precoPadrao", "defaultPrice")),
        photo=_pick(data, "fotoBase64", "photo"),
        deleted_at=_str_or_none(data.get("deletedAt")),
        deleted_by=_str_or_none(data.get("deletedBy")),
        variants=tuple(variant_from_payload(v) for v in as_list(_pick(data, "variacoes", "variants"))),
    )


def product_payload(
    name: str,
    default_price: float,
    description: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    photo: Optional[str] = None,
) -> dict:
    payload = {
        "nome": name,
        "descricao": description or None,
        "categoria": category or None,
        "status": status or None,
        "precoPadrao": default_price,
        "fotoBase64": photo or None,
    }
    return {k: v for k, v in payload.items() if v is not None}


# ---------- users ----------
def user_from_payload(data: dict) -> User:
    roles = tuple(str(r) for r in (data.get("roles") or []) if r)
    raw_role = data.get("role") or (roles[0] if roles else None)
    active = _pick(data, "activo", "active", "ativo")
    return User(
        id=_int_or_none(data.get("id")),
        name=str(_pick(data, "nome", "name", "displayName") or ""),
        email=str(data.get("email") or ""),
        role=normalize_user_role(raw_role),
        active=True if active is None else bool(active),
        roles=roles,
        username=_str_or_none(data.get("username")),
    )


def user_to_store(user: User) -> dict:
    role = user.role.raw if isinstance(user.role, UnknownStatus) else user.role.value
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": role or None,
        "active": user.active,
        "roles": list(user.roles),
        "username": user.username,
    }
