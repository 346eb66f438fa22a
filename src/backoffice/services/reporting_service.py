from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from backoffice.domain.errors import ApiError, ValidationError
from backoffice.domain.formatters import to_number
from backoffice.domain.models import ApprovalTask, PurchaseOrder, Sale
from backoffice.domain.status import (
    ApprovalStatus,
    PurchaseOrderStatus,
    status_color,
    status_label,
)
from backoffice.repositories.payloads import as_list

log = logging.getLogger(__name__)

BASE_PATH = "/api/reports"
PERIODS = ("day", "week", "month")


@dataclass(frozen=True)
class InventoryStatusRow:
    product_id: Optional[int]
    product_name: str
    quantity: float
    minimum_quantity: float
    status: str

    @property
    def is_low(self) -> bool:
        return self.status == "Baixo"


@dataclass(frozen=True)
class ApprovalMetrics:
    total: int
    approved: int
    rejected: int
    pending: int

    @property
    def approval_rate(self) -> float:
        return (self.approved / self.total) if self.total else 0.0


@dataclass(frozen=True)
class SalesPeriodRow:
    period: str
    count: int
    total: float


@dataclass(frozen=True)
class DashboardSummary:
    sales_total: float
    pending_purchases: int
    product_count: int
    pending_approvals: int
    recent_sales: tuple[Sale, ...]
    recent_orders: tuple[PurchaseOrder, ...]


def _parse_date(value: object) -> Optional[datetime]:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def _period_key(when: datetime, period: str) -> str:
    if period == "day":
        return when.strftime("%Y-%m-%d")
    if period == "week":
        year, week, _ = when.isocalendar()
        return f"{year}-W{week:02d}"
    return when.strftime("%Y-%m")


def approval_metrics(tasks: Iterable[ApprovalTask]) -> ApprovalMetrics:
    tasks = list(tasks)
    return ApprovalMetrics(
        total=len(tasks),
        approved=sum(1 for t in tasks if t.status == ApprovalStatus.APPROVED),
        rejected=sum(1 for t in tasks if t.status == ApprovalStatus.REJECTED),
        pending=sum(1 for t in tasks if t.status == ApprovalStatus.PENDING),
    )


def sales_by_period(sales: Iterable[Sale], period: str = "month") -> list[SalesPeriodRow]:
    if period not in PERIODS:
        raise ValidationError(f"Period must be one of {', '.join(PERIODS)}.", field="period")

    buckets: dict[str, list[float]] = {}
    for sale in sales:
        when = _parse_date(sale.sale_date or sale.created_at)
        if when is None:
            continue
        key = _period_key(when, period)
        bucket = buckets.setdefault(key, [0, 0.0])
        bucket[0] += 1
        bucket[1] += sale.total

    return [SalesPeriodRow(period=k, count=int(v[0]), total=float(v[1])) for k, v in sorted(buckets.items())]


class ReportingService:
    """
    Read-only figures for the dashboard and report tabs.

    Server-side report endpoints are optional on some deployments, so the
    inventory calls log and fall back to empty/zero instead of failing the view.
    """

    def __init__(self, api, purchases=None, sales=None, products=None, approvals=None, low_stock_threshold: int = 10):
        self.api = api
        self.purchases = purchases
        self.sales = sales
        self.products = products
        self.approvals = approvals
        self.low_stock_threshold = low_stock_threshold

    def low_stock(self, threshold: Optional[int] = None) -> list[InventoryStatusRow]:
        limit = self.low_stock_threshold if threshold is None else int(threshold)
        try:
            data = self.api.get(f"{BASE_PATH}/low-stock", params={"threshold": limit})
        except ApiError as e:
            log.warning("report_unavailable report=low_stock error=%s", e)
            return []

        rows: list[InventoryStatusRow] = []
        for item in as_list(data):
            qty = to_number(item.get("quantidade", item.get("quantity")))
            product_id = item.get("id")
            rows.append(
                InventoryStatusRow(
                    product_id=product_id,
                    product_name=item.get("nomeProduto") or item.get("productName") or f"Produto {product_id}",
                    quantity=qty,
                    minimum_quantity=float(limit),
                    status="Baixo" if qty < limit else "Normal",
                )
            )
        return rows

    def inventory_value(self) -> dict:
        try:
            data = self.api.get(f"{BASE_PATH}/inventory-value")
        except ApiError as e:
            log.warning("report_unavailable report=inventory_value error=%s", e)
            return {"totalQty": 0}
        return data if isinstance(data, dict) else {"totalQty": 0}

    def turnover_ratio(self, variant_id: int, days: int = 30) -> float:
        try:
            data = self.api.get(f"{BASE_PATH}/turnover/{int(variant_id)}", params={"days": int(days)})
        except ApiError as e:
            log.warning("report_unavailable report=turnover variant_id=%s error=%s", variant_id, e)
            return 0.0
        return to_number((data or {}).get("turnoverRatio"))

    def days_of_stock(self, variant_id: int, daily_consumption: float = 1.0) -> float:
        try:
            data = self.api.get(
                f"{BASE_PATH}/dos/{int(variant_id)}",
                params={"dailyConsumption": float(daily_consumption)},
            )
        except ApiError as e:
            log.warning("report_unavailable report=days_of_stock variant_id=%s error=%s", variant_id, e)
            return 0.0
        return to_number((data or {}).get("daysOfStock"))

    def approval_metrics(self, tasks: Iterable[ApprovalTask] | None = None) -> ApprovalMetrics:
        if tasks is None:
            tasks = self.approvals.list_pending()
        return approval_metrics(tasks)

    def sales_by_period(self, sales: Iterable[Sale] | None = None, period: str = "month") -> list[SalesPeriodRow]:
        if sales is None:
            sales = self.sales.list_sales()
        return sales_by_period(sales, period)

    def dashboard_summary(self) -> DashboardSummary:
        sales = self.sales.list_sales()
        orders = self.purchases.list_orders()
        products = self.products.list_products()
        tasks = self.approvals.list_pending()

        open_statuses = (PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.SENT)
        return DashboardSummary(
            sales_total=sum((s.total for s in sales), 0.0),
            pending_purchases=sum(1 for o in orders if o.status in open_statuses),
            product_count=len(products),
            pending_approvals=sum(1 for t in tasks if t.is_pending),
            recent_sales=tuple(sales[:3]),
            recent_orders=tuple(orders[:3]),
        )

    def export_report_excel(
        self,
        path: str,
        sales: Iterable[Sale] | None = None,
        orders: Iterable[PurchaseOrder] | None = None,
        tasks: Iterable[ApprovalTask] | None = None,
        period: str = "month",
        currency: str = "MZN",
    ) -> None:
        sales = list(self.sales.list_sales() if sales is None else sales)
        orders = list(self.purchases.list_orders() if orders is None else orders)
        tasks = list(self.approvals.list_pending() if tasks is None else tasks)

        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def pct(cell):
            cell.number_format = "0.00%"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        def status_cell(cell, status):
            cell.value = status_label(status)
            cell.fill = PatternFill("solid", fgColor=status_color(status).lstrip("#"))
            cell.font = Font(color="FFFFFF", bold=True)

        metrics = approval_metrics(tasks)
        sales_total = sum((s.total for s in sales), 0.0)
        orders_total = sum((o.total for o in orders), 0.0)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Generated"
        ws["B3"] = datetime.now().strftime("%d/%m/%Y %H:%M")

        rows = [
            ("Sales count", len(sales), "int"),
            (f"Sales total {currency}", float(sales_total), "money"),
            ("Purchase orders", len(orders), "int"),
            (f"Purchase orders total {currency}", float(orders_total), "money"),
            ("Approvals pending", metrics.pending, "int"),
            ("Approvals approved", metrics.approved, "int"),
            ("Approvals rejected", metrics.rejected, "int"),
            ("Approval rate", metrics.approval_rate, "pct"),
        ]

        start_row = 5
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])
            elif kind == "pct":
                pct(ws[f"B{r}"])

        r = start_row + len(rows) + 1
        ws[f"A{r}"] = f"Sales by {period}"
        ws[f"A{r}"].font = Font(bold=True)
        for row in sales_by_period(sales, period):
            r += 1
            ws[f"A{r}"] = row.period
            ws[f"B{r}"] = float(row.total)
            ws[f"C{r}"] = row.count
            money(ws[f"B{r}"])

        set_widths(ws, {"A": 30, "B": 22, "C": 10})

        # -------- 2) Sales --------
        ws2 = wb.create_sheet("Sales")
        ws2.append([
            "Sale ID", "Date", "Customer", "Status",
            "Product", "Variant", "Qty", f"Unit Price {currency}", f"Line Total {currency}",
        ])
        bold_row(ws2, 1)

        out_row = 2
        for s in sales:
            for it in s.items or ():
                ws2.append([
                    s.id, s.sale_date or "", s.customer.name, None,
                    it.product_name or f"#{it.product_id}", it.variant_sku or it.variant_id or "",
                    float(it.quantity), float(it.unit_price), float(it.total),
                ])
                status_cell(ws2[f"D{out_row}"], s.status)
                money(ws2[f"H{out_row}"])
                money(ws2[f"I{out_row}"])
                out_row += 1

        ws2.freeze_panes = "A2"
        set_widths(ws2, {
            "A": 10, "B": 22, "C": 28, "D": 14,
            "E": 30, "F": 14, "G": 8, "H": 16, "I": 16,
        })
        if ws2.max_row >= 2:
            add_table(ws2, "SalesDetail", 1, 1, ws2.max_row, 9)

        # -------- 3) Purchase Orders --------
        ws3 = wb.create_sheet("Purchase Orders")
        ws3.append([
            "Order ID", "Number", "Supplier", "Status", "Created",
            "Product", "Qty", "Received", f"Unit Price {currency}", f"Line Total {currency}",
        ])
        bold_row(ws3, 1)

        out_row = 2
        for o in orders:
            for ln in o.lines or ():
                ws3.append([
                    o.id, o.order_number or "", o.supplier_name, None, o.created_at or "",
                    ln.product_name or f"#{ln.product_id}",
                    float(ln.quantity), float(ln.received_quantity), float(ln.unit_price), float(ln.total),
                ])
                status_cell(ws3[f"D{out_row}"], o.status)
                money(ws3[f"I{out_row}"])
                money(ws3[f"J{out_row}"])
                out_row += 1

        ws3.freeze_panes = "A2"
        set_widths(ws3, {
            "A": 10, "B": 14, "C": 26, "D": 14, "E": 22,
            "F": 30, "G": 8, "H": 10, "I": 16, "J": 16,
        })
        if ws3.max_row >= 2:
            add_table(ws3, "PurchaseOrdersDetail", 1, 1, ws3.max_row, 10)

        # -------- 4) Approvals --------
        ws4 = wb.create_sheet("Approvals")
        ws4.append(["Task ID", "Purchase Order", "Status", "Requested", "Decided", "Comment"])
        bold_row(ws4, 1)

        for i, t in enumerate(tasks, start=2):
            ws4.append([
                t.id, t.purchase_order_id, None,
                t.requested_at or "", t.decided_at or "", t.rejection_comment or "",
            ])
            status_cell(ws4[f"C{i}"], t.status)

        ws4.freeze_panes = "A2"
        set_widths(ws4, {"A": 10, "B": 16, "C": 14, "D": 22, "E": 22, "F": 40})
        if ws4.max_row >= 2:
            add_table(ws4, "ApprovalsDetail", 1, 1, ws4.max_row, 6)

        wb.save(path)
        log.info(
            "report_exported path=%s sales=%s orders=%s approvals=%s",
            path, len(sales), len(orders), len(tasks),
        )
