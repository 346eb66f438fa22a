from __future__ import annotations

import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from datetime import date
from pathlib import Path

from backoffice.domain.formatters import format_number
from backoffice.services.reporting_service import PERIODS


class ReportsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Reports")

        self.period = tk.StringVar(value="month")
        self.metrics_var = tk.StringVar(value="-")
        self.inventory_var = tk.StringVar(value="-")
        self.variant_var = tk.StringVar(value="Enter a variant to see turnover and days of stock.")
        self._build()

    def _build(self):
        tab = self.frame

        box = ttk.LabelFrame(tab, text="Export report to Excel")
        box.pack(fill="x", padx=10, pady=10)

        row = ttk.Frame(box)
        row.pack(fill="x", padx=10, pady=10)
        ttk.Label(row, text="Group sales by").pack(side="left")
        for p in PERIODS:
            ttk.Radiobutton(row, text=p.capitalize(), value=p, variable=self.period,
                            command=self.refresh_sales).pack(side="left", padx=10)

        self.export_btn = ttk.Button(box, text="Export report", style="Big.TButton", command=self.export_report)
        self.export_btn.pack(anchor="w", padx=10, pady=(0, 10))

        kpis = ttk.LabelFrame(tab, text="Approvals & inventory")
        kpis.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Label(kpis, textvariable=self.metrics_var, style="KPI.TLabel").pack(anchor="w", padx=10, pady=(8, 2))
        ttk.Label(kpis, textvariable=self.inventory_var, style="KPI.TLabel").pack(anchor="w", padx=10, pady=(2, 8))

        variant = ttk.LabelFrame(tab, text="Variant stock metrics")
        variant.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Label(variant, text="Variant ID").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.variant_e = ttk.Entry(variant, width=10)
        self.variant_e.grid(row=0, column=1, pady=8, sticky="w")
        ttk.Label(variant, text="Days").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.days_e = ttk.Entry(variant, width=6)
        self.days_e.insert(0, "30")
        self.days_e.grid(row=0, column=3, pady=8, sticky="w")
        ttk.Label(variant, text="Daily consumption").grid(row=0, column=4, padx=10, pady=8, sticky="w")
        self.consumption_e = ttk.Entry(variant, width=8)
        self.consumption_e.insert(0, "1")
        self.consumption_e.grid(row=0, column=5, pady=8, sticky="w")
        ttk.Button(variant, text="Calculate", command=self.refresh_variant).grid(row=0, column=6, padx=10, pady=8)
        ttk.Label(variant, textvariable=self.variant_var, style="KPI.TLabel")\
            .grid(row=1, column=0, columnspan=7, padx=10, pady=(0, 8), sticky="w")

        dash = ttk.Frame(tab)
        dash.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        dash.columnconfigure(0, weight=1)
        dash.columnconfigure(1, weight=1)
        dash.rowconfigure(0, weight=1)

        self.sales_canvas = tk.Canvas(dash, height=220, bg="#f8fafc", highlightthickness=1, highlightbackground="#cbd5e1")
        self.sales_canvas.grid(row=0, column=0, sticky="nsew", padx=(0, 6))

        stock_box = ttk.LabelFrame(dash, text="Inventory status")
        stock_box.grid(row=0, column=1, sticky="nsew", padx=(6, 0))
        cols = ("product", "qty", "status")
        self.stock_tree = ttk.Treeview(stock_box, columns=cols, show="headings", height=10)
        for c, title, width in (("product", "Product", 260), ("qty", "Qty", 80), ("status", "Status", 90)):
            self.stock_tree.heading(c, text=title)
            self.stock_tree.column(c, width=width, anchor="w")
        self.stock_tree.tag_configure("low", background="#ffdddd")
        self.stock_tree.pack(fill="both", expand=True, padx=6, pady=6)

    def refresh(self):
        self.refresh_sales()
        self.app.load_async("reports.approvals", self.app.reporting.approval_metrics, self._apply_metrics)
        self.app.load_async("reports.stock", self.app.reporting.low_stock, self._apply_stock)
        self.app.load_async("reports.inventory", self.app.reporting.inventory_value, self._apply_inventory)

    def refresh_sales(self):
        period = self.period.get()
        self.app.load_async(
            "reports.sales",
            lambda: self.app.reporting.sales_by_period(period=period),
            self._apply_sales,
        )

    def refresh_variant(self):
        try:
            variant_id = int(self.variant_e.get().strip())
            days = int(self.days_e.get().strip() or 30)
            consumption = float(self.consumption_e.get().strip().replace(",", ".") or 1)
        except ValueError:
            messagebox.showwarning("Validation", "Variant, days and daily consumption must be numbers.")
            return
        if variant_id <= 0 or days <= 0 or consumption <= 0:
            messagebox.showwarning("Validation", "Variant, days and daily consumption must be > 0.")
            return

        reporting = self.app.reporting
        self.app.load_async(
            "reports.variant",
            lambda: (
                variant_id,
                days,
                reporting.turnover_ratio(variant_id, days=days),
                reporting.days_of_stock(variant_id, daily_consumption=consumption),
            ),
            self._apply_variant,
        )

    def _apply_variant(self, data):
        variant_id, days, turnover, dos = data
        self.variant_var.set(
            f"Variant #{variant_id}: turnover {turnover:.2f} over {days} days  |  "
            f"days of stock {format_number(dos)}"
        )

    def _apply_metrics(self, m):
        self.metrics_var.set(
            f"Approvals: {m.total}  |  approved {m.approved}  |  rejected {m.rejected}  |  "
            f"pending {m.pending}  |  rate {m.approval_rate * 100:.1f}%"
        )

    def _apply_inventory(self, data):
        parts = [f"Units in stock: {format_number(data.get('totalQty'))}"]
        if data.get("lowStockCount") is not None:
            parts.append(f"low stock items: {format_number(data.get('lowStockCount'))}")
        self.inventory_var.set("  |  ".join(parts))

    def _apply_stock(self, rows):
        for item in self.stock_tree.get_children():
            self.stock_tree.delete(item)
        for r in rows:
            self.stock_tree.insert("", "end", values=(r.product_name, format_number(r.quantity), r.status),
                                   tags=("low",) if r.is_low else ())

    def _apply_sales(self, rows):
        data = [(r.period, r.total) for r in rows]
        self._draw_bar_chart(self.sales_canvas, f"Sales by {self.period.get()}", data, color="#2563eb")

    def _draw_bar_chart(self, canvas: tk.Canvas, title: str, data: list[tuple[str, float]], color: str = "#2b78c2"):
        canvas.delete("all")
        w, h = int(canvas.winfo_width() or 560), int(canvas.winfo_height() or 220)
        canvas.create_text(12, 16, text=title, anchor="w", font=("Segoe UI", 10, "bold"), fill="#0f172a")
        if not data:
            canvas.create_text(w // 2, h // 2, text="Sem dados", fill="#64748b")
            return
        maxv = max(v for _, v in data) or 1
        bw = max(24, (w - 40) // len(data))
        for i, (label, val) in enumerate(data):
            x0 = 24 + i * bw
            x1 = x0 + bw - 8
            y1 = h - 30
            y0 = y1 - int((val / maxv) * (h - 70))
            canvas.create_rectangle(x0, y0, x1, y1, fill=color, outline="")
            canvas.create_text((x0 + x1) // 2, y1 + 12, text=label[-5:], font=("Segoe UI", 8), fill="#475569")
            canvas.create_text((x0 + x1) // 2, y0 - 8, text=f"{val:.0f}", font=("Segoe UI", 8), fill="#0f172a")

    def export_report(self):
        path = filedialog.asksaveasfilename(
            title="Save report as",
            defaultextension=".xlsx",
            filetypes=[("Excel files", "*.xlsx")],
            initialdir=self.app.exports_dir,
            initialfile=f"report_{self.period.get()}_{date.today().isoformat()}.xlsx",
        )
        if not path:
            return
        try:
            self.app.run_action(
                "reports.export",
                lambda: self.app.reporting.export_report_excel(
                    path, period=self.period.get(), currency=self.app.settings.currency
                ),
                button=self.export_btn,
            )
        except Exception as e:
            self.app.handle_error("Export error", e, "Excel export failed.")
            return
        self.app.toast(f"Excel report exported: {Path(path).name}", kind="success")
