from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox, simpledialog

from backoffice.domain.formatters import format_currency, format_datetime, format_number
from backoffice.domain.status import display_status, status_color, status_label
from backoffice.services.approval_service import filter_tasks, pending_count

FILTERS = ["ALL", "PENDING", "APPROVED", "REJECTED"]


class ApprovalsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Approvals")

        self.tasks: list = []
        self.rows: dict[str, object] = {}
        self.filter_var = tk.StringVar(value="PENDING")
        self.count_var = tk.StringVar(value="Pending: -")

        self._build()

    def _build(self):
        tab = self.frame

        bar = ttk.Frame(tab)
        bar.pack(fill="x", padx=10, pady=10)

        ttk.Label(bar, text="Status").pack(side="left")
        combo = ttk.Combobox(bar, textvariable=self.filter_var, values=FILTERS, width=12, state="readonly")
        combo.pack(side="left", padx=10)
        combo.bind("<<ComboboxSelected>>", lambda _e: self._render())
        ttk.Button(bar, text="Refresh", command=self.refresh).pack(side="left")
        ttk.Label(bar, textvariable=self.count_var, style="KPIValue.TLabel").pack(side="right")

        box = ttk.LabelFrame(tab, text="Approval tasks (double click for order details)")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "order", "status", "requested", "decided", "comment")
        self.tree = ttk.Treeview(box, columns=cols, show="headings", height=16)
        heads = {"id": "Task", "order": "Purchase order", "status": "Status",
                 "requested": "Requested", "decided": "Decided", "comment": "Comment"}
        widths = {"id": 60, "order": 120, "status": 110, "requested": 150, "decided": 150, "comment": 420}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)
        self.tree.bind("<Double-1>", self.open_details)

        btns = ttk.Frame(box)
        btns.pack(fill="x", padx=10, pady=(0, 10))
        self.approve_btn = ttk.Button(btns, text="Approve", style="Big.TButton", command=self.on_approve)
        self.approve_btn.pack(side="left")
        self.reject_btn = ttk.Button(btns, text="Reject", style="Big.TButton", command=self.on_reject)
        self.reject_btn.pack(side="left", padx=10)

    def refresh(self):
        self.app.load_async("approvals", self.app.approvals.list_pending, self._apply)

    def _apply(self, tasks):
        self.tasks = list(tasks)
        self._render()

    def _render(self):
        for item in self.tree.get_children():
            self.tree.delete(item)
        self.rows = {}
        for t in filter_tasks(self.tasks, self.filter_var.get()):
            tag = f"status_{getattr(t.status, 'name', 'unknown')}"
            self.tree.tag_configure(tag, foreground=status_color(t.status))
            iid = self.tree.insert("", "end", values=(
                t.id, t.purchase_order_id or "-", status_label(t.status),
                format_datetime(t.requested_at), format_datetime(t.decided_at), t.rejection_comment or "",
            ), tags=(tag,))
            self.rows[iid] = t
        self.count_var.set(f"Pending: {pending_count(self.tasks)}")

    def _selected(self):
        sel = self.tree.selection()
        if not sel:
            messagebox.showwarning("Validation", "Select an approval task.")
            return None
        return self.rows.get(sel[0])

    def on_approve(self):
        task = self._selected()
        if task is None:
            return
        comment = simpledialog.askstring("Approve", "Comment (optional)", parent=self.frame)
        if comment is None:
            return
        self._decide("approve", task, lambda: self.app.approvals.approve(task, comment), self.approve_btn)

    def on_reject(self):
        task = self._selected()
        if task is None:
            return
        reason = simpledialog.askstring("Reject", "Rejection reason", parent=self.frame)
        if reason is None:
            return
        self._decide("reject", task, lambda: self.app.approvals.reject(task, reason), self.reject_btn)

    def _decide(self, action: str, task, call, button):
        try:
            self.app.auth.require_action("decide_approval")
            decided = self.app.run_action(f"approvals.{task.id}", call, button=button)
        except Exception as e:
            self.app.handle_error("Approval", e, f"Failed to {action} task.")
            return
        if decided is None:
            return
        self.app.toast(f"Task #{task.id}: {status_label(decided.status)}.", kind="success")
        self.app.refresh_all(show_toast=False)

    def open_details(self, _evt=None):
        task = self._selected()
        if task is None:
            return
        try:
            task, order = self.app.approvals.load_task_with_order(task.id)
        except Exception as e:
            self.app.handle_error("Approval details", e, "Failed to load approval details.")
            return

        currency = self.app.settings.currency
        win = tk.Toplevel(self.app)
        win.title(f"Approval #{task.id} — PO #{order.id}")
        win.geometry("820x460")

        h = ttk.LabelFrame(win, text="Purchase order")
        h.pack(fill="x", padx=10, pady=10)
        ttk.Label(h, text=f"Supplier: {order.supplier_name} ({order.supplier_email or '-'})")\
            .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Status: {display_status(order.raw_status)}  |  Task: {status_label(task.status)}")\
            .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Total: {format_currency(order.total, currency)}").pack(anchor="w", padx=10, pady=2)
        if order.rejection_reason:
            ttk.Label(h, text=f"Rejection reason: {order.rejection_reason}").pack(anchor="w", padx=10, pady=2)

        box = ttk.LabelFrame(win, text="Lines")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("product", "qty", "unit", "line")
        tree = ttk.Treeview(box, columns=cols, show="headings", height=10)
        heads = {"product": "Product", "qty": "Qty", "unit": "Unit price", "line": "Line total"}
        widths = {"product": 360, "qty": 80, "unit": 140, "line": 140}
        for c in cols:
            tree.heading(c, text=heads[c])
            tree.column(c, width=widths[c], anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=10)

        for ln in order.lines:
            tree.insert("", "end", values=(
                ln.product_name or f"#{ln.product_id}", format_number(ln.quantity),
                format_currency(ln.unit_price, currency), format_currency(ln.total, currency),
            ))
