from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from backoffice.domain.errors import ValidationError
from backoffice.domain.formatters import format_currency, format_datetime, format_number
from backoffice.domain.status import display_status

log = logging.getLogger(__name__)


class PurchasesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Purchases")

        self.cart: list[dict] = []
        self.orders: dict[str, object] = {}
        self.pick = tk.StringVar()
        self.total_var = tk.StringVar(value="Total: -")
        self.approval_hint = tk.StringVar(value="")

        self.all_choices: list[str] = []
        self.product_map: dict[str, object] = {}

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Add line")
        top.pack(fill="x", padx=10, pady=10)
        top.columnconfigure(1, weight=1)

        ttk.Label(top, text="Product").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.combo = ttk.Combobox(top, textvariable=self.pick, width=48)
        self.combo.grid(row=0, column=1, padx=10, pady=8, sticky="ew")
        self.combo.bind("<KeyRelease>", lambda e: self._filter_combobox(self.pick.get()))
        self.combo.bind("<<ComboboxSelected>>", self._on_pick)

        ttk.Label(top, text="Qty").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.qty_e = ttk.Entry(top, width=10)
        self.qty_e.grid(row=0, column=3, padx=10, pady=8, sticky="w")

        ttk.Label(top, text="Unit price").grid(row=0, column=4, padx=10, pady=8, sticky="w")
        self.price_e = ttk.Entry(top, width=12)
        self.price_e.grid(row=0, column=5, padx=10, pady=8, sticky="w")

        ttk.Button(top, text="Add", style="Big.TButton", command=self.add_line)\
            .grid(row=0, column=6, padx=10, pady=8)

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        box = ttk.LabelFrame(mid, text="Order lines")
        box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("name", "qty", "unit", "line")
        self.cart_tree = ttk.Treeview(box, columns=cols, show="headings", height=8)
        heads = {"name": "Product", "qty": "Qty", "unit": "Unit price", "line": "Line total"}
        widths = {"name": 360, "qty": 70, "unit": 130, "line": 130}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        btnrow = ttk.Frame(box)
        btnrow.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btnrow, text="Remove selected", command=self.remove_selected).pack(side="left")
        ttk.Button(btnrow, text="Clear", command=self.clear_cart).pack(side="left", padx=10)

        right = ttk.LabelFrame(mid, text="Create purchase order")
        right.pack(side="right", fill="y")

        ttk.Label(right, text="Supplier name").pack(anchor="w", padx=10, pady=(10, 4))
        self.supplier_e = ttk.Entry(right, width=34)
        self.supplier_e.pack(padx=10)

        ttk.Label(right, text="Supplier email (optional)").pack(anchor="w", padx=10, pady=(10, 4))
        self.email_e = ttk.Entry(right, width=34)
        self.email_e.pack(padx=10)

        ttk.Label(right, textvariable=self.total_var).pack(anchor="w", padx=10, pady=(10, 2))
        ttk.Label(right, textvariable=self.approval_hint, foreground="#ea580c").pack(anchor="w", padx=10)

        self.create_btn = ttk.Button(right, text="Create order", style="Big.TButton", command=self.create_order)
        self.create_btn.pack(fill="x", padx=10, pady=10)

        hist = ttk.LabelFrame(tab, text="Purchase orders (double click to receive)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        bar = ttk.Frame(hist)
        bar.pack(fill="x", padx=10, pady=8)
        self.send_btn = ttk.Button(bar, text="Send for approval", command=self.send_selected)
        self.send_btn.pack(side="left")
        ttk.Button(bar, text="Receive goods", command=self.open_receive).pack(side="left", padx=10)
        ttk.Button(bar, text="Refresh", command=self.refresh).pack(side="left")

        cols = ("id", "number", "supplier", "status", "total", "created")
        self.orders_tree = ttk.Treeview(hist, columns=cols, show="headings", height=8)
        heads = {"id": "ID", "number": "Number", "supplier": "Supplier", "status": "Status",
                 "total": "Total", "created": "Created"}
        widths = {"id": 60, "number": 120, "supplier": 260, "status": 160, "total": 140, "created": 150}
        for c in cols:
            self.orders_tree.heading(c, text=heads[c])
            self.orders_tree.column(c, width=widths[c], anchor="w")
        self.orders_tree.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.orders_tree.bind("<Double-1>", lambda _e: self.open_receive())

    def _filter_combobox(self, typed: str):
        typed = typed.strip().lower()
        self.combo["values"] = self.all_choices if not typed else [c for c in self.all_choices if typed in c.lower()]

    def _on_pick(self, _evt=None):
        product = self.product_map.get(self.pick.get())
        if product is not None and not self.price_e.get().strip():
            self.price_e.insert(0, f"{product.default_price:g}")

    # ---------- data ----------
    def refresh(self):
        self.app.load_async("purchases.products", self.app.products.list_products, self._apply_products)
        self.app.load_async("purchases.orders", self.app.purchases.list_orders, self._apply_orders)
        self.refresh_cart_view()

    def _apply_products(self, products):
        choices = []
        mapping = {}
        for p in products:
            label = f"#{p.id} — {p.name}"
            choices.append(label)
            mapping[label] = p
        self.all_choices = choices
        self.product_map = mapping
        self.combo["values"] = choices

    def _apply_orders(self, orders):
        for item in self.orders_tree.get_children():
            self.orders_tree.delete(item)
        self.orders = {}
        currency = self.app.settings.currency
        for o in orders:
            iid = self.orders_tree.insert("", "end", values=(
                o.id, o.order_number or "-", o.supplier_name, display_status(o.raw_status),
                format_currency(o.total, currency), format_datetime(o.created_at),
            ))
            self.orders[iid] = o

    def _selected_order(self):
        sel = self.orders_tree.selection()
        if not sel:
            messagebox.showwarning("Validation", "Select a purchase order.")
            return None
        return self.orders.get(sel[0])

    # ---------- cart ----------
    def add_line(self):
        product = self.product_map.get(self.pick.get().strip())
        if product is None:
            messagebox.showwarning("Validation", "Pick a product from the dropdown list.")
            return
        try:
            qty = float(self.qty_e.get().strip())
            price = float(self.price_e.get().strip())
        except ValueError:
            messagebox.showwarning("Validation", "Qty and unit price must be numbers.")
            return
        if qty <= 0 or price <= 0:
            messagebox.showwarning("Validation", "Qty and unit price must be > 0.")
            return

        variant = product.variants[0] if product.variants else None
        self.cart.append({
            "product_id": product.id,
            "variant_id": variant.id if variant else None,
            "product_name": product.name,
            "quantity": qty,
            "unit_price": price,
        })
        self.qty_e.delete(0, tk.END)
        self.price_e.delete(0, tk.END)
        self.refresh_cart_view()
        self.app.toast("Line added.", kind="success", ms=1500)

    def refresh_cart_view(self):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)

        currency = self.app.settings.currency
        for it in self.cart:
            line = it["quantity"] * it["unit_price"]
            self.cart_tree.insert("", "end", values=(
                it["product_name"], format_number(it["quantity"]),
                format_currency(it["unit_price"], currency), format_currency(line, currency),
            ))

        if not self.cart:
            self.total_var.set("Total: -")
            self.approval_hint.set("")
            return
        total = self.app.purchases.preview_total(self.cart)
        self.total_var.set(f"Total: {format_currency(total, currency)}")
        if total > self.app.settings.approval_threshold:
            self.approval_hint.set("Above the approval threshold: will need approval.")
        else:
            self.approval_hint.set("")

    def remove_selected(self):
        sel = self.cart_tree.selection()
        if not sel:
            return
        del self.cart[self.cart_tree.index(sel[0])]
        self.refresh_cart_view()

    def clear_cart(self):
        self.cart = []
        self.refresh_cart_view()

    # ---------- actions ----------
    def create_order(self):
        try:
            self.app.auth.require_action("create_purchase")
            order = self.app.run_action(
                "purchases.create",
                lambda: self.app.purchases.create_order(self.supplier_e.get(), self.email_e.get(), self.cart),
                button=self.create_btn,
            )
        except Exception as e:
            self.app.handle_error("Create order", e, "Failed to create purchase order.")
            return
        if order is None:
            return

        self.app.toast(f"Purchase order #{order.id} created ({display_status(order.raw_status)}).", kind="success")
        self.supplier_e.delete(0, tk.END)
        self.email_e.delete(0, tk.END)
        self.clear_cart()
        self.app.refresh_all(show_toast=False)

    def send_selected(self):
        order = self._selected_order()
        if order is None:
            return
        try:
            self.app.auth.require_action("create_purchase")
            updated = self.app.run_action(
                "purchases.send",
                lambda: self.app.purchases.submit_for_approval(order.id),
                button=self.send_btn,
            )
        except Exception as e:
            self.app.handle_error("Send order", e, "Failed to send purchase order.")
            return
        if updated is None:
            return
        self.app.toast(f"Order #{order.id}: {display_status(updated.raw_status)}.", kind="success")
        self.app.refresh_all(show_toast=False)

    def open_receive(self):
        order = self._selected_order()
        if order is None:
            return
        try:
            order = self.app.purchases.get_order(order.id)
        except Exception as e:
            self.app.handle_error("Load order", e, "Failed to load purchase order.")
            return
        ReceiveDialog(self, order)


class ReceiveDialog:
    def __init__(self, view: PurchasesView, order):
        self.view = view
        self.app = view.app
        self.order = order

        self.win = tk.Toplevel(self.app)
        self.win.title(f"Receive goods — PO #{order.id}")
        self.win.geometry("820x420")

        ttk.Label(
            self.win,
            text=f"Supplier: {order.supplier_name}  |  Status: {display_status(order.raw_status)}",
        ).pack(anchor="w", padx=12, pady=(12, 4))

        cols = ("line", "product", "ordered", "received", "remaining")
        self.tree = ttk.Treeview(self.win, columns=cols, show="headings", height=10)
        heads = {"line": "Line", "product": "Product", "ordered": "Ordered",
                 "received": "Received", "remaining": "Remaining"}
        widths = {"line": 60, "product": 320, "ordered": 100, "received": 100, "remaining": 100}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=12, pady=6)

        bar = ttk.Frame(self.win)
        bar.pack(fill="x", padx=12, pady=(0, 12))
        ttk.Label(bar, text="Qty received").pack(side="left")
        self.qty_e = ttk.Entry(bar, width=10)
        self.qty_e.pack(side="left", padx=10)
        self.receive_btn = ttk.Button(bar, text="Register receipt", command=self.on_receive)
        self.receive_btn.pack(side="left")

        self._fill()

    def _fill(self):
        for item in self.tree.get_children():
            self.tree.delete(item)
        for ln in self.order.lines:
            self.tree.insert("", "end", values=(
                ln.id, ln.product_name or f"#{ln.product_id}", format_number(ln.quantity),
                format_number(ln.received_quantity), format_number(ln.remaining_quantity),
            ))

    def on_receive(self):
        sel = self.tree.selection()
        try:
            if not sel:
                raise ValidationError("Select a line.")
            line_id = int(self.tree.item(sel[0], "values")[0])
            try:
                qty = float(self.qty_e.get().strip())
            except ValueError:
                raise ValidationError("Qty must be a number.")
            self.app.auth.require_action("receive_purchase")
            updated = self.app.run_action(
                "purchases.receive",
                lambda: self.app.purchases.receive_line(self.order, line_id, qty),
                button=self.receive_btn,
            )
        except Exception as e:
            self.app.handle_error("Receive goods", e, "Failed to register receipt.")
            return
        if updated is None:
            return

        try:
            self.order = updated if updated.lines else self.app.purchases.get_order(self.order.id)
        except Exception as e:
            self.app.handle_error("Load order", e, "Failed to reload purchase order.")
            return
        self.qty_e.delete(0, tk.END)
        self._fill()
        self.app.toast("Receipt registered.", kind="success")
        self.view.refresh()
