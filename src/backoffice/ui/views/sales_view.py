from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from backoffice.domain.formatters import format_currency, format_datetime, format_number
from backoffice.domain.models import Customer
from backoffice.domain.status import status_label

log = logging.getLogger(__name__)


class SalesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Sales")

        self.cart: list[dict] = []
        self.sales: dict[str, object] = {}
        self.sale_pick = tk.StringVar()
        self.sale_total_var = tk.StringVar(value="Total: -")

        self.sale_all_choices: list[str] = []
        self.product_map: dict[str, object] = {}

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Add item to cart")
        top.pack(fill="x", padx=10, pady=10)

        ttk.Label(top, text="Search product").grid(row=0, column=0, padx=10, pady=8, sticky="w")

        self.combo = ttk.Combobox(top, textvariable=self.sale_pick, width=56)
        self.combo.grid(row=0, column=1, padx=10, pady=8, sticky="w")
        self.combo.bind("<KeyRelease>", lambda e: self._filter_combobox(self.sale_pick.get()))

        ttk.Label(top, text="Qty").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.qty_e = ttk.Entry(top, width=10)
        self.qty_e.grid(row=0, column=3, padx=10, pady=8, sticky="w")

        ttk.Button(top, text="Add to cart", style="Big.TButton", command=self.add_to_cart)\
            .grid(row=0, column=4, padx=10, pady=8)

        self.combo.bind("<Return>", lambda _e: self.add_to_cart())
        self.qty_e.bind("<Return>", lambda _e: self.add_to_cart())

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cart_box = ttk.LabelFrame(mid, text="Cart")
        cart_box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("sku", "name", "qty", "unit", "line")
        self.cart_tree = ttk.Treeview(cart_box, columns=cols, show="headings", height=8)
        heads = {"sku": "SKU", "name": "Name", "qty": "Qty", "unit": "Unit price", "line": "Line total"}
        widths = {"sku": 120, "name": 340, "qty": 70, "unit": 130, "line": 130}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        btnrow = ttk.Frame(cart_box)
        btnrow.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btnrow, text="Remove selected", command=self.remove_selected).pack(side="left")
        ttk.Button(btnrow, text="Clear cart", command=self.clear_cart).pack(side="left", padx=10)

        right = ttk.LabelFrame(mid, text="Customer")
        right.pack(side="right", fill="y")

        ttk.Label(right, text="Name").pack(anchor="w", padx=10, pady=(10, 4))
        self.customer_e = ttk.Entry(right, width=34)
        self.customer_e.pack(padx=10)
        ttk.Label(right, text="Email (optional)").pack(anchor="w", padx=10, pady=(10, 4))
        self.email_e = ttk.Entry(right, width=34)
        self.email_e.pack(padx=10)
        ttk.Label(right, text="Phone (optional)").pack(anchor="w", padx=10, pady=(10, 4))
        self.phone_e = ttk.Entry(right, width=34)
        self.phone_e.pack(padx=10)

        ttk.Label(right, textvariable=self.sale_total_var).pack(anchor="w", padx=10, pady=10)

        self.create_btn = ttk.Button(right, text="Create sale", style="Big.TButton", command=self.create_sale)
        self.create_btn.pack(fill="x", padx=10, pady=(0, 10))

        # Sales history
        hist = ttk.LabelFrame(tab, text="Sales (double click to view details)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        top2 = ttk.Frame(hist)
        top2.pack(fill="x", padx=10, pady=8)
        ttk.Label(top2, text="Location").pack(side="left")
        self.location_e = ttk.Entry(top2, width=14)
        self.location_e.insert(0, self.app.settings.default_location)
        self.location_e.pack(side="left", padx=10)
        self.confirm_btn = ttk.Button(top2, text="Confirm", command=self.confirm_selected)
        self.confirm_btn.pack(side="left")
        self.ship_btn = ttk.Button(top2, text="Ship", command=self.ship_selected)
        self.ship_btn.pack(side="left", padx=10)
        ttk.Button(top2, text="Refresh", command=self.refresh).pack(side="left")

        cols = ("id", "dt", "customer", "status", "total", "by")
        self.sales_tree = ttk.Treeview(hist, columns=cols, show="headings", height=8)
        heads = {"id": "Sale ID", "dt": "Date", "customer": "Customer", "status": "Status",
                 "total": "Total", "by": "Created by"}
        widths = {"id": 80, "dt": 150, "customer": 260, "status": 120, "total": 140, "by": 160}
        for c in cols:
            self.sales_tree.heading(c, text=heads[c])
            self.sales_tree.column(c, width=widths[c], anchor="w")
        self.sales_tree.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.sales_tree.bind("<Double-1>", self.open_sale_details)

    def _filter_combobox(self, typed: str):
        typed = typed.strip().lower()
        self.combo["values"] = self.sale_all_choices if not typed else [
            c for c in self.sale_all_choices if typed in c.lower()
        ]

    def refresh(self):
        self.app.load_async("sales.products", self.app.products.list_products, self._apply_products)
        self.app.load_async("sales.history", self.app.sales.list_sales, self._apply_history)
        self.refresh_cart_view()

    def _apply_products(self, products):
        choices = []
        mapping = {}
        for p in products:
            for v in p.variants or ():
                label = f"{v.sku or v.id} — {p.name} {v.name} (stock: {format_number(v.quantity)})"
                choices.append(label)
                mapping[label] = (p, v)
            if not p.variants:
                label = f"#{p.id} — {p.name}"
                choices.append(label)
                mapping[label] = (p, None)
        self.sale_all_choices = choices
        self.product_map = mapping
        self.combo["values"] = choices

    def _apply_history(self, sales):
        for item in self.sales_tree.get_children():
            self.sales_tree.delete(item)
        self.sales = {}
        currency = self.app.settings.currency
        for s in sales:
            iid = self.sales_tree.insert("", "end", values=(
                s.id, format_datetime(s.sale_date), s.customer.name, status_label(s.status),
                format_currency(s.total, currency), s.created_by or "-",
            ))
            self.sales[iid] = s

    def add_to_cart(self):
        picked = self.product_map.get(self.sale_pick.get().strip())
        if picked is None:
            messagebox.showwarning("Validation", "Pick a product from the dropdown list.")
            return
        product, variant = picked

        try:
            qty = float(self.qty_e.get().strip())
        except ValueError:
            messagebox.showwarning("Validation", "Qty must be a number.")
            return
        if qty <= 0:
            messagebox.showwarning("Validation", "Qty must be > 0.")
            return
        if variant is not None and qty > variant.quantity:
            messagebox.showwarning("Stock", f"Not enough stock. Available: {format_number(variant.quantity)}")
            return

        price = variant.price if variant is not None and variant.price else product.default_price
        self.cart.append({
            "product_id": product.id,
            "variant_id": variant.id if variant is not None else None,
            "sku": variant.sku if variant is not None else "",
            "name": product.name,
            "quantity": qty,
            "unit_price": float(price),
        })
        self.refresh_cart_view()
        self.qty_e.delete(0, tk.END)
        self.app.toast("Added to cart.", kind="success", ms=1500)

    def refresh_cart_view(self):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)

        currency = self.app.settings.currency
        total = 0.0
        for it in self.cart:
            line = it["quantity"] * it["unit_price"]
            total += line
            self.cart_tree.insert("", "end", values=(
                it["sku"], it["name"], format_number(it["quantity"]),
                format_currency(it["unit_price"], currency), format_currency(line, currency),
            ))
        self.sale_total_var.set(f"Total: {format_currency(total, currency)}")

    def remove_selected(self):
        sel = self.cart_tree.selection()
        if not sel:
            return
        del self.cart[self.cart_tree.index(sel[0])]
        self.refresh_cart_view()
        self.app.toast("Removed from cart.", kind="info", ms=1500)

    def clear_cart(self):
        self.cart = []
        self.refresh_cart_view()

    def create_sale(self):
        customer = Customer(name=self.customer_e.get(), email=self.email_e.get(), phone=self.phone_e.get())
        try:
            self.app.auth.require_action("create_sale")
            sale = self.app.run_action(
                "sales.create",
                lambda: self.app.sales.create_sale(customer, self.cart),
                button=self.create_btn,
            )
        except Exception as e:
            self.app.handle_error("Sale failed", e, "Sale failed.")
            return
        if sale is None:
            return

        self.app.toast(f"Sale saved (ID {sale.id}).", kind="success")
        for e in (self.customer_e, self.email_e, self.phone_e):
            e.delete(0, tk.END)
        self.clear_cart()
        self.app.refresh_all(show_toast=False)

    def _selected_sale(self):
        sel = self.sales_tree.selection()
        if not sel:
            messagebox.showwarning("Validation", "Select a sale.")
            return None
        return self.sales.get(sel[0])

    def confirm_selected(self):
        self._transition("confirm", self.confirm_btn)

    def ship_selected(self):
        self._transition("ship", self.ship_btn)

    def _transition(self, action: str, button):
        sale = self._selected_sale()
        if sale is None:
            return
        location = self.location_e.get().strip() or None
        call = self.app.sales.confirm if action == "confirm" else self.app.sales.ship
        try:
            self.app.auth.require_action("fulfil_sale")
            updated = self.app.run_action(f"sales.{action}", lambda: call(sale.id, location), button=button)
        except Exception as e:
            self.app.handle_error("Sale", e, f"Failed to {action} sale.")
            return
        if updated is None:
            return
        self.app.toast(f"Sale #{sale.id}: {status_label(updated.status)}.", kind="success")
        self.app.refresh_all(show_toast=False)

    def open_sale_details(self, _evt=None):
        sel = self.sales_tree.selection()
        if not sel:
            return
        try:
            sale = self.app.sales.get_sale(self.sales[sel[0]].id)
        except Exception as e:
            self.app.handle_error("Sale details", e, "Failed to load sale.")
            return

        currency = self.app.settings.currency
        win = tk.Toplevel(self.app)
        win.title(f"Sale Details #{sale.id}")
        win.geometry("900x480")

        h = ttk.LabelFrame(win, text="Header")
        h.pack(fill="x", padx=10, pady=10)

        ttk.Label(h, text=f"Date: {format_datetime(sale.sale_date)}  |  Status: {status_label(sale.status)}")\
            .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Customer: {sale.customer.name}  {sale.customer.email or ''}  {sale.customer.phone or ''}")\
            .pack(anchor="w", padx=10, pady=2)
        ttk.Label(h, text=f"Total: {format_currency(sale.total, currency)}").pack(anchor="w", padx=10, pady=2)

        box = ttk.LabelFrame(win, text="Items")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("sku", "name", "qty", "unit", "line")
        tree = ttk.Treeview(box, columns=cols, show="headings", height=12)
        heads = {"sku": "SKU", "name": "Name", "qty": "Qty", "unit": "Unit price", "line": "Line total"}
        widths = {"sku": 120, "name": 360, "qty": 70, "unit": 130, "line": 130}
        for c in cols:
            tree.heading(c, text=heads[c])
            tree.column(c, width=widths[c], anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=10)

        for it in sale.items:
            tree.insert("", "end", values=(
                it.variant_sku or "", it.product_name or f"#{it.product_id}", format_number(it.quantity),
                format_currency(it.unit_price, currency), format_currency(it.total, currency),
            ))
