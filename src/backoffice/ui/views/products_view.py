from __future__ import annotations

import base64
import tkinter as tk
from tkinter import ttk, messagebox, filedialog
import logging

from backoffice.domain.formatters import format_currency, format_number
from backoffice.domain.status import ProductStatus, status_label

log = logging.getLogger(__name__)


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Products")

        self.rows: dict[str, object] = {}
        self.photo: str | None = None

        tab = self.frame
        style = ttk.Style(self.frame)
        style.configure("ProductsCompact.Treeview", rowheight=24, font=("Segoe UI", 9))
        style.configure("ProductsCompact.Treeview.Heading", font=("Segoe UI", 9, "bold"))

        left = ttk.LabelFrame(tab, text="Product", width=280)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        right = ttk.LabelFrame(tab, text="Products list")
        right.pack(side="right", fill="both", expand=True, pady=8)

        self.p_name = self._entry(left, "Name", 0)
        self.p_price = self._entry(left, "Default price", 1)
        self.p_category = self._entry(left, "Category", 2)
        self.p_description = self._entry(left, "Description", 3)

        ttk.Label(left, text="Status").grid(row=4, column=0, sticky="w", padx=8, pady=4)
        self.p_status = tk.StringVar(value=ProductStatus.ACTIVO.value)
        ttk.Combobox(
            left, textvariable=self.p_status, values=[s.value for s in ProductStatus], state="readonly", width=14
        ).grid(row=4, column=1, sticky="ew", padx=8, pady=4)

        ttk.Button(left, text="Photo…", command=self.pick_photo).grid(row=5, column=0, columnspan=2, sticky="ew", padx=8)

        btns = ttk.Frame(left)
        btns.grid(row=6, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        for i in range(4):
            btns.columnconfigure(i, weight=1)

        self.add_btn = ttk.Button(btns, text="Add", command=self.on_add_product)
        self.add_btn.grid(row=0, column=0, sticky="ew", padx=(0, 4))
        self.save_btn = ttk.Button(btns, text="Save", command=self.on_update_product)
        self.save_btn.grid(row=0, column=1, sticky="ew", padx=4)
        self.delete_btn = ttk.Button(btns, text="Delete", command=self.on_delete_product)
        self.delete_btn.grid(row=0, column=2, sticky="ew", padx=4)
        ttk.Button(btns, text="Clear", command=self.clear_form).grid(row=0, column=3, sticky="ew", padx=(4, 0))

        tree_wrap = ttk.Frame(right)
        tree_wrap.pack(fill="both", expand=True, padx=6, pady=6)

        cols = ("id", "name", "category", "status", "price", "variants", "stock")
        self.tree = ttk.Treeview(tree_wrap, columns=cols, show="headings", height=20, style="ProductsCompact.Treeview")
        heads = {
            "id": "ID", "name": "Name", "category": "Category", "status": "Status",
            "price": "Default price", "variants": "Variants", "stock": "Stock",
        }
        widths = {"id": 48, "name": 280, "category": 120, "status": 90, "price": 120, "variants": 70, "stock": 80}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")

        self.tree.tag_configure("low", background="#ffdddd")
        self.tree.bind("<<TreeviewSelect>>", self.on_select)

        vsb = ttk.Scrollbar(tree_wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        tree_wrap.columnconfigure(0, weight=1)
        tree_wrap.rowconfigure(0, weight=1)

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=18)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    def _form(self) -> dict:
        return {
            "name": self.p_name.get(),
            "default_price": self.p_price.get().strip() or 0,
            "category": self.p_category.get(),
            "description": self.p_description.get(),
            "status": self.p_status.get(),
            "photo": self.photo,
        }

    def _selected(self):
        sel = self.tree.selection()
        return self.rows.get(sel[0]) if sel else None

    def pick_photo(self):
        path = filedialog.askopenfilename(title="Select photo", filetypes=[("Images", "*.png *.jpg *.jpeg")])
        if not path:
            return
        with open(path, "rb") as fh:
            self.photo = base64.b64encode(fh.read()).decode("ascii")
        self.app.toast("Photo attached.", kind="info", ms=1500)

    def on_add_product(self):
        try:
            self.app.auth.require_action("manage_products")
            product = self.app.run_action(
                "products.add", lambda: self.app.products.create_product(**self._form()), button=self.add_btn
            )
        except Exception as e:
            self.app.handle_error("Error", e, "Failed to add product.")
            return
        if product is None:
            return
        self.app.toast(f"Product added (ID {product.id}).", kind="success")
        self.clear_form()
        self.app.refresh_all(show_toast=False)

    def on_update_product(self):
        product = self._selected()
        if product is None:
            messagebox.showwarning("Validation", "Select a product.")
            return
        try:
            self.app.auth.require_action("manage_products")
            saved = self.app.run_action(
                "products.save",
                lambda: self.app.products.update_product(product.id, **self._form()),
                button=self.save_btn,
            )
        except Exception as e:
            self.app.handle_error("Error", e, "Failed to update product.")
            return
        if saved is None:
            return
        self.app.toast("Product saved.", kind="success")
        self.refresh()

    def on_delete_product(self):
        if self.app.actions.is_running("products.delete"):
            return
        product = self._selected()
        if product is None:
            messagebox.showwarning("Validation", "Select a product.")
            return

        confirmed = messagebox.askyesno(
            "Confirm delete",
            f"Delete product '{product.name}' (ID {product.id})?",
            parent=self.frame,
        )
        if not confirmed:
            return
        try:
            self.app.auth.require_action("manage_products")
            self.app.run_action(
                "products.delete", lambda: self.app.products.delete_product(product.id), button=self.delete_btn
            )
        except Exception as e:
            self.app.handle_error("Delete product", e, "Failed to delete product.")
            return
        self.app.toast("Product deleted.", kind="success")
        self.app.refresh_all(show_toast=False)

    def on_select(self, _evt=None):
        product = self._selected()
        if product is None:
            return
        self.clear_form()
        self.p_name.insert(0, product.name)
        self.p_price.insert(0, f"{product.default_price:g}")
        self.p_category.insert(0, product.category or "")
        self.p_description.insert(0, product.description or "")
        self.p_status.set(getattr(product.status, "value", ProductStatus.ACTIVO.value))
        self.photo = product.photo

    def clear_form(self):
        for e in (self.p_name, self.p_price, self.p_category, self.p_description):
            e.delete(0, tk.END)
        self.p_status.set(ProductStatus.ACTIVO.value)
        self.photo = None
        self.p_name.focus_set()

    def refresh(self):
        self.app.load_async("products", self.app.products.list_products, self._apply)

    def _apply(self, products):
        for item in self.tree.get_children():
            self.tree.delete(item)
        self.rows = {}

        currency = self.app.settings.currency
        threshold = self.app.settings.low_stock_threshold
        for p in products:
            stock = sum(v.quantity for v in p.variants)
            tag = "low" if p.variants and stock < threshold else ""
            iid = self.tree.insert(
                "", "end",
                values=(
                    p.id, p.name, p.category or "-", status_label(p.status),
                    format_currency(p.default_price, currency), len(p.variants), format_number(stock),
                ),
                tags=(tag,) if tag else (),
            )
            self.rows[iid] = p
