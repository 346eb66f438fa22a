from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox

from backoffice.domain.status import UserRole, status_label


class UsersView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Users")

        self.rows: dict[str, object] = {}
        self.role_var = tk.StringVar(value=UserRole.VENDEDOR.value)
        self._build()

    def _build(self):
        tab = self.frame

        left = ttk.LabelFrame(tab, text="User", width=300)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        self.u_name = self._entry(left, "Name", 0)
        self.u_email = self._entry(left, "Email", 1)
        self.u_password = self._entry(left, "Password", 2, show="*")
        self.u_confirm = self._entry(left, "Confirm", 3, show="*")

        ttk.Label(left, text="Role").grid(row=4, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(
            left, textvariable=self.role_var, values=[r.value for r in UserRole], state="readonly", width=18
        ).grid(row=4, column=1, sticky="ew", padx=8, pady=4)

        btns = ttk.Frame(left)
        btns.grid(row=5, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        btns.columnconfigure(0, weight=1)
        btns.columnconfigure(1, weight=1)
        self.create_btn = ttk.Button(btns, text="Create", command=self.on_create)
        self.create_btn.grid(row=0, column=0, sticky="ew", padx=(0, 4))
        self.save_btn = ttk.Button(btns, text="Save", command=self.on_update)
        self.save_btn.grid(row=0, column=1, sticky="ew", padx=(4, 0))

        right = ttk.LabelFrame(tab, text="Users")
        right.pack(side="right", fill="both", expand=True, pady=8)

        bar = ttk.Frame(right)
        bar.pack(fill="x", padx=6, pady=6)
        self.toggle_btn = ttk.Button(bar, text="Activate / Deactivate", command=self.on_toggle_active)
        self.toggle_btn.pack(side="left")
        self.delete_btn = ttk.Button(bar, text="Delete", command=self.on_delete)
        self.delete_btn.pack(side="left", padx=10)
        ttk.Button(bar, text="Refresh", command=self.refresh).pack(side="left")

        cols = ("id", "name", "email", "role", "active")
        self.tree = ttk.Treeview(right, columns=cols, show="headings", height=20)
        heads = {"id": "ID", "name": "Name", "email": "Email", "role": "Role", "active": "Active"}
        widths = {"id": 48, "name": 220, "email": 260, "role": 160, "active": 70}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.tag_configure("inactive", foreground="#6b7280")
        self.tree.pack(fill="both", expand=True, padx=6, pady=(0, 6))
        self.tree.bind("<<TreeviewSelect>>", self.on_select)

    def _entry(self, parent, label, row, show=None):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=20, show=show) if show else ttk.Entry(parent, width=20)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    def _selected(self):
        sel = self.tree.selection()
        if not sel:
            messagebox.showwarning("Validation", "Select a user.")
            return None
        return self.rows.get(sel[0])

    def refresh(self):
        self.app.load_async("users", self.app.users.list_users, self._apply)

    def _apply(self, users):
        for item in self.tree.get_children():
            self.tree.delete(item)
        self.rows = {}
        for u in users:
            iid = self.tree.insert("", "end", values=(
                u.id, u.name, u.email, status_label(u.role), "yes" if u.active else "no",
            ), tags=() if u.active else ("inactive",))
            self.rows[iid] = u

    def on_select(self, _evt=None):
        sel = self.tree.selection()
        user = self.rows.get(sel[0]) if sel else None
        if user is None:
            return
        for e in (self.u_name, self.u_email, self.u_password, self.u_confirm):
            e.delete(0, tk.END)
        self.u_name.insert(0, user.name)
        self.u_email.insert(0, user.email)
        self.role_var.set(getattr(user.role, "value", UserRole.VENDEDOR.value))

    def _call(self, key: str, fn, button, ok_msg: str, title: str):
        try:
            self.app.auth.require_action("manage_users")
            result = self.app.run_action(key, fn, button=button)
        except Exception as e:
            self.app.handle_error(title, e, f"{title} failed.")
            return None
        self.app.toast(ok_msg, kind="success")
        self.refresh()
        return result

    def on_create(self):
        self._call(
            "users.create",
            lambda: self.app.users.create_user(
                self.u_name.get(), self.u_email.get(), self.u_password.get(), self.u_confirm.get(), self.role_var.get()
            ),
            self.create_btn,
            "User created.",
            "Create user",
        )

    def on_update(self):
        user = self._selected()
        if user is None:
            return
        self._call(
            "users.save",
            lambda: self.app.users.update_user(user.id, self.u_name.get(), self.u_email.get(), self.role_var.get()),
            self.save_btn,
            "User saved.",
            "Update user",
        )

    def on_toggle_active(self):
        user = self._selected()
        if user is None:
            return
        fn = self.app.users.deactivate if user.active else self.app.users.activate
        self._call(
            "users.toggle",
            lambda: fn(user.id),
            self.toggle_btn,
            "User deactivated." if user.active else "User activated.",
            "Update user",
        )

    def on_delete(self):
        user = self._selected()
        if user is None:
            return
        if not messagebox.askyesno("Confirm delete", f"Delete user '{user.name}'?", parent=self.frame):
            return
        self._call("users.delete", lambda: self.app.users.delete_user(user.id), self.delete_btn,
                   "User deleted.", "Delete user")
