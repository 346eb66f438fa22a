from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Optional

from backoffice.domain.status import status_label


def _entry(parent, label: str, row: int, show: Optional[str] = None) -> ttk.Entry:
    ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
    e = ttk.Entry(parent, width=30, show=show) if show else ttk.Entry(parent, width=30)
    e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
    return e


class RegisterDialog:
    """Self-service account creation; a successful register signs the user in."""

    def __init__(
        self,
        app,
        parent: tk.Misc,
        on_done: Callable[[], None],
        on_cancel: Optional[Callable[[], None]] = None,
    ):
        self.app = app
        self.on_done = on_done
        self.on_cancel = on_cancel
        self.win = tk.Toplevel(parent)
        self.win.title("Create account")
        self.win.resizable(False, False)
        self.win.transient(parent)
        self.win.grab_set()
        self.win.protocol("WM_DELETE_WINDOW", self.cancel)

        box = ttk.Frame(self.win, padding=12)
        box.pack(fill="both", expand=True)

        self.name_e = _entry(box, "Name", 0)
        self.email_e = _entry(box, "Email", 1)
        self.password_e = _entry(box, "Password", 2, show="*")
        self.confirm_e = _entry(box, "Confirm", 3, show="*")

        self.register_btn = ttk.Button(box, text="Create account", style="Big.TButton", command=self.on_register)
        self.register_btn.grid(row=4, column=0, columnspan=2, sticky="ew", padx=8, pady=(10, 0))
        self.name_e.focus_set()

    def cancel(self):
        self.win.grab_release()
        self.win.destroy()
        if self.on_cancel:
            self.on_cancel()

    def on_register(self):
        def work():
            return self.app.auth.register(
                self.name_e.get(), self.email_e.get(), self.password_e.get(), self.confirm_e.get()
            )

        try:
            self.app.run_action("register", work, button=self.register_btn)
        except Exception as e:
            self.app.handle_error("Create account", e, "Account was not created.")
            return

        if self.app.session.is_authenticated:
            self.win.grab_release()
            self.win.destroy()
            self.app.toast("Account created.", kind="success")
            self.on_done()


class ProfileDialog:
    def __init__(self, app):
        self.app = app
        user = app.session.user

        self.win = tk.Toplevel(app)
        self.win.title("My profile")
        self.win.resizable(False, False)
        self.win.transient(app)

        info = ttk.LabelFrame(self.win, text="Profile")
        info.pack(fill="x", padx=10, pady=10)
        self.name_e = _entry(info, "Name", 0)
        self.email_e = _entry(info, "Email", 1)
        ttk.Label(info, text="Role").grid(row=2, column=0, sticky="w", padx=8, pady=4)
        ttk.Label(info, text=status_label(user.role) if user else "-").grid(row=2, column=1, sticky="w", padx=8, pady=4)
        self.save_btn = ttk.Button(info, text="Save profile", command=self.on_save)
        self.save_btn.grid(row=3, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))

        pw = ttk.LabelFrame(self.win, text="Change password")
        pw.pack(fill="x", padx=10, pady=(0, 10))
        self.current_e = _entry(pw, "Current", 0, show="*")
        self.new_e = _entry(pw, "New", 1, show="*")
        self.confirm_e = _entry(pw, "Confirm", 2, show="*")
        self.password_btn = ttk.Button(pw, text="Change password", command=self.on_change_password)
        self.password_btn.grid(row=3, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))

        if user:
            self.name_e.insert(0, user.name or "")
            self.email_e.insert(0, user.email or "")

    def on_save(self):
        try:
            user = self.app.run_action(
                "profile.save",
                lambda: self.app.auth.update_profile(self.name_e.get(), self.email_e.get()),
                button=self.save_btn,
            )
        except Exception as e:
            self.app.handle_error("Profile", e, "Profile was not saved.")
            return
        if user is None:
            return
        self.app.on_user_changed()
        self.app.toast("Profile updated.", kind="success")

    def on_change_password(self):
        def work():
            self.app.auth.change_password(self.current_e.get(), self.new_e.get(), self.confirm_e.get())
            return True

        try:
            done = self.app.run_action("profile.password", work, button=self.password_btn)
        except Exception as e:
            self.app.handle_error("Change password", e, "Password was not changed.")
            return
        if not done:
            return
        for e in (self.current_e, self.new_e, self.confirm_e):
            e.delete(0, tk.END)
        messagebox.showinfo("Change password", "Password changed.", parent=self.win)
