from __future__ import annotations

import logging
import queue
import threading
import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable

from backoffice.application.actions import ActionInProgress
from backoffice.domain.errors import (
    ApiError,
    AppError,
    AuthorizationError,
    RetriesExhaustedError,
    SessionExpiredError,
    ValidationError,
)
from backoffice.domain.formatters import format_currency
from backoffice.domain.status import status_label
from backoffice.ui.dialogs import ProfileDialog, RegisterDialog
from backoffice.ui.views.approvals_view import ApprovalsView
from backoffice.ui.views.products_view import ProductsView
from backoffice.ui.views.purchases_view import PurchasesView
from backoffice.ui.views.reports_view import ReportsView
from backoffice.ui.views.sales_view import SalesView
from backoffice.ui.views.users_view import UsersView

log = logging.getLogger(__name__)


class LoginDialog:
    def __init__(self, app: "App"):
        self.app = app
        self.win = tk.Toplevel(app)
        self.win.title("Sign in")
        self.win.resizable(False, False)
        self.win.transient(app)
        self.win.grab_set()
        self.win.protocol("WM_DELETE_WINDOW", app.destroy)

        box = ttk.Frame(self.win, padding=16)
        box.pack(fill="both", expand=True)

        ttk.Label(box, text="Back-office", style="Title.TLabel").grid(row=0, column=0, columnspan=2, pady=(0, 10))
        ttk.Label(box, text="Email").grid(row=1, column=0, sticky="w", pady=4)
        self.email_e = ttk.Entry(box, width=32)
        self.email_e.grid(row=1, column=1, pady=4)
        ttk.Label(box, text="Password").grid(row=2, column=0, sticky="w", pady=4)
        self.password_e = ttk.Entry(box, width=32, show="*")
        self.password_e.grid(row=2, column=1, pady=4)

        self.login_btn = ttk.Button(box, text="Sign in", style="Big.TButton", command=self.on_login)
        self.login_btn.grid(row=3, column=0, columnspan=2, sticky="ew", pady=(10, 0))
        ttk.Button(box, text="Create an account", command=self.on_register)\
            .grid(row=4, column=0, columnspan=2, sticky="ew", pady=(6, 0))

        for e in (self.email_e, self.password_e):
            e.bind("<Return>", lambda _e: self.on_login())
        self.email_e.focus_set()

    def exists(self) -> bool:
        return bool(self.win.winfo_exists())

    def focus(self):
        self.win.lift()
        self.email_e.focus_set()

    def close(self):
        self.win.grab_release()
        self.win.destroy()

    def on_register(self):
        self.win.grab_release()
        RegisterDialog(self.app, parent=self.win, on_done=self._registered, on_cancel=self.win.grab_set)

    def _registered(self):
        self.close()
        self.app.on_signed_in()

    def on_login(self):
        def work():
            self.app.auth.login(self.email_e.get(), self.password_e.get())

        try:
            self.app.run_action("login", work, button=self.login_btn)
        except AuthorizationError as e:
            messagebox.showwarning("Sign in", str(e), parent=self.win)
            return
        except Exception as e:
            self.app.handle_error("Sign in", e, "Sign in failed.")
            return

        if self.app.session.is_authenticated:
            self.close()
            self.app.on_signed_in()


class App(tk.Tk):
    def __init__(self, container, exports_dir: str, logs_dir: str):
        super().__init__()
        self.title("Back-office Admin")
        self.geometry("1280x760")
        self.minsize(1120, 640)

        self.container = container
        self.settings = container.settings
        self.session = container.session
        self.auth = container.auth
        self.purchases = container.purchases
        self.approvals = container.approvals
        self.sales = container.sales
        self.products = container.products
        self.users = container.users
        self.reporting = container.reporting
        self.actions = container.actions
        self.responses = container.responses

        self.exports_dir = exports_dir
        self.logs_dir = logs_dir

        self.user_var = tk.StringVar(value="")
        self.status_var = tk.StringVar(value="")
        self._toast_after_id = None
        # (view, ticket, callback); ticket None means "always run"
        self._results: "queue.Queue[tuple[str, int | None, Callable[[], None]]]" = queue.Queue()
        self._buttons: dict[str, ttk.Button] = {}
        self._login_dialog: LoginDialog | None = None

        # clear() may fire on a loader thread when a token refresh fails
        self.session.on_clear(lambda: self.call_soon(self.on_signed_out))

        self._build_styles()
        self._build_topbar()

        main = ttk.Frame(self)
        main.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.sidebar = ttk.Frame(main)
        self.sidebar.pack(side="left", fill="y", padx=(0, 10))

        self.content = ttk.Frame(main)
        self.content.pack(side="right", fill="both", expand=True)

        self.nb = ttk.Notebook(self.content, style="Side.TNotebook")
        self.nb.pack(fill="both", expand=True)

        # Views (tabs hidden)
        self.purchases_view = PurchasesView(self.nb, self)
        self.approvals_view = ApprovalsView(self.nb, self)
        self.sales_view = SalesView(self.nb, self)
        self.products_view = ProductsView(self.nb, self)
        self.users_view = UsersView(self.nb, self)
        self.reports_view = ReportsView(self.nb, self)

        self._build_sidebar()
        self._build_status_bar()

        self.after(100, self._poll_results)

        if self.session.is_authenticated:
            self.after(0, self.on_signed_in)
        else:
            self.after(0, self.show_login)

    def _build_styles(self):
        style = ttk.Style(self)
        style.layout("Side.TNotebook.Tab", [])
        style.configure("Side.TNotebook", tabmargins=0)
        style.configure("Big.TButton", padding=(14, 10))
        style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
        style.configure("KPI.TLabel", font=("Segoe UI", 10))
        style.configure("KPIValue.TLabel", font=("Segoe UI", 11, "bold"))

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, text="Back-office Admin", style="Title.TLabel").pack(side="left")
        ttk.Button(top, text="Sign out", command=self.logout).pack(side="right")
        ttk.Button(top, text="Profile", command=self.show_profile).pack(side="right", padx=(0, 6))
        ttk.Label(top, textvariable=self.user_var).pack(side="right", padx=10)

    def _build_sidebar(self):
        box = ttk.LabelFrame(self.sidebar, text="Navigation")
        box.pack(fill="x", pady=(0, 10))

        # (label, view, permission)
        self._nav = [
            ("🧾 Purchases", self.purchases_view, "create_purchase"),
            ("✅ Approvals", self.approvals_view, "decide_approval"),
            ("🛒 Sales", self.sales_view, "create_sale"),
            ("📦 Products", self.products_view, "manage_products"),
            ("👥 Users", self.users_view, "manage_users"),
            ("📊 Reports", self.reports_view, "view_reports"),
        ]
        self._nav_buttons: list[tuple[ttk.Button, str]] = []
        for label, view, action in self._nav:
            btn = ttk.Button(box, text=label, style="Big.TButton", command=lambda v=view: self.show_view(v))
            btn.pack(fill="x", padx=10, pady=(6, 0))
            self._nav_buttons.append((btn, action))

        ttk.Button(box, text="🔄 Refresh", style="Big.TButton", command=self.refresh_all)\
            .pack(fill="x", padx=10, pady=(6, 10))

        kpi = ttk.LabelFrame(self.sidebar, text="Dashboard")
        kpi.pack(fill="x")

        self.k_sales = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_orders = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_products = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_approvals = ttk.Label(kpi, text="-", style="KPIValue.TLabel")

        labels = ["Sales total", "Open purchases", "Products", "Pending approvals"]
        widgets = [self.k_sales, self.k_orders, self.k_products, self.k_approvals]
        for i, (lab, w) in enumerate(zip(labels, widgets)):
            ttk.Label(kpi, text=lab, style="KPI.TLabel").grid(
                row=i, column=0, sticky="w", padx=10, pady=(8 if i == 0 else 2, 2)
            )
            w.grid(row=i, column=1, sticky="e", padx=10, pady=(8 if i == 0 else 2, 2))

        kpi.columnconfigure(0, weight=1)
        kpi.columnconfigure(1, weight=1)

        recent = ttk.LabelFrame(self.sidebar, text="Recent activity")
        recent.pack(fill="both", expand=True, pady=(10, 0))
        self.recent_list = tk.Listbox(recent, height=10)
        self.recent_list.pack(fill="both", expand=True, padx=10, pady=10)

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"API: {self.settings.base_url}  |  Logs: {self.logs_dir}").pack(side="right")

    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            self.after_cancel(self._toast_after_id)
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    # ---------- session ----------
    def show_login(self):
        if self._login_dialog is not None and self._login_dialog.exists():
            self._login_dialog.focus()
            return
        self._login_dialog = LoginDialog(self)

    def show_profile(self):
        if not self.session.is_authenticated:
            return
        ProfileDialog(self)

    def on_signed_in(self):
        self._login_dialog = None
        self.update_user_label()
        self.apply_permissions()
        self.refresh_all(show_toast=False)
        # the stored user may be stale (role changed by an admin)
        self.load_async("session.me", self.auth.current_user, lambda _user: self.on_user_changed())
        self.toast("Ready.", kind="info", ms=1200)

    def on_user_changed(self):
        self.update_user_label()
        self.apply_permissions()

    def update_user_label(self):
        user = self.session.user
        role = status_label(user.role) if user else "-"
        self.user_var.set(f"{self.session.actor_name} ({role})" if user else "")

    def on_signed_out(self):
        self.user_var.set("")
        self.apply_permissions()
        self.show_login()

    def logout(self):
        if messagebox.askyesno("Sign out", "Sign out of the back-office?"):
            self.auth.logout()

    def can(self, action: str) -> bool:
        return self.auth.can(action)

    def apply_permissions(self):
        for btn, action in self._nav_buttons:
            btn.state(["!disabled"] if self.can(action) else ["disabled"])

    def show_view(self, view):
        self.nb.select(view.frame)
        view.refresh()

    # ---------- actions ----------
    def register_button(self, key: str, button: ttk.Button) -> None:
        self._buttons[key] = button

    def _set_busy(self, key: str, busy: bool) -> None:
        button = self._buttons.get(key)
        if button is not None:
            button.state(["disabled"] if busy else ["!disabled"])
            button.update_idletasks()

    def run_action(self, key: str, fn: Callable[[], object], button: ttk.Button | None = None):
        """Run a mutating call with its control disabled; a second click while it runs is ignored."""
        if button is not None:
            self.register_button(key, button)
        try:
            with self.actions.hold(key):
                self._set_busy(key, True)
                try:
                    return fn()
                finally:
                    self._set_busy(key, False)
        except ActionInProgress:
            self.toast("Already running, please wait.", kind="warn", ms=1500)
            return None

    def load_async(self, view: str, fetch: Callable[[], object], apply: Callable[[object], None]) -> None:
        """Fetch off the UI thread; only the latest request per view gets applied."""
        ticket = self.responses.begin(view)

        def worker():
            try:
                result = fetch()
            except Exception as e:
                log.exception("load_failed view=%s", view)
                self._results.put((view, ticket, lambda err=e: self.handle_error("Load failed", err, f"{view}: load failed.")))
                return
            self._results.put((view, ticket, lambda: apply(result)))

        threading.Thread(target=worker, daemon=True).start()

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Thread-safe: ``callback`` runs on the Tk thread at the next poll."""
        self._results.put(("app", None, callback))

    def _poll_results(self):
        while True:
            try:
                view, ticket, callback = self._results.get_nowait()
            except queue.Empty:
                break
            if ticket is None:
                callback()
                continue
            if not self.responses.deliver(view, ticket, callback):
                log.info("stale_response_dropped view=%s ticket=%s", view, ticket)
        self.after(100, self._poll_results)

    def handle_error(self, title: str, exc: Exception, toast_msg: str):
        if isinstance(exc, SessionExpiredError):
            self.toast("Session expired. Please sign in again.", kind="warn")
            return
        if isinstance(exc, ValidationError):
            messagebox.showwarning("Validation", str(exc))
            self.toast(toast_msg, kind="warn")
            return
        if isinstance(exc, AuthorizationError):
            messagebox.showwarning("Permission", str(exc))
            self.toast(toast_msg, kind="warn")
            return
        if isinstance(exc, (ApiError, RetriesExhaustedError, AppError)):
            log.warning("%s: %s", title, exc)
            messagebox.showerror(title, str(exc))
            self.toast(toast_msg, kind="error")
            return
        log.exception("%s: unexpected error", title, exc_info=exc)
        messagebox.showerror(title, f"Unexpected error: {exc}")
        self.toast(toast_msg, kind="error")

    # ---------- refresh ----------
    def refresh_all(self, show_toast: bool = True):
        if not self.session.is_authenticated:
            return
        for _label, view, action in self._nav:
            if self.can(action):
                view.refresh()
        self.refresh_dashboard()
        if show_toast:
            self.toast("Refreshed.", kind="info", ms=1200)

    def refresh_dashboard(self):
        self.load_async("dashboard", self.reporting.dashboard_summary, self._apply_dashboard)

    def _apply_dashboard(self, summary):
        currency = self.settings.currency
        self.k_sales.config(text=format_currency(summary.sales_total, currency))
        self.k_orders.config(text=str(summary.pending_purchases))
        self.k_products.config(text=str(summary.product_count))
        self.k_approvals.config(text=str(summary.pending_approvals))

        self.recent_list.delete(0, tk.END)
        for s in summary.recent_sales:
            self.recent_list.insert(tk.END, f"Sale #{s.id}  {s.customer.name}  {format_currency(s.total, currency)}")
        for o in summary.recent_orders:
            self.recent_list.insert(tk.END, f"PO #{o.id}  {o.supplier_name}  {status_label(o.status)}")
