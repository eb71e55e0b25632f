"""FastAPI frontend for GiftBudget.

Students sign in with their name and a class passcode, plan their gift
spending and track weekly spending against the term budget. Teachers sign in
with the admin password to manage passcodes. All state lives in a
:class:`~giftbudget.service.GiftBudget` attached to ``app.state``.
"""

from __future__ import annotations

from decimal import Decimal
from html import escape as html_escape
from typing import Optional, Tuple

from fastapi import APIRouter, FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from ..budgets import gift_field, week_field
from ..config import AppConfig, load_config
from ..exceptions import AdminAuthError, AdmissionError, ValidationError
from ..models import AdmittedSession, StudentBudgetRecord, WeekStatus
from ..money import format_currency, format_percent, plain_amount
from ..service import GiftBudget
from .persistence import SQLModelStore, build_engine, create_db_and_tables

router = APIRouter()

BUDGET_TABS: Tuple[Tuple[str, str], ...] = (
    ("gifts", "🎁 Gifts"),
    ("summary", "📊 Summary"),
    ("weekly", "📅 Weekly"),
)
GROUP_COLORS = {"Family": "#e94560", "Friends": "#4ade80", "Others": "#f59e0b"}
ADMIN_COLUMNS = ("Code", "Max Users", "Used", "Seats Left", "Start", "End", "Status", "Actions")


# ---------------------------------------------------------------------------
# Page helpers
# ---------------------------------------------------------------------------
def base_styles() -> str:
    return """
    <style>
      :root{ --bg:#0d0d1a; --card:#16162b; --muted:#8b8ba7; --accent:#e94560; --good:#4ade80; --text:#f1f1f6; }
      body{ font-family: system-ui,-apple-system,Segoe UI,Roboto,Arial; background:var(--bg); color:var(--text);
        max-width:980px; margin:0 auto; padding:24px 16px; }
      .card{ background:var(--card); border:1px solid #2a2a4e; border-radius:14px; padding:18px; margin-bottom:14px; }
      .muted{ color:var(--muted); }
      .tabs{ display:flex; gap:8px; margin-bottom:14px; }
      .tabs a{ padding:8px 14px; border-radius:10px; color:var(--muted); text-decoration:none; }
      .tabs a.active{ background:var(--accent); color:#fff; }
      table{ width:100%; border-collapse:collapse; }
      th, td{ padding:8px; border-bottom:1px solid #2a2a4e; text-align:left; }
      input{ background:#0d0d1a; border:1px solid #2a2a4e; border-radius:6px; padding:8px 10px; color:#fff; }
      input.num{ width:90px; }
      button{ background:var(--accent); color:#fff; border:none; border-radius:8px; padding:9px 14px; cursor:pointer; }
      .pill{ display:inline-block; padding:3px 8px; border-radius:999px; font-size:12px; font-weight:700; }
      .pill.good{ background:rgba(74,222,128,0.15); color:var(--good); }
      .pill.bad{ background:rgba(233,69,96,0.15); color:var(--accent); }
      .notice{ border-left:4px solid var(--good); }
      .notice.error{ border-left-color:var(--accent); }
      .bar{ height:10px; border-radius:6px; background:#2a2a4e; overflow:hidden; }
      .bar span{ display:block; height:100%; }
    </style>
    """


def frame(title: str, inner: str, notice_seconds: int = 3) -> str:
    dismiss = (
        "<script>setTimeout(function(){document.querySelectorAll('[data-dismiss]')"
        f".forEach(function(el){{el.remove();}});}}, {int(notice_seconds) * 1000});</script>"
    )
    return (
        "<html><head><meta charset='utf-8'><meta name='viewport' content='width=device-width,initial-scale=1'>"
        f"<title>{html_escape(title)}</title>{base_styles()}</head><body>{inner}{dismiss}</body></html>"
    )


def service_for(request: Request) -> GiftBudget:
    return request.app.state.service


def render_page(request: Request, title: str, inner: str, *, status_code: int = 200) -> HTMLResponse:
    seconds = service_for(request).config.notice_seconds
    return HTMLResponse(frame(title, inner, seconds), status_code=status_code)


def set_notice(request: Request, message: str, kind: str = "info") -> None:
    request.session["notice"] = message
    request.session["notice_kind"] = kind


def pop_notice(request: Request) -> Tuple[Optional[str], str]:
    message = request.session.pop("notice", None)
    kind = request.session.pop("notice_kind", "info")
    return message, kind


def notice_html(request: Request) -> str:
    message, kind = pop_notice(request)
    if not message:
        return ""
    css = "card notice error" if kind == "error" else "card notice"
    return f"<div class='{css}' data-dismiss>{html_escape(message)}</div>"


def error_html(message: str) -> str:
    return f"<p style='color:#e94560;'>{html_escape(message)}</p>"


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------
def admin_authed(request: Request) -> bool:
    return bool(request.session.get("admin"))


def require_admin(request: Request) -> Optional[RedirectResponse]:
    if not admin_authed(request):
        return RedirectResponse("/?tab=admin", status_code=302)
    return None


def student_session(request: Request) -> Optional[AdmittedSession]:
    name = request.session.get("student_name")
    code = request.session.get("student_code")
    if not name or not code:
        return None
    return AdmittedSession(name=name, code=code)


def require_student(request: Request) -> Optional[RedirectResponse]:
    if student_session(request) is None:
        return RedirectResponse("/", status_code=302)
    return None


# ---------------------------------------------------------------------------
# Login routes
# ---------------------------------------------------------------------------
def login_page(request: Request, tab: str = "student", error: str = "", name: str = "", code: str = "") -> HTMLResponse:
    selected = "admin" if tab == "admin" else "student"
    tabs = "".join(
        f"<a href='/?tab={key}' class='{'active' if key == selected else ''}'>{label}</a>"
        for key, label in (("student", "👤 Student Login"), ("admin", "⚙ Admin"))
    )
    if selected == "student":
        form = f"""
        <form method='post' action='/student/login'>
          <label>Your name</label><br><input name='name' value='{html_escape(name)}' placeholder='e.g. Sarah Johnson'><br><br>
          <label>Class passcode</label><br><input name='code' value='{html_escape(code)}' placeholder='e.g. CLASS2024'><br><br>
          <button type='submit'>Start Budgeting →</button>
        </form>
        """
    else:
        form = """
        <form method='post' action='/admin/login'>
          <label>Admin password</label><br><input type='password' name='password' placeholder='Enter admin password'><br><br>
          <button type='submit'>Access Admin Panel →</button>
        </form>
        """
    inner = f"""
    <div class='card'>
      <h2>Gift Budget Planner</h2>
      <p class='muted'>Plan a year of presents, then track your spending week by week.</p>
      <div class='tabs'>{tabs}</div>
      {error_html(error) if error else ''}
      {form}
    </div>
    """
    return render_page(request, "Gift Budget · Sign In", inner)


@router.get("/", response_class=HTMLResponse)
def index(request: Request, tab: str = Query("student")):
    if student_session(request) is not None:
        return RedirectResponse("/budget", status_code=302)
    if admin_authed(request):
        return RedirectResponse("/admin", status_code=302)
    return login_page(request, tab)


@router.post("/student/login", response_class=HTMLResponse)
def student_login(request: Request, name: str = Form(""), code: str = Form("")):
    service = service_for(request)
    try:
        admitted = service.admit(name, code)
    except (AdmissionError, ValidationError) as exc:
        return login_page(request, "student", exc.message, name=name, code=code)
    request.session.clear()
    request.session["student_name"] = admitted.name
    request.session["student_code"] = admitted.code
    return RedirectResponse("/budget", status_code=302)


@router.post("/admin/login", response_class=HTMLResponse)
def admin_login(request: Request, password: str = Form("")):
    try:
        service_for(request).verify_admin(password)
    except AdminAuthError as exc:
        return login_page(request, "admin", exc.message)
    request.session.clear()
    request.session["admin"] = True
    return RedirectResponse("/admin", status_code=302)


@router.post("/logout")
@router.post("/admin/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/", status_code=302)


# ---------------------------------------------------------------------------
# Admin routes
# ---------------------------------------------------------------------------
@router.get("/admin", response_class=HTMLResponse)
def admin_home(request: Request):
    if (redirect := require_admin(request)) is not None:
        return redirect
    service = service_for(request)
    registry = service.registry
    codes = registry.list_codes()
    today = registry.today()
    if codes:
        rows = []
        for entry in codes:
            active = registry.is_active(entry, today)
            badge = "<span class='pill good'>ACTIVE</span>" if active else "<span class='pill bad'>INACTIVE</span>"
            code = html_escape(entry.code)
            rows.append(
                f"<tr><td><strong>{code}</strong></td><td>{entry.max_users}</td><td>{entry.used_count}</td>"
                f"<td>{registry.seats_remaining(entry)}</td>"
                f"<td>{html_escape(entry.start_date)}</td><td>{html_escape(entry.end_date)}</td><td>{badge}</td>"
                "<td><form method='post' action='/admin/codes/delete'>"
                f"<input type='hidden' name='code' value='{code}'>"
                "<label><input type='checkbox' name='confirm' value='1'> confirm</label> "
                "<button type='submit'>Delete</button></form></td></tr>"
            )
        table = (
            "<table><thead><tr>"
            + "".join(f"<th>{label}</th>" for label in ADMIN_COLUMNS)
            + "</tr></thead><tbody>"
            + "".join(rows)
            + "</tbody></table>"
        )
    else:
        table = "<p class='muted'>No passcodes yet. Create one above.</p>"
    inner = f"""
    {notice_html(request)}
    <div class='card'>
      <h2>⚙ Admin Panel</h2>
      <form method='post' action='/admin/logout'><button type='submit'>Sign out</button></form>
    </div>
    <div class='card'>
      <h3>Create Passcode</h3>
      <form method='post' action='/admin/codes'>
        <label>Passcode</label> <input name='code' placeholder='e.g. CLASS2024'>
        <label>Max Users</label> <input class='num' type='number' name='max_users' value='{service.config.default_max_users}' min='0'>
        <label>Start Date</label> <input type='date' name='start_date'>
        <label>End Date</label> <input type='date' name='end_date'>
        <button type='submit'>+ Create Code</button>
      </form>
    </div>
    <div class='card'>
      <h3>Passcodes</h3>
      {table}
    </div>
    """
    return render_page(request, "Gift Budget · Admin", inner)


@router.post("/admin/codes")
def admin_create_code(
    request: Request,
    code: str = Form(""),
    max_users: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
):
    if (redirect := require_admin(request)) is not None:
        return redirect
    try:
        service_for(request).create_code(code, max_users, start_date, end_date)
    except (ValidationError, AdmissionError) as exc:
        set_notice(request, exc.message, "error")
    else:
        set_notice(request, "✓ Code created successfully.", "success")
    return RedirectResponse("/admin", status_code=302)


@router.post("/admin/codes/delete")
def admin_delete_code(request: Request, code: str = Form(""), confirm: Optional[str] = Form(None)):
    if (redirect := require_admin(request)) is not None:
        return redirect
    label = code.strip().upper()
    if not confirm:
        set_notice(request, f'Tick "confirm" to delete passcode "{label}".', "error")
        return RedirectResponse("/admin", status_code=302)
    try:
        removed = service_for(request).delete_code(code)
    except AdmissionError as exc:
        set_notice(request, exc.message, "error")
        return RedirectResponse("/admin", status_code=302)
    if removed:
        set_notice(request, f'Deleted passcode "{label}".', "success")
    else:
        set_notice(request, f'Passcode "{label}" was not found.', "error")
    return RedirectResponse("/admin", status_code=302)


# ---------------------------------------------------------------------------
# Student budget routes
# ---------------------------------------------------------------------------
def _money_input(name: str, value: Decimal, *, css: str = "num") -> str:
    return f"<input class='{css}' type='number' step='0.01' min='0' name='{name}' value='{plain_amount(value)}' placeholder='0'>"


def render_gifts_tab(service: GiftBudget, record: StudentBudgetRecord) -> str:
    config = service.config
    calculator = service.calculator
    sections = []
    for category_index, category in enumerate(config.catalog.categories):
        rows = []
        for occasion_index, occasion in enumerate(category.occasions):
            entry = record.gift(category.id, occasion)
            fixed = category.fixed_frequency_for(occasion)
            if fixed is not None:
                times_cell = f"<span class='muted'>{fixed} (fixed)</span>"
            else:
                times_cell = _money_input(gift_field(category_index, occasion_index, "times"), entry.times_per_year)
            annual = calculator.annual_total(record, category, occasion)
            rows.append(
                f"<tr><td>{html_escape(occasion)}</td>"
                f"<td>{_money_input(gift_field(category_index, occasion_index, 'amount'), entry.amount)}</td>"
                f"<td>{_money_input(gift_field(category_index, occasion_index, 'recipients'), entry.recipients)}</td>"
                f"<td>{times_cell}</td>"
                f"<td>{format_currency(annual, config.currency_symbol)}</td></tr>"
            )
        hint = f"<p class='muted'>{html_escape(category.hint)}</p>" if category.hint else ""
        headers = ("Occasion", f"Avg. Amount ({config.currency_symbol})", "Recipients", "Times/year", "Annual Total")
        sections.append(
            f"<div class='card'><h3>{html_escape(category.label)}</h3>{hint}<table><thead><tr>"
            + "".join(f"<th>{html_escape(label)}</th>" for label in headers)
            + "</tr></thead><tbody>"
            + "".join(rows)
            + "</tbody></table></div>"
        )
    return (
        "<form method='post' action='/budget'><input type='hidden' name='tab' value='gifts'>"
        "<div class='card'><h3>Annual Budget</h3>"
        f"<label>How much can you spend on gifts this year? ({config.currency_symbol})</label> "
        f"{_money_input('budget', record.budget, css='')}</div>"
        + "".join(sections)
        + "<button type='submit'>💾 Save My Budget</button></form>"
    )


def render_summary_tab(service: GiftBudget, record: StudentBudgetRecord) -> str:
    symbol = service.config.currency_symbol
    summary = service.summary(record)
    bars = []
    for group, total in summary.group_totals.items():
        share = summary.group_shares[group]
        width = min(max(share, Decimal("0")), Decimal("100"))
        color = GROUP_COLORS.get(group, "#8b8ba7")
        bars.append(
            f"<div style='margin-bottom:10px;'><div>{html_escape(group)}: <strong>{format_currency(total, symbol)}</strong>"
            f" <span class='muted'>({format_percent(share)} of budget)</span></div>"
            f"<div class='bar'><span style='width:{width:.1f}%; background:{color};'></span></div></div>"
        )
    if summary.surplus_percent is not None:
        word = "over" if summary.is_over_budget else "under"
        balance = (
            f"<p>You are <strong>{format_percent(summary.surplus_percent)}</strong> {word} budget.</p>"
        )
    else:
        balance = "<p class='muted'>Enter an annual budget on the Gifts tab to compare.</p>"
    surplus_css = "bad" if summary.is_over_budget else "good"
    breakdown = "".join(
        f"<tr><td>{html_escape(line.category_label)}</td><td>{html_escape(line.occasion)}</td>"
        f"<td>{format_currency(line.annual_total, symbol)}</td></tr>"
        for line in summary.breakdown
    ) or "<tr><td colspan='3' class='muted'>Nothing planned yet.</td></tr>"
    return f"""
    <div class='card'>
      <h3>Where your money goes</h3>
      {''.join(bars)}
      <p>Annual budget: <strong>{format_currency(summary.budget, symbol)}</strong></p>
      <p>Total expenses: <strong>{format_currency(summary.total_expenses, symbol)}</strong></p>
      <p>Surplus: <span class='pill {surplus_css}'>{format_currency(summary.surplus, symbol)}</span></p>
      {balance}
    </div>
    <div class='card'>
      <h3>Detailed breakdown</h3>
      <table><thead><tr><th>Category</th><th>Occasion</th><th>Annual Total</th></tr></thead><tbody>{breakdown}</tbody></table>
    </div>
    """


def render_weekly_tab(service: GiftBudget, record: StudentBudgetRecord) -> str:
    config = service.config
    symbol = config.currency_symbol
    calculator = service.calculator
    weeks = calculator.weeks_in_term(record)
    rows = []
    for row in service.weekly(record):
        if row.week == 0:
            actual_cell = "<span class='muted'>Start</span>"
            status_cell = ""
        else:
            actual_cell = _money_input(week_field(row.week), row.actual)
            good = row.status is WeekStatus.ON_TRACK
            label = "✓ On track" if good else "↑ Overspent"
            status_cell = f"<span class='pill {'good' if good else 'bad'}'>{label}</span>"
        rows.append(
            f"<tr><td>{row.week}</td><td>{actual_cell}</td>"
            f"<td>{format_currency(row.running_remaining, symbol)}</td>"
            f"<td>{format_currency(row.expected_remaining, symbol)}</td><td>{status_cell}</td></tr>"
        )
    stats = (
        ("Term Budget", calculator.term_budget(record)),
        ("Weekly Budget", calculator.weekly_target(record)),
        ("Annual Budget", record.budget),
    )
    stat_html = "".join(
        f"<div class='card' style='flex:1;'><div class='muted'>{label}</div><strong>{format_currency(value, symbol)}</strong></div>"
        for label, value in stats
    )
    headers = ("Week", f"Actual Spend ({symbol})", "Running Remaining", "Expected Remaining", "Status")
    return (
        "<form method='post' action='/budget'><input type='hidden' name='tab' value='weekly'>"
        "<div class='card'><label>Weeks in this term</label> "
        f"<input class='num' type='number' name='weeks_in_term' value='{weeks}' min='1' max='{config.max_weeks_per_term}'></div>"
        f"<div style='display:flex; gap:10px;'>{stat_html}</div>"
        "<div class='card'><table><thead><tr>"
        + "".join(f"<th>{html_escape(label)}</th>" for label in headers)
        + "</tr></thead><tbody>"
        + "".join(rows)
        + "</tbody></table></div><button type='submit'>💾 Save My Budget</button></form>"
    )


@router.get("/budget", response_class=HTMLResponse)
def budget_page(request: Request, tab: str = Query("gifts")):
    if (redirect := require_student(request)) is not None:
        return redirect
    session = student_session(request)
    assert session
    service = service_for(request)
    record = service.load_budget(session)
    selected = tab if tab in {key for key, _ in BUDGET_TABS} else "gifts"
    if selected == "summary":
        body = render_summary_tab(service, record)
    elif selected == "weekly":
        body = render_weekly_tab(service, record)
    else:
        body = render_gifts_tab(service, record)
    nav = "".join(
        f"<a href='/budget?tab={key}' class='{'active' if key == selected else ''}'>{label}</a>"
        for key, label in BUDGET_TABS
    )
    inner = f"""
    {notice_html(request)}
    <div class='card'>
      <h2>Hi {html_escape(session.name)} 👋</h2>
      <p class='muted'>Class passcode {html_escape(session.code)}</p>
      <form method='post' action='/logout'><button type='submit'>Logout</button></form>
    </div>
    <div class='tabs'>{nav}</div>
    {body}
    """
    return render_page(request, "Gift Budget", inner)


@router.post("/budget")
async def save_budget(request: Request):
    if (redirect := require_student(request)) is not None:
        return redirect
    session = student_session(request)
    assert session
    form = await request.form()
    service_for(request).submit_budget(session, form)
    set_notice(request, "✓ Saved!", "success")
    tab = str(form.get("tab") or "gifts")
    if tab not in {key for key, _ in BUDGET_TABS}:
        tab = "gifts"
    return RedirectResponse(f"/budget?tab={tab}", status_code=302)


@router.get("/health")
def health(request: Request) -> JSONResponse:
    return JSONResponse(service_for(request).status())


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(config: Optional[AppConfig] = None, *, service: Optional[GiftBudget] = None) -> FastAPI:
    """Build the FastAPI app; without ``service`` a SQLite-backed one is created."""

    if service is None:
        config = config or load_config()
        engine = build_engine(config.sqlite_file)
        create_db_and_tables(engine)
        service = GiftBudget(config=config, backend=SQLModelStore(engine))
    app = FastAPI(title="Gift Budget")
    app.add_middleware(
        SessionMiddleware,
        secret_key=service.config.session_secret,
        same_site="lax",
        max_age=None,
    )
    app.state.service = service
    app.include_router(router)
    return app


__all__ = [
    "create_app",
    "render_gifts_tab",
    "render_summary_tab",
    "render_weekly_tab",
    "router",
]
