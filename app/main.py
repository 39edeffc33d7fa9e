"""
Streamlit Frontend for the Finance Tracker

Three pages over one user's ledger:
1. Dashboard: three aggregate buckets, a goal bar and the transaction table
2. Debt Tracker: add debts, mark them paid, delete them
3. Income Tracker: add incomes, edit the monthly goal, delete incomes

DESIGN PRINCIPLES:
1. The page always draws committed state (re-read on every rerun)
2. Clicking a chart bucket and filtering the table are the same action
3. Failed writes show a message; invalid input keeps the form filled
"""

import asyncio
from datetime import date
from typing import Optional

import streamlit as st

from finance_tracker.config import validate_all_settings
from finance_tracker.ledger import (
    BUCKETS,
    bar_figure,
    bucket_for_label,
    pie_figure,
    select_bucket,
)
from finance_tracker.models import (
    AttachmentUpload,
    CategoryFilter,
    Notification,
    NotificationLevel,
    ViewMode,
    ViewState,
    YearMonth,
)
from finance_tracker.orchestrator import LedgerSession, create_app_components
from finance_tracker.validation import EntryValidator, ValidationError


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
    }
    .income { color: #2dd4bf; }
    .outstanding { color: #f87171; }
    .paid { color: #4ade80; }
</style>
""", unsafe_allow_html=True)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def get_session() -> LedgerSession:
    """One ledger session per browser session, refreshed on every rerun."""
    if "ledger_session" not in st.session_state:
        adapter, identity, _ = get_components()
        scope = run_async(identity.sign_in())
        st.session_state.ledger_session = LedgerSession(adapter, scope)
    session = st.session_state.ledger_session
    try:
        run_async(session.refresh(timeout=30))
    except Exception as e:
        st.error(f"Could not load your records: {e}")
    return session


def get_view() -> ViewState:
    if "view" not in st.session_state:
        st.session_state.view = ViewState()
    return st.session_state.view


def set_view(view: ViewState) -> None:
    st.session_state.view = view


def flash(notification: Notification) -> None:
    """Keep a notification across the rerun that follows a write."""
    st.session_state.flash = notification


def show_flash() -> None:
    notification = st.session_state.pop("flash", None)
    if notification is None:
        return
    if notification.level == NotificationLevel.WARNING:
        st.warning(notification.message)
    elif notification.ok:
        st.success(notification.message)
    else:
        st.error(notification.message)


def to_upload(uploaded_file) -> Optional[AttachmentUpload]:
    if uploaded_file is None:
        return None
    return AttachmentUpload(
        filename=uploaded_file.name,
        data=uploaded_file.getvalue(),
        content_type=uploaded_file.type or "application/octet-stream",
    )


def format_money(value) -> str:
    return f"${value:,.2f}"


def format_date(value) -> str:
    return value.strftime("%d %b %Y") if value else "-"


def main():
    """Main application entry point."""
    session = get_session()

    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💳 Debt Tracker", "💵 Income Tracker", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    render_period_picker(session)
    st.sidebar.markdown("---")
    st.sidebar.caption(f"Signed in as `{session.scope.user_id}`")

    show_flash()

    if page == "📊 Dashboard":
        render_dashboard_page(session)
    elif page == "💳 Debt Tracker":
        render_debt_page(session)
    elif page == "💵 Income Tracker":
        render_income_page(session)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_period_picker(session: LedgerSession):
    """View mode plus the reference month, in the sidebar."""
    view = get_view()

    mode = st.sidebar.radio(
        "Show",
        options=[ViewMode.ALL_TIME, ViewMode.MONTHLY],
        index=0 if view.view_mode == ViewMode.ALL_TIME else 1,
        format_func=lambda m: "All time" if m == ViewMode.ALL_TIME else "One month",
    )

    years = session.available_years()
    year_index = years.index(view.reference_month.year) if view.reference_month.year in years else 0
    year = st.sidebar.selectbox("Year", options=years, index=year_index)
    month = st.sidebar.selectbox(
        "Month",
        options=list(range(1, 13)),
        index=view.reference_month.month - 1,
        format_func=lambda m: MONTH_NAMES[m - 1],
    )

    updated = view.model_copy(update={
        "view_mode": mode,
        "reference_month": YearMonth(year=year, month=month),
    })
    if updated != view:
        set_view(updated)


def render_dashboard_page(session: LedgerSession):
    """Render the dashboard page."""
    st.title("📊 Dashboard")
    view = get_view()
    projection = session.dashboard(view)

    col1, col2, col3 = st.columns(3)
    for column, bucket in zip((col1, col2, col3), projection.buckets):
        with column:
            st.markdown(f"**{bucket.label}**")
            st.markdown(
                f'<div class="big-number {bucket.key.value}">{format_money(bucket.value)}</div>',
                unsafe_allow_html=True,
            )
            label = "✖ Clear filter" if bucket.active else "Filter"
            if st.button(label, key=f"filter_{bucket.key.value}"):
                set_view(select_bucket(view, bucket.key))
                st.rerun()

    st.markdown("---")

    chart_type = st.radio(
        "Chart type",
        options=["Bar", "Pie"],
        horizontal=True,
        key="chart_type",
        label_visibility="collapsed",
    )
    if chart_type == "Pie":
        # Pie slices aren't selectable; the filter buttons above do the filtering
        st.session_state.chart_selection = ()
        st.plotly_chart(pie_figure(projection.buckets), use_container_width=True)
    else:
        event = st.plotly_chart(
            bar_figure(projection.buckets),
            use_container_width=True,
            on_select="rerun",
            selection_mode="points",
            key="ledger_chart",
        )
        handle_chart_selection(view, event)

    st.markdown(f"**Income this month:** {format_money(projection.monthly_income)}")
    st.progress(
        int(projection.goal_progress),
        text=f"{projection.goal_progress:.0f}% of the monthly goal",
    )

    st.markdown("---")
    heading = "All transactions"
    if view.category_filter != CategoryFilter.ALL:
        heading = f"{BUCKETS[view.category_filter][0]} transactions"
    st.subheader(heading)

    if not projection.rows:
        st.info("No transactions for this period yet.")
        return

    st.dataframe(
        [
            {
                "": "▶" if row.highlighted else "",
                "Type": row.type_label,
                "Name": row.name,
                "Amount": float(row.amount),
                "Date": format_date(row.date),
                "Status": "" if row.paid is None else ("Paid" if row.paid else "Outstanding"),
                "Receipt": row.image_url or "",
            }
            for row in projection.rows
        ],
        use_container_width=True,
        hide_index=True,
        column_config={
            "Amount": st.column_config.NumberColumn(format="$%.2f"),
            "Receipt": st.column_config.LinkColumn(display_text="View"),
        },
    )


def handle_chart_selection(view: ViewState, event) -> None:
    """
    Turn a chart click into a view change.

    Plotly keeps the selection across reruns, so only a changed selection
    counts as a new click. An empty selection is a click on empty space.
    """
    points = []
    if event and event.selection:
        points = event.selection.get("points", [])

    labels = tuple(point.get("x") or point.get("label") for point in points)
    if labels == st.session_state.get("chart_selection", ()):
        return
    st.session_state.chart_selection = labels

    key = bucket_for_label(labels[0]) if labels else None
    set_view(select_bucket(view, key))
    st.rerun()


def render_entry_form(session: LedgerSession, kind_label: str, add):
    """Shared add form for debts and incomes."""
    validator = EntryValidator()
    with st.form(f"add_{kind_label.lower()}", clear_on_submit=False):
        col1, col2, col3 = st.columns([3, 2, 2])
        with col1:
            name = st.text_input(
                "Name *",
                help="Who the money is owed to" if kind_label == "Debt" else "Where the money came from",
            )
        with col2:
            amount = st.text_input("Amount *", placeholder="e.g. 250.00")
        with col3:
            entry_date = st.date_input("Date", value=date.today())
        receipt = st.file_uploader(
            "Receipt (optional)",
            type=["jpg", "jpeg", "png", "webp"],
            key=f"receipt_{kind_label.lower()}",
        )
        submitted = st.form_submit_button(f"➕ Add {kind_label}", type="primary")

    if submitted:
        try:
            with st.spinner("Saving..."):
                notification = run_async(add(name, amount, entry_date, to_upload(receipt)))
        except ValidationError as e:
            st.error(validator.get_user_friendly_summary(e))
            return
        flash(notification)
        st.rerun()


def render_debt_page(session: LedgerSession):
    """Render the debt tracker page."""
    st.title("💳 Debt Tracker")
    view = get_view()

    render_entry_form(session, "Debt", session.add_debt)

    summary = session.debt_tracker(view)
    col1, col2 = st.columns(2)
    col1.metric("Debts shown", format_money(summary.displayed_total))
    col2.metric("Outstanding (all time)", format_money(summary.outstanding_total))

    st.markdown("---")
    if not summary.debts:
        st.info("No debts for this period.")
        return

    for debt in summary.debts:
        col1, col2, col3, col4, col5 = st.columns([3, 2, 2, 2, 1])
        col1.markdown(f"**{debt.name}**")
        col2.markdown(format_money(debt.amount))
        col3.markdown(format_date(debt.date))
        with col4:
            paid = st.toggle("Paid", value=debt.paid, key=f"paid_{debt.id}")
            if paid != debt.paid:
                flash(run_async(session.set_debt_paid(debt.id, paid)))
                st.rerun()
        with col5:
            if st.button("🗑️", key=f"delete_debt_{debt.id}", help="Delete this debt"):
                flash(run_async(session.delete_debt(debt.id)))
                st.rerun()
        if debt.image_url:
            with st.expander("📷 Receipt"):
                st.image(debt.image_url, width=300)


def render_income_page(session: LedgerSession):
    """Render the income tracker page."""
    st.title("💵 Income Tracker")
    view = get_view()

    summary = session.income_tracker(view)
    validator = EntryValidator()

    st.markdown(
        f"**{str(view.reference_month)}:** {format_money(summary.monthly_total)} "
        f"of {format_money(summary.goal)}"
    )
    st.progress(int(summary.goal_progress), text=f"{summary.goal_progress:.0f}%")

    with st.expander("🎯 Edit monthly goal"):
        with st.form("goal_form"):
            goal = st.text_input("Monthly income goal", value=str(summary.goal))
            if st.form_submit_button("Save goal"):
                try:
                    flash(run_async(session.update_goal(goal)))
                    st.rerun()
                except ValidationError as e:
                    st.error(validator.get_user_friendly_summary(e))

    render_entry_form(session, "Income", session.add_income)

    st.metric("Income shown", format_money(summary.displayed_total))
    st.markdown("---")
    if not summary.incomes:
        st.info("No income for this period.")
        return

    for income in summary.incomes:
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        col1.markdown(f"**{income.name}**")
        col2.markdown(format_money(income.amount))
        col3.markdown(format_date(income.date))
        with col4:
            if st.button("🗑️", key=f"delete_income_{income.id}", help="Delete this income"):
                flash(run_async(session.delete_income(income.id)))
                st.rerun()
        if income.image_url:
            with st.expander("📷 Receipt"):
                st.image(income.image_url, width=300)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Cloudinary (Receipts)", "cloudinary"),
        ("Google Sheets (Storage)", "google_sheets"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}. Using in-memory storage.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your credentials. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
