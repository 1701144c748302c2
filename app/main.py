"""
Streamlit Frontend for the Debt Ledger (Sổ Nợ)

One page that shows who owes what, plus a settings page.

DESIGN PRINCIPLES:
1. Numbers first: overview cards and the ranking are always visible
2. Changes are hidden behind edit mode
3. One error message at a time, in plain language
4. Every change is re-read from the store before it is shown

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date

import streamlit as st

from debt_ledger.audit import configure_logging
from debt_ledger.config import get_settings, validate_all_settings
from debt_ledger.dashboard import format_day, format_money, format_signed
from debt_ledger.models import TransactionKind, TransactionUpdate
from debt_ledger.orchestrator import EditModeLockedError, LedgerShell, create_app_components
from debt_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Sổ Nợ",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .error-box {
        padding: 16px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .debt {
        color: #dc3545;
        font-weight: bold;
    }
    .payment {
        color: #28a745;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


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
    """Store and audit logger, shared by every session (cached)."""
    configure_logging(get_settings().app.log_level)
    shell, audit_logger = create_app_components()
    return shell.storage, audit_logger


def get_shell() -> LedgerShell:
    """Each browser session owns its own shell state."""
    if "shell" not in st.session_state:
        storage, audit_logger = get_components()
        shell = LedgerShell(storage=storage, audit_logger=audit_logger)
        with st.spinner("Loading..."):
            run_async(shell.initialize())
        st.session_state.shell = shell
    return st.session_state.shell


def guarded(shell: LedgerShell, coro) -> object:
    """Run a shell mutation; a locked edit mode shows a warning instead."""
    try:
        return run_async(coro)
    except EditModeLockedError as e:
        st.warning(str(e))
        return None


def main():
    """Main application entry point."""
    shell = get_shell()

    st.sidebar.title("📒 Sổ Nợ")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Ledger", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    render_edit_mode_controls(shell)

    if st.sidebar.button("🔄 Reload"):
        run_async(shell.initialize())
        st.rerun()

    if page == "📊 Ledger":
        render_ledger_page(shell)
    elif page == "⚙️ Settings":
        render_settings_page(shell)


def render_edit_mode_controls(shell: LedgerShell):
    """PIN unlock in the sidebar."""
    if shell.edit_mode:
        st.sidebar.success("✏️ Edit mode is on")
        if st.sidebar.button("🔒 Lock"):
            shell.lock_edit_mode()
            st.rerun()
        return

    with st.sidebar.form("unlock_form", clear_on_submit=True):
        pin = st.text_input("PIN", type="password")
        if st.form_submit_button("🔓 Unlock edit mode"):
            if run_async(shell.unlock_edit_mode(pin)):
                st.rerun()
            else:
                st.sidebar.error("Wrong PIN")


def render_error(shell: LedgerShell):
    if not shell.error:
        return
    col1, col2 = st.columns([5, 1])
    with col1:
        st.markdown(
            f'<div class="error-box">⚠️ {shell.error}</div>',
            unsafe_allow_html=True,
        )
    with col2:
        if st.button("✖ Dismiss"):
            shell.dismiss_error()
            st.rerun()


def render_ledger_page(shell: LedgerShell):
    """Overview cards, ranking, recent activity and the people panel."""
    symbol = get_settings().app.currency_symbol
    st.title("📒 Sổ Nợ")
    render_error(shell)

    summary = shell.summary()

    # Overview cards
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total debt", format_money(summary.total_debt, symbol))
    col2.metric("People in debt", summary.people_with_debt)
    col3.metric("Average", format_money(summary.average_debt, symbol))
    col4.metric("Highest", format_money(summary.max_debt, symbol))

    st.markdown("---")
    left, right = st.columns(2)

    with left:
        st.markdown("### 🏆 Leaderboard")
        if not summary.leaderboard:
            st.info("No one is in the ledger yet.")
        for entry in summary.leaderboard:
            st.markdown(
                f"**#{entry.rank}** {entry.name} — {format_money(entry.total_debt, symbol)}"
            )

    with right:
        st.markdown("### 🕒 Recent")
        if not summary.recent_activity:
            st.info("No transactions yet.")
        for item in summary.recent_activity:
            is_debt = item.kind == TransactionKind.DEBT
            css = "debt" if is_debt else "payment"
            st.markdown(
                f"{format_day(item.transaction_date)} · **{item.person_name}** "
                f'<span class="{css}">{format_signed(item.amount, is_debt, symbol)}</span>'
                f" {item.description}",
                unsafe_allow_html=True,
            )

    st.markdown("---")
    people_col, panel_col = st.columns([1, 2])

    with people_col:
        render_people_list(shell, symbol)

    with panel_col:
        if shell.selected_person is None:
            st.info("👈 Pick a person to see their history.")
        else:
            render_person_panel(shell, symbol)


def render_people_list(shell: LedgerShell, symbol: str):
    st.markdown("### 👥 People")

    if shell.edit_mode:
        with st.form("add_person_form", clear_on_submit=True):
            name = st.text_input("Name")
            if st.form_submit_button("➕ Add person"):
                if guarded(shell, shell.add_person(name)):
                    st.rerun()

    for person in shell.people:
        selected = shell.selected_person and shell.selected_person.id == person.id
        label = f"{'▶ ' if selected else ''}{person.name} · {format_money(person.total_debt, symbol)}"
        if st.button(label, key=f"person_{person.id}"):
            if selected:
                shell.deselect()
            else:
                run_async(shell.select_person(person.id))
            st.rerun()


def render_person_panel(shell: LedgerShell, symbol: str):
    person = shell.selected_person
    st.markdown(f"### {person.initial} · {person.name}")
    st.metric("Owes", format_money(person.total_debt, symbol))
    if person.last_updated:
        st.caption(f"Last updated {format_day(person.last_updated)}")

    if shell.edit_mode:
        render_person_edit_controls(shell)
        render_transaction_form(shell)

    st.markdown("#### History")
    if not shell.transactions:
        st.info("No transactions for this person.")
    for txn in shell.transactions:
        is_debt = txn.kind == TransactionKind.DEBT
        header = (
            f"{format_day(txn.transaction_date)} · {txn.kind.label} · "
            f"{format_signed(txn.amount, is_debt, symbol)}"
        )
        with st.expander(header):
            st.write(txn.description or "—")
            if shell.edit_mode:
                render_transaction_edit(shell, txn)


def render_person_edit_controls(shell: LedgerShell):
    person = shell.selected_person
    with st.expander("✏️ Rename or delete"):
        with st.form("rename_form"):
            new_name = st.text_input("New name", value=person.name)
            if st.form_submit_button("Save name"):
                if guarded(shell, shell.rename_person(new_name)):
                    st.rerun()
        confirm = st.checkbox(
            f"Also delete all of {person.name}'s transactions", key="confirm_delete_person"
        )
        if st.button("🗑️ Delete person", disabled=not confirm):
            if guarded(shell, shell.delete_person()):
                st.rerun()


def render_transaction_form(shell: LedgerShell):
    with st.form("add_transaction_form", clear_on_submit=True):
        st.markdown("#### ➕ New transaction")
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount")
            kind = st.radio(
                "Type",
                options=list(TransactionKind),
                format_func=lambda k: k.label,
                horizontal=True,
            )
        with col2:
            when = st.date_input("Date", value=date.today())
            description = st.text_input("Description")
        if st.form_submit_button("Save", type="primary"):
            if guarded(shell, shell.add_transaction(amount, kind, description, when)):
                st.rerun()


def render_transaction_edit(shell: LedgerShell, txn):
    with st.form(f"edit_{txn.id}"):
        amount = st.text_input("Amount", value=str(txn.amount))
        kind = st.radio(
            "Type",
            options=list(TransactionKind),
            index=list(TransactionKind).index(txn.kind),
            format_func=lambda k: k.label,
            horizontal=True,
        )
        description = st.text_input("Description", value=txn.description)
        when = st.date_input("Date", value=txn.transaction_date)
        col1, col2 = st.columns(2)
        save = col1.form_submit_button("💾 Save")
        delete = col2.form_submit_button("🗑️ Delete")

    if save:
        _, issue = shell_validator_issue(shell, amount)
        if issue:
            st.error(issue)
            return
        changes = TransactionUpdate(
            amount=amount.strip(),
            kind=kind,
            description=description.strip(),
            transaction_date=when,
        )
        if guarded(shell, shell.edit_transaction(txn.id, changes)):
            st.rerun()
    if delete:
        if guarded(shell, shell.delete_transaction(txn.id)):
            st.rerun()


def shell_validator_issue(shell: LedgerShell, amount: str):
    """Check the amount before it reaches the update model."""
    parsed, issue = shell.validator.parse_amount(amount)
    return parsed, issue.message if issue else None


def render_settings_page(shell: LedgerShell):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration")
    status = validate_all_settings()
    sections = [
        ("Supabase (primary store)", "supabase"),
        ("Google Sheets (alternate store)", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("### Connection Status")
    backend = get_settings().app.storage_backend
    try:
        connected = run_async(shell.storage.ping())
    except Exception as e:
        connected = False
        st.caption(f"{type(e).__name__}: {e}")
    if connected:
        st.success(f"✅ Store ({backend}) - Connected")
    else:
        st.error(f"❌ Store ({backend}) - Unreachable")

    if not get_settings().app.edit_mode_available:
        st.warning("No APP_EDIT_PIN is set, so edit mode cannot be unlocked.")

    st.markdown("### Recent Audit Events")
    _, audit_logger = get_components()
    try:
        events = run_async(audit_logger.recent_events())
    except StorageError as e:
        events = []
        st.caption(f"Audit log unavailable: {e}")
    if events:
        st.dataframe(
            [
                {
                    "When": event.timestamp.strftime("%d/%m/%Y %H:%M"),
                    "Event": event.event_type.value,
                    "Severity": event.severity.value,
                    "Description": event.description,
                }
                for event in events
            ],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No audit events recorded yet.")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
