"""
Streamlit Frontend for pocketledger

A small web front end over the same flows the command line uses.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Amounts are typed as text and parsed as Decimal - never floats
3. Clear error messages in simple language
4. Visual feedback for all operations
5. Reports only ever see a read-only view of the wallet
"""

from decimal import Decimal, DecimalException

import streamlit as st

from pocketledger.audit import create_correlation_id
from pocketledger.config import get_settings
from pocketledger.ledger import LedgerError
from pocketledger.models.ledger import Direction
from pocketledger.orchestrator import (
    AccountFlow,
    TransferFlow,
    WalletFlow,
    create_app_components,
)
from pocketledger.queries import WalletReporter


# Page configuration
st.set_page_config(
    page_title="pocketledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        return create_app_components(use_storage=False)


def parse_amount_input(text: str):
    """Parse a text amount. Shows an error and returns None if it isn't a number."""
    try:
        return Decimal(text.strip())
    except DecimalException:
        st.error("Please enter a number, for example: 150.00")
        return None


def main():
    """Main application entry point."""
    account_flow, wallet_flow, transfer_flow = get_components()

    if "user" not in st.session_state:
        st.session_state.user = None

    st.sidebar.title("💰 pocketledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🔐 Account", "💵 Wallet", "🔁 Transfer", "📊 Reports", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.session_state.user is not None:
        st.sidebar.markdown(f"Logged in as **{st.session_state.user.username}**")
        st.sidebar.markdown(f"Balance: **{st.session_state.user.wallet.balance}**")

    if page == "🔐 Account":
        render_account_page(account_flow)
    elif page == "⚙️ Settings":
        render_settings_page(account_flow)
    elif st.session_state.user is None:
        st.info("Please log in on the Account page first.")
    elif page == "💵 Wallet":
        render_wallet_page(wallet_flow)
    elif page == "🔁 Transfer":
        render_transfer_page(transfer_flow)
    elif page == "📊 Reports":
        render_reports_page()


def render_account_page(account_flow: AccountFlow):
    """Render the register / login page."""
    st.title("🔐 Account")

    if st.session_state.user is not None:
        st.success(f"You are logged in as {st.session_state.user.username}.")
        if st.button("Log out"):
            st.session_state.user = None
            st.rerun()
        return

    login_tab, register_tab = st.tabs(["Log in", "Register"])

    with login_tab:
        username = st.text_input("Username", key="login_username")
        password = st.text_input("Password", type="password", key="login_password")
        if st.button("Log in", type="primary"):
            try:
                st.session_state.user = account_flow.login(
                    username, password, create_correlation_id()
                )
                st.rerun()
            except LedgerError as e:
                st.error(e.message)

    with register_tab:
        username = st.text_input("Username", key="register_username")
        password = st.text_input("Password", type="password", key="register_password")
        if st.button("Register", type="primary"):
            result = account_flow.register(username, password, create_correlation_id())
            if result.success:
                st.success(result.message)
            else:
                st.error(result.message)


def render_wallet_page(wallet_flow: WalletFlow):
    """Render income / expense / budget forms."""
    user = st.session_state.user
    st.title("💵 Wallet")
    st.markdown(f'<div class="big-number">{user.wallet.balance}</div>', unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)

    with col1:
        st.subheader("Add income")
        category = st.text_input("Category", key="income_category")
        amount_text = st.text_input("Amount", key="income_amount", placeholder="1000.00")
        if st.button("Add income", type="primary"):
            amount = parse_amount_input(amount_text)
            if amount is not None:
                try:
                    wallet_flow.add_income(user, category, amount, create_correlation_id())
                    st.success("Income added.")
                except LedgerError as e:
                    st.error(e.message)

    with col2:
        st.subheader("Add expense")
        category = st.text_input("Category", key="expense_category")
        amount_text = st.text_input("Amount", key="expense_amount", placeholder="200.50")
        if st.button("Add expense", type="primary"):
            amount = parse_amount_input(amount_text)
            if amount is not None:
                try:
                    result = wallet_flow.add_expense(
                        user, category, amount, create_correlation_id()
                    )
                    st.success("Expense added.")
                    if result.budget_exceeded:
                        st.markdown(f"""
                        <div class="warning-box">
                            <h4>⚠️ Budget exceeded</h4>
                            <p>Category <strong>{category}</strong> is now at
                            {result.remaining_after} remaining.</p>
                        </div>
                        """, unsafe_allow_html=True)
                except LedgerError as e:
                    st.error(e.message)

    with col3:
        st.subheader("Set budget")
        category = st.text_input("Category", key="budget_category")
        amount_text = st.text_input("Limit", key="budget_amount", placeholder="500.00")
        if st.button("Set budget", type="primary"):
            amount = parse_amount_input(amount_text)
            if amount is not None:
                try:
                    wallet_flow.set_budget(user, category, amount, create_correlation_id())
                    st.success(f"Budget set for category \"{category}\".")
                except LedgerError as e:
                    st.error(e.message)


def render_transfer_page(transfer_flow: TransferFlow):
    """Render the transfer form."""
    user = st.session_state.user
    st.title("🔁 Transfer")

    recipient = st.text_input("Recipient username")
    amount_text = st.text_input("Amount", placeholder="150.00")

    if st.button("Send", type="primary") and recipient:
        amount = parse_amount_input(amount_text)
        if amount is None:
            return
        try:
            result = transfer_flow.transfer(user, recipient, amount, create_correlation_id())
        except LedgerError as e:
            st.error(e.message)
            return

        if result.success:
            st.success(result.message)
            if result.budget_exceeded:
                st.warning(f"Budget limit exceeded for category: {result.debit.category}")
        else:
            st.error(result.message)


def render_reports_page():
    """Render read-only reports."""
    user = st.session_state.user
    st.title("📊 Reports")

    reporter = WalletReporter(user.wallet.view())

    st.markdown(f"### {reporter.balance()}")
    st.text(reporter.summary())

    income_tab, expense_tab, category_tab = st.tabs(["Income", "Expenses", "By category"])

    with income_tab:
        st.text(reporter.budget_by_direction(Direction.INCOME))
        st.text(reporter.transactions(Direction.INCOME))

    with expense_tab:
        st.text(reporter.budget_by_direction(Direction.EXPENSE))
        st.text(reporter.transactions(Direction.EXPENSE))

    with category_tab:
        categories = st.multiselect(
            "Categories",
            options=sorted(user.wallet.categories()),
        )
        if categories:
            st.text(reporter.category_budget(categories))
            st.text(reporter.category_transactions(categories))


def render_settings_page(account_flow: AccountFlow):
    """Render the settings page."""
    st.title("⚙️ Settings")

    from pocketledger.config import validate_all_settings

    status = validate_all_settings()

    for name in ("storage", "security", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.title()} settings - OK")
        else:
            st.error(f"❌ {name.title()} settings - {status.get(f'{name}_error', 'Invalid')}")

    st.markdown("---")
    st.markdown(f"**Registry file:** `{get_settings().storage.registry_path}`")
    st.markdown(f"**Registered users:** {len(account_flow.registry)}")

    if st.button("💾 Save now"):
        if account_flow.save():
            st.success("Data saved.")
        else:
            st.error("Data could not be saved. Check the logs.")


if __name__ == "__main__":
    main()
