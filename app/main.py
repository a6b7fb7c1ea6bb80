"""
Streamlit Frontend for SmartWealth

The screens a user works with day to day: balances, transactions,
holdings, reports and AI advice.

DESIGN PRINCIPLES:
1. Every number on screen is computed from the cached records
2. Forms call intent operations on LedgerService, never edit lists
3. Clear messages when an entry is rejected
4. The app stays usable without an API key or cloud storage

The cache is refreshed by storage pushes after each write, so a page
rerun after a save always shows the new state.
"""

import asyncio
import html
from datetime import date
from decimal import Decimal

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from smartwealth.config import get_settings, validate_all_settings
from smartwealth.ledger import (
    account_name,
    compute_category_breakdown,
    compute_trend_series,
    filter_transactions,
    position_performance,
    summarize_dashboard,
)
from smartwealth.models.ledger import (
    SUGGESTED_CATEGORIES,
    Account,
    AccountType,
    StockPosition,
    Transaction,
    TransactionType,
)
from smartwealth.orchestrator import EntryRejectedError, LedgerService, create_app_components
from smartwealth.services.cache import LedgerCache, LedgerSnapshot
from smartwealth.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="SmartWealth",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .advice-box {
        padding: 20px;
        background-color: #eef2ff;
        border-radius: 10px;
        border-left: 5px solid #4f46e5;
        margin: 10px 0;
        white-space: pre-wrap;
    }
</style>
""", unsafe_allow_html=True)

TYPE_LABELS = {
    TransactionType.INCOME: "收入",
    TransactionType.EXPENSE: "支出",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> tuple[LedgerService, LedgerCache]:
    """Create the service and cache once per server process."""
    service, cache = create_app_components()
    run_async(service.seed_if_empty())
    run_async(cache.start())
    return service, cache


def money(value: Decimal) -> str:
    return f"${value:,.0f}"


def main():
    """Main application entry point."""
    try:
        service, cache = get_components()
    except PermissionError:
        st.error("請先登入。")
        st.stop()
    except Exception as e:
        st.error(f"無法啟動: {e}")
        st.stop()

    st.sidebar.title("💰 SmartWealth")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 總覽", "🏦 帳戶", "🧾 記帳", "📈 股票", "📑 報表", "⚙️ 設定"],
        index=0,
    )

    st.sidebar.markdown("---")
    if hasattr(service.storage, "refresh") and st.sidebar.button("🔄 重新整理"):
        try:
            run_async(service.storage.refresh())
        except StorageError as e:
            show_failure(service, "refresh", e)
        else:
            st.rerun()

    snapshot = cache.snapshot()

    if page == "📊 總覽":
        render_dashboard_page(service, snapshot)
    elif page == "🏦 帳戶":
        render_accounts_page(service, snapshot)
    elif page == "🧾 記帳":
        render_transactions_page(service, snapshot)
    elif page == "📈 股票":
        render_stocks_page(service, snapshot)
    elif page == "📑 報表":
        render_reports_page(snapshot)
    elif page == "⚙️ 設定":
        render_settings_page(service)


def show_rejection(error: EntryRejectedError, service: LedgerService):
    summary = service.validator.get_user_friendly_summary(error.result)
    st.error(summary)


def show_failure(service: LedgerService, action: str, error: Exception):
    st.error(f"操作失敗: {error}")
    run_async(service.report_failure(action, error))


def render_dashboard_page(service: LedgerService, snapshot: LedgerSnapshot):
    """Net worth, this month's cash flow and AI advice."""
    st.title("📊 財務總覽")

    summary = summarize_dashboard(
        snapshot.accounts, snapshot.transactions, snapshot.stocks, date.today()
    )

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("淨資產", money(summary.net_worth))
    col2.metric("本月收入", money(summary.monthly.income))
    col3.metric("本月支出", money(summary.monthly.expense))
    col4.metric(
        "股票未實現損益",
        money(summary.portfolio.gain),
        delta=(
            f"{summary.portfolio.gain_percent:.2f}%"
            if summary.portfolio.gain_percent is not None else None
        ),
    )

    st.markdown("---")

    left, right = st.columns([2, 1])
    with left:
        st.subheader("收支趨勢")
        trend = compute_trend_series(
            snapshot.transactions, get_settings().app.trend_bucket_count
        )
        if trend:
            fig = go.Figure()
            fig.add_bar(x=[b.period for b in trend], y=[float(b.income) for b in trend], name="收入")
            fig.add_bar(x=[b.period for b in trend], y=[float(b.expense) for b in trend], name="支出")
            fig.update_layout(barmode="group", margin=dict(t=30, b=10, l=10, r=10))
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("尚無交易紀錄。")

    with right:
        st.subheader("🤖 AI 財務顧問")
        if st.button("取得建議", type="primary"):
            with st.spinner("分析中..."):
                try:
                    st.session_state.advice = run_async(service.get_advice())
                except StorageError as e:
                    show_failure(service, "get_advice", e)
        advice = st.session_state.get("advice")
        if advice is not None:
            st.markdown(
                f'<div class="advice-box">{html.escape(advice.text)}</div>',
                unsafe_allow_html=True,
            )

    st.subheader("最近交易")
    if snapshot.transactions:
        st.dataframe(transactions_frame(snapshot, snapshot.transactions[:5]), hide_index=True)


def render_accounts_page(service: LedgerService, snapshot: LedgerSnapshot):
    st.title("🏦 帳戶管理")

    with st.expander("➕ 新增帳戶"):
        with st.form("add_account", clear_on_submit=True):
            name = st.text_input("帳戶名稱")
            account_type = st.selectbox(
                "類型", options=list(AccountType), format_func=lambda t: t.value
            )
            balance = st.number_input("初始餘額", value=0.0, step=100.0)
            if st.form_submit_button("新增", type="primary"):
                try:
                    run_async(service.add_account(Account(
                        name=name,
                        type=account_type,
                        balance=Decimal(str(balance)),
                    )))
                except EntryRejectedError as e:
                    show_rejection(e, service)
                except ValueError as e:
                    st.error(f"輸入錯誤: {e}")
                except StorageError as e:
                    show_failure(service, "add_account", e)
                else:
                    st.success("帳戶已新增")
                    st.rerun()

    if not snapshot.accounts:
        st.info("尚未建立任何帳戶。")
        return

    for account in snapshot.accounts:
        col1, col2, col3 = st.columns([3, 2, 1])
        col1.markdown(f"**{account.name}**  \n{account.type.value}")
        col2.markdown(f"### {money(account.balance)}")
        if col3.button("刪除", key=f"del_account_{account.id}"):
            try:
                run_async(service.delete_account(account.id))
            except StorageError as e:
                show_failure(service, "delete_account", e)
            else:
                st.rerun()


def transactions_frame(snapshot: LedgerSnapshot, transactions: list[Transaction]) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "日期": t.date.isoformat(),
            "帳戶": account_name(snapshot.accounts, t.account_id),
            "類型": TYPE_LABELS[t.type],
            "分類": t.category,
            "金額": float(t.signed_amount),
            "備註": t.description,
        }
        for t in transactions
    ])


def render_transactions_page(service: LedgerService, snapshot: LedgerSnapshot):
    st.title("🧾 記帳")

    with st.expander("➕ 新增交易", expanded=not snapshot.transactions):
        if not snapshot.accounts:
            st.warning("請先建立帳戶。")
        else:
            transaction_type = st.radio(
                "類型",
                options=list(TransactionType),
                format_func=lambda t: TYPE_LABELS[t],
                horizontal=True,
            )
            with st.form("add_transaction", clear_on_submit=True):
                account = st.selectbox(
                    "帳戶", options=snapshot.accounts, format_func=lambda a: a.name
                )
                col1, col2 = st.columns(2)
                with col1:
                    when = st.date_input("日期", value=date.today())
                    amount = st.number_input("金額", min_value=0.0, step=10.0)
                with col2:
                    category = st.selectbox("分類", options=SUGGESTED_CATEGORIES[transaction_type])
                    description = st.text_input("備註")

                if st.form_submit_button("儲存", type="primary"):
                    try:
                        run_async(service.record_transaction(Transaction(
                            account_id=account.id,
                            date=when,
                            amount=Decimal(str(amount)),
                            type=transaction_type,
                            category=category,
                            description=description,
                        )))
                    except EntryRejectedError as e:
                        show_rejection(e, service)
                    except ValueError as e:
                        st.error(f"輸入錯誤: {e}")
                    except StorageError as e:
                        show_failure(service, "record_transaction", e)
                    else:
                        st.success("交易已記錄")
                        st.rerun()

    type_filter = st.selectbox(
        "篩選",
        options=[None] + list(TransactionType),
        format_func=lambda t: "全部" if t is None else TYPE_LABELS[t],
    )
    shown = filter_transactions(snapshot.transactions, type_filter)

    if not shown:
        st.info("沒有符合的交易。")
        return

    for t in shown:
        col1, col2, col3, col4 = st.columns([2, 3, 2, 1])
        col1.write(t.date.isoformat())
        col2.write(f"{t.category} · {account_name(snapshot.accounts, t.account_id)}  \n{t.description}")
        col3.write(money(t.signed_amount))
        if col4.button("刪除", key=f"del_tx_{t.id}"):
            try:
                run_async(service.delete_transaction(t.id))
            except StorageError as e:
                show_failure(service, "delete_transaction", e)
            else:
                st.rerun()


def render_stocks_page(service: LedgerService, snapshot: LedgerSnapshot):
    st.title("📈 股票投資")

    col1, col2 = st.columns([3, 1])
    with col2:
        if st.button("🔄 更新股價", disabled=not snapshot.stocks):
            try:
                with st.spinner("取得最新價格..."):
                    run_async(service.refresh_prices())
            except StorageError as e:
                show_failure(service, "refresh_prices", e)
            else:
                st.rerun()

    with st.expander("➕ 新增持股"):
        with st.form("add_stock", clear_on_submit=True):
            symbol = st.text_input("代碼", placeholder="2330.TW")
            name = st.text_input("名稱")
            shares = st.number_input("股數", min_value=0.0, step=1.0)
            average_cost = st.number_input("平均成本", min_value=0.0, step=1.0)
            if st.form_submit_button("新增", type="primary"):
                try:
                    cost = Decimal(str(average_cost))
                    run_async(service.add_stock(StockPosition(
                        symbol=symbol,
                        name=name,
                        shares=Decimal(str(shares)),
                        average_cost=cost,
                        current_price=cost,
                    )))
                except EntryRejectedError as e:
                    show_rejection(e, service)
                except ValueError as e:
                    st.error(f"輸入錯誤: {e}")
                except StorageError as e:
                    show_failure(service, "add_stock", e)
                else:
                    st.success("持股已新增")
                    st.rerun()

    if not snapshot.stocks:
        st.info("尚無持股。")
        return

    for stock in snapshot.stocks:
        perf = position_performance(stock)
        c1, c2, c3, c4 = st.columns([2, 2, 2, 1])
        c1.markdown(f"**{stock.symbol}**  \n{stock.name}")
        c2.metric("市值", money(perf.market_value))
        c3.metric(
            "損益",
            money(perf.gain),
            delta=f"{perf.gain_percent:.2f}%" if perf.percent_defined else None,
        )
        if c4.button("刪除", key=f"del_stock_{stock.id}"):
            try:
                run_async(service.delete_stock(stock.id))
            except StorageError as e:
                show_failure(service, "delete_stock", e)
            else:
                st.rerun()

        with st.expander(f"修改 {stock.symbol} 現價"):
            price = st.number_input(
                "現價",
                min_value=0.0,
                value=float(stock.current_price),
                key=f"price_{stock.id}",
            )
            if st.button("更新", key=f"set_price_{stock.id}"):
                try:
                    run_async(service.update_stock_price(stock.id, Decimal(str(price))))
                except (StorageError, ValueError) as e:
                    show_failure(service, "update_stock_price", e)
                else:
                    st.rerun()


def render_reports_page(snapshot: LedgerSnapshot):
    st.title("📑 報表分析")

    breakdown = compute_category_breakdown(snapshot.transactions, TransactionType.EXPENSE)
    if breakdown:
        df = pd.DataFrame(
            [{"分類": c.category, "金額": float(c.total)} for c in breakdown]
        )
        fig = px.pie(df, values="金額", names="分類", title="支出分類", hole=0.4)
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("尚無支出紀錄。")

    trend = compute_trend_series(snapshot.transactions, get_settings().app.trend_bucket_count)
    if trend:
        df_trend = pd.DataFrame([
            {"月份": b.period, "收入": float(b.income), "支出": float(b.expense)}
            for b in trend
        ])
        fig_trend = px.bar(
            df_trend, x="月份", y=["收入", "支出"], barmode="group", title="每月收支"
        )
        st.plotly_chart(fig_trend, use_container_width=True)


def render_settings_page(service: LedgerService):
    """Render the settings page."""
    st.title("⚙️ 設定")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Connected")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    app = get_settings().app
    st.markdown("---")
    st.markdown(f"**Storage backend:** `{app.storage_backend}`")
    st.markdown(
        "To configure the application, create a `.env` file with `GEMINI_API_KEY`, "
        "`GOOGLE_SHEETS_SPREADSHEET_ID` and `STORAGE_BACKEND=google_sheets`."
    )

    st.markdown("---")
    st.markdown("### 最近活動")
    try:
        events = run_async(service.recent_activity(limit=20))
    except StorageError as e:
        st.error(f"無法讀取活動紀錄: {e}")
        return

    if not events:
        st.info("尚無活動紀錄。")
        return

    st.dataframe(
        pd.DataFrame([
            {
                "時間": e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                "事件": e.event_type.value,
                "說明": e.description,
                "使用者操作": e.is_user_action,
            }
            for e in events
        ]),
        hide_index=True,
    )


if __name__ == "__main__":
    main()
