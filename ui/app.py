"""
Options Snapshot - Streamlit Viewer

Pick a symbol and expiration, see the merged chain (calls | strike | puts)
with an IV smile and open-interest profile underneath.
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import logging

from optsnap import OptionsDataError, OptionsService
from config import ui_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Page config
st.set_page_config(
    page_title="Options Chain",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

DISPLAY_COLUMNS = {
    'call_oi': 'C OI',
    'call_vol': 'C Vol',
    'call_iv': 'C IV',
    'call_bid': 'C Bid',
    'call_ask': 'C Ask',
    'strike': 'Strike',
    'put_bid': 'P Bid',
    'put_ask': 'P Ask',
    'put_iv': 'P IV',
    'put_vol': 'P Vol',
    'put_oi': 'P OI',
}


@st.cache_resource
def initialize_service():
    """Initialize the service once per session (its own cache lives inside)."""
    return OptionsService()


def render_header():
    """Render page header."""
    st.title("📊 Options Chain")
    st.markdown("---")


def render_sidebar(service):
    """Symbol and expiration pickers."""
    st.sidebar.header("⚙️ Settings")

    symbol = st.sidebar.text_input(
        "Symbol",
        value=ui_config.default_symbol,
        help="Underlying symbol (e.g., SPY, AAPL, QQQ)"
    ).upper()

    try:
        expirations = service.get_expirations(symbol)
    except OptionsDataError as e:
        st.sidebar.error(f"Could not list expirations: {e}")
        return symbol, None

    if not expirations:
        st.sidebar.info("No upcoming expirations.")
        return symbol, None

    labels = {exp.label: exp.yyyymmdd for exp in expirations}
    choice = st.sidebar.selectbox("Expiration", list(labels))
    return symbol, labels[choice]


def render_metrics(chain):
    """Row count and underlying."""
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Strikes", chain.row_count)
    with col2:
        price = chain.underlying.price if chain.underlying else None
        st.metric(chain.symbol, f"${price:.2f}" if price is not None else "N/A")
    with col3:
        st.metric("Expiration", chain.expiration_iso)

    if chain.missing_sources:
        st.warning(f"Missing sources: {', '.join(chain.missing_sources)}")


def render_chain_table(df: pd.DataFrame):
    """Calls left, strike in the middle, puts right."""
    if df.empty:
        st.info("No contracts for this expiration.")
        return

    display = df[list(DISPLAY_COLUMNS)].rename(columns=DISPLAY_COLUMNS)
    st.dataframe(
        display.head(ui_config.max_display_rows),
        use_container_width=True,
        height=600,
        hide_index=True
    )


def render_charts(df: pd.DataFrame):
    """IV smile and open interest by strike."""
    if df.empty:
        return

    col1, col2 = st.columns(2)

    with col1:
        fig = go.Figure()
        fig.add_trace(go.Scatter(x=df['strike'], y=df['call_iv'], mode='lines+markers', name='Call IV'))
        fig.add_trace(go.Scatter(x=df['strike'], y=df['put_iv'], mode='lines+markers', name='Put IV'))
        fig.update_layout(title="Implied Volatility", xaxis_title="Strike", yaxis_title="IV")
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        fig = go.Figure()
        fig.add_trace(go.Bar(x=df['strike'], y=df['call_oi'], name='Call OI'))
        fig.add_trace(go.Bar(x=df['strike'], y=-df['put_oi'], name='Put OI'))
        fig.update_layout(title="Open Interest", xaxis_title="Strike", barmode='relative')
        st.plotly_chart(fig, use_container_width=True)


def main():
    """Main app function."""
    render_header()

    service = initialize_service()
    symbol, expiration = render_sidebar(service)

    if expiration is None:
        return

    with st.spinner("Fetching snapshots..."):
        try:
            chain = service.get_options_chain(symbol, expiration)
        except OptionsDataError as e:
            logger.error(f"Chain fetch failed for {symbol} {expiration}: {e}")
            st.error(f"Could not load chain: {e}")
            return

    render_metrics(chain)
    st.markdown("---")

    df = chain.to_dataframe()
    render_chain_table(df)
    render_charts(df)


if __name__ == "__main__":
    main()
