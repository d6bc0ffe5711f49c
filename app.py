from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from olist_dashboard import dashboard as dash
from olist_dashboard.data import load_dashboard_data, prepare_context
from olist_dashboard.filters import (
    ALL,
    CATEGORY_FIELD,
    DATE_END,
    DATE_START,
    FilterState,
    active_filters,
    apply_patch,
)
from olist_dashboard.geo import load_state_features
from olist_dashboard.settings import configure_logging, get_settings

alt.data_transformers.disable_max_rows()
configure_logging()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .stApp {background: #0b051d; color: #e0e1dd;}
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #3a506b;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #e0e1dd;}
        .card {border: 1px solid #3a506b;border-radius: 12px;padding: 16px;background: #0b051d;margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #e0e1dd;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #1b1440;border: 1px solid #3a506b;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #e0e1dd;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(state: FilterState) -> str:
    active = active_filters(state)
    if not active:
        return "<span class='chip'>No filters</span>"
    chips = []
    if CATEGORY_FIELD in active:
        chips.append(f"Category: {active.pop(CATEGORY_FIELD)}")
    start, end = active.pop(DATE_START, ""), active.pop(DATE_END, "")
    if start or end:
        chips.append(f"Dates: {start or '…'} – {end or '…'}")
    chips.extend(f"{k.replace('_', ' ').title()}: {v}" for k, v in active.items())
    return "".join(f"<span class='chip'>{txt}</span>" for txt in chips)


# ---------- Selection -> filter patch ----------
def _selection_key(name: str) -> str:
    return f"{name}_select"


def _clear_selection(name: str):
    st.session_state.pop(_selection_key(name), None)


def _as_iso_day(value: Any) -> str:
    stamp = pd.to_datetime(value, unit="ms") if isinstance(value, (int, float)) else pd.to_datetime(value)
    return stamp.strftime("%Y-%m-%d")


def selection_patch(cfg: dash.ChartConfig) -> Dict[str, str]:
    """Read a chart's last selection from session state as a filter patch (empty values clear)."""
    event = st.session_state.get(_selection_key(cfg.name)) or {}
    selection = (event.get("selection") or {}).get(cfg.selection)
    if cfg.filter_fields == (DATE_START, DATE_END):
        bounds = (selection or {}).get("date") if isinstance(selection, dict) else None
        if bounds and len(bounds) == 2:
            return {DATE_START: _as_iso_day(bounds[0]), DATE_END: _as_iso_day(bounds[1])}
        return {DATE_START: "", DATE_END: ""}
    field = cfg.filter_fields[0]
    source = "estado" if field == "customer_state" else "city" if field == "geolocation_city" else field
    if isinstance(selection, list) and selection:
        return {field: str(selection[0].get(source, ""))}
    return {field: ""}


def sidebar_state(category: str, date_range: List[Any]) -> FilterState:
    state = FilterState(product_category_name=category or ALL)
    if len(date_range) == 2:
        state = apply_patch(state, {DATE_START: str(date_range[0]), DATE_END: str(date_range[1])})
    return state


# ---------- UI setup ----------
st.set_page_config(page_title="Olist Orders Dashboard", layout="wide")
inject_base_styles()
st.title("Olist Orders Dashboard")
st.caption("Click a chart to cross-filter the others; use Clear to drop a chart's selection.")

data_ctx = load_dashboard_data()
if data_ctx.get("missing"):
    st.error(f"Data files not found in {get_settings().data_dir}: {', '.join(data_ctx['missing'])}")
    st.stop()

data: pd.DataFrame = data_ctx["data"]
if data.empty:
    st.error("The joined dataset is empty. Check that the order, customer, payment, item and product files match.")
    st.stop()

with st.sidebar:
    st.markdown("### Product category")
    category = st.radio("Category", data_ctx.get("categories", [ALL]), index=0, label_visibility="collapsed")
    st.markdown("---")
    st.markdown("### Purchase date")
    days = pd.to_datetime(data["order_purchase_timestamp"], errors="coerce", format="ISO8601").dropna()
    date_range: List[Any] = []
    if not days.empty:
        picked = st.date_input("Range", value=(), min_value=days.min().date(), max_value=days.max().date())
        date_range = list(picked) if isinstance(picked, (list, tuple)) else []

base_state = sidebar_state(category, date_range)
patches = {cfg.name: selection_patch(cfg) for cfg in dash.CHARTS}
state = dash.compose_state(base_state, patches)
st.markdown(f"<div class='chip-row'>{format_filter_summary(state)}</div>", unsafe_allow_html=True)
features: Optional[List[Dict[str, Any]]] = load_state_features()


def render_chart_card(cfg: dash.ChartConfig):
    # a chart is drawn without its own selection so the selection stays visible
    ctx = prepare_context(dash.compose_state(base_state, patches, skip=cfg.name), data_ctx)
    summary = cfg.compute(ctx)
    with card(cfg.title):
        if summary.empty:
            st.info("No orders match the current filters.")
            return
        chart = dash.build_chart(cfg, summary, features)
        if chart is None:
            st.warning("State geometry could not be loaded; the map is unavailable.")
            return
        st.altair_chart(
            chart,
            use_container_width=True,
            theme=None,
            on_select="rerun",
            selection_mode=cfg.selection,
            key=_selection_key(cfg.name),
        )
        st.button("Clear", key=f"{cfg.name}_clear", on_click=_clear_selection, args=(cfg.name,))
        st.download_button(
            "Export CSV",
            data=summary.to_csv(index=False).encode("utf-8"),
            file_name=f"{cfg.name}.csv",
            mime="text/csv",
            key=f"{cfg.name}_export",
        )


charts = dash.CHARTS_BY_NAME
top = st.columns([3, 2])
with top[0]:
    render_chart_card(charts["line_chart"])
with top[1]:
    render_chart_card(charts["pie_chart"])

middle = st.columns([2, 3])
with middle[0]:
    render_chart_card(charts["bar_chart"])
with middle[1]:
    render_chart_card(charts["map_chart"])

render_chart_card(charts["heat_chart"])

with st.expander("Filter state"):
    st.json(asdict(state))
    st.write(prepare_context(state, data_ctx)["row_counts"])
