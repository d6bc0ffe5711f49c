"""Declarative chart table and the render pipeline shared by the API and the Streamlit app.

Each chart is one ``ChartConfig``: how to aggregate the filtered frame, which
filter fields its selection drives, and how to turn the aggregate into an
Altair chart. ``render_dashboard`` is a pure function of (filter state, data
context); cross-filtering is ``handle_event`` = reducer + re-render of every
chart but the one that was clicked.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from olist_dashboard import charts as ch
from olist_dashboard.aggregations import (
    compute_orders_by_city,
    compute_orders_by_day,
    compute_orders_by_state,
    compute_orders_by_state_pair,
    compute_payments_by_type,
    to_records,
    with_percent,
)
from olist_dashboard.data import prepare_context
from olist_dashboard.filters import (
    DATE_FIELDS,
    FilterLike,
    FilterState,
    active_filters,
    apply_patch,
    normalize_filters,
    reduce_filter_state,
)
from olist_dashboard.geo import load_state_features
from olist_dashboard.settings import get_settings


logger = logging.getLogger(__name__)

Features = Optional[List[Dict[str, Any]]]


@dataclass(frozen=True)
class ChartConfig:
    name: str
    title: str
    filter_fields: Tuple[str, ...]
    selection: str
    compute: Callable[[Dict[str, Any]], pd.DataFrame]
    build: Callable[..., Any]
    needs_geometry: bool = False


def _by_day(ctx: Dict[str, Any]) -> pd.DataFrame:
    return compute_orders_by_day(ctx["filtered"])


def _by_city(ctx: Dict[str, Any]) -> pd.DataFrame:
    return compute_orders_by_city(ctx["filtered"], top_n=get_settings().top_n_cities)


def _by_payment(ctx: Dict[str, Any]) -> pd.DataFrame:
    return with_percent(compute_payments_by_type(ctx["filtered"]))


def _by_state(ctx: Dict[str, Any]) -> pd.DataFrame:
    return compute_orders_by_state(ctx["filtered"], ctx.get("state_lookup", {}))


def _by_state_pair(ctx: Dict[str, Any]) -> pd.DataFrame:
    return compute_orders_by_state_pair(ctx["filtered"])


CHARTS: Tuple[ChartConfig, ...] = (
    ChartConfig("pie_chart", "Payment value by type", ("payment_type",), ch.CLICKED_PAYMENT, _by_payment, ch.payments_by_type_chart),
    ChartConfig("line_chart", "Orders over time", DATE_FIELDS, ch.BRUSH, _by_day, ch.orders_by_day_chart),
    ChartConfig("bar_chart", "Cities with the most orders", ("geolocation_city",), ch.CLICKED_CITY, _by_city, ch.orders_by_city_chart),
    ChartConfig("map_chart", "Orders by buyer state", ("customer_state",), ch.CLICKED_STATE, _by_state, ch.orders_by_state_map, needs_geometry=True),
    ChartConfig("heat_chart", "Orders by seller and buyer state", ("seller_state",), ch.CLICKED_PAIR, _by_state_pair, ch.orders_by_state_pair_chart),
)
CHARTS_BY_NAME: Dict[str, ChartConfig] = {cfg.name: cfg for cfg in CHARTS}
FIELD_MAP: Dict[str, Tuple[str, ...]] = {cfg.name: cfg.filter_fields for cfg in CHARTS}


def get_chart(name: str) -> ChartConfig:
    try:
        return CHARTS_BY_NAME[name]
    except KeyError:
        raise ValueError(f"unknown chart: {name!r}") from None


def compose_state(base: FilterLike, patches: Mapping[str, Mapping[str, str]], skip: Optional[str] = None) -> FilterState:
    """Layer each chart's selection patch over ``base``, leaving out chart ``skip``.

    A patch with no values set leaves ``base`` alone, so a chart without a
    selection never clears a bound that came from elsewhere (the sidebar dates).
    """
    state = normalize_filters(base)
    for name, patch in patches.items():
        if name == skip or not any(patch.values()):
            continue
        state = apply_patch(state, patch)
    return state


def build_chart(cfg: ChartConfig, summary: pd.DataFrame, features: Features = None):
    """Altair chart for one aggregate, or ``None`` when the map has no geometry."""
    if cfg.needs_geometry:
        if features is None:
            return None
        return cfg.build(summary, features)
    return cfg.build(summary)


def render_chart(cfg: ChartConfig, ctx: Dict[str, Any], *, with_specs: bool = True, features: Features = None) -> Dict[str, Any]:
    summary = cfg.compute(ctx)
    out: Dict[str, Any] = {"title": cfg.title, "filter_fields": list(cfg.filter_fields), "data": to_records(summary)}
    if not with_specs:
        return out
    chart = build_chart(cfg, summary, features)
    if chart is None:
        out["spec"] = None
        out["error"] = "state geometry unavailable"
    else:
        out["spec"] = ch.to_vega_spec(chart)
    return out


def render_dashboard(
    filters: FilterLike,
    data_ctx: Dict[str, Any],
    origin: Optional[str] = None,
    *,
    with_specs: bool = True,
    features: Features = None,
) -> Dict[str, Any]:
    """Recompute every chart except ``origin`` for the given filter state."""
    if origin is not None:
        get_chart(origin)
    ctx = prepare_context(filters, data_ctx)
    state: FilterState = ctx["filters"]

    charts: Dict[str, Any] = {}
    for cfg in CHARTS:
        if cfg.name == origin:
            continue
        geometry = features
        if cfg.needs_geometry and with_specs and geometry is None:
            geometry = load_state_features()
        charts[cfg.name] = render_chart(cfg, ctx, with_specs=with_specs, features=geometry)

    return {
        "filters": asdict(state),
        "active_filters": active_filters(state),
        "origin": origin,
        "row_counts": ctx["row_counts"],
        "charts": charts,
    }


def handle_event(
    state: FilterLike,
    event: Mapping[str, Any],
    data_ctx: Dict[str, Any],
    **render_kwargs: Any,
) -> Tuple[FilterState, Dict[str, Any]]:
    """Apply one chart interaction and re-render.

    A selection leaves its own chart untouched; a clear re-renders everything.
    """
    new_state = reduce_filter_state(normalize_filters(state), event, FIELD_MAP)
    cleared = event.get("action") == "clear" or event.get("value") in (None, "")
    origin = None if cleared else event.get("chart")
    logger.debug("cross-filter %s -> %s", event, active_filters(new_state))
    return new_state, render_dashboard(new_state, data_ctx, origin=origin, **render_kwargs)
