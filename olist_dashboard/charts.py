from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

BACKGROUND = "#0b051d"
TEXT_COLOR = "#e0e1dd"
GRID_COLOR = "#3a506b"
LABEL_FILL = "#10072c"
PAYMENT_DOMAIN = ["credit_card", "boleto", "voucher", "debit_card"]
PAYMENT_RANGE = ["#1bbfe9", "#7461a5", "#3b5dac", "#7bc895"]
PADDING = {"bottom": 60, "left": 40, "right": 40, "top": 40}

# selection parameter names; UI adapters read selections back under these keys
BRUSH = "brush"
CLICKED_CITY = "clicked_city"
CLICKED_PAYMENT = "clicked_payment"
CLICKED_STATE = "clicked_state"
CLICKED_PAIR = "clicked_pair"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _styled(chart, title: str, *, padding: Optional[Any] = None):
    chart = chart.properties(title=alt.TitleParams(text=title, font="sans-serif", color=TEXT_COLOR))
    if padding is not None:
        chart = chart.properties(padding=padding)
    return chart.configure(background=BACKGROUND).configure_axis(
        labelColor=TEXT_COLOR, titleColor=TEXT_COLOR, gridColor=GRID_COLOR
    )


def _log_color_scale(values: pd.Series, fallback: int) -> alt.Scale:
    top = int(values.max()) if not values.empty else 0
    return alt.Scale(type="log", domain=[1, top or fallback], scheme="blues")


def _legend(title: str) -> alt.Legend:
    return alt.Legend(title=title, titleColor=TEXT_COLOR, labelColor=TEXT_COLOR)


def orders_by_day_chart(df: pd.DataFrame):
    brush = alt.selection_interval(name=BRUSH, encodings=["x"])
    hover = alt.selection_point(name="hover", encodings=["x"], on="mouseover", toggle=False, nearest=True, empty=False)

    base = alt.Chart(df).encode(x=alt.X("date:T", title="Date"))
    line = (
        base.mark_line(interpolate="linear", stroke="#1f77b4")
        .encode(
            y=alt.Y("count:Q", title="Orders", axis=alt.Axis(grid=True)),
            opacity=alt.condition(brush, alt.value(1), alt.value(0.8)),
        )
        .add_params(brush)
    )
    rule = base.mark_rule(color="#ffffff").transform_filter(hover)
    points = (
        base.mark_circle()
        .encode(
            y="count:Q",
            opacity=alt.condition(hover, alt.value(1), alt.value(0)),
            size=alt.condition(hover, alt.value(48), alt.value(100)),
            tooltip=[alt.Tooltip("date:T", title="Date"), alt.Tooltip("count:Q", title="Orders")],
        )
        .add_params(hover)
    )
    layered = alt.layer(line, rule, points).properties(width=750, height=400)
    return _styled(layered, "Orders over time", padding=PADDING)


def orders_by_city_chart(df: pd.DataFrame):
    click = alt.selection_point(name=CLICKED_CITY, fields=["city"], on="click", clear="dblclick")
    order: List[str] = df["city"].tolist() if "city" in df.columns else []
    scale = alt.Scale(domainMax=float(df["orders"].max()) * 1.1) if not df.empty else alt.Scale()

    bar = (
        alt.Chart(df)
        .mark_bar(color="#1bbfe9")
        .encode(
            x=alt.X("orders:Q", title="Orders", axis=alt.Axis(grid=True), scale=scale),
            y=alt.Y("city:N", title=None, sort=order),
            opacity=alt.condition(click, alt.value(1.0), alt.value(0.3)),
            strokeWidth=alt.condition(click, alt.value(2), alt.value(0)),
            tooltip=[alt.Tooltip("city:N", title="City"), alt.Tooltip("orders:Q", title="Orders", format=".0f")],
        )
        .add_params(click)
    )
    labels = (
        alt.Chart(df)
        .mark_text(dx=-16, fontSize=10, fontWeight="bold", fill=LABEL_FILL)
        .encode(
            x="orders:Q",
            y=alt.Y("city:N", sort=order),
            text="orders:Q",
            opacity=alt.condition(click, alt.value(1), alt.value(0), empty=False),
        )
        .transform_filter(click)
    )
    layered = alt.layer(bar, labels).properties(width=340)
    return _styled(layered, "Cities with the most orders (buyers)", padding={"left": 15})


def payments_by_type_chart(df: pd.DataFrame):
    """Donut of payment value per type; ``df`` must already carry ``percent_str``."""
    click = alt.selection_point(
        name=CLICKED_PAYMENT, fields=["payment_type"], on="click", clear="dblclick", bind="legend"
    )
    pie = (
        alt.Chart(df)
        .mark_arc(outerRadius=120, innerRadius=80)
        .encode(
            theta=alt.Theta("total_value:Q", aggregate="sum"),
            color=alt.Color(
                "payment_type:N",
                scale=alt.Scale(domain=PAYMENT_DOMAIN, range=PAYMENT_RANGE),
                legend=alt.Legend(title="Payment type", labelColor=TEXT_COLOR, titleColor=TEXT_COLOR, offset=0),
            ),
            order=alt.Order("total_value:Q", sort="descending"),
            opacity=alt.condition(click, alt.value(1.0), alt.value(0.3)),
            tooltip=[
                alt.Tooltip("payment_type:N", title="Payment type"),
                alt.Tooltip("total_value:Q", title="Total value", format=".2f"),
            ],
        )
        .add_params(click)
    )
    text = (
        alt.Chart(df)
        .mark_text(align="center", fontSize=24, fontWeight="bold", fill="#a6a6a6")
        .encode(
            text="percent_str:N",
            theta="total_value:Q",
            opacity=alt.condition(click, alt.value(1), alt.value(0), empty=False),
        )
        .transform_filter(click)
    )
    layered = alt.layer(pie, text).properties(width=260, height=260)
    return _styled(layered, "Payment value by type", padding=10)


def orders_by_state_map(df: pd.DataFrame, features: List[Dict[str, Any]]):
    click = alt.selection_point(name=CLICKED_STATE, fields=["estado"], on="click", clear="dblclick")
    lookup = alt.LookupData(
        data=alt.InlineData(values=df.to_dict(orient="records")),
        key="estado",
        fields=["estado", "pedidos"],
    )
    shape = (
        alt.Chart(alt.InlineData(values=features))
        .mark_geoshape(stroke="#000000", strokeWidth=0.5)
        .transform_lookup(lookup="id", from_=lookup)
        .transform_calculate(Pedidos="datum.pedidos || 0")
        .encode(
            color=alt.Color("Pedidos:Q", scale=_log_color_scale(df.get("pedidos", pd.Series(dtype=int)), 10), legend=_legend("Orders (log scale)")),
            opacity=alt.condition(click, alt.value(1.0), alt.value(0.3)),
            tooltip=[alt.Tooltip("estado:N", title="State"), alt.Tooltip("Pedidos:Q", title="Orders")],
        )
        .add_params(click)
        .project("mercator")
        .properties(width=600, height=600)
    )
    return _styled(shape, "Orders by buyer state")


def orders_by_state_pair_chart(df: pd.DataFrame):
    click = alt.selection_point(
        name=CLICKED_PAIR, fields=["seller_state", "customer_state"], on="click", clear="dblclick"
    )
    rect = (
        alt.Chart(df)
        .mark_rect(strokeWidth=2)
        .encode(
            x=alt.X("customer_state:O", title="Buyer state"),
            y=alt.Y("seller_state:O", title="Seller state"),
            fill=alt.Fill("orders:Q", scale=_log_color_scale(df.get("orders", pd.Series(dtype=int)), 10000), legend=_legend("Orders (log scale)")),
            stroke=alt.condition(click, alt.value("black"), alt.value(None), empty=False),
            opacity=alt.condition(click, alt.value(1.0), alt.value(0.4)),
            tooltip=[
                alt.Tooltip("seller_state:N", title="Seller state"),
                alt.Tooltip("customer_state:N", title="Buyer state"),
                alt.Tooltip("orders:Q", title="Orders", format=".0f"),
            ],
        )
        .add_params(click)
    )
    labels = (
        alt.Chart(df)
        .mark_text(fontSize=7, fontWeight="bold", fill=LABEL_FILL)
        .encode(
            x="customer_state:O",
            y="seller_state:O",
            text="orders:Q",
            opacity=alt.condition(click, alt.value(1), alt.value(0), empty=False),
        )
        .transform_filter(click)
    )
    return _styled(alt.layer(rect, labels), "Orders by seller and buyer state", padding=PADDING)
