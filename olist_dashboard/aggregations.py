from __future__ import annotations

from typing import Any, Dict, List, Mapping, Union

import numpy as np
import pandas as pd

from olist_dashboard.transforms import PURCHASE_TS


StateLookup = Union[Mapping[str, Any], pd.Series, pd.DataFrame]


def _present(series: pd.Series) -> pd.Series:
    """True where a string field is neither missing nor blank."""
    return series.notna() & (series.astype(str).str.strip() != "")


def _ranked(counts: pd.Series) -> pd.Series:
    # descending by count; stable, so equal counts keep first-encounter order
    return counts.iloc[np.argsort(-counts.to_numpy(), kind="stable")]


def compute_orders_by_day(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty or PURCHASE_TS not in df.columns:
        return pd.DataFrame(columns=["date", "count"])
    ts = pd.to_datetime(df[PURCHASE_TS], errors="coerce", format="ISO8601").dropna()
    if ts.empty:
        return pd.DataFrame(columns=["date", "count"])
    days = ts.dt.strftime("%Y-%m-%d")
    counts = days.groupby(days).size().sort_index()
    return counts.rename_axis("date").reset_index(name="count")


def compute_orders_by_city(df: pd.DataFrame, top_n: int = 10) -> pd.DataFrame:
    if df.empty or "geolocation_city" not in df.columns:
        return pd.DataFrame(columns=["city", "orders"])
    cities = df.loc[_present(df["geolocation_city"]), "geolocation_city"]
    counts = cities.groupby(cities, sort=False).size()
    return _ranked(counts).head(top_n).rename_axis("city").reset_index(name="orders")


def compute_payments_by_type(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty or "payment_type" not in df.columns:
        return pd.DataFrame(columns=["payment_type", "total_value"])
    values = pd.to_numeric(df.get("payment_value", pd.Series(index=df.index, dtype=float)), errors="coerce").fillna(0.0)
    totals = values.groupby(df["payment_type"], sort=False).sum()
    return totals.rename_axis("payment_type").reset_index(name="total_value")


def build_state_lookup(customers: pd.DataFrame) -> Dict[str, str]:
    """customer_id -> customer_state; later rows win for repeated ids."""
    if customers.empty or not {"customer_id", "customer_state"}.issubset(customers.columns):
        return {}
    rows = customers[_present(customers["customer_state"])]
    return dict(zip(rows["customer_id"], rows["customer_state"]))


def compute_orders_by_state(df: pd.DataFrame, lookup: StateLookup) -> pd.DataFrame:
    if isinstance(lookup, pd.DataFrame):
        lookup = build_state_lookup(lookup)
    if df.empty or "customer_id" not in df.columns:
        return pd.DataFrame(columns=["estado", "pedidos"])
    states = df["customer_id"].map(lookup)
    states = states[_present(states)]
    counts = states.groupby(states).size().sort_index()
    return counts.rename_axis("estado").reset_index(name="pedidos")


def compute_orders_by_state_pair(df: pd.DataFrame) -> pd.DataFrame:
    cols = ["seller_state", "customer_state"]
    if df.empty or not set(cols).issubset(df.columns):
        return pd.DataFrame(columns=cols + ["orders"])
    rows = df[_present(df["seller_state"]) & _present(df["customer_state"])]
    counts = rows.groupby(cols, sort=False).size()
    return _ranked(counts).reset_index(name="orders")


def with_percent(payments: pd.DataFrame) -> pd.DataFrame:
    """Add each payment type's share of the total as ``percent`` and ``percent_str``."""
    out = payments.copy()
    total = float(out["total_value"].sum()) if not out.empty else 0.0
    out["percent"] = out["total_value"] / total * 100 if total else 0.0
    out["percent_str"] = out["percent"].map(lambda p: f"{p:.1f}%")
    return out


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return df.to_dict(orient="records")
