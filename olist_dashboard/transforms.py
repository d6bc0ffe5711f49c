from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd


logger = logging.getLogger(__name__)

PURCHASE_TS = "order_purchase_timestamp"
CITY_RENAME = {"customer_city": "geolocation_city"}

DASHBOARD_COLUMNS = [
    "customer_id",
    "geolocation_city",
    "order_id",
    "product_category_name",
    "price",
    "product_id",
    "customer_state",
    "seller_state",
    PURCHASE_TS,
    "payment_type",
    "payment_value",
]

# (right table, join key) in join order; the left side is always the running result.
JOIN_PLAN = [
    ("customers", "customer_id"),
    ("payments", "order_id"),
    ("order_items", "order_id"),
    ("products", "product_id"),
    ("sellers", "seller_id"),
]


def inner_join(left: pd.DataFrame, right: pd.DataFrame, key: str, *, fan_out: bool = False) -> pd.DataFrame:
    """Join ``right`` onto ``left`` keeping only matched ``left`` rows.

    Right-hand fields win on name collisions. ``left`` order is preserved. By
    default the right side is indexed by ``key`` keeping the last-seen row, so
    the result never has more rows than ``left``. With ``fan_out=True`` every
    matching right row produces its own output row.
    """
    for side, df in (("left", left), ("right", right)):
        if key not in df.columns:
            raise KeyError(f"join key {key!r} missing from {side} table")

    left_keys = left[key]
    if fan_out:
        overlap = [c for c in right.columns if c != key and c in left.columns]
        matched = right[right[key].notna()]
        return left.drop(columns=overlap).merge(matched, on=key, how="inner").reset_index(drop=True)

    index = right[right[key].notna()].drop_duplicates(subset=[key], keep="last").set_index(key)
    kept = left[left_keys.notna() & left_keys.isin(index.index)].copy()
    for col in index.columns:
        kept[col] = kept[key].map(index[col])
    return kept.reset_index(drop=True)


def rename_columns(df: pd.DataFrame, mapping: Mapping[str, str]) -> pd.DataFrame:
    return df.rename(columns={k: v for k, v in mapping.items() if k in df.columns})


def select_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    keep = [c for c in columns if c in df.columns]
    return df.loc[:, keep]


def parse_purchase_date(df: pd.DataFrame, col: str = PURCHASE_TS) -> pd.DataFrame:
    """Normalize a timestamp column to ``YYYY-MM-DD 00:00:00``; unparseable values become ``""``."""
    if col not in df.columns:
        return df
    out = df.copy()
    parsed = pd.to_datetime(out[col], errors="coerce", format="ISO8601")
    out[col] = parsed.dt.strftime("%Y-%m-%d 00:00:00").fillna("")
    return out


def build_denormalized(tables: Dict[str, pd.DataFrame], *, fan_out: bool = False, columns: Optional[List[str]] = None) -> pd.DataFrame:
    orders = tables.get("orders")
    if orders is None or orders.empty:
        return pd.DataFrame(columns=columns or DASHBOARD_COLUMNS)

    result = orders
    for name, key in JOIN_PLAN:
        right = tables.get(name)
        if right is None:
            # sellers is optional, every other table is required upstream
            continue
        if name == "customers":
            right = rename_columns(right, CITY_RENAME)
        before = len(result)
        result = inner_join(result, right, key, fan_out=fan_out)
        logger.info("joined %s on %s: %d -> %d rows", name, key, before, len(result))

    result = parse_purchase_date(result)
    return select_columns(result, columns or DASHBOARD_COLUMNS).reset_index(drop=True)
