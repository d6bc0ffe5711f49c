from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import pandas as pd

from olist_dashboard.transforms import PURCHASE_TS


ALL = "all"
CATEGORY_FIELD = "product_category_name"
DATE_START = "date_range_start"
DATE_END = "date_range_end"
DATE_FIELDS = (DATE_START, DATE_END)
DAY_SUFFIX = " 00:00:00"


@dataclass(frozen=True)
class FilterState:
    product_category_name: str = ALL
    date_range_start: str = ""
    date_range_end: str = ""
    geolocation_city: str = ""
    customer_state: str = ""
    payment_type: str = ""
    seller_state: str = ""


FILTER_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(FilterState))
FilterLike = Union[FilterState, Mapping[str, Any], None]


def _clean(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def normalize_filters(raw: FilterLike) -> FilterState:
    """Coerce a raw mapping (query params, JSON body, session state) into a FilterState.

    Unknown keys are ignored; ``None``/NaN become ``""`` and an empty category means ``"all"``.
    """
    if isinstance(raw, FilterState):
        return raw
    raw = raw or {}
    values = {name: _clean(raw.get(name)) for name in FILTER_FIELDS}
    if not values[CATEGORY_FIELD]:
        values[CATEGORY_FIELD] = ALL
    # date bounds are plain dates; drop any time part a client sends along
    for name in DATE_FIELDS:
        values[name] = values[name][:10]
    return FilterState(**values)


def _is_unset(value: Any) -> bool:
    return _clean(value) == ""


def filter_data_by_category(filters: FilterLike, data: pd.DataFrame) -> pd.DataFrame:
    """Keep the rows matching every active constraint in ``filters``.

    ``"all"`` on the category field and empty values are unconstrained. The two
    date-range fields are an inclusive bound on the row's purchase day. Any
    other field is an exact match; a constrained field the frame does not
    have matches nothing.
    """
    if not filters:
        return data
    items = asdict(filters) if isinstance(filters, FilterState) else dict(filters)

    mask = pd.Series(True, index=data.index)
    date_applied = False
    for key, value in items.items():
        if _is_unset(value):
            continue
        if key == CATEGORY_FIELD and value == ALL:
            continue
        if key in DATE_FIELDS:
            if date_applied:
                continue
            date_applied = True
            mask &= _date_mask(items, data)
            continue
        if key not in data.columns:
            mask &= False
            continue
        mask &= data[key] == value
    return data[mask]


def _date_mask(items: Mapping[str, Any], data: pd.DataFrame) -> pd.Series:
    if PURCHASE_TS not in data.columns:
        return pd.Series(False, index=data.index)
    stamps = data[PURCHASE_TS].fillna("").astype(str)
    row_day = stamps.str.slice(0, 10) + DAY_SUFFIX
    mask = stamps.str.len() >= 10

    start = _clean(items.get(DATE_START))
    end = _clean(items.get(DATE_END))
    if start:
        mask &= row_day >= start[:10] + DAY_SUFFIX
    if end:
        mask &= row_day <= end[:10] + DAY_SUFFIX
    return mask


# ---------------- Cross-filter reducer ----------------
def apply_patch(state: FilterState, patch: Mapping[str, Any]) -> FilterState:
    """Return a new state with the patched fields overwritten; unknown fields are ignored."""
    changes = {k: _clean(v) for k, v in patch.items() if k in FILTER_FIELDS}
    if CATEGORY_FIELD in changes and not changes[CATEGORY_FIELD]:
        changes[CATEGORY_FIELD] = ALL
    return replace(state, **changes)


def clear_fields(state: FilterState, *names: str) -> FilterState:
    return apply_patch(state, {name: "" for name in names})


def reduce_filter_state(state: FilterState, event: Mapping[str, Any], field_map: Mapping[str, Tuple[str, ...]]) -> FilterState:
    """Apply one chart interaction to ``state``.

    ``event`` carries ``chart`` and ``action`` (``"select"`` or ``"clear"``) and,
    for a selection, ``value``: a scalar for single-field charts or a
    ``(start, end)`` pair for the date brush. A selection with no value clears
    the chart's fields, like a click on empty canvas.
    """
    chart = event.get("chart")
    if chart not in field_map:
        raise ValueError(f"unknown chart: {chart!r}")
    names = field_map[chart]
    action = event.get("action", "select")
    value = event.get("value")

    if action == "clear" or value is None or value == "":
        return clear_fields(state, *names)
    if action != "select":
        raise ValueError(f"unknown action: {action!r}")

    if len(names) == 1:
        if isinstance(value, (list, tuple)):
            if len(value) != 1:
                raise ValueError(f"chart {chart!r} expects a single value, got {len(value)}")
            value = value[0]
        return apply_patch(state, {names[0]: value})
    if isinstance(value, (list, tuple)) and len(value) == len(names):
        return apply_patch(state, {name: _clean(v)[:10] for name, v in zip(names, value)})
    raise ValueError(f"chart {chart!r} expects {len(names)} values")


def active_filters(state: FilterState) -> Dict[str, str]:
    return {k: v for k, v in asdict(state).items() if v and not (k == CATEGORY_FIELD and v == ALL)}
