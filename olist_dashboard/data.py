from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from olist_dashboard.aggregations import build_state_lookup
from olist_dashboard.filters import ALL, CATEGORY_FIELD, FilterLike, filter_data_by_category, normalize_filters
from olist_dashboard.settings import get_settings
from olist_dashboard.transforms import build_denormalized


logger = logging.getLogger(__name__)

TABLE_FILES = {
    "orders": "olist_orders_dataset.csv",
    "order_items": "olist_order_items_dataset.csv",
    "products": "olist_products_dataset.csv",
    "payments": "olist_order_payments_dataset.csv",
    "customers": "olist_customers_dataset.csv",
}
OPTIONAL_TABLE_FILES = {
    "sellers": "olist_sellers_dataset.csv",
}

FileSignature = Tuple[Tuple[str, str, float], ...]


def get_source_files(data_dir: Optional[Path] = None) -> Dict[str, Path]:
    data_dir = Path(data_dir or get_settings().data_dir)
    files = {name: data_dir / fname for name, fname in TABLE_FILES.items()}
    for name, fname in OPTIONAL_TABLE_FILES.items():
        path = data_dir / fname
        if path.exists():
            files[name] = path
    return files


def missing_files(files: Dict[str, Path]) -> List[str]:
    return [files[name].name for name in TABLE_FILES if not files[name].exists()]


def file_signature(files: Dict[str, Path]) -> FileSignature:
    return tuple((name, str(path), path.stat().st_mtime) for name, path in sorted(files.items()))


def load_table(path: Path) -> pd.DataFrame:
    """Read one CSV with every column as a string and blanks kept as ``""``."""
    return pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")


def load_tables(files: Dict[str, Path]) -> Dict[str, pd.DataFrame]:
    # the reads are independent, so run them side by side and join afterwards
    with ThreadPoolExecutor(max_workers=len(files) or 1) as executor:
        futures = {name: executor.submit(load_table, path) for name, path in files.items()}
        tables = {name: future.result() for name, future in futures.items()}
    for name, df in tables.items():
        logger.info("loaded %s: %d rows", name, len(df))
    return tables


def list_categories(data: pd.DataFrame) -> List[str]:
    if data.empty or CATEGORY_FIELD not in data.columns:
        return [ALL]
    cats = data[CATEGORY_FIELD]
    cats = cats[cats.notna() & (cats != "")]
    return [ALL] + cats.drop_duplicates().tolist()


# ---------------- Public API (Streamlit + FastAPI) ----------------
@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: FileSignature, fan_out: bool) -> Dict[str, object]:
    files = {name: Path(path) for name, path, _ in files_sig}
    tables = load_tables(files)
    data = build_denormalized(tables, fan_out=fan_out)
    return {
        "files": [Path(path).name for _, path, _ in files_sig],
        "missing": [],
        "data": data,
        # the map reads states from the full frame, not the filtered one
        "state_lookup": build_state_lookup(data),
        "categories": list_categories(data),
        "has_sellers": "sellers" in tables,
    }


def load_dashboard_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    settings = get_settings()
    files = get_source_files(data_dir)
    missing = missing_files(files)
    if missing:
        logger.warning("missing data files in %s: %s", data_dir or settings.data_dir, ", ".join(missing))
        return {
            "files": [],
            "missing": missing,
            "data": pd.DataFrame(),
            "state_lookup": {},
            "categories": [ALL],
            "has_sellers": False,
        }
    return _load_dashboard_data_cached(file_signature(files), settings.fan_out_joins)


def prepare_context(filters: FilterLike, data_ctx: Dict[str, object]) -> Dict[str, object]:
    state = normalize_filters(filters)
    data: pd.DataFrame = data_ctx.get("data", pd.DataFrame())
    filtered = filter_data_by_category(state, data)
    return {
        "filters": state,
        "data": data,
        "filtered": filtered,
        "state_lookup": data_ctx.get("state_lookup", {}),
        "row_counts": {"rows": int(len(data)), "filtered_rows": int(len(filtered))},
    }
