"""
Test Suite Configuration
"""
from typing import Dict

import pandas as pd
import pytest
import requests

from olist_dashboard import data as data_module
from olist_dashboard import geo
from olist_dashboard.settings import get_settings


def _frame(rows, columns) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=columns).astype(str)


@pytest.fixture
def raw_tables() -> Dict[str, pd.DataFrame]:
    """Five source tables plus sellers; o4 has no customer, o3 has two payments."""
    return {
        "orders": _frame(
            [
                ["o1", "c1", "delivered", "2017-01-05 10:00:00"],
                ["o2", "c2", "delivered", "2017-01-20 12:30:00"],
                ["o3", "c3", "shipped", "2017-02-01 08:00:00"],
                ["o4", "c9", "delivered", "2017-02-02 09:00:00"],
            ],
            ["order_id", "customer_id", "order_status", "order_purchase_timestamp"],
        ),
        "customers": _frame(
            [
                ["c1", "u1", "sao paulo", "SP"],
                ["c2", "u2", "rio de janeiro", "RJ"],
                ["c3", "u3", "sao paulo", "SP"],
            ],
            ["customer_id", "customer_unique_id", "customer_city", "customer_state"],
        ),
        "payments": _frame(
            [
                ["o1", "1", "credit_card", "100.00"],
                ["o2", "1", "boleto", "50.50"],
                ["o3", "1", "credit_card", "20.00"],
                ["o3", "2", "voucher", "5.00"],
            ],
            ["order_id", "payment_sequential", "payment_type", "payment_value"],
        ),
        "order_items": _frame(
            [
                ["o1", "1", "p1", "s1", "90.00"],
                ["o2", "1", "p2", "s2", "45.00"],
                ["o3", "1", "p3", "s1", "18.00"],
            ],
            ["order_id", "order_item_id", "product_id", "seller_id", "price"],
        ),
        "products": _frame(
            [
                ["p1", "beleza_saude"],
                ["p2", "esporte_lazer"],
                ["p3", "beleza_saude"],
            ],
            ["product_id", "product_category_name"],
        ),
        "sellers": _frame(
            [
                ["s1", "campinas", "SP"],
                ["s2", "belo horizonte", "MG"],
            ],
            ["seller_id", "seller_city", "seller_state"],
        ),
    }


@pytest.fixture
def data_dir(tmp_path, raw_tables):
    """Temporary directory holding the tables under their dataset file names."""
    names = {**data_module.TABLE_FILES, **data_module.OPTIONAL_TABLE_FILES}
    for name, df in raw_tables.items():
        df.to_csv(tmp_path / names[name], index=False)
    return tmp_path


@pytest.fixture
def configured(monkeypatch, data_dir):
    """Point the settings at ``data_dir`` and reset every cache around the test."""
    monkeypatch.setenv("OLIST_DATA_DIR", str(data_dir))
    get_settings.cache_clear()
    data_module._load_dashboard_data_cached.cache_clear()
    yield data_dir
    get_settings.cache_clear()
    data_module._load_dashboard_data_cached.cache_clear()


@pytest.fixture
def state_features():
    return [
        {"type": "Feature", "id": "SP", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [[[-47, -23], [-46, -23], [-46, -24], [-47, -23]]]}},
        {"type": "Feature", "id": "RJ", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [[[-43, -22], [-42, -22], [-42, -23], [-43, -22]]]}},
    ]


@pytest.fixture
def no_geometry(monkeypatch):
    """Make every GeoJSON download fail."""

    def _fail(*args, **kwargs):
        raise requests.ConnectionError("offline")

    geo._fetch_geojson.cache_clear()
    monkeypatch.setattr(geo.requests, "get", _fail)
    yield
    geo._fetch_geojson.cache_clear()
