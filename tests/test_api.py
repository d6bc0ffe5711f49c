import pytest
from fastapi.testclient import TestClient

from api.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def offline(configured, no_geometry):
    """Every API test runs on the temporary CSVs with no network access."""
    yield


def test_meta_categories():
    resp = client.get("/meta/categories")
    assert resp.status_code == 200
    assert resp.json() == {"categories": ["all", "beleza_saude", "esporte_lazer"]}


def test_meta_filters():
    resp = client.get("/meta/filters")
    assert resp.status_code == 200
    assert resp.json()["filters"]["product_category_name"] == "all"


def test_dashboard_renders_all_charts():
    resp = client.post("/dashboard", json={})
    assert resp.status_code == 200
    data = resp.json()
    assert set(data["charts"]) == {"pie_chart", "line_chart", "bar_chart", "map_chart", "heat_chart"}
    assert data["charts"]["map_chart"]["spec"] is None
    assert data["charts"]["bar_chart"]["spec"] is not None


def test_dashboard_with_category_and_origin():
    resp = client.post("/dashboard?origin=line_chart", json={"product_category_name": "esporte_lazer"})
    assert resp.status_code == 200
    data = resp.json()
    assert "line_chart" not in data["charts"]
    assert data["charts"]["pie_chart"]["data"][0]["payment_type"] == "boleto"
    assert data["row_counts"]["filtered_rows"] == 1


def test_dashboard_unknown_origin():
    resp = client.post("/dashboard?origin=nope", json={})
    assert resp.status_code == 400


def test_crossfilter_select():
    body = {"filters": {}, "event": {"chart": "pie_chart", "value": "credit_card"}}
    resp = client.post("/crossfilter", json=body)
    assert resp.status_code == 200
    data = resp.json()
    assert data["filters"]["payment_type"] == "credit_card"
    assert "pie_chart" not in data["charts"]
    assert data["charts"]["bar_chart"]["data"] == [{"city": "sao paulo", "orders": 1}]


def test_crossfilter_rejects_unknown_chart():
    body = {"event": {"chart": "nope", "value": "x"}}
    resp = client.post("/crossfilter", json=body)
    assert resp.status_code == 422


def test_export_chart_csv():
    resp = client.post("/export/bar_chart", json={})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.text.splitlines()[0] == "city,orders"


def test_export_unknown_chart():
    resp = client.post("/export/nope", json={})
    assert resp.status_code == 404


def test_missing_data_files(monkeypatch, tmp_path):
    from olist_dashboard.settings import get_settings

    monkeypatch.setenv("OLIST_DATA_DIR", str(tmp_path / "empty"))
    get_settings.cache_clear()
    resp = client.post("/dashboard", json={})
    assert resp.status_code == 404
    assert "olist_orders_dataset.csv" in resp.json()["missing"]


def test_export_missing_data_files(monkeypatch, tmp_path):
    from olist_dashboard.settings import get_settings

    monkeypatch.setenv("OLIST_DATA_DIR", str(tmp_path / "empty"))
    get_settings.cache_clear()
    resp = client.post("/export/bar_chart", json={})
    assert resp.status_code == 404
    assert "olist_orders_dataset.csv" in resp.json()["missing"]


def test_export_failure_is_json_500(monkeypatch):
    import api.main as api_main

    def _boom(*args, **kwargs):
        raise RuntimeError("disk went away")

    monkeypatch.setattr(api_main, "prepare_context", _boom)
    resp = client.post("/export/bar_chart", json={})
    assert resp.status_code == 500
    assert resp.json() == {"error": "disk went away", "type": "RuntimeError"}


def test_crossfilter_single_item_list():
    body = {"filters": {}, "event": {"chart": "pie_chart", "value": ["credit_card"]}}
    resp = client.post("/crossfilter", json=body)
    assert resp.status_code == 200
    assert resp.json()["filters"]["payment_type"] == "credit_card"
    assert resp.json()["charts"]["bar_chart"]["data"] == [{"city": "sao paulo", "orders": 1}]


def test_crossfilter_rejects_list_for_single_field_chart():
    body = {"filters": {}, "event": {"chart": "pie_chart", "value": ["credit_card", "boleto"]}}
    resp = client.post("/crossfilter", json=body)
    assert resp.status_code == 400
