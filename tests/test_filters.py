"""
Unit Tests - Filter engine and cross-filter reducer
"""
from dataclasses import asdict

import pandas as pd
import pytest

from olist_dashboard.dashboard import FIELD_MAP
from olist_dashboard.filters import (
    FilterState,
    active_filters,
    apply_patch,
    clear_fields,
    filter_data_by_category,
    normalize_filters,
    reduce_filter_state,
)
from olist_dashboard.transforms import build_denormalized


@pytest.fixture
def rows(raw_tables) -> pd.DataFrame:
    return build_denormalized(raw_tables)


class TestFilterDataByCategory:
    """Tests for filter_data_by_category"""

    def test_empty_filters_return_data_unchanged(self, rows):
        assert filter_data_by_category({}, rows) is rows
        assert filter_data_by_category(None, rows) is rows

    def test_all_category_is_unconstrained(self, rows):
        result = filter_data_by_category({"product_category_name": "all"}, rows)

        assert len(result) == len(rows)

    def test_default_state_keeps_everything(self, rows):
        result = filter_data_by_category(FilterState(), rows)

        assert len(result) == len(rows)

    def test_exact_match_and_conjunction(self, rows):
        state = FilterState(product_category_name="beleza_saude", geolocation_city="sao paulo", payment_type="voucher")

        result = filter_data_by_category(state, rows)

        assert result["order_id"].tolist() == ["o3"]

    def test_empty_and_none_values_are_skipped(self, rows):
        result = filter_data_by_category({"customer_state": "", "payment_type": None}, rows)

        assert len(result) == len(rows)

    def test_date_range_is_inclusive(self, rows):
        state = {"date_range_start": "2017-01-05", "date_range_end": "2017-01-20"}

        result = filter_data_by_category(state, rows)

        assert result["order_id"].tolist() == ["o1", "o2"]

    def test_date_range_excludes_day_after_end(self):
        df = pd.DataFrame({"order_purchase_timestamp": ["2017-01-31 00:00:00", "2017-02-01 00:00:00"]})

        result = filter_data_by_category({"date_range_start": "2017-01-01", "date_range_end": "2017-01-31"}, df)

        assert result["order_purchase_timestamp"].tolist() == ["2017-01-31 00:00:00"]

    def test_open_date_bounds(self, rows):
        after = filter_data_by_category({"date_range_start": "2017-01-20"}, rows)
        before = filter_data_by_category({"date_range_end": "2017-01-19"}, rows)

        assert after["order_id"].tolist() == ["o2", "o3"]
        assert before["order_id"].tolist() == ["o1"]

    def test_unknown_field_matches_nothing(self, rows):
        result = filter_data_by_category({"no_such_column": "x"}, rows)

        assert result.empty

    def test_idempotent(self, rows):
        state = FilterState(customer_state="SP", date_range_start="2017-01-01")

        once = filter_data_by_category(state, rows)
        twice = filter_data_by_category(state, once)

        pd.testing.assert_frame_equal(once, twice)


class TestNormalizeFilters:
    """Tests for normalize_filters"""

    def test_defaults(self):
        assert normalize_filters(None) == FilterState()

    def test_blank_category_means_all_and_dates_are_trimmed(self):
        state = normalize_filters(
            {"product_category_name": "", "date_range_start": "2017-01-01T00:00:00", "extra": "ignored"}
        )

        assert state.product_category_name == "all"
        assert state.date_range_start == "2017-01-01"
        assert "extra" not in asdict(state)


class TestReducer:
    """Tests for the cross-filter reducer"""

    def test_patch_returns_new_state(self):
        state = FilterState()

        patched = apply_patch(state, {"geolocation_city": "sao paulo"})

        assert patched.geolocation_city == "sao paulo"
        assert state.geolocation_city == ""

    def test_clear_fields(self):
        state = FilterState(payment_type="boleto", product_category_name="esporte_lazer")

        cleared = clear_fields(state, "payment_type", "product_category_name")

        assert cleared == FilterState()

    def test_select_then_clear(self):
        state = reduce_filter_state(FilterState(), {"chart": "map_chart", "value": "SP"}, FIELD_MAP)
        assert state.customer_state == "SP"

        state = reduce_filter_state(state, {"chart": "map_chart", "action": "clear"}, FIELD_MAP)
        assert state.customer_state == ""

    def test_select_without_value_clears(self):
        state = FilterState(payment_type="boleto")

        state = reduce_filter_state(state, {"chart": "pie_chart", "value": None}, FIELD_MAP)

        assert state.payment_type == ""

    def test_brush_sets_both_bounds(self):
        event = {"chart": "line_chart", "value": ["2017-01-01T00:00:00.000Z", "2017-01-31T00:00:00.000Z"]}

        state = reduce_filter_state(FilterState(), event, FIELD_MAP)

        assert (state.date_range_start, state.date_range_end) == ("2017-01-01", "2017-01-31")

    def test_only_the_chart_field_changes(self):
        state = FilterState(payment_type="boleto")

        state = reduce_filter_state(state, {"chart": "heat_chart", "value": "SP"}, FIELD_MAP)

        assert active_filters(state) == {"payment_type": "boleto", "seller_state": "SP"}

    def test_unknown_chart(self):
        with pytest.raises(ValueError):
            reduce_filter_state(FilterState(), {"chart": "nope", "value": "x"}, FIELD_MAP)

    def test_single_item_list_is_unwrapped(self):
        state = reduce_filter_state(FilterState(), {"chart": "pie_chart", "value": ["credit_card"]}, FIELD_MAP)

        assert state.payment_type == "credit_card"

    def test_single_field_chart_rejects_several_values(self):
        with pytest.raises(ValueError):
            reduce_filter_state(FilterState(), {"chart": "bar_chart", "value": ["sao paulo", "rio de janeiro"]}, FIELD_MAP)

    def test_brush_needs_two_values(self):
        with pytest.raises(ValueError):
            reduce_filter_state(FilterState(), {"chart": "line_chart", "value": "2017-01-01"}, FIELD_MAP)
