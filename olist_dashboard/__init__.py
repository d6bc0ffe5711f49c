"""Core (UI-agnostic) dashboard logic for the Olist orders dataset.

This package contains:
- data loading (CSV -> pandas) and the denormalizing joins
- the cross-filter state, filter engine and reducer
- per-chart aggregations (JSON-serializable records)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
