from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import CrossFilterRequest, FilterStateModel
from olist_dashboard.dashboard import get_chart, handle_event, render_dashboard
from olist_dashboard.data import load_dashboard_data, prepare_context
from olist_dashboard.filters import FilterState
from olist_dashboard.settings import configure_logging, get_settings


configure_logging()
app = FastAPI(title="Olist Orders Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _missing_data(data_ctx: dict) -> Optional[JSONResponse]:
    missing = data_ctx.get("missing") or []
    if not missing:
        return None
    return JSONResponse(status_code=404, content={"error": "data files not found", "missing": missing})


@app.get("/meta/categories")
def meta_categories():
    try:
        data_ctx = load_dashboard_data()
        return _json({"categories": data_ctx.get("categories", ["all"])})
    except Exception as exc:
        logger.exception("meta_categories failed")
        return _error(exc)


@app.get("/meta/filters")
def meta_filters():
    return _json({"filters": asdict(FilterState())})


@app.post("/dashboard")
def dashboard(filters: FilterStateModel, origin: Optional[str] = Query(default=None)):
    try:
        data_ctx = load_dashboard_data()
        missing = _missing_data(data_ctx)
        if missing is not None:
            return missing
        return _json(render_dashboard(filters.model_dump(), data_ctx, origin=origin))
    except ValueError as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/crossfilter")
def crossfilter(request: CrossFilterRequest):
    try:
        data_ctx = load_dashboard_data()
        missing = _missing_data(data_ctx)
        if missing is not None:
            return missing
        _, payload = handle_event(request.filters.model_dump(), request.event.model_dump(), data_ctx)
        return _json(payload)
    except ValueError as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("crossfilter failed")
        return _error(exc)


@app.post("/export/{chart}")
def export_chart(chart: str, filters: FilterStateModel):
    try:
        cfg = get_chart(chart)
    except ValueError as exc:
        return _error(exc, status_code=404)
    try:
        data_ctx = load_dashboard_data()
        missing = _missing_data(data_ctx)
        if missing is not None:
            return missing
        ctx = prepare_context(filters.model_dump(), data_ctx)
        csv_bytes = cfg.compute(ctx).to_csv(index=False).encode("utf-8")
    except Exception as exc:
        logger.exception("export_chart failed")
        return _error(exc)
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={chart}.csv"})
