from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class FilterStateModel(BaseModel):
    product_category_name: str = "all"
    date_range_start: str = ""
    date_range_end: str = ""
    geolocation_city: str = ""
    customer_state: str = ""
    payment_type: str = ""
    seller_state: str = ""


class CrossFilterEventModel(BaseModel):
    chart: Literal["pie_chart", "line_chart", "bar_chart", "map_chart", "heat_chart"]
    action: Literal["select", "clear"] = "select"
    value: Optional[Union[str, List[str]]] = None


class CrossFilterRequest(BaseModel):
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    event: CrossFilterEventModel

