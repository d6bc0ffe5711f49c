from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import requests

from olist_dashboard.settings import get_settings


logger = logging.getLogger(__name__)


@lru_cache(maxsize=2)
def _fetch_geojson(url: str, timeout: float) -> Dict[str, Any]:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.json()


def load_state_features(url: Optional[str] = None) -> Optional[List[Dict[str, Any]]]:
    """Fetch the Brazilian state polygons, keyed by the state abbreviation in ``id``.

    Returns ``None`` when the download or decoding fails so the caller can skip the map.
    """
    settings = get_settings()
    url = url or settings.geojson_url
    try:
        geo = _fetch_geojson(url, settings.geojson_timeout)
    except (requests.RequestException, ValueError):
        logger.exception("state geometry fetch failed: %s", url)
        return None
    features = geo.get("features") if isinstance(geo, dict) else None
    if not isinstance(features, list):
        logger.error("state geometry at %s has no feature list", url)
        return None
    return features
