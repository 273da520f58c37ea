from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from bandbooking.utils.config import get_settings

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "default_catalog.json"


def load_fallback_catalog() -> Dict[str, List[Dict[str, Any]]]:
    settings = get_settings()
    catalog_path = Path(settings.catalog_fallback_path) if settings.catalog_fallback_path else DEFAULT_CATALOG_PATH
    if not catalog_path.exists():
        return {"services": [], "band_packages": [], "instruments": []}

    with catalog_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    return {
        "services": list(data.get("services") or []),
        "band_packages": list(data.get("band_packages") or []),
        "instruments": list(data.get("instruments") or []),
    }
