"""Export of the current telemetry state as a downloadable JSON document."""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from telemetry_store import StoreView


def build_export(view: StoreView, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Project the store contents into the export document shape.

    Args:
        view: Store contents to export
        now: Export time (defaults to the current UTC time)

    Returns:
        Dict with timestamp, latest, history and alerts keys
    """
    now = now or datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat(),
        "latest": view.latest.to_dict(),
        "history": [entry.to_dict() for entry in view.history],
        "alerts": [alert.to_dict() for alert in view.alerts],
    }


def export_json(view: StoreView, now: Optional[datetime] = None) -> str:
    return json.dumps(build_export(view, now), indent=2, ensure_ascii=False)


def write_export(view: StoreView, directory: str, now: Optional[datetime] = None) -> str:
    """Write the export document to `directory` and return the file path."""
    now = now or datetime.now(timezone.utc)
    filename = f"coldchain-data-{int(now.timestamp() * 1000)}.json"
    path = os.path.join(directory, filename)
    with open(path, "w", encoding="utf-8") as f:
        f.write(export_json(view, now))
    logging.info(f"Exported {len(view.history)} readings and {len(view.alerts)} alerts to {path}")
    return path
