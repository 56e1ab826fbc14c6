"""
JSON rendering of query results.

Generates structured JSON for programmatic consumption. Keys use the
camelCase field names of the stored columns; timestamps are ISO-8601.

Design Principles:
    - Complete data: every stored field is included
    - Consistent schema: same envelope for every record kind
    - Absent optional fields are emitted as null
"""

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def build_records_dict(kind: str, records: list[BaseModel]) -> dict[str, Any]:
    """
    Build the report document for a list of records.

    Args:
        kind: Record kind label ("profiles", "events" or "metrics")
        records: Records returned by a store query
    """
    return {
        "report_version": "1.0",
        "generated_at": datetime.now(UTC).isoformat(),
        "kind": kind,
        "count": len(records),
        "records": [r.model_dump(mode="json", by_alias=True) for r in records],
    }


def generate_json_report(kind: str, records: list[BaseModel], indent: int = 2) -> str:
    """Serialize records to a JSON report string."""
    return json.dumps(build_records_dict(kind, records), indent=indent, default=_json_serializer)


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for non-standard types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
