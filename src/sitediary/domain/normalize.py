"""
Record normalization.

Builds a canonical DiaryRecord from any of the record shapes the diary
application has produced over time. Applied at the store boundary, so
every other component sees one shape.

Handled legacy shapes:
- weather {temperature, conditions, humidity} or a plain string
- materials as [{description, quantity, unit}], equipment as [{description, hours}]
- tasks as a plain list of strings; task equipment as a single string
- "images" instead of "imageUrls"
- createdAt as ISO string, epoch millis, or {seconds, nanoseconds}
- snake_case keys alongside camelCase
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sitediary.domain.errors import InvalidRecordError
from sitediary.domain.models import (
    DiaryRecord,
    RecordStatus,
    Task,
    Weather,
    WorkingHours,
)

logger = logging.getLogger(__name__)

# Separator used when flattening legacy list-shaped free-text fields
LEGACY_LIST_SEPARATOR = "; "


def normalize_record(data: Mapping[str, Any] | DiaryRecord) -> DiaryRecord:
    """
    Convert a raw mapping into a canonical DiaryRecord.

    Args:
        data: Raw record (camelCase or snake_case keys), or a DiaryRecord
              which is returned unchanged

    Returns:
        Canonical DiaryRecord

    Raises:
        InvalidRecordError: If the mapping cannot be interpreted
    """
    if isinstance(data, DiaryRecord):
        return data
    if not isinstance(data, Mapping):
        raise InvalidRecordError(
            f"Record must be a mapping, got {type(data).__name__}"
        )

    record_id = _pick(data, "id")
    if record_id is None or str(record_id).strip() == "":
        raise InvalidRecordError("Record has no id")
    record_id = str(record_id)

    try:
        status = RecordStatus.from_value(_pick(data, "status"))
    except ValueError as e:
        raise InvalidRecordError(
            f"Record {record_id}: unknown status {_pick(data, 'status')!r}"
        ) from e

    try:
        record = DiaryRecord(
            id=record_id,
            title=_text(_pick(data, "title")),
            project_title=_text(_pick(data, "projectTitle", "project_title")),
            contract_id=_text(_pick(data, "contractId", "contract_id")),
            site_location=_text(_pick(data, "siteLocation", "site_location")),
            date=_text(_pick(data, "date")),
            status=status,
            weather=_weather(_pick(data, "weather")),
            working_hours=_working_hours(_pick(data, "workingHours", "working_hours")),
            tasks=_tasks(_pick(data, "tasks")),
            image_urls=_string_list(_pick(data, "imageUrls", "image_urls", "images")),
            signature=_pick(data, "signature") or None,
            progress=_text(_pick(data, "progress")),
            safety=_text(_pick(data, "safety")),
            materials=_flatten_legacy_list(_pick(data, "materials"), "quantity"),
            equipment=_flatten_legacy_list(_pick(data, "equipment"), "hours"),
            labor=_text(_pick(data, "labor")),
            issues=_text(_pick(data, "issues")),
            next_steps=_text(_pick(data, "nextSteps", "next_steps")),
            notes=_text(_pick(data, "notes")),
            created_by=_pick(data, "createdBy", "created_by", "userId") or None,
            created_at=parse_timestamp(_pick(data, "createdAt", "created_at")),
            last_modified=_millis(_pick(data, "lastModified", "last_modified", "updatedAt")),
        )
    except InvalidRecordError as e:
        raise InvalidRecordError(f"Record {record_id}: {e}") from e
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(f"Record {record_id}: {e}") from e

    if record.signature is not None and not isinstance(record.signature, str):
        raise InvalidRecordError(f"Record {record_id}: signature must be a string reference")
    return record


# ============================================================================
# Field helpers
# ============================================================================

def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """First present (non-None) value among the given keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        raise InvalidRecordError(f"expected text, got {type(value).__name__}")
    return str(value)


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        raise InvalidRecordError(f"expected a list, got {type(value).__name__}")
    return [str(item) for item in value if item not in (None, "")]


def _weather(value: Any) -> Weather:
    if value is None:
        return Weather()
    if isinstance(value, str):
        return Weather(sky=value)
    if not isinstance(value, Mapping):
        raise InvalidRecordError(f"weather must be a mapping, got {type(value).__name__}")
    # Older forms used "conditions" for the sky field and carried humidity
    return Weather(
        temperature=_text(value.get("temperature")),
        sky=_text(_pick(value, "sky", "conditions")),
        precipitation=_text(value.get("precipitation")),
        wind=_text(value.get("wind")),
    )


def _working_hours(value: Any) -> WorkingHours:
    if value is None:
        return WorkingHours()
    if not isinstance(value, Mapping):
        raise InvalidRecordError("workingHours must be a mapping")
    return WorkingHours(
        start_time=_text(_pick(value, "startTime", "start_time")),
        end_time=_text(_pick(value, "endTime", "end_time")),
    )


def _tasks(value: Any) -> list[Task]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidRecordError(f"tasks must be a list, got {type(value).__name__}")

    tasks = []
    for index, item in enumerate(value, start=1):
        if isinstance(item, str):
            tasks.append(Task(description=item))
            continue
        if not isinstance(item, Mapping):
            raise InvalidRecordError(f"task {index} must be a mapping or a string")
        equipment = item.get("equipment")
        if isinstance(equipment, str):
            equipment = [equipment] if equipment else []
        tasks.append(
            Task(
                description=_text(item.get("description")),
                equipment=_string_list(equipment),
                quantity=_quantity(item.get("quantity"), index),
                unit=_text(item.get("unit")),
            )
        )
    return tasks


def _quantity(value: Any, index: int) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise InvalidRecordError(f"task {index} quantity must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError as e:
            raise InvalidRecordError(f"task {index} quantity {value!r} is not a number") from e
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidRecordError(f"task {index} quantity must be a finite number, got {value}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _flatten_legacy_list(value: Any, detail_key: str) -> str:
    """
    Flatten legacy list-shaped materials/equipment into one string.

    Materials entries read "Cement 20 bags", equipment entries
    "Excavator (6 h)".
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if not isinstance(value, (list, tuple)):
        return _text(value)

    parts = []
    for item in value:
        if isinstance(item, str):
            parts.append(item)
            continue
        if not isinstance(item, Mapping):
            continue
        description = _text(item.get("description"))
        detail = item.get(detail_key)
        if detail_key == "hours":
            parts.append(f"{description} ({detail} h)" if detail is not None else description)
        else:
            unit = _text(item.get("unit"))
            amount = " ".join(str(p) for p in (detail, unit) if p not in (None, ""))
            parts.append(f"{description} {amount}".strip())
    return LEGACY_LIST_SEPARATOR.join(p for p in parts if p)


def _millis(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, Mapping):
        moment = parse_timestamp(value)
        return int(moment.timestamp() * 1000) if moment else 0
    if isinstance(value, str):
        moment = parse_timestamp(value)
        return int(moment.timestamp() * 1000) if moment else 0
    return int(value)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a timestamp from any stored representation.

    Accepts datetime, ISO-8601 strings, epoch milliseconds, and
    {seconds, nanoseconds} timestamp objects. Naive values are UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, Mapping):
        if "seconds" not in value:
            raise InvalidRecordError("timestamp object has no 'seconds'")
        seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidRecordError(f"unparseable timestamp {value!r}") from e
    else:
        raise InvalidRecordError(f"unsupported timestamp {value!r}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
