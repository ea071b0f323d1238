"""
Domain models for SiteDiary.

This module contains the core business entities:
- DiaryRecord: one daily site diary entry
- Weather, WorkingHours, Task: its nested sub-structures

These models are pure data structures with no I/O dependencies.
They are serialized to/from the local SQLite store and the sync
endpoint through to_dict() and sitediary.domain.normalize.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sitediary.domain.errors import InvalidRecordError


# ============================================================================
# Enumerations
# ============================================================================

class RecordStatus(Enum):
    """Lifecycle status of a diary record."""
    DRAFT = "draft"
    SUBMITTED = "submitted"

    @classmethod
    def from_value(cls, value: "RecordStatus | str | None") -> "RecordStatus":
        """Parse a status value; missing means draft."""
        if isinstance(value, RecordStatus):
            return value
        if value is None or str(value).strip() == "":
            return cls.DRAFT
        return cls(str(value).strip().lower())


# ============================================================================
# Nested Structures
# ============================================================================

@dataclass
class Weather:
    """
    Weather observed on site.

    All values are categorical strings picked from the form vocabulary
    and stored verbatim.
    """
    temperature: str = ""
    sky: str = ""
    precipitation: str = ""
    wind: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "temperature": self.temperature,
            "sky": self.sky,
            "precipitation": self.precipitation,
            "wind": self.wind,
        }


@dataclass
class WorkingHours:
    """Wall-clock start and end of the working day (no ordering enforced)."""
    start_time: str = ""
    end_time: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"startTime": self.start_time, "endTime": self.end_time}


@dataclass
class Task:
    """
    One task or activity carried out on site.

    Attributes:
        description: What was done
        equipment: Equipment used, an ordered set (duplicates dropped)
        quantity: Non-negative amount of work
        unit: Unit for quantity ("Hours", "Cubic Meters", ...)
    """
    description: str = ""
    equipment: list[str] = field(default_factory=list)
    quantity: float = 0
    unit: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, (int, float)):
            raise InvalidRecordError(f"Task quantity must be a number, got {self.quantity!r}")
        if not math.isfinite(self.quantity):
            raise InvalidRecordError(f"Task quantity must be finite, got {self.quantity}")
        if self.quantity < 0:
            raise InvalidRecordError(f"Task quantity must be non-negative, got {self.quantity}")
        seen: dict[str, None] = {}
        for item in self.equipment:
            seen.setdefault(item, None)
        self.equipment = list(seen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "equipment": list(self.equipment),
            "quantity": self.quantity,
            "unit": self.unit,
        }


# ============================================================================
# Core Domain Model
# ============================================================================

FREE_TEXT_FIELDS: tuple[str, ...] = (
    "progress",
    "safety",
    "materials",
    "equipment",
    "labor",
    "issues",
    "next_steps",
    "notes",
)


@dataclass
class DiaryRecord:
    """
    A single daily site diary entry.

    Attributes:
        id: Opaque unique identifier, immutable once assigned
        title: Short title of the entry
        project_title: Project the entry belongs to
        contract_id: Contract reference
        site_location: Where the work took place
        date: Diary date (ISO format: YYYY-MM-DD)
        status: draft or submitted
        weather: Weather sub-record
        working_hours: Start/end wall-clock times
        tasks: Ordered task list (may be empty)
        image_urls: Ordered references to site photos
        signature: Reference to the signature image, if signed
        created_by: User id supplied by the identity provider
        created_at: Set once on first persistence (UTC)
        last_modified: Epoch milliseconds of the last local write
    """
    id: str
    title: str = ""
    project_title: str = ""
    contract_id: str = ""
    site_location: str = ""
    date: str = ""
    status: RecordStatus = RecordStatus.DRAFT
    weather: Weather = field(default_factory=Weather)
    working_hours: WorkingHours = field(default_factory=WorkingHours)
    tasks: list[Task] = field(default_factory=list)
    image_urls: list[str] = field(default_factory=list)
    signature: str | None = None

    # Free-text sections
    progress: str = ""
    safety: str = ""
    materials: str = ""
    equipment: str = ""
    labor: str = ""
    issues: str = ""
    next_steps: str = ""
    notes: str = ""

    created_by: str | None = None
    created_at: datetime | None = None
    last_modified: int = 0

    @property
    def display_title(self) -> str:
        """Title for listings; falls back to project and date."""
        if self.title:
            return self.title
        if self.project_title:
            return f"{self.project_title} {self.date}".strip()
        return self.id

    @property
    def display_date(self) -> str:
        """The diary date, or the creation date when none was entered."""
        if self.date:
            return self.date
        if self.created_at is not None:
            return self.created_at.date().isoformat()
        return ""

    @property
    def image_references(self) -> list[str]:
        """All image references in render order (photos, then signature)."""
        refs = list(self.image_urls)
        if self.signature:
            refs.append(self.signature)
        return refs

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON wire shape (camelCase keys)."""
        return {
            "id": self.id,
            "title": self.title,
            "projectTitle": self.project_title,
            "contractId": self.contract_id,
            "siteLocation": self.site_location,
            "date": self.date,
            "status": self.status.value,
            "weather": self.weather.to_dict(),
            "workingHours": self.working_hours.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "imageUrls": list(self.image_urls),
            "signature": self.signature,
            "progress": self.progress,
            "safety": self.safety,
            "materials": self.materials,
            "equipment": self.equipment,
            "labor": self.labor,
            "issues": self.issues,
            "nextSteps": self.next_steps,
            "notes": self.notes,
            "createdBy": self.created_by,
            "createdAt": format_timestamp(self.created_at),
            "lastModified": self.last_modified,
        }


# ============================================================================
# Timestamp helpers
# ============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_millis() -> int:
    return int(utc_now().timestamp() * 1000)


def format_timestamp(value: datetime | None) -> str | None:
    """ISO-8601 string for a timestamp, or None."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def format_quantity(value: float) -> str:
    """Render a quantity the way it was entered (7.0 -> '7')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
