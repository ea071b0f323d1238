"""
Shared test fixtures.

Record factories, an opened in-memory record store, PNG generation and
an image resolver that serves references from memory.
"""

from __future__ import annotations

import base64
import io
from typing import Any, Callable

import pytest
from PIL import Image

from sitediary.domain.errors import ResourceResolutionFailure
from sitediary.domain.models import DiaryRecord
from sitediary.domain.normalize import normalize_record
from sitediary.infrastructure.images import ImageResolver
from sitediary.infrastructure.sqlite import RecordStore


def record_data(record_id: str = "rec-1", **overrides: Any) -> dict[str, Any]:
    """Raw wire-shaped record with every section filled in."""
    data: dict[str, Any] = {
        "id": record_id,
        "title": "Foundation pour",
        "projectTitle": "Harbour Bridge Upgrade",
        "contractId": "C-2024-017",
        "siteLocation": "Pier 4",
        "date": "2024-05-14",
        "status": "draft",
        "weather": {
            "temperature": "10-20°C",
            "sky": "Partly Cloudy",
            "precipitation": "None",
            "wind": "Light Breeze",
        },
        "workingHours": {"startTime": "07:00", "endTime": "16:30"},
        "tasks": [
            {
                "description": "Excavate footing",
                "equipment": ["Heavy Machinery", "Hand Tools"],
                "quantity": 6,
                "unit": "Hours",
            },
            {
                "description": "Pour concrete",
                "equipment": ["Power Tools"],
                "quantity": 12.5,
                "unit": "Cubic Meters",
            },
        ],
        "imageUrls": [],
        "signature": None,
        "progress": "Footings for grid A complete.",
        "safety": "Toolbox talk held at 07:00.",
        "materials": "Concrete 12.5 m3",
        "equipment": "Excavator, vibrator",
        "labor": "6 operatives",
        "issues": "",
        "nextSteps": "Strip formwork",
        "notes": "Inspector visited at noon.",
        "createdBy": "user-42",
        "createdAt": "2024-05-14T08:00:00+00:00",
    }
    data.update(overrides)
    return data


def make_record(record_id: str = "rec-1", **overrides: Any) -> DiaryRecord:
    return normalize_record(record_data(record_id, **overrides))


def make_png(width: int = 40, height: int = 20, mode: str = "RGB", color: Any = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, "PNG")
    return buffer.getvalue()


def png_data_url(width: int = 40, height: int = 20) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png(width, height)).decode("ascii")


class FakeClock:
    """Settable millisecond clock for the record store."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeImageResolver(ImageResolver):
    """
    Serves image bytes from a dict.

    References missing from `images` fail with "not found"; values that
    are exceptions are raised as the failure reason.
    """

    def __init__(self, images: dict[str, Any] | None = None):
        super().__init__()
        self.images = dict(images or {})
        self.requested: list[str] = []

    async def fetch_bytes(self, reference: str) -> bytes:
        self.requested.append(reference)
        value = self.images.get(reference)
        if value is None:
            raise ResourceResolutionFailure(reference, "not found")
        if isinstance(value, Exception):
            raise ResourceResolutionFailure(reference, str(value))
        return value


@pytest.fixture
def record_factory() -> Callable[..., DiaryRecord]:
    return make_record


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock):
    """Opened in-memory record store with a controllable clock."""
    record_store = RecordStore(":memory:", clock=clock).open()
    yield record_store
    record_store.close()


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def fake_resolver() -> FakeImageResolver:
    return FakeImageResolver()
