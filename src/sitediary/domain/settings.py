"""
Application settings domain model.

Controls store location, sync timeouts and batching, export concurrency
and the printable document layout. Every field has a default so an
empty configuration file is valid.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class StoreSettings(BaseModel):
    """Local record store settings."""

    path: str = Field(
        default="data/sitediary.db",
        description="SQLite database file (':memory:' for a throwaway store)",
    )


class SyncSettings(BaseModel):
    """
    Sync reconciler settings.

    Backoff delays are advisory: the reconciler reports them, callers
    decide when to retry.
    """

    endpoint: str | None = Field(
        default=None,
        description="Remote endpoint receiving pending records",
    )

    timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for one sync round trip",
        gt=0,
        le=600,
    )

    batch_size: int = Field(
        default=200,
        description="Maximum records pushed per invocation",
        ge=1,
        le=10_000,
    )

    backoff_base_seconds: float = Field(default=2.0, ge=0, le=3600)
    backoff_factor: float = Field(default=2.0, ge=1, le=10)
    backoff_max_seconds: float = Field(default=300.0, ge=0, le=86_400)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str | None) -> str | None:
        """Endpoint must be an http(s) URL when given."""
        if v is None or v == "":
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("Sync endpoint must be an http:// or https:// URL")
        return v


class ExportSettings(BaseModel):
    """Export coordinator and tabular/text exporter settings."""

    output_dir: str = Field(default="exports", description="Where the CLI writes artifacts")

    max_concurrency: int = Field(
        default=4,
        description="Records exported concurrently within a batch",
        ge=1,
        le=64,
    )

    image_fetch_concurrency: int = Field(
        default=4,
        description="Simultaneous image fetches across a batch",
        ge=1,
        le=64,
    )

    image_timeout_seconds: float = Field(default=20.0, gt=0, le=300)

    column_width_max: int = Field(
        default=60,
        description="Cap for inferred workbook column widths (characters)",
        ge=8,
        le=255,
    )

    list_separator: str = Field(default="; ", min_length=1)
    equipment_separator: str = Field(default=", ", min_length=1)
    text_separator: str = Field(default=",", min_length=1, max_length=4)

    report_name: str = Field(default="site-diary-report", min_length=1)
    archive_name: str = Field(default="site-diary-exports", min_length=1)
    file_prefix: str = Field(default="site-diary-")


class DocumentSettings(BaseModel):
    """
    Printable document layout.

    Lengths are millimetres; pages are rasterized at `dpi`.
    """

    title: str = "Daily Construction Site Diary"
    page_width_mm: float = Field(default=210.0, ge=50, le=1000)
    page_height_mm: float = Field(default=297.0, ge=50, le=1000)
    margin_mm: float = Field(default=20.0, ge=0, le=100)
    dpi: int = Field(default=150, ge=50, le=600)

    line_height_mm: float = Field(
        default=7.0,
        description="Metadata line advance; body and note lines scale with it",
        gt=0,
        le=50,
    )
    image_width_mm: float = Field(default=100.0, gt=0, le=1000)
    signature_width_mm: float = Field(default=100.0, gt=0, le=1000)

    image_break_threshold_mm: float = Field(
        default=60.0,
        description="Break the page before an image when less space remains",
        ge=0,
    )

    min_block_space_mm: float = Field(
        default=30.0,
        description="Minimum space needed to start a text section on the current page",
        ge=0,
    )

    @model_validator(mode="after")
    def validate_content_box(self) -> "DocumentSettings":
        """Margins must leave a usable content box."""
        if self.page_width_mm - 2 * self.margin_mm < 40:
            raise ValueError("Margins leave less than 40 mm of content width")
        if self.page_height_mm - 2 * self.margin_mm < 60:
            raise ValueError("Margins leave less than 60 mm of content height")
        if self.image_width_mm > self.page_width_mm - 2 * self.margin_mm:
            logger.warning(
                "Image width %.0f mm exceeds content width; images will be narrowed",
                self.image_width_mm,
            )
        return self


class AppSettings(BaseModel):
    """
    Top-level settings for the application.

    Loaded from JSON by sitediary.infrastructure.config_loader.
    """

    model_config = ConfigDict(extra="forbid")

    store: StoreSettings = Field(default_factory=StoreSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    document: DocumentSettings = Field(default_factory=DocumentSettings)
