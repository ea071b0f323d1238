"""
Printable document renderer.

Resolves a record's images, lays the record out into pages, paints the
pages with Pillow and writes them as one PDF. Image failures are
contained: the document is still produced, with a note where the image
would have been, and the failure is reported on the result.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from dataclasses import dataclass, field
from datetime import timezone

from PIL import Image, ImageDraw

from sitediary.domain.models import DiaryRecord
from sitediary.domain.settings import DocumentSettings
from sitediary.infrastructure.document.fonts import FontMetrics
from sitediary.infrastructure.document.layout import (
    DocumentLayout,
    ImageOp,
    PageLayout,
    RuleOp,
    TextOp,
)
from sitediary.infrastructure.images import ImageResolver, ResolutionFailed, ResolvedImage

logger = logging.getLogger(__name__)

PDF_CREATOR = "sitediary"


@dataclass
class RenderedDocument:
    """
    Result of rendering one record.

    Attributes:
        content: PDF bytes
        page_count: Number of pages
        failures: Images that could not be resolved
    """
    content: bytes
    page_count: int
    failures: list[ResolutionFailed] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    @property
    def issues(self) -> tuple[str, ...]:
        return tuple(f"image unavailable: {f.reason}" for f in self.failures)


class DocumentRenderer:
    """
    Render a record to PDF.

    Usage:
        renderer = DocumentRenderer(settings.document, ImageResolver())
        document = await renderer.render(record)
        Path("entry.pdf").write_bytes(document.content)
    """

    def __init__(
        self,
        settings: DocumentSettings | None = None,
        resolver: ImageResolver | None = None,
    ) -> None:
        self.settings = settings or DocumentSettings()
        self.resolver = resolver or ImageResolver()
        self.metrics = FontMetrics(self.settings.dpi)

    async def render(
        self,
        record: DiaryRecord,
        semaphore: asyncio.Semaphore | None = None,
    ) -> RenderedDocument:
        """
        Render one record.

        Args:
            record: Record to render
            semaphore: Image fetch limit shared with other renders

        Returns:
            RenderedDocument (partial when any image failed)
        """
        references = record.image_references
        results = await self.resolver.resolve_all(references, semaphore)
        images = dict(zip(references, results))

        pages = self.layout(record, images)
        content = await asyncio.to_thread(self.paint, record, pages)

        failures = [result for result in results if isinstance(result, ResolutionFailed)]
        for failure in failures:
            logger.warning(
                "Record %s: image unavailable (%s)", record.id, failure.reason
            )
        logger.debug(
            "Rendered document for %s: %d pages, %d bytes",
            record.id,
            len(pages),
            len(content),
        )
        return RenderedDocument(content=content, page_count=len(pages), failures=failures)

    def layout(self, record: DiaryRecord, images) -> list[PageLayout]:
        """Pure layout step (no painting)."""
        return DocumentLayout(self.settings, self.metrics).build(record, images)

    # ========================================================================
    # Painting
    # ========================================================================

    def paint(self, record: DiaryRecord, pages: list[PageLayout]) -> bytes:
        """Paint page layouts and encode them as one PDF."""
        canvases = [self._paint_page(page) for page in pages]

        moment = _document_time(record)
        buffer = io.BytesIO()
        canvases[0].save(
            buffer,
            "PDF",
            save_all=True,
            append_images=canvases[1:],
            resolution=float(self.settings.dpi),
            title=f"{self.settings.title} - {record.display_title}",
            author=record.created_by or "",
            subject=record.display_date,
            creator=PDF_CREATOR,
            creationDate=moment,
            modDate=moment,
        )
        return buffer.getvalue()

    def _paint_page(self, page: PageLayout) -> Image.Image:
        metrics = self.metrics
        size = (
            metrics.mm_to_px(self.settings.page_width_mm),
            metrics.mm_to_px(self.settings.page_height_mm),
        )
        canvas = Image.new("RGB", size, "white")
        draw = ImageDraw.Draw(canvas)

        for op in page.ops:
            if isinstance(op, TextOp):
                stroke = metrics.stroke_px(op.style)
                draw.text(
                    (metrics.mm_to_px(op.x), metrics.mm_to_px(op.y)),
                    op.text,
                    font=metrics.font(op.style),
                    fill=op.style.color,
                    stroke_width=stroke,
                    stroke_fill=op.style.color,
                )
            elif isinstance(op, RuleOp):
                draw.line(
                    [
                        (metrics.mm_to_px(op.x1), metrics.mm_to_px(op.y1)),
                        (metrics.mm_to_px(op.x2), metrics.mm_to_px(op.y2)),
                    ],
                    fill=op.color,
                    width=max(1, metrics.mm_to_px(op.width)),
                )
            elif isinstance(op, ImageOp):
                box = (max(1, metrics.mm_to_px(op.width)), max(1, metrics.mm_to_px(op.height)))
                canvas.paste(
                    _flatten(op.image).resize(box, Image.Resampling.LANCZOS),
                    (metrics.mm_to_px(op.x), metrics.mm_to_px(op.y)),
                )
        return canvas


def _flatten(image: ResolvedImage) -> Image.Image:
    """Decode to RGB, compositing any transparency onto white."""
    with Image.open(io.BytesIO(image.data)) as source:
        source.load()
        if source.mode in ("RGBA", "LA") or (source.mode == "P" and "transparency" in source.info):
            rgba = source.convert("RGBA")
            background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
            return Image.alpha_composite(background, rgba).convert("RGB")
        return source.convert("RGB")


def _document_time(record: DiaryRecord) -> time.struct_time:
    """PDF timestamps come from the record so output is reproducible."""
    if record.created_at is not None:
        return record.created_at.astimezone(timezone.utc).timetuple()
    return time.gmtime(record.last_modified / 1000)
