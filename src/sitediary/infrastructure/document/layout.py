"""
Page layout for the printable diary document.

Layout is a pure step: a record plus its resolved images become a list
of PageLayout objects holding positioned draw operations. Nothing here
touches pixels; the renderer paints the operations afterwards.

All coordinates are millimetres from the top-left page corner.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from sitediary.domain.models import DiaryRecord, format_quantity
from sitediary.domain.settings import DocumentSettings
from sitediary.infrastructure.document.fonts import FontMetrics, Styles, TextStyle
from sitediary.infrastructure.images import ImageResult, ResolvedImage

# Heading text for the free-text sections, in print order
FREE_TEXT_SECTIONS: tuple[tuple[str, str], ...] = (
    ("Progress Summary", "progress"),
    ("Safety Notes", "safety"),
    ("Materials Used", "materials"),
    ("Equipment Used", "equipment"),
    ("Labor Summary", "labor"),
    ("Issues/Delays", "issues"),
    ("Next Steps", "next_steps"),
    ("Notes", "notes"),
)

TABLE_COLUMNS: tuple[tuple[str, float], ...] = (
    ("No.", 0.07),
    ("Description", 0.35),
    ("Quantity", 0.13),
    ("Unit", 0.14),
    ("Equipment", 0.31),
)

EMPTY_SECTION_TEXT = "-"
NO_TASKS_TEXT = "No tasks recorded"
IMAGE_UNAVAILABLE_TEXT = "Image unavailable"

SECTION_GAP_MM = 6.0
IMAGE_GAP_MM = 10.0
HEADING_GAP_MM = 2.0
CELL_PADDING_MM = 1.5
FOOTER_SPACE_MM = 8.0
RULE_COLOR = (180, 180, 180)


# ============================================================================
# Draw operations
# ============================================================================

@dataclass(frozen=True)
class TextOp:
    """One line of text; (x, y) is the top-left of the line box."""
    x: float
    y: float
    text: str
    style: TextStyle


@dataclass(frozen=True)
class RuleOp:
    """A straight line."""
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.3
    color: tuple[int, int, int] = RULE_COLOR


@dataclass(frozen=True)
class ImageOp:
    """A resolved image scaled into a box."""
    x: float
    y: float
    width: float
    height: float
    image: ResolvedImage


DrawOp = TextOp | RuleOp | ImageOp


@dataclass
class PageLayout:
    """Draw operations for one page (number is 1-based)."""
    number: int
    ops: list[DrawOp] = field(default_factory=list)

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


# ============================================================================
# Layout builder
# ============================================================================

class DocumentLayout:
    """
    Lay out one record into pages.

    Usage:
        pages = DocumentLayout(settings, metrics).build(record, images)
    """

    def __init__(self, settings: DocumentSettings, metrics: FontMetrics) -> None:
        self.settings = settings
        self.metrics = metrics
        self.left = settings.margin_mm
        self.right = settings.page_width_mm - settings.margin_mm
        self.top = settings.margin_mm
        self.bottom = settings.page_height_mm - settings.margin_mm - FOOTER_SPACE_MM
        self.content_width = self.right - self.left
        # Metadata lines advance by line_height_mm; body and notes keep their proportion
        scale = settings.line_height_mm / Styles.META.line_mm
        self.meta_style = replace(Styles.META, line_mm=settings.line_height_mm)
        self.body_style = replace(Styles.BODY, line_mm=Styles.BODY.line_mm * scale)
        self.note_style = replace(Styles.NOTE, line_mm=Styles.NOTE.line_mm * scale)
        self.pages: list[PageLayout] = []
        self.y = self.top

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    @property
    def page(self) -> PageLayout:
        return self.pages[-1]

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    @property
    def at_page_top(self) -> bool:
        return self.y <= self.top

    def new_page(self) -> None:
        self.pages.append(PageLayout(number=len(self.pages) + 1))
        self.y = self.top

    def ensure_space(self, height: float) -> None:
        """Start a new page unless `height` fits below the cursor."""
        if self.remaining < height and not self.at_page_top:
            self.new_page()

    def line(self, text: str, style: TextStyle, x: float | None = None) -> None:
        self.page.ops.append(TextOp(self.left if x is None else x, self.y, text, style))
        self.y += style.line_mm

    def flow_lines(self, lines: list[str], style: TextStyle) -> None:
        """Emit lines, breaking the page whenever the next one does not fit."""
        for text in lines:
            if self.remaining < style.line_mm:
                self.new_page()
            self.line(text, style)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def build(self, record: DiaryRecord, images: Mapping[str, ImageResult]) -> list[PageLayout]:
        """Lay out every block of the record and add page footers."""
        self.pages = []
        self.new_page()

        self._title()
        self._metadata(record)
        self._text_section(
            "Weather Conditions",
            "\n".join(
                [
                    f"Temperature: {record.weather.temperature}",
                    f"Sky: {record.weather.sky}",
                    f"Precipitation: {record.weather.precipitation}",
                    f"Wind: {record.weather.wind}",
                ]
            ),
        )
        self._text_section(
            "Working Hours",
            f"Start Time: {record.working_hours.start_time}\n"
            f"End Time: {record.working_hours.end_time}",
        )
        self._task_table(record)
        for heading, attribute in FREE_TEXT_SECTIONS:
            self._text_section(heading, getattr(record, attribute))
        self._photos(record, images)
        self._signature(record, images)
        self._footers(record)
        return self.pages

    def _title(self) -> None:
        for text in self.metrics.wrap(self.settings.title, self.content_width, Styles.TITLE):
            self.line(text, Styles.TITLE)
        self.page.ops.append(RuleOp(self.left, self.y, self.right, self.y, width=0.6, color=Styles.NAVY))
        self.y += 5

    def _metadata(self, record: DiaryRecord) -> None:
        rows = [
            ("Project", record.project_title),
            ("Contract ID", record.contract_id),
            ("Location", record.site_location),
            ("Date", record.display_date),
            ("Status", record.status.value.capitalize()),
            ("Prepared by", record.created_by or EMPTY_SECTION_TEXT),
        ]
        for label, value in rows:
            lines = self.metrics.wrap(f"{label}: {value}", self.content_width, self.meta_style)
            self.flow_lines(lines, self.meta_style)
        self.y += SECTION_GAP_MM

    def _text_section(self, heading: str, body: str) -> None:
        """
        Heading plus wrapped body.

        The section starts on the current page only if the heading and
        either the whole body or the minimum block space fit.
        """
        lines = self.metrics.wrap(body.strip() or EMPTY_SECTION_TEXT, self.content_width, self.body_style)
        body_height = len(lines) * self.body_style.line_mm
        needed = Styles.HEADING.line_mm + min(body_height, self.settings.min_block_space_mm)
        self.ensure_space(needed)

        self.line(heading, Styles.HEADING)
        self.flow_lines(lines, self.body_style)
        self.y += SECTION_GAP_MM

    # ------------------------------------------------------------------
    # Task table
    # ------------------------------------------------------------------

    def _column_bounds(self) -> list[tuple[float, float]]:
        bounds = []
        x = self.left
        for _, fraction in TABLE_COLUMNS:
            width = self.content_width * fraction
            bounds.append((x, x + width))
            x += width
        return bounds

    def _row_height(self, cells: list[list[str]], style: TextStyle) -> float:
        return max(len(lines) for lines in cells) * style.line_mm + 2 * CELL_PADDING_MM

    def _wrap_cells(self, values: list[str], style: TextStyle) -> list[list[str]]:
        return [
            self.metrics.wrap(value, (end - start) - 2 * CELL_PADDING_MM, style)
            for value, (start, end) in zip(values, self._column_bounds())
        ]

    def _table_row(self, cells: list[list[str]], style: TextStyle, height: float) -> None:
        bounds = self._column_bounds()
        top = self.y
        for lines, (start, _) in zip(cells, bounds):
            for index, text in enumerate(lines):
                self.page.ops.append(
                    TextOp(start + CELL_PADDING_MM, top + CELL_PADDING_MM + index * style.line_mm, text, style)
                )
        self._row_rules(top, height, [start for start, _ in bounds])
        self.y = top + height

    def _row_rules(self, top: float, height: float, dividers: list[float]) -> None:
        bottom = top + height
        ops = self.page.ops
        ops.append(RuleOp(self.left, top, self.right, top))
        ops.append(RuleOp(self.left, bottom, self.right, bottom))
        for x in dividers + [self.right]:
            ops.append(RuleOp(x, top, x, bottom))

    def _task_table(self, record: DiaryRecord) -> None:
        header_cells = self._wrap_cells([name for name, _ in TABLE_COLUMNS], Styles.TABLE_HEADER)
        header_height = self._row_height(header_cells, Styles.TABLE_HEADER)

        rows: list[tuple[list[list[str]], float]] = []
        for number, task in enumerate(record.tasks, start=1):
            cells = self._wrap_cells(
                [
                    str(number),
                    task.description,
                    format_quantity(task.quantity),
                    task.unit,
                    ", ".join(task.equipment),
                ],
                Styles.TABLE,
            )
            rows.append((cells, self._row_height(cells, Styles.TABLE)))

        first_height = rows[0][1] if rows else Styles.TABLE.line_mm + 2 * CELL_PADDING_MM
        self.ensure_space(Styles.HEADING.line_mm + header_height + first_height)
        self.line("Tasks", Styles.HEADING)
        self._table_row(header_cells, Styles.TABLE_HEADER, header_height)

        if not rows:
            top = self.y
            self.page.ops.append(
                TextOp(self.left + CELL_PADDING_MM, top + CELL_PADDING_MM, NO_TASKS_TEXT, Styles.TABLE)
            )
            self._row_rules(top, first_height, [self.left])
            self.y = top + first_height
        else:
            for cells, height in rows:
                self._task_row(cells, height, header_cells, header_height)

        self.y += SECTION_GAP_MM

    def _task_row(
        self,
        cells: list[list[str]],
        height: float,
        header_cells: list[list[str]],
        header_height: float,
    ) -> None:
        """
        Draw one task row, continuing on the next page when needed.

        A row that fits on a fresh page moves there whole. A taller row is
        split between lines and every continuation page repeats the header.
        """
        style = Styles.TABLE
        page_space = self.bottom - self.top - header_height
        while height > self.remaining:
            fit = int((self.remaining - 2 * CELL_PADDING_MM) // style.line_mm)
            if height > page_space and fit > 0:
                head = [lines[:fit] for lines in cells]
                self._table_row(head, style, self._row_height(head, style))
                cells = [lines[fit:] for lines in cells]
                height = self._row_height(cells, style)
            self.new_page()
            self._table_row(header_cells, Styles.TABLE_HEADER, header_height)
        self._table_row(cells, style, height)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _image_box(self, image: ResolvedImage, width: float) -> tuple[float, float]:
        """Display size for an image: fixed width, aspect kept, fits a page."""
        width = min(width, self.content_width)
        height = width * image.aspect_ratio
        max_height = self.bottom - self.top - Styles.HEADING.line_mm - HEADING_GAP_MM
        if height > max_height:
            width, height = max_height / image.aspect_ratio, max_height
        return width, height

    def _image_block(self, result: ImageResult | None, width: float) -> None:
        if isinstance(result, ResolvedImage):
            box_width, box_height = self._image_box(result, width)
            if self.remaining < box_height:
                self.new_page()
            self.page.ops.append(ImageOp(self.left, self.y, box_width, box_height, result))
            self.y += box_height + IMAGE_GAP_MM
            return

        reason = getattr(result, "reason", "not resolved")
        self.line(f"{IMAGE_UNAVAILABLE_TEXT} ({reason})"[:120], self.note_style)
        self.y += IMAGE_GAP_MM / 2

    def _break_for_image(self, extra: float = 0.0) -> None:
        if self.remaining < self.settings.image_break_threshold_mm + extra:
            self.new_page()

    def _image_heading(self, heading: str, result: ImageResult | None, width: float) -> None:
        """Heading that starts on the same page as the image drawn below it."""
        needed = Styles.HEADING.line_mm + HEADING_GAP_MM
        if isinstance(result, ResolvedImage):
            needed += self._image_box(result, width)[1]
        self._break_for_image(max(0.0, needed - self.settings.image_break_threshold_mm))
        self.line(heading, Styles.HEADING)
        self.y += HEADING_GAP_MM
        self._image_block(result, width)

    def _photos(self, record: DiaryRecord, images: Mapping[str, ImageResult]) -> None:
        if not record.image_urls:
            return
        first, *rest = record.image_urls
        self._image_heading("Site Photos", images.get(first), self.settings.image_width_mm)
        for reference in rest:
            self._break_for_image()
            self._image_block(images.get(reference), self.settings.image_width_mm)

    def _signature(self, record: DiaryRecord, images: Mapping[str, ImageResult]) -> None:
        if record.signature:
            self._image_heading("Signature", images.get(record.signature), self.settings.signature_width_mm)

    # ------------------------------------------------------------------
    # Footers
    # ------------------------------------------------------------------

    def _footers(self, record: DiaryRecord) -> None:
        total = len(self.pages)
        y = self.settings.page_height_mm - self.settings.margin_mm - Styles.FOOTER.line_mm + 2
        caption = f"{record.display_title} - {record.display_date}".strip(" -")
        for page in self.pages:
            label = f"Page {page.number} of {total}"
            label_width = self.metrics.text_width_mm(label, Styles.FOOTER)
            page.ops.append(RuleOp(self.left, y - 1.5, self.right, y - 1.5, width=0.2))
            if caption:
                page.ops.append(TextOp(self.left, y, caption[:80], Styles.FOOTER))
            page.ops.append(TextOp(self.right - label_width, y, label, Styles.FOOTER))

