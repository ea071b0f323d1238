"""
Text styles and font metrics for the printable document.

Fonts come from Pillow's bundled default face scaled to the document
DPI, so measuring and painting use the same glyph widths on every
machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from PIL import ImageFont

MM_PER_INCH = 25.4
POINTS_PER_INCH = 72


@dataclass(frozen=True)
class TextStyle:
    """
    How a run of text is drawn.

    Attributes:
        size_pt: Font size in points
        line_mm: Vertical advance per line
        bold: Drawn with a stroke to thicken glyphs
        color: RGB fill
    """
    size_pt: float
    line_mm: float
    bold: bool = False
    color: tuple[int, int, int] = (0, 0, 0)


class Styles:
    """Named styles used by the layout."""
    NAVY = (32, 55, 100)
    GRAY = (110, 110, 110)

    TITLE = TextStyle(size_pt=20, line_mm=12, bold=True, color=NAVY)
    HEADING = TextStyle(size_pt=14, line_mm=8, bold=True, color=NAVY)
    META = TextStyle(size_pt=12, line_mm=7)
    BODY = TextStyle(size_pt=11, line_mm=6)
    TABLE = TextStyle(size_pt=10, line_mm=5)
    TABLE_HEADER = TextStyle(size_pt=10, line_mm=5, bold=True)
    NOTE = TextStyle(size_pt=10, line_mm=6, color=GRAY)
    FOOTER = TextStyle(size_pt=9, line_mm=5, color=GRAY)


class FontMetrics:
    """Measure and provide fonts at a fixed DPI."""

    def __init__(self, dpi: int) -> None:
        self.dpi = dpi

    def mm_to_px(self, mm: float) -> int:
        return round(mm / MM_PER_INCH * self.dpi)

    def px_to_mm(self, px: float) -> float:
        return px / self.dpi * MM_PER_INCH

    def font(self, style: TextStyle) -> ImageFont.FreeTypeFont:
        return _load_font(max(1, round(style.size_pt * self.dpi / POINTS_PER_INCH)))

    def stroke_px(self, style: TextStyle) -> int:
        return max(1, round(self.dpi / 150)) if style.bold else 0

    def text_width_mm(self, text: str, style: TextStyle) -> float:
        width_px = self.font(style).getlength(text) + 2 * self.stroke_px(style)
        return self.px_to_mm(width_px)

    def wrap(self, text: str, width_mm: float, style: TextStyle) -> list[str]:
        """
        Wrap text to a width.

        Explicit line breaks are kept; words wider than the line are
        split between characters. Empty text yields one empty line.
        """
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            lines.extend(self._wrap_paragraph(paragraph, width_mm, style))
        return lines

    def _wrap_paragraph(self, paragraph: str, width_mm: float, style: TextStyle) -> list[str]:
        words = paragraph.split()
        if not words:
            return [""]

        lines: list[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if self.text_width_mm(candidate, style) <= width_mm:
                current = candidate
                continue
            if current:
                lines.append(current)
            if self.text_width_mm(word, style) <= width_mm:
                current = word
                continue
            # Hard-break an overlong word
            current = ""
            for char in word:
                if current and self.text_width_mm(current + char, style) > width_mm:
                    lines.append(current)
                    current = ""
                current += char
        if current:
            lines.append(current)
        return lines


@lru_cache(maxsize=32)
def _load_font(size_px: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size_px)
