"""
Printable document package.

- fonts.py: text styles and Pillow font metrics
- layout.py: pure page layout (TextOp, RuleOp, ImageOp per PageLayout)
- renderer.py: DocumentRenderer painting layouts into a PDF
"""

from sitediary.infrastructure.document.layout import (
    DocumentLayout,
    ImageOp,
    PageLayout,
    RuleOp,
    TextOp,
)
from sitediary.infrastructure.document.renderer import DocumentRenderer, RenderedDocument

__all__ = [
    "DocumentLayout",
    "DocumentRenderer",
    "ImageOp",
    "PageLayout",
    "RenderedDocument",
    "RuleOp",
    "TextOp",
]
