"""Caption decorations.

A paragraph written as ``^^^text^^^`` is shown as a caption: the paragraph
gets a caption style and both marker triples are hidden. The markers stay in
the document, so undo and Markdown conversion still see them.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from markswitch.config import Settings, get_settings
from markswitch.formatting.ir import Node, NodeType


class DecorationKind(str, Enum):
    """Whether a decoration styles a whole node or a text range."""

    NODE = "node"
    INLINE = "inline"


@dataclass(frozen=True)
class Decoration:
    """A render-only annotation over a document range.

    Attributes:
        start: First position covered
        end: Position just past the covered range
        style: Style tag the rendering surface applies
        kind: Node or inline decoration
    """

    start: int
    end: int
    style: str
    kind: DecorationKind = DecorationKind.INLINE

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid decoration range: {self.start}..{self.end}")


DecorationSet = list[Decoration]


class CaptionScanner:
    """Find caption paragraphs and describe how to render them."""

    def __init__(
        self,
        marker: Optional[str] = None,
        caption_style: Optional[str] = None,
        hidden_style: Optional[str] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.marker = marker or settings.caption_marker
        self.caption_style = caption_style or settings.caption_style
        self.hidden_style = hidden_style or settings.hidden_marker_style
        escaped = re.escape(self.marker)
        self._pattern = re.compile(rf"{escaped}(.*){escaped}", re.DOTALL)

    def matches(self, paragraph_text: str) -> bool:
        """Check whether a paragraph's text is a caption."""
        # Both markers plus at least one character between them
        if len(paragraph_text) <= 2 * len(self.marker):
            return False
        return self._pattern.fullmatch(paragraph_text) is not None

    def scan(self, document: Node) -> DecorationSet:
        """Compute decorations for a document. Pure; safe to call on every change."""
        decorations: DecorationSet = []
        width = len(self.marker)

        for node, pos in document.descendants():
            if node.type is not NodeType.PARAGRAPH:
                continue
            if not self.matches(node.inline_text()):
                continue

            content_start = pos + 1
            content_end = pos + node.node_size - 1
            decorations.append(Decoration(
                pos, pos + node.node_size, self.caption_style, DecorationKind.NODE,
            ))
            decorations.append(Decoration(
                content_start, content_start + width, self.hidden_style,
            ))
            decorations.append(Decoration(
                content_end - width, content_end, self.hidden_style,
            ))

        return decorations

    __call__ = scan
