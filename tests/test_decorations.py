"""Tests for caption decorations."""

import pytest

from markswitch.config import Settings
from markswitch.core.decorations import (
    CaptionScanner,
    Decoration,
    DecorationKind,
)
from markswitch.formatting.ir import (
    blockquote,
    doc,
    heading,
    paragraph,
    text,
    TextStyle,
)
from markswitch.formatting.markup import parse_markup


@pytest.fixture
def scanner() -> CaptionScanner:
    return CaptionScanner()


class TestCaptionScanner:
    """Tests for CaptionScanner."""

    def test_caption_paragraph(self, scanner: CaptionScanner):
        """Test one node decoration plus both hidden markers."""
        document = doc(paragraph(text("^^^Figure 1^^^")))

        assert scanner.scan(document) == [
            Decoration(0, 16, "caption", DecorationKind.NODE),
            Decoration(1, 4, "hidden-marker", DecorationKind.INLINE),
            Decoration(12, 15, "hidden-marker", DecorationKind.INLINE),
        ]

    def test_markers_only(self, scanner: CaptionScanner):
        """Test that an empty caption is not decorated."""
        assert scanner.scan(doc(paragraph(text("^^^^^^")))) == []

    def test_ordinary_paragraph(self, scanner: CaptionScanner):
        assert scanner.scan(doc(paragraph(text("Figure 1")))) == []

    def test_marker_must_close_paragraph(self, scanner: CaptionScanner):
        assert scanner.scan(doc(paragraph(text("^^^Figure^^^ trailing")))) == []

    def test_heading_ignored(self, scanner: CaptionScanner):
        assert scanner.scan(doc(heading(1, text("^^^Title^^^")))) == []

    def test_positions_after_other_blocks(self, scanner: CaptionScanner):
        """Test ranges for a caption that is not the first block."""
        document = doc(
            paragraph(text("ab")),
            paragraph(text("^^^x^^^")),
        )
        decorations = scanner.scan(document)

        assert decorations[0] == Decoration(4, 13, "caption", DecorationKind.NODE)
        assert decorations[1].start == 5
        assert decorations[2].end == 12

    def test_nested_caption(self, scanner: CaptionScanner):
        document = doc(blockquote(paragraph(text("^^^quoted^^^"))))
        decorations = scanner.scan(document)

        assert len(decorations) == 3
        assert decorations[0].start == 1

    def test_styled_caption_runs(self, scanner: CaptionScanner):
        """Test that styling inside the caption does not matter."""
        document = doc(paragraph(
            text("^^^"),
            text("Fig", TextStyle.BOLD),
            text(" 1^^^"),
        ))

        assert len(scanner.scan(document)) == 3

    def test_multiline_caption(self, scanner: CaptionScanner):
        document = parse_markup("<p>^^^line one<br>line two^^^</p>")

        assert len(scanner.scan(document)) == 3

    def test_custom_marker(self):
        scanner = CaptionScanner(marker="%%", caption_style="figure")
        decorations = scanner.scan(doc(paragraph(text("%%x%%"))))

        assert decorations[0].style == "figure"
        assert decorations[2] == Decoration(4, 6, "hidden-marker")

    def test_marker_from_settings(self):
        scanner = CaptionScanner(settings=Settings(caption_marker="~~~"))

        assert scanner.matches("~~~x~~~")
        assert not scanner.matches("^^^x^^^")

    def test_callable(self, scanner: CaptionScanner):
        document = doc(paragraph(text("^^^x^^^")))

        assert scanner(document) == scanner.scan(document)


class TestDecoration:
    """Tests for the Decoration value object."""

    def test_immutable(self):
        decoration = Decoration(0, 1, "caption")

        with pytest.raises(AttributeError):
            decoration.start = 5

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            Decoration(5, 2, "caption")
