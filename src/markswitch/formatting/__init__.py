"""Conversion between the document tree, its markup form and Markdown."""

from markswitch.formatting.ir import (
    Node,
    NodeType,
    TextStyle,
    DocumentStructureError,
)
from markswitch.formatting.markup import parse_markup, render_markup, canonical_markup
from markswitch.formatting.grammar import ParserGrammar, InlineRule
from markswitch.formatting.parser import MarkdownParser
from markswitch.formatting.serializer import MarkdownSerializer

__all__ = [
    "Node",
    "NodeType",
    "TextStyle",
    "DocumentStructureError",
    "parse_markup",
    "render_markup",
    "canonical_markup",
    "ParserGrammar",
    "InlineRule",
    "MarkdownParser",
    "MarkdownSerializer",
]
