"""Markdown parser for converting Markdown text to editor markup."""

import html
import logging
from typing import Optional

from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from markswitch.formatting.grammar import ParserGrammar
from markswitch.formatting.ir import Node
from markswitch.formatting.markup import parse_markup
from markswitch.formatting.repair import normalize_task_lists


logger = logging.getLogger(__name__)


class MarkdownParser:
    """Parse Markdown into the markup form the editor loads.

    Pipeline:
    1. Grammar pre-passes (==highlight== to <mark> by default)
    2. markdown-it with GFM tables, strikethrough and inline HTML, plus the
       grammar's extra inline rules (relaxed **bold** by default)
    3. Task-list normalization of the rendered tree
    """

    def __init__(self, grammar: Optional[ParserGrammar] = None) -> None:
        """Initialize the parser.

        Args:
            grammar: Grammar to build this parser with. Defaults to the one
                described by the application settings.
        """
        self.grammar = grammar or ParserGrammar.from_settings()
        self._md = self._build_markdown_it(self.grammar)

    @staticmethod
    def _build_markdown_it(grammar: ParserGrammar) -> MarkdownIt:
        md = MarkdownIt("commonmark", {"html": True})
        md.enable(["table", "strikethrough"])
        if grammar.native_task_lists:
            md.use(tasklists_plugin)
        for rule in grammar.inline_rules:
            md.inline.ruler.before(rule.before, rule.name, rule.rule)
        return md

    def parse(self, markdown_text: str) -> str:
        """Convert Markdown text to markup.

        Never raises: if parsing fails the input comes back as a single
        unformatted paragraph.

        Args:
            markdown_text: The Markdown source

        Returns:
            Markup ready to replace the editor's document
        """
        try:
            source = markdown_text
            for preprocess in self.grammar.preprocessors:
                source = preprocess(source)
            rendered = self._md.render(source)
        except Exception:
            logger.exception("Markdown parsing failed, keeping input as plain text")
            return self.plain_paragraph(markdown_text)

        return self._normalize(rendered)

    def _normalize(self, rendered: str) -> str:
        try:
            soup = BeautifulSoup(rendered, "html.parser")
            normalize_task_lists(soup)
        except Exception:
            logger.exception("Task list normalization failed")
            return rendered.strip()
        return str(soup).strip()

    def parse_document(self, markdown_text: str) -> Node:
        """Convert Markdown text straight to a document tree."""
        return parse_markup(self.parse(markdown_text))

    @staticmethod
    def plain_paragraph(value: str) -> str:
        """Markup for text that could not be parsed."""
        return f"<p>{html.escape(value or '', quote=False)}</p>"
