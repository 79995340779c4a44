"""Tests for the Markdown parser."""

import pytest

from markswitch.formatting import parser as parser_module
from markswitch.formatting.grammar import ParserGrammar, highlight_to_markup
from markswitch.formatting.ir import NodeType, TextStyle
from markswitch.formatting.parser import MarkdownParser


def runs_of(parser: MarkdownParser, source: str):
    """Text runs of the first block."""
    return parser.parse_document(source).content[0].content


class TestMarkdownParser:
    """Tests for the MarkdownParser class."""

    def test_parse_plain_text(self, parser: MarkdownParser):
        """Test parsing plain text without formatting."""
        assert parser.parse("Hello, world!") == "<p>Hello, world!</p>"

    def test_parse_bold_text(self, parser: MarkdownParser):
        """Test parsing bold text."""
        runs = runs_of(parser, "This is **bold** text")

        assert [run.text for run in runs] == ["This is ", "bold", " text"]
        assert [run.bold for run in runs] == [False, True, False]

    def test_parse_italic_text(self, parser: MarkdownParser):
        runs = runs_of(parser, "She _ran_ quickly")

        assert runs[1].text == "ran"
        assert runs[1].style == TextStyle.ITALIC

    def test_bold_with_parentheses(self, parser: MarkdownParser):
        """Test that punctuation inside bold stays one bold span."""
        runs = runs_of(parser, "**Tier(Free)**")

        assert len(runs) == 1
        assert runs[0].text == "Tier(Free)"
        assert runs[0].bold is True

    def test_bold_followed_by_word(self, parser: MarkdownParser):
        """Test bold closing on punctuation right before a letter."""
        runs = runs_of(parser, "**Cloud(Free)**tier")

        assert runs[0].text == "Cloud(Free)"
        assert runs[0].bold is True
        assert runs[1].text == "tier"
        assert runs[1].bold is False

    def test_bold_with_single_star(self, parser: MarkdownParser):
        runs = runs_of(parser, "**a*b**")

        assert len(runs) == 1
        assert runs[0].text == "a*b"
        assert runs[0].bold is True

    def test_nested_italic_in_bold(self, parser: MarkdownParser):
        """Test that the inside of a bold span is parsed again."""
        runs = runs_of(parser, "**bold _it_ more**")

        assert [run.text for run in runs] == ["bold ", "it", " more"]
        assert runs[1].style == TextStyle.BOLD | TextStyle.ITALIC

    def test_highlight(self, parser: MarkdownParser):
        runs = runs_of(parser, "==urgent==")

        assert runs[0].text == "urgent"
        assert runs[0].highlighted is True

    def test_highlight_markers_in_code_fence(self, parser: MarkdownParser):
        """Test that == inside a fenced block stays literal."""
        block = parser.parse_document("```py\nif a == b == c: pass\n```\n").content[0]

        assert block.type is NodeType.CODE_BLOCK
        assert block.text_content == "if a == b == c: pass"

    def test_highlight_markers_in_code_span(self, parser: MarkdownParser):
        runs = runs_of(parser, "see `x==y==z` here")

        assert runs[1].text == "x==y==z"
        assert runs[1].style == TextStyle.CODE
        assert not any(run.highlighted for run in runs)

    def test_strikethrough(self, parser: MarkdownParser):
        runs = runs_of(parser, "~~gone~~")

        assert runs[0].style == TextStyle.STRIKE

    def test_task_list(self, parser: MarkdownParser):
        """Test that checkbox items become task items."""
        document = parser.parse_document("- [x] Done\n- [ ] Todo\n")
        task_list = document.content[0]

        assert task_list.type is NodeType.TASK_LIST
        assert [item.type for item in task_list.content] == [NodeType.TASK_ITEM] * 2
        assert [item.checked for item in task_list.content] == [True, False]
        assert task_list.content[0].text_content == "Done"

    def test_task_list_without_checkbox_plugin(self):
        """Test the literal-marker fallback on its own."""
        parser = MarkdownParser(ParserGrammar(native_task_lists=False))
        document = parser.parse_document("- [x] Done\n")
        item = document.content[0].content[0]

        assert item.type is NodeType.TASK_ITEM
        assert item.checked is True
        assert item.text_content == "Done"

    def test_table(self, parser: MarkdownParser, sample_markdown: str):
        document = parser.parse_document(sample_markdown)
        tables = document.find_all(NodeType.TABLE)

        assert len(tables) == 1
        header, body = tables[0].content
        assert [c.type for c in header.content] == [NodeType.TABLE_HEADER] * 2
        assert [c.text_content for c in body.content] == ["Free", "0"]

    def test_code_fence_language(self, parser: MarkdownParser):
        block = parser.parse_document("```python\nx = 1\n```\n").content[0]

        assert block.type is NodeType.CODE_BLOCK
        assert block.attrs["language"] == "python"
        assert block.text_content == "x = 1"

    def test_empty_input(self, parser: MarkdownParser):
        assert parser.parse("") == ""


class TestParserGrammar:
    """Tests for per-parser grammar configuration."""

    def test_highlight_pre_pass(self):
        assert highlight_to_markup("a ==b== c") == "a <mark>b</mark> c"

    def test_highlight_pre_pass_skips_code(self):
        """Test that fences and code spans reach the parser unchanged."""
        fence = "```py\nif a == b == c: pass\n```"
        source = "==hot== `x==y==z`\n\n" + fence + "\n\n~~~\n==z==\n"

        assert highlight_to_markup(source) == (
            "<mark>hot</mark> `x==y==z`\n\n" + fence + "\n\n~~~\n==z==\n"
        )

    def test_commonmark_grammar(self):
        """Test that stock emphasis rules refuse the relaxed bold."""
        parser = MarkdownParser(ParserGrammar.commonmark())
        runs = runs_of(parser, "**Cloud(Free)**tier")

        assert all(not run.bold for run in runs)

    def test_grammars_coexist(self):
        """Test that building one parser does not change another."""
        relaxed = MarkdownParser()
        strict = MarkdownParser(ParserGrammar.commonmark())
        relaxed_again = MarkdownParser()

        source = "**Cloud(Free)**tier"
        assert runs_of(relaxed, source)[0].bold is True
        assert all(not run.bold for run in runs_of(strict, source))
        assert runs_of(relaxed_again, source)[0].bold is True
        assert relaxed._md is not strict._md

    def test_from_settings(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKSWITCH_RELAXED_BOLD", "false")
        monkeypatch.setenv("MARKSWITCH_NATIVE_TASKS", "false")
        grammar = ParserGrammar.from_settings()

        assert grammar.inline_rules == ()
        assert grammar.native_task_lists is False


class TestParserFailures:
    """Tests for fail-soft parsing."""

    def test_failing_grammar_returns_plain_paragraph(self):
        """Test that a crash in parsing keeps the input as escaped text."""
        def explode(source: str) -> str:
            raise RuntimeError("boom")

        parser = MarkdownParser(ParserGrammar(preprocessors=(explode,)))

        assert parser.parse("a < **b**") == "<p>a &lt; **b**</p>"

    def test_failing_normalization_returns_rendered(self, monkeypatch: pytest.MonkeyPatch):
        def explode(soup):
            raise RuntimeError("boom")

        monkeypatch.setattr(parser_module, "normalize_task_lists", explode)
        parser = MarkdownParser()

        assert parser.parse("plain") == "<p>plain</p>"
