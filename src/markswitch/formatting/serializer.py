"""Markdown serializer for converting editor markup to Markdown text."""

import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag
from markdownify import ATX, MarkdownConverter, abstract_inline_conversion

from markswitch.formatting.ir import Node
from markswitch.formatting.markup import (
    BOLD_STYLE_RE,
    ITALIC_STYLE_RE,
    language_from_classes,
    render_markup,
)
from markswitch.formatting.repair import repair_tables


logger = logging.getLogger(__name__)

# Newlines left by block children of a task item
BLOCK_WHITESPACE_RE = re.compile(r"\s*\n\s*")
# A converted line that opens a list item
LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+]|\d{1,9}[.)])(?:\s|$)")
# Start of every non-empty line
LINE_START_RE = re.compile(r"^(?=.)", re.MULTILINE)
# Width of "- ", where nested blocks of a task item start
TASK_CONTENT_INDENT = "  "
# Keeps two neighbouring lists of the same kind from merging into one
LIST_SEPARATOR = "<!-- -->"
# A "<" in text that Markdown would read as the start of a tag
TAG_OPEN_RE = re.compile(r"<(?=[A-Za-z/!?])")

# Fenced blocks and inline code spans; the safety net never touches them
CODE_RE = re.compile(
    r"(^```.*?^```[ \t]*$|``[^\n]*?``|`[^`\n]*`)",
    re.MULTILINE | re.DOTALL,
)
# Raw tags only; "\<b>" is escaped text
STRONG_TAG_RE = re.compile(
    r"(?<!\\)<(strong|b)(?:\s[^>]*)?>(.*?)(?<!\\)</\1>", re.IGNORECASE | re.DOTALL
)
EM_TAG_RE = re.compile(
    r"(?<!\\)<(em|i)(?:\s[^>]*)?>(.*?)(?<!\\)</\1>", re.IGNORECASE | re.DOTALL
)
BR_TAG_RE = re.compile(r"(?<!\\)<br\s*/?>", re.IGNORECASE)

QUOTES = str.maketrans({
    "\u201c": '"',
    "\u201d": '"',
    "\u2018": "'",
    "\u2019": "'",
})

# Parents under which an image stands on its own line
IMAGE_BLOCK_PARENTS = {"[document]", "html", "body", "div", "li", "blockquote"}


def _code_language(pre: Tag) -> str:
    code = pre.find("code")
    return language_from_classes(code if code is not None else pre) or ""


def _follows_same_list(el: Tag) -> bool:
    sibling = el.previous_sibling
    while isinstance(sibling, NavigableString) and not sibling.strip():
        sibling = sibling.previous_sibling
    return isinstance(sibling, Tag) and sibling.name == el.name


def _is_empty_paragraph(tag: Tag) -> bool:
    return tag.name == "p" and not tag.get_text(strip=True) and tag.find(True) is None


def _opens_with_list(item: Tag) -> bool:
    container = item.find("div", recursive=False) or item
    for child in container.children:
        if isinstance(child, Tag):
            if child.name == "label" or _is_empty_paragraph(child):
                continue
            return child.name in ("ul", "ol")
        if isinstance(child, NavigableString) and child.strip():
            return False
    return False


def _split_task_content(text: str, opens_with_list: bool = False) -> tuple[str, str]:
    """Split converted task item content into its first line and nested blocks.

    The leading paragraph is collapsed onto the marker line; everything from
    the first blank line or later list item on stays as separate blocks.
    """
    if opens_with_list:
        return "", text.strip("\n")
    lines = text.strip().split("\n")
    for index, line in enumerate(lines):
        if not line.strip() or (index and LIST_MARKER_RE.match(line)):
            head = "\n".join(lines[:index])
            nested = "\n".join(lines[index:]).strip("\n")
            return BLOCK_WHITESPACE_RE.sub(" ", head).strip(), nested
    return BLOCK_WHITESPACE_RE.sub(" ", text).strip(), ""


class EditorMarkdownConverter(MarkdownConverter):
    """markdownify converter for the editor's markup."""

    convert_em = abstract_inline_conversion(lambda self: "_")
    convert_i = convert_em
    convert_mark = abstract_inline_conversion(lambda self: "==")

    def convert_span(self, el, text, parent_tags):
        # Pasted content styles bold/italic inline
        css = el.get("style") or ""
        if ITALIC_STYLE_RE.search(css):
            text = self.convert_em(el, text, parent_tags)
        if BOLD_STYLE_RE.search(css):
            text = self.convert_strong(el, text, parent_tags)
        return text

    def convert_label(self, el, text, parent_tags):
        parent = el.parent
        if isinstance(parent, Tag) and parent.get("data-type") == "taskItem":
            return ""
        return text

    def escape(self, text, parent_tags):
        # Literal tag-like text must not come back as markup
        return TAG_OPEN_RE.sub(r"\\<", super().escape(text, parent_tags))

    def convert_li(self, el, text, parent_tags):
        if el.get("data-type") != "taskItem":
            return super().convert_li(el, text, parent_tags)

        marker = "- [x] " if el.get("data-checked") == "true" else "- [ ] "
        head, nested = _split_task_content(text or "", _opens_with_list(el))
        content = marker + head
        if nested:
            separator = "\n" if LIST_MARKER_RE.match(nested) else "\n\n"
            content += separator + LINE_START_RE.sub(TASK_CONTENT_INDENT, nested)
        return content + "\n"

    def convert_ul(self, el, text, parent_tags):
        if el.get("data-type") != "taskList":
            text = super().convert_ul(el, text, parent_tags)
        elif "li" in parent_tags:
            text = "\n" + text.rstrip()
        else:
            text = "\n\n" + text + "\n\n"
        return self._separate_lists(el, text, parent_tags)

    def convert_ol(self, el, text, parent_tags):
        text = super().convert_ol(el, text, parent_tags)
        return self._separate_lists(el, text, parent_tags)

    def _separate_lists(self, el, text, parent_tags):
        if not _follows_same_list(el):
            return text
        if "li" in parent_tags:
            return "\n" + LIST_SEPARATOR + text
        return "\n\n" + LIST_SEPARATOR + text

    def convert_img(self, el, text, parent_tags):
        alt = el.get("alt") or ""
        src = el.get("src") or ""
        title = el.get("title") or ""
        title_part = ' "%s"' % title.replace('"', r"\"") if title else ""
        markdown = "![%s](%s%s)" % (alt, src, title_part)
        parent = el.parent
        if parent is not None and parent.name in IMAGE_BLOCK_PARENTS:
            return "\n\n" + markdown + "\n\n"
        return markdown

    def convert_br(self, el, text, parent_tags):
        # Pipe-table cells are single-line
        if "td" in parent_tags or "th" in parent_tags:
            return "<br>"
        return super().convert_br(el, text, parent_tags)

    def convert_table(self, el, text, parent_tags):
        return "\n\n" + text.strip() + "\n\n"

    def convert_td(self, el, text, parent_tags):
        cell = (text or "").strip().replace("\n", " ").replace("|", r"\|")
        return " " + cell + " |"

    convert_th = convert_td

    def convert_tr(self, el, text, parent_tags):
        row = "|" + text + "\n"
        table = el.find_parent("table")
        if table is None or table.find("tr") is not el:
            return row

        cells = el.find_all(["td", "th"], recursive=False)
        width = max(len(cells), 1)
        separator = "| " + " | ".join(["---"] * width) + " |\n"
        is_header = el.parent.name == "thead" or all(c.name == "th" for c in cells)
        if is_header:
            return row + separator
        # Pipe tables need a header row, even an empty one
        empty_header = "|" + " |" * width + "\n"
        return empty_header + separator + row


DEFAULT_OPTIONS = {
    "heading_style": ATX,
    "bullets": "-",
    "strong_em_symbol": "*",
    "autolinks": False,
    "escape_misc": False,
    "code_language_callback": _code_language,
}


def normalize_inline_tags(markdown: str) -> str:
    """Rewrite raw bold/italic/line-break tags left in converted output.

    Only text outside fenced blocks and code spans is touched, and a <br>
    inside a pipe-table row stays (it is the only way to break a cell).
    Already clean Markdown comes back unchanged.
    """
    pieces = CODE_RE.split(markdown)
    for index in range(0, len(pieces), 2):
        piece = STRONG_TAG_RE.sub(r"**\2**", pieces[index])
        pieces[index] = EM_TAG_RE.sub(r"_\2_", piece)
    markdown = "".join(pieces)

    protected = [match.span() for match in CODE_RE.finditer(markdown)]

    def replace_break(match: re.Match) -> str:
        pos = match.start()
        if any(start <= pos < end for start, end in protected):
            return match.group(0)
        line_start = markdown.rfind("\n", 0, pos) + 1
        if markdown[line_start:pos].lstrip().startswith("|"):
            return match.group(0)
        return "  \n"

    return BR_TAG_RE.sub(replace_break, markdown)


def normalize_quotes(markdown: str) -> str:
    """Straighten typographic quotes."""
    return markdown.translate(QUOTES)


class MarkdownSerializer:
    """Serialize editor markup into Markdown.

    Pipeline:
    1. Table repair on the markup tree
    2. markdownify conversion with the editor's task-list, highlight,
       image and pipe-table rules
    3. Safety net for raw bold/italic/line-break tags
    4. Typographic quote normalization
    """

    def __init__(self, **converter_options) -> None:
        """Initialize the serializer.

        Args:
            converter_options: markdownify options overriding the defaults
        """
        options = dict(DEFAULT_OPTIONS)
        options.update(converter_options)
        self.converter = EditorMarkdownConverter(**options)

    def serialize(self, markup: str) -> str:
        """Convert markup to Markdown.

        Never raises: if conversion fails the markup is returned as it is.

        Args:
            markup: The editor's markup

        Returns:
            Markdown text
        """
        try:
            soup = BeautifulSoup(markup or "", "html.parser")
            try:
                repair_tables(soup)
            except Exception:
                logger.exception("Table repair failed, converting tables as they are")
                soup = BeautifulSoup(markup or "", "html.parser")

            markdown = self.converter.convert_soup(soup)
            markdown = normalize_inline_tags(markdown)
            return normalize_quotes(markdown)
        except Exception:
            logger.exception("Markdown serialization failed, returning markup unconverted")
            return markup

    def serialize_document(self, document: Node) -> str:
        """Convert a document tree to Markdown."""
        return self.serialize(render_markup(document))
