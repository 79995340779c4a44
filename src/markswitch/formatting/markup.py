"""Markup form of the document tree.

The markup form is the nested-tag (HTML) representation the editor hands to
the hosting application. ``parse_markup`` accepts both the editor's own
output and generic HTML (what the Markdown parser produces, or pasted
content); ``render_markup`` always emits the editor's flavour.
"""

import html
import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from markswitch.formatting.ir import (
    MAX_HEADING_LEVEL,
    Node,
    NodeType,
    TextStyle,
    hard_break,
    image,
    paragraph,
    text,
)


# Collapsible whitespace (non-breaking spaces survive, as in a browser)
WHITESPACE_RE = re.compile(r"[ \t\n\r\f]+")

# Inline styles that pasted content uses instead of <strong>/<em>
BOLD_STYLE_RE = re.compile(r"font-weight:\s*(bold|700|800|900)", re.IGNORECASE)
ITALIC_STYLE_RE = re.compile(r"font-style:\s*italic", re.IGNORECASE)

LANGUAGE_CLASS_PREFIX = "language-"

MARK_TAGS: dict[str, TextStyle] = {
    "strong": TextStyle.BOLD,
    "b": TextStyle.BOLD,
    "em": TextStyle.ITALIC,
    "i": TextStyle.ITALIC,
    "s": TextStyle.STRIKE,
    "del": TextStyle.STRIKE,
    "strike": TextStyle.STRIKE,
    "code": TextStyle.CODE,
    "mark": TextStyle.HIGHLIGHT,
}

# Outermost first; the order nested tags are opened when rendering
RENDER_ORDER: tuple[tuple[TextStyle, str], ...] = (
    (TextStyle.BOLD, "strong"),
    (TextStyle.ITALIC, "em"),
    (TextStyle.STRIKE, "s"),
    (TextStyle.HIGHLIGHT, "mark"),
    (TextStyle.CODE, "code"),
)

HEADING_TAGS = {f"h{level}" for level in range(1, 7)}
LIST_TAGS = {"ul", "ol"}
CONTAINER_TAGS = {
    "html", "body", "div", "section", "article", "main", "header", "footer",
    "figure", "thead", "tbody", "tfoot",
}
BLOCK_TAGS = (
    HEADING_TAGS | LIST_TAGS | CONTAINER_TAGS
    | {"p", "blockquote", "pre", "hr", "table"}
)
# Editor chrome and non-content elements
SKIPPED_TAGS = {
    "label", "input", "colgroup", "col", "script", "style", "head", "title",
    "meta", "link",
}
SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


# =============================================================================
# Markup -> tree
# =============================================================================

def parse_markup(markup: Optional[str]) -> Node:
    """Build a document tree from markup.

    Never raises on malformed input: unknown tags are transparent and stray
    inline content is wrapped in paragraphs.
    """
    soup = BeautifulSoup(markup or "", "html.parser")
    return Node(NodeType.DOC, content=_parse_blocks(soup.contents))


def _is_block(tag: Tag) -> bool:
    if tag.name in BLOCK_TAGS:
        return True
    if tag.name in MARK_TAGS or tag.name in {"a", "span", "br", "img"}:
        return False
    # Unknown wrapper: a block if it wraps blocks
    return tag.find(list(BLOCK_TAGS)) is not None


def _parse_blocks(elements: Iterable) -> list[Node]:
    blocks: list[Node] = []
    pending: list[Node] = []

    for element in list(elements):
        if isinstance(element, NavigableString):
            pending.extend(_parse_inline(element, TextStyle.NONE, None))
            continue
        if not isinstance(element, Tag) or element.name in SKIPPED_TAGS:
            continue
        if _is_block(element):
            blocks.extend(_wrap_inline(pending))
            pending = []
            blocks.extend(_parse_block(element))
        else:
            pending.extend(_parse_inline(element, TextStyle.NONE, None))

    blocks.extend(_wrap_inline(pending))
    return blocks


def _parse_block(tag: Tag) -> list[Node]:
    name = tag.name

    if name == "p":
        return _wrap_inline(_parse_inline_children(tag), keep_empty=True)
    if name in HEADING_TAGS:
        level = min(int(name[1]), MAX_HEADING_LEVEL)
        inline = [
            node for node in _parse_inline_children(tag)
            if node.type is not NodeType.IMAGE
        ]
        return [Node(
            NodeType.HEADING,
            content=_normalize_inline(inline),
            attrs={"level": level},
        )]
    if name in LIST_TAGS:
        return _parse_list(tag)
    if name == "blockquote":
        content = _parse_blocks(tag.contents) or [paragraph()]
        return [Node(NodeType.BLOCKQUOTE, content=content)]
    if name == "pre":
        return [_parse_code_block(tag)]
    if name == "hr":
        return [Node(NodeType.HORIZONTAL_RULE)]
    if name == "table":
        return _parse_table(tag)
    return _parse_blocks(tag.contents)


def _parse_list(tag: Tag) -> list[Node]:
    is_task_list = tag.get("data-type") == "taskList"
    items: list[Node] = []

    for child in tag.children:
        if isinstance(child, NavigableString):
            if isinstance(child, SKIPPED_STRINGS) or not child.strip():
                continue
            items.append(_list_entry(_wrap_inline(_parse_inline(
                child, TextStyle.NONE, None
            ))))
            continue
        if not isinstance(child, Tag):
            continue
        if child.name == "li":
            item = _list_entry(_parse_blocks(child.contents))
            if is_task_list:
                item.type = NodeType.TASK_ITEM
                item.attrs = {"checked": child.get("data-checked") == "true"}
            items.append(item)
        elif child.name in LIST_TAGS and items:
            # A list nested directly inside a list belongs to the previous item
            items[-1].content.extend(_parse_list(child))
        else:
            items.append(_list_entry(_parse_blocks([child])))

    if is_task_list:
        for item in items:
            if item.type is not NodeType.TASK_ITEM:
                item.type = NodeType.TASK_ITEM
                item.attrs = {"checked": False}
        return [Node(NodeType.TASK_LIST, content=items)]
    if tag.name == "ol":
        start = _int_attr(tag, "start", 1)
        return [Node(NodeType.ORDERED_LIST, content=items, attrs={"start": start})]
    return [Node(NodeType.BULLET_LIST, content=items)]


def _list_entry(blocks: list[Node]) -> Node:
    if not blocks or blocks[0].type is not NodeType.PARAGRAPH:
        blocks.insert(0, paragraph())
    return Node(NodeType.LIST_ITEM, content=blocks)


def _parse_code_block(pre: Tag) -> Node:
    code = pre.find("code")
    source = code if code is not None else pre
    language = pre.get("data-language") or language_from_classes(source)
    value = source.get_text()
    if value.endswith("\n"):
        value = value[:-1]
    return Node(
        NodeType.CODE_BLOCK,
        content=[text(value)] if value else [],
        attrs={"language": language},
    )


def language_from_classes(tag: Tag) -> Optional[str]:
    """Language named by a "language-xxx" class, if any."""
    for class_name in tag.get("class") or []:
        if class_name.startswith(LANGUAGE_CLASS_PREFIX):
            return class_name[len(LANGUAGE_CLASS_PREFIX):] or None
    return None


def _parse_table(tag: Tag) -> list[Node]:
    rows = [tr for tr in tag.find_all("tr") if tr.find_parent("table") is tag]
    parsed_rows: list[Node] = []

    for tr in rows:
        cells: list[Node] = []
        for cell in tr.find_all(["th", "td"], recursive=False):
            # Header cells only survive in the first row
            is_header = cell.name == "th" and not parsed_rows
            attrs = {}
            for key in ("colspan", "rowspan"):
                value = _int_attr(cell, key, 1)
                if value != 1:
                    attrs[key] = value
            cells.append(Node(
                NodeType.TABLE_HEADER if is_header else NodeType.TABLE_CELL,
                content=_parse_blocks(cell.contents) or [paragraph()],
                attrs=attrs,
            ))
        if cells:
            parsed_rows.append(Node(NodeType.TABLE_ROW, content=cells))

    if not parsed_rows:
        return []
    return [Node(NodeType.TABLE, content=parsed_rows)]


def _int_attr(tag: Tag, name: str, default: int) -> int:
    try:
        return int(tag.get(name, default))
    except (TypeError, ValueError):
        return default


def _parse_inline_children(tag: Tag) -> list[Node]:
    nodes: list[Node] = []
    for child in tag.children:
        nodes.extend(_parse_inline(child, TextStyle.NONE, None))
    return nodes


def _parse_inline(element, style: TextStyle, href: Optional[str]) -> list[Node]:
    if isinstance(element, NavigableString):
        if isinstance(element, SKIPPED_STRINGS) or not str(element):
            return []
        return [text(str(element), style, href)]
    if not isinstance(element, Tag) or element.name in SKIPPED_TAGS:
        return []

    name = element.name
    if name == "br":
        return [hard_break()]
    if name == "img":
        return [image(
            element.get("src", ""),
            alt=element.get("alt"),
            title=element.get("title"),
        )]

    if name in MARK_TAGS:
        style |= MARK_TAGS[name]
    elif name == "a":
        href = element.get("href") or href
    elif name == "span":
        css = element.get("style") or ""
        if BOLD_STYLE_RE.search(css):
            style |= TextStyle.BOLD
        if ITALIC_STYLE_RE.search(css):
            style |= TextStyle.ITALIC

    nodes: list[Node] = []
    for child in element.children:
        nodes.extend(_parse_inline(child, style, href))
    return nodes


def _normalize_inline(nodes: list[Node]) -> list[Node]:
    """Collapse whitespace like a browser and merge equally styled runs."""
    merged: list[Node] = []
    for node in nodes:
        if not node.is_text:
            merged.append(node)
            continue
        value = WHITESPACE_RE.sub(" ", node.text)
        previous = merged[-1] if merged else None
        if (
            previous is None
            or previous.type is NodeType.HARD_BREAK
            or (previous.is_text and previous.text.endswith(" "))
        ):
            value = value.lstrip(" ")
        if not value:
            continue
        if (
            previous is not None
            and previous.is_text
            and previous.style == node.style
            and previous.href == node.href
        ):
            merged[-1] = text(previous.text + value, node.style, node.href)
        else:
            merged.append(text(value, node.style, node.href))

    result: list[Node] = []
    for index, node in enumerate(merged):
        if node.is_text:
            following = merged[index + 1] if index + 1 < len(merged) else None
            if following is None or following.type is NodeType.HARD_BREAK:
                node = text(node.text.rstrip(" "), node.style, node.href)
            if not node.text:
                continue
        result.append(node)
    return result


def _wrap_inline(nodes: list[Node], keep_empty: bool = False) -> list[Node]:
    """Turn a run of inline nodes into paragraphs, lifting images out."""
    blocks: list[Node] = []
    segment: list[Node] = []
    for node in nodes:
        if node.type is NodeType.IMAGE:
            blocks.extend(_paragraph_of(segment))
            segment = []
            blocks.append(node)
        else:
            segment.append(node)
    blocks.extend(_paragraph_of(segment, keep_empty=keep_empty and not blocks))
    return blocks


def _paragraph_of(nodes: list[Node], keep_empty: bool = False) -> list[Node]:
    inline = _normalize_inline(nodes)
    if not inline and not keep_empty:
        return []
    return [Node(NodeType.PARAGRAPH, content=inline)]


# =============================================================================
# Tree -> markup
# =============================================================================

def render_markup(node: Node) -> str:
    """Render a tree (or a single node) as editor markup."""
    if node.type is NodeType.DOC:
        return _render_children(node.content)
    return _render_children([node])


def canonical_markup(markup: Optional[str]) -> str:
    """Normalize any markup to the editor's own flavour."""
    return render_markup(parse_markup(markup))


def _escape(value: str) -> str:
    return html.escape(value, quote=False)


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def _render_children(nodes: list[Node]) -> str:
    parts: list[str] = []
    # Marks shared by neighbouring runs stay open, as the editor renders them
    active: list[tuple[str, str]] = []

    for node in nodes:
        marks = _marks_of(node) if node.is_text else []
        keep = 0
        while (
            keep < len(active)
            and keep < len(marks)
            and active[keep] == marks[keep]
        ):
            keep += 1
        for _, close in reversed(active[keep:]):
            parts.append(close)
        active = active[:keep]
        for mark in marks[keep:]:
            parts.append(mark[0])
            active.append(mark)
        parts.append(_escape(node.text) if node.is_text else _render_node(node))

    for _, close in reversed(active):
        parts.append(close)
    return "".join(parts)


def _marks_of(node: Node) -> list[tuple[str, str]]:
    marks: list[tuple[str, str]] = []
    if node.href is not None:
        marks.append((
            f'<a href="{_attr(node.href)}" rel="noopener noreferrer nofollow" '
            f'target="_blank">',
            "</a>",
        ))
    for flag, tag in RENDER_ORDER:
        if flag in node.style:
            marks.append((f"<{tag}>", f"</{tag}>"))
    return marks


def _render_node(node: Node) -> str:
    inner = _render_children(node.content)
    kind = node.type

    if kind is NodeType.PARAGRAPH:
        return f"<p>{inner}</p>"
    if kind is NodeType.HEADING:
        level = node.attrs.get("level", 1)
        return f"<h{level}>{inner}</h{level}>"
    if kind is NodeType.BULLET_LIST:
        return f"<ul>{inner}</ul>"
    if kind is NodeType.ORDERED_LIST:
        start = node.attrs.get("start", 1)
        start_attr = f' start="{start}"' if start != 1 else ""
        return f"<ol{start_attr}>{inner}</ol>"
    if kind is NodeType.LIST_ITEM:
        return f"<li>{inner}</li>"
    if kind is NodeType.TASK_LIST:
        return f'<ul data-type="taskList">{inner}</ul>'
    if kind is NodeType.TASK_ITEM:
        checked = "true" if node.checked else "false"
        checkbox = (
            '<input type="checkbox" checked="checked">'
            if node.checked else '<input type="checkbox">'
        )
        return (
            f'<li data-checked="{checked}" data-type="taskItem">'
            f"<label>{checkbox}<span></span></label><div>{inner}</div></li>"
        )
    if kind is NodeType.TABLE:
        width = max(
            (sum(cell.attrs.get("colspan", 1) for cell in row.content)
             for row in node.content),
            default=0,
        )
        colgroup = "<colgroup>" + "<col>" * width + "</colgroup>"
        return f"<table>{colgroup}<tbody>{inner}</tbody></table>"
    if kind is NodeType.TABLE_ROW:
        return f"<tr>{inner}</tr>"
    if kind in (NodeType.TABLE_HEADER, NodeType.TABLE_CELL):
        tag = "th" if kind is NodeType.TABLE_HEADER else "td"
        colspan = node.attrs.get("colspan", 1)
        rowspan = node.attrs.get("rowspan", 1)
        return f'<{tag} colspan="{colspan}" rowspan="{rowspan}">{inner}</{tag}>'
    if kind is NodeType.BLOCKQUOTE:
        return f"<blockquote>{inner}</blockquote>"
    if kind is NodeType.CODE_BLOCK:
        language = node.attrs.get("language")
        class_attr = (
            f' class="{LANGUAGE_CLASS_PREFIX}{_attr(language)}"' if language else ""
        )
        return f"<pre><code{class_attr}>{_escape(node.text_content)}</code></pre>"
    if kind is NodeType.HORIZONTAL_RULE:
        return "<hr>"
    if kind is NodeType.IMAGE:
        attrs = "".join(
            f' {key}="{_attr(str(value))}"'
            for key, value in (
                ("src", node.attrs.get("src", "")),
                ("alt", node.attrs.get("alt")),
                ("title", node.attrs.get("title")),
            )
            if value is not None
        )
        return f"<img{attrs}>"
    if kind is NodeType.HARD_BREAK:
        return "<br>"
    if kind is NodeType.TEXT:
        return _escape(node.text)
    return inner
