"""Document tree model shared by every conversion stage.

The tree mirrors the rich-text editor's schema: block nodes hold an ordered
list of children, text leaves carry style flags (and an optional link
target). Positions follow the editor's convention so that decorations
computed here line up with what the rendering surface expects.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Iterator, Optional


# =============================================================================
# Node kinds and text styles
# =============================================================================

class NodeType(str, Enum):
    """Every node kind the editor schema knows about."""

    DOC = "doc"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    TASK_LIST = "taskList"
    TASK_ITEM = "taskItem"
    TABLE = "table"
    TABLE_ROW = "tableRow"
    TABLE_HEADER = "tableHeader"
    TABLE_CELL = "tableCell"
    BLOCKQUOTE = "blockquote"
    CODE_BLOCK = "codeBlock"
    HORIZONTAL_RULE = "horizontalRule"
    IMAGE = "image"
    HARD_BREAK = "hardBreak"
    TEXT = "text"


# Nodes without content that still occupy one position
LEAF_TYPES = frozenset({
    NodeType.HORIZONTAL_RULE,
    NodeType.IMAGE,
    NodeType.HARD_BREAK,
})

MAX_HEADING_LEVEL = 3

# Stands in for non-text inline leaves when a block's text is read
LEAF_PLACEHOLDER = "\ufffc"


class TextStyle(Flag):
    """Text mark flags (combinable with |)."""

    NONE = 0
    BOLD = auto()
    ITALIC = auto()
    STRIKE = auto()
    CODE = auto()
    HIGHLIGHT = auto()


class DocumentStructureError(Exception):
    """A document tree violates the editor schema."""

    pass


# =============================================================================
# Nodes
# =============================================================================

@dataclass
class Node:
    """A single node of the document tree.

    Attributes:
        type: The node kind
        content: Child nodes (empty for leaves and text)
        attrs: Kind-specific attributes (level, checked, language, src...)
        text: Text of a TEXT node
        style: Mark flags of a TEXT node
        href: Link target of a TEXT node, if it carries a link mark
    """

    type: NodeType
    content: list["Node"] = field(default_factory=list)
    attrs: dict = field(default_factory=dict)
    text: str = ""
    style: TextStyle = TextStyle.NONE
    href: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.type is NodeType.TEXT

    @property
    def is_leaf(self) -> bool:
        return self.type in LEAF_TYPES

    @property
    def bold(self) -> bool:
        """Check if this run is bold."""
        return TextStyle.BOLD in self.style

    @property
    def italic(self) -> bool:
        """Check if this run is italic."""
        return TextStyle.ITALIC in self.style

    @property
    def highlighted(self) -> bool:
        return TextStyle.HIGHLIGHT in self.style

    @property
    def checked(self) -> bool:
        """Checked flag of a task item (False for every other kind)."""
        return bool(self.attrs.get("checked", False))

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def node_size(self) -> int:
        """Number of positions this node occupies in its parent."""
        if self.is_text:
            return len(self.text)
        if self.is_leaf:
            return 1
        return self.content_size + 2

    @property
    def text_content(self) -> str:
        """Concatenated text of all descendant text nodes."""
        if self.is_text:
            return self.text
        return "".join(child.text_content for child in self.content)

    def inline_text(self) -> str:
        """Text of a textblock where every inline leaf counts as one character.

        Offsets into the returned string are offsets into the node's content.
        """
        parts: list[str] = []
        for child in self.content:
            if child.is_text:
                parts.append(child.text)
            else:
                parts.append(LEAF_PLACEHOLDER * child.node_size)
        return "".join(parts)

    def descendants(self, start: int = 0) -> Iterator[tuple["Node", int]]:
        """Yield (node, position) for every descendant, depth first.

        ``start`` is the position where this node's content begins; for the
        document root that is 0.
        """
        pos = start
        for child in self.content:
            yield child, pos
            if child.content:
                yield from child.descendants(pos + 1)
            pos += child.node_size

    def find_all(self, node_type: NodeType) -> list["Node"]:
        return [node for node, _ in self.descendants() if node.type is node_type]

    def skeleton(self) -> tuple:
        """Structural summary used to compare trees regardless of whitespace."""
        if self.is_text:
            return (self.type.value, self.style.value, self.href is not None)
        keys: tuple = ()
        if self.type is NodeType.HEADING:
            keys = (self.attrs.get("level", 1),)
        elif self.type is NodeType.TASK_ITEM:
            keys = (self.checked,)
        elif self.type is NodeType.CODE_BLOCK:
            keys = (self.attrs.get("language") or "",)
        elif self.type is NodeType.IMAGE:
            keys = (self.attrs.get("src", ""),)
        return (self.type.value, keys, tuple(c.skeleton() for c in self.content))

    def validate(self) -> None:
        """Check schema invariants, raising DocumentStructureError on failure."""
        _validate(self, parent=None, row_index=None)


def _validate(node: Node, parent: Optional[Node], row_index: Optional[int]) -> None:
    if not node.is_text and (node.style or node.href):
        raise DocumentStructureError(
            f"Marks attached to non-text node: {node.type.value}"
        )
    if node.type is NodeType.TASK_ITEM and (
        parent is None or parent.type is not NodeType.TASK_LIST
    ):
        raise DocumentStructureError("taskItem outside of a taskList")
    if node.type is NodeType.TABLE_HEADER and row_index not in (0, None):
        raise DocumentStructureError(
            f"tableHeader in row {row_index}; header cells belong to the first row"
        )
    if node.type is NodeType.HEADING:
        level = node.attrs.get("level", 1)
        if not 1 <= level <= MAX_HEADING_LEVEL:
            raise DocumentStructureError(f"Heading level out of range: {level}")

    for index, child in enumerate(node.content):
        # Rows take their index from the table; everything below inherits it
        child_row = index if node.type is NodeType.TABLE else row_index
        _validate(child, node, child_row)


# =============================================================================
# Builders
# =============================================================================

def text(
    value: str,
    style: TextStyle = TextStyle.NONE,
    href: Optional[str] = None,
) -> Node:
    return Node(NodeType.TEXT, text=value, style=style, href=href)


def doc(*blocks: Node) -> Node:
    return Node(NodeType.DOC, content=list(blocks))


def paragraph(*inline: Node) -> Node:
    return Node(NodeType.PARAGRAPH, content=list(inline))


def heading(level: int, *inline: Node) -> Node:
    return Node(NodeType.HEADING, content=list(inline), attrs={"level": level})


def bullet_list(*items: Node) -> Node:
    return Node(NodeType.BULLET_LIST, content=list(items))


def ordered_list(*items: Node, start: int = 1) -> Node:
    return Node(NodeType.ORDERED_LIST, content=list(items), attrs={"start": start})


def list_item(*blocks: Node) -> Node:
    return Node(NodeType.LIST_ITEM, content=list(blocks))


def task_list(*items: Node) -> Node:
    return Node(NodeType.TASK_LIST, content=list(items))


def task_item(checked: bool, *blocks: Node) -> Node:
    return Node(NodeType.TASK_ITEM, content=list(blocks), attrs={"checked": checked})


def table(*rows: Node) -> Node:
    return Node(NodeType.TABLE, content=list(rows))


def table_row(*cells: Node) -> Node:
    return Node(NodeType.TABLE_ROW, content=list(cells))


def table_header(*blocks: Node) -> Node:
    return Node(NodeType.TABLE_HEADER, content=list(blocks))


def table_cell(*blocks: Node) -> Node:
    return Node(NodeType.TABLE_CELL, content=list(blocks))


def blockquote(*blocks: Node) -> Node:
    return Node(NodeType.BLOCKQUOTE, content=list(blocks))


def code_block(code: str, language: Optional[str] = None) -> Node:
    content = [text(code)] if code else []
    return Node(NodeType.CODE_BLOCK, content=content, attrs={"language": language})


def horizontal_rule() -> Node:
    return Node(NodeType.HORIZONTAL_RULE)


def image(src: str, alt: Optional[str] = None, title: Optional[str] = None) -> Node:
    return Node(NodeType.IMAGE, attrs={"src": src, "alt": alt, "title": title})


def hard_break() -> Node:
    return Node(NodeType.HARD_BREAK)
