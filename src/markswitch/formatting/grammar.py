"""Grammar configuration for the Markdown parser.

A ``ParserGrammar`` bundles the text pre-passes and extra markdown-it inline
rules a parser instance is built with. Nothing here touches a shared parser,
so parsers with different grammars can be used side by side.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from markdown_it.rules_inline import StateInline

from markswitch.config import Settings, get_settings


Preprocessor = Callable[[str], str]
InlineRuleFn = Callable[[StateInline, bool], bool]

HIGHLIGHT_RE = re.compile(r"==([^=]+)==")
# Fenced blocks (closed or running to the end) and inline code spans
CODE_RE = re.compile(
    r"^[ \t]{0,3}(`{3,}|~{3,})[^\n]*\n.*?(?:^[ \t]{0,3}\1[`~]*[ \t]*$|\Z)"
    r"|(`+)[^\n]*?\2",
    re.MULTILINE | re.DOTALL,
)

# **content** where content may hold single '*' but never '**', and the
# closing '**' is not followed by a third '*'
RELAXED_STRONG_RE = re.compile(r"\*\*((?:[^*]|\*(?!\*))+?)\*\*(?!\*)")


def highlight_to_markup(source: str) -> str:
    """Rewrite ==text== spans to <mark> tags before parsing.

    Code is left as written, so ``a == b == c`` in a fence or a code span
    stays literal.
    """
    pieces = []
    last = 0
    for match in CODE_RE.finditer(source):
        pieces.append(HIGHLIGHT_RE.sub(r"<mark>\1</mark>", source[last:match.start()]))
        pieces.append(match.group(0))
        last = match.end()
    pieces.append(HIGHLIGHT_RE.sub(r"<mark>\1</mark>", source[last:]))
    return "".join(pieces)


def relaxed_strong(state: StateInline, silent: bool) -> bool:
    """Inline rule for **strong** that tolerates punctuation at the edges.

    CommonMark refuses to close ``**Cloud(Free)**text`` because the closing
    delimiter is not right-flanking. This rule takes any ``**...**`` span
    instead and tokenizes its inner text recursively, so nested emphasis
    still works.
    """
    if silent:
        return False

    start = state.pos
    if state.src[start] != "*" or state.src.startswith("***", start):
        return False

    match = RELAXED_STRONG_RE.match(state.src, start, state.posMax)
    if match is None:
        return False

    old_max = state.posMax

    token = state.push("strong_open", "strong", 1)
    token.markup = "**"

    state.pos = match.start(1)
    state.posMax = match.end(1)
    state.md.inline.tokenize(state)

    token = state.push("strong_close", "strong", -1)
    token.markup = "**"

    state.pos = match.end()
    state.posMax = old_max
    return True


@dataclass(frozen=True)
class InlineRule:
    """A markdown-it inline rule and where it goes in the rule chain."""

    name: str
    rule: InlineRuleFn
    before: str = "emphasis"


RELAXED_STRONG_RULE = InlineRule("relaxed_strong", relaxed_strong)


@dataclass(frozen=True)
class ParserGrammar:
    """Constructor-time grammar of a MarkdownParser.

    Attributes:
        preprocessors: Text rewrites applied, in order, before parsing
        inline_rules: Extra inline rules registered on the parser's own
            markdown-it instance
        native_task_lists: Render "- [ ]" items as checkbox inputs while
            parsing (the literal-text fallback handles them otherwise)
    """

    preprocessors: tuple[Preprocessor, ...] = (highlight_to_markup,)
    inline_rules: tuple[InlineRule, ...] = (RELAXED_STRONG_RULE,)
    native_task_lists: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ParserGrammar":
        """Build the grammar described by the application settings."""
        if settings is None:
            settings = get_settings()
        return cls(
            inline_rules=(RELAXED_STRONG_RULE,) if settings.relaxed_bold else (),
            native_task_lists=settings.native_task_lists,
        )

    @classmethod
    def commonmark(cls) -> "ParserGrammar":
        """Stock emphasis rules, highlight pre-pass kept."""
        return cls(inline_rules=())
