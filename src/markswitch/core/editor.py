"""Hosting editor interface and an in-memory implementation."""

import logging
from typing import Callable, Optional, Protocol

from markswitch.core.decorations import DecorationSet
from markswitch.formatting.ir import Node
from markswitch.formatting.markup import parse_markup, render_markup


logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]
DecorationProvider = Callable[[Node], DecorationSet]


class EditorHost(Protocol):
    """What the session needs from a rich-text editing engine."""

    def get_markup(self) -> str:
        ...

    def set_markup(self, markup: str, emit_update: bool = False) -> None:
        ...

    def on_change(self, listener: ChangeListener) -> None:
        ...

    def register_decorations(self, provider: DecorationProvider) -> None:
        ...


class InMemoryEditor:
    """Editor engine that keeps the document as a tree in memory.

    Decorations are recomputed on every mutation. Change listeners fire
    only for mutations made with ``emit_update=True`` (user edits), never
    for programmatic content replacement.
    """

    def __init__(self, markup: str = "") -> None:
        self._document = parse_markup(markup)
        self._listeners: list[ChangeListener] = []
        self._providers: list[DecorationProvider] = []
        self._decorations: DecorationSet = []

    @property
    def document(self) -> Node:
        """The current document tree."""
        return self._document

    @property
    def decorations(self) -> DecorationSet:
        """Decorations computed for the current document."""
        return list(self._decorations)

    def get_markup(self) -> str:
        return render_markup(self._document)

    def set_markup(self, markup: str, emit_update: bool = False) -> None:
        """Replace the document.

        Args:
            markup: New content in markup form
            emit_update: Notify change listeners, as a user edit would
        """
        self._document = parse_markup(markup)
        self._refresh_decorations()
        if emit_update:
            current = self.get_markup()
            for listener in list(self._listeners):
                listener(current)

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def register_decorations(self, provider: DecorationProvider) -> None:
        self._providers.append(provider)
        self._refresh_decorations()

    def _refresh_decorations(self) -> None:
        decorations: DecorationSet = []
        for provider in self._providers:
            decorations.extend(provider(self._document))
        self._decorations = decorations
        logger.debug("Recomputed %d decorations", len(decorations))


def create_editor(markup: str = "", provider: Optional[DecorationProvider] = None) -> InMemoryEditor:
    """Build an in-memory editor, optionally with a decoration provider."""
    editor = InMemoryEditor(markup)
    if provider is not None:
        editor.register_decorations(provider)
    return editor
