"""Editing session: switches a document between rich and Markdown modes."""

import logging
from enum import Enum
from typing import Awaitable, BinaryIO, Callable, Optional

from markswitch.core.decorations import CaptionScanner, DecorationSet
from markswitch.core.editor import ChangeListener, EditorHost
from markswitch.formatting.ir import image
from markswitch.formatting.markup import canonical_markup, parse_markup, render_markup
from markswitch.formatting.parser import MarkdownParser
from markswitch.formatting.serializer import MarkdownSerializer, normalize_quotes


logger = logging.getLogger(__name__)

ImageUploader = Callable[[BinaryIO], Awaitable[str]]


class Mode(str, Enum):
    """Which representation the user is editing."""

    RICH = "rich"
    MARKDOWN = "markdown"


class ModeError(Exception):
    """Operation not valid in the current mode."""

    pass


class ImageUploadError(Exception):
    """Image upload failed; nothing was inserted."""

    pass


class EditorSession:
    """Mode state machine around a hosting editor.

    In rich mode the editor's tree is authoritative and its changes are
    forwarded to the change listener. In Markdown mode the text buffer is
    authoritative; each edit is parsed and forwarded, and the tree is only
    replaced when switching back. The listener always receives canonical
    markup.
    """

    def __init__(
        self,
        editor: EditorHost,
        on_change: Optional[ChangeListener] = None,
        serializer: Optional[MarkdownSerializer] = None,
        parser: Optional[MarkdownParser] = None,
        uploader: Optional[ImageUploader] = None,
        scanner: Optional[CaptionScanner] = None,
    ) -> None:
        """Initialize the session.

        Args:
            editor: Editing engine holding the document
            on_change: Called with the document markup after every change
            serializer: Markup to Markdown converter
            parser: Markdown to markup converter
            uploader: Async image upload provider returning the image address
            scanner: Caption scanner registered as the editor's decorations
        """
        self.editor = editor
        self.on_change = on_change
        self.serializer = serializer or MarkdownSerializer()
        self.parser = parser or MarkdownParser()
        self.uploader = uploader
        self.scanner = scanner or CaptionScanner()

        self._mode = Mode.RICH
        self._markdown: Optional[str] = None
        self._dirty = False

        self.editor.register_decorations(self.scanner.scan)
        self.editor.on_change(self._editor_changed)

    @property
    def mode(self) -> Mode:
        """Which representation is being edited."""
        return self._mode

    @property
    def markdown(self) -> Optional[str]:
        """The Markdown buffer; None in rich mode."""
        return self._markdown

    @property
    def decorations(self) -> DecorationSet:
        """Caption decorations for the current document."""
        return self.scanner.scan(parse_markup(self.editor.get_markup()))

    def toggle(self) -> Mode:
        """Switch to the other mode and return the new one."""
        if self._mode is Mode.RICH:
            self._markdown = self.serializer.serialize(self.editor.get_markup())
            self._dirty = False
            self._mode = Mode.MARKDOWN
            logger.debug("Switched to Markdown mode (%d chars)", len(self._markdown))
            return self._mode

        if self._dirty:
            self.editor.set_markup(self.parser.parse(self._markdown or ""))
        else:
            logger.debug("Markdown buffer unchanged, keeping document")
        self._markdown = None
        self._dirty = False
        self._mode = Mode.RICH
        self._notify(self.editor.get_markup())
        return self._mode

    def update_markdown(self, markdown_text: str) -> str:
        """Replace the Markdown buffer and propagate it as markup.

        Returns:
            The canonical markup sent to the change listener

        Raises:
            ModeError: If the session is in rich mode
        """
        if self._mode is not Mode.MARKDOWN:
            raise ModeError("Markdown can only be edited in Markdown mode")

        self._markdown = markdown_text
        self._dirty = True
        markup = self.parser.parse(normalize_quotes(markdown_text))
        return self._notify(markup)

    def load(self, markup: str) -> bool:
        """Replace the content from outside without notifying the listener.

        Returns:
            True if the document changed
        """
        if canonical_markup(markup) == canonical_markup(self.editor.get_markup()):
            return False
        self.editor.set_markup(markup)
        if self._mode is Mode.MARKDOWN:
            self._markdown = self.serializer.serialize(self.editor.get_markup())
            self._dirty = False
        return True

    async def insert_image(self, payload: BinaryIO, alt: str = "") -> str:
        """Upload an image and append it to the document.

        Returns:
            The uploaded image's address

        Raises:
            ImageUploadError: If no uploader is configured or the upload fails
        """
        if self.uploader is None:
            raise ImageUploadError("No image upload provider configured")

        try:
            src = await self.uploader(payload)
        except Exception as e:
            logger.exception("Image upload failed")
            raise ImageUploadError(f"Upload failed: {e}") from e

        if not src:
            logger.error("Image upload returned no address")
            raise ImageUploadError("Upload returned no address")

        self._append_image(src, alt)
        return src

    def insert_image_url(self, src: str, alt: str = "") -> None:
        """Append an image given by address.

        Raises:
            ImageUploadError: If the address is blank
        """
        if not src or not src.strip():
            raise ImageUploadError("Image URL is empty")
        self._append_image(src.strip(), alt)

    def _append_image(self, src: str, alt: str) -> None:
        if self._mode is Mode.MARKDOWN and self._dirty:
            # Pending Markdown edits must reach the tree before it is extended
            self.editor.set_markup(self.parser.parse(self._markdown or ""))
            self._dirty = False

        document = parse_markup(self.editor.get_markup())
        document.content.append(image(src, alt=alt or None))
        self.editor.set_markup(render_markup(document), emit_update=True)

        if self._mode is Mode.MARKDOWN:
            self._markdown = self.serializer.serialize(self.editor.get_markup())
            self._notify(self.editor.get_markup())

    def _editor_changed(self, markup: str) -> None:
        if self._mode is Mode.RICH:
            self._notify(markup)

    def _notify(self, markup: str) -> str:
        canonical = canonical_markup(markup)
        if self.on_change is not None:
            self.on_change(canonical)
        return canonical
