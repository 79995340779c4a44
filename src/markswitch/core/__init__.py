"""Editing session, hosting editor and caption decorations."""

from markswitch.core.decorations import CaptionScanner, Decoration, DecorationKind
from markswitch.core.editor import EditorHost, InMemoryEditor
from markswitch.core.session import EditorSession, ImageUploadError, Mode, ModeError

__all__ = [
    "CaptionScanner",
    "Decoration",
    "DecorationKind",
    "EditorHost",
    "InMemoryEditor",
    "EditorSession",
    "ImageUploadError",
    "Mode",
    "ModeError",
]
