"""markswitch: switch documents between rich text and Markdown."""

__version__ = "0.1.0"
