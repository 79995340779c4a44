"""Pytest fixtures for markswitch tests."""

import pytest
from pathlib import Path

from markswitch import config
from markswitch.formatting.parser import MarkdownParser
from markswitch.formatting.serializer import MarkdownSerializer


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Drop the cached settings so each test reads its own environment."""
    monkeypatch.setattr(config, "_settings", None)
    yield
    config._settings = None


@pytest.fixture
def parser() -> MarkdownParser:
    """Parser with the default grammar."""
    return MarkdownParser()


@pytest.fixture
def serializer() -> MarkdownSerializer:
    """Serializer with the default options."""
    return MarkdownSerializer()


@pytest.fixture
def editor_markup() -> str:
    """Markup as the editor emits it: caption, task list and table."""
    return (
        "<h2>Release notes</h2>"
        "<p>^^^Figure 1^^^</p>"
        '<ul data-type="taskList">'
        '<li data-checked="true" data-type="taskItem"><label>'
        '<input type="checkbox" checked="checked"><span></span></label>'
        "<div><p>Done</p></div></li>"
        '<li data-checked="false" data-type="taskItem"><label>'
        '<input type="checkbox"><span></span></label>'
        "<div><p>Todo</p></div></li>"
        "</ul>"
        "<table><colgroup><col><col></colgroup><tbody>"
        '<tr><th colspan="1" rowspan="1"><p>Plan</p></th>'
        '<th colspan="1" rowspan="1"><p>Price</p></th></tr>'
        '<tr><td colspan="1" rowspan="1"><p>Free</p></td>'
        '<td colspan="1" rowspan="1"><p>0</p></td></tr>'
        "</tbody></table>"
    )


@pytest.fixture
def sample_markdown() -> str:
    """Markdown using every construct the editor supports."""
    return (
        "# Title\n"
        "\n"
        "Some **bold**, _italic_ and ==marked== text.\n"
        "\n"
        "- [x] Done\n"
        "- [ ] Todo\n"
        "\n"
        "| Plan | Price |\n"
        "| --- | --- |\n"
        "| Free | 0 |\n"
    )


@pytest.fixture
def markup_file(tmp_path: Path, editor_markup: str) -> Path:
    """Temporary markup file."""
    file_path = tmp_path / "note.html"
    file_path.write_text(editor_markup, encoding="utf-8")
    return file_path


@pytest.fixture
def markdown_file(tmp_path: Path, sample_markdown: str) -> Path:
    """Temporary Markdown file."""
    file_path = tmp_path / "note.md"
    file_path.write_text(sample_markdown, encoding="utf-8")
    return file_path
