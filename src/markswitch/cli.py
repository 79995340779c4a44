"""Command-line interface for markswitch."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from markswitch import __version__
from markswitch.config import get_settings
from markswitch.core.decorations import CaptionScanner, DecorationKind
from markswitch.formatting.ir import NodeType
from markswitch.formatting.markup import canonical_markup, parse_markup
from markswitch.formatting.parser import MarkdownParser
from markswitch.formatting.serializer import MarkdownSerializer

app = typer.Typer(
    name="markswitch",
    help="Convert documents between editor markup and Markdown.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"markswitch v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    """Send log records to the console through rich."""
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def read_input(path: Path) -> str:
    """Read a UTF-8 input file, exiting with an error if it is missing."""
    if not path.is_file():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def write_output(content: str, output: Optional[Path]) -> None:
    """Write to a file, or to stdout when no file is given."""
    if output is None:
        typer.echo(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    console.print(f"[green]Success:[/green] {output}")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Convert documents between editor markup and Markdown.

    Examples:

        markswitch to-markdown note.html -o note.md

        markswitch to-markup note.md --canonical

        markswitch captions note.html
    """
    setup_logging(verbose)


@app.command("to-markdown")
def to_markdown(
    path: Path = typer.Argument(..., help="Markup file to convert"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (default: stdout)",
    ),
) -> None:
    """Convert a markup file to Markdown."""
    markup = read_input(path)
    write_output(MarkdownSerializer().serialize(markup), output)


@app.command("to-markup")
def to_markup(
    path: Path = typer.Argument(..., help="Markdown file to convert"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (default: stdout)",
    ),
    canonical: bool = typer.Option(
        False,
        "--canonical",
        "-c",
        help="Emit the editor's own markup flavour",
    ),
) -> None:
    """Convert a Markdown file to markup."""
    markdown_text = read_input(path)
    markup = MarkdownParser().parse(markdown_text)
    if canonical:
        markup = canonical_markup(markup)
    write_output(markup, output)


@app.command()
def captions(
    path: Path = typer.Argument(..., help="Markup file to scan"),
) -> None:
    """List the caption paragraphs of a markup file."""
    document = parse_markup(read_input(path))
    decorations = CaptionScanner().scan(document)
    nodes = [d for d in decorations if d.kind is DecorationKind.NODE]

    if not nodes:
        console.print("[yellow]No captions found[/yellow]")
        return

    paragraphs = {
        pos: node for node, pos in document.descendants()
        if node.type is NodeType.PARAGRAPH
    }
    table = Table(title=f"Captions in {path.name}")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Style")
    table.add_column("Text")
    for decoration in nodes:
        paragraph = paragraphs.get(decoration.start)
        caption_text = paragraph.inline_text() if paragraph is not None else ""
        table.add_row(
            str(decoration.start),
            str(decoration.end),
            decoration.style,
            caption_text,
        )
    console.print(table)


if __name__ == "__main__":
    app()
