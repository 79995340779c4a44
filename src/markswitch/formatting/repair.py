"""Structural repair passes over the intermediate HTML tree.

Both passes work in place on a BeautifulSoup tree and relabel nodes rather
than rebuilding them. Anything ambiguous is left as it is.
"""

import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag


logger = logging.getLogger(__name__)

# "[ ]", "[x]" or "[X]" at the start of an item, then whitespace or the end
TASK_MARKER_RE = re.compile(r"^\s*\[([ xX])\](\s|$)")


# =============================================================================
# Tables (serialize side)
# =============================================================================

def repair_tables(soup: BeautifulSoup) -> int:
    """Prepare every table for pipe-table conversion.

    - drop column width metadata (<colgroup>/<col>)
    - move a first body row holding header cells into a <thead>
    - relabel cell paragraphs as inline spans separated by <br>

    Returns:
        Number of tables processed
    """
    tables = soup.find_all("table")
    for table in tables:
        for colgroup in table.find_all("colgroup"):
            if colgroup.find_parent("table") is table:
                colgroup.decompose()
        for col in table.find_all("col", recursive=False):
            col.decompose()

        _promote_header_row(soup, table)

        for cell in table.find_all(["th", "td"]):
            if cell.find_parent("table") is table:
                _flatten_cell(soup, cell)

    if tables:
        logger.debug("Repaired %d table(s)", len(tables))
    return len(tables)


def _promote_header_row(soup: BeautifulSoup, table: Tag) -> None:
    if table.find("thead", recursive=False) is not None:
        return
    tbody = table.find("tbody", recursive=False)
    if tbody is None:
        return
    first_row = tbody.find("tr", recursive=False)
    if first_row is None or first_row.find("th", recursive=False) is None:
        # No header to promote; converted without one
        return

    thead = soup.new_tag("thead")
    thead.append(first_row.extract())
    tbody.insert_before(thead)


def _flatten_cell(soup: BeautifulSoup, cell: Tag) -> None:
    paragraphs = cell.find_all("p", recursive=False)
    for index, para in enumerate(paragraphs):
        para.name = "span"
        if index < len(paragraphs) - 1:
            para.insert_after(soup.new_tag("br"))


# =============================================================================
# Task lists (parse side)
# =============================================================================

def normalize_task_lists(soup: BeautifulSoup) -> int:
    """Tag list items that carry a checkbox as editor task items.

    Two strategies run in order: rendered checkbox inputs, then a literal
    "[ ]"/"[x]" prefix left in the item text. Items tagged by the first are
    skipped by the second.

    Returns:
        Number of items tagged
    """
    tagged = _tag_checkbox_items(soup)
    tagged += _tag_literal_items(soup)
    if tagged:
        logger.debug("Normalized %d task item(s)", tagged)
    return tagged


def _mark_task(item: Tag, checked: bool) -> None:
    item["data-type"] = "taskItem"
    item["data-checked"] = "true" if checked else "false"
    container = item.parent
    if isinstance(container, Tag) and container.name in ("ul", "ol"):
        container["data-type"] = "taskList"


def _tag_checkbox_items(soup: BeautifulSoup) -> int:
    count = 0
    for checkbox in soup.find_all("input", attrs={"type": "checkbox"}):
        item = checkbox.find_parent("li")
        if item is None or item.find_parent(["ul", "ol"]) is None:
            continue
        _mark_task(item, checkbox.has_attr("checked"))
        checkbox.decompose()
        count += 1
    return count


def _tag_literal_items(soup: BeautifulSoup) -> int:
    count = 0
    for item in soup.find_all("li"):
        if item.has_attr("data-type"):
            continue
        match = TASK_MARKER_RE.match(item.get_text())
        if match is None:
            continue

        _mark_task(item, match.group(1).lower() == "x")
        # Only the first text node carrying the marker is cleaned
        for node in item.find_all(string=True):
            if TASK_MARKER_RE.match(node):
                node.replace_with(NavigableString(TASK_MARKER_RE.sub("", node, count=1)))
                break
        count += 1
    return count
