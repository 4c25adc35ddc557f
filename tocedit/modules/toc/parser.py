from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tocedit.modules.toc.indent import normalize_indentation
from tocedit.schemas.common import OutlineNode
from tocedit.utils.logger import logger


@dataclass
class TocLine:
    indent_level: int
    page: Optional[int]
    title: str
    line_no: int


@dataclass
class ParseReport:
    items: List[OutlineNode] = field(default_factory=list)
    ignored_lines: List[int] = field(default_factory=list)


INDENT_RE = re.compile(r"^[\t ]*")
PAGE_ENTRY_RE = re.compile(r"^(\d+):\s*(.*)$")
# Without a page prefix, a leading colon (":::", ": x") is malformed.
TITLE_ENTRY_RE = re.compile(r"^(?!:)(.*)$")


def scan_toc_lines(text: str) -> Tuple[List[TocLine], List[int]]:
    """Split normalised text into TocLines, collecting the line numbers that do not match."""
    entries: List[TocLine] = []
    ignored: List[int] = []
    for line_no, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        indent = INDENT_RE.match(line).group(0)
        content = line[len(indent) :]
        match = PAGE_ENTRY_RE.match(content)
        if match:
            page_str, title = match.groups()
        else:
            match = TITLE_ENTRY_RE.match(content)
            if not match:
                ignored.append(line_no)
                continue
            page_str, title = None, match.group(1)
        page: Optional[int] = None
        if page_str:
            page = int(page_str) - 1
            if page < 0:
                ignored.append(line_no)
                continue
        entries.append(
            TocLine(indent_level=len(indent), page=page, title=title.strip(), line_no=line_no)
        )
    return entries, ignored


def build_forest(entries: List[TocLine]) -> List[OutlineNode]:
    root = OutlineNode(title="")
    stack: List[Tuple[OutlineNode, int]] = [(root, -1)]
    for entry in entries:
        while len(stack) > 1 and stack[-1][1] >= entry.indent_level:
            stack.pop()
        node = OutlineNode(title=entry.title, page=entry.page)
        stack[-1][0].children.append(node)
        stack.append((node, entry.indent_level))
    return root.children


def parse_toc_report(text: str) -> ParseReport:
    entries, ignored = scan_toc_lines(normalize_indentation(text))
    for line_no in ignored:
        logger.warning("ToC line %d ignored: expected '<page>: <title>' or '<title>'", line_no)
    return ParseReport(items=build_forest(entries), ignored_lines=ignored)


def parse_toc(text: str) -> List[OutlineNode]:
    return parse_toc_report(text).items
