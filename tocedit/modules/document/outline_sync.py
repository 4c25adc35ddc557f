"""
Writing an OutlineNode forest into a document's native outline.

PDF outlines are linked lists threaded through First/Next/Parent references, so
they are built with a cursor: `insert` places an item before the cursor and
leaves the cursor after it, `prev`/`next` move among siblings and `down`/`up`
enter and leave the child list of the item under the cursor. `NativeOutline`
implements that cursor over an in-memory tree; `write_native_outline` commits
the finished tree to a PyMuPDF document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Tuple

import fitz  # PyMuPDF

from tocedit.modules.document.errors import OutlineSyncError
from tocedit.schemas.common import OutlineNode, PageFitTarget
from tocedit.utils.logger import logger

AT_ITEM = 0
AT_EMPTY = 1
FAILED = -1

TargetFactory = Callable[[int], Optional[PageFitTarget]]


@dataclass
class NativeOutlineItem:
    title: str
    target: Optional[PageFitTarget] = None
    children: List["NativeOutlineItem"] = field(default_factory=list)


class OutlineCursor(Protocol):
    def insert(self, item: NativeOutlineItem) -> None: ...

    def next(self) -> int: ...

    def prev(self) -> int: ...

    def down(self) -> int: ...

    def up(self) -> int: ...


class NativeOutline:
    """In-memory outline store with a cursor-style building interface."""

    def __init__(self) -> None:
        self.items: List[NativeOutlineItem] = []
        self._siblings = self.items
        self._index = 0
        self._parents: List[Tuple[List[NativeOutlineItem], int]] = []

    def _position(self) -> int:
        return AT_ITEM if self._index < len(self._siblings) else AT_EMPTY

    def insert(self, item: NativeOutlineItem) -> None:
        self._siblings.insert(self._index, item)
        self._index += 1

    def next(self) -> int:
        if self._index >= len(self._siblings):
            return FAILED
        self._index += 1
        return self._position()

    def prev(self) -> int:
        if self._index == 0:
            return FAILED
        self._index -= 1
        return AT_ITEM

    def down(self) -> int:
        if self._index >= len(self._siblings):
            return FAILED
        self._parents.append((self._siblings, self._index))
        self._siblings = self._siblings[self._index].children
        self._index = 0
        return self._position()

    def up(self) -> int:
        if not self._parents:
            return FAILED
        self._siblings, self._index = self._parents.pop()
        return AT_ITEM

    def walk(self) -> Iterator[Tuple[int, NativeOutlineItem]]:
        """Pre-order (depth, item) pairs, depth starting at 1."""

        def visit(items: List[NativeOutlineItem], depth: int) -> Iterator[Tuple[int, NativeOutlineItem]]:
            for item in items:
                yield depth, item
                yield from visit(item.children, depth + 1)

        return visit(self.items, 1)


def sync_outline(
    cursor: OutlineCursor,
    items: Sequence[OutlineNode],
    make_target: TargetFactory = lambda page: PageFitTarget(page=page),
) -> None:
    for node in items:
        target = make_target(node.page) if node.page is not None else None
        cursor.insert(NativeOutlineItem(title=node.title, target=target))
        if node.children:
            cursor.prev()
            if cursor.down() != AT_EMPTY:
                raise OutlineSyncError(f"expected an empty child list under {node.title!r}")
            sync_outline(cursor, node.children, make_target)
            cursor.up()
        cursor.next()


def outline_from_toc(rows: Sequence[Sequence]) -> List[OutlineNode]:
    """Rebuild a forest from PyMuPDF `get_toc()` rows of `[level, title, page]`."""
    root = OutlineNode(title="")
    stack: List[Tuple[OutlineNode, int]] = [(root, 0)]
    for row in rows:
        level, title, page = row[0], row[1], row[2]
        while len(stack) > 1 and stack[-1][1] >= level:
            stack.pop()
        node = OutlineNode(title=(title or "").strip(), page=page - 1 if page and page > 0 else None)
        stack[-1][0].children.append(node)
        stack.append((node, level))
    return root.children


def write_native_outline(doc: "fitz.Document", outline: NativeOutline, collapse: int = 1) -> int:
    """Replace the outline of `doc` with `outline`; returns the number of items written."""
    rows: List[list] = []
    targets: List[Optional[PageFitTarget]] = []
    for depth, item in outline.walk():
        page = item.target.page + 1 if item.target is not None else -1
        rows.append([depth, item.title, page])
        targets.append(item.target)

    doc.set_toc(rows, collapse=collapse)
    if not rows:
        return 0

    xrefs = doc.get_outline_xrefs()
    if len(xrefs) != len(rows):
        logger.warning("Outline item count mismatch after write: %d rows, %d xrefs", len(rows), len(xrefs))
    for xref, target in zip(xrefs, targets):
        if target is None:
            continue
        doc.xref_set_key(xref, "Dest", f"[{doc.page_xref(target.page)} 0 R/Fit]")
        doc.xref_set_key(xref, "A", "null")
    return len(rows)
