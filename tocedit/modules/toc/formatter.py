from __future__ import annotations

from typing import List, Sequence

from tocedit.modules.toc.indent import INDENT_UNIT
from tocedit.schemas.common import OutlineNode


def format_toc(items: Sequence[OutlineNode]) -> str:
    lines: List[str] = []

    def visit(node: OutlineNode, depth: int) -> None:
        prefix = INDENT_UNIT * depth
        if node.page is not None:
            lines.append(f"{prefix}{node.page + 1}: {node.title}\n")
        else:
            lines.append(f"{prefix}{node.title}\n")
        for child in node.children:
            visit(child, depth + 1)

    for item in items:
        visit(item, 0)
    return "".join(lines)
