"""
Indentation normalisation for hand-typed tables of contents.

Users indent with whatever number of spaces they like. Before parsing, every
leading space run is rewritten as tabs, one tab per nesting level, where the
width of a level is the greatest common divisor of all observed space runs.
"""

from __future__ import annotations

import re
from functools import reduce
from math import gcd
from typing import List

INDENT_UNIT = "\t"
LEADING_WS_RE = re.compile(r"^[ \t]*")


def _split_indent(line: str) -> tuple[str, str]:
    match = LEADING_WS_RE.match(line)
    indent = match.group(0) if match else ""
    return indent, line[len(indent) :]


def _space_run(line: str) -> int:
    if not line.strip():
        return 0
    indent, _ = _split_indent(line)
    return indent.count(" ")


def indent_width(text: str) -> int:
    """GCD of the leading space runs in `text`, or 0 when no line is space-indented."""
    runs = [run for run in map(_space_run, text.split("\n")) if run > 0]
    if not runs:
        return 0
    return reduce(gcd, runs)


def normalize_indentation(text: str) -> str:
    width = indent_width(text)
    if width <= 1:
        return text

    lines: List[str] = []
    for line in text.split("\n"):
        if not line.strip():
            lines.append(line)
            continue
        indent, content = _split_indent(line)
        tabs = indent.count(INDENT_UNIT)
        spaces = indent.count(" ")
        lines.append(INDENT_UNIT * (tabs + spaces // width) + content)
    return "\n".join(lines)
