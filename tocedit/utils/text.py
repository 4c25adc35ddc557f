from __future__ import annotations


def line_at(text: str, offset: int) -> str:
    """Return the line of `text` containing character `offset` (clamped to the text)."""
    offset = max(0, min(offset, len(text)))
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    if end == -1:
        end = len(text)
    return text[start:end]


def first_line_end(text: str) -> int:
    end = text.find("\n")
    return len(text) if end == -1 else end
