from __future__ import annotations

import re
from typing import Optional

from tocedit.configs.settings import settings
from tocedit.modules.preview.coordinator import RenderRequestCoordinator
from tocedit.utils.debounce import Debouncer
from tocedit.utils.text import line_at

PAGE_PREFIX_RE = re.compile(r"^\s*(\d+):")


def page_number_from_line(line: str) -> Optional[int]:
    match = PAGE_PREFIX_RE.match(line)
    return int(match.group(1)) if match else None


class SelectionTracker:
    """Turns cursor movement into debounced page requests for the coordinator."""

    def __init__(self, coordinator: RenderRequestCoordinator, delay: Optional[float] = None) -> None:
        self._coordinator = coordinator
        if delay is None:
            delay = settings.preview.debounce_ms / 1000
        self._debounced = Debouncer(self._forward, delay)

    def on_selection_change(self, text: str, cursor_offset: int) -> Optional[int]:
        return self.on_line(line_at(text, cursor_offset))

    def on_line(self, line: str) -> Optional[int]:
        page_number = page_number_from_line(line)
        self._debounced(page_number)
        return page_number

    async def show_initial(self, page_number: Optional[int] = 1) -> None:
        self._debounced.cancel()
        await self._coordinator.show_page(page_number, force=True)

    async def settle(self) -> None:
        await self._debounced.drain()

    def _forward(self, page_number: Optional[int]):
        return self._coordinator.show_page(page_number, force=False)
