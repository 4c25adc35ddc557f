"""
Keeps the page preview consistent with the newest request.

Render responses come back in any order. Every render is tagged with a fresh
id from `latest_issued`; when a response arrives its id is compared with the
counter's value at arrival time, and anything older is dropped without touching
the preview.
"""

from __future__ import annotations

from typing import Optional, Protocol

from tocedit.schemas.common import RenderRequest, RenderResult
from tocedit.utils.logger import logger


class PageRenderer(Protocol):
    async def count_pages(self) -> int: ...

    async def render_page(self, page_number: int, request_id: int) -> RenderResult: ...


class PreviewSink(Protocol):
    def show(self, page_number: int, png: bytes) -> None: ...

    def clear(self) -> None: ...


class RenderRequestCoordinator:
    def __init__(self, renderer: PageRenderer, sink: PreviewSink) -> None:
        self._renderer = renderer
        self._sink = sink
        self.latest_issued = 0
        self.displayed_page: Optional[int] = None
        self._displayed_request_id: Optional[int] = None
        self._in_flight: Optional[RenderRequest] = None

    async def show_page(self, page_number: Optional[int], force: bool = False) -> None:
        if not force and self._already_requested(page_number):
            return
        logger.debug("Setting current line page number to: %s", page_number)

        page_count = await self._renderer.count_pages()
        if page_number is None or not 1 <= page_number <= page_count:
            self._clear()
            return
        if not force and self._already_requested(page_number):
            return

        request = self._issue(page_number)
        try:
            result = await self._renderer.render_page(request.page_number, request.request_id)
        except Exception as exc:
            self._settle(request)
            if request.request_id == self.latest_issued:
                logger.error("Failed to render page %d: %s", page_number, exc)
                self._hide()
            return
        self._settle(request)
        self._complete(request, result)

    def _already_requested(self, page_number: Optional[int]) -> bool:
        """True when the newest request, shown or still rendering, is for this page."""
        in_flight = self._in_flight
        if in_flight is not None and in_flight.request_id == self.latest_issued:
            return in_flight.page_number == page_number
        return (
            page_number == self.displayed_page
            and self._displayed_request_id == self.latest_issued
        )

    def _issue(self, page_number: int) -> RenderRequest:
        self.latest_issued += 1
        self._in_flight = RenderRequest(request_id=self.latest_issued, page_number=page_number)
        return self._in_flight

    def _settle(self, request: RenderRequest) -> None:
        if self._in_flight is request:
            self._in_flight = None

    def _complete(self, request: RenderRequest, result: RenderResult) -> None:
        if result.request_id != self.latest_issued:
            logger.debug(
                "Discarding stale render: request_id=%s latest=%s",
                result.request_id,
                self.latest_issued,
            )
            return
        if not result.png:
            logger.error("Rendered page %d was empty.", request.page_number)
            self._hide()
            return
        self._sink.show(request.page_number, result.png)
        self.displayed_page = request.page_number
        self._displayed_request_id = request.request_id

    def _clear(self) -> None:
        # Advance the counter so renders still in flight become stale.
        self.latest_issued += 1
        self._hide()

    def _hide(self) -> None:
        self._sink.clear()
        self.displayed_page = None
        self._displayed_request_id = None
