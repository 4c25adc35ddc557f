from __future__ import annotations

from typing import List, Optional

import fitz  # PyMuPDF

from tocedit.configs.settings import settings
from tocedit.modules.document.errors import OutlineLoadError, PasswordRequiredError
from tocedit.modules.document.outline_sync import (
    NativeOutline,
    outline_from_toc,
    sync_outline,
    write_native_outline,
)
from tocedit.modules.toc.formatter import format_toc
from tocedit.modules.toc.parser import parse_toc
from tocedit.schemas.common import OutlineNode, PageFitTarget, RenderResult
from tocedit.utils.logger import logger


class DocumentEngine:
    """
    Owns one PyMuPDF document. Only the document worker thread talks to it;
    every public method is an operation of the worker RPC surface.
    """

    def __init__(self, render_scale: float | None = None, producer: str | None = None) -> None:
        self.doc: Optional[fitz.Document] = None
        self.unlocked = False
        self.file_name: Optional[str] = None
        self.render_scale = render_scale or settings.preview.render_scale
        self.producer = producer or settings.output.producer

    @property
    def is_available(self) -> bool:
        return self.doc is not None and self.unlocked

    def open_file(self, data: bytes, file_name: str) -> None:
        logger.info("Opening file: %s", file_name)
        self.close()
        self.doc = fitz.open(stream=data, filetype="pdf")
        self.file_name = file_name
        self.unlocked = not self.doc.needs_pass
        if not self.unlocked:
            logger.warning("File needs a password: %s", file_name)
            raise PasswordRequiredError(file_name)
        logger.info("File opened: pages=%d", self.doc.page_count)

    def authenticate_password(self, password: str) -> bool:
        if self.doc is None:
            logger.error("authenticate_password called before open_file.")
            return False
        logger.info("Attempting to authenticate with password.")
        authenticated = bool(self.doc.authenticate(password))
        if authenticated:
            self.unlocked = True
            logger.info("Password authentication successful.")
        else:
            logger.warning("Password authentication failed.")
        return authenticated

    def get_outline(self) -> Optional[List[OutlineNode]]:
        if not self.is_available:
            logger.error("get_outline called before a document is available.")
            return None
        try:
            rows = self.doc.get_toc(simple=True)
        except Exception as exc:
            logger.error("Failed to load outline: %s", exc)
            raise OutlineLoadError("Failed to load outline") from exc
        logger.info("Outline loaded: %d entries", len(rows))
        return outline_from_toc(rows)

    def set_outline(self, items: List[OutlineNode]) -> None:
        if not self.is_available:
            logger.error("set_outline called before a document is available.")
            return
        logger.info("Setting new outline.")
        if self.doc.get_toc(simple=True):
            logger.debug("Deleting existing outline.")
            self.doc.set_toc([])

        native = NativeOutline()
        sync_outline(native, items, self._page_fit_target)
        written = write_native_outline(self.doc, native)
        logger.info("New outline set: %d entries", written)

    def _page_fit_target(self, page: int) -> Optional[PageFitTarget]:
        if page >= self.doc.page_count:
            logger.warning(
                "Page %d is outside the document (%d pages); entry left without a target",
                page + 1,
                self.doc.page_count,
            )
            return None
        return PageFitTarget(page=page)

    def get_file(self) -> Optional[bytes]:
        if not self.is_available:
            logger.error("get_file called before a document is available.")
            return None
        self._update_metadata()
        logger.info("Saving PDF to buffer.")
        data = self.doc.tobytes(garbage=3, clean=True)
        logger.info("PDF saved: %d bytes", len(data))
        return data

    def _update_metadata(self) -> None:
        metadata = {
            key: value
            for key, value in (self.doc.metadata or {}).items()
            if key not in {"format", "encryption"} and value is not None
        }
        mod_date = fitz.get_pdf_now()
        metadata["modDate"] = mod_date
        metadata["producer"] = self.producer
        self.doc.set_metadata(metadata)
        logger.info("ModDate metadata set to: %s", mod_date)
        logger.info("Producer metadata set to: %s", self.producer)

    def render_page(self, page_number: Optional[int], request_id: int) -> RenderResult:
        logger.debug("Rendering page %s, request_id=%s", page_number, request_id)
        if (
            not self.is_available
            or page_number is None
            or page_number < 1
            or page_number > self.doc.page_count
        ):
            logger.warning("Invalid page number requested: %s", page_number)
            return RenderResult(png=None, request_id=request_id)
        page = self.doc.load_page(page_number - 1)
        pixmap = page.get_pixmap(
            matrix=fitz.Matrix(self.render_scale, self.render_scale),
            colorspace=fitz.csRGB,
            alpha=False,
        )
        png = pixmap.tobytes("png")
        logger.debug("Page %d rendered: %d bytes", page_number, len(png))
        return RenderResult(png=png, request_id=request_id)

    def count_pages(self) -> int:
        return self.doc.page_count if self.is_available else 0

    def parse_toc(self, text: str) -> List[OutlineNode]:
        return parse_toc(text)

    def format_toc(self, items: List[OutlineNode]) -> str:
        return format_toc(items)

    def close(self) -> None:
        if self.doc is not None:
            self.doc.close()
            self.doc = None
            self.unlocked = False
            self.file_name = None
