from __future__ import annotations

import inspect
import re
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Union

from tocedit.configs.settings import settings
from tocedit.modules.document.errors import (
    OpenCancelledError,
    OutlineLoadError,
    OutlineParseError,
    PasswordRequiredError,
    TocEditError,
)
from tocedit.modules.document.worker import WorkerClient
from tocedit.modules.preview.coordinator import PreviewSink, RenderRequestCoordinator
from tocedit.modules.preview.tracker import SelectionTracker
from tocedit.schemas.common import OutlineNode
from tocedit.utils.identifiers import new_id
from tocedit.utils.logger import logger
from tocedit.utils.text import first_line_end

# Called with `is_retry`; returns the password, or None when the user cancels.
PasswordProvider = Callable[[bool], Union[Optional[str], Awaitable[Optional[str]]]]

PDF_SUFFIX_RE = re.compile(r"(\.pdf)$", re.IGNORECASE)


@dataclass(slots=True)
class SavedFile:
    file_name: str
    data: bytes


def output_file_name(file_name: str, suffix: Optional[str] = None) -> str:
    suffix = settings.output.filename_suffix if suffix is None else suffix
    if PDF_SUFFIX_RE.search(file_name):
        return PDF_SUFFIX_RE.sub(lambda match: f"{suffix}{match.group(1)}", file_name)
    return f"{file_name}{suffix}.pdf"


async def authenticate_interactively(client: WorkerClient, password_provider: Optional[PasswordProvider]) -> None:
    is_retry = False
    while True:
        password = password_provider(is_retry) if password_provider else None
        if inspect.isawaitable(password):
            password = await password
        if password is None:
            logger.warning("User cancelled password entry.")
            raise OpenCancelledError("Password entry cancelled")
        if await client.authenticate_password(password):
            logger.info("Password authentication successful.")
            return
        logger.warning("Incorrect password entered.")
        is_retry = True


async def load_outline_text(client: WorkerClient) -> str:
    try:
        outline = await client.get_outline()
    except OutlineLoadError as exc:
        logger.error("Failed to get outline: %s", exc)
        outline = None
    if not outline:
        return settings.editor.default_toc
    return await client.format_toc(outline)


async def save_outline(client: WorkerClient, text: str) -> bytes:
    """Parse `text`, write it as the document outline and return the document bytes."""
    logger.debug("Parsing ToC text.")
    items: List[OutlineNode] = await client.parse_toc(text)
    if not items:
        raise OutlineParseError()
    logger.debug("Setting new outline in worker.")
    await client.set_outline(items)
    data = await client.get_file()
    if data is None:
        raise TocEditError("No document is loaded")
    return data


class OutlineEditingSession:
    """
    One open document in the editor: the worker client, the preview pipeline
    and the text being edited.
    """

    def __init__(
        self,
        client: WorkerClient,
        sink: PreviewSink,
        debounce: Optional[float] = None,
    ) -> None:
        self.client = client
        self.coordinator = RenderRequestCoordinator(client, sink)
        self.tracker = SelectionTracker(self.coordinator, debounce)
        self.file_name: Optional[str] = None
        self.text = ""
        self.initial_text: Optional[str] = None
        self.cursor = 0

    async def open(
        self,
        data: bytes,
        file_name: str,
        password_provider: Optional[PasswordProvider] = None,
    ) -> str:
        logger.info("Opening file: %s", file_name)
        try:
            await self.client.open_file(data, file_name)
        except PasswordRequiredError:
            await authenticate_interactively(self.client, password_provider)

        self.file_name = file_name
        self.text = await load_outline_text(self.client)
        self.initial_text = self.text
        self.cursor = first_line_end(self.text)
        await self.tracker.show_initial(1)
        return self.text

    def edit(self, text: str, cursor: int) -> Optional[int]:
        self.text = text
        self.cursor = cursor
        return self.tracker.on_selection_change(text, cursor)

    def move_cursor(self, cursor: int) -> Optional[int]:
        return self.edit(self.text, cursor)

    @property
    def is_dirty(self) -> bool:
        return self.initial_text is not None and self.text != self.initial_text

    async def save(self) -> SavedFile:
        logger.info("Saving file...")
        text = self.text
        data = await save_outline(self.client, text)
        name = output_file_name(self.file_name or "document.pdf")
        logger.info("Saved file as: %s", name)
        self.initial_text = text
        return SavedFile(file_name=name, data=data)

    def close(self) -> None:
        self.client.close()


@dataclass
class OpenDocument:
    document_id: str
    file_name: str
    client: WorkerClient


class DocumentSessionManager:
    """Open documents served by the API, each with its own worker."""

    def __init__(self, client_factory: Callable[[], WorkerClient] = WorkerClient) -> None:
        self._client_factory = client_factory
        self._documents: Dict[str, OpenDocument] = {}
        self._lock = threading.Lock()

    def create(self, file_name: str) -> OpenDocument:
        document = OpenDocument(
            document_id=new_id("doc"),
            file_name=file_name,
            client=self._client_factory(),
        )
        with self._lock:
            self._documents[document.document_id] = document
        logger.info("Created document session: %s (%s)", document.document_id, file_name)
        return document

    def get(self, document_id: str) -> OpenDocument:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise KeyError(document_id)
        return document

    def close(self, document_id: str) -> None:
        with self._lock:
            document = self._documents.pop(document_id, None)
        if document is None:
            raise KeyError(document_id)
        document.client.close()
        logger.info("Closed document session: %s", document_id)

    def close_all(self) -> None:
        with self._lock:
            documents, self._documents = list(self._documents.values()), {}
        for document in documents:
            document.client.close()
