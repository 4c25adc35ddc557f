"""
Message channel between the interactive side and the document worker.

The PyMuPDF document is never shared: a single `DocumentWorker` thread owns the
`DocumentEngine` and serves requests from its inbox. Every request carries a
call id; the response echoes it so the client can resolve the matching future
no matter in which order responses arrive.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from queue import Queue
from typing import Any, Dict, Optional, Tuple

from tocedit.modules.document.engine import DocumentEngine
from tocedit.modules.document.errors import WorkerClosedError
from tocedit.utils.logger import logger

WORKER_OPERATIONS = frozenset(
    {
        "open_file",
        "authenticate_password",
        "get_outline",
        "set_outline",
        "get_file",
        "render_page",
        "count_pages",
        "parse_toc",
        "format_toc",
    }
)


@dataclass
class WorkerRequest:
    call_id: int
    op: str
    args: Tuple[Any, ...] = ()


@dataclass
class WorkerResponse:
    call_id: int
    result: Any = None
    error: Optional[BaseException] = None


@dataclass
class _Envelope:
    request: WorkerRequest
    reply_to: "Queue[Optional[WorkerResponse]]" = field(repr=False)


class DocumentWorker(threading.Thread):
    def __init__(self, engine: Optional[DocumentEngine] = None) -> None:
        super().__init__(name="tocedit-document-worker", daemon=True)
        self._engine = engine or DocumentEngine()
        self.inbox: "Queue[Optional[_Envelope]]" = Queue()

    def run(self) -> None:
        logger.debug("Document worker started")
        while True:
            envelope = self.inbox.get()
            if envelope is None:
                break
            envelope.reply_to.put(self._handle(envelope.request))
        self._engine.close()
        logger.debug("Document worker stopped")

    def _handle(self, request: WorkerRequest) -> WorkerResponse:
        if request.op not in WORKER_OPERATIONS:
            return WorkerResponse(
                call_id=request.call_id,
                error=ValueError(f"Unsupported worker operation: {request.op}"),
            )
        try:
            result = getattr(self._engine, request.op)(*request.args)
        except Exception as exc:
            logger.debug("Worker operation %s failed: %s", request.op, exc)
            return WorkerResponse(call_id=request.call_id, error=exc)
        return WorkerResponse(call_id=request.call_id, result=result)


class WorkerClient:
    """Client end of the channel: `call` returns a future resolved by call id."""

    def __init__(self, worker: Optional[DocumentWorker] = None) -> None:
        self._worker = worker or DocumentWorker()
        self._outbox: "Queue[Optional[WorkerResponse]]" = Queue()
        self._pending: Dict[int, Future] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._closed = False
        self._dispatcher = threading.Thread(
            target=self._dispatch, name="tocedit-worker-dispatch", daemon=True
        )
        if not self._worker.is_alive():
            self._worker.start()
        self._dispatcher.start()

    def call(self, op: str, *args: Any) -> Future:
        future: Future = Future()
        with self._lock:
            if self._closed:
                future.set_exception(WorkerClosedError("document worker is closed"))
                return future
            call_id = next(self._ids)
            self._pending[call_id] = future
        self._worker.inbox.put(_Envelope(WorkerRequest(call_id, op, args), self._outbox))
        return future

    async def request(self, op: str, *args: Any) -> Any:
        return await asyncio.wrap_future(self.call(op, *args))

    def _dispatch(self) -> None:
        while True:
            response = self._outbox.get()
            if response is None:
                break
            with self._lock:
                future = self._pending.pop(response.call_id, None)
            if future is None:
                logger.warning("Dropping response for unknown call id %s", response.call_id)
                continue
            if response.error is not None:
                future.set_exception(response.error)
            else:
                future.set_result(response.result)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._worker.inbox.put(None)
        self._worker.join()
        self._outbox.put(None)
        self._dispatcher.join()
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            future.set_exception(WorkerClosedError("document worker is closed"))

    # Typed wrappers over the RPC surface.

    async def open_file(self, data: bytes, file_name: str) -> None:
        await self.request("open_file", data, file_name)

    async def authenticate_password(self, password: str) -> bool:
        return await self.request("authenticate_password", password)

    async def get_outline(self):
        return await self.request("get_outline")

    async def set_outline(self, items) -> None:
        await self.request("set_outline", items)

    async def get_file(self) -> Optional[bytes]:
        return await self.request("get_file")

    async def render_page(self, page_number: int, request_id: int):
        return await self.request("render_page", page_number, request_id)

    async def count_pages(self) -> int:
        return await self.request("count_pages")

    async def parse_toc(self, text: str):
        return await self.request("parse_toc", text)

    async def format_toc(self, items) -> str:
        return await self.request("format_toc", items)
