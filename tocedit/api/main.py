from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from tocedit.configs.settings import settings
from tocedit.modules.document.errors import OutlineParseError, PasswordRequiredError, TocEditError
from tocedit.modules.toc.formatter import format_toc
from tocedit.modules.toc.parser import parse_toc_report
from tocedit.orchestrator.session import (
    DocumentSessionManager,
    OpenDocument,
    load_outline_text,
    output_file_name,
    save_outline,
)
from tocedit.schemas.api import (
    DocumentOpened,
    FormatTocRequest,
    FormatTocResponse,
    LayoutSettings,
    OutlineResponse,
    PageCountResponse,
    ParseTocRequest,
    ParseTocResponse,
    PasswordRequest,
    PasswordResponse,
    SaveOutlineRequest,
)
from tocedit.storage.settings_store import get_pane_proportion, save_pane_proportion
from tocedit.utils.logger import logger

manager = DocumentSessionManager()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    manager.close_all()


app = FastAPI(title="tocedit API", version="1.0.0", lifespan=lifespan)

ALLOWED_EXTENSIONS = {".pdf"}


def get_document(document_id: str) -> OpenDocument:
    try:
        return manager.get(document_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"document {document_id} not found") from exc


async def _opened(document: OpenDocument) -> DocumentOpened:
    return DocumentOpened(
        document_id=document.document_id,
        file_name=document.file_name,
        page_count=await document.client.count_pages(),
        toc_text=await load_outline_text(document.client),
    )


@app.post("/api/v1/files", response_model=DocumentOpened)
async def upload_file(
    file: UploadFile = File(...),
    password: str | None = Form(None),
):
    filename = file.filename or "document.pdf"
    logger.info("Received upload: filename=%s content_type=%s", filename, file.content_type)
    suffix = Path(filename).suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        logger.warning("Unsupported file type: %s", suffix)
        raise HTTPException(status_code=400, detail="Only .pdf files are supported")
    data = await file.read()
    size_mb = len(data) / (1024 * 1024)
    if size_mb > settings.limits.max_file_mb:
        logger.warning("File exceeds size limit: %.2fMB > %dMB", size_mb, settings.limits.max_file_mb)
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds the {settings.limits.max_file_mb}MB limit",
        )

    document = manager.create(filename)
    try:
        await document.client.open_file(data, filename)
    except PasswordRequiredError as exc:
        if password is None or not await document.client.authenticate_password(password):
            raise HTTPException(
                status_code=401,
                detail={"code": "password_required", "document_id": document.document_id},
            ) from exc
    except Exception as exc:
        logger.exception("Error opening file: %s", filename)
        manager.close(document.document_id)
        raise HTTPException(status_code=400, detail=f"Error opening the file: {exc}") from exc
    return await _opened(document)


@app.post("/api/v1/documents/{document_id}/password", response_model=PasswordResponse)
async def submit_password(document_id: str, request: PasswordRequest):
    document = get_document(document_id)
    if not await document.client.authenticate_password(request.password):
        return PasswordResponse(authenticated=False)
    opened = await _opened(document)
    return PasswordResponse(
        authenticated=True,
        page_count=opened.page_count,
        toc_text=opened.toc_text,
    )


@app.delete("/api/v1/documents/{document_id}")
def close_document(document_id: str):
    try:
        manager.close(document_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"document {document_id} not found") from exc
    return {"closed": True}


@app.get("/api/v1/documents/{document_id}/outline", response_model=OutlineResponse)
async def read_outline(document_id: str):
    document = get_document(document_id)
    try:
        items = await document.client.get_outline()
    except TocEditError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if items is None:
        raise HTTPException(status_code=409, detail="Document is not available")
    text = await document.client.format_toc(items) if items else settings.editor.default_toc
    return OutlineResponse(items=items, text=text)


@app.put("/api/v1/documents/{document_id}/outline")
async def write_outline(document_id: str, request: SaveOutlineRequest):
    document = get_document(document_id)
    try:
        data = await save_outline(document.client, request.text)
    except OutlineParseError as exc:
        logger.warning("Save rejected for %s: %s", document_id, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except TocEditError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    filename = output_file_name(document.file_name)
    logger.info("Saved outline for %s as %s", document_id, filename)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/v1/documents/{document_id}/pages", response_model=PageCountResponse)
async def count_pages(document_id: str):
    document = get_document(document_id)
    return PageCountResponse(page_count=await document.client.count_pages())


@app.get("/api/v1/documents/{document_id}/pages/{page_number}")
async def render_page(document_id: str, page_number: int, request_id: int = 0):
    document = get_document(document_id)
    result = await document.client.render_page(page_number, request_id)
    if not result.png:
        raise HTTPException(status_code=404, detail=f"page {page_number} not available")
    return Response(
        content=result.png,
        media_type="image/png",
        headers={"X-Request-Id": str(result.request_id)},
    )


@app.post("/api/v1/toc/parse", response_model=ParseTocResponse)
def parse_toc_text(request: ParseTocRequest):
    report = parse_toc_report(request.text)
    return ParseTocResponse(items=report.items, ignored_lines=report.ignored_lines)


@app.post("/api/v1/toc/format", response_model=FormatTocResponse)
def format_toc_text(request: FormatTocRequest):
    return FormatTocResponse(text=format_toc(request.items))


@app.get("/api/v1/settings/layout", response_model=LayoutSettings)
def read_layout_settings():
    return LayoutSettings(pane_proportion=get_pane_proportion())


@app.post("/api/v1/settings/layout", response_model=LayoutSettings)
def update_layout_settings(payload: LayoutSettings):
    return LayoutSettings(pane_proportion=save_pane_proportion(payload.pane_proportion))
