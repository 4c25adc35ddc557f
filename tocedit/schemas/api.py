from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from tocedit.schemas.common import OutlineNode


class DocumentOpened(BaseModel):
    document_id: str
    file_name: str
    page_count: int
    toc_text: str


class PasswordRequest(BaseModel):
    password: str


class PasswordResponse(BaseModel):
    authenticated: bool
    page_count: int = 0
    toc_text: Optional[str] = None


class OutlineResponse(BaseModel):
    items: List[OutlineNode] = Field(default_factory=list)
    text: str


class SaveOutlineRequest(BaseModel):
    text: str


class PageCountResponse(BaseModel):
    page_count: int


class ParseTocRequest(BaseModel):
    text: str


class ParseTocResponse(BaseModel):
    items: List[OutlineNode] = Field(default_factory=list)
    ignored_lines: List[int] = Field(default_factory=list)


class FormatTocRequest(BaseModel):
    items: List[OutlineNode] = Field(default_factory=list)


class FormatTocResponse(BaseModel):
    text: str


class LayoutSettings(BaseModel):
    pane_proportion: float = Field(gt=0, lt=100)
