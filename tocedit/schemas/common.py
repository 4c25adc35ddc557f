"""
Models shared between the outline codec, the document worker and the API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field


class OutlineNode(BaseModel):
    """One table-of-contents entry. `page` is zero-based; `None` means no target."""

    title: str = ""
    page: Optional[int] = Field(default=None, ge=0)
    children: List["OutlineNode"] = Field(default_factory=list)


OutlineNode.model_rebuild()


class PageFitTarget(BaseModel):
    page: int = Field(ge=0)

    @property
    def uri(self) -> str:
        return f"#page={self.page + 1}&view=Fit"


@dataclass(slots=True)
class RenderRequest:
    request_id: int
    page_number: int


@dataclass(slots=True)
class RenderResult:
    png: Optional[bytes]
    request_id: int
