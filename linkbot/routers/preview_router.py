"""Link preview API router

- /preview (chat text in, preview messages out)
- /health  (liveness + cache size)
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from linkbot.services.link_service import LinkPreviewService

router = APIRouter(tags=["Preview"])


class PreviewRequest(BaseModel):
    text: str


class PreviewItem(BaseModel):
    url: str
    kind: str
    message: Dict[str, Any]


class PreviewResponse(BaseModel):
    previews: List[PreviewItem]


def get_link_service(request: Request) -> LinkPreviewService:
    return request.app.state.link_service


@router.post("/preview", response_model=PreviewResponse)
async def preview(req: PreviewRequest, request: Request) -> PreviewResponse:
    service = get_link_service(request)
    if not service.enabled:
        raise HTTPException(status_code=503, detail="Link previews are disabled")

    pairs = await service.process(req.text)
    return PreviewResponse(
        previews=[
            PreviewItem(url=url, kind=expansion.kind, message=expansion.to_message())
            for url, expansion in pairs
        ]
    )


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    service = get_link_service(request)
    return {"status": "ok", "cache_entries": len(service.cache)}
