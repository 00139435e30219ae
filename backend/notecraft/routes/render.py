"""
NoteCraft Backend: Render Route
=================================

POST /api/render turns note content into the preview HTML. Stateless and
unauthenticated; the renderer never fails, so neither does this route.
"""

from fastapi import APIRouter

from notecraft.schemas.note import RenderRequest, RenderResponse
from notecraft.services.markup import render

router = APIRouter(prefix="/api", tags=["Render"])


@router.post("/render", response_model=RenderResponse, summary="Render note content to HTML")
async def render_content(payload: RenderRequest) -> RenderResponse:
    return RenderResponse(html=render(payload.content))
