"""Download API routes for an idea's generated documents."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from backend.auth import current_owner
from backend.deps import idea_store_dep
from ideagen.export import build_zip, document_filename, zip_filename

logger = logging.getLogger(__name__)
router = APIRouter()

# download type -> Idea attribute
DOCUMENT_FIELDS = {
    "prd": "prd_content",
    "gtm": "gtm_content",
    "marketing": "marketing_content",
}


def _attachment(content: bytes | str, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/ideas/{idea_id}/download/{file_type}")
def download_document(
    idea_id: str,
    file_type: str,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
):
    """Download one document as markdown, or all three as a ZIP."""
    idea = store.get(idea_id, owner)
    if not idea:
        raise HTTPException(status_code=404, detail=f"Idea not found: {idea_id}")

    if file_type == "zip":
        if not (idea.prd_content and idea.gtm_content and idea.marketing_content):
            raise HTTPException(status_code=404, detail="Documents have not been generated for this idea")
        data = build_zip(idea.title, idea.prd_content, idea.gtm_content, idea.marketing_content)
        return _attachment(data, zip_filename(idea.title), "application/zip")

    attr = DOCUMENT_FIELDS.get(file_type)
    if attr is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown file type: {file_type}. Available: {', '.join([*DOCUMENT_FIELDS, 'zip'])}",
        )
    content = getattr(idea, attr)
    if not content:
        raise HTTPException(status_code=404, detail=f"No {file_type} document for this idea")
    return _attachment(content, document_filename(idea.title, file_type), "text/markdown")
