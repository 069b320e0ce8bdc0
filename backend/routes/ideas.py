"""Saved ideas API: CRUD, document regeneration and founder match."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from backend.auth import current_owner
from backend.deps import generator_dep, http_error, idea_store_dep, usage_store_dep
from ideagen.errors import IdeaGenError, IdeaNotFoundError
from ideagen.export import ideas_csv
from ideagen.pipeline import regenerate_documents
from ideagen.schemas.models import Idea, IdeaStatus
from ideagen.scoring import IdeaMatch, match_ideas

logger = logging.getLogger(__name__)
router = APIRouter()


class IdeaPatch(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[IdeaStatus] = None
    personal_notes: Optional[str] = None


@router.get("/ideas", response_model=list[Idea])
def list_ideas(
    search: Optional[str] = None,
    idea_status: Optional[IdeaStatus] = None,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
):
    ideas = store.list(owner, search=search)
    if idea_status is not None:
        ideas = [i for i in ideas if i.status == idea_status]
    return ideas


@router.get("/ideas/export.csv")
def export_ideas(
    search: Optional[str] = None,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
):
    content = ideas_csv(store.list(owner, search=search))
    filename = f"startup-ideas-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/ideas/match", response_model=list[IdeaMatch])
def match(
    skills: list[str] = Query(default=[]),
    budget: str = "",
    time: str = "",
    limit: int = 3,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
):
    """Rank saved ideas against the founder's skills, budget and time availability."""
    # Accept both ?skills=code&skills=design and ?skills=code,design
    wanted = [s for value in skills for s in value.split(",")]
    try:
        return match_ideas(store.list(owner), wanted, budget, time, limit=limit)
    except IdeaGenError as e:
        raise http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ideas/{idea_id}", response_model=Idea)
def get_idea(idea_id: str, owner: str = Depends(current_owner), store=Depends(idea_store_dep)):
    idea = store.get(idea_id, owner)
    if not idea:
        raise HTTPException(status_code=404, detail=f"Idea not found: {idea_id}")
    return idea


@router.patch("/ideas/{idea_id}", response_model=Idea)
def update_idea(
    idea_id: str,
    patch: IdeaPatch,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
):
    fields = patch.model_dump(exclude_unset=True)
    try:
        return store.update(idea_id, owner, fields)
    except IdeaNotFoundError as e:
        raise http_error(e)


@router.delete("/ideas/{idea_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_idea(idea_id: str, owner: str = Depends(current_owner), store=Depends(idea_store_dep)):
    if not store.delete(idea_id, owner):
        raise HTTPException(status_code=404, detail=f"Idea not found: {idea_id}")


@router.post("/ideas/{idea_id}/regenerate", response_model=Idea)
def regenerate(
    idea_id: str,
    owner: str = Depends(current_owner),
    store=Depends(idea_store_dep),
    generator=Depends(generator_dep),
    usage_store=Depends(usage_store_dep),
):
    """Replace the idea's PRD, GTM strategy and marketing plan with fresh ones."""
    idea = store.get(idea_id, owner)
    if not idea:
        raise HTTPException(status_code=404, detail=f"Idea not found: {idea_id}")
    try:
        return regenerate_documents(idea, generator, store, usage_store)
    except IdeaGenError as e:
        raise http_error(e)
