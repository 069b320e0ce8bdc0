"""FastAPI dependencies wiring stores, generator and engine from settings.

Tests replace these through ``app.dependency_overrides``.
"""

import logging

from fastapi import Depends, HTTPException, status

from ideagen.billing import get_usage_store
from ideagen.config import get_settings
from ideagen.errors import IdeaGenError
from ideagen.generate import generator_from_settings
from ideagen.ideas import get_idea_store
from ideagen.pipeline import GenerationEngine
from ideagen.sessions import get_session_store

logger = logging.getLogger(__name__)

# ideagen error code -> HTTP status
ERROR_STATUS = {
    "missing_input": status.HTTP_400_BAD_REQUEST,
    "fetch_failed": 422,
    "session_not_found": status.HTTP_404_NOT_FOUND,
    "idea_not_found": status.HTTP_404_NOT_FOUND,
    "session_conflict": status.HTTP_409_CONFLICT,
    "session_not_ready": status.HTTP_409_CONFLICT,
    "persistence_failed": status.HTTP_503_SERVICE_UNAVAILABLE,
    "generation_failed": status.HTTP_502_BAD_GATEWAY,
}


def http_error(e: IdeaGenError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(e.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": e.code, "message": e.message},
    )


def session_store_dep():
    return get_session_store()


def idea_store_dep():
    return get_idea_store()


def usage_store_dep():
    return get_usage_store()


def generator_dep():
    try:
        return generator_from_settings(get_settings())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def engine_dep(
    session_store=Depends(session_store_dep),
    generator=Depends(generator_dep),
    usage_store=Depends(usage_store_dep),
) -> GenerationEngine:
    return GenerationEngine(session_store, generator, usage_store=usage_store)
