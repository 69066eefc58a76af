"""Entity extraction endpoint."""

import time
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field

from optigence.context.models import ExtractionResult
from optigence.core.config import get_settings
from optigence.core.entity_extraction import EntityExtractor
from optigence.core.llm import get_llm
from optigence.core.ttl_cache import TTLCache

router = APIRouter(tags=["extract"])


class ExtractRequest(BaseModel):
    text: str = Field(..., min_length=1)
    thread_context: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("thread_context", "threadContext")
    )


class ExtractResponse(ExtractionResult):
    duration_ms: int


@lru_cache
def get_entity_extractor() -> EntityExtractor:
    settings = get_settings()
    cache = TTLCache(
        max_entries=settings.TEXT_CACHE_MAX_ENTRIES,
        ttl_seconds=settings.TEXT_CACHE_TTL_SECONDS,
    )
    return EntityExtractor(cache, llm=get_llm())


@router.post("/extract", response_model=ExtractResponse)
async def extract_entities(
    request: ExtractRequest,
    extractor: EntityExtractor = Depends(get_entity_extractor),
):
    """Pull people, dates, locations and action items out of a message."""
    started = time.monotonic()
    result = await extractor.extract(request.text, request.thread_context)
    return ExtractResponse(
        **result.model_dump(),
        duration_ms=int((time.monotonic() - started) * 1000),
    )
