"""Intent classification endpoint."""

import logging
import time
from datetime import UTC, datetime
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from optigence.context.intent_classifier import IntentClassifier
from optigence.context.models import IntentClassification, IntentContext
from optigence.core.config import get_settings
from optigence.core.llm import get_llm
from optigence.core.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["intent"])


class IntentRequest(BaseModel):
    """Classify a message."""
    text: str = Field(..., min_length=1)
    context: Optional[IntentContext] = None


class IntentResponse(IntentClassification):
    """Classification plus timing."""
    duration_ms: int
    timestamp: str


@lru_cache
def get_intent_classifier() -> IntentClassifier:
    settings = get_settings()
    cache = TTLCache(
        max_entries=settings.TEXT_CACHE_MAX_ENTRIES,
        ttl_seconds=settings.TEXT_CACHE_TTL_SECONDS,
    )
    return IntentClassifier(cache, llm=get_llm())


@router.post("/intent", response_model=IntentResponse)
async def classify_intent(
    request: IntentRequest,
    classifier: IntentClassifier = Depends(get_intent_classifier),
):
    """Classify the intent of a message and suggest where to route it."""
    started = time.monotonic()
    result = await classifier.classify(request.text, request.context)
    duration_ms = int((time.monotonic() - started) * 1000)

    logger.info(
        f"Intent classified: intent={result.intent}, confidence={result.confidence:.2f}, "
        f"fallback={result.fallback_used}, duration_ms={duration_ms}"
    )

    return IntentResponse(
        **result.model_dump(),
        duration_ms=duration_ms,
        timestamp=datetime.now(UTC).isoformat(),
    )
