"""Entity extraction from email and chat text.

Quoted replies and signatures are stripped before analysis. An LLM does the
extraction when configured; otherwise (or when its answer is unusable) a
regex pass picks out email addresses and date mentions.
"""

import re
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, ValidationError

from optigence.context.models import (
    DateTimeMention,
    ExtractionResult,
    LocationMention,
    PersonMention,
)
from optigence.core.llm import parse_llm_json_dict
from optigence.core.logging import get_logger
from optigence.core.ttl_cache import TTLCache, make_cache_key

logger = get_logger(__name__)

MAX_TEXT_CHARS = 2000
ASK_PREVIEW_CHARS = 100
HEURISTIC_MODEL = "heuristic"

# Everything from the first reply marker onward is dropped
QUOTED_PATTERNS = [
    re.compile(r"\nOn [^\n]* wrote:\n.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\nFrom: [^\n]*\nSent: [^\n]*\nTo: [^\n]*\nSubject: .*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\n> .*"),
    re.compile(r"\n-----Original Message-----.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\n-- ?\n.*", re.DOTALL),
    re.compile(r"\n_{10,}.*", re.DOTALL),
    re.compile(r"\n\[cid:.*?\].*", re.DOTALL),
]

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
DATE_RE = re.compile(
    r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}-\d{1,2}-\d{2,4}"
    r"|january|february|march|april|may|june|july|august|september|october|november|december)\b",
    re.IGNORECASE,
)

# Checked in order; the first match wins
LANGUAGE_MARKERS = [
    ("en", re.compile(r"\b(the|and|or|is|are|was|were|have|has|had|will|would|could|should)\b")),
    ("es", re.compile(r"\b(el|la|es|son|tiene|con|para|por|que|pero)\b")),
    ("fr", re.compile(r"\b(le|la|et|est|sont|avec|pour|par|que|mais)\b")),
    ("de", re.compile(r"\b(der|die|das|ist|sind|hat|mit|für|von|zu|aber)\b")),
]

EXTRACT_SYSTEM_PROMPT = """Extract structured information from the user's text. Consider thread context if provided.

Return JSON only, with these fields:
{
  "ask": "What the user is asking for or wants to accomplish",
  "constraints": ["Any specific requirements, preferences, or limitations"],
  "people": [{"name": "person name", "email": "email if mentioned", "role": "their relationship/role"}],
  "dates_times": [{"text": "original text", "parsed": "ISO format if parseable", "type": "deadline|meeting|event"}],
  "locations": [{"text": "location mentioned", "type": "venue|address|city"}],
  "language": "detected language code (en, es, fr, etc.)",
  "sentiment": "positive|neutral|negative",
  "urgency": "low|medium|high",
  "topics": ["main topics or keywords"],
  "action_items": ["specific actions needed"]
}

If a field has no relevant information, use an empty array or null."""


def strip_quoted_text(text: str) -> str:
    """Drop quoted replies, forwarded headers and signatures; cap the length."""
    for pattern in QUOTED_PATTERNS:
        text = pattern.sub("\n", text)

    text = re.sub(r"\n{3,}", "\n\n", text).strip()

    if len(text) > MAX_TEXT_CHARS:
        text = text[:MAX_TEXT_CHARS] + "..."
    return text


def detect_language(text: str) -> str:
    lower = text.lower()
    for code, marker in LANGUAGE_MARKERS:
        if marker.search(lower):
            return code
    return "en"


def extract_entities_fallback(text: str) -> ExtractionResult:
    """Regex-only extraction: emails become people, date words become dates."""
    emails = EMAIL_RE.findall(text)
    dates = DATE_RE.findall(text)

    ask = text if len(text) <= ASK_PREVIEW_CHARS else text[:ASK_PREVIEW_CHARS] + "..."

    return ExtractionResult(
        ask=ask or "General inquiry",
        people=[
            PersonMention(name=email.split("@")[0], email=email, role="contact")
            for email in emails
        ],
        dates_times=[DateTimeMention(text=d, parsed=None, type="event") for d in dates],
        language=detect_language(text),
        model_used=HEURISTIC_MODEL,
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float)) and str(item)]


def _model_list(value: Any, model: type[BaseModel]) -> list:
    """Validate each entry, dropping the ones the model rejects."""
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if not isinstance(item, dict):
            continue
        try:
            items.append(model.model_validate(item))
        except ValidationError:
            logger.debug(f"Dropping malformed {model.__name__}: {item}")
    return items


def normalize_extraction(data: dict, text: str, model_used: str) -> ExtractionResult:
    """Coerce raw LLM JSON into an ExtractionResult with safe defaults."""
    ask = data.get("ask")
    language = data.get("language")
    sentiment = data.get("sentiment")
    urgency = data.get("urgency")

    return ExtractionResult(
        ask=ask if isinstance(ask, str) and ask else "General inquiry",
        constraints=_string_list(data.get("constraints")),
        people=_model_list(data.get("people"), PersonMention),
        dates_times=_model_list(data.get("dates_times"), DateTimeMention),
        locations=_model_list(data.get("locations"), LocationMention),
        language=language if isinstance(language, str) and language else detect_language(text),
        sentiment=sentiment if sentiment in ("positive", "neutral", "negative") else "neutral",
        urgency=urgency if urgency in ("low", "medium", "high") else "medium",
        topics=_string_list(data.get("topics")),
        action_items=_string_list(data.get("action_items")),
        model_used=model_used,
    )


class EntityExtractor:
    """Extracts people, dates, places and asks from a message."""

    def __init__(self, cache: TTLCache, llm: BaseChatModel | None = None):
        self.cache = cache
        self.llm = llm

    async def extract(self, text: str, thread_context: str | None = None) -> ExtractionResult:
        key = make_cache_key("extract", text, thread_context)

        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True}, deep=True)

        processed = strip_quoted_text(text)

        result = None
        if self.llm is not None:
            try:
                result = await self._extract_with_llm(processed, thread_context)
            except Exception as e:
                logger.warning(f"LLM extraction failed, using regex fallback: {e}")

        if result is None:
            result = extract_entities_fallback(processed)

        self.cache.set(key, result)

        logger.info(
            f"Entity extraction completed: language={result.language}, "
            f"people={len(result.people)}, dates={len(result.dates_times)}, "
            f"text_length={len(text)}, processed_length={len(processed)}"
        )
        return result.model_copy(deep=True)

    async def _extract_with_llm(
        self, processed: str, thread_context: str | None
    ) -> ExtractionResult:
        user_prompt = f'Text: "{processed}"'
        if thread_context:
            user_prompt += f'\nThread Context: "{thread_context}"'

        response = await self.llm.ainvoke(
            [SystemMessage(content=EXTRACT_SYSTEM_PROMPT), HumanMessage(content=user_prompt)]
        )
        data = parse_llm_json_dict(response.content)

        model_used = getattr(self.llm, "model_name", None) or "llm"
        return normalize_extraction(data, processed, model_used)
