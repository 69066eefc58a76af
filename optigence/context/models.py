"""Pydantic models for text triage (intent classification and entity extraction)."""

from typing import Literal

from pydantic import BaseModel, Field

Urgency = Literal["low", "medium", "high"]
Sentiment = Literal["positive", "neutral", "negative"]


class IntentContext(BaseModel):
    """Optional context supplied with a classification request."""

    thread_history: list[str] = Field(default_factory=list)
    user_profile: dict[str, str] = Field(default_factory=dict)
    recent_actions: list[str] = Field(default_factory=list)


class IntentRouting(BaseModel):
    """Where a client should send the follow-up request."""

    next_endpoint: str
    method: str
    estimated_time: str


class IntentClassification(BaseModel):
    """Result of intent classification."""

    intent: str = Field(..., description="Primary intent category")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Classification confidence")
    sub_category: str | None = Field(default=None, description="Finer-grained intent")
    urgency: Urgency = "low"
    suggested_actions: list[str] = Field(default_factory=list)
    required_data: list[str] = Field(default_factory=list)
    routing: IntentRouting
    fallback_used: bool = Field(
        default=True, description="True when keyword patterns produced the result"
    )


class PersonMention(BaseModel):
    name: str
    email: str | None = None
    role: str | None = None


class DateTimeMention(BaseModel):
    text: str
    parsed: str | None = None
    type: str | None = None


class LocationMention(BaseModel):
    text: str
    type: str | None = None


class ExtractionResult(BaseModel):
    """Structured entities pulled from a message."""

    ask: str = "General inquiry"
    constraints: list[str] = Field(default_factory=list)
    people: list[PersonMention] = Field(default_factory=list)
    dates_times: list[DateTimeMention] = Field(default_factory=list)
    locations: list[LocationMention] = Field(default_factory=list)
    language: str = "en"
    sentiment: Sentiment = "neutral"
    urgency: Urgency = "medium"
    topics: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    model_used: str = "heuristic"
    cached: bool = False
