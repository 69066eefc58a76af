"""Text triage for incoming messages.

This module provides:
- Keyword/phrase intent classification with an optional LLM pass
- Routing hints and suggested actions per intent
"""

from optigence.context.intent_classifier import IntentClassifier, classify_with_patterns
from optigence.context.models import (
    DateTimeMention,
    ExtractionResult,
    IntentClassification,
    IntentContext,
    IntentRouting,
    LocationMention,
    PersonMention,
)

__all__ = [
    # Models
    "DateTimeMention",
    "ExtractionResult",
    "IntentClassification",
    "IntentContext",
    "IntentRouting",
    "LocationMention",
    "PersonMention",
    # Classification
    "IntentClassifier",
    "classify_with_patterns",
]
