"""Intent classification for incoming assistant messages.

Keyword/phrase patterns give a deterministic baseline. When an LLM is
configured it is asked first and the patterns are the fallback. Results are
memoized in an injected TTLCache keyed by a hash of the text and context.
"""

from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from optigence.context.models import IntentClassification, IntentContext, IntentRouting
from optigence.core.llm import parse_llm_json_dict
from optigence.core.logging import get_logger
from optigence.core.ttl_cache import TTLCache, make_cache_key

logger = get_logger(__name__)

DEFAULT_INTENT = "general_inquiry"
BASELINE_CONFIDENCE = 0.3
PATTERN_CONFIDENCE_CAP = 0.9

INTENT_PATTERNS: dict[str, dict[str, Any]] = {
    "interview_scheduling": {
        "keywords": ["interview", "schedule", "meeting", "available", "time slots", "calendar", "appointment"],
        "phrases": ["schedule an interview", "set up a meeting", "available for", "book a call", "interview time"],
        "confidence_base": 0.8,
        "routing": {"next_endpoint": "/v1/calendar/freebusy", "method": "POST", "estimated_time": "2-3s"},
        "required_data": ["candidate_info", "time_preferences", "interview_type"],
    },
    "follow_up": {
        "keywords": ["follow up", "following up", "check in", "status", "update", "heard back", "response"],
        "phrases": ["following up on", "checking in about", "any updates on", "status update", "have you heard"],
        "confidence_base": 0.75,
        "routing": {"next_endpoint": "/v1/follow-up/create", "method": "POST", "estimated_time": "1-2s"},
        "required_data": ["original_context", "follow_up_reason", "timeline"],
    },
    "email_draft": {
        "keywords": ["write", "draft", "compose", "email", "send", "message", "reach out"],
        "phrases": ["draft an email", "write a message", "compose email", "send email to", "reach out to"],
        "confidence_base": 0.85,
        "routing": {"next_endpoint": "/v1/draft/compose", "method": "POST", "estimated_time": "3-5s"},
        "required_data": ["recipient", "purpose", "tone", "key_points"],
    },
    "calendar_management": {
        "keywords": ["calendar", "reschedule", "cancel", "book", "availability", "busy", "free time"],
        "phrases": ["check calendar", "reschedule meeting", "cancel appointment", "book time", "availability check"],
        "confidence_base": 0.8,
        "routing": {"next_endpoint": "/v1/calendar/freebusy", "method": "POST", "estimated_time": "1-2s"},
        "required_data": ["calendar_action", "event_details", "new_time"],
    },
    "candidate_research": {
        "keywords": ["research", "background", "profile", "linkedin", "experience", "skills", "qualifications"],
        "phrases": ["research candidate", "check background", "candidate profile", "look up", "find information"],
        "confidence_base": 0.7,
        "routing": {"next_endpoint": "/v1/research/candidate", "method": "POST", "estimated_time": "5-7s"},
        "required_data": ["candidate_identifier", "research_depth", "focus_areas"],
    },
    "template_usage": {
        "keywords": ["template", "use template", "standard message", "boilerplate", "saved draft"],
        "phrases": ["use template", "apply template", "standard email", "saved message", "template for"],
        "confidence_base": 0.9,
        "routing": {"next_endpoint": "/v1/templates", "method": "GET", "estimated_time": "0.5-1s"},
        "required_data": ["template_category", "customization_data"],
    },
    "status_inquiry": {
        "keywords": ["status", "progress", "update", "where are we", "current state", "next steps"],
        "phrases": ["what's the status", "progress update", "where do we stand", "next steps", "current status"],
        "confidence_base": 0.7,
        "routing": {"next_endpoint": "/v1/status/check", "method": "GET", "estimated_time": "1s"},
        "required_data": ["context_id", "status_type"],
    },
    "general_inquiry": {
        "keywords": ["help", "question", "how to", "what is", "explain", "clarify"],
        "phrases": ["can you help", "i have a question", "how do i", "what does", "please explain"],
        "confidence_base": 0.5,
        "routing": {"next_endpoint": "/v1/help/general", "method": "POST", "estimated_time": "1-2s"},
        "required_data": ["query_type", "context"],
    },
}

HIGH_URGENCY_MARKERS = [
    "urgent", "asap", "immediately", "today", "now", "emergency",
    "critical", "deadline", "expires", "time sensitive",
]
MEDIUM_URGENCY_MARKERS = [
    "soon", "this week", "by friday", "by tomorrow", "follow up",
    "waiting", "pending", "quick question",
]

SUGGESTED_ACTIONS: dict[str, list[str]] = {
    "interview_scheduling": [
        "Check calendar availability",
        "Prepare interview questions",
        "Send calendar invitation",
        "Confirm interview format and logistics",
    ],
    "follow_up": [
        "Review previous communication",
        "Set follow-up reminder",
        "Prepare status update",
        "Schedule next touchpoint",
    ],
    "email_draft": [
        "Choose appropriate template",
        "Customize message tone",
        "Review recipient context",
        "Schedule send time",
    ],
    "calendar_management": [
        "Check current availability",
        "Review conflicting events",
        "Send meeting updates",
        "Block focus time",
    ],
    "candidate_research": [
        "Review LinkedIn profile",
        "Check references",
        "Analyze skills match",
        "Prepare interview questions",
    ],
    "template_usage": [
        "Browse available templates",
        "Customize template variables",
        "Preview final message",
        "Save personalized version",
    ],
    "general_inquiry": [
        "Clarify specific needs",
        "Provide relevant resources",
        "Suggest next steps",
        "Schedule follow-up if needed",
    ],
}

CLASSIFY_SYSTEM_PROMPT = """You classify messages sent to an email and recruiting assistant.

Available intents:
- interview_scheduling: Scheduling interviews or meetings
- follow_up: Following up on communications or status
- email_draft: Composing or drafting emails
- calendar_management: Managing calendar events
- candidate_research: Researching candidates or contacts
- template_usage: Using or managing email templates
- status_inquiry: Checking status or progress
- general_inquiry: General questions or help

Respond with JSON only:
{"intent": "intent_name", "confidence": 0.85, "sub_category": "optional", "urgency": "low|medium|high", "reasoning": "brief"}"""


def determine_urgency(text: str) -> str:
    """Urgency from marker words; high wins over medium."""
    lower = text.lower()
    if any(marker in lower for marker in HIGH_URGENCY_MARKERS):
        return "high"
    if any(marker in lower for marker in MEDIUM_URGENCY_MARKERS):
        return "medium"
    return "low"


def determine_sub_category(intent: str, text: str) -> str | None:
    lower = text.lower()

    if intent == "interview_scheduling":
        if "phone" in lower or "call" in lower:
            return "phone_interview"
        if any(word in lower for word in ("video", "zoom", "teams")):
            return "video_interview"
        if "onsite" in lower or "office" in lower:
            return "onsite_interview"
        return "general_interview"

    if intent == "follow_up":
        if "urgent" in lower or "asap" in lower:
            return "urgent_followup"
        if "decision" in lower or "feedback" in lower:
            return "decision_followup"
        return "standard_followup"

    if intent == "email_draft":
        if "rejection" in lower or "decline" in lower:
            return "rejection_email"
        if "offer" in lower or "congratulations" in lower:
            return "offer_email"
        if "invitation" in lower or "invite" in lower:
            return "invitation_email"
        return "general_email"

    return None


def _build_result(
    intent: str,
    confidence: float,
    text: str,
    sub_category: str | None = None,
    urgency: str | None = None,
    fallback_used: bool = True,
) -> IntentClassification:
    pattern = INTENT_PATTERNS.get(intent, INTENT_PATTERNS[DEFAULT_INTENT])
    return IntentClassification(
        intent=intent,
        confidence=confidence,
        sub_category=sub_category or determine_sub_category(intent, text),
        urgency=urgency or determine_urgency(text),
        suggested_actions=list(SUGGESTED_ACTIONS.get(intent, SUGGESTED_ACTIONS[DEFAULT_INTENT])),
        required_data=list(pattern["required_data"]),
        routing=IntentRouting(**pattern["routing"]),
        fallback_used=fallback_used,
    )


def classify_with_patterns(text: str) -> IntentClassification:
    """
    Keyword/phrase classification.

    Each intent scores (keyword hit ratio * 0.6 + phrase hit ratio * 0.4)
    scaled by its base confidence. An intent must beat the 0.3 baseline to
    replace general_inquiry. Confidence is capped at 0.9.
    """
    lower = text.lower()
    best_intent, best_score = DEFAULT_INTENT, BASELINE_CONFIDENCE

    for intent, pattern in INTENT_PATTERNS.items():
        keyword_hits = sum(1 for kw in pattern["keywords"] if kw in lower)
        phrase_hits = sum(1 for ph in pattern["phrases"] if ph in lower)
        score = (keyword_hits / len(pattern["keywords"])) * 0.6
        score += (phrase_hits / len(pattern["phrases"])) * 0.4
        score *= pattern["confidence_base"]

        if score > best_score:
            best_intent, best_score = intent, score

    return _build_result(best_intent, min(best_score, PATTERN_CONFIDENCE_CAP), text)


class IntentClassifier:
    """Classifies message intent, LLM first when available."""

    def __init__(self, cache: TTLCache, llm: BaseChatModel | None = None):
        self.cache = cache
        self.llm = llm

    async def classify(
        self, text: str, context: IntentContext | None = None
    ) -> IntentClassification:
        context_json = context.model_dump_json() if context else None
        key = make_cache_key("intent", text, context_json)

        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(deep=True)

        result = None
        if self.llm is not None:
            try:
                result = await self._classify_with_llm(text, context_json)
            except Exception as e:
                logger.warning(f"LLM intent classification failed, using patterns: {e}")

        if result is None:
            result = classify_with_patterns(text)

        self.cache.set(key, result)
        return result.model_copy(deep=True)

    async def _classify_with_llm(
        self, text: str, context_json: str | None
    ) -> IntentClassification:
        user_prompt = f'Text: "{text}"'
        if context_json:
            user_prompt += f"\nContext: {context_json}"

        response = await self.llm.ainvoke(
            [SystemMessage(content=CLASSIFY_SYSTEM_PROMPT), HumanMessage(content=user_prompt)]
        )
        data = parse_llm_json_dict(response.content)

        intent = data.get("intent")
        if intent not in INTENT_PATTERNS:
            intent = DEFAULT_INTENT

        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        confidence = min(max(confidence, 0.0), 1.0)

        urgency = data.get("urgency")
        if urgency not in ("low", "medium", "high"):
            urgency = None

        sub_category = data.get("sub_category")
        if not isinstance(sub_category, str) or not sub_category:
            sub_category = None

        logger.debug(f"LLM classified intent={intent} confidence={confidence}")
        return _build_result(
            intent,
            confidence,
            text,
            sub_category=sub_category,
            urgency=urgency,
            fallback_used=False,
        )

