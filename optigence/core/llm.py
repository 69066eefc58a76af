"""LLM client utilities for LangChain integration."""

import json
import re

from langchain_openai import ChatOpenAI

from optigence.core.config import get_settings


def get_llm(model: str | None = None, temperature: float = 0.1) -> ChatOpenAI | None:
    """
    Get configured LLM instance, or None when no API key is set.

    Args:
        model: Model name override (defaults to config setting)
        temperature: Temperature for generation (default 0.1)

    Returns:
        ChatOpenAI instance, or None if OPENAI_API_KEY is not configured
    """
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        return None

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.OPENAI_MODEL,
        temperature=temperature,
    )


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # No fences: take the outermost JSON object if there is prose around it
    brace_match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if brace_match:
        return brace_match.group(0)
    return cleaned


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object.

    Args:
        raw_output: Raw string from LLM response

    Returns:
        Parsed dict

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the JSON is not an object
    """
    parsed = json.loads(_strip_llm_fences(raw_output))
    if not isinstance(parsed, dict):
        raise ValueError("LLM output is not a JSON object")
    return parsed
