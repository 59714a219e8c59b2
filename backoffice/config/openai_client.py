"""OpenAI-compatible client configuration for recipe suggestions and validation.

The AI features are optional: without an API key every caller falls back to
the static catalogue or the keyword validator.
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI

load_dotenv()

AI_API_KEY = os.getenv("AI_API_KEY") or os.getenv("GROQ_API_KEY")
AI_BASE_URL = os.getenv("AI_BASE_URL", "https://api.groq.com/openai/v1")
AI_MODEL = os.getenv("AI_MODEL", "llama-3.3-70b-versatile")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))


@lru_cache(maxsize=1)
def get_ai_client() -> Optional[OpenAI]:
    """Return the chat-completion client, or None when no key is configured."""
    if not AI_API_KEY:
        return None
    return OpenAI(api_key=AI_API_KEY, base_url=AI_BASE_URL, timeout=AI_TIMEOUT_SECONDS)


__all__ = ["get_ai_client", "AI_MODEL"]
