"""Shared slowapi limiter for the LLM-backed endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from study_tracker.config import settings

limiter = Limiter(key_func=get_remote_address)

# Decorator applied to every route that calls the language model
ai_rate_limit = limiter.limit(settings.AI_RATE_LIMIT)
