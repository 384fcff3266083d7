"""Best-effort extraction of JSON from language-model replies.

Models often wrap their JSON in markdown fences, use smart quotes or leave
trailing commas. parse_ai_json() cleans those up before giving up.
"""

import json
import logging
import re

logger = logging.getLogger(__name__)

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_JSON_SPAN = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)


class AIResponseParseError(ValueError):
    """The model reply did not contain parseable JSON."""

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message)


def strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _repair(text: str) -> str:
    text = (
        text.replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )
    return _TRAILING_COMMA.sub(r"\1", text)


def parse_ai_json(text: str | None):
    """Return the JSON value embedded in *text* or raise AIResponseParseError."""
    if not text or not text.strip():
        raise AIResponseParseError()

    cleaned = strip_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    repaired = _repair(cleaned)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost object/array span in the text
    match = _JSON_SPAN.search(repaired)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    logger.warning("Unparseable AI response: %r", text[:500])
    raise AIResponseParseError()
