"""
Unified AI client: Oracle OCI request-signing.

Primary provider:
  Oracle Generative AI Inference via OCI SDK + signed requests using ~/.oci/config.

Optional fallback:
  Anthropic (only when OCI is not configured).

Every handler that talks to a language model goes through chat(); the raw text
it returns is turned into data by services.ai_json.parse_ai_json.
"""

import json
import asyncio
import logging
from pathlib import Path

import oci

from study_tracker.config import settings

logger = logging.getLogger(__name__)


class AIClientError(RuntimeError):
    """The language-model provider is unconfigured or the call failed."""


# ─────────────────────────────────────────────────────────────────────────────
# Request / response builders
# ─────────────────────────────────────────────────────────────────────────────

def _is_cohere(model_id: str) -> bool:
    forced = settings.ORACLE_GENAI_API_FORMAT.strip().upper()
    if forced == "COHERE":
        return True
    if forced == "GENERIC":
        return False
    return model_id.lower().startswith("cohere.")


def _data_url(image: dict) -> str:
    return f"data:{image.get('mime_type', 'image/jpeg')};base64,{image['data']}"


def _build_chat_body(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
    model_id: str,
    images: list[dict] | None = None,
) -> dict:
    """Build JSON body for POST /20231130/actions/chat."""
    serving_mode = {"servingType": "ON_DEMAND", "modelId": model_id}

    if _is_cohere(model_id):
        if images:
            raise AIClientError("Cohere chat models do not accept images")
        history = []
        for m in messages[:-1]:
            role = "USER" if m.get("role", "user") == "user" else "CHATBOT"
            history.append({"role": role, "message": m.get("content", "")})

        last_msg = messages[-1].get("content", "") if messages else ""
        chat_req: dict = {
            "apiFormat": "COHERE",
            "message": last_msg,
            "maxTokens": max_tokens,
            "temperature": temperature,
            "isStream": False,
        }
        if system:
            chat_req["preambleOverride"] = system
        if history:
            chat_req["chatHistory"] = history
    else:
        # Generic / Llama: messages array + systemMessage
        oci_msgs = []
        for i, m in enumerate(messages):
            role = "USER" if m.get("role", "user") == "user" else "ASSISTANT"
            content = [{"type": "TEXT", "text": m.get("content", "")}]
            # Images ride along with the final user turn
            if images and i == len(messages) - 1:
                content.extend(
                    {"type": "IMAGE", "imageUrl": {"url": _data_url(img)}} for img in images
                )
            oci_msgs.append({"role": role, "content": content})
        chat_req = {
            "apiFormat": "GENERIC",
            "messages": oci_msgs,
            "maxTokens": max_tokens,
            "temperature": temperature,
            "isStream": False,
        }
        if system:
            if images:
                # Llama vision models reject a separate system message alongside images
                oci_msgs[0]["content"].insert(0, {"type": "TEXT", "text": system})
            else:
                chat_req["systemMessage"] = system

    body: dict = {"servingMode": serving_mode, "chatRequest": chat_req}
    if settings.ORACLE_GENAI_COMPARTMENT_ID:
        body["compartmentId"] = settings.ORACLE_GENAI_COMPARTMENT_ID
    return body


def _extract_text(response_json: dict) -> str:
    """Pull plain text from an /actions/chat response."""
    chat_resp = response_json.get("chatResponse", {})
    fmt = chat_resp.get("apiFormat", "GENERIC")
    if fmt == "COHERE":
        return chat_resp.get("text", "")
    choices = chat_resp.get("choices", [])
    if not choices:
        return ""
    content = choices[0].get("message", {}).get("content", [])
    if isinstance(content, list) and content:
        return content[0].get("text", "")
    return str(content)


# ─────────────────────────────────────────────────────────────────────────────
# Oracle GenAI: OCI signed requests
# ─────────────────────────────────────────────────────────────────────────────

def _oci_config() -> dict:
    cfg_file = str(Path(settings.OCI_CONFIG_FILE).expanduser())
    return oci.config.from_file(file_location=cfg_file, profile_name=settings.OCI_CONFIG_PROFILE)


def _oci_endpoint(cfg: dict) -> str:
    if settings.ORACLE_GENAI_BASE_URL:
        return settings.ORACLE_GENAI_BASE_URL.rstrip("/")
    region = cfg.get("region", "us-chicago-1")
    return f"https://inference.generativeai.{region}.oci.oraclecloud.com"


def _oci_post(path: str, body: dict, timeout: tuple = (10.0, 120.0)) -> dict:
    """Perform a signed POST request via OCI base client and return JSON dict.

    Args:
        timeout: (connect_timeout, read_timeout) in seconds.
    """
    cfg = _oci_config()
    endpoint = _oci_endpoint(cfg)

    client = oci.generative_ai_inference.GenerativeAiInferenceClient(
        config=cfg,
        service_endpoint=endpoint,
        timeout=timeout,
    )

    response = client.base_client.call_api(
        resource_path=path,
        method="POST",
        header_params={"content-type": "application/json"},
        body=body,
        response_type="str",
    )
    text = response.data if isinstance(response.data, str) else str(response.data)
    return json.loads(text)


async def _oracle_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
    model_id: str,
    images: list[dict] | None,
) -> str:
    body = _build_chat_body(system, messages, max_tokens, temperature, model_id, images)
    # OCI SDK already prefixes the API version path (/20231130)
    try:
        data = await asyncio.to_thread(_oci_post, "/actions/chat", body)
    except oci.exceptions.ServiceError as e:
        raise AIClientError(f"Oracle GenAI error: {e.status} {e.code}") from e
    return _extract_text(data)


# ─────────────────────────────────────────────────────────────────────────────
# Anthropic: only used when OCI is NOT configured
# ─────────────────────────────────────────────────────────────────────────────

def _anthropic_messages(messages: list[dict], images: list[dict] | None) -> list[dict]:
    if not images:
        return messages
    converted = [dict(m) for m in messages]
    last = converted[-1]
    last["content"] = [
        *(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": img.get("mime_type", "image/jpeg"),
                    "data": img["data"],
                },
            }
            for img in images
        ),
        {"type": "text", "text": last.get("content", "")},
    ]
    return converted


async def _anthropic_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
    images: list[dict] | None,
) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
    kwargs = {"system": system} if system else {}
    try:
        response = await client.messages.create(
            model=settings.ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=_anthropic_messages(messages, images),
            **kwargs,
        )
    except anthropic.APIError as e:
        raise AIClientError(f"Anthropic error: {e}") from e
    return response.content[0].text


# ─────────────────────────────────────────────────────────────────────────────
# Status helpers
# ─────────────────────────────────────────────────────────────────────────────

def _oracle_configured() -> bool:
    return bool(
        settings.OCI_CONFIG_FILE
        and settings.OCI_CONFIG_PROFILE
        and settings.ORACLE_GENAI_MODEL
        and settings.ORACLE_GENAI_COMPARTMENT_ID
    )


def _anthropic_configured() -> bool:
    return bool(settings.ANTHROPIC_API_KEY)


def ai_provider_name() -> str:
    if _oracle_configured():
        return f"Oracle GenAI OCI-Signed ({settings.ORACLE_GENAI_MODEL})"
    if _anthropic_configured():
        return f"Anthropic ({settings.ANTHROPIC_MODEL})"
    return "none"


async def ai_health_check() -> dict:
    """Live connectivity test: called by /api/health/ai."""
    provider = ai_provider_name()
    if provider == "none":
        return {
            "provider": "none",
            "status": "unconfigured",
            "message": (
                "Set OCI_CONFIG_FILE, OCI_CONFIG_PROFILE, ORACLE_GENAI_COMPARTMENT_ID "
                "and ORACLE_GENAI_MODEL (or ANTHROPIC_API_KEY) in backend/.env."
            ),
        }

    try:
        reply = await chat(
            system="You are a test assistant.",
            messages=[{"role": "user", "content": "Reply with exactly: OK"}],
            max_tokens=10,
            temperature=0.0,
        )
        return {"provider": provider, "status": "ok", "test_reply": reply.strip()}
    except Exception as e:
        logger.warning("AI health check failed: %s", e)
        return {"provider": provider, "status": "error", "error": str(e)}


# ─────────────────────────────────────────────────────────────────────────────
# Public chat(): the single entry point used by all services
# ─────────────────────────────────────────────────────────────────────────────

async def chat(
    system: str,
    messages: list[dict],
    max_tokens: int = 400,
    temperature: float = 0.7,
    images: list[dict] | None = None,
) -> str:
    """
    Send a chat completion request and return the model's raw text.

    images: optional list of {"data": <base64>, "mime_type": "image/png"} dicts
    attached to the final user message; the vision model is used when present.

    Provider priority:
      1. Oracle GenAI (OCI signed): when OCI config + compartment + model are set
      2. Anthropic    : when ANTHROPIC_API_KEY is set (and Oracle is NOT configured)

    Raises AIClientError when neither provider is configured or the call fails.
    """
    if _oracle_configured():
        model_id = settings.ORACLE_GENAI_VISION_MODEL if images else settings.ORACLE_GENAI_MODEL
        return await _oracle_chat(system, messages, max_tokens, temperature, model_id, images)

    if _anthropic_configured():
        return await _anthropic_chat(system, messages, max_tokens, temperature, images)

    raise AIClientError("No AI provider configured")
