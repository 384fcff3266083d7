"""Tests for the chat client's request building and provider selection."""

import asyncio
import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from study_tracker.services import ai_client
from study_tracker.services.ai_client import AIClientError, _build_chat_body, _extract_text


class TestChatBody:

    def test_generic_body(self):
        body = _build_chat_body(
            "Be brief.", [{"role": "user", "content": "Hi"}], 100, 0.3, "meta.llama-3.3-70b-instruct"
        )
        req = body["chatRequest"]
        assert req["apiFormat"] == "GENERIC"
        assert req["systemMessage"] == "Be brief."
        assert req["messages"] == [{"role": "USER", "content": [{"type": "TEXT", "text": "Hi"}]}]
        assert body["servingMode"]["modelId"] == "meta.llama-3.3-70b-instruct"

    def test_images_join_last_user_turn(self):
        body = _build_chat_body(
            "Read this.",
            [{"role": "user", "content": "What is written here?"}],
            100,
            0.2,
            "meta.llama-3.2-90b-vision-instruct",
            images=[{"data": "aGk=", "mime_type": "image/png"}],
        )
        req = body["chatRequest"]
        assert "systemMessage" not in req
        content = req["messages"][0]["content"]
        assert content[0] == {"type": "TEXT", "text": "Read this."}
        assert content[-1] == {"type": "IMAGE", "imageUrl": {"url": "data:image/png;base64,aGk="}}

    def test_cohere_body(self):
        body = _build_chat_body(
            "",
            [{"role": "user", "content": "A"}, {"role": "assistant", "content": "B"}, {"role": "user", "content": "C"}],
            50,
            0.7,
            "cohere.command-r-plus",
        )
        req = body["chatRequest"]
        assert req["apiFormat"] == "COHERE"
        assert req["message"] == "C"
        assert [h["role"] for h in req["chatHistory"]] == ["USER", "CHATBOT"]
        assert "preambleOverride" not in req

    def test_cohere_rejects_images(self):
        with pytest.raises(AIClientError):
            _build_chat_body("", [{"role": "user", "content": "x"}], 10, 0.1, "cohere.command-r", images=[{"data": "x"}])


class TestExtractText:

    def test_generic(self):
        resp = {"chatResponse": {"apiFormat": "GENERIC", "choices": [{"message": {"content": [{"text": "OK"}]}}]}}
        assert _extract_text(resp) == "OK"

    def test_cohere(self):
        assert _extract_text({"chatResponse": {"apiFormat": "COHERE", "text": "OK"}}) == "OK"

    def test_empty(self):
        assert _extract_text({}) == ""


class TestProviderSelection:

    def test_unconfigured_raises(self):
        assert ai_client.ai_provider_name() == "none"
        with pytest.raises(AIClientError):
            asyncio.run(ai_client.chat(system="", messages=[{"role": "user", "content": "hi"}]))

    def test_health_endpoints(self, client):
        assert client.get("/health").json() == {"status": "ok", "ai_provider": "none"}
        assert client.get("/api/health/ai").json()["status"] == "unconfigured"
        assert client.get("/").json()["name"] == "Study Tracker API"
