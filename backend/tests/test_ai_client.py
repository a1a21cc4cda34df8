"""Tests for provider selection and client lifecycle in the AI client (no network)."""

import asyncio
import sys
import os
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from curriculum_ai.config import settings
from curriculum_ai.services import ai_client

OPENAI_KEY = "sk-" + "x" * 30


class FakeOpenAI:
    """Stands in for AsyncOpenAI and records whether it was closed."""

    instances = []

    def __init__(self, api_key, reply="Hello from OpenAI", error=None):
        self.api_key = api_key
        self.closed = False
        self.requests = []
        self.reply = reply
        self.error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        FakeOpenAI.instances.append(self)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True


class FakeAnthropic:
    """Stands in for AsyncAnthropic and records whether it was closed."""

    instances = []

    def __init__(self, api_key):
        self.api_key = api_key
        self.closed = False
        self.requests = []
        self.messages = SimpleNamespace(create=self._create)
        FakeAnthropic.instances.append(self)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(text="Hello from Anthropic")])

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True


@pytest.fixture
def fakes(monkeypatch):
    FakeOpenAI.instances = []
    FakeAnthropic.instances = []
    monkeypatch.setattr(ai_client, "AsyncOpenAI", FakeOpenAI)
    monkeypatch.setattr(ai_client, "AsyncAnthropic", FakeAnthropic)
    monkeypatch.setattr(settings, "ORACLE_GENAI_COMPARTMENT_ID", "")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
    return monkeypatch


def run_chat(system="Be brief.", text="hi"):
    return asyncio.run(ai_client.chat(system, [{"role": "user", "content": text}]))


class TestOpenAI:
    """OpenAI chat completions."""

    def test_reply_and_client_closed(self, fakes):
        """The reply comes back and the per-call client is closed."""
        fakes.setattr(settings, "OPENAI_API_KEY", OPENAI_KEY)
        assert run_chat() == "Hello from OpenAI"

        client = FakeOpenAI.instances[0]
        assert client.closed
        assert client.api_key == OPENAI_KEY
        assert client.requests[0]["messages"][0] == {"role": "system", "content": "Be brief."}

    def test_each_call_closes_its_client(self, fakes):
        """Repeated calls do not leave clients open."""
        fakes.setattr(settings, "OPENAI_API_KEY", OPENAI_KEY)
        for _ in range(3):
            run_chat()
        assert len(FakeOpenAI.instances) == 3
        assert all(c.closed for c in FakeOpenAI.instances)

    def test_error_is_wrapped_and_client_closed(self, fakes):
        """Provider errors surface as RuntimeError after the client is closed."""
        fakes.setattr(settings, "OPENAI_API_KEY", OPENAI_KEY)
        fakes.setattr(
            ai_client, "AsyncOpenAI",
            lambda api_key: FakeOpenAI(api_key, error=ValueError("quota exceeded")),
        )
        with pytest.raises(RuntimeError, match="OpenAI error: quota exceeded"):
            run_chat()
        assert FakeOpenAI.instances[0].closed

    def test_empty_system_prompt_omitted(self, fakes):
        fakes.setattr(settings, "OPENAI_API_KEY", OPENAI_KEY)
        asyncio.run(ai_client.generate("Explain photosynthesis"))
        messages = FakeOpenAI.instances[0].requests[0]["messages"]
        assert messages == [{"role": "user", "content": "Explain photosynthesis"}]

    def test_implausible_key_is_not_used(self, fakes):
        """A key without the sk- prefix does not count as configured."""
        fakes.setattr(settings, "OPENAI_API_KEY", "not-a-key")
        with pytest.raises(ai_client.AINotConfiguredError):
            run_chat()
        assert FakeOpenAI.instances == []


class TestAnthropic:
    """Anthropic messages."""

    def test_reply_and_client_closed(self, fakes):
        fakes.setattr(settings, "ANTHROPIC_API_KEY", "anthropic-key")
        assert run_chat() == "Hello from Anthropic"

        client = FakeAnthropic.instances[0]
        assert client.closed
        assert client.requests[0]["system"] == "Be brief."

    def test_openai_preferred_when_both_configured(self, fakes):
        fakes.setattr(settings, "OPENAI_API_KEY", OPENAI_KEY)
        fakes.setattr(settings, "ANTHROPIC_API_KEY", "anthropic-key")
        assert run_chat() == "Hello from OpenAI"
        assert FakeAnthropic.instances == []
