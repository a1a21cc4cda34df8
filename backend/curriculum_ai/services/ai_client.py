"""
Unified AI client for lesson generation and tutor chat.

Provider priority:
  1. Oracle Generative AI Inference via OCI SDK + signed requests (~/.oci/config)
  2. OpenAI chat completions
  3. Anthropic messages

When no provider is configured, chat() raises AINotConfiguredError and callers
fall back to their canned output.
"""

import json
import asyncio
import logging
from pathlib import Path

import oci
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from curriculum_ai.config import settings

logger = logging.getLogger(__name__)


class AINotConfiguredError(RuntimeError):
    """Raised when a model call is attempted with no provider configured."""


# ─────────────────────────────────────────────────────────────────────────────
# Oracle GenAI request / response builders
# ─────────────────────────────────────────────────────────────────────────────

def _is_cohere(model_id: str) -> bool:
    forced = settings.ORACLE_GENAI_API_FORMAT.strip().upper()
    if forced == "COHERE":
        return True
    if forced == "GENERIC":
        return False
    return model_id.lower().startswith("cohere.")


def _build_chat_body(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> dict:
    """Build JSON body for POST /20231130/actions/chat."""
    model_id = settings.ORACLE_GENAI_MODEL
    serving_mode = {"servingType": "ON_DEMAND", "modelId": model_id}

    if _is_cohere(model_id):
        # Cohere: single "message" string + optional history + preamble
        history = [
            {"role": "USER" if m.get("role", "user") == "user" else "CHATBOT", "message": m.get("content", "")}
            for m in messages[:-1]
        ]
        chat_req: dict = {
            "apiFormat": "COHERE",
            "message": messages[-1].get("content", "") if messages else "",
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
        chat_req = {
            "apiFormat": "GENERIC",
            "messages": [
                {
                    "role": "USER" if m.get("role", "user") == "user" else "ASSISTANT",
                    "content": [{"type": "TEXT", "text": m.get("content", "")}],
                }
                for m in messages
            ],
            "maxTokens": max_tokens,
            "temperature": temperature,
            "isStream": False,
        }
        if system:
            chat_req["systemMessage"] = system

    return {
        "servingMode": serving_mode,
        "chatRequest": chat_req,
        "compartmentId": settings.ORACLE_GENAI_COMPARTMENT_ID,
    }


def _extract_text(response_json: dict) -> str:
    """Pull plain text from an /actions/chat response."""
    chat_resp = response_json.get("chatResponse", {})
    if chat_resp.get("apiFormat", "GENERIC") == "COHERE":
        return chat_resp.get("text", "")
    choices = chat_resp.get("choices", [])
    if not choices:
        return ""
    content = choices[0].get("message", {}).get("content", [])
    if isinstance(content, list) and content:
        return content[0].get("text", "")
    return str(content)


# ─────────────────────────────────────────────────────────────────────────────
# Providers
# ─────────────────────────────────────────────────────────────────────────────

def _oci_post(path: str, body: dict, timeout: tuple = (10.0, 300.0)) -> dict:
    """Perform a signed POST via the OCI base client and return the JSON dict."""
    cfg = oci.config.from_file(
        file_location=str(Path(settings.OCI_CONFIG_FILE).expanduser()),
        profile_name=settings.OCI_CONFIG_PROFILE,
    )
    endpoint = settings.ORACLE_GENAI_BASE_URL.rstrip("/") or (
        f"https://inference.generativeai.{cfg.get('region', 'us-chicago-1')}.oci.oraclecloud.com"
    )
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


async def _oracle_chat(system: str, messages: list[dict], max_tokens: int, temperature: float) -> str:
    body = _build_chat_body(system, messages, max_tokens, temperature)
    # OCI SDK already prefixes the API version path (/20231130).
    data = await asyncio.to_thread(_oci_post, "/actions/chat", body)
    return _extract_text(data)


async def _openai_chat(system: str, messages: list[dict], max_tokens: int, temperature: float) -> str:
    payload = ([{"role": "system", "content": system}] if system else []) + messages
    try:
        async with AsyncOpenAI(api_key=settings.OPENAI_API_KEY.strip()) as client:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=payload,
                max_tokens=max_tokens,
                temperature=temperature,
            )
    except Exception as e:
        raise RuntimeError(f"OpenAI error: {e}") from e
    return response.choices[0].message.content or ""


async def _anthropic_chat(system: str, messages: list[dict], max_tokens: int, temperature: float) -> str:
    extra = {"system": system} if system else {}
    try:
        async with AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY) as client:
            response = await client.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=messages,
                **extra,
            )
    except Exception as e:
        raise RuntimeError(f"Anthropic error: {e}") from e
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


def _openai_configured() -> bool:
    # Same sanity check the upload UI used for keys: "sk-" prefix and a plausible length
    key = settings.OPENAI_API_KEY.strip()
    return key.startswith("sk-") and len(key) > 20


def _anthropic_configured() -> bool:
    return bool(settings.ANTHROPIC_API_KEY)


def ai_provider_name() -> str:
    if _oracle_configured():
        return f"Oracle GenAI OCI-Signed ({settings.ORACLE_GENAI_MODEL})"
    if _openai_configured():
        return f"OpenAI ({settings.OPENAI_MODEL})"
    if _anthropic_configured():
        return f"Anthropic ({settings.ANTHROPIC_MODEL})"
    return "none"


def ai_configured() -> bool:
    return ai_provider_name() != "none"


async def ai_health_check() -> dict:
    """Live connectivity test — called by /api/health/ai."""
    provider = ai_provider_name()
    if provider == "none":
        return {
            "provider": "none",
            "status": "unconfigured",
            "message": (
                "Set OPENAI_API_KEY, ANTHROPIC_API_KEY, or the OCI_* / ORACLE_GENAI_* "
                "settings in backend/.env."
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
        return {"provider": provider, "status": "error", "error": str(e)}


# ─────────────────────────────────────────────────────────────────────────────
# Public entry points
# ─────────────────────────────────────────────────────────────────────────────

async def chat(
    system: str,
    messages: list[dict],
    max_tokens: int = 400,
    temperature: float = 0.7,
) -> str:
    """Send a chat completion request to the first configured provider.

    Providers are never used as silent fallbacks for each other: if the
    selected provider fails, the error is surfaced to the caller.
    """
    if _oracle_configured():
        return await _oracle_chat(system, messages, max_tokens, temperature)
    if _openai_configured():
        return await _openai_chat(system, messages, max_tokens, temperature)
    if _anthropic_configured():
        return await _anthropic_chat(system, messages, max_tokens, temperature)
    raise AINotConfiguredError("No AI provider is configured")


async def generate(prompt: str, temperature: float = 0.7, max_tokens: int = 1000) -> str:
    """Single-prompt text generation. The model is treated as stateless."""
    logger.debug("Model call via %s (max_tokens=%d)", ai_provider_name(), max_tokens)
    return await chat(
        system="",
        messages=[{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
        temperature=temperature,
    )
