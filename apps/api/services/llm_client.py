"""
LLM Client

Thin wrapper over the OpenAI chat completions API used for client
role-play, simulation scoring and coaching plan text.

Callers treat every failure as recoverable: they catch LLMError and fall
back to fixed defaults so the request never fails because the model did.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from core.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The model call failed or returned something unusable."""


class LLMUnavailableError(LLMError):
    """No API key configured."""


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    First JSON object in model output.

    Accepts a bare object or one wrapped in prose / markdown fences.
    """
    if not text:
        raise LLMError("Empty model response")

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise LLMError("No JSON object found in model response")

    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise LLMError(f"Malformed JSON in model response: {e}") from e
    if not isinstance(parsed, dict):
        raise LLMError("Model response JSON is not an object")
    return parsed


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_S
        self._client: Optional[OpenAI] = None

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if not self.is_available:
            raise LLMUnavailableError("OPENAI_API_KEY not configured")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        json_mode: bool = False,
    ) -> str:
        """Run one chat completion and return the assistant text."""
        client = self._get_client()

        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"OpenAI chat completion failed: {e}")
            raise LLMError("OpenAI request failed") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("OpenAI returned an empty completion")
        return content

    def chat_json(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> Dict[str, Any]:
        content = self.chat(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        return extract_json_object(content)


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
        if not _llm_client.is_available:
            logger.warning("OPENAI_API_KEY not set; LLM features will use fallbacks")
    return _llm_client
