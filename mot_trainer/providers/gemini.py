"""Gemini backend using the Gemini Developer API generateContent endpoint."""

from typing import Any, Dict, List, Optional

import httpx

from mot_trainer.config import Settings
from mot_trainer.errors import AdapterError, ConfigurationError
from mot_trainer.prompt import Message
from mot_trainer.providers.base import BaseAdapter, text_field
from mot_trainer.schema import EVALUATION_RESPONSE_SCHEMA


def extract_text(data: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        raise AdapterError("bad_response", "gemini response has no candidates")
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise AdapterError("bad_response", "gemini candidate content is not an object")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise AdapterError("bad_response", "gemini candidate parts is not a list")
    return "".join(text_field(p.get("text"), "gemini") for p in parts if isinstance(p, dict))


class GeminiAdapter(BaseAdapter):
    """Google Gemini backend."""

    name = "gemini"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings, transport)

        # Validate API key before any network I/O
        if not settings.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is required. Please set it in your .env file or environment variables."
            )
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.url = f"{settings.gemini_base_url}/v1beta/models/{self.model}:generateContent"

    async def _complete(self, system: str, messages: List[Message], *, temperature: float, json_mode: bool = False) -> str:
        generation_config: Dict[str, Any] = {"temperature": temperature}
        if json_mode:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = EVALUATION_RESPONSE_SCHEMA

        body = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [
                {"role": "model" if m["role"] == "assistant" else "user", "parts": [{"text": m["content"]}]}
                for m in messages
            ],
            "generationConfig": generation_config,
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        data = await self._post_json(self.url, body, headers)
        return extract_text(data)
