"""Groq backend (OpenAI-compatible chat completions, bearer auth)."""

from typing import Any, Dict, List, Optional

import httpx

from mot_trainer.config import Settings
from mot_trainer.errors import AdapterError, ConfigurationError
from mot_trainer.prompt import Message
from mot_trainer.providers.base import BaseAdapter, text_field


class GroqAdapter(BaseAdapter):
    name = "groq"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings, transport)
        if not settings.groq_api_key:
            raise ConfigurationError("GROQ_API_KEY is not set.")
        self.api_key = settings.groq_api_key
        self.model = settings.groq_model
        self.url = f"{settings.groq_base_url}/chat/completions"

    async def _complete(self, system: str, messages: List[Message], *, temperature: float, json_mode: bool = False) -> str:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}] + list(messages),
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        headers = {"Authorization": f"Bearer {self.api_key}"}
        data = await self._post_json(self.url, body, headers)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AdapterError("bad_response", "groq response has no message content") from e
        return text_field(content, "groq")
