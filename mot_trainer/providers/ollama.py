from typing import Any, Dict, List

from mot_trainer.errors import AdapterError
from mot_trainer.prompt import Message
from mot_trainer.providers.base import BaseAdapter, text_field


class OllamaAdapter(BaseAdapter):
    """Local Ollama backend via POST {LOCAL_LLM_URL}/api/chat. No credential."""

    name = "ollama"

    async def _complete(self, system: str, messages: List[Message], *, temperature: float, json_mode: bool = False) -> str:
        base_url = self.settings.local_llm_url
        payload: Dict[str, Any] = {
            "model": self.settings.local_llm_model,
            "messages": [{"role": "system", "content": system}] + list(messages),
            "stream": False,
            "options": {"temperature": temperature},
        }
        if json_mode:
            payload["format"] = "json"

        data = await self._post_json(f"{base_url}/api/chat", payload)
        message = data.get("message") or {}
        if not isinstance(message, dict):
            raise AdapterError("bad_response", "ollama response message is not an object")
        return text_field(message.get("content"), "ollama")
