"""Abstract base class for LLM backends."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from mot_trainer.config import Settings
from mot_trainer.errors import AdapterError, EvaluationError
from mot_trainer.models import CoachAdvice, EvaluationReport, Scenario, Stage, Turn
from mot_trainer.prompt import (
    EVALUATION_INSTRUCTION,
    Message,
    build_coach_instruction,
    build_coach_message,
    build_customer_instruction,
    build_customer_messages,
    build_evaluation_message,
)
from mot_trainer.schema import coerce_coach_advice, parse_evaluation

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """Translates trainer requests into backend chat calls.

    Stateless between calls: every call carries its own full context.
    Subclasses only implement _complete() for their wire format.
    """

    name = "base"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the adapter.

        Args:
            settings: Application settings (model, credentials, timeouts)
            transport: Optional httpx transport, used by tests to stub the backend
        """
        self.settings = settings
        self.timeout = settings.timeout_seconds
        self._transport = transport

    @abstractmethod
    async def _complete(
        self,
        system: str,
        messages: List[Message],
        *,
        temperature: float,
        json_mode: bool = False,
    ) -> str:
        """Send one chat request and return the generated text.

        Args:
            system: System instruction
            messages: Ordered {"role", "content"} messages
            temperature: Sampling temperature
            json_mode: Ask the backend for a JSON document (evaluation)

        Raises:
            AdapterError: On network failure, timeout, bad status or unreadable body
        """
        pass

    async def generate_customer_reply(self, scenario: Scenario, stage: Stage, history: Sequence[Turn]) -> str:
        """Next in-character customer line for the given turn history."""
        text = await self._complete(
            build_customer_instruction(scenario, stage),
            build_customer_messages(scenario, history),
            temperature=self.settings.reply_temperature,
        )
        text = text.strip()
        if not text:
            raise AdapterError("empty_response", f"{self.name} returned an empty customer reply")
        return text

    async def generate_coach_advice(
        self,
        scenario: Scenario,
        stage: Stage,
        last_customer_text: str,
        last_trainee_text: str,
    ) -> CoachAdvice:
        """Stage-aware feedback on the trainee's latest reply.

        Malformed advice text degrades to the fallback advice; transport
        failures still raise AdapterError.
        """
        text = await self._complete(
            build_coach_instruction(),
            [{"role": "user", "content": build_coach_message(scenario, stage, last_customer_text, last_trainee_text)}],
            temperature=self.settings.coach_temperature,
        )
        return coerce_coach_advice(text)

    async def generate_evaluation(self, history: Sequence[Turn]) -> EvaluationReport:
        """Structured end-of-session report over the full turn log.

        Raises:
            EvaluationError: On backend failure or a response that does not match the schema
        """
        try:
            text = await self._complete(
                EVALUATION_INSTRUCTION,
                [{"role": "user", "content": build_evaluation_message(history)}],
                temperature=self.settings.eval_temperature,
                json_mode=True,
            )
        except AdapterError as e:
            raise EvaluationError(f"Evaluation request failed ({e.reason}): {e}") from e
        return parse_evaluation(text)

    async def _post_json(self, url: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """POST a JSON body and decode the JSON response, mapping httpx failures to AdapterError."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(url, json=body, headers=headers)
                r.raise_for_status()
                data = r.json()
        except httpx.TimeoutException as e:
            logger.error("[LLM] %s request timed out after %ss", self.name, self.timeout)
            raise AdapterError("timeout", f"{self.name} request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("[LLM] %s returned HTTP %s", self.name, status)
            raise AdapterError("http_status", f"{self.name} returned HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.error("[LLM] %s request failed: %s", self.name, e)
            raise AdapterError("network", f"{self.name} request failed: {e}") from e
        except ValueError as e:
            raise AdapterError("bad_response", f"{self.name} returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise AdapterError("bad_response", f"{self.name} returned an unexpected body")
        return data


def text_field(value: Any, backend: str) -> str:
    """Normalise a response text field: None becomes "", anything but a string is a bad response."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise AdapterError("bad_response", f"{backend} response text is not a string")
    return value
