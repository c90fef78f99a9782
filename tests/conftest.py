# tests/conftest.py
# Shared fixtures: a scripted adapter that never touches the network,
# a default scenario, and a canned evaluation document.

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from mot_trainer.catalog import build_scenario
from mot_trainer.config import Settings
from mot_trainer.models import CoachAdvice, EvaluationReport, Scenario
from mot_trainer.providers.base import BaseAdapter


def report_document(**overrides: Any) -> Dict[str, Any]:
    """A valid evaluation document as the backend would send it (camelCase keys)."""
    doc = {
        "overallScore": 82,
        "empathy": 85,
        "logic": 78,
        "efficiency": 80,
        "compliance": 90,
        "professionalism": 77,
        "summary": "整体表现良好，能够安抚客户情绪。",
        "strengths": ["及时道歉", "确认需求"],
        "weaknesses": ["方案不够具体"],
        "keyMoments": [
            {
                "type": "positive",
                "time": "00:12",
                "stage": "EXPLORE",
                "content": "非常抱歉给您带来不便",
                "comment": "先处理情绪再处理事情",
            }
        ],
    }
    doc.update(overrides)
    return doc


class FakeAdapter(BaseAdapter):
    """Scripted adapter. Set fail_* to an exception to simulate backend failures,
    or gate to an asyncio.Event to hold customer replies until it is set."""

    name = "fake"

    def __init__(self, replies: Optional[List[str]] = None):
        super().__init__(Settings(provider="ollama"))
        self.replies = list(replies or [])
        self.advice = CoachAdvice(comment="做得很好", tags=("同理心", "效率"))
        self.report = EvaluationReport.model_validate(report_document())

        self.reply_calls: List[tuple] = []
        self.advice_calls: List[tuple] = []
        self.evaluation_calls: List[list] = []

        self.fail_reply: Optional[Exception] = None
        self.fail_advice: Optional[Exception] = None
        self.fail_evaluation: Optional[Exception] = None

        self.gate: Optional[asyncio.Event] = None
        self.entered: Optional[asyncio.Event] = None

    async def _complete(self, system, messages, *, temperature, json_mode=False):
        raise AssertionError("FakeAdapter never talks to a backend")

    async def generate_customer_reply(self, scenario, stage, history):
        self.reply_calls.append((stage, list(history)))
        if self.gate is not None:
            if self.entered is not None:
                self.entered.set()
            await self.gate.wait()
        if self.fail_reply is not None:
            raise self.fail_reply
        if self.replies:
            return self.replies.pop(0)
        return f"客户第{len(self.reply_calls)}句"

    async def generate_coach_advice(self, scenario, stage, last_customer_text, last_trainee_text):
        self.advice_calls.append((stage, last_customer_text, last_trainee_text))
        if self.fail_advice is not None:
            raise self.fail_advice
        return self.advice

    async def generate_evaluation(self, history):
        self.evaluation_calls.append(list(history))
        if self.fail_evaluation is not None:
            raise self.fail_evaluation
        return self.report


@pytest.fixture
def scenario() -> Scenario:
    return build_scenario("retail", "angry_elder", "v2")


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        provider="gemini",
        gemini_api_key="test-gemini-key",
        groq_api_key="test-groq-key",
        timeout_seconds=5.0,
    )


@pytest.fixture
def report_doc():
    return report_document
