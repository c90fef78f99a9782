from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from mot_trainer.errors import AdviceFormatError, EvaluationError
from mot_trainer.models import CoachAdvice, EvaluationReport

logger = logging.getLogger(__name__)

FALLBACK_ADVICE = CoachAdvice(comment="导师暂时无法给出建议，请继续对话。", tags=("解析失败",))

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def try_parse_json(text: Optional[str]) -> Dict[str, Any]:
    """
    JSON object extraction that tolerates code fences and extra text around JSON.
    Raises ValueError when no object can be decoded.
    """
    if text is None:
        raise ValueError("Empty response")
    s = _FENCE_RE.sub("", text.strip()).strip()
    if not s:
        raise ValueError("Empty response")

    # direct JSON
    if s.startswith("{") and s.endswith("}"):
        obj = json.loads(s)
    else:
        # try to extract first {...last}
        start = s.find("{")
        end = s.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("No JSON object found")
        obj = json.loads(s[start:end + 1])

    if not isinstance(obj, dict):
        raise ValueError("Response is not a JSON object")
    return obj


def parse_coach_advice(text: Optional[str]) -> CoachAdvice:
    """Parse the "<comment> | <tag1>,<tag2>" micro-format.

    Only the first "|" separates comment from tags. Without a "|" the whole
    text is the comment and there are no tags.

    Raises:
        AdviceFormatError: If the text or the comment part is empty
    """
    if text is None or not text.strip():
        raise AdviceFormatError("empty advice")

    comment, sep, tag_part = text.partition("|")
    comment = comment.strip()
    if not comment:
        raise AdviceFormatError(f"advice has no comment: {text[:80]!r}")

    tags = []
    if sep:
        for raw in tag_part.split(","):
            tag = raw.strip().lstrip("#").strip()
            if tag:
                tags.append(tag)
    return CoachAdvice(comment=comment, tags=tuple(tags))


def coerce_coach_advice(text: Optional[str]) -> CoachAdvice:
    """Lenient wrapper: malformed advice degrades to FALLBACK_ADVICE."""
    try:
        return parse_coach_advice(text)
    except AdviceFormatError as e:
        logger.warning("[COACH] Malformed advice, using fallback: %s", e)
        return FALLBACK_ADVICE


def parse_evaluation(text: Optional[str]) -> EvaluationReport:
    """
    Decode and validate an evaluation report. No field is defaulted: a
    response missing any required key is rejected.
    """
    try:
        obj = try_parse_json(text)
    except ValueError as e:
        raise EvaluationError(f"Evaluation is not valid JSON: {e}") from e

    try:
        return EvaluationReport.model_validate(obj)
    except ValidationError as e:
        raise EvaluationError(
            f"Evaluation does not match schema ({e.error_count()} errors): {e}"
        ) from e


_NUMBER = {"type": "NUMBER"}
_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

# Gemini responseSchema (OpenAPI subset) for EvaluationReport
EVALUATION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "overallScore": _NUMBER,
        "empathy": _NUMBER,
        "logic": _NUMBER,
        "efficiency": _NUMBER,
        "compliance": _NUMBER,
        "professionalism": _NUMBER,
        "summary": _STRING,
        "strengths": _STRING_LIST,
        "weaknesses": _STRING_LIST,
        "keyMoments": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "type": {"type": "STRING", "enum": ["positive", "negative"]},
                    "time": _STRING,
                    "stage": _STRING,
                    "content": _STRING,
                    "comment": _STRING,
                },
                "required": ["type", "time", "stage", "content", "comment"],
            },
        },
    },
    "required": [
        "overallScore", "empathy", "logic", "efficiency", "compliance",
        "professionalism", "summary", "strengths", "weaknesses", "keyMoments",
    ],
}
