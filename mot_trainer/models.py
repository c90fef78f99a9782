"""Data models for the MOT service trainer."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mot_trainer.errors import ConfigurationError


class Stage(str, Enum):
    """The four MOT service-recovery stages, in order."""
    EXPLORE = "EXPLORE"
    OFFER = "OFFER"
    ACTION = "ACTION"
    CONFIRM = "CONFIRM"

    @property
    def order(self) -> int:
        return STAGE_ORDER.index(self)

    def next(self) -> "Stage":
        """Return the following stage (CONFIRM stays CONFIRM)."""
        i = self.order
        return STAGE_ORDER[min(i + 1, len(STAGE_ORDER) - 1)]


STAGE_ORDER: Tuple[Stage, ...] = (Stage.EXPLORE, Stage.OFFER, Stage.ACTION, Stage.CONFIRM)


@dataclass(frozen=True)
class StagePolicy:
    """Turn-count thresholds for leaving EXPLORE, OFFER and ACTION.

    A stage is left once the total turn count is strictly greater than its
    threshold.
    """
    thresholds: Tuple[int, int, int] = (4, 8, 12)

    def __post_init__(self):
        t = self.thresholds
        if len(t) != 3 or any(x < 0 for x in t) or not (t[0] < t[1] < t[2]):
            raise ConfigurationError(
                f"Stage thresholds must be three increasing non-negative integers, got {t!r}"
            )

    def advance(self, stage: Stage, turn_count: int) -> Stage:
        """Apply one forward step if the count crosses the current stage's threshold."""
        if stage is Stage.CONFIRM:
            return stage
        if turn_count > self.thresholds[stage.order]:
            return stage.next()
        return stage


@dataclass(frozen=True)
class Industry:
    id: str
    name: str
    icon: str
    description: str

    def to_dict(self):
        return {"id": self.id, "name": self.name, "icon": self.icon, "description": self.description}


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    avatar: str
    difficulty: Literal["高", "中", "低"]
    traits: Tuple[str, ...]
    description: str

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "difficulty": self.difficulty,
            "traits": list(self.traits),
            "description": self.description,
        }


@dataclass(frozen=True)
class VoiceOption:
    id: str
    name: str
    description: str
    voice_name: str  # backend TTS voice id

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "voice_name": self.voice_name,
        }


@dataclass(frozen=True)
class Scenario:
    """The industry and persona picked on the configuration screen."""
    industry: Industry
    persona: Persona
    voice: Optional[VoiceOption] = None

    def to_dict(self):
        return {
            "industry": self.industry.to_dict(),
            "persona": self.persona.to_dict(),
            "voice": self.voice.to_dict() if self.voice else None,
        }


@dataclass(frozen=True)
class Turn:
    """One message in the role-play: the simulated customer or the trainee."""
    role: Literal["customer", "trainee"]
    text: str
    seq: int  # 1-based position in the turn log
    ts: float = field(default_factory=lambda: time.time())

    def to_dict(self):
        return {
            "role": self.role,
            "text": self.text,
            "seq": self.seq,
            "ts": self.ts
        }


@dataclass(frozen=True)
class CoachAdvice:
    comment: str
    tags: Tuple[str, ...] = ()

    def to_dict(self):
        return {"comment": self.comment, "tags": list(self.tags)}


INITIAL_ADVICE = CoachAdvice(comment="点击开始对话，我将为您提供实时指导。")


class KeyMoment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["positive", "negative"]
    time: str = ""
    stage: str
    content: str
    comment: str


class EvaluationReport(BaseModel):
    """End-of-session scoring document. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    overall_score: float = Field(alias="overallScore", ge=0, le=100)
    empathy: float = Field(ge=0, le=100)
    logic: float = Field(ge=0, le=100)
    efficiency: float = Field(ge=0, le=100)
    compliance: float = Field(ge=0, le=100)
    professionalism: float = Field(ge=0, le=100)
    summary: str
    strengths: List[str]
    weaknesses: List[str]
    key_moments: List[KeyMoment] = Field(alias="keyMoments")


SCORE_FIELDS = ("overall_score", "empathy", "logic", "efficiency", "compliance", "professionalism")


@dataclass
class Session:
    """State of one training run. Owned by a single TrainingOrchestrator."""
    scenario: Scenario
    stage: Stage = Stage.EXPLORE
    turns: List[Turn] = field(default_factory=list)
    advice: CoachAdvice = INITIAL_ADVICE
    report: Optional[EvaluationReport] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=lambda: time.time())
    finished_at: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.report is not None

    @property
    def trainee_turns(self) -> int:
        return sum(1 for t in self.turns if t.role == "trainee")

    def append_turn(self, role: str, text: str) -> Turn:
        turn = Turn(role=role, text=text, seq=len(self.turns) + 1)
        self.turns.append(turn)
        return turn

    def last_customer_text(self) -> str:
        for turn in reversed(self.turns):
            if turn.role == "customer":
                return turn.text
        return ""

    def to_dict(self):
        return {
            "id": self.id,
            "scenario": self.scenario.to_dict(),
            "stage": self.stage.value,
            "turns": [t.to_dict() for t in self.turns],
            "advice": self.advice.to_dict(),
            "report": self.report.model_dump() if self.report else None,
            "finished": self.finished,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }
