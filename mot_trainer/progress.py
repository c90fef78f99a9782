"""In-process record of finished sessions, summarised for the progress dashboard."""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List

from mot_trainer.models import SCORE_FIELDS, EvaluationReport, Session


@dataclass(frozen=True)
class ProgressEntry:
    session_id: str
    industry: str
    persona: str
    finished_at: float
    turns: int
    report: EvaluationReport

    def to_dict(self):
        return {
            "session_id": self.session_id,
            "industry": self.industry,
            "persona": self.persona,
            "finished_at": self.finished_at,
            "turns": self.turns,
            "overall_score": self.report.overall_score,
        }


class ProgressHistory:
    """Finished sessions for this process only. Cleared on restart."""

    def __init__(self, recent_limit: int = 10):
        self.recent_limit = recent_limit
        self._entries: List[ProgressEntry] = []
        self._lock = threading.Lock()

    def record(self, session: Session) -> ProgressEntry:
        if session.report is None or session.finished_at is None:
            raise ValueError("Only finished sessions can be recorded")
        entry = ProgressEntry(
            session_id=session.id,
            industry=session.scenario.industry.name,
            persona=session.scenario.persona.name,
            finished_at=session.finished_at,
            turns=len(session.turns),
            report=session.report,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> List[ProgressEntry]:
        with self._lock:
            return list(self._entries)

    def summary(self) -> Dict[str, Any]:
        """Dashboard numbers: averages per score, best overall, recent sessions."""
        entries = self.entries()
        if not entries:
            return {
                "sessions_completed": 0,
                "averages": {name: None for name in SCORE_FIELDS},
                "best_overall": None,
                "recent": [],
            }

        averages = {
            name: round(sum(getattr(e.report, name) for e in entries) / len(entries), 1)
            for name in SCORE_FIELDS
        }
        recent = sorted(entries, key=lambda e: e.finished_at, reverse=True)[: self.recent_limit]
        return {
            "sessions_completed": len(entries),
            "averages": averages,
            "best_overall": max(e.report.overall_score for e in entries),
            "recent": [e.to_dict() for e in recent],
        }
