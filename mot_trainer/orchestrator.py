"""Conversation orchestrator: the per-session stage machine driving the adapter."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from mot_trainer.errors import (
    AdapterError,
    EvaluationError,
    SessionBusyError,
    SessionClosedError,
    SessionNotStartedError,
    TurnCancelledError,
)
from mot_trainer.models import EvaluationReport, Scenario, Session, Stage, StagePolicy, Turn
from mot_trainer.progress import ProgressHistory
from mot_trainer.providers.base import BaseAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrainingOrchestrator:
    """Owns at most one Session and sequences calls into the adapter.

    Only one adapter call chain may be outstanding at a time. A second
    submit while busy is refused, not queued.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        policy: Optional[StagePolicy] = None,
        history: Optional[ProgressHistory] = None,
    ):
        self.adapter = adapter
        self.policy = policy or StagePolicy()
        self.history = history
        self.session: Optional[Session] = None
        self._task: Optional[asyncio.Future] = None
        self._cancel_flag: Dict[str, bool] = {}

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start_session(self, scenario: Scenario, session_id: Optional[str] = None) -> Session:
        """Create a fresh session and fetch the customer's opening line.

        The new session replaces the current one only once the opening call
        succeeds. session_id lets the caller know the id before the opening
        line arrives.

        Raises:
            AdapterError: If the opening call fails (no session is created)
            TurnCancelledError: If cancel() was called while waiting
        """
        self._abort_inflight()
        session = Session(scenario=scenario)
        if session_id:
            session.id = session_id

        async def opening() -> str:
            return await self.adapter.generate_customer_reply(scenario, Stage.EXPLORE, [])

        try:
            first_line = await self._run_exclusive(opening(), rollback=lambda: None)
        except AdapterError as e:
            logger.error("[SESSION] Opening line failed (%s): %s", e.reason, e)
            raise

        session.append_turn("customer", first_line)
        self.session = session
        logger.info(
            "[SESSION] %s started: %s / %s",
            session.id, scenario.industry.name, scenario.persona.name,
        )
        return session

    async def submit_turn(self, text: str) -> Optional[Turn]:
        """Append a trainee reply and fetch the customer's answer plus coach advice.

        Returns:
            The new customer turn, or None when the input is blank or another
            call is still in flight (nothing changes in either case)

        Raises:
            SessionNotStartedError: No session
            SessionClosedError: The session was finished
            AdapterError: Backend failure; turns appended so far are kept
            TurnCancelledError: cancel() was called; the session is restored
        """
        session = self._require_session()
        if session.finished:
            raise SessionClosedError(f"Session {session.id} is finished")
        if not text or not text.strip():
            return None
        if self.busy:
            logger.info("[SESSION] %s busy, turn refused", session.id)
            return None

        text = text.strip()
        snapshot = (len(session.turns), session.advice, session.stage)

        def rollback():
            del session.turns[snapshot[0]:]
            session.advice = snapshot[1]
            session.stage = snapshot[2]

        try:
            return await self._run_exclusive(self._turn_chain(session, text), rollback=rollback)
        except AdapterError as e:
            logger.error("[SESSION] %s turn failed (%s): %s", session.id, e.reason, e)
            raise

    async def _turn_chain(self, session: Session, text: str) -> Turn:
        session.append_turn("trainee", text)
        reply = await self.adapter.generate_customer_reply(session.scenario, session.stage, list(session.turns))
        customer_turn = session.append_turn("customer", reply)
        session.advice = await self.adapter.generate_coach_advice(
            session.scenario, session.stage, customer_turn.text, text
        )
        # the stage only moves after a complete exchange
        self._advance_stage(session)
        return customer_turn

    def _advance_stage(self, session: Session) -> None:
        new_stage = self.policy.advance(session.stage, len(session.turns))
        if new_stage is not session.stage:
            logger.info("[SESSION] %s stage %s -> %s", session.id, session.stage.value, new_stage.value)
            session.stage = new_stage

    async def finish_session(self) -> EvaluationReport:
        """Request the evaluation report and freeze the session.

        Calling it again on a finished session returns the stored report.

        Raises:
            SessionNotStartedError: No session
            SessionBusyError: A turn is still in flight
            EvaluationError: Backend failure, bad schema, or nothing to evaluate;
                the session stays open
        """
        session = self._require_session()
        if session.report is not None:
            return session.report
        if self.busy:
            raise SessionBusyError(f"Session {session.id} has a call in flight")
        if session.trainee_turns == 0:
            raise EvaluationError("No trainee turns to evaluate")

        try:
            report = await self._run_exclusive(
                self.adapter.generate_evaluation(list(session.turns)), rollback=lambda: None
            )
        except EvaluationError as e:
            logger.error("[SESSION] %s evaluation failed: %s", session.id, e)
            raise

        session.report = report
        session.finished_at = time.time()
        if self.history is not None:
            self.history.record(session)
        logger.info("[SESSION] %s finished, overall score %s", session.id, report.overall_score)
        return report

    def cancel(self) -> bool:
        """Abort the in-flight call chain. Returns True if one was running."""
        if not self.busy:
            return False
        self._cancel_flag["requested"] = True
        self._task.cancel()
        return True

    def reset(self) -> None:
        """Discard the session. Safe to call repeatedly."""
        self._abort_inflight()
        if self.session is not None:
            logger.info("[SESSION] %s reset", self.session.id)
        self.session = None

    def _abort_inflight(self) -> None:
        if self.busy:
            self.cancel()

    def _require_session(self) -> Session:
        if self.session is None:
            raise SessionNotStartedError("No active session")
        return self.session

    async def _run_exclusive(self, coro: Awaitable[T], rollback: Callable[[], None]) -> T:
        """Run coro as the single tracked task; undo its effects if cancelled."""
        flag = {"requested": False}
        self._cancel_flag = flag
        task = asyncio.ensure_future(coro)
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            rollback()
            if flag["requested"] and task.cancelled():
                raise TurnCancelledError("Request cancelled") from None
            raise
        finally:
            if self._task is task:
                self._task = None
