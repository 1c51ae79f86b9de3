"""
Base Orchestrator

Orchestrators run a pipeline as one unit of work: every write commits
together or is rolled back together. Each pipeline step is recorded, and
the recorded steps are stored as a DecisionTrace in the same transaction.
Side effects that must not happen before the commit go in _after_commit.
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.decision_trace import DecisionTrace
from app.utils.invariants import validate_orchestrator_name, validate_request_id

logger = logging.getLogger(__name__)


T = TypeVar('T')


class ExecutionStep:
    """One recorded pipeline step."""

    def __init__(self, action: str, number: int):
        self.number = number
        self.action = action
        self.status = "in_progress"
        self.error: Optional[str] = None
        self.elapsed_ms: Optional[int] = None
        self.details: Dict[str, Any] = {}
        self._clock = time.monotonic()

    def finish(self, status: str = "success", error: Optional[str] = None) -> None:
        self.status = status
        self.error = error
        self.elapsed_ms = int((time.monotonic() - self._clock) * 1000)

    def to_dict(self) -> Dict[str, Any]:
        entry = {
            "step": self.number,
            "action": self.action,
            "status": self.status,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.details:
            entry["details"] = self.details
        if self.error:
            entry["error"] = self.error
        return entry


class OrchestrationError(Exception):
    """Base exception for orchestration errors"""
    pass


class PersistenceError(OrchestrationError):
    """Raised when the storage layer fails inside the unit of work"""
    pass


class BaseOrchestrator(ABC, Generic[T]):
    """
    Runs a traced pipeline inside one transaction.

    Subclasses provide orchestrator_name and _execute_pipeline(context), and
    may override _after_commit(result, context) for side effects that must
    only happen once the transaction is durable.
    """

    def __init__(self, db: Session, user_id: Optional[int] = None):
        """
        Initialize base orchestrator.

        Args:
            db: Database session
            user_id: Acting user ID for this operation
        """
        self.db = db
        self.user_id = user_id
        self._started = 0.0
        self._current_request_id = None
        self._execution_steps: List[ExecutionStep] = []

    @property
    @abstractmethod
    def orchestrator_name(self) -> str:
        """Name stored on the DecisionTrace (letters, digits, underscores)."""
        pass

    @abstractmethod
    def _execute_pipeline(self, context: Dict[str, Any]) -> T:
        """
        Execute the orchestration pipeline inside the unit of work.

        Must not commit and must not perform side effects outside the
        database session; those belong in _after_commit.

        Args:
            context: Execution context with input data and configuration

        Returns:
            Result of the orchestration
        """
        pass

    def _after_commit(self, result: T, context: Dict[str, Any]) -> None:
        """Hook for side effects once the transaction is committed."""
        pass

    def execute(self, request_id: str, input_data: Dict[str, Any]) -> T:
        """
        Execute the orchestration as one all-or-nothing unit of work.

        Any exception before the commit rolls back every change made by
        the pipeline and is re-raised; storage failures are re-raised as
        PersistenceError.

        Args:
            request_id: Correlation id of the request
            input_data: Input data for the orchestration

        Returns:
            Result of the orchestration
        """
        try:
            validate_request_id(request_id)
            validate_orchestrator_name(self.orchestrator_name)
        except ValueError as e:
            raise OrchestrationError(f"Invalid input: {str(e)}") from e

        self._current_request_id = request_id
        self._started = time.monotonic()
        self._execution_steps = []

        context = {'input': input_data, 'request_id': request_id}

        with self._unit_of_work():
            with self._trace_step("execute_pipeline"):
                result = self._execute_pipeline(context)
            self._persist_trace()

        self._after_commit(result, context)
        return result

    @contextmanager
    def _unit_of_work(self):
        """Commit on success; roll back and re-raise on any failure."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._log_failed_trace(e)
            raise PersistenceError(f"{self.orchestrator_name} failed to persist: {e}") from e
        except Exception as e:
            self.db.rollback()
            self._log_failed_trace(e)
            raise

    # Tracing

    @contextmanager
    def _trace_step(self, action: str):
        """Record ``action`` as a step; the step is yielded for details."""
        step = self._new_step(action)
        try:
            yield step
        except Exception as e:
            step.finish("failed", error=str(e))
            raise
        step.finish()

    def log_step(self, action: str, status: str = "skipped") -> None:
        """Record a step that did no work (e.g. a skipped branch)."""
        self._new_step(action).finish(status)

    def _new_step(self, action: str) -> ExecutionStep:
        step = ExecutionStep(action, len(self._execution_steps) + 1)
        self._execution_steps.append(step)
        return step

    def _persist_trace(self) -> DecisionTrace:
        """Store the recorded steps in the current transaction."""
        decision_trace = DecisionTrace(
            request_id=self._current_request_id,
            orchestrator_name=self.orchestrator_name,
            user_id=self.user_id,
            trace_json={
                "result": "success",
                "elapsed_ms": int((time.monotonic() - self._started) * 1000),
                "steps": [step.to_dict() for step in self._execution_steps],
            },
            created_at=datetime.utcnow()
        )
        self.db.add(decision_trace)
        self.db.flush()
        return decision_trace

    def _log_failed_trace(self, error: Exception) -> None:
        # The transaction is gone, so a failed trace only reaches the log
        logger.warning(
            "%s failed for request %s: %s (steps: %s)",
            self.orchestrator_name,
            self._current_request_id,
            error,
            [step.to_dict() for step in self._execution_steps],
        )
