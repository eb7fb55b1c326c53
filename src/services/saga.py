"""Sequential saga runner for multi-step store writes.

A saga is an ordered list of steps. Each step has an action and an optional
compensation that undoes it. When a step fails, compensations of the steps
that already completed run in reverse order; every one is attempted even if
an earlier one fails, and the original error is re-raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from src.utils.exceptions import RollbackFailure

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[Any], None]] = None


@dataclass
class Saga:
    """
    Runs steps one at a time and remembers their results.

    Usage:
        saga = Saga("register_group")
        row = saga.run_step("insert Sara", insert_sara, lambda row: delete(row["id"]))
        ...
        saga.compensate()  # undo everything that succeeded so far
    """

    name: str
    completed: List[tuple] = field(default_factory=list)

    def run_step(self, step_name: str, action: Callable[[], Any],
                 compensation: Optional[Callable[[Any], None]] = None) -> Any:
        """
        Execute one step.

        On failure the saga rolls back and the step's exception propagates
        with ``rollback_errors`` attached when it supports it.
        """
        try:
            result = action()
        except Exception as error:
            logger.error(f"Saga '{self.name}' failed at step '{step_name}': {error}")
            rollback_errors = self.compensate()
            if rollback_errors and hasattr(error, "rollback_errors"):
                error.rollback_errors = rollback_errors
            raise

        self.completed.append((SagaStep(step_name, action, compensation), result))
        return result

    def run(self, steps: List[SagaStep]) -> List[Any]:
        return [self.run_step(s.name, s.action, s.compensation) for s in steps]

    def compensate(self) -> List[RollbackFailure]:
        """
        Undo completed steps in reverse order.

        Returns:
            Failures of individual compensations (never raises)
        """
        failures = []
        for step, result in reversed(self.completed):
            if step.compensation is None:
                continue
            try:
                step.compensation(result)
            except Exception as error:
                failure = RollbackFailure(step.name, error)
                logger.error(f"Saga '{self.name}': {failure}")
                failures.append(failure)
        self.completed = []
        return failures
