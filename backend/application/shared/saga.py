"""Saga runner for multi-step remote writes.

A saga is an ordered list of steps. Critical steps abort the saga when they
fail (after their retries); completed steps are then compensated in reverse
order. Non-critical steps are best-effort: a failure is recorded and the
saga continues.
"""

from dataclasses import dataclass, field
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class SagaStep:
    """One write of a saga.

    Attributes:
        name: Step name used in logs and PartialWriteError
        action: Idempotent write to run
        compensation: Undo of the write, run if a later critical step fails
        critical: A failing critical step aborts the saga
        retries: Extra attempts after the first failure
    """

    name: str
    action: Action
    compensation: Optional[Action] = None
    critical: bool = True
    retries: int = 0

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError(f"retries cannot be negative: {self.retries}")


@dataclass
class SagaOutcome:
    """Result of running a saga.

    Attributes:
        completed: Steps that succeeded, in execution order
        failed: Steps that failed after their retries
        errors: Last exception of each failed step
        aborted: True when a critical step failed
        compensated: True when every completed step was undone after abort
    """

    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, Exception] = field(default_factory=dict)
    aborted: bool = False
    compensated: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def first_error(self) -> Optional[Exception]:
        return self.errors[self.failed[0]] if self.failed else None


class Saga:
    """
    Run steps in order with retries, best-effort steps and compensation.

    Example:
        >>> saga = Saga("sign_up")
        >>> saga.add_step(SagaStep("users_doc", write_user, compensation=delete_user, retries=1))
        >>> outcome = await saga.run()
        >>> outcome.succeeded
        True
    """

    def __init__(self, operation: str):
        self.operation = operation
        self._steps: List[SagaStep] = []

    def add_step(self, step: SagaStep) -> "Saga":
        self._steps.append(step)
        return self

    async def run(self) -> SagaOutcome:
        outcome = SagaOutcome()
        done: List[SagaStep] = []

        for step in self._steps:
            error = await self._attempt(step)
            if error is None:
                done.append(step)
                outcome.completed.append(step.name)
                continue

            outcome.failed.append(step.name)
            outcome.errors[step.name] = error

            if not step.critical:
                logger.warning(
                    "Best-effort saga step failed",
                    extra={"operation": self.operation, "step": step.name, "error": str(error)},
                )
                continue

            logger.error(
                "Critical saga step failed, compensating",
                extra={
                    "operation": self.operation,
                    "step": step.name,
                    "completed": list(outcome.completed),
                    "error": str(error),
                },
            )
            outcome.aborted = True
            outcome.compensated = await self._compensate(done)
            break

        return outcome

    async def _attempt(self, step: SagaStep) -> Optional[Exception]:
        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            logger.info(
                "Retrying saga step",
                extra={
                    "operation": self.operation,
                    "step": step.name,
                    "attempt": state.attempt_number,
                    "error": str(error),
                },
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(step.retries + 1),
                before_sleep=log_retry,
            ):
                with attempt:
                    await step.action()
        except RetryError as e:
            return e.last_attempt.exception()  # type: ignore[return-value]
        return None

    async def _compensate(self, done: List[SagaStep]) -> bool:
        compensated = True
        for step in reversed(done):
            if step.compensation is None:
                continue
            try:
                await step.compensation()
            except Exception as e:
                compensated = False
                logger.error(
                    "Saga compensation failed",
                    extra={"operation": self.operation, "step": step.name, "error": str(e)},
                    exc_info=True,
                )
        return compensated
