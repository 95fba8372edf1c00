import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from src.domain.exceptions import CompensationFailedException

logger = logging.getLogger(__name__)

T = TypeVar("T")
Compensation = Callable[[], Awaitable[None]]


class SagaState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"


class Saga:
    """
    Runs named steps in order and records an undo action for each committed step.

    Used as an async context manager: if the body raises, the recorded undo actions
    run in reverse order and the original exception propagates. If any undo action
    fails, CompensationFailedException is raised instead, chained to the original.

    Usage:
        async with Saga("create-mirror") as saga:
            repo = await saga.step("create-repo", create, compensation=lambda repo: delete(repo))
    """

    def __init__(self, name: str):
        self.name = name
        self.state = SagaState.PENDING
        self.current_step: Optional[str] = None
        self.completed_steps: List[str] = []
        self._undo: List[Tuple[str, Compensation]] = []

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        compensation: Optional[Callable[[T], Awaitable[None]]] = None,
    ) -> T:
        self.current_step = name
        logger.debug(f"[{self.name}] step '{name}' started.")

        result = await action()

        self.completed_steps.append(name)
        if compensation is not None:
            self._undo.append((name, lambda: compensation(result)))
        logger.debug(f"[{self.name}] step '{name}' committed.")
        return result

    async def compensate(self, error: BaseException) -> None:
        """Unwinds committed steps, newest first. Every undo action is attempted once."""
        failures: List[BaseException] = []
        while self._undo:
            name, undo = self._undo.pop()
            logger.warning(f"[{self.name}] compensating step '{name}'.")
            try:
                await undo()
            except Exception as undo_error:
                logger.critical(
                    f"[{self.name}] compensation of step '{name}' failed: {undo_error!r}. "
                    f"Manual cleanup may be required."
                )
                failures.append(undo_error)

        if failures:
            self.state = SagaState.COMPENSATION_FAILED
            raise CompensationFailedException(self.current_step or "", error, failures) from error

        self.state = SagaState.COMPENSATED

    async def __aenter__(self) -> "Saga":
        self.state = SagaState.RUNNING
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self.state = SagaState.COMPLETED
            return False

        logger.error(
            f"[{self.name}] step '{self.current_step}' failed after {self.completed_steps}: {exc!r}"
        )
        await self.compensate(exc)
        return False
