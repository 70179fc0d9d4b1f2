"""Escalating recovery for forum exchanges.

Each failed attempt moves one rung up a fixed ladder: the first failure
refreshes the security token, the second logs in anew, the third gives up
with a ``TransferError``. The whole request is rebuilt for every attempt,
so a retried post carries the fresh token and is never sent twice.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Protocol, TypeVar

from chatboxbot.core.error_handling import TRANSFER_EXCEPTIONS, log_exception
from chatboxbot.core.exceptions import TransferError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecoveryStep(enum.Enum):
    """What to do after a failed attempt."""

    REFRESH_TOKEN = "refresh_token"
    RELOGIN = "relogin"
    GIVE_UP = "give_up"


# failed attempt number -> recovery before the next attempt
RECOVERY_LADDER: dict[int, RecoveryStep] = {
    0: RecoveryStep.REFRESH_TOKEN,
    1: RecoveryStep.RELOGIN,
}


def next_step(failed_attempt: int) -> RecoveryStep:
    """Return the recovery that follows the given failed attempt."""
    return RECOVERY_LADDER.get(failed_attempt, RecoveryStep.GIVE_UP)


class SessionRecovery(Protocol):
    """The session operations the ladder escalates through."""

    async def fetch_security_token(self) -> str: ...

    async def login(self) -> None: ...


async def _recover(session: SessionRecovery, step: RecoveryStep, operation: str) -> None:
    try:
        if step is RecoveryStep.REFRESH_TOKEN:
            await session.fetch_security_token()
        elif step is RecoveryStep.RELOGIN:
            await session.login()
    except TRANSFER_EXCEPTIONS as exc:
        # the next attempt finds out whether the session is usable
        log_exception(
            logger=logger,
            message="Session recovery failed",
            error=exc,
            context={"operation": operation, "step": step.value},
        )


async def run_with_recovery(
    operation: str,
    attempt: Callable[[], Awaitable[T]],
    session: SessionRecovery,
) -> T:
    """Run ``attempt`` until it succeeds or the ladder is exhausted.

    Raises:
        TransferError: Every rung of the ladder was tried and failed.

    """
    failed_attempts = 0
    while True:
        try:
            return await attempt()
        except TRANSFER_EXCEPTIONS as exc:
            step = next_step(failed_attempts)
            failed_attempts += 1
            logger.warning(
                "%s failed (attempt %d): %s; next step: %s",
                operation,
                failed_attempts,
                exc,
                step.value,
            )
            if step is RecoveryStep.GIVE_UP:
                raise TransferError(operation, failed_attempts) from exc
        await _recover(session, step, operation)
