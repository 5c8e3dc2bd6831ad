"""Custom exceptions for battle client errors."""

from typing import Optional


class BattleError(Exception):
    """Base class for every error raised by the battle client."""


class ApiError(BattleError):
    """Exception raised when the battle API answers with an error or not at all.

    Attributes:
        message: Error message extracted from the server response
        status_code: HTTP status code, or None when no response was received
        code: Machine-readable error code from the server (e.g., "INVALID_MOVE")
    """

    def __init__(
        self, message: str, status_code: Optional[int] = None, code: Optional[str] = None
    ):
        """Initialize the ApiError.

        Args:
            message: The error message from the server
            status_code: HTTP status code of the response, if any
            code: Error code from the server payload, if any
        """
        self.message = message
        self.status_code = status_code
        self.code = code
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f"HTTP {status_code}: {message}")


class Unauthorized(ApiError):
    """The server rejected the session token (HTTP 401)."""


class TimedOut(BattleError):
    """A request did not complete within the configured timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.1f}s")


class StartFailed(BattleError):
    """Starting a battle failed. No battle was created and no state changed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Failed to start battle: {message}")


class NoActiveBattle(BattleError):
    """An action was submitted while no battle id is known."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: no active battle")


class MoveRejected(BattleError):
    """The server rejected a submitted action.

    The held battle state is left untouched so the action can be retried.

    Attributes:
        message: The server's error text, verbatim
        battle_id: The battle the action was submitted to
    """

    def __init__(self, message: str, battle_id: str):
        self.message = message
        self.battle_id = battle_id
        super().__init__(f"Action rejected in {battle_id}: {message}")


class RewardClaimFailed(BattleError):
    """Selecting the post-victory reward failed; the reward stays unclaimed."""

    def __init__(self, message: str, battle_id: str):
        self.message = message
        self.battle_id = battle_id
        super().__init__(f"Reward claim failed in {battle_id}: {message}")


class BattleBusy(BattleError):
    """Another request for this session is still in flight."""

    def __init__(self, operation: str, pending: str):
        self.operation = operation
        self.pending = pending
        super().__init__(f"Cannot {operation} while {pending} is in flight")


class IllegalAction(BattleError):
    """The requested action is not legal in the current battle state.

    Raised before any request is sent, so the held state is untouched.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StaleResponse(BattleError):
    """A response arrived for a battle the session no longer holds."""

    def __init__(self, operation: str, battle_id: str):
        self.operation = operation
        self.battle_id = battle_id
        super().__init__(f"Discarded stale {operation} response for {battle_id or '?'}")
