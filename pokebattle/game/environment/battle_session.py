"""Battle session controller managing one battle against the remote API."""

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, List, Mapping, Optional

from absl import logging

from pokebattle.game.exceptions import (
    ApiError,
    BattleBusy,
    IllegalAction,
    MoveRejected,
    NoActiveBattle,
    RewardClaimFailed,
    StaleResponse,
    StartFailed,
    TimedOut,
    Unauthorized,
)
from pokebattle.game.interface.action_gate import (
    ActionGate,
    ActionOptions,
    reward_selection_available,
)
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.protocol.battle_api_client import DEFAULT_TIMEOUT_SECS
from pokebattle.game.protocol.battle_turn_logger import BattleTurnLogger
from pokebattle.game.protocol.state_normalizer import normalize_battle_state
from pokebattle.game.schema.battle_state import BattleState, RewardConfirmation
from pokebattle.game.schema.enums import BattleMode, SessionStatus, Side


def merge_log(
    previous: List[str], incoming: List[str], full_history: bool = False
) -> List[str]:
    """Add a response's narrative lines to the log held so far.

    Move and switch responses carry only the lines their turn produced, and
    two turns may produce identical lines, so those are always appended. A
    state fetch may carry the whole history instead: when full_history is set
    and the response starts with the held log, it replaces the held log.

    Example:
        >>> merge_log(["a"], ["a"])
        ['a', 'a']
        >>> merge_log(["a"], ["a", "b"], full_history=True)
        ['a', 'b']
    """
    if full_history and incoming[: len(previous)] == previous:
        return list(incoming)
    return previous + incoming


def status_for(state: BattleState) -> SessionStatus:
    """Map a battle state to the session status that should follow it."""
    if state.battle_over:
        return SessionStatus.OVER
    if state.whose_turn == Side.PLAYER:
        return SessionStatus.AWAITING_PLAYER_ACTION
    return SessionStatus.AWAITING_OPPONENT


class BattleSession:
    """Owns the client-side copy of one battle and every request that changes it.

    The BattleSession is responsible for:
    - Starting a battle and remembering its id for every later request
    - Checking actions against the ActionGate before sending them
    - Normalizing each response into a new BattleState and replacing the
      held state wholesale
    - Allowing at most one request in flight and bounding each by a timeout
    - Discarding responses that belong to an abandoned battle

    Failed requests never touch the held state, so the caller can retry.

    Example usage:
        ```python
        client = BattleApiClient(server_url, StaticSessionProvider(token))
        session = BattleSession(client)

        state = await session.start(BattleMode.ONE_ON_ONE)
        while not session.is_battle_over():
            if session.status == SessionStatus.AWAITING_OPPONENT:
                state = await session.refresh()
                continue
            state = await session.submit_move(ActionType.ATTACK, move_index=0)
        ```

    Attributes:
        _client: BattleApiClient (or any object with the same coroutines)
        _gate: ActionGate used for legality checks
        _state: Current immutable BattleState, None before start
        _status: Explicit SessionStatus
        _generation: Bumped by abandon(); responses from older generations
            are discarded
        _pending: Name of the operation in flight, None when idle
    """

    def __init__(
        self,
        client: Any,
        gate: Optional[ActionGate] = None,
        request_timeout: float = DEFAULT_TIMEOUT_SECS,
        track_history: bool = False,
        logger: Optional[BattleTurnLogger] = None,
    ) -> None:
        """Initialize the session.

        Args:
            client: Battle API client
            gate: ActionGate for legality checks (default: switches allowed
                  on either side's turn)
            request_timeout: Seconds before a request fails with TimedOut
            track_history: Whether to keep every applied state
            logger: Optional BattleTurnLogger for the applied states
        """
        self._client = client
        self._gate = gate or ActionGate()
        self._request_timeout = request_timeout
        self._track_history = track_history
        self._logger = logger
        self._history: List[BattleState] = []
        self._state: Optional[BattleState] = None
        self._status = SessionStatus.NO_BATTLE
        self._generation = 0
        self._pending: Optional[str] = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def battle_id(self) -> Optional[str]:
        """Id of the held battle, None when no battle is held."""
        if self._state is None or not self._state.battle_id:
            return None
        return self._state.battle_id

    @property
    def is_busy(self) -> bool:
        return self._pending is not None

    @property
    def gate(self) -> ActionGate:
        return self._gate

    def set_logger(self, logger: Optional[BattleTurnLogger]) -> None:
        """Attach a turn logger; states applied from now on are written to it."""
        self._logger = logger

    def get_state(self) -> Optional[BattleState]:
        """Get the current immutable battle state, None before start()."""
        return self._state

    def is_battle_over(self) -> bool:
        return self._state is not None and self._state.battle_over

    def get_options(self) -> ActionOptions:
        """Get what the player can do in the held state.

        Raises:
            NoActiveBattle: If no battle is held
        """
        if self._state is None:
            raise NoActiveBattle("compute options")
        return self._gate.options(self._state)

    def get_history(self) -> List[BattleState]:
        """Get history of all applied battle states.

        Raises:
            ValueError: If history tracking is not enabled
        """
        if not self._track_history:
            raise ValueError(
                "History tracking is not enabled. "
                "Initialize BattleSession with track_history=True"
            )
        return list(self._history)

    async def start(self, mode: BattleMode) -> BattleState:
        """Start a new battle and hold its state.

        Args:
            mode: Battle mode to start

        Returns:
            Initial BattleState

        Raises:
            BattleBusy: If another request is in flight
            StartFailed: If the server rejected the request or returned no id
            TimedOut: If the server did not answer in time
            Unauthorized: If the session token was rejected
        """
        generation = self._begin("start")
        previous_status = self._status
        self._status = SessionStatus.STARTING
        logging.info("Starting %s battle", mode.value)
        try:
            response = await self._call("start", self._client.start_battle(mode))
        except (TimedOut, Unauthorized):
            self._restore(generation, previous_status)
            raise
        except ApiError as e:
            self._restore(generation, previous_status)
            raise StartFailed(e.message) from e
        finally:
            self._finish(generation)

        self._check_generation(generation, "start", "")
        state = normalize_battle_state(response)
        if not state.battle_id:
            self._status = previous_status
            raise StartFailed("server response carried no battle id")

        self._history = []
        self._state = None
        self._apply(state)
        logging.info(
            "[%s] Battle started (%s), %s to act",
            state.battle_id,
            state.mode.value,
            state.whose_turn.value,
        )
        return self._state_or_raise()

    async def submit_move(
        self, action_type: ActionType, move_index: Optional[int] = None
    ) -> BattleState:
        """Submit one turn action and hold the resulting state.

        Args:
            action_type: ATTACK, DEFEND, PASS, SACRIFICE or SURRENDER
            move_index: Index of the move to use, required for ATTACK

        Returns:
            New BattleState after the server resolved the turn

        Raises:
            ValueError: If action_type is SWITCH (use switch_active)
            BattleBusy: If another request is in flight
            NoActiveBattle: If no battle id is known
            IllegalAction: If the gate rejects the action
            MoveRejected: If the server rejected the action
            TimedOut: If the server did not answer in time
            StaleResponse: If the battle was abandoned meanwhile
        """
        if not action_type.is_turn_action:
            raise ValueError("Use switch_active() to switch combatants")
        action = BattleAction(action_type=action_type, move_index=move_index)
        return await self._send_action(
            "submit move",
            action,
            lambda battle_id: self._client.submit_move(
                battle_id, action_type.value, move_index
            ),
        )

    async def switch_active(self, index: int) -> BattleState:
        """Switch the player's active combatant.

        Legality is checked locally first so an illegal switch never costs
        a round-trip.

        Args:
            index: Slot in the player's deck to bring in

        Returns:
            New BattleState after the switch

        Raises:
            Same as submit_move()
        """
        action = BattleAction(action_type=ActionType.SWITCH, switch_index=index)
        return await self._send_action(
            "switch",
            action,
            lambda battle_id: self._client.switch_pokemon(battle_id, index),
        )

    async def refresh(self) -> BattleState:
        """Fetch the server's current state, e.g. while the AI is acting.

        Raises:
            BattleBusy: If another request is in flight
            NoActiveBattle: If no battle id is known
            ApiError: If the server rejected the request
            TimedOut: If the server did not answer in time
            StaleResponse: If the battle was abandoned meanwhile
        """
        battle_id = self._require_battle("refresh")
        generation = self._begin("refresh")
        try:
            response = await self._call(
                "refresh", self._client.get_battle_state(battle_id)
            )
        finally:
            self._finish(generation)
        return self._accept(
            generation, "refresh", battle_id, response, full_history=True
        )

    async def select_reward(self, index: int) -> RewardConfirmation:
        """Claim one of the AI's combatants after winning a 5v5 battle.

        On success the held state is marked reward_claimed; the server's
        confirmation carries no battle state, so nothing is re-normalized.

        Args:
            index: Slot in the AI deck to claim

        Returns:
            RewardConfirmation with the server message and the new card

        Raises:
            BattleBusy: If another request is in flight
            NoActiveBattle: If no battle id is known
            IllegalAction: If no reward round is open or index is out of range
            RewardClaimFailed: If the server rejected the claim
            TimedOut: If the server did not answer in time
            StaleResponse: If the battle was abandoned meanwhile
        """
        battle_id = self._require_battle("select reward")
        state = self._state_or_raise()
        if not reward_selection_available(state):
            raise IllegalAction("No reward selection is available for this battle")
        if not 0 <= index < len(state.ai_deck):
            raise IllegalAction(
                f"Reward index {index} out of range for AI deck of {len(state.ai_deck)}"
            )

        generation = self._begin("select reward")
        try:
            response = await self._call(
                "select reward", self._client.select_reward(battle_id, index)
            )
        except (TimedOut, Unauthorized):
            raise
        except ApiError as e:
            raise RewardClaimFailed(e.message, battle_id) from e
        finally:
            self._finish(generation)

        self._check_generation(generation, "select reward", battle_id)
        body = response if isinstance(response, Mapping) else {}
        card = body.get("card")
        confirmation = RewardConfirmation(
            message=str(body.get("message") or ""),
            card=dict(card) if isinstance(card, Mapping) else {},
        )
        self._state = self._state_or_raise().with_reward_claimed()
        logging.info("[%s] Reward claimed: %s", battle_id, confirmation.message)
        return confirmation

    def abandon(self) -> None:
        """Drop the held battle. Responses still in flight will be discarded."""
        if self._state is not None:
            logging.info("[%s] Abandoning battle", self._state.battle_id)
        self._generation += 1
        self._pending = None
        self._state = None
        self._history = []
        self._status = SessionStatus.NO_BATTLE

    async def _send_action(
        self,
        operation: str,
        action: BattleAction,
        request: Any,
    ) -> BattleState:
        battle_id = self._require_battle(operation)
        reason = self._gate.check(self._state_or_raise(), action)
        if reason is not None:
            raise IllegalAction(f"Cannot {operation} {action}: {reason}")

        generation = self._begin(operation)
        previous_status = self._status
        self._status = SessionStatus.SUBMITTING_ACTION
        logging.debug("[%s] Sending action: %s", battle_id, action)
        try:
            response = await self._call(operation, request(battle_id))
        except (TimedOut, Unauthorized):
            self._restore(generation, previous_status)
            raise
        except ApiError as e:
            self._restore(generation, previous_status)
            logging.warning("[%s] Server rejected %s: %s", battle_id, action, e.message)
            raise MoveRejected(e.message, battle_id) from e
        finally:
            self._finish(generation)
        try:
            return self._accept(generation, operation, battle_id, response)
        except StaleResponse:
            self._restore(generation, previous_status)
            raise

    def _accept(
        self,
        generation: int,
        operation: str,
        battle_id: str,
        response: Any,
        full_history: bool = False,
    ) -> BattleState:
        """Normalize a response for the held battle and make it the held state."""
        self._check_generation(generation, operation, battle_id)
        state = normalize_battle_state(response, fallback_battle_id=battle_id)
        if state.battle_id != battle_id:
            logging.warning(
                "[%s] Discarding %s response for battle %s",
                battle_id,
                operation,
                state.battle_id,
            )
            raise StaleResponse(operation, state.battle_id)
        self._apply(state, full_history)
        return self._state_or_raise()

    def _apply(self, state: BattleState, full_history: bool = False) -> None:
        previous_log = self._state.log if self._state is not None else []
        merged = merge_log(previous_log, state.log, full_history)
        state = replace(state, log=merged)
        self._state = state
        self._status = status_for(state)

        if self._track_history:
            self._history.append(state)
        if self._logger is not None:
            self._logger.log_state(state, merged[len(previous_log) :])
        if state.battle_over:
            logging.info(
                "[%s] Battle over after turn %d, winner: %s",
                state.battle_id,
                state.turn_number,
                state.winner.value,
            )

    async def _call(self, operation: str, request: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(request, timeout=self._request_timeout)
        except asyncio.TimeoutError as e:
            logging.warning("%s timed out after %.1fs", operation, self._request_timeout)
            raise TimedOut(operation, self._request_timeout) from e

    def _begin(self, operation: str) -> int:
        if self._pending is not None:
            raise BattleBusy(operation, self._pending)
        self._pending = operation
        return self._generation

    def _finish(self, generation: int) -> None:
        if generation == self._generation:
            self._pending = None

    def _restore(self, generation: int, status: SessionStatus) -> None:
        if generation == self._generation:
            self._status = status

    def _check_generation(self, generation: int, operation: str, battle_id: str) -> None:
        if generation != self._generation:
            logging.warning("Discarding %s response for abandoned battle %s", operation, battle_id)
            raise StaleResponse(operation, battle_id)

    def _require_battle(self, operation: str) -> str:
        if self._pending is not None:
            raise BattleBusy(operation, self._pending)
        battle_id = self.battle_id
        if battle_id is None:
            raise NoActiveBattle(operation)
        return battle_id

    def _state_or_raise(self) -> BattleState:
        if self._state is None:
            raise NoActiveBattle("read state")
        return self._state
