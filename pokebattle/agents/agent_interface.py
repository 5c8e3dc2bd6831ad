"""Abstract base class for battle agents."""

from abc import ABC, abstractmethod
from typing import Optional

from pokebattle.game.interface.action_gate import ActionOptions
from pokebattle.game.interface.battle_action import BattleAction
from pokebattle.game.schema.battle_state import BattleState


class Agent(ABC):
    """Abstract base class for all battle agents.

    All agents must implement choose_action, which receives the current
    battle state together with the ActionOptions the gate computed for it,
    and returns the action to submit.

    The agent interface follows these design principles:

    1. **Immutable State**: Agents receive an immutable BattleState snapshot
       and must not modify it. Every server round-trip produces a new state.

    2. **Gated Options**: ActionOptions lists the legal turn actions, the
       affordable move indices and the switch targets. Agents should choose
       from these; the session re-checks every action before sending it and
       raises IllegalAction otherwise.

    3. **Async Interface**: choose_action is async so that agents may do I/O
       (remote models, files) while deciding.

    4. **Battle-Scoped Lifecycle**: Agents are created for each battle with
       its battle id. For a new battle, create a new agent instance.

    Example Usage:
        ```python
        session = BattleSession(client)
        state = await session.start(BattleMode.ONE_ON_ONE)
        agent = RandomAgent(battle_id=state.battle_id)

        while not session.is_battle_over():
            action = await agent.choose_action(state, session.get_options())
            if action.action_type == ActionType.SWITCH:
                state = await session.switch_active(action.switch_index)
            else:
                state = await session.submit_move(
                    action.action_type, action.move_index
                )
        ```

    Attributes:
        _battle_id: Id of the battle this agent plays
    """

    def __init__(self, battle_id: str = "") -> None:
        """Initialize the agent for a specific battle.

        Args:
            battle_id: Battle session id (e.g., "5f1c...")
        """
        self._battle_id = battle_id

    @property
    def battle_id(self) -> str:
        return self._battle_id

    @abstractmethod
    async def choose_action(
        self, state: BattleState, options: ActionOptions
    ) -> BattleAction:
        """Choose a battle action for the player's turn.

        Args:
            state: Immutable snapshot of the current battle
            options: Legal actions, affordable moves and switch targets

        Returns:
            A BattleAction to submit. SWITCH actions go to the switch
            endpoint, everything else to the move endpoint.
        """

    async def choose_reward(self, state: BattleState) -> int:
        """Choose which AI card to claim after winning a 5v5 battle.

        The default picks the highest level card, first slot on ties.

        Args:
            state: Final battle state, with reward selection available

        Returns:
            Index into state.ai_deck
        """
        best_index = 0
        best_level = 0
        for index, card in enumerate(state.ai_deck):
            if card is not None and card.level > best_level:
                best_index = index
                best_level = card.level
        return best_index

    async def retry_action_on_server_error(
        self, error_text: str, state: BattleState, options: ActionOptions
    ) -> Optional[BattleAction]:
        """Handle a rejected action and optionally retry with a new one.

        Called when the server rejects an action that passed the local gate.
        The default implementation returns None (don't retry).

        Args:
            error_text: The error message from the server
            state: Battle state the rejected action was chosen for
            options: Options for that state

        Returns:
            A new BattleAction to retry, or None to give up and re-raise.
        """
        return None
