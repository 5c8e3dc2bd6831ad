"""Random agent that selects random valid actions."""

import random
from typing import List, Optional

from pokebattle.agents.agent_interface import Agent
from pokebattle.game.interface.action_gate import ActionOptions
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import Side


class RandomAgent(Agent):
    """Agent that picks random valid actions from the gated options.

    This agent makes random decisions during battles:
    - Always switches when the active combatant is knocked out
    - 10% chance to switch when switch targets exist
    - Otherwise picks uniformly among attacking with an affordable move,
      defending, sacrificing and passing (whichever are legal)
    - Never surrenders

    Attributes:
        switch_probability: Probability of switching when a switch is possible
    """

    def __init__(
        self,
        battle_id: str = "",
        switch_probability: float = 0.1,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize RandomAgent.

        Args:
            battle_id: Battle session id
            switch_probability: Probability (0-1) of switching instead of
                                acting when both are possible (default 0.1)
            rng: Random source, seeded by tests for reproducibility
        """
        super().__init__(battle_id)
        self.switch_probability = switch_probability
        self._rng = rng or random.Random()

    async def choose_action(
        self, state: BattleState, options: ActionOptions
    ) -> BattleAction:
        """Choose a random legal action.

        Raises:
            ValueError: If the player cannot act in this state
        """
        active = state.get_active_combatant(Side.PLAYER)
        if (active is None or active.is_knocked_out) and options.available_switches:
            return BattleAction(
                action_type=ActionType.SWITCH,
                switch_index=self._rng.choice(options.available_switches),
            )

        if not options.can_submit:
            raise ValueError("No action can be submitted in this state")

        if options.available_switches and self._rng.random() < self.switch_probability:
            return BattleAction(
                action_type=ActionType.SWITCH,
                switch_index=self._rng.choice(options.available_switches),
            )

        candidates: List[ActionType] = [
            action_type
            for action_type in (ActionType.DEFEND, ActionType.SACRIFICE, ActionType.PASS)
            if action_type in options.legal_actions
        ]
        if ActionType.ATTACK in options.legal_actions and options.selectable_moves:
            candidates.append(ActionType.ATTACK)
        if not candidates:
            return BattleAction(action_type=ActionType.PASS)

        choice = self._rng.choice(candidates)
        if choice == ActionType.ATTACK:
            return BattleAction(
                action_type=ActionType.ATTACK,
                move_index=self._rng.choice(options.selectable_moves),
            )
        return BattleAction(action_type=choice)

    async def choose_reward(self, state: BattleState) -> int:
        """Pick a random present card from the AI deck."""
        present = [i for i, card in enumerate(state.ai_deck) if card is not None]
        if not present:
            return 0
        return self._rng.choice(present)
