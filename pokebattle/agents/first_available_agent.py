"""First available action agent that always picks the first valid option."""

from typing import Optional

from pokebattle.agents.agent_interface import Agent
from pokebattle.game.interface.action_gate import ActionOptions
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import Side


class FirstAvailableAgent(Agent):
    """Agent that always picks the first affordable move or switch.

    This agent implements the simplest possible strategy:
    - If the active combatant is knocked out: switch to the first target
    - If a move is affordable: attack with the first affordable move
    - Otherwise: pass, letting stamina recover

    It never defends, sacrifices or surrenders. The deterministic behavior
    makes it useful as a baseline and for checking that battles complete.
    """

    async def choose_action(
        self, state: BattleState, options: ActionOptions
    ) -> BattleAction:
        """Choose the first available action.

        Args:
            state: Current battle state
            options: Options computed by the gate for this state

        Returns:
            BattleAction with the first switch, move, or a pass

        Raises:
            ValueError: If the player cannot act in this state

        Examples:
            First affordable move:
            >>> options = ActionOptions(can_submit=True, selectable_moves=[1, 2])
            >>> action = await agent.choose_action(state, options)
            >>> action.move_index
            1
        """
        active = state.get_active_combatant(Side.PLAYER)
        if (active is None or active.is_knocked_out) and options.available_switches:
            return BattleAction(
                action_type=ActionType.SWITCH,
                switch_index=options.available_switches[0],
            )

        if not options.can_submit:
            raise ValueError("No action can be submitted in this state")

        if ActionType.ATTACK in options.legal_actions and options.selectable_moves:
            return BattleAction(
                action_type=ActionType.ATTACK,
                move_index=options.selectable_moves[0],
            )

        return BattleAction(action_type=ActionType.PASS)

    async def retry_action_on_server_error(
        self, error_text: str, state: BattleState, options: ActionOptions
    ) -> Optional[BattleAction]:
        """Fall back to passing when the server rejects an action."""
        if ActionType.PASS not in options.legal_actions:
            return None
        return BattleAction(action_type=ActionType.PASS)
