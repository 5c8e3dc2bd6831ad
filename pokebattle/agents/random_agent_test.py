"""Unit tests for RandomAgent."""

import random
import unittest

from pokebattle.agents.random_agent import RandomAgent
from pokebattle.game.interface.action_gate import ActionGate
from pokebattle.game.interface.battle_action import ActionType
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.combatant_state import CombatantSnapshot, Move
from pokebattle.game.schema.enums import Side


def _state(
    stamina: int = 40, active_knocked_out: bool = False, whose_turn: Side = Side.PLAYER
) -> BattleState:
    active = CombatantSnapshot(
        name="Pikachu",
        hp=0 if active_knocked_out else 40,
        hp_max=40,
        stamina=stamina,
        moves=[Move(name="Tackle", stamina_cost=5), Move(name="Hyper Beam", stamina_cost=60)],
        is_knocked_out=active_knocked_out,
    )
    return BattleState(
        battle_id="b-1",
        player_deck=[
            active,
            CombatantSnapshot(name="Eevee", hp=30, hp_max=30),
            CombatantSnapshot(name="Bulbasaur", hp=0, hp_max=45, is_knocked_out=True),
        ],
        ai_deck=[CombatantSnapshot(name="Geodude", hp=40, hp_max=40), None],
        whose_turn=whose_turn,
    )


class RandomAgentTest(unittest.IsolatedAsyncioTestCase):
    """Test RandomAgent functionality."""

    def setUp(self) -> None:
        self.agent = RandomAgent("b-1", rng=random.Random(7))
        self.gate = ActionGate()

    async def test_actions_are_always_legal(self) -> None:
        state = _state()
        options = self.gate.options(state)

        for _ in range(200):
            action = await self.agent.choose_action(state, options)
            self.assertIsNone(self.gate.check(state, action), str(action))
            self.assertNotEqual(action.action_type, ActionType.SURRENDER)

    async def test_low_stamina_never_defends(self) -> None:
        state = _state(stamina=4)
        options = self.gate.options(state)

        for _ in range(100):
            action = await self.agent.choose_action(state, options)
            self.assertIn(action.action_type, (ActionType.PASS, ActionType.SWITCH))

    async def test_switches_when_active_knocked_out(self) -> None:
        state = _state(active_knocked_out=True)
        action = await self.agent.choose_action(state, self.gate.options(state))

        self.assertEqual(action.action_type, ActionType.SWITCH)
        self.assertEqual(action.switch_index, 1)

    async def test_never_switches_with_zero_probability(self) -> None:
        agent = RandomAgent("b-1", switch_probability=0.0, rng=random.Random(1))
        state = _state()
        options = self.gate.options(state)

        for _ in range(100):
            action = await agent.choose_action(state, options)
            self.assertNotEqual(action.action_type, ActionType.SWITCH)

    async def test_raises_on_opponent_turn(self) -> None:
        state = _state(whose_turn=Side.AI)
        with self.assertRaises(ValueError):
            await self.agent.choose_action(state, self.gate.options(state))

    async def test_choose_reward_skips_empty_slots(self) -> None:
        state = _state()
        for _ in range(20):
            self.assertEqual(await self.agent.choose_reward(state), 0)

    async def test_default_retry_gives_up(self) -> None:
        state = _state()
        retry = await self.agent.retry_action_on_server_error(
            "Not enough stamina", state, self.gate.options(state)
        )
        self.assertIsNone(retry)


if __name__ == "__main__":
    unittest.main()
