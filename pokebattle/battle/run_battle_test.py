"""Tests for the battle runner loop."""

import json
import os
import shutil
import tempfile
import unittest
from typing import Any, Dict, List, Optional, Tuple

from absl import flags

from pokebattle.agents.first_available_agent import FirstAvailableAgent
from pokebattle.battle.run_battle import play_battle, send_action
from pokebattle.game.environment.battle_session import BattleSession
from pokebattle.game.exceptions import ApiError, IllegalAction, MoveRejected
from pokebattle.game.interface.action_gate import ActionOptions
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.protocol.battle_turn_logger import DEFAULT_LOG_DIR, BattleTurnLogger
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import BattleMode, SessionStatus, Winner


def _card(name: str, hp: int = 40) -> Dict[str, Any]:
    return {
        "name": name,
        "hp": hp,
        "hp_max": 40,
        "stamina": 20,
        "speed": 50,
        "moves": [{"name": "Tackle", "power": 40, "stamina_cost": 5}],
    }


def _payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": "b-1",
        "mode": "1v1",
        "player_deck": [_card("Pikachu")],
        "ai_deck": [_card("Geodude")],
        "whose_turn": "player",
        "battle_over": False,
        "winner": "",
        "log": [],
    }
    payload.update(overrides)
    return payload


class ScriptedClient:
    """Battle client replaying a fixed list of responses per endpoint."""

    def __init__(self, script: Dict[str, List[Any]]) -> None:
        self._script = script
        self.calls: List[Tuple[Any, ...]] = []

    async def _next(self, method: str, *args: Any) -> Any:
        self.calls.append((method,) + args)
        response = self._script[method].pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def start_battle(self, mode: BattleMode) -> Any:
        return await self._next("start_battle", mode)

    async def submit_move(self, battle_id: str, move: str, move_index: Optional[int] = None) -> Any:
        return await self._next("submit_move", battle_id, move, move_index)

    async def switch_pokemon(self, battle_id: str, new_index: int) -> Any:
        return await self._next("switch_pokemon", battle_id, new_index)

    async def select_reward(self, battle_id: str, pokemon_index: int) -> Any:
        return await self._next("select_reward", battle_id, pokemon_index)

    async def get_battle_state(self, battle_id: str) -> Any:
        return await self._next("get_battle_state", battle_id)


class SwitchToActiveAgent(FirstAvailableAgent):
    """Always tries to switch to the slot that is already active."""

    async def choose_action(
        self, state: BattleState, options: ActionOptions
    ) -> BattleAction:
        return BattleAction(
            action_type=ActionType.SWITCH, switch_index=state.player_active_index
        )


class PlayBattleTest(unittest.IsolatedAsyncioTestCase):
    """Test play_battle against scripted servers."""

    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    async def test_plays_one_on_one_to_the_end(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload(log=["Battle started!"])],
                "submit_move": [
                    _payload(whose_turn="ai", log=["Pikachu used Tackle!"]),
                    _payload(
                        battle_over=True,
                        winner="player",
                        ai_deck=[_card("Geodude", hp=0)],
                        log=["Geodude fainted!"],
                        coins_earned=50,
                    ),
                ],
                "get_battle_state": [
                    _payload(whose_turn="ai"),
                    _payload(turn_number=2, log=["Geodude used Tackle!"]),
                ],
            }
        )
        session = BattleSession(client)

        state = await play_battle(
            session, BattleMode.ONE_ON_ONE, FirstAvailableAgent, poll_interval=0
        )

        self.assertEqual(state.winner, Winner.PLAYER)
        self.assertEqual(session.status, SessionStatus.OVER)
        self.assertEqual(
            [call[0] for call in client.calls],
            [
                "start_battle",
                "submit_move",
                "get_battle_state",
                "get_battle_state",
                "submit_move",
            ],
        )
        self.assertEqual(client.calls[1], ("submit_move", "b-1", "attack", 0))
        self.assertEqual(
            state.log,
            ["Battle started!", "Pikachu used Tackle!", "Geodude used Tackle!", "Geodude fainted!"],
        )

    async def test_rejected_move_retried_with_agent_fallback(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload()],
                "submit_move": [
                    ApiError("Move is on cooldown", 400),
                    _payload(battle_over=True, winner="ai"),
                ],
            }
        )

        state = await play_battle(
            BattleSession(client), BattleMode.ONE_ON_ONE, FirstAvailableAgent, move_retries=1
        )

        self.assertEqual(state.winner, Winner.AI)
        self.assertEqual(client.calls[-1], ("submit_move", "b-1", "pass", None))

    async def test_retries_exhausted(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload()],
                "submit_move": [ApiError("Move is on cooldown", 400)],
            }
        )

        with self.assertRaises(MoveRejected):
            await play_battle(
                BattleSession(client), BattleMode.ONE_ON_ONE, FirstAvailableAgent, move_retries=0
            )

    async def test_illegal_action_retried_with_agent_fallback(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload()],
                "submit_move": [_payload(battle_over=True, winner="ai")],
            }
        )

        state = await play_battle(
            BattleSession(client), BattleMode.ONE_ON_ONE, SwitchToActiveAgent, move_retries=1
        )

        self.assertEqual(state.winner, Winner.AI)
        self.assertEqual(
            [call[0] for call in client.calls], ["start_battle", "submit_move"]
        )
        self.assertEqual(client.calls[-1], ("submit_move", "b-1", "pass", None))

    async def test_illegal_action_without_retries_raises(self) -> None:
        client = ScriptedClient({"start_battle": [_payload()]})

        with self.assertRaises(IllegalAction):
            await play_battle(
                BattleSession(client), BattleMode.ONE_ON_ONE, SwitchToActiveAgent, move_retries=0
            )

    async def test_claims_reward_after_five_on_five_win(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload(mode="5v5")],
                "submit_move": [
                    _payload(
                        mode="5v5",
                        battle_over=True,
                        winner="player",
                        ai_deck=[_card("Geodude", hp=0), _card("Onix", hp=0)],
                        coins_earned=120,
                    )
                ],
                "select_reward": [{"message": "Card added", "card": {"id": 4}}],
            }
        )
        session = BattleSession(client)

        state = await play_battle(session, BattleMode.FIVE_ON_FIVE, FirstAvailableAgent)

        self.assertTrue(state.reward_claimed)
        self.assertEqual(client.calls[-1], ("select_reward", "b-1", 0))

    async def test_turn_log_written(self) -> None:
        client = ScriptedClient(
            {
                "start_battle": [_payload(log=["Battle started!"])],
                "submit_move": [
                    _payload(battle_over=True, winner="player", log=["Geodude fainted!"])
                ],
            }
        )
        loggers: List[BattleTurnLogger] = []

        def logger_factory(battle_id: str) -> BattleTurnLogger:
            logger = BattleTurnLogger("first_move", 100, battle_id, log_dir=self.test_dir)
            loggers.append(logger)
            return logger

        await play_battle(
            BattleSession(client),
            BattleMode.ONE_ON_ONE,
            FirstAvailableAgent,
            logger_factory=logger_factory,
        )

        with open(loggers[0].filepath) as f:
            entries = [json.loads(line)["entries"] for line in f]
        self.assertEqual(entries, [["Battle started!"], ["Geodude fainted!"]])


class SendActionTest(unittest.IsolatedAsyncioTestCase):
    """Test routing of agent actions to session calls."""

    async def test_switch_routed_to_switch_endpoint(self) -> None:
        deck = [_card("Pikachu"), _card("Eevee")]
        client = ScriptedClient(
            {
                "start_battle": [_payload(player_deck=deck)],
                "switch_pokemon": [_payload(player_deck=deck, player_active_idx=1)],
            }
        )
        session = BattleSession(client)
        await session.start(BattleMode.ONE_ON_ONE)

        state = await send_action(
            session, BattleAction(action_type=ActionType.SWITCH, switch_index=1)
        )

        self.assertEqual(state.player_active_index, 1)
        self.assertEqual(client.calls[-1], ("switch_pokemon", "b-1", 1))


class FlagsTest(unittest.TestCase):
    """Test the runner's flag definitions."""

    def test_turn_log_dir_does_not_shadow_absl_log_dir(self) -> None:
        self.assertEqual(flags.FLAGS["turn_log_dir"].default, DEFAULT_LOG_DIR)
        self.assertIn("log_dir", flags.FLAGS)
        self.assertNotEqual(
            flags.FLAGS.find_module_defining_flag("log_dir"),
            flags.FLAGS.find_module_defining_flag("turn_log_dir"),
        )


if __name__ == "__main__":
    unittest.main()
