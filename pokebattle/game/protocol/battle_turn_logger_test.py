"""Unit tests for BattleTurnLogger."""

import json
import os
import shutil
import tempfile
import unittest

from pokebattle.game.protocol.battle_turn_logger import BattleTurnLogger
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import Side, Winner


class BattleTurnLoggerTest(unittest.TestCase):
    """Test cases for BattleTurnLogger."""

    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def test_init_creates_directory_and_file(self) -> None:
        log_dir = os.path.join(self.test_dir, "nested")
        logger = BattleTurnLogger("random", 1234567890, "b-1", log_dir=log_dir)

        self.assertEqual(
            logger.filepath, os.path.join(log_dir, "random_b-1_1234567890.txt")
        )
        self.assertTrue(os.path.exists(logger.filepath))
        logger.close()

    def test_log_state_writes_json_lines(self) -> None:
        logger = BattleTurnLogger("random", 1, "b-1", log_dir=self.test_dir)

        logger.log_state(BattleState(battle_id="b-1"), ["Battle started"])
        logger.log_state(
            BattleState(
                battle_id="b-1",
                turn_number=2,
                whose_turn=Side.AI,
                battle_over=True,
                winner=Winner.PLAYER,
            ),
            ["Pikachu used Thunderbolt!", "Geodude fainted!"],
        )
        logger.close()

        with open(logger.filepath) as f:
            lines = [json.loads(line) for line in f]

        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0]["turn_number"], 1)
        self.assertEqual(lines[0]["entries"], ["Battle started"])
        self.assertEqual(lines[1]["whose_turn"], "ai")
        self.assertTrue(lines[1]["battle_over"])
        self.assertEqual(lines[1]["winner"], "player")
        self.assertEqual(len(lines[1]["entries"]), 2)

    def test_log_after_close_is_ignored(self) -> None:
        logger = BattleTurnLogger("random", 1, "b-1", log_dir=self.test_dir)
        logger.close()
        logger.log_state(BattleState(battle_id="b-1"), ["ignored"])
        logger.close()

        with open(logger.filepath) as f:
            self.assertEqual(f.read(), "")


if __name__ == "__main__":
    unittest.main()
