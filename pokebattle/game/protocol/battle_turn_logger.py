"""Logs battle turns to file for debugging and analysis."""

import json
import os
from typing import Any, Dict, List, Optional, TextIO

from pokebattle.game.schema.battle_state import BattleState

DEFAULT_LOG_DIR = "/tmp/logs"


class BattleTurnLogger:
    """Writes one JSON line per applied battle state."""

    def __init__(
        self,
        player_name: str,
        epoch_secs: int,
        battle_id: str,
        log_dir: str = DEFAULT_LOG_DIR,
    ) -> None:
        """Initialize the turn logger.

        Args:
            player_name: Name of the player or agent being used
            epoch_secs: Timestamp in epoch seconds for the log filename
            battle_id: Battle session id
            log_dir: Directory the log file is created in
        """
        self._player_name = player_name
        self._epoch_secs = epoch_secs
        self._battle_id = battle_id
        self._log_dir = log_dir
        self._file: Optional[TextIO] = None

        os.makedirs(self._log_dir, exist_ok=True)
        filename = f"{self._player_name}_{self._battle_id}_{self._epoch_secs}.txt"
        self._filepath = os.path.join(self._log_dir, filename)
        self._file = open(self._filepath, "w")

    @property
    def filepath(self) -> str:
        return self._filepath

    def log_state(self, state: BattleState, new_entries: List[str]) -> None:
        """Log a battle state and the narrative lines it added.

        Args:
            state: State that was just applied
            new_entries: Log lines added since the previous state
        """
        if self._file is None:
            return

        log_entry: Dict[str, Any] = {
            "turn_number": state.turn_number,
            "round_number": state.round_number,
            "whose_turn": state.whose_turn.value,
            "battle_over": state.battle_over,
            "winner": state.winner.value,
            "entries": new_entries,
        }
        self._file.write(f"{json.dumps(log_entry)}\n")
        self._file.flush()

    def close(self) -> None:
        """Close the log file."""
        if self._file is not None:
            self._file.close()
            self._file = None
