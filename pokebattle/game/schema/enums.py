"""Enums for battle state representation."""

from enum import Enum
from typing import Optional


class BattleMode(Enum):
    """Battle formats offered by the server."""

    ONE_ON_ONE = "1v1"
    FIVE_ON_FIVE = "5v5"

    @property
    def deck_size(self) -> int:
        """Number of combatants each side brings into this mode."""
        return 1 if self == BattleMode.ONE_ON_ONE else 5

    @classmethod
    def from_protocol(cls, value: Optional[str]) -> Optional["BattleMode"]:
        """Parse a battle mode string from a server payload.

        Args:
            value: Mode string (e.g., "1v1", "5v5", "FiveOnFive")

        Returns:
            BattleMode, or None if the string is not recognized

        Examples:
            >>> BattleMode.from_protocol("5v5")
            BattleMode.FIVE_ON_FIVE
            >>> BattleMode.from_protocol("1V1")
            BattleMode.ONE_ON_ONE
        """
        if not isinstance(value, str):
            return None
        mapping = {
            "1v1": cls.ONE_ON_ONE,
            "oneonone": cls.ONE_ON_ONE,
            "5v5": cls.FIVE_ON_FIVE,
            "fiveonfive": cls.FIVE_ON_FIVE,
        }
        return mapping.get(value.strip().lower().replace("_", ""))


class Side(Enum):
    """Which side of the battle is acting."""

    PLAYER = "player"
    AI = "ai"

    @classmethod
    def from_protocol(cls, value: Optional[str]) -> Optional["Side"]:
        """Parse a side string ("player", "ai", "AI"), or None if unknown."""
        if not isinstance(value, str):
            return None
        mapping = {"player": cls.PLAYER, "ai": cls.AI}
        return mapping.get(value.strip().lower())


class Winner(Enum):
    """Outcome of a battle. NONE while the battle is still running."""

    PLAYER = "player"
    AI = "ai"
    DRAW = "draw"
    NONE = "none"

    @classmethod
    def from_protocol(cls, value: Optional[str]) -> Optional["Winner"]:
        """Parse an explicit winner string.

        Empty strings are treated as absent because the server emits "" for
        battles that have not finished.
        """
        if not isinstance(value, str) or not value.strip():
            return None
        mapping = {
            "player": cls.PLAYER,
            "ai": cls.AI,
            "draw": cls.DRAW,
            "tie": cls.DRAW,
        }
        return mapping.get(value.strip().lower())


class SessionStatus(Enum):
    """Lifecycle of a battle session held by the client."""

    NO_BATTLE = "no_battle"
    STARTING = "starting"
    AWAITING_PLAYER_ACTION = "awaiting_player_action"
    SUBMITTING_ACTION = "submitting_action"
    AWAITING_OPPONENT = "awaiting_opponent"
    OVER = "over"
