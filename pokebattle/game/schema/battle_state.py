"""Battle state representation for the card battle client."""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from pokebattle.game.schema.combatant_state import CombatantSnapshot
from pokebattle.game.schema.enums import BattleMode, Side, Winner


@dataclass(frozen=True)
class StatIncreases:
    """Stat deltas gained on a level up. None means the server did not report it."""

    hp: Optional[int] = None
    attack: Optional[int] = None
    defense: Optional[int] = None
    speed: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        values = {
            "hp": self.hp,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
        }
        return {stat: value for stat, value in values.items() if value is not None}


@dataclass(frozen=True)
class XpDetail:
    """XP awarded to one card of the player's deck after a battle."""

    card_id: Optional[int]
    name: str
    level: int
    xp_gained: int
    leveled_up: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "card_id": self.card_id,
            "name": self.name,
            "level": self.level,
            "xp_gained": self.xp_gained,
            "leveled_up": self.leveled_up,
        }


@dataclass(frozen=True)
class LevelUp:
    """A card that reached a new level, with its stat increases."""

    name: str
    new_level: int
    stat_increases: StatIncreases = field(default_factory=StatIncreases)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "new_level": self.new_level,
            "stat_increases": self.stat_increases.to_dict(),
        }


@dataclass(frozen=True)
class Achievement:
    """An achievement unlocked by the battle that just finished."""

    id: Optional[int]
    name: str
    description: str = ""
    icon: str = ""
    unlocked_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "unlocked_at": self.unlocked_at,
        }


@dataclass(frozen=True)
class RewardSummary:
    """Everything the player earned from a won battle."""

    coins_earned: int = 0
    xp_details: List[XpDetail] = field(default_factory=list)
    level_ups: List[LevelUp] = field(default_factory=list)
    newly_unlocked_achievements: List[Achievement] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coins_earned": self.coins_earned,
            "xp_details": [detail.to_dict() for detail in self.xp_details],
            "level_ups": [level_up.to_dict() for level_up in self.level_ups],
            "newly_unlocked_achievements": [
                achievement.to_dict()
                for achievement in self.newly_unlocked_achievements
            ],
        }


@dataclass(frozen=True)
class RewardConfirmation:
    """Server confirmation that a reward card was added to the collection."""

    message: str = ""
    card: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BattleState:
    """Immutable canonical snapshot of an entire battle.

    This is the single shape the rest of the client consumes regardless of
    which server payload version produced it. A new BattleState replaces the
    previous one after every successful server round-trip.

    Deck slots may be None, meaning "no combatant in this slot".
    """

    battle_id: str = ""
    mode: BattleMode = BattleMode.ONE_ON_ONE
    player_deck: List[Optional[CombatantSnapshot]] = field(default_factory=list)
    ai_deck: List[Optional[CombatantSnapshot]] = field(default_factory=list)
    player_active_index: int = 0
    ai_active_index: int = 0
    turn_number: int = 1
    round_number: int = 1
    whose_turn: Side = Side.PLAYER
    battle_over: bool = False
    winner: Winner = Winner.NONE
    rewards: Optional[RewardSummary] = None
    log: List[str] = field(default_factory=list)
    reward_claimed: bool = False

    def get_deck(self, side: Side) -> List[Optional[CombatantSnapshot]]:
        """Get the deck for one side of the battle."""
        return list(self.player_deck if side == Side.PLAYER else self.ai_deck)

    def get_active_index(self, side: Side) -> int:
        return self.player_active_index if side == Side.PLAYER else self.ai_active_index

    def get_active_combatant(self, side: Side) -> Optional[CombatantSnapshot]:
        """Get the active combatant for a side.

        Args:
            side: Side.PLAYER or Side.AI

        Returns:
            Active combatant, or None if the deck is empty or the slot is empty
        """
        deck = self.get_deck(side)
        index = self.get_active_index(side)
        if 0 <= index < len(deck):
            return deck[index]
        return None

    def get_alive_combatants(self, side: Side) -> List[CombatantSnapshot]:
        """Get combatants of a side that are present and not knocked out."""
        return [c for c in self.get_deck(side) if c is not None and c.is_alive()]

    def with_reward_claimed(self) -> "BattleState":
        """Return a copy of this state with the reward marked as claimed."""
        return replace(self, reward_claimed=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the battle state to its canonical dictionary form.

        The result is a flat snake_case payload, so feeding it back through
        the state normalizer reproduces an equal BattleState.
        """
        result: Dict[str, Any] = {
            "id": self.battle_id,
            "mode": self.mode.value,
            "player_deck": [c.to_dict() if c else None for c in self.player_deck],
            "ai_deck": [c.to_dict() if c else None for c in self.ai_deck],
            "player_active_idx": self.player_active_index,
            "ai_active_idx": self.ai_active_index,
            "turn_number": self.turn_number,
            "round_number": self.round_number,
            "whose_turn": self.whose_turn.value,
            "battle_over": self.battle_over,
            "winner": self.winner.value if self.winner != Winner.NONE else "",
            "log": list(self.log),
            "reward_claimed": self.reward_claimed,
        }
        if self.rewards is not None:
            result["rewards"] = self.rewards.to_dict()
        return result

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
