"""Combatant (single Pokemon card) state representation."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Move:
    """A move a combatant can use, with its stamina cost."""

    name: str
    type: str = ""
    power: int = 0
    stamina_cost: int = 0
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "power": self.power,
            "stamina_cost": self.stamina_cost,
        }
        if self.description is not None:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class CombatantSnapshot:
    """Immutable state of a single Pokemon card at one point in a battle.

    A fresh snapshot is produced for every server payload; snapshots are
    never updated in place. Field names are the canonical snake_case names,
    which is also the shape produced by to_dict().

    Face-down combatants are inactive AI cards the server hides during a
    5v5 battle. Only card_id and is_knocked_out are meaningful for them.
    """

    name: str = ""
    hp: int = 0
    hp_max: int = 1
    stamina: int = 0
    stamina_max: int = 0
    attack: int = 0
    defense: int = 0
    speed: int = 0
    moves: List[Move] = field(default_factory=list)
    types: FrozenSet[str] = field(default_factory=frozenset)
    level: int = 1
    xp: int = 0
    is_legendary: bool = False
    is_mythical: bool = False
    is_knocked_out: bool = False
    card_id: Optional[int] = None
    is_face_down: bool = False

    def is_alive(self) -> bool:
        """Check if the combatant can still fight.

        Returns:
            True if not knocked out, False otherwise
        """
        return not self.is_knocked_out

    def can_afford(self, stamina_cost: int) -> bool:
        """Check if current stamina covers a cost."""
        return self.stamina >= stamina_cost

    def to_dict(self) -> Dict[str, Any]:
        """Convert the snapshot to its canonical dictionary form.

        Returns:
            Dictionary keyed by canonical snake_case field names
        """
        result: Dict[str, Any] = {
            "name": self.name,
            "hp": self.hp,
            "hp_max": self.hp_max,
            "stamina": self.stamina,
            "stamina_max": self.stamina_max,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
            "moves": [move.to_dict() for move in self.moves],
            "types": sorted(self.types),
            "level": self.level,
            "xp": self.xp,
            "is_legendary": self.is_legendary,
            "is_mythical": self.is_mythical,
            "is_knocked_out": self.is_knocked_out,
            "is_face_down": self.is_face_down,
        }
        if self.card_id is not None:
            result["card_id"] = self.card_id
        return result

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
