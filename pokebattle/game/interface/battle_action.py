"""Battle action representation for agent decisions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ActionType(Enum):
    """Type of action a player can take on their turn."""

    ATTACK = "attack"
    DEFEND = "defend"
    PASS = "pass"
    SACRIFICE = "sacrifice"
    SURRENDER = "surrender"
    SWITCH = "switch"

    @property
    def is_turn_action(self) -> bool:
        """True for the five actions submitted through the move endpoint."""
        return self != ActionType.SWITCH


@dataclass(frozen=True)
class BattleAction:
    """Immutable representation of a player's battle decision.

    ATTACK requires move_index (position in the active combatant's move
    list). SWITCH requires switch_index (position in the player's deck).
    The other actions take no argument.

    Examples:
        Attack with the second move:
        >>> action = BattleAction(action_type=ActionType.ATTACK, move_index=1)
        >>> action.to_request_payload("battle-1")
        {'battle_id': 'battle-1', 'move': 'attack', 'move_idx': 1}

        Switch to the third deck slot:
        >>> action = BattleAction(action_type=ActionType.SWITCH, switch_index=2)
        >>> action.to_request_payload("battle-1")
        {'battle_id': 'battle-1', 'new_idx': 2}
    """

    action_type: ActionType
    move_index: Optional[int] = None
    switch_index: Optional[int] = None

    def to_request_payload(self, battle_id: str) -> Dict[str, Any]:
        """Convert this action to the JSON body of its API request.

        Args:
            battle_id: Battle session id the action applies to

        Returns:
            Request body for /api/battle/move or /api/battle/switch

        Raises:
            ValueError: If ATTACK lacks move_index or SWITCH lacks switch_index
        """
        if self.action_type == ActionType.SWITCH:
            if self.switch_index is None:
                raise ValueError("SWITCH action requires switch_index")
            return {"battle_id": battle_id, "new_idx": self.switch_index}

        if self.action_type == ActionType.ATTACK and self.move_index is None:
            raise ValueError("ATTACK action requires move_index")

        payload: Dict[str, Any] = {
            "battle_id": battle_id,
            "move": self.action_type.value,
        }
        if self.move_index is not None:
            payload["move_idx"] = self.move_index
        return payload

    def __str__(self) -> str:
        if self.action_type == ActionType.ATTACK:
            return f"attack(move={self.move_index})"
        if self.action_type == ActionType.SWITCH:
            return f"switch(index={self.switch_index})"
        return self.action_type.value
