"""Legal action computation for the player's side of a battle."""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import BattleMode, Side, Winner


def defend_cost(hp_max: int) -> int:
    """Stamina needed to defend: half of max HP, rounded up.

    Example:
        >>> defend_cost(101)
        51
    """
    return (hp_max + 1) // 2


def sacrifice_cost(hp_max: int) -> int:
    """Stamina needed to sacrifice: a quarter of max HP, rounded down.

    Example:
        >>> sacrifice_cost(101)
        25
    """
    return hp_max // 4


def can_submit(state: BattleState) -> bool:
    """Check if the player may submit a turn action right now.

    Returns:
        True if the battle is running and it is the player's turn
    """
    return not state.battle_over and state.whose_turn == Side.PLAYER


def selectable_moves(state: BattleState) -> List[int]:
    """Get indices of the active combatant's moves that stamina can pay for.

    Moves that cost more than the current stamina are excluded even though
    ATTACK itself stays legal.

    Args:
        state: Current battle state

    Returns:
        Indices into the active player combatant's move list
    """
    active = state.get_active_combatant(Side.PLAYER)
    if active is None:
        return []
    return [i for i, move in enumerate(active.moves) if active.can_afford(move.stamina_cost)]


def legal_actions(state: BattleState) -> FrozenSet[ActionType]:
    """Compute the set of legal turn actions for the player.

    Rules:
    - Nothing is legal unless can_submit(state) holds
    - PASS and SURRENDER are always legal on the player's turn
    - ATTACK needs an active combatant with at least one move
    - DEFEND needs stamina >= defend_cost(hp_max)
    - SACRIFICE needs stamina >= sacrifice_cost(hp_max)

    SWITCH is a separate control, see can_switch().

    Args:
        state: Current battle state

    Returns:
        Frozen set of legal ActionTypes
    """
    if not can_submit(state):
        return frozenset()

    actions = {ActionType.PASS, ActionType.SURRENDER}
    active = state.get_active_combatant(Side.PLAYER)
    if active is None:
        return frozenset(actions)

    if active.moves:
        actions.add(ActionType.ATTACK)
    if active.can_afford(defend_cost(active.hp_max)):
        actions.add(ActionType.DEFEND)
    if active.can_afford(sacrifice_cost(active.hp_max)):
        actions.add(ActionType.SACRIFICE)
    return frozenset(actions)


def can_switch(state: BattleState, index: int, require_turn: bool = False) -> bool:
    """Check if the player may switch their active combatant to a deck slot.

    Switching is not gated on whose turn it is unless require_turn is set;
    the server has the final word on turn ownership for switches.

    Args:
        state: Current battle state
        index: Target slot in the player's deck
        require_turn: Also require can_submit(state)

    Returns:
        True if the slot exists, is not the active slot, and holds a
        combatant that is not knocked out
    """
    if require_turn and not can_submit(state):
        return False
    if not 0 <= index < len(state.player_deck):
        return False
    if index == state.player_active_index:
        return False
    target = state.player_deck[index]
    return target is not None and not target.is_knocked_out


def reward_selection_available(state: BattleState) -> bool:
    """Check if the post-victory reward round is open.

    The reward round exists only for won 5v5 battles with rewards that have
    not been claimed yet.
    """
    return (
        state.battle_over
        and state.winner == Winner.PLAYER
        and state.mode == BattleMode.FIVE_ON_FIVE
        and state.rewards is not None
        and not state.reward_claimed
    )


@dataclass(frozen=True)
class ActionOptions:
    """Summary of everything the player can do in a given state."""

    can_submit: bool
    legal_actions: FrozenSet[ActionType] = field(default_factory=frozenset)
    selectable_moves: List[int] = field(default_factory=list)
    defend_cost: Optional[int] = None
    sacrifice_cost: Optional[int] = None
    available_switches: List[int] = field(default_factory=list)
    reward_selection_available: bool = False


class ActionGate:
    """Applies the legality rules with a fixed switch policy.

    Attributes:
        switch_requires_turn: Whether switches are only allowed on the
            player's turn
    """

    def __init__(self, switch_requires_turn: bool = False) -> None:
        self.switch_requires_turn = switch_requires_turn

    def can_switch(self, state: BattleState, index: int) -> bool:
        return can_switch(state, index, require_turn=self.switch_requires_turn)

    def available_switches(self, state: BattleState) -> List[int]:
        """Get every deck slot the player may switch to."""
        return [i for i in range(len(state.player_deck)) if self.can_switch(state, i)]

    def options(self, state: BattleState) -> ActionOptions:
        """Compute the full ActionOptions for a state.

        Args:
            state: Current battle state

        Returns:
            ActionOptions with legal actions, affordable moves, stamina costs
            of the active combatant, switch targets and reward availability
        """
        active = state.get_active_combatant(Side.PLAYER)
        submit = can_submit(state)
        return ActionOptions(
            can_submit=submit,
            legal_actions=legal_actions(state),
            selectable_moves=selectable_moves(state) if submit else [],
            defend_cost=defend_cost(active.hp_max) if active else None,
            sacrifice_cost=sacrifice_cost(active.hp_max) if active else None,
            available_switches=self.available_switches(state),
            reward_selection_available=reward_selection_available(state),
        )

    def check(self, state: BattleState, action: BattleAction) -> Optional[str]:
        """Validate an action against a state.

        Args:
            state: Current battle state
            action: Action the player wants to take

        Returns:
            None if the action is legal, otherwise a reason it is not
        """
        if action.action_type == ActionType.SWITCH:
            if action.switch_index is None:
                return "switch requires a target index"
            if not self.can_switch(state, action.switch_index):
                return f"cannot switch to slot {action.switch_index}"
            return None

        if not can_submit(state):
            return "it is not the player's turn"
        if action.action_type not in legal_actions(state):
            return f"{action.action_type.value} is not legal now"
        if action.action_type == ActionType.ATTACK:
            if action.move_index is None:
                return "attack requires a move index"
            if action.move_index not in selectable_moves(state):
                return f"move {action.move_index} is unavailable or unaffordable"
        return None
