"""Normalizes server combatant payloads into CombatantSnapshot."""

from typing import Any, List, Mapping, Optional

from absl import logging

from pokebattle.game.schema.combatant_state import CombatantSnapshot, Move
from pokebattle.game.schema.utils import (
    coerce_bool,
    coerce_int,
    coerce_list,
    coerce_str,
    lookup,
)


def normalize_move(raw: Any) -> Optional[Move]:
    """Convert a raw move payload into a Move.

    The server has emitted moves as {"name", "power", "stamina_cost",
    "attack_type"} and, in the legacy game state, with PascalCase keys.

    Args:
        raw: Move payload

    Returns:
        Move, or None if the payload is not a mapping
    """
    if not isinstance(raw, Mapping):
        logging.warning("Skipping malformed move entry: %r", raw)
        return None

    description = lookup(raw, "description", "Description")
    return Move(
        name=coerce_str(lookup(raw, "name", "Name"), "", "move.name"),
        type=coerce_str(
            lookup(raw, "type", "attack_type", "Type", "AttackType"), "", "move.type"
        ),
        power=coerce_int(lookup(raw, "power", "Power"), 0, "move.power", minimum=0),
        stamina_cost=coerce_int(
            lookup(raw, "stamina_cost", "StaminaCost"),
            0,
            "move.stamina_cost",
            minimum=0,
        ),
        description=str(description) if description is not None else None,
    )


def _normalize_moves(raw: Any) -> List[Move]:
    moves = []
    for entry in coerce_list(raw, "moves"):
        move = normalize_move(entry)
        if move is not None:
            moves.append(move)
    return moves


def normalize_combatant(raw: Any) -> Optional[CombatantSnapshot]:
    """Convert a server combatant payload into a CombatantSnapshot.

    Accepts both the current snake_case shape (hp, hp_max, is_knocked_out,
    ...) and the legacy PascalCase shape (HP, HPMax, IsLegendary, ...). For
    every field the snake_case value wins when present, then the PascalCase
    value, then a default.

    Knocked-out status is derived rather than trusted: a combatant is
    knocked out if the payload says so or if its HP is zero. Face-down cards
    (hidden inactive AI cards) have no HP in the payload, so only the
    explicit flag is used for them.

    This function is pure and never raises.

    Args:
        raw: Combatant payload, or None for an empty deck slot

    Returns:
        CombatantSnapshot, or None when raw is None or not a mapping

    Examples:
        >>> snapshot = normalize_combatant({"Name": "Pikachu", "HP": 0, "HPMax": 35})
        >>> snapshot.is_knocked_out
        True
        >>> normalize_combatant(None) is None
        True
    """
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        logging.warning("Combatant payload is not a mapping: %r", raw)
        return None

    is_face_down = coerce_bool(raw.get("is_face_down"), False, "is_face_down")

    hp = coerce_int(lookup(raw, "hp", "HP"), 0, "hp", minimum=0)
    hp_max = coerce_int(lookup(raw, "hp_max", "HPMax"), max(1, hp), "hp_max", minimum=1)
    if hp > hp_max:
        logging.warning("Combatant hp %d exceeds hp_max %d, clamping", hp, hp_max)
        hp = hp_max

    speed = coerce_int(lookup(raw, "speed", "Speed"), 0, "speed", minimum=0)
    types = frozenset(
        str(t) for t in coerce_list(lookup(raw, "types", "Types"), "types") if t
    )

    explicit_knocked_out = coerce_bool(
        lookup(raw, "is_knocked_out", "IsKnockedOut"), False, "is_knocked_out"
    )
    is_knocked_out = explicit_knocked_out or (hp == 0 and not is_face_down)

    card_id = lookup(raw, "card_id", "CardID")

    return CombatantSnapshot(
        name=coerce_str(lookup(raw, "name", "pokemon_name", "Name"), "", "name"),
        hp=hp,
        hp_max=hp_max,
        stamina=coerce_int(lookup(raw, "stamina", "Stamina"), 0, "stamina", minimum=0),
        stamina_max=coerce_int(
            lookup(raw, "stamina_max", "StaminaMax"),
            speed * 2,
            "stamina_max",
            minimum=0,
        ),
        attack=coerce_int(lookup(raw, "attack", "Attack"), 0, "attack", minimum=0),
        defense=coerce_int(lookup(raw, "defense", "Defense"), 0, "defense", minimum=0),
        speed=speed,
        moves=_normalize_moves(lookup(raw, "moves", "Moves")),
        types=types,
        level=coerce_int(lookup(raw, "level", "Level"), 1, "level", minimum=1),
        xp=coerce_int(lookup(raw, "xp", "XP"), 0, "xp", minimum=0),
        is_legendary=coerce_bool(
            lookup(raw, "is_legendary", "IsLegendary"), False, "is_legendary"
        ),
        is_mythical=coerce_bool(
            lookup(raw, "is_mythical", "IsMythical"), False, "is_mythical"
        ),
        is_knocked_out=is_knocked_out,
        card_id=coerce_int(card_id, 0, "card_id") if card_id is not None else None,
        is_face_down=is_face_down,
    )
