"""Normalizes server battle payloads into the canonical BattleState.

The battle API has shipped two response shapes and the client cannot know
which one is live:

- Legacy: {"session": "...", "state": {"Player": {"Deck": [...]}, "AI": {...},
  "BattleMode": "5v5", "TurnNumber": 3, ...}, "turn": {"WhoseTurn": "ai"},
  "log": [...], "winner": "..."}
- Current: {"id": "...", "mode": "5v5", "player_deck": [...], "ai_deck": [...],
  "turn_number": 3, "whose_turn": "ai", ..., "coins_earned": 150,
  "xp_gains": [...], "newly_unlocked_achievements": [...]}

Every field is resolved snake_case first, then legacy, then a default, so a
future shape only needs another fallback tier here.
"""

from typing import Any, List, Mapping, Optional, Tuple

from absl import logging

from pokebattle.game.protocol.combatant_normalizer import normalize_combatant
from pokebattle.game.schema.battle_state import (
    Achievement,
    BattleState,
    LevelUp,
    RewardSummary,
    StatIncreases,
    XpDetail,
)
from pokebattle.game.schema.combatant_state import CombatantSnapshot
from pokebattle.game.schema.enums import BattleMode, Side, Winner
from pokebattle.game.schema.utils import (
    as_mapping,
    coerce_bool,
    coerce_int,
    coerce_list,
    coerce_str,
    lookup,
    lookup_path,
)

# (stat name, old-value keys, new-value keys) used to compute level-up deltas.
_LEVEL_UP_STATS = (
    ("hp", ("old_hp", "oldHp", "OldHP"), ("new_hp", "newHp", "NewHP")),
    (
        "attack",
        ("old_attack", "oldAttack", "OldAttack"),
        ("new_attack", "newAttack", "NewAttack"),
    ),
    (
        "defense",
        ("old_defense", "oldDefense", "OldDefense"),
        ("new_defense", "newDefense", "NewDefense"),
    ),
    (
        "speed",
        ("old_speed", "oldSpeed", "OldSpeed"),
        ("new_speed", "newSpeed", "NewSpeed"),
    ),
)


def _split_envelope(response: Mapping[str, Any]) -> Tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Return (envelope, data) for either payload shape."""
    state = response.get("state")
    if isinstance(state, Mapping):
        return response, state
    return {}, response


def _resolve_battle_id(
    response: Mapping[str, Any],
    data: Mapping[str, Any],
    fallback_battle_id: Optional[str],
) -> str:
    for source, key in ((response, "session"), (response, "id"), (data, "id")):
        battle_id = lookup(source, key)
        if battle_id is not None and battle_id != "":
            return str(battle_id)
    if fallback_battle_id:
        logging.debug("Response has no battle id, keeping %s", fallback_battle_id)
    return fallback_battle_id or ""


def _normalize_deck(
    data: Mapping[str, Any], flat_key: str, legacy_side: str
) -> List[Optional[CombatantSnapshot]]:
    raw_deck = lookup(data, flat_key)
    if raw_deck is None:
        raw_deck = lookup_path(data, legacy_side, "Deck")
    return [normalize_combatant(entry) for entry in coerce_list(raw_deck, flat_key)]


def _clamp_index(index: int, deck: List[Optional[CombatantSnapshot]], field_name: str) -> int:
    if index < 0 or (deck and index >= len(deck)):
        logging.warning(
            "Field %s index %d out of range for deck of %d, using 0",
            field_name,
            index,
            len(deck),
        )
        return 0
    return index


def _resolve_mode(data: Mapping[str, Any]) -> BattleMode:
    raw_mode = lookup(data, "mode", "BattleMode")
    if raw_mode is None:
        logging.debug("Field mode missing, defaulting to %s", BattleMode.ONE_ON_ONE.value)
        return BattleMode.ONE_ON_ONE
    mode = BattleMode.from_protocol(raw_mode)
    if mode is None:
        logging.warning("Unknown battle mode %r, defaulting to 1v1", raw_mode)
        return BattleMode.ONE_ON_ONE
    return mode


def _resolve_whose_turn(envelope: Mapping[str, Any], data: Mapping[str, Any]) -> Side:
    raw_turn = lookup(data, "whose_turn", "WhoseTurn")
    if raw_turn is None:
        raw_turn = lookup_path(data, "turn", "WhoseTurn")
    if raw_turn is None:
        raw_turn = lookup(envelope, "whose_turn", "whoseTurn")
    if raw_turn is None:
        raw_turn = lookup_path(envelope, "turn", "WhoseTurn")
    if raw_turn is None:
        logging.debug("Field whose_turn missing, defaulting to player")
        return Side.PLAYER
    side = Side.from_protocol(raw_turn)
    if side is None:
        logging.warning("Unknown whose_turn value %r, defaulting to player", raw_turn)
        return Side.PLAYER
    return side


def _resolve_winner(
    envelope: Mapping[str, Any], data: Mapping[str, Any], battle_over: bool
) -> Winner:
    if not battle_over:
        return Winner.NONE

    raw_winner = lookup(data, "winner", "Winner")
    if raw_winner is None or raw_winner == "":
        raw_winner = lookup(envelope, "winner")
    winner = Winner.from_protocol(raw_winner)
    if winner is not None:
        return winner
    if raw_winner not in (None, ""):
        logging.warning("Unknown winner value %r, inferring from surrender flag", raw_winner)

    surrendered = coerce_bool(
        lookup(data, "player_surrendered", "PlayerSurrendered"),
        False,
        "player_surrendered",
    )
    # A surrender flag cannot tell an AI surrender or a draw from a decisive
    # result; the explicit winner field is the only reliable source.
    return Winner.AI if surrendered else Winner.PLAYER


def _resolve_log(envelope: Mapping[str, Any], data: Mapping[str, Any]) -> List[str]:
    raw_log = lookup(data, "log", "Log")
    if raw_log is None:
        raw_log = lookup(envelope, "log")
    return [str(entry) for entry in coerce_list(raw_log, "log") if entry is not None]


def _stat_increases(raw: Mapping[str, Any]) -> StatIncreases:
    explicit = raw.get("stat_increases", raw.get("statIncreases"))
    if isinstance(explicit, Mapping):
        return StatIncreases(
            **{
                stat: coerce_int(explicit[stat], 0, f"stat_increases.{stat}")
                for stat, _, _ in _LEVEL_UP_STATS
                if explicit.get(stat) is not None
            }
        )

    deltas = {}
    for stat, old_keys, new_keys in _LEVEL_UP_STATS:
        old_value = lookup(raw, *old_keys)
        new_value = lookup(raw, *new_keys)
        if old_value is None or new_value is None:
            continue
        deltas[stat] = coerce_int(new_value, 0, f"new_{stat}") - coerce_int(
            old_value, 0, f"old_{stat}"
        )
    return StatIncreases(**deltas)


def _normalize_level_up(raw: Any) -> Optional[LevelUp]:
    if not isinstance(raw, Mapping):
        logging.warning("Skipping malformed level up entry: %r", raw)
        return None
    return LevelUp(
        name=coerce_str(
            lookup(raw, "name", "pokemon_name", "pokemonName", "Name"), "", "level_up.name"
        ),
        new_level=coerce_int(
            lookup(raw, "new_level", "newLevel", "NewLevel", "level"),
            1,
            "level_up.new_level",
            minimum=1,
        ),
        stat_increases=_stat_increases(raw),
    )


def _normalize_xp_gain(raw: Any) -> Tuple[Optional[XpDetail], Optional[LevelUp]]:
    """Convert one xp_gains entry into an XpDetail and, if it leveled up, a LevelUp."""
    if not isinstance(raw, Mapping):
        logging.warning("Skipping malformed xp gain entry: %r", raw)
        return None, None

    card_id = lookup(raw, "card_id", "cardId", "CardID")
    leveled_up = coerce_bool(
        lookup(raw, "leveled_up", "leveledUp", "LeveledUp"), False, "xp_gain.leveled_up"
    )
    detail = XpDetail(
        card_id=coerce_int(card_id, 0, "xp_gain.card_id") if card_id is not None else None,
        name=coerce_str(
            lookup(raw, "name", "pokemon_name", "pokemonName", "PokemonName"),
            "",
            "xp_gain.name",
        ),
        level=coerce_int(
            lookup(raw, "level", "new_level", "newLevel", "NewLevel", "old_level", "oldLevel"),
            1,
            "xp_gain.level",
            minimum=1,
        ),
        xp_gained=coerce_int(
            lookup(raw, "xp_gained", "xpGained", "XPGained"), 0, "xp_gain.xp_gained"
        ),
        leveled_up=leveled_up,
    )
    level_up = _normalize_level_up(raw) if leveled_up else None
    return detail, level_up


def _normalize_achievement(raw: Any) -> Optional[Achievement]:
    if not isinstance(raw, Mapping):
        logging.warning("Skipping malformed achievement entry: %r", raw)
        return None
    achievement_id = lookup(raw, "id", "ID")
    unlocked_at = lookup(raw, "unlocked_at", "unlockedAt")
    return Achievement(
        id=coerce_int(achievement_id, 0, "achievement.id")
        if achievement_id is not None
        else None,
        name=coerce_str(lookup(raw, "name", "Name"), "", "achievement.name"),
        description=coerce_str(
            lookup(raw, "description", "Description"), "", "achievement.description"
        ),
        icon=coerce_str(lookup(raw, "icon", "Icon"), "", "achievement.icon"),
        unlocked_at=str(unlocked_at) if unlocked_at is not None else None,
    )


def _xp_from_legacy_map(
    xp_map: Mapping[str, Any], level_ups: List[LevelUp], raw_level_ups: List[Any]
) -> List[XpDetail]:
    """Build XpDetails from the older {card_id: xp} reward map."""
    leveled = {}
    for raw_level_up, level_up in zip(raw_level_ups, level_ups):
        card_id = lookup(raw_level_up, "card_id", "cardId")
        if card_id is not None:
            leveled[str(card_id)] = level_up

    details = []
    for card_id, xp in xp_map.items():
        level_up = leveled.get(str(card_id))
        details.append(
            XpDetail(
                card_id=coerce_int(card_id, 0, "xp_gained.card_id"),
                name=level_up.name if level_up else "",
                level=level_up.new_level if level_up else 1,
                xp_gained=coerce_int(xp, 0, "xp_gained"),
                leveled_up=level_up is not None,
            )
        )
    return details


def _normalize_rewards(data: Mapping[str, Any]) -> Optional[RewardSummary]:
    """Merge the independent reward sections into one RewardSummary.

    Returns:
        RewardSummary, or None when no section carried any data
    """
    rewards_obj = as_mapping(lookup(data, "rewards", "Rewards"))

    def section(*keys: str) -> Any:
        value = lookup(data, *keys)
        return value if value is not None else lookup(rewards_obj, *keys)

    coins_raw = section("coins_earned", "coinsEarned", "CoinsEarned")
    xp_gains_raw = section("xp_gains", "xpGains", "XPGains")
    achievements_raw = section(
        "newly_unlocked_achievements", "newlyUnlockedAchievements"
    )
    xp_details_raw = lookup(rewards_obj, "xp_details", "xpDetails")
    level_ups_raw = lookup(rewards_obj, "level_ups", "levelUps")
    xp_map_raw = lookup(rewards_obj, "xp_gained", "xpGained")

    if all(
        value is None
        for value in (
            coins_raw,
            xp_gains_raw,
            achievements_raw,
            xp_details_raw,
            level_ups_raw,
            xp_map_raw,
        )
    ):
        return None

    xp_details: List[XpDetail] = []
    level_ups: List[LevelUp] = []
    if xp_gains_raw is not None:
        for entry in coerce_list(xp_gains_raw, "xp_gains"):
            detail, level_up = _normalize_xp_gain(entry)
            if detail is not None:
                xp_details.append(detail)
            if level_up is not None:
                level_ups.append(level_up)
    else:
        raw_level_ups = [
            entry
            for entry in coerce_list(level_ups_raw, "level_ups")
            if isinstance(entry, Mapping)
        ]
        level_ups = [
            level_up
            for level_up in (_normalize_level_up(entry) for entry in raw_level_ups)
            if level_up is not None
        ]
        if xp_details_raw is not None:
            for entry in coerce_list(xp_details_raw, "xp_details"):
                detail, _ = _normalize_xp_gain(entry)
                if detail is not None:
                    xp_details.append(detail)
        elif isinstance(xp_map_raw, Mapping):
            xp_details = _xp_from_legacy_map(xp_map_raw, level_ups, raw_level_ups)

    achievements = [
        achievement
        for achievement in (
            _normalize_achievement(entry)
            for entry in coerce_list(achievements_raw, "newly_unlocked_achievements")
        )
        if achievement is not None
    ]

    return RewardSummary(
        coins_earned=coerce_int(coins_raw, 0, "coins_earned", minimum=0),
        xp_details=xp_details,
        level_ups=level_ups,
        newly_unlocked_achievements=achievements,
    )


def normalize_battle_state(
    response: Any, fallback_battle_id: Optional[str] = None
) -> BattleState:
    """Convert a server battle payload into the canonical BattleState.

    Accepts the legacy nested envelope ({"session", "state": {...}}) and the
    current flat payload. Missing or malformed fields degrade to defaults and
    are logged; this function never raises, so a surprising payload yields a
    minimal empty-deck state instead of an error.

    Args:
        response: Raw decoded JSON response from the battle API
        fallback_battle_id: Battle id known before this call. Used when the
            response omits the id, as several move endpoints do.

    Returns:
        Canonical BattleState

    Examples:
        >>> state = normalize_battle_state({}, "abc")
        >>> state.battle_id, state.battle_over, state.winner
        ('abc', False, Winner.NONE)
    """
    if not isinstance(response, Mapping):
        logging.warning("Battle payload is not a mapping: %r", type(response).__name__)
        response = {}

    envelope, data = _split_envelope(response)

    player_deck = _normalize_deck(data, "player_deck", "Player")
    ai_deck = _normalize_deck(data, "ai_deck", "AI")

    raw_battle_over = lookup(data, "battle_over", "BattleOver")
    if raw_battle_over is None:
        raw_battle_over = lookup(envelope, "battle_over", "battleOver")
    battle_over = coerce_bool(raw_battle_over, False, "battle_over")
    winner = _resolve_winner(envelope, data, battle_over)

    rewards = _normalize_rewards(data)
    if rewards is not None and winner != Winner.PLAYER:
        logging.debug("Dropping rewards for battle not won by the player")
        rewards = None

    return BattleState(
        battle_id=_resolve_battle_id(response, data, fallback_battle_id),
        mode=_resolve_mode(data),
        player_deck=player_deck,
        ai_deck=ai_deck,
        player_active_index=_clamp_index(
            coerce_int(
                lookup(data, "player_active_idx", "PlayerActiveIdx"),
                0,
                "player_active_idx",
            ),
            player_deck,
            "player_active_idx",
        ),
        ai_active_index=_clamp_index(
            coerce_int(lookup(data, "ai_active_idx", "AIActiveIdx"), 0, "ai_active_idx"),
            ai_deck,
            "ai_active_idx",
        ),
        turn_number=coerce_int(
            lookup(data, "turn_number", "TurnNumber"), 1, "turn_number", minimum=1
        ),
        round_number=coerce_int(
            lookup(data, "round_number", "Round"), 1, "round_number", minimum=1
        ),
        whose_turn=_resolve_whose_turn(envelope, data),
        battle_over=battle_over,
        winner=winner,
        rewards=rewards,
        log=_resolve_log(envelope, data),
        reward_claimed=coerce_bool(
            lookup(data, "reward_claimed", "RewardClaimed"), False, "reward_claimed"
        ),
    )
