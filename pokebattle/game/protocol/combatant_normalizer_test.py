"""Unit tests for the combatant normalizer."""

import unittest

from absl.testing import parameterized

from pokebattle.game.protocol.combatant_normalizer import (
    normalize_combatant,
    normalize_move,
)
from pokebattle.game.schema.combatant_state import CombatantSnapshot, Move


def _canonical_payload() -> dict:
    return {
        "name": "Pikachu",
        "hp": 30,
        "hp_max": 35,
        "stamina": 12,
        "stamina_max": 180,
        "attack": 55,
        "defense": 40,
        "speed": 90,
        "moves": [
            {"name": "Quick Attack", "type": "normal", "power": 40, "stamina_cost": 5}
        ],
        "types": ["electric"],
        "level": 3,
        "xp": 50,
        "is_legendary": False,
        "is_mythical": False,
        "is_knocked_out": False,
        "card_id": 12,
    }


class NormalizeCombatantTest(parameterized.TestCase):
    """Test normalize_combatant across payload shapes."""

    def test_canonical_payload(self) -> None:
        snapshot = normalize_combatant(_canonical_payload())

        self.assertEqual(
            snapshot,
            CombatantSnapshot(
                name="Pikachu",
                hp=30,
                hp_max=35,
                stamina=12,
                stamina_max=180,
                attack=55,
                defense=40,
                speed=90,
                moves=[Move(name="Quick Attack", type="normal", power=40, stamina_cost=5)],
                types=frozenset({"electric"}),
                level=3,
                xp=50,
                card_id=12,
            ),
        )

    def test_to_dict_round_trip_is_identity(self) -> None:
        snapshot = normalize_combatant(_canonical_payload())
        self.assertEqual(normalize_combatant(snapshot.to_dict()), snapshot)  # type: ignore[union-attr]

    def test_pascal_case_payload_matches_snake_case(self) -> None:
        legacy = {
            "Name": "Pikachu",
            "HP": 30,
            "HPMax": 35,
            "Stamina": 12,
            "StaminaMax": 180,
            "Attack": 55,
            "Defense": 40,
            "Speed": 90,
            "Moves": [
                {"Name": "Quick Attack", "Type": "normal", "Power": 40, "StaminaCost": 5}
            ],
            "Types": ["electric"],
            "Level": 3,
            "XP": 50,
            "IsLegendary": False,
            "IsMythical": False,
            "CardID": 12,
        }
        self.assertEqual(normalize_combatant(legacy), normalize_combatant(_canonical_payload()))

    def test_snake_case_wins_over_pascal_case(self) -> None:
        snapshot = normalize_combatant({"hp": 10, "HP": 20, "hp_max": 30})
        self.assertEqual(snapshot.hp, 10)  # type: ignore[union-attr]

    def test_defaults(self) -> None:
        snapshot = normalize_combatant({"name": "Eevee", "hp": 20})

        self.assertEqual(snapshot.hp_max, 20)  # type: ignore[union-attr]
        self.assertEqual(snapshot.level, 1)  # type: ignore[union-attr]
        self.assertEqual(snapshot.xp, 0)  # type: ignore[union-attr]
        self.assertEqual(snapshot.moves, [])  # type: ignore[union-attr]
        self.assertEqual(snapshot.types, frozenset())  # type: ignore[union-attr]
        self.assertFalse(snapshot.is_legendary)  # type: ignore[union-attr]
        self.assertIsNone(snapshot.card_id)  # type: ignore[union-attr]

    def test_empty_payload_has_minimum_hp_max(self) -> None:
        snapshot = normalize_combatant({})
        self.assertEqual(snapshot.hp_max, 1)  # type: ignore[union-attr]
        self.assertEqual(snapshot.hp, 0)  # type: ignore[union-attr]

    def test_stamina_max_defaults_to_twice_speed(self) -> None:
        snapshot = normalize_combatant({"name": "Jolteon", "hp": 65, "speed": 130})
        self.assertEqual(snapshot.stamina_max, 260)  # type: ignore[union-attr]

    def test_hp_clamped_to_hp_max(self) -> None:
        snapshot = normalize_combatant({"hp": 50, "hp_max": 40})
        self.assertEqual(snapshot.hp, 40)  # type: ignore[union-attr]

    @parameterized.named_parameters(
        ("explicit_flag", {"hp": 10, "hp_max": 35, "is_knocked_out": True}, True),
        ("zero_hp", {"hp": 0, "hp_max": 35, "is_knocked_out": False}, True),
        ("legacy_flag", {"HP": 10, "HPMax": 35, "IsKnockedOut": True}, True),
        ("healthy", {"hp": 10, "hp_max": 35}, False),
        ("face_down", {"card_id": 4, "is_face_down": True, "is_knocked_out": False}, False),
        ("face_down_knocked_out", {"card_id": 4, "is_face_down": True, "is_knocked_out": True}, True),
    )
    def test_knocked_out_derivation(self, raw: dict, expected: bool) -> None:
        self.assertEqual(normalize_combatant(raw).is_knocked_out, expected)  # type: ignore[union-attr]

    def test_types_order_irrelevant(self) -> None:
        first = normalize_combatant({"types": ["fire", "flying"]})
        second = normalize_combatant({"types": ["flying", "fire"]})
        self.assertEqual(first, second)

    @parameterized.parameters((None,), ("Pikachu",), ([1, 2],), (7,))
    def test_non_mapping_returns_none(self, raw: object) -> None:
        self.assertIsNone(normalize_combatant(raw))

    def test_malformed_values_fall_back(self) -> None:
        snapshot = normalize_combatant(
            {"name": "Ditto", "hp": "lots", "hp_max": 48, "level": "high", "moves": "none"}
        )
        self.assertEqual(snapshot.hp, 0)  # type: ignore[union-attr]
        self.assertEqual(snapshot.level, 1)  # type: ignore[union-attr]
        self.assertEqual(snapshot.moves, [])  # type: ignore[union-attr]

    def test_pokemon_name_alias(self) -> None:
        snapshot = normalize_combatant({"pokemon_name": "Mew", "hp": 100})
        self.assertEqual(snapshot.name, "Mew")  # type: ignore[union-attr]


class NormalizeMoveTest(unittest.TestCase):
    """Test normalize_move."""

    def test_attack_type_alias(self) -> None:
        move = normalize_move(
            {"name": "Ember", "power": 40, "stamina_cost": 6, "attack_type": "fire"}
        )
        self.assertEqual(move, Move(name="Ember", type="fire", power=40, stamina_cost=6))

    def test_description(self) -> None:
        move = normalize_move({"Name": "Tackle", "Description": "Charges the foe"})
        self.assertEqual(move.description, "Charges the foe")  # type: ignore[union-attr]

    def test_malformed_entries_are_skipped(self) -> None:
        self.assertIsNone(normalize_move("Tackle"))
        snapshot = normalize_combatant({"moves": ["Tackle", {"name": "Growl"}]})
        self.assertEqual([m.name for m in snapshot.moves], ["Growl"])  # type: ignore[union-attr]


if __name__ == "__main__":
    unittest.main()
