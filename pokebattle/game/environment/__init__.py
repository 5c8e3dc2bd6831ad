"""Battle session controller and its status helpers."""

from pokebattle.game.environment.battle_session import BattleSession, merge_log, status_for

__all__ = ["BattleSession", "merge_log", "status_for"]
