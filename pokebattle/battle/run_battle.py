"""Main integration script for playing card battles against the battle server.

This script starts battles over the HTTP API, lets the selected agent choose
every action, polls while the AI is acting, and claims the reward after a
won 5v5 battle.
"""

import asyncio
import os
import time
from typing import Callable, Dict, List, Optional

from absl import app, flags, logging

from pokebattle.agents.agent_interface import Agent
from pokebattle.agents.agent_registry import AgentRegistry
from pokebattle.game.environment.battle_session import BattleSession
from pokebattle.game.exceptions import BattleError, IllegalAction, MoveRejected
from pokebattle.game.interface.action_gate import ActionGate, reward_selection_available
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.protocol.battle_api_client import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECS,
    BattleApiClient,
)
from pokebattle.game.protocol.battle_turn_logger import DEFAULT_LOG_DIR, BattleTurnLogger
from pokebattle.game.protocol.session_provider import StaticSessionProvider
from pokebattle.game.schema.battle_state import BattleState
from pokebattle.game.schema.enums import BattleMode, SessionStatus, Winner

FLAGS = flags.FLAGS

# Agent selection
flags.DEFINE_string(
    "agent",
    "random",
    f"Agent type to use. Available: {', '.join(AgentRegistry.get_available_agents())}",
)

# Connection settings
flags.DEFINE_string(
    "server_url",
    os.environ.get("POKEBATTLE_API_URL", DEFAULT_BASE_URL),
    "Base URL of the battle server (default: $POKEBATTLE_API_URL)",
)
flags.DEFINE_string(
    "token",
    os.environ.get("POKEBATTLE_TOKEN", ""),
    "Bearer token for the player's session (default: $POKEBATTLE_TOKEN)",
)
flags.DEFINE_enum(
    "mode",
    BattleMode.ONE_ON_ONE.value,
    [mode.value for mode in BattleMode],
    "Battle mode to start",
)
flags.DEFINE_integer("battles", 1, "Number of battles to play before exiting")
flags.DEFINE_float(
    "request_timeout",
    DEFAULT_TIMEOUT_SECS,
    "Seconds before a battle request is abandoned",
)
flags.DEFINE_float(
    "poll_interval",
    1.0,
    "Seconds to wait between state polls while the AI is acting",
)
flags.DEFINE_bool(
    "switch_requires_turn",
    False,
    "Only allow switching on the player's turn",
)
flags.DEFINE_bool(
    "log_turns",
    True,
    "Enable logging of every battle state to <turn_log_dir>/<agent>_<battle_id>_<epoch>.txt",
)
flags.DEFINE_string("turn_log_dir", DEFAULT_LOG_DIR, "Directory for turn logs")
flags.DEFINE_integer(
    "move_retries",
    3,
    "Maximum number of retries when the server rejects an action (default: 3)",
)


async def send_action(session: BattleSession, action: BattleAction) -> BattleState:
    """Send an agent action through the matching session call."""
    if action.action_type == ActionType.SWITCH:
        if action.switch_index is None:
            raise ValueError("SWITCH action requires switch_index")
        return await session.switch_active(action.switch_index)
    return await session.submit_move(action.action_type, action.move_index)


async def play_battle(
    session: BattleSession,
    mode: BattleMode,
    agent_factory: Callable[[str], Agent],
    move_retries: int = 3,
    poll_interval: float = 1.0,
    logger_factory: Optional[Callable[[str], BattleTurnLogger]] = None,
) -> BattleState:
    """Play one battle from start to finish.

    Args:
        session: Battle session to play through
        mode: Battle mode to start
        agent_factory: Creates the agent for the started battle id
        move_retries: Retries allowed after an action is rejected by the
            server or the local gate
        poll_interval: Seconds between polls while the AI is acting
        logger_factory: Creates a turn logger for the started battle id

    Returns:
        Final battle state, with reward_claimed set if a reward was taken

    Raises:
        MoveRejected: If the agent declines to retry or retries run out
        IllegalAction: Same, when the last action failed the local gate
        BattleError: On any other session failure
    """
    state = await session.start(mode)
    battle_id = state.battle_id
    agent = agent_factory(battle_id)
    logging.info("[%s] Agent created: %s", battle_id, type(agent).__name__)

    logger = logger_factory(battle_id) if logger_factory else None
    if logger is not None:
        logger.log_state(state, state.log)
        session.set_logger(logger)

    try:
        action_count = 0
        while not session.is_battle_over():
            if session.status == SessionStatus.AWAITING_OPPONENT:
                logging.debug("[%s] Waiting for the AI to act...", battle_id)
                await asyncio.sleep(poll_interval)
                state = await session.refresh()
                continue

            options = session.get_options()
            action = await agent.choose_action(state, options)
            action_count += 1
            logging.info(
                "[%s] Turn %d - action %d: %s",
                battle_id,
                state.turn_number,
                action_count,
                action,
            )

            retries = 0
            while True:
                try:
                    state = await send_action(session, action)
                    break
                except (MoveRejected, IllegalAction) as e:
                    logging.warning("[%s] Action rejected: %s", battle_id, e.message)
                    if retries >= move_retries:
                        logging.error(
                            "[%s] Exhausted all %d retries", battle_id, move_retries
                        )
                        raise
                    retry_action = await agent.retry_action_on_server_error(
                        e.message, state, options
                    )
                    if retry_action is None:
                        logging.error(
                            "[%s] Agent declined to retry after: %s", battle_id, e.message
                        )
                        raise
                    action = retry_action
                    retries += 1
                    logging.info(
                        "[%s] Retrying with new action (attempt %d/%d): %s",
                        battle_id,
                        retries,
                        move_retries,
                        action,
                    )

        logging.info(
            "[%s] Battle ended on turn %d, winner: %s",
            battle_id,
            state.turn_number,
            state.winner.value,
        )
        if state.rewards is not None:
            logging.info(
                "[%s] Earned %d coins, %d level ups",
                battle_id,
                state.rewards.coins_earned,
                len(state.rewards.level_ups),
            )

        if reward_selection_available(state):
            reward_index = await agent.choose_reward(state)
            confirmation = await session.select_reward(reward_index)
            logging.info("[%s] Reward %d: %s", battle_id, reward_index, confirmation.message)
            state = session.get_state() or state
    finally:
        if logger is not None:
            logger.close()
            session.set_logger(None)

    return state


async def run_battles() -> None:
    """Play FLAGS.battles battles with the selected agent."""
    if not AgentRegistry.has_agent(FLAGS.agent):
        logging.error(
            "Unknown agent: '%s'. Available agents: %s",
            FLAGS.agent,
            ", ".join(AgentRegistry.get_available_agents()),
        )
        return

    mode = BattleMode(FLAGS.mode)
    epoch_secs = int(time.time())

    def make_logger(battle_id: str) -> BattleTurnLogger:
        return BattleTurnLogger(FLAGS.agent, epoch_secs, battle_id, FLAGS.turn_log_dir)

    logger_factory = make_logger if FLAGS.log_turns else None

    results: Dict[Winner, int] = {winner: 0 for winner in Winner}
    async with BattleApiClient(
        FLAGS.server_url,
        StaticSessionProvider(FLAGS.token),
        timeout=FLAGS.request_timeout,
    ) as client:
        session = BattleSession(
            client,
            gate=ActionGate(switch_requires_turn=FLAGS.switch_requires_turn),
            request_timeout=FLAGS.request_timeout,
        )
        for battle_count in range(1, FLAGS.battles + 1):
            logging.info("=== Battle #%d (%s) ===", battle_count, mode.value)
            try:
                state = await play_battle(
                    session,
                    mode,
                    lambda battle_id: AgentRegistry.create_agent(FLAGS.agent, battle_id),
                    move_retries=FLAGS.move_retries,
                    poll_interval=FLAGS.poll_interval,
                    logger_factory=logger_factory,
                )
            except BattleError as e:
                logging.error("Battle #%d failed: %s", battle_count, e)
                session.abandon()
                continue
            results[state.winner] += 1
            session.abandon()

    logging.info(
        "Record: %dW-%dL-%dD",
        results[Winner.PLAYER],
        results[Winner.AI],
        results[Winner.DRAW],
    )


def main(argv: List[str]) -> None:
    """Entry point for the script."""
    del argv
    logging.set_verbosity(logging.INFO)
    logging.info("Starting run_battle script")
    logging.info("Agent: %s", FLAGS.agent)
    logging.info("Server: %s", FLAGS.server_url)

    asyncio.run(run_battles())


def run() -> None:
    """Console script entry point."""
    app.run(main)


if __name__ == "__main__":
    run()
