"""Agent registry for mapping agent names to agent classes."""

from typing import Callable, Dict, List

from pokebattle.agents.agent_interface import Agent
from pokebattle.agents.first_available_agent import FirstAvailableAgent
from pokebattle.agents.random_agent import RandomAgent


class AgentRegistry:
    """Registry for managing available agent types.

    This registry maps agent names (used in the CLI) to their factory
    functions. Agents are instantiated per battle with its battle id.

    Example Usage:
        ```python
        agent_names = AgentRegistry.get_available_agents()

        if AgentRegistry.has_agent("first_move"):
            agent = AgentRegistry.create_agent("first_move", battle_id=state.battle_id)
        ```

    Attributes:
        _AGENT_MAP: Mapping from agent names to agent factory functions
    """

    _AGENT_MAP: Dict[str, Callable[[str], Agent]] = {
        "random": lambda battle_id: RandomAgent(battle_id),
        "first_move": lambda battle_id: FirstAvailableAgent(battle_id),
    }

    @classmethod
    def get_available_agents(cls) -> List[str]:
        """Get list of all available agent names, sorted."""
        return sorted(cls._AGENT_MAP.keys())

    @classmethod
    def has_agent(cls, agent_name: str) -> bool:
        return agent_name.lower() in cls._AGENT_MAP

    @classmethod
    def create_agent(cls, agent_name: str, battle_id: str = "") -> Agent:
        """Create an agent instance by name for a specific battle.

        Args:
            agent_name: Name of the agent to create (case insensitive)
            battle_id: Battle session id

        Returns:
            Instance of the requested agent

        Raises:
            ValueError: If agent_name is not registered
        """
        normalized_name = agent_name.lower()

        if normalized_name not in cls._AGENT_MAP:
            available = ", ".join(cls.get_available_agents())
            raise ValueError(
                f"Unknown agent: '{agent_name}'. Available agents: {available}"
            )

        return cls._AGENT_MAP[normalized_name](battle_id)

    @classmethod
    def register_agent(
        cls, agent_name: str, agent_factory: Callable[[str], Agent]
    ) -> None:
        """Register a new agent type at runtime.

        Args:
            agent_name: Name to register the agent under (will be lowercased)
            agent_factory: Callable taking a battle id and returning an agent

        Raises:
            ValueError: If agent_name is already registered
        """
        normalized_name = agent_name.lower()

        if normalized_name in cls._AGENT_MAP:
            raise ValueError(f"Agent '{agent_name}' is already registered")

        cls._AGENT_MAP[normalized_name] = agent_factory
