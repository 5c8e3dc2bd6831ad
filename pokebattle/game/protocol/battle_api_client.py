"""HTTP client for the card battle API."""

from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
from absl import logging

from pokebattle.game.exceptions import ApiError, TimedOut, Unauthorized
from pokebattle.game.interface.battle_action import ActionType, BattleAction
from pokebattle.game.protocol.session_provider import SessionProvider
from pokebattle.game.schema.enums import BattleMode

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_SECS = 10.0
DEFAULT_ERROR_MESSAGE = "An error occurred"


def extract_error(response: httpx.Response) -> Tuple[str, Optional[str]]:
    """Pull a human-readable message and error code out of an error response.

    The server reports errors as {"error": {"code", "message"}}, as
    {"message": "..."}, or as {"error": "..."} depending on the endpoint.

    Args:
        response: Error response from the API

    Returns:
        Tuple of (message, code). code is None when the server sent none.
    """
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_ERROR_MESSAGE, None
    if not isinstance(body, Mapping):
        return DEFAULT_ERROR_MESSAGE, None

    error = body.get("error")
    if isinstance(error, Mapping):
        code = error.get("code")
        message = error.get("message") or body.get("message")
        return str(message or DEFAULT_ERROR_MESSAGE), str(code) if code else None
    if body.get("message"):
        return str(body["message"]), None
    if isinstance(error, str) and error:
        return error, None
    return DEFAULT_ERROR_MESSAGE, None


class BattleApiClient:
    """Client for the battle endpoints of the card battle server.

    All methods return the decoded JSON body untouched; turning it into a
    BattleState is the normalizer's job.

    Example usage:
        ```python
        async with BattleApiClient(base_url, StaticSessionProvider(token)) as client:
            response = await client.start_battle(BattleMode.ONE_ON_ONE)
            response = await client.submit_move(response["id"], "attack", 0)
        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session_provider: Optional[SessionProvider] = None,
        timeout: float = DEFAULT_TIMEOUT_SECS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the battle server (e.g., http://localhost:3000)
            session_provider: Source of the bearer token, if requests need one
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests to fake the server
        """
        self._base_url = base_url.rstrip("/")
        self._session_provider = session_provider
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def start_battle(self, mode: BattleMode) -> Any:
        """Start a new battle against the AI.

        Args:
            mode: BattleMode.ONE_ON_ONE or BattleMode.FIVE_ON_FIVE

        Returns:
            Decoded battle response
        """
        return await self._request("POST", "/api/battle/start", json={"mode": mode.value})

    async def submit_move(
        self, battle_id: str, move: str, move_index: Optional[int] = None
    ) -> Any:
        """Submit a turn action.

        Args:
            battle_id: Battle session id
            move: One of "attack", "defend", "pass", "sacrifice", "surrender"
            move_index: Move to use, required for "attack"

        Returns:
            Decoded battle response

        Raises:
            ValueError: If move is not a turn action or attack lacks move_index
        """
        action_type = ActionType(move)
        if not action_type.is_turn_action:
            raise ValueError(f"{move} is not a turn action, use switch_pokemon")
        action = BattleAction(action_type=action_type, move_index=move_index)
        return await self._request(
            "POST", "/api/battle/move", json=action.to_request_payload(battle_id)
        )

    async def switch_pokemon(self, battle_id: str, new_index: int) -> Any:
        """Switch the player's active Pokemon to another deck slot."""
        action = BattleAction(action_type=ActionType.SWITCH, switch_index=new_index)
        return await self._request(
            "POST", "/api/battle/switch", json=action.to_request_payload(battle_id)
        )

    async def select_reward(self, battle_id: str, pokemon_index: int) -> Any:
        """Claim one of the defeated AI Pokemon after a 5v5 victory.

        Returns:
            Decoded confirmation, {"message": ..., "card": {...}}
        """
        return await self._request(
            "POST",
            "/api/battle/select-reward",
            json={"battle_id": battle_id, "pokemon_index": pokemon_index},
        )

    async def get_battle_state(self, battle_id: str) -> Any:
        """Fetch the current state of a battle without acting."""
        return await self._request(
            "GET", "/api/battle/state", params={"battle_id": battle_id}
        )

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "BattleApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        if self._session_provider is None:
            return {}
        token = self._session_provider.get_token()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and decode its JSON body.

        Raises:
            TimedOut: If the server did not answer within the timeout
            Unauthorized: On HTTP 401; the session provider is cleared first
            ApiError: On any other error status, transport failure, or a
                response body that is not JSON
        """
        operation = f"{method} {path}"
        logging.debug("Sending %s %s", operation, json if json is not None else params)
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=self._auth_headers()
            )
        except httpx.TimeoutException as e:
            raise TimedOut(operation, self._timeout) from e
        except httpx.RequestError as e:
            logging.warning("%s failed without a response: %s", operation, e)
            raise ApiError("No response from server") from e

        if response.is_error:
            message, code = extract_error(response)
            logging.warning(
                "%s returned HTTP %d: %s", operation, response.status_code, message
            )
            if response.status_code == 401:
                if self._session_provider is not None:
                    self._session_provider.clear()
                raise Unauthorized(message, response.status_code, code)
            raise ApiError(message, response.status_code, code)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError("Malformed response body", response.status_code) from e
