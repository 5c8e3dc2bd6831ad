"""Session token providers used to authenticate battle API requests."""

from abc import ABC, abstractmethod
from typing import Optional


class SessionProvider(ABC):
    """Supplies the bearer token for API requests.

    Where the token lives (a file, a keyring, a browser) is the provider's
    business; the battle client only asks for it and tells the provider to
    forget it when the server rejects it.
    """

    @abstractmethod
    def get_token(self) -> Optional[str]:
        """Return the current token, or None when not logged in."""

    @abstractmethod
    def clear(self) -> None:
        """Forget the current token after the server rejected it."""


class StaticSessionProvider(SessionProvider):
    """Holds a token given at construction time, in memory only."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token

    def clear(self) -> None:
        self._token = None
